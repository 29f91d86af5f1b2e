"""Analysis-related exceptions: repository access, parsing, graph identity."""

from typing import Dict, List, Optional, Sequence, Tuple

from .base import FunctionInsightError


class AnalysisError(FunctionInsightError):
    """Base class for analysis-related errors."""
    pass


class RepositoryAccessError(AnalysisError):
    """Raised when a repository's history cannot be read at all.

    Fatal for the history stage only; the pipeline degrades instead of
    aborting.
    """

    def __init__(self, repository: str, reason: str):
        super().__init__(
            f"Cannot read repository history: {repository}",
            details={"repository": str(repository), "reason": reason},
        )
        self.repository = repository
        self.reason = reason


class ParseError(AnalysisError):
    """Raised when source text cannot be parsed."""

    def __init__(
        self,
        path: str,
        language: str,
        reason: str,
        location: Optional[Tuple[int, int]] = None,
    ):
        details = {"path": str(path), "language": language, "reason": reason}
        if location is not None:
            details["location"] = f"{location[0]}:{location[1]}"
        super().__init__(f"Failed to parse {language} file: {path}", details=details)
        self.path = path
        self.language = language
        self.reason = reason
        self.location = location


class UnsupportedLanguageError(AnalysisError):
    """Raised when no parser is registered for a file extension."""

    def __init__(self, extension: str, supported: List[str]):
        super().__init__(
            f"Unsupported language for extension: {extension or '<none>'}",
            details={"extension": extension, "supported": ", ".join(supported)},
        )
        self.extension = extension
        self.supported = supported


class GraphConstructionError(AnalysisError):
    """Raised when one qualified name is defined with conflicting signatures."""

    def __init__(self, qualified_name: str, signatures: Sequence[Tuple[str, ...]]):
        rendered = " vs ".join("(" + ", ".join(sig) + ")" for sig in signatures)
        super().__init__(
            f"Ambiguous function identity: {qualified_name}",
            details={"qualified_name": qualified_name, "signatures": rendered},
        )
        self.qualified_name = qualified_name
        self.signatures = list(signatures)


class FunctionNotFoundError(AnalysisError):
    """Raised when the requested function is not defined in the target file."""

    def __init__(self, file_path: str, function_name: str, candidates: Optional[List[str]] = None):
        details: Dict[str, str] = {"file_path": file_path, "function_name": function_name}
        if candidates:
            details["candidates"] = ", ".join(candidates)
        super().__init__(f"Function not found: {function_name} in {file_path}", details=details)
        self.file_path = file_path
        self.function_name = function_name
        self.candidates = candidates or []


class StageTimeoutError(AnalysisError):
    """Raised when an analysis stage exceeds its time limit."""

    def __init__(self, stage: str, timeout: float):
        super().__init__(
            f"Stage '{stage}' exceeded {timeout}s timeout",
            details={"stage": stage, "timeout": str(timeout)},
        )
        self.stage = stage
        self.timeout = timeout


class AnalysisUnavailableError(AnalysisError):
    """Raised when the structural stage fails and no analysis can be produced."""

    def __init__(self, reason: str, cause: Optional[BaseException] = None):
        details = {"reason": reason}
        if cause is not None:
            details["cause"] = type(cause).__name__
        super().__init__(f"Analysis unavailable: {reason}", details=details)
        self.reason = reason
        self.cause = cause


class AnalysisCancelledError(AnalysisError):
    """Raised when the caller cancels an in-flight analysis."""

    def __init__(self, stage: str):
        super().__init__(f"Analysis cancelled during {stage}", details={"stage": stage})
        self.stage = stage
