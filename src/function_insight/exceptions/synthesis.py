"""LLM synthesis exceptions.

None of these reach the caller of the pipeline: the synthesis client folds
them into a partial result.
"""

from typing import Optional

from .base import FunctionInsightError


class SynthesisError(FunctionInsightError):
    """Base class for synthesis errors."""

    pass


class TransientLLMError(SynthesisError):
    """Timeout, rate limit or server-side failure. Safe to retry."""

    def __init__(self, reason: str, status_code: Optional[int] = None):
        details = {"reason": reason}
        if status_code is not None:
            details["status_code"] = str(status_code)
        super().__init__("LLM service temporarily unavailable", details=details)
        self.reason = reason
        self.status_code = status_code


class PermanentLLMError(SynthesisError):
    """Invalid request, authentication failure or missing configuration."""

    def __init__(self, reason: str, status_code: Optional[int] = None):
        details = {"reason": reason}
        if status_code is not None:
            details["status_code"] = str(status_code)
        super().__init__("LLM service rejected the request", details=details)
        self.reason = reason
        self.status_code = status_code


class ReplyFormatError(SynthesisError):
    """The LLM reply could not be parsed into the required sections."""

    def __init__(self, reason: str):
        super().__init__(f"Malformed synthesis reply: {reason}", details={"reason": reason})
        self.reason = reason
