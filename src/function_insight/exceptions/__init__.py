"""Exception hierarchy for Function Insight."""

from .analysis import (
    AnalysisCancelledError,
    AnalysisError,
    AnalysisUnavailableError,
    FunctionNotFoundError,
    GraphConstructionError,
    ParseError,
    RepositoryAccessError,
    StageTimeoutError,
    UnsupportedLanguageError,
)
from .base import FunctionInsightError
from .config import ConfigurationError, InvalidConfigError
from .storage import CacheError, StorageError
from .synthesis import (
    PermanentLLMError,
    ReplyFormatError,
    SynthesisError,
    TransientLLMError,
)

__all__ = [
    "FunctionInsightError",
    "AnalysisError",
    "RepositoryAccessError",
    "ParseError",
    "UnsupportedLanguageError",
    "GraphConstructionError",
    "FunctionNotFoundError",
    "StageTimeoutError",
    "AnalysisUnavailableError",
    "AnalysisCancelledError",
    "StorageError",
    "CacheError",
    "SynthesisError",
    "TransientLLMError",
    "PermanentLLMError",
    "ReplyFormatError",
    "ConfigurationError",
    "InvalidConfigError",
]
