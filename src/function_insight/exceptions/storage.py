"""Persistence exceptions: metadata store and blob store."""

from .base import FunctionInsightError


class StorageError(FunctionInsightError):
    """Base class for persistence errors."""

    pass


class CacheError(StorageError):
    """Raised when the store is unreachable or a record cannot be read.

    The pipeline treats this as a forced cache miss.
    """

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Store {operation} failed",
            details={"operation": operation, "reason": reason},
        )
        self.operation = operation
        self.reason = reason
