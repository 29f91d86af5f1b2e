"""Data models for function history."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CommitRecord:
    """One commit that touched a function.

    ``diff`` is restricted to the function's line range at that commit.
    """

    hash: str
    message: str
    author: str
    timestamp: datetime  # UTC
    issue_refs: tuple[str, ...] = ()
    diff: str = ""

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0].strip()

    @property
    def short_hash(self) -> str:
        return self.hash[:10]
