"""Function history from version control."""

from .collector import HistoryCollector
from .git_reader import GitReader, VersionControlReader, parse_issue_refs, parse_line_log
from .models import CommitRecord
from .snapshot import RevisionTree

__all__ = [
    "CommitRecord",
    "GitReader",
    "HistoryCollector",
    "RevisionTree",
    "VersionControlReader",
    "parse_issue_refs",
    "parse_line_log",
]
