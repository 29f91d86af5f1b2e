"""RevisionTree: the repository as it was committed at one revision."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..cache import ParseCache
from ..scanning.tree import SourceTree, is_skipped_path
from .git_reader import VersionControlReader


class RevisionTree(SourceTree):
    """SourceTree whose files are read from version control, not from disk.

    Args:
        reader: Version-control reader used for listing and reading files
        root: Repository root
        revision: Full commit hash; parse-cache keys rely on it being immutable
    """

    def __init__(self, reader: VersionControlReader, root: Path, revision: str):
        self.reader = reader
        self.root = Path(root)
        self.revision = revision
        self._files: Optional[list[str]] = None

    def list_files(self) -> list[str]:
        if self._files is None:
            listed = self.reader.list_files(self.root, self.revision)
            self._files = sorted(p for p in listed if not is_skipped_path(p))
        return list(self._files)

    def read_text(self, rel_path: str) -> str:
        text = self.reader.read_file(self.root, rel_path, self.revision)
        if text is None:
            raise FileNotFoundError(f"{rel_path} does not exist at {self.revision}")
        return text

    def cache_key(self, cache: ParseCache, rel_path: str, parser_tag: str) -> str:
        return cache.revision_key(rel_path, self.revision, parser_tag)

    def __repr__(self) -> str:
        return f"RevisionTree({str(self.root)!r}, {self.revision[:12]!r})"
