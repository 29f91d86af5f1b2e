"""Source trees: where the extractor finds files and reads their text.

``WorkingTree`` walks the checkout on disk. Other trees (for example a
snapshot of a past revision) implement the same three methods, so the
structural stage parses exactly the version it is asked about.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..cache import ParseCache

SKIP_DIRS = frozenset(
    {
        "node_modules",
        "venv",
        "__pycache__",
        "build",
        "dist",
        "vendor",
        "target",
        "coverage",
        "site-packages",
    }
)


def is_skipped_dir(name: str) -> bool:
    """Hidden directories (``.git``, ``.venv``, the store) and dependency/build dirs."""
    return name.startswith(".") or name in SKIP_DIRS


def is_skipped_path(rel_path: str) -> bool:
    """True if any directory component of ``rel_path`` is skipped."""
    return any(is_skipped_dir(part) for part in PurePosixPath(rel_path).parts[:-1])


class SourceTree(ABC):
    """A set of files addressed by repository-relative POSIX paths."""

    root: Path

    @abstractmethod
    def list_files(self) -> list[str]:
        """Relative paths of candidate files, skipped directories excluded."""

    @abstractmethod
    def read_text(self, rel_path: str) -> str:
        """File text.

        Raises:
            OSError: If the file cannot be read
        """

    @abstractmethod
    def cache_key(self, cache: ParseCache, rel_path: str, parser_tag: str) -> str:
        """Parse-cache key that changes whenever the file content may have."""


class WorkingTree(SourceTree):
    """The files currently on disk under ``root``."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def list_files(self) -> list[str]:
        found: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if not is_skipped_dir(d))
            for name in sorted(filenames):
                found.append(Path(dirpath, name).relative_to(self.root).as_posix())
        return found

    def read_text(self, rel_path: str) -> str:
        return (self.root / rel_path).read_text(encoding="utf-8", errors="replace")

    def cache_key(self, cache: ParseCache, rel_path: str, parser_tag: str) -> str:
        return cache.file_key(self.root / rel_path, rel_path, parser_tag)

    def __repr__(self) -> str:
        return f"WorkingTree({str(self.root)!r})"


def as_tree(root) -> SourceTree:
    """Accept a SourceTree or a directory path."""
    if isinstance(root, SourceTree):
        return root
    return WorkingTree(Path(root))
