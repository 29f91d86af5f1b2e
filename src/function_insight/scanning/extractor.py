"""SourceExtractor: parses every supported file in a source tree.

Usage:
    extractor = SourceExtractor(default_registry())
    target = extractor.parse_file(root, "pkg/service.py")   # raises on failure
    result = extractor.extract_all(root, exclude={"pkg/service.py"})
    # result.sources is dict[path, ParsedSource]; result.errors lists skipped files

``root`` is a directory (the working tree) or any ``SourceTree``, such as a
past revision. Parse failures in non-target files do not abort extraction:
they are collected in ``ExtractionResult.errors`` for the caller to report.
"""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Iterable, Optional, Union

from ..cache import ParseCache
from ..exceptions import AnalysisError, ParseError
from ..logging_config import get_logger
from .registry import ParserRegistry
from .syntax import ParsedSource
from .tree import SourceTree, as_tree

logger = get_logger(__name__)

# Default worker count: use CPU count, capped at 8 to avoid overwhelming I/O
_DEFAULT_WORKERS = min(os.cpu_count() or 4, 8)

TreeLike = Union[SourceTree, Path, str]


@dataclass
class ExtractionResult:
    """Parsed sources plus the files that could not be parsed."""

    sources: dict[str, ParsedSource] = field(default_factory=dict)
    errors: list[AnalysisError] = field(default_factory=list)
    truncated: bool = False


class SourceExtractor:
    """Discovers and parses source files.

    Attributes:
        cache_hits: Parses served from the parse cache
        parsed_count: Files parsed from source
    """

    def __init__(
        self,
        registry: ParserRegistry,
        parse_cache: Optional[ParseCache] = None,
        max_workers: Optional[int] = None,
        max_files: int = 10000,
    ) -> None:
        self.registry = registry
        self.parse_cache = parse_cache
        self._max_workers = max_workers or _DEFAULT_WORKERS
        self._max_files = max_files
        self._lock = Lock()
        self.cache_hits = 0
        self.parsed_count = 0

    def discover(self, root: TreeLike) -> list[str]:
        """Repository-relative POSIX paths of all parseable files, sorted.

        Hidden directories (``.git``, ``.venv``, the store directory) and
        dependency/build directories are skipped.
        """
        tree = as_tree(root)
        return sorted(p for p in tree.list_files() if self.registry.supports(p))

    def parse_file(self, root: TreeLike, rel_path: str) -> ParsedSource:
        """Parse one file.

        Raises:
            UnsupportedLanguageError: If no parser handles the extension
            ParseError: If the file cannot be read or parsed
        """
        tree = as_tree(root)
        parser = self.registry.parser_for(rel_path)

        cache_key = None
        if self.parse_cache is not None:
            tag = f"{parser.language}:{parser.version}"
            cache_key = tree.cache_key(self.parse_cache, rel_path, tag)
            cached = self.parse_cache.get(cache_key)
            if cached is not None:
                with self._lock:
                    self.cache_hits += 1
                return cached

        try:
            content = tree.read_text(rel_path)
        except OSError as e:
            raise ParseError(rel_path, parser.language, f"cannot read file: {e}")

        parsed = parser.parse(content, rel_path)
        with self._lock:
            self.parsed_count += 1
        if cache_key is not None:
            self.parse_cache.set(cache_key, parsed)
        return parsed

    def extract_all(
        self,
        root: TreeLike,
        exclude: Iterable[str] = (),
        parallel: bool = True,
    ) -> ExtractionResult:
        """Parse every discovered file except those in ``exclude``.

        Args:
            root: Repository root or source tree
            exclude: Relative paths already parsed by the caller
            parallel: Use a thread pool (default: True)

        Returns:
            ExtractionResult with sources keyed by relative path
        """
        tree = as_tree(root)
        skip = set(exclude)
        paths = [p for p in self.discover(tree) if p not in skip]
        result = ExtractionResult()

        if len(paths) > self._max_files:
            logger.warning(
                f"Found {len(paths)} source files, parsing the first {self._max_files}"
            )
            paths = paths[: self._max_files]
            result.truncated = True

        def _record(rel_path: str, parsed: Optional[ParsedSource], error: Optional[AnalysisError]):
            if parsed is not None:
                result.sources[rel_path] = parsed
            elif error is not None:
                logger.debug(f"Skipping {rel_path}: {error}")
                result.errors.append(error)

        if not parallel or len(paths) < 10:
            # Sequential for small batches (parallel overhead not worth it)
            for rel_path in paths:
                _record(rel_path, *self._safe_parse(tree, rel_path))
        else:
            with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                futures = {executor.submit(self._safe_parse, tree, p): p for p in paths}
                for future in as_completed(futures):
                    _record(futures[future], *future.result())

        # Deterministic order regardless of completion order
        result.sources = dict(sorted(result.sources.items()))
        result.errors.sort(key=lambda e: str(e.details.get("path", "")))
        logger.debug(
            f"Extracted {len(result.sources)} files from {tree!r} "
            f"({self.cache_hits} cached, {len(result.errors)} skipped)"
        )
        return result

    def _safe_parse(
        self, tree: SourceTree, rel_path: str
    ) -> tuple[Optional[ParsedSource], Optional[AnalysisError]]:
        try:
            return self.parse_file(tree, rel_path), None
        except AnalysisError as e:
            return None, e
