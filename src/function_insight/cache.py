"""
Caching for Function Insight.

Two layers:
- ``is_valid``: the pure validity predicate applied to stored analyses
- ``ParseCache``: diskcache-backed memo of parsed source files
"""

import hashlib
from datetime import datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from diskcache import Cache

from .logging_config import get_logger
from .models import FunctionIntelligence

if TYPE_CHECKING:
    from .scanning.syntax import ParsedSource

logger = get_logger(__name__)

DEFAULT_TTL = timedelta(hours=24)


def is_valid(
    record: FunctionIntelligence,
    now: datetime,
    current_fingerprint: str,
    ttl: timedelta = DEFAULT_TTL,
) -> bool:
    """
    Decide whether a stored analysis may be served as-is.

    Valid iff the record is younger than ``ttl`` AND was computed against
    ``current_fingerprint``. Either condition failing is a miss.

    Args:
        record: Stored analysis
        now: Current time (timezone-aware)
        current_fingerprint: Fingerprint of the function at request time
        ttl: Validity window

    Returns:
        True on a cache hit
    """
    if record.fingerprint != current_fingerprint:
        return False
    return now - record.created_at < ttl


class ParseCache:
    """
    SQLite-based cache of parsed source files.

    Working-tree keys are derived from file path, modification time, size
    and the parser's version, so an edited file or an upgraded parser never
    hits a stale entry. Files read from a commit are keyed by the commit hash.
    """

    def __init__(
        self,
        cache_dir: str,
        ttl_hours: int = 24 * 7,
        enabled: bool = True
    ):
        self.enabled = enabled
        self.ttl_seconds = ttl_hours * 3600

        if self.enabled:
            self.cache = Cache(cache_dir)
            logger.debug(f"Parse cache initialized at {cache_dir} with TTL={ttl_hours}h")
        else:
            self.cache = None
            logger.debug("Parse cache disabled")

    def file_key(self, filepath: Path, rel_path: str, parser_tag: str) -> str:
        """
        Generate cache key from file metadata and parser identity.

        Args:
            filepath: Absolute path used for stat()
            rel_path: Repository-relative path recorded in the parse
            parser_tag: Parser language and version

        Returns:
            Cache key string
        """
        try:
            stat = filepath.stat()
            key_data = f"{rel_path}:{stat.st_mtime_ns}:{stat.st_size}:{parser_tag}"
        except OSError:
            key_data = f"{rel_path}:{parser_tag}"
        return hashlib.sha256(key_data.encode()).hexdigest()

    def revision_key(self, rel_path: str, revision: str, parser_tag: str) -> str:
        """Cache key for a file as committed at ``revision`` (a full commit hash)."""
        key_data = f"{rel_path}@{revision}:{parser_tag}"
        return hashlib.sha256(key_data.encode()).hexdigest()

    def get(self, key: str) -> Optional["ParsedSource"]:
        """Cached parse, or None if absent/expired/unreadable."""
        if not self.enabled or self.cache is None:
            return None

        try:
            value = self.cache.get(key)
        except Exception as e:
            logger.warning(f"Parse cache get failed: {e}")
            return None
        if value is not None:
            logger.debug(f"Parse cache hit: {key[:16]}...")
        return value

    def set(self, key: str, value: "ParsedSource") -> None:
        if not self.enabled or self.cache is None:
            return

        try:
            self.cache.set(key, value, expire=self.ttl_seconds)
        except Exception as e:
            logger.warning(f"Parse cache set failed: {e}")

    def clear(self) -> int:
        """Clear all entries. Returns the number removed."""
        if not self.enabled or self.cache is None:
            return 0

        try:
            removed = self.cache.clear()
            logger.info("Parse cache cleared")
            return removed
        except Exception as e:
            logger.warning(f"Parse cache clear failed: {e}")
            return 0

    def stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        if not self.enabled or self.cache is None:
            return {"enabled": False}

        try:
            return {
                "enabled": True,
                "size": len(self.cache),
                "directory": self.cache.directory,
                "volume": self.cache.volume(),
            }
        except Exception as e:
            logger.warning(f"Parse cache stats failed: {e}")
            return {"enabled": True, "error": str(e)}

    def close(self) -> None:
        if self.cache is not None:
            self.cache.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
