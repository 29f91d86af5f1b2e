"""SQLite-backed analysis store kept in the store directory of a repository."""

import sqlite3
from pathlib import Path
from typing import Optional

from ..exceptions import CacheError
from ..logging_config import get_logger

logger = get_logger(__name__)

# Current schema version (bump when tables change).
_SCHEMA_VERSION = 1

DB_FILENAME = "intelligence.db"


def ensure_store_dir(store_dir: Path) -> None:
    """Create the store directory with a .gitignore so it stays untracked."""
    store_dir.mkdir(parents=True, exist_ok=True)
    gitignore = store_dir / ".gitignore"
    if not gitignore.exists():
        gitignore.write_text("*\n")


class IntelligenceDB:
    """Manages ``<store_dir>/intelligence.db``.

    Usage::

        with IntelligenceDB(store_dir) as db:
            save_intelligence(db.conn, record)

    Any sqlite failure while opening is raised as CacheError, which callers
    treat as a forced cache miss.
    """

    def __init__(self, store_dir: Path) -> None:
        self.store_dir: Path = Path(store_dir)
        self.db_path: Path = self.store_dir / DB_FILENAME
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def conn(self) -> sqlite3.Connection:
        """Return the active connection. Raises if not connected."""
        if self._conn is None:
            raise RuntimeError("IntelligenceDB is not connected. Use as context manager or call connect().")
        return self._conn

    # ── lifecycle ─────────────────────────────────────────────────

    def connect(self) -> sqlite3.Connection:
        """Open (or create) the database and run migrations."""
        try:
            ensure_store_dir(self.store_dir)
            conn = sqlite3.connect(str(self.db_path), timeout=10.0)
            conn.execute("PRAGMA journal_mode=WAL")
            conn.row_factory = sqlite3.Row
            self._conn = conn
            self._migrate()
        except (OSError, sqlite3.Error) as e:
            self.close()
            raise CacheError("open", str(e))
        logger.debug("Intelligence DB connected at %s", self.db_path)
        return conn

    def close(self) -> None:
        """Close the connection if open."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "IntelligenceDB":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ── migration ─────────────────────────────────────────────────

    def _migrate(self) -> None:
        """Idempotently create / upgrade all tables."""
        c = self.conn

        c.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER NOT NULL
            )
            """
        )
        row = c.execute("SELECT version FROM schema_version").fetchone()
        if row is None:
            c.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (_SCHEMA_VERSION,),
            )

        # ── analyses ─────────────────────────────────────────────
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS analyses (
                id              INTEGER PRIMARY KEY AUTOINCREMENT,
                repository_id   TEXT    NOT NULL,
                function_key    TEXT    NOT NULL,
                file_path       TEXT    NOT NULL,
                function_name   TEXT    NOT NULL,
                fingerprint     TEXT    NOT NULL,
                created_at      TEXT    NOT NULL,
                format_version  TEXT    NOT NULL,
                risk_level      TEXT    NOT NULL,
                score           REAL    NOT NULL,
                is_partial      INTEGER NOT NULL DEFAULT 0,
                payload         TEXT    NOT NULL
            )
            """
        )

        c.execute(
            "CREATE INDEX IF NOT EXISTS idx_analyses_lookup "
            "ON analyses(repository_id, function_key, fingerprint)"
        )
        c.execute(
            "CREATE INDEX IF NOT EXISTS idx_analyses_function "
            "ON analyses(repository_id, function_name, created_at)"
        )

        c.commit()

    # ── maintenance ───────────────────────────────────────────────

    def stats(self) -> dict:
        """Row counts for ``cache-info``."""
        c = self.conn
        total = c.execute("SELECT COUNT(*) FROM analyses").fetchone()[0]
        functions = c.execute(
            "SELECT COUNT(DISTINCT repository_id || '|' || function_key) FROM analyses"
        ).fetchone()[0]
        newest = c.execute("SELECT MAX(created_at) FROM analyses").fetchone()[0]
        return {
            "path": str(self.db_path),
            "analyses": total,
            "functions": functions,
            "newest": newest,
        }

    def clear(self) -> int:
        """Delete every stored analysis. Returns the number removed."""
        c = self.conn
        removed = c.execute("DELETE FROM analyses").rowcount
        c.commit()
        logger.info("Removed %d stored analyses", removed)
        return removed
