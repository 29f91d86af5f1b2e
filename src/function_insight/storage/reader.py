"""Read FunctionIntelligence records back from the analysis store.

Every read deserializes a fresh object, so callers never share state with
the store.
"""

import json
import sqlite3
from typing import Optional

from ..exceptions import CacheError
from ..models import FunctionIntelligence


def load_current(
    conn: sqlite3.Connection,
    repository_id: str,
    function_key: str,
    fingerprint: str,
) -> Optional[FunctionIntelligence]:
    """Newest record for ``(repository_id, function_key, fingerprint)``, or None.

    Raises:
        CacheError: If the store cannot be read or the row cannot be decoded
    """
    try:
        row = conn.execute(
            """
            SELECT payload FROM analyses
            WHERE repository_id = ? AND function_key = ? AND fingerprint = ?
            ORDER BY id DESC LIMIT 1
            """,
            (repository_id, function_key, fingerprint),
        ).fetchone()
    except sqlite3.Error as e:
        raise CacheError("read", str(e))

    if row is None:
        return None
    return _hydrate(row["payload"])


def list_history(
    conn: sqlite3.Connection,
    repository_id: str,
    function_name: str,
    file_path: Optional[str] = None,
) -> list[FunctionIntelligence]:
    """All records for a function, any fingerprint, oldest first."""
    query = "SELECT payload FROM analyses WHERE repository_id = ? AND function_name = ?"
    params: list = [repository_id, function_name]
    if file_path is not None:
        query += " AND file_path = ?"
        params.append(file_path)
    query += " ORDER BY created_at ASC, id ASC"

    try:
        rows = conn.execute(query, params).fetchall()
    except sqlite3.Error as e:
        raise CacheError("read", str(e))
    return [_hydrate(row["payload"]) for row in rows]


def _hydrate(payload: str) -> FunctionIntelligence:
    try:
        return FunctionIntelligence.from_dict(json.loads(payload))
    except (ValueError, KeyError, TypeError) as e:
        raise CacheError("decode", str(e))
