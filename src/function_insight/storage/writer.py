"""Write FunctionIntelligence records into the analysis store."""

import sqlite3

from ..exceptions import CacheError
from ..models import FunctionIntelligence


def save_intelligence(conn: sqlite3.Connection, record: FunctionIntelligence) -> int:
    """Append ``record`` to the store.

    Saving never updates an earlier row: each analysis is a new history
    entry, and the newest row for a fingerprint is the current one.

    Returns:
        The row id of the inserted record

    Raises:
        CacheError: If the write fails
    """
    ref = record.ref
    try:
        cur = conn.execute(
            """
            INSERT INTO analyses (
                repository_id, function_key, file_path, function_name,
                fingerprint, created_at, format_version, risk_level, score,
                is_partial, payload
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                ref.repository_id,
                ref.function_key,
                ref.file_path,
                ref.function_name,
                ref.fingerprint,
                record.created_at.isoformat(),
                record.format_version,
                record.risk_level.value,
                record.stability.score,
                int(record.is_partial),
                record.to_json(indent=None),
            ),
        )
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise CacheError("write", str(e))
    row_id = cur.lastrowid
    if row_id is None:
        raise CacheError("write", "insert did not return a row id")
    return row_id
