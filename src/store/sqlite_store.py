# src/store/sqlite_store.py - v1
"""SQLite-based record store (STORE_BACKEND=sqlite).

Uses stdlib sqlite3. Each record is one row; ``INSERT OR REPLACE`` inside a
transaction gives whole-document replacement.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from bucketscan.store.base_record_store import BaseRecordStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS records (
    name TEXT PRIMARY KEY,
    document TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteRecordStore(BaseRecordStore):
    """SQLite-backed record store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, name: str) -> str | None:
        """Retrieve a record by name."""
        try:
            cursor = self._conn.execute(
                "SELECT document FROM records WHERE name = ?", (name,)
            )
            row = cursor.fetchone()
        except sqlite3.DatabaseError as e:
            logger.warning("Failed to read record %s: %s", name, e)
            return None
        return None if row is None else row[0]

    async def put(self, name: str, document: str) -> None:
        """Store a record (upsert)."""
        with self._conn:
            self._conn.execute(
                """INSERT OR REPLACE INTO records (name, document, updated_at)
                   VALUES (?, ?, CURRENT_TIMESTAMP)""",
                (name, document),
            )

    async def delete(self, name: str) -> None:
        """Remove a record."""
        with self._conn:
            self._conn.execute("DELETE FROM records WHERE name = ?", (name,))

    async def exists(self, name: str) -> bool:
        cursor = self._conn.execute(
            "SELECT 1 FROM records WHERE name = ?", (name,)
        )
        return cursor.fetchone() is not None

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
