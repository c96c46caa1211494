"""
TaskFlow Calendar — Key-Value Storage.

A flat namespace of JSON blobs in a single SQLite table. The store knows
nothing about dates: callers that persist datetimes convert them to ISO
strings before writing and back after reading.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class StorageCorruptError(Exception):
    """Raised when a stored value is not valid JSON."""


class KeyValueStore:
    """SQLite-backed JSON key-value store."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from taskflow.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key   TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
        logger.debug("Key-value table initialized at %s", self._db_path)

    def read(self, key: str, default: Any = None) -> Any:
        """Return the decoded value for key, or default when absent."""
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as exc:
            raise StorageCorruptError(f"Stored value for {key!r} is not valid JSON") from exc

    def write(self, key: str, value: Any) -> None:
        """Serialize value to JSON and store it under key."""
        text = json.dumps(value)
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, text),
            )

    def remove(self, key: str) -> bool:
        """Delete key. Returns True if something was removed."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        return cursor.rowcount > 0

    def contains(self, key: str) -> bool:
        """Check whether key has ever been written (and not removed)."""
        with self._connect() as conn:
            row = conn.execute("SELECT 1 FROM kv WHERE key = ?", (key,)).fetchone()
        return row is not None
