"""SQLite read-through cache for catalog lookups."""

import json
import sqlite3
import time
from pathlib import Path
from typing import Any


class CatalogCache:
    """Key/value cache with per-entry expiry, stored in SQLite.

    Values are stored as JSON. Expired entries read as misses and are
    purged lazily.
    """

    def __init__(self, db_path: Path, clock=time.time) -> None:
        """Initialize the cache with a database path.

        Args:
            db_path: Path to the SQLite database file.
            clock: Callable returning the current time in seconds.
        """
        self.db_path = db_path
        self._clock = clock
        self._conn: sqlite3.Connection | None = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def init_db(self) -> None:
        """Create the cache table if it doesn't exist."""
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS cache (
                key         TEXT PRIMARY KEY,
                value       TEXT NOT NULL,
                expires_at  REAL NOT NULL
            )
        """)
        conn.commit()

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on a miss or expired entry."""
        conn = self._get_connection()
        row = conn.execute(
            "SELECT value, expires_at FROM cache WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        if row["expires_at"] <= self._clock():
            conn.execute("DELETE FROM cache WHERE key = ?", (key,))
            conn.commit()
            return None
        return json.loads(row["value"])

    def put(self, key: str, value: Any, ttl: float) -> None:
        """Store a value that expires after ttl seconds."""
        conn = self._get_connection()
        conn.execute(
            """
            INSERT INTO cache (key, value, expires_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                expires_at = excluded.expires_at
            """,
            (key, json.dumps(value), self._clock() + ttl),
        )
        conn.commit()

    def delete(self, key: str) -> bool:
        conn = self._get_connection()
        cursor = conn.execute("DELETE FROM cache WHERE key = ?", (key,))
        conn.commit()
        return cursor.rowcount > 0

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
