"""Persistent local cache for record collections.

This module provides:
- LocalCache: SQLite-backed key-value store holding JSON values

Architecture:
    One row per key, the value serialized as JSON text. Writes go
    straight to disk (autocommit) so every write is durable on return.
    Reads never raise: a missing key or a value that cannot be decoded
    yields the caller's default.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LocalCache:
    """SQLite-based key-value cache.

    Shared by every coordinator of a process; keys are scoped by naming
    convention (one key per record category).
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize the cache database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Timer threads write concurrently with the caller
        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")

        self._create_tables()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS cache_entries (
                key TEXT PRIMARY KEY,
                value TEXT
            );
        """)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> LocalCache:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    @property
    def path(self) -> Path:
        """Path of the database file."""
        return self._db_path

    def read(self, key: str, default: T) -> T | Any:
        """Read a cached value.

        Args:
            key: Cache key.
            default: Value returned when nothing usable is stored.

        Returns:
            The decoded value, or ``default``.
        """
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT value FROM cache_entries WHERE key = ?",
                    (key,),
                ).fetchone()
        except sqlite3.Error as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return default

        if row is None or row["value"] is None:
            return default
        try:
            return json.loads(row["value"])
        except ValueError:
            logger.warning("Discarding undecodable cache entry %s", key)
            return default

    def write(self, key: str, value: Any) -> None:
        """Store a value, replacing any previous one.

        Args:
            key: Cache key.
            value: JSON-serializable value.
        """
        payload = json.dumps(value)
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO cache_entries (key, value) VALUES (?, ?)",
                (key, payload),
            )

    def delete(self, key: str) -> None:
        """Remove a key from the cache."""
        with self._lock:
            self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))

    def keys(self) -> list[str]:
        """List all stored keys."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT key FROM cache_entries ORDER BY key"
            ).fetchall()
        return [row["key"] for row in rows]
