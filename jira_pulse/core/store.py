"""Byte-level key/value stores backing the analysis cache."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Protocol

from .errors import CacheWriteError

SCHEMA = """
CREATE TABLE IF NOT EXISTS cache (
    key   TEXT PRIMARY KEY,
    value BLOB NOT NULL
);
"""


class PersistentStore(Protocol):
    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store; each write replaces the whole value under a lock."""

    def __init__(self):
        self._data: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class SQLiteStore:
    """SQLite-backed store, one row per cache key."""

    def __init__(self, db_path: Path | str = ":memory:"):
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            row = self.conn.execute("SELECT value FROM cache WHERE key = ?", (key,)).fetchone()
        return bytes(row[0]) if row else None

    def set(self, key: str, value: bytes) -> None:
        try:
            with self._lock:
                self.conn.execute(
                    "INSERT OR REPLACE INTO cache (key, value) VALUES (?, ?)",
                    (key, sqlite3.Binary(value)),
                )
                self.conn.commit()
        except sqlite3.Error as exc:
            raise CacheWriteError(f"Failed to write cache key {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        with self._lock:
            self.conn.execute("DELETE FROM cache WHERE key = ?", (key,))
            self.conn.commit()

    def close(self) -> None:
        with self._lock:
            self.conn.close()
