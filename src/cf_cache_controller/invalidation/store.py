"""Key-value stores for queued invalidations and runtime flags.

Values are JSON-serialisable objects. An optional TTL makes an entry behave
like a transient: once expired it reads as missing and is purged lazily.
"""

from __future__ import annotations

import json
import sqlite3
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Protocol


class KeyValueStore(Protocol):
    def get(self, key: str) -> object | None: ...

    def set(self, key: str, value: object, ttl_seconds: int | None = None) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store, mainly for tests."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> object | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            raw, expires_at = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._data[key]
                return None
            return json.loads(raw)

    def set(self, key: str, value: object, ttl_seconds: int | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._data[key] = (json.dumps(value), expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SqliteStore:
    """Durable store surviving process restarts."""

    def __init__(
        self,
        path: str,
        wal: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._clock = clock
        self._closed = False
        if wal:
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                expires_at REAL,
                updated_at REAL NOT NULL
            );
            """
        )
        self._conn.commit()

    def get(self, key: str) -> object | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT value, expires_at FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
            if row is None:
                return None
            if row["expires_at"] is not None and row["expires_at"] <= self._clock():
                self._conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                self._conn.commit()
                return None
            return json.loads(row["value"])

    def set(self, key: str, value: object, ttl_seconds: int | None = None) -> None:
        now = self._clock()
        expires_at = now + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO kv_store (key, value, expires_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    expires_at = excluded.expires_at,
                    updated_at = excluded.updated_at
                """,
                (key, json.dumps(value), expires_at, now),
            )
            self._conn.commit()

    def delete(self, key: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            self._conn.commit()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._conn.close()
            self._closed = True
