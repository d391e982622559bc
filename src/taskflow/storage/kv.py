# src/taskflow/storage/kv.py

from __future__ import annotations

import contextlib
import logging
import os
import re
import sqlite3
import time
from pathlib import Path

from ..errors import StorageReadError

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class SQLiteKVStorage:
    """
    SQLite key-value slot storage.

    Schema: a single table kv(key PRIMARY KEY, value, updated_at).

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "taskflow.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("SQLiteKVStorage ready db=%s", self._db_path)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def read(self, key: str) -> str | None:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageReadError(f"Cannot open {self._db_path}: {e}") from e
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageReadError(f"Cannot read key {key!r} from {self._db_path}: {e}") from e
        finally:
            conn.close()
        return None if row is None else str(row[0])

    def write(self, key: str, value: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO kv(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, time.time()),
            )
            conn.commit()
            logger.debug("kv write key=%s bytes=%d", key, len(value))
        finally:
            conn.close()


class JsonFileKVStorage:
    """One file per key under a directory; writes go through a temp file + os.replace."""

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)
        logger.info("JsonFileKVStorage ready dir=%s", self._dir)

    def close(self) -> None:
        return

    def path_for(self, key: str) -> Path:
        return self._dir / f"{_SAFE_KEY.sub('_', key)}.json"

    def read(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageReadError(f"Cannot read {path}: {e}") from e

    def write(self, key: str, value: str) -> None:
        path = self.path_for(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, "utf-8")
        os.replace(tmp, path)
        with contextlib.suppress(OSError):
            os.chmod(path, 0o600)
        logger.debug("kv write key=%s path=%s bytes=%d", key, path, len(value))


class MemoryKVStorage:
    """Process-local storage for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})
        self.writes = 0

    def close(self) -> None:
        return

    def read(self, key: str) -> str | None:
        return self.data.get(key)

    def write(self, key: str, value: str) -> None:
        self.data[key] = value
        self.writes += 1


def open_storage(settings) -> SQLiteKVStorage | JsonFileKVStorage | MemoryKVStorage:
    backend = str(getattr(settings, "storage_backend", "sqlite")).lower()
    path = Path(settings.storage_path)
    if backend == "memory":
        return MemoryKVStorage()
    if backend == "json":
        return JsonFileKVStorage(path)
    return SQLiteKVStorage(path)
