from __future__ import annotations

import re
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Protocol

from glowup_tracker.config import AppSettings, CacheBackend

DEFAULT_SQLITE_FILENAME = "glowup_cache.sqlite"
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class KeyValueStore(Protocol):
    """String key-value store that survives restarts (the local cache)."""

    def get_item(self, key: str) -> str | None:
        """Return the stored value or ``None``."""

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    def remove_item(self, key: str) -> None:
        """Delete ``key`` if present."""


def cache_key(namespace: str, uid: str) -> str:
    return f"{namespace}-{uid}"


class FileKeyValueStore:
    """Keep one UTF-8 file per key inside a data directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).expanduser()
        self._last_written: dict[str, str] = {}

    def _path_for(self, key: str) -> Path:
        return self.directory / f"{_UNSAFE_FILENAME_CHARS.sub('_', key)}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path_for(key)
        if self._last_written.get(key) == value and path.exists():
            return

        self.directory.mkdir(parents=True, exist_ok=True)
        temporary = path.with_suffix(".tmp")
        temporary.write_text(value, encoding="utf-8")
        temporary.replace(path)
        self._last_written[key] = value

    def remove_item(self, key: str) -> None:
        self._path_for(key).unlink(missing_ok=True)
        self._last_written.pop(key, None)


class SQLiteKeyValueStore:
    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def get_item(self, key: str) -> str | None:
        with closing(self._connect()) as connection, connection:
            row = connection.execute("SELECT value FROM local_cache WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        with closing(self._connect()) as connection, connection:
            connection.execute(
                """
                INSERT INTO local_cache (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                (key, value),
            )
            connection.commit()

    def remove_item(self, key: str) -> None:
        with closing(self._connect()) as connection, connection:
            connection.execute("DELETE FROM local_cache WHERE key = ?", (key,))
            connection.commit()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _ensure_schema(self) -> None:
        with closing(self._connect()) as connection, connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS local_cache (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            connection.commit()


def build_local_store(settings: AppSettings) -> KeyValueStore:
    if settings.cache_backend is CacheBackend.SQLITE:
        return SQLiteKeyValueStore(settings.data_dir / DEFAULT_SQLITE_FILENAME)
    return FileKeyValueStore(settings.data_dir)


__all__ = [
    "DEFAULT_SQLITE_FILENAME",
    "FileKeyValueStore",
    "KeyValueStore",
    "SQLiteKeyValueStore",
    "build_local_store",
    "cache_key",
]
