from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from glowup_tracker.config import AppSettings, CacheBackend, FirebaseConfig
from glowup_tracker.storage import (
    DEFAULT_SQLITE_FILENAME,
    FileKeyValueStore,
    SQLiteKeyValueStore,
    build_local_store,
    cache_key,
)


def test_cache_key_is_namespaced_by_user() -> None:
    assert cache_key("glowup-data", "abc123") == "glowup-data-abc123"


@pytest.mark.parametrize("store_factory", [FileKeyValueStore, lambda path: SQLiteKeyValueStore(path / "cache.sqlite")])
def test_store_roundtrip_and_remove(tmp_path: Path, store_factory) -> None:
    store = store_factory(tmp_path)

    assert store.get_item("glowup-data-u1") is None
    store.set_item("glowup-data-u1", '{"level": 1}')
    store.set_item("glowup-data-u1", '{"level": 2}')
    assert store.get_item("glowup-data-u1") == '{"level": 2}'

    store.remove_item("glowup-data-u1")
    store.remove_item("glowup-data-u1")
    assert store.get_item("glowup-data-u1") is None


def test_sqlite_store_closes_every_connection(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = SQLiteKeyValueStore(tmp_path / "cache.sqlite")
    opened: list[sqlite3.Connection] = []
    connect = store._connect

    def tracking_connect() -> sqlite3.Connection:
        connection = connect()
        opened.append(connection)
        return connection

    monkeypatch.setattr(store, "_connect", tracking_connect)
    store.set_item("glowup-data-u1", "{}")
    assert store.get_item("glowup-data-u1") == "{}"
    store.remove_item("glowup-data-u1")

    assert len(opened) == 3
    for connection in opened:
        with pytest.raises(sqlite3.ProgrammingError):
            connection.execute("SELECT 1")


def test_file_store_sanitizes_keys(tmp_path: Path) -> None:
    store = FileKeyValueStore(tmp_path / "nested")

    store.set_item("glowup-data-../evil", "value")

    written = list((tmp_path / "nested").iterdir())
    assert [path.name for path in written] == ["glowup-data-.._evil.json"]
    assert store.get_item("glowup-data-../evil") == "value"


def test_build_local_store_follows_settings(tmp_path: Path) -> None:
    firebase = FirebaseConfig(api_key=None, project_id=None)

    file_store = build_local_store(AppSettings(firebase=firebase, data_dir=tmp_path))
    sqlite_store = build_local_store(AppSettings(firebase=firebase, data_dir=tmp_path, cache_backend=CacheBackend.SQLITE))

    assert isinstance(file_store, FileKeyValueStore)
    assert isinstance(sqlite_store, SQLiteKeyValueStore)
    assert (tmp_path / DEFAULT_SQLITE_FILENAME).exists()
