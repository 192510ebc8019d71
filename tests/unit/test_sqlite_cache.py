"""Tests for the SQLite local cache."""

import sqlite3
from pathlib import Path

from stickit.core.reducer import apply
from stickit.models.actions import AddTask
from stickit.models.board import BoardState
from stickit.protocols import LocalCacheProtocol
from stickit.storage.sqlite_cache import (
    SCHEMA_VERSION,
    SqliteCache,
    get_metadata,
    get_schema_version,
    migrate_schema,
    set_metadata,
)


def test_migrate_schema_creates_tables() -> None:
    conn = sqlite3.connect(":memory:")
    assert get_schema_version(conn) is None
    migrate_schema(conn)
    assert get_schema_version(conn) == SCHEMA_VERSION
    migrate_schema(conn)
    assert get_schema_version(conn) == SCHEMA_VERSION


def test_metadata_round_trip() -> None:
    conn = sqlite3.connect(":memory:")
    migrate_schema(conn)
    assert get_metadata(conn, "last_backup_at") is None
    set_metadata(conn, "last_backup_at", "123")
    assert get_metadata(conn, "last_backup_at") == "123"


def test_cache_satisfies_protocol() -> None:
    assert isinstance(SqliteCache(":memory:"), LocalCacheProtocol)


def test_empty_cache_returns_none() -> None:
    cache = SqliteCache(":memory:")
    assert cache.get() is None
    assert cache.get_raw() is None


def test_set_then_get_across_connections(tmp_path: Path, board: BoardState) -> None:
    path = tmp_path / "nested" / "board.db"
    state = apply(board, AddTask(note_id="home", text="Buy soil"), now=1)

    cache = SqliteCache(path)
    cache.set(state)
    cache.close()

    reopened = SqliteCache(path)
    assert reopened.get() == state
    reopened.close()


def test_corrupted_entry_yields_fresh_board() -> None:
    cache = SqliteCache(":memory:")
    cache.set_raw("{definitely not json")
    board = cache.get()
    assert board is not None
    assert board.notes == ()


def test_separate_keys_do_not_collide(tmp_path: Path, board: BoardState) -> None:
    path = tmp_path / "board.db"
    first = SqliteCache(path, key="one")
    first.set(board)
    second = SqliteCache(path, key="two")
    assert second.get() is None
    first.close()
    second.close()
