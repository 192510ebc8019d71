"""SQLite-backed local cache for the board document."""

import sqlite3
import time
from pathlib import Path

from loguru import logger

from stickit.config import CACHE_KEY
from stickit.core.codec import board_to_json, load_board_json
from stickit.models.board import BoardState

SCHEMA_VERSION = 1

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS documents (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all tables."""
    conn.executescript(_SCHEMA_SQL)
    conn.execute(
        "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
        ("schema_version", str(SCHEMA_VERSION)),
    )
    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """Return the current schema version, or None if metadata table doesn't exist."""
    try:
        row = conn.execute("SELECT value FROM metadata WHERE key = 'schema_version'").fetchone()
    except sqlite3.OperationalError:
        return None
    return int(row[0]) if row else None


def migrate_schema(conn: sqlite3.Connection) -> None:
    """Create or migrate the database schema to the latest version."""
    version = get_schema_version(conn)
    if version is None:
        create_schema(conn)


def get_metadata(conn: sqlite3.Connection, key: str) -> str | None:
    row = conn.execute("SELECT value FROM metadata WHERE key = ?", (key,)).fetchone()
    return row[0] if row else None


def set_metadata(conn: sqlite3.Connection, key: str, value: str) -> None:
    conn.execute("INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)", (key, value))
    conn.commit()


class SqliteCache:
    """Keep the board document as JSON under a fixed key.

    Pass ``":memory:"`` as the path for a throwaway cache.
    """

    def __init__(self, path: str | Path, *, key: str = CACHE_KEY) -> None:
        self.path = str(path)
        self.key = key
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        migrate_schema(self.conn)
        logger.debug("Cache ready at {} (key {!r})", self.path, self.key)

    def get(self) -> BoardState | None:
        """Return the cached board; a corrupted entry yields a fresh board."""
        raw = self.get_raw()
        if raw is None:
            return None
        return load_board_json(raw)

    def get_raw(self) -> str | None:
        row = self.conn.execute(
            "SELECT value FROM documents WHERE key = ?", (self.key,)
        ).fetchone()
        return row[0] if row else None

    def set(self, board: BoardState) -> None:
        self.set_raw(board_to_json(board))

    def set_raw(self, value: str) -> None:
        now_ms = int(time.time() * 1000)
        try:
            self.conn.execute(
                "INSERT OR REPLACE INTO documents (key, value, updated_at) VALUES (?, ?, ?)",
                (self.key, value, now_ms),
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

    def close(self) -> None:
        self.conn.close()
