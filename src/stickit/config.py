"""Configuration constants for the sticky-note board."""

import os
from pathlib import Path

# Bounded logs kept inside every board document.
MAX_VERSION_HISTORY: int = 50
MAX_UNDO_LOG: int = 20

# Task indentation is clamped to [0, MAX_INDENT].
MAX_INDENT: int = 10

# Per-note UI parameters: (min, max, default).
TEXT_SIZE_RANGE: tuple[int, int] = (10, 20)
DEFAULT_TEXT_SIZE: int = 14
TASK_SPACING_RANGE: tuple[int, int] = (2, 16)
DEFAULT_TASK_SPACING: int = 8

DEFAULT_NOTE_TITLE: str = "New Note"
UNTITLED_NOTE_TITLE: str = "Untitled Note"
RESTORED_NOTE_TITLE: str = "Restored Tasks"
DEFAULT_NOTE_POSITION: tuple[float, float] = (100.0, 100.0)
RESTORED_NOTE_POSITION: tuple[float, float] = (200.0, 200.0)

# Quiet period before a remote write fires, in seconds.
SYNC_DEBOUNCE_SECONDS: float = 2.0

# Minimum seconds between timer-driven automatic backups.
BACKUP_INTERVAL_SECONDS: int = 30 * 60

# Key the board document is stored under in the local cache.
CACHE_KEY: str = "stickitState"
CACHE_FILENAME: str = "board.db"

# Remote store token location. First file found is used.
API_TOKEN_FILES: list[Path] = [
    Path("~/.config/stickit-token.txt").expanduser(),
    Path("~/.config/secret/stickit-token.txt").expanduser(),
]

# Directory with the local cache. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/stickit").expanduser(),
    Path("~/.stickit").expanduser(),
]


def resolve_data_directory() -> Path:
    """Return the local data directory.

    STICKIT_DATA_DIR wins; otherwise the first existing entry of
    DATA_DIRECTORIES, falling back to the first entry.
    """
    env_dir = os.environ.get("STICKIT_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]


def resolve_remote_url() -> str | None:
    """Return the remote store base URL, or None when sync is not configured."""
    url = os.environ.get("STICKIT_REMOTE_URL", "").strip()
    return url.rstrip("/") or None


def resolve_user_id() -> str | None:
    """Return the authenticated user id supplied by the environment, if any."""
    return os.environ.get("STICKIT_USER_ID") or None
