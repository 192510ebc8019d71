"""Board session: the reducer plus local cache, remote sync and backups.

The reducer is pure; this is the one place that touches storage. Local
writes happen synchronously on every change. Remote writes are debounced on
the running asyncio loop and executed in a worker thread. Without a running
loop (the CLI) changes are only marked dirty and ``sync_now()`` pushes them.
"""

import asyncio
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from loguru import logger

from stickit.config import (
    BACKUP_INTERVAL_SECONDS,
    CACHE_FILENAME,
    SYNC_DEBOUNCE_SECONDS,
    resolve_remote_url,
    resolve_user_id,
)
from stickit.core.merge import merge_boards, needs_merge
from stickit.core.reducer import apply, now_ms
from stickit.models.actions import (
    ADD_NOTE,
    DELETE_NOTE,
    RESTORE_VERSION,
    Action,
    LoadBoard,
    SyncBoard,
    parse_action,
)
from stickit.models.board import AuthState, BoardState, empty_board
from stickit.protocols import BackupStoreProtocol, LocalCacheProtocol, RemoteStoreProtocol
from stickit.storage.remote import HttpRemoteStore, read_api_token
from stickit.storage.sqlite_cache import SqliteCache

BACKUP_TRIGGERS = frozenset({ADD_NOTE, DELETE_NOTE, RESTORE_VERSION})


def is_backup_due(last_backup_at: int | None, interval: int, now: int) -> bool:
    """Check whether a periodic backup should run.

    Args:
        last_backup_at: Epoch milliseconds of the last backup, None if never.
        interval: Minimum seconds between backups.
        now: Current epoch milliseconds.
    """
    if last_backup_at is None:
        return True
    return (now - last_backup_at) >= interval * 1000


def content_changed(previous: BoardState, current: BoardState) -> bool:
    """Whether notes or archived tasks differ, i.e. whether the remote copy is stale."""
    return previous.notes != current.notes or previous.archived_tasks != current.archived_tasks


class BoardSession:
    """Own the current board and keep its copies up to date."""

    def __init__(
        self,
        cache: LocalCacheProtocol,
        remote: RemoteStoreProtocol | None = None,
        backups: BackupStoreProtocol | None = None,
        *,
        debounce: float = SYNC_DEBOUNCE_SECONDS,
    ) -> None:
        self.cache = cache
        self.remote = remote
        self.backups = backups
        self.debounce = debounce
        self.auth = AuthState()
        self.dirty = False
        self.last_backup_at: int | None = None
        self._state = cache.get() or empty_board()
        self._timer: asyncio.TimerHandle | None = None
        self._inflight: set[asyncio.Task[Any]] = set()
        self._queued_backups: list[str] = []

    @property
    def state(self) -> BoardState:
        return self._state

    @property
    def user_id(self) -> str | None:
        return self.auth.user_id if self.auth.is_authenticated else None

    # --- Local ---

    def dispatch(self, action: Action | Mapping[str, Any]) -> BoardState:
        """Apply an action and propagate the result.

        Returns the board after the action; the same object when nothing changed.
        """
        if isinstance(action, Mapping):
            parsed = parse_action(action)
            if parsed is None:
                logger.debug("Ignoring unrecognized action {!r}", action.get("type"))
                return self._state
            action = parsed

        previous = self._state
        current = apply(previous, action)
        if current is previous:
            return current

        self._commit(current)
        if content_changed(previous, current) and self.user_id is not None:
            self._schedule_remote_write()
        if action.type in BACKUP_TRIGGERS:
            self._request_backup(f"Auto backup after {action.type}")
        return self._state

    def _commit(self, board: BoardState) -> None:
        self._state = board
        try:
            self.cache.set(board)
        except Exception:
            logger.opt(exception=True).warning(
                "Could not write board {} to local cache", board.board_id
            )

    # --- Remote writes ---

    def _schedule_remote_write(self) -> None:
        if self.remote is None:
            return
        self.dirty = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self.debounce, self._fire_remote_write)

    def _fire_remote_write(self) -> None:
        self._timer = None
        self._track(self._write_remote())

    def _track(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _write_remote(self) -> bool:
        """Save the board as it is now; returns whether the write succeeded."""
        user_id = self.user_id
        if self.remote is None or user_id is None:
            return False
        board = self._state
        try:
            await asyncio.to_thread(self.remote.save, user_id, board)
        except Exception:
            logger.opt(exception=True).warning(
                "Remote save of board {} failed, keeping local copy only", board.board_id
            )
            return False
        logger.debug("Board {} saved to remote", board.board_id)
        if self._state is board:
            self.dirty = False
        self.dispatch(SyncBoard())
        return True

    # --- Authentication and remote load ---

    async def authenticate(self, auth: AuthState) -> None:
        """Record the signed-in user and reconcile with the remote copy once."""
        self.auth = auth
        if self.user_id is None:
            logger.debug("Anonymous session, remote sync disabled")
            return
        await self.load_remote()

    async def load_remote(self, *, force: bool = False) -> None:
        """Fetch the remote board and merge it in when it is newer.

        Skipped once the board is synced unless ``force`` is set.
        """
        if self.remote is None or self.user_id is None:
            return
        if self._state.is_synced and not force:
            return
        board_id = self._state.board_id
        try:
            remote_board = await asyncio.to_thread(self.remote.load, board_id)
        except Exception:
            logger.opt(exception=True).warning("Could not load board {} from remote", board_id)
            return

        if remote_board is None:
            logger.info("No remote copy of board {}", board_id)
            return

        local = self._state
        if not needs_merge(local, remote_board):
            logger.debug("Local board {} is up to date, scheduling a write", board_id)
            self._schedule_remote_write()
            return

        logger.info(
            "Merging remote board {} ({} notes) into local ({} notes)",
            board_id,
            len(remote_board.notes),
            len(local.notes),
        )
        merged = merge_boards(local, remote_board, now=now_ms())
        self._commit(apply(local, LoadBoard(merged)))
        self._cancel_timer()
        await self._write_remote()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # --- Backups ---

    def _request_backup(self, description: str) -> None:
        if self.backups is None or self.user_id is None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self._queued_backups.append(description)
            return
        self._track(self.create_backup(description))

    async def create_backup(self, description: str) -> str | None:
        """Store a full copy of the board; returns the backup id, None if skipped or failed."""
        user_id = self.user_id
        board = self._state
        if self.backups is None or user_id is None:
            return None
        if not board.notes:
            logger.debug("Skipping backup of empty board {}", board.board_id)
            return None
        try:
            backup_id = await asyncio.to_thread(
                self.backups.create_backup, user_id, board.board_id, board, description
            )
        except Exception:
            logger.opt(exception=True).warning("Backup of board {} failed", board.board_id)
            return None
        self.last_backup_at = now_ms()
        logger.info("Created backup {} of board {}: {}", backup_id, board.board_id, description)
        return backup_id

    async def backup_loop(
        self, *, interval: int = BACKUP_INTERVAL_SECONDS, check_every: float = 60.0
    ) -> None:
        """Create a backup whenever ``interval`` seconds have passed since the last one."""
        while True:
            if is_backup_due(self.last_backup_at, interval, now_ms()):
                await self.create_backup("Automatic backup")
            await asyncio.sleep(check_every)

    # --- Draining ---

    async def flush(self) -> None:
        """Run a pending debounced write now and wait for everything in flight."""
        if self._timer is not None:
            self._cancel_timer()
            self._track(self._write_remote())
        while self._inflight:
            await asyncio.gather(*list(self._inflight))

    async def sync_now(self) -> bool:
        """Pull, merge and push immediately, then create any queued backups.

        Returns whether the remote write succeeded.
        """
        await self.load_remote(force=True)
        self._cancel_timer()
        await self.flush()
        ok = await self._write_remote()
        queued, self._queued_backups = self._queued_backups, []
        for description in queued:
            await self.create_backup(description)
        return ok


def open_session(data_dir: Path) -> tuple[BoardSession, SqliteCache]:
    """Build a session over the SQLite cache in ``data_dir``.

    Remote sync and backups are wired up when STICKIT_REMOTE_URL is set, and
    the session is signed in as STICKIT_USER_ID when that is set. The caller
    closes the returned cache.
    """
    cache = SqliteCache(data_dir / CACHE_FILENAME)
    remote_url = resolve_remote_url()
    store = HttpRemoteStore(remote_url, token=read_api_token()) if remote_url else None
    session = BoardSession(cache, store, store)
    user_id = resolve_user_id()
    if user_id:
        session.auth = AuthState(user_id=user_id, is_authenticated=True)
    return session, cache
