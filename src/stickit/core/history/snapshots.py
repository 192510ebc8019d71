"""Version snapshots: build, append, save and restore."""

from dataclasses import replace

from stickit.config import MAX_VERSION_HISTORY
from stickit.models.board import BoardState, Snapshot


def next_timestamp(state: BoardState, now: int) -> int:
    """Return a timestamp later than anything already recorded on the board.

    Snapshot timestamps are identity keys and undo relies on "strictly
    earlier" comparisons, so two records on one board never share a value.
    """
    latest = 0
    if state.version_history:
        latest = state.version_history[-1].timestamp
    if state.undo_log:
        latest = max(latest, state.undo_log[0].timestamp)
    return max(now, latest + 1)


def build_snapshot(state: BoardState, description: str, timestamp: int) -> Snapshot:
    """Capture the board without its own history."""
    return Snapshot(
        timestamp=timestamp,
        description=description,
        data=replace(state, version_history=(), undo_log=()),
    )


def append_snapshot(
    history: tuple[Snapshot, ...],
    snapshot: Snapshot,
    *,
    limit: int = MAX_VERSION_HISTORY,
) -> tuple[Snapshot, ...]:
    """Append, dropping the oldest entries beyond ``limit``."""
    extended = (*history, snapshot)
    if len(extended) > limit:
        extended = extended[-limit:]
    return extended


def find_snapshot(state: BoardState, timestamp: int) -> Snapshot | None:
    return next((s for s in state.version_history if s.timestamp == timestamp), None)


def save_version(state: BoardState, description: str, *, now: int) -> BoardState:
    """Append a manual checkpoint of the current board."""
    snapshot = build_snapshot(state, description, next_timestamp(state, now))
    return replace(state, version_history=append_snapshot(state.version_history, snapshot))


def restore_version(state: BoardState, target_timestamp: int, *, now: int) -> BoardState:
    """Swap in the snapshot keyed by ``target_timestamp``.

    The current board is snapshotted first, so a restore can itself be
    reverted by restoring that entry. The undo log and board identity carry
    over unchanged. Unknown timestamps are a no-op.
    """
    target = find_snapshot(state, target_timestamp)
    if target is None:
        return state

    pre_restore = build_snapshot(
        state,
        f"State before restoring to: {target.description}",
        next_timestamp(state, now),
    )
    return replace(
        target.data,
        version_history=append_snapshot(state.version_history, pre_restore),
        undo_log=state.undo_log,
        board_id=state.board_id,
        user_id=state.user_id,
    )
