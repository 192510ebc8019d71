"""Bounded undo log and snapshot-granularity undo."""

from dataclasses import replace
from typing import Any

from stickit.config import MAX_UNDO_LOG
from stickit.core.history.snapshots import append_snapshot, build_snapshot, next_timestamp
from stickit.models.board import BoardState, Snapshot, UndoEntry


def record_action(
    undo_log: tuple[UndoEntry, ...],
    action_type: str,
    payload: dict[str, Any],
    timestamp: int,
    *,
    limit: int = MAX_UNDO_LOG,
) -> tuple[UndoEntry, ...]:
    """Prepend an entry (newest first), dropping the oldest beyond ``limit``."""
    entry = UndoEntry(action_type=action_type, action_payload=payload, timestamp=timestamp)
    return (entry, *undo_log)[:limit]


def _latest_before(history: tuple[Snapshot, ...], timestamp: int) -> Snapshot | None:
    earlier = [s for s in history if s.timestamp < timestamp]
    return max(earlier, key=lambda s: s.timestamp) if earlier else None


def undo(state: BoardState, *, now: int) -> BoardState:
    """Step back to the checkpoint taken before the newest undoable action.

    This restores the nearest earlier snapshot, so it can discard several
    non-snapshotting actions at once. If no earlier snapshot exists the entry
    is dropped and the board is left as is.
    """
    if not state.undo_log:
        return state

    last, *rest = state.undo_log
    pre_undo = build_snapshot(
        state,
        f"State before undoing: {last.action_type}",
        next_timestamp(state, now),
    )
    history = append_snapshot(state.version_history, pre_undo)
    target = _latest_before(state.version_history, last.timestamp)

    if target is None:
        return replace(state, undo_log=tuple(rest), version_history=history)

    return replace(
        target.data,
        version_history=history,
        undo_log=tuple(rest),
        board_id=state.board_id,
        user_id=state.user_id,
    )
