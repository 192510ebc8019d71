"""Reconcile a local board with a newer remote copy of the same board.

Union by identifier, last writer (the remote copy) wins per entity. Nothing
present on either side is dropped, but a task edited on both devices keeps
only the remote copy's fields.
"""

from collections.abc import Iterable
from dataclasses import replace
from typing import TypeVar

from stickit.config import MAX_VERSION_HISTORY
from stickit.models.board import ArchivedTask, BoardState, Note, Snapshot, Task

T = TypeVar("T", Task, Note, ArchivedTask)


def needs_merge(local: BoardState, remote: BoardState) -> bool:
    """Whether another device wrote the remote copy after our last sync."""
    return local.last_sync_time < remote.last_sync_time


def _union_by_id(local: Iterable[T], remote: Iterable[T]) -> list[T]:
    """Local order first, remote-only entries appended; remote wins on shared ids."""
    merged: dict[str, T] = {item.id: item for item in local}
    for item in remote:
        merged[item.id] = item
    return list(merged.values())


def merge_tasks(local: Iterable[Task], remote: Iterable[Task]) -> tuple[Task, ...]:
    return tuple(_union_by_id(local, remote))


def merge_notes(local: Iterable[Note], remote: Iterable[Note]) -> tuple[Note, ...]:
    """Union notes; a note on both sides keeps remote fields and merged tasks."""
    local_by_id = {n.id: n for n in local}
    merged = _union_by_id(local_by_id.values(), remote)
    return tuple(
        replace(note, tasks=merge_tasks(local_by_id[note.id].tasks, note.tasks))
        if note.id in local_by_id and note is not local_by_id[note.id]
        else note
        for note in merged
    )


def _merge_history(
    local: Iterable[Snapshot], remote: Iterable[Snapshot]
) -> tuple[Snapshot, ...]:
    by_timestamp = {s.timestamp: s for s in local}
    for snapshot in remote:
        by_timestamp.setdefault(snapshot.timestamp, snapshot)
    ordered = sorted(by_timestamp.values(), key=lambda s: s.timestamp)
    return tuple(ordered[-MAX_VERSION_HISTORY:])


def merge_boards(local: BoardState, remote: BoardState, *, now: int) -> BoardState:
    """Merge ``remote`` (newer) into ``local``.

    Version history is the union of both histories by timestamp, trimmed to
    the usual cap. Undo log, search and drag state are this device's and stay
    local. The result is marked synced as of ``now``; no snapshot is taken.
    """
    return replace(
        local,
        board_id=remote.board_id or local.board_id,
        user_id=remote.user_id or local.user_id,
        notes=merge_notes(local.notes, remote.notes),
        archived_tasks=tuple(_union_by_id(local.archived_tasks, remote.archived_tasks)),
        version_history=_merge_history(local.version_history, remote.version_history),
        is_synced=True,
        last_sync_time=now,
    )
