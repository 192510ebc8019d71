"""The board reducer: ``apply(state, action) -> state``.

Pure and total. Unknown actions, and actions whose target does not exist,
return the very same ``state`` object so callers can detect "no change" by
identity. Recognized mutations build a new board by copy-on-write and then
record a snapshot and/or an undo entry as the policy table says.
"""

import time
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any, assert_never

from stickit.config import (
    DEFAULT_NOTE_TITLE,
    TASK_SPACING_RANGE,
    TEXT_SIZE_RANGE,
    UNTITLED_NOTE_TITLE,
)
from stickit.core.archive import (
    complete_task,
    delete_archived_task,
    excerpt,
    restore_archived_task,
)
from stickit.core.history.snapshots import (
    append_snapshot,
    build_snapshot,
    next_timestamp,
    restore_version,
    save_version,
)
from stickit.core.history.undo import record_action, undo
from stickit.core.policy import policy_for
from stickit.core.tree.subtasks import block_indices, shift_block, split_block
from stickit.ids import new_id
from stickit.models.actions import (
    ACTION_CLASSES,
    Action,
    AddNote,
    AddTask,
    ChangeNoteColor,
    ChangeTaskSpacing,
    ChangeTextSize,
    ClearSearch,
    DeleteArchivedTask,
    DeleteNote,
    DeleteTask,
    IndentTask,
    LoadBoard,
    MoveNote,
    MoveTask,
    ReorderTask,
    RestoreArchivedTask,
    RestoreVersion,
    SaveVersion,
    SetDraggedTask,
    SetSearch,
    SetTaskPriority,
    SyncBoard,
    ToggleTask,
    Undo,
    UpdateNote,
    UpdateTask,
    parse_action,
)
from stickit.models.board import (
    BoardState,
    DraggedTask,
    IndentDirection,
    Note,
    SearchState,
    Task,
)

Outcome = tuple[BoardState, str] | None

_ACTION_TYPES = tuple(ACTION_CLASSES.values())


def now_ms() -> int:
    return int(time.time() * 1000)


def _clamp(value: int, bounds: tuple[int, int]) -> int:
    low, high = bounds
    return min(max(low, value), high)


def _map_note(state: BoardState, note_id: str, fn: Callable[[Note], Note]) -> BoardState:
    return replace(state, notes=tuple(fn(n) if n.id == note_id else n for n in state.notes))


def _update_note(state: BoardState, note_id: str, fn: Callable[[Note], Note]) -> BoardState | None:
    if state.find_note(note_id) is None:
        return None
    return _map_note(state, note_id, fn)


def _update_task(
    state: BoardState, note_id: str, task_id: str, fn: Callable[[Task], Task]
) -> tuple[BoardState, Note, Task] | None:
    note = state.find_note(note_id)
    if note is None:
        return None
    task = next((t for t in note.tasks if t.id == task_id), None)
    if task is None:
        return None
    tasks = tuple(fn(t) if t.id == task_id else t for t in note.tasks)
    return _map_note(state, note_id, lambda n: replace(n, tasks=tasks)), note, task


def _task_index(note: Note, task_id: str) -> int:
    return next((i for i, t in enumerate(note.tasks) if t.id == task_id), -1)


# --- Note actions ---


def _add_note(state: BoardState, action: AddNote) -> Outcome:
    title = action.title if action.title.strip() else DEFAULT_NOTE_TITLE
    note = Note(id=new_id(), title=title, color=action.color, position=action.position)
    return replace(state, notes=(*state.notes, note)), f"Added new note: {title}"


def _update_note_title(state: BoardState, action: UpdateNote) -> Outcome:
    title = action.title if action.title.strip() else UNTITLED_NOTE_TITLE
    new_state = _update_note(state, action.id, lambda n: replace(n, title=title))
    return (new_state, f"Renamed note to: {title}") if new_state else None


def _delete_note(state: BoardState, action: DeleteNote) -> Outcome:
    note = state.find_note(action.id)
    if note is None:
        return None
    notes = tuple(n for n in state.notes if n.id != action.id)
    return replace(state, notes=notes), f"Deleted note: {note.title}"


def _move_note(state: BoardState, action: MoveNote) -> Outcome:
    new_state = _update_note(state, action.id, lambda n: replace(n, position=action.position))
    return (new_state, "") if new_state else None


def _change_color(state: BoardState, action: ChangeNoteColor) -> Outcome:
    note = state.find_note(action.id)
    if note is None:
        return None
    new_state = _map_note(state, action.id, lambda n: replace(n, color=action.color))
    return new_state, f"Changed color of note: {note.title}"


def _change_text_size(state: BoardState, action: ChangeTextSize) -> Outcome:
    size = _clamp(action.size, TEXT_SIZE_RANGE)
    new_state = _update_note(state, action.id, lambda n: replace(n, text_size=size))
    return (new_state, "") if new_state else None


def _change_spacing(state: BoardState, action: ChangeTaskSpacing) -> Outcome:
    spacing = _clamp(action.spacing, TASK_SPACING_RANGE)
    new_state = _update_note(state, action.id, lambda n: replace(n, task_spacing=spacing))
    return (new_state, "") if new_state else None


# --- Task actions ---


def _add_task(state: BoardState, action: AddTask) -> Outcome:
    text = action.text.strip()
    note = state.find_note(action.note_id)
    if not text or note is None:
        return None
    task = Task(id=new_id(), text=text)
    new_state = _map_note(state, note.id, lambda n: replace(n, tasks=(*n.tasks, task)))
    return new_state, f"Added task to {note.title}: {excerpt(text)}"


def _update_task_text(state: BoardState, action: UpdateTask) -> Outcome:
    text = action.text.strip()
    found = _update_task(state, action.note_id, action.task_id, lambda t: replace(t, text=text))
    if found is None:
        return None
    new_state, note, _task = found
    return new_state, f"Updated task in {note.title}: {excerpt(text)}"


def _set_priority(state: BoardState, action: SetTaskPriority) -> Outcome:
    found = _update_task(
        state, action.note_id, action.task_id, lambda t: replace(t, priority=action.priority)
    )
    if found is None:
        return None
    new_state, note, task = found
    return (
        new_state,
        f"Set priority {action.priority.value} for task in {note.title}: {excerpt(task.text)}",
    )


def _delete_task(state: BoardState, action: DeleteTask) -> Outcome:
    note = state.find_note(action.note_id)
    if note is None:
        return None
    index = _task_index(note, action.task_id)
    if index < 0:
        return None
    indices = block_indices(note.tasks, index) if action.has_subtasks else [index]
    removed, rest = split_block(note.tasks, indices)
    new_state = _map_note(state, note.id, lambda n: replace(n, tasks=tuple(rest)))
    return new_state, f"Deleted task from {note.title}: {excerpt(removed[0].text)}"


def _indent_task(state: BoardState, action: IndentTask) -> Outcome:
    note = state.find_note(action.note_id)
    if note is None:
        return None
    index = _task_index(note, action.task_id)
    if index < 0:
        return None
    delta = 1 if action.direction is IndentDirection.RIGHT else -1
    tasks = shift_block(note.tasks, index, delta)
    if tasks == note.tasks:
        return None
    return _map_note(state, note.id, lambda n: replace(n, tasks=tasks)), ""


def _reorder_task(state: BoardState, action: ReorderTask) -> Outcome:
    note = state.find_note(action.note_id)
    if note is None:
        return None
    source, target = action.source_index, action.target_index
    if not (0 <= source < len(note.tasks) and 0 <= target <= len(note.tasks)):
        return None

    if action.has_subtasks:
        indices = block_indices(note.tasks, source, action.subtask_indices)
    else:
        indices = [source]
    block, rest = split_block(note.tasks, indices)

    insert_at = target
    if len(block) > 1 and target > source:
        insert_at = target - len(block)
    insert_at = min(max(0, insert_at), len(rest))

    tasks = (*rest[:insert_at], *block, *rest[insert_at:])
    if tasks == note.tasks:
        return None
    return _map_note(state, note.id, lambda n: replace(n, tasks=tasks)), ""


def _move_task(state: BoardState, action: MoveTask) -> Outcome:
    if action.source_note_id == action.target_note_id:
        return None
    source = state.find_note(action.source_note_id)
    target = state.find_note(action.target_note_id)
    if source is None or target is None:
        return None
    index = _task_index(source, action.task_id)
    if index < 0:
        return None

    if action.has_subtasks:
        indices = block_indices(source.tasks, index, action.subtask_indices)
    else:
        indices = [index]
    block, rest = split_block(source.tasks, indices)

    def move(note: Note) -> Note:
        if note.id == source.id:
            return replace(note, tasks=tuple(rest))
        if note.id == target.id:
            return replace(note, tasks=(*note.tasks, *block))
        return note

    plural = "s" if len(block) > 1 else ""
    moved = source.tasks[index]
    return (
        replace(state, notes=tuple(move(n) for n in state.notes)),
        f'Moved task{plural} from "{source.title}" to "{target.title}": {excerpt(moved.text)}',
    )


# --- Dispatch ---


def _mutate(state: BoardState, action: Action, now: int) -> Outcome:
    match action:
        case AddNote():
            return _add_note(state, action)
        case UpdateNote():
            return _update_note_title(state, action)
        case DeleteNote():
            return _delete_note(state, action)
        case MoveNote():
            return _move_note(state, action)
        case ChangeNoteColor():
            return _change_color(state, action)
        case ChangeTextSize():
            return _change_text_size(state, action)
        case ChangeTaskSpacing():
            return _change_spacing(state, action)
        case AddTask():
            return _add_task(state, action)
        case UpdateTask():
            return _update_task_text(state, action)
        case DeleteTask():
            return _delete_task(state, action)
        case ToggleTask():
            return complete_task(state, action.note_id, action.task_id, now=now)
        case SetTaskPriority():
            return _set_priority(state, action)
        case IndentTask():
            return _indent_task(state, action)
        case ReorderTask():
            return _reorder_task(state, action)
        case MoveTask():
            return _move_task(state, action)
        case SetDraggedTask():
            dragged = DraggedTask(action.task_id, action.note_id, action.is_dragging)
            return replace(state, dragged_task=dragged), ""
        case DeleteArchivedTask():
            return delete_archived_task(state, action.task_id)
        case RestoreArchivedTask():
            return restore_archived_task(state, action.task_id)
        case SetSearch():
            search = SearchState(
                term=action.term, is_active=True, scope=action.scope, note_id=action.note_id
            )
            return replace(state, search=search), ""
        case ClearSearch():
            return replace(state, search=SearchState()), ""
        case Undo() | SaveVersion() | RestoreVersion() | SyncBoard() | LoadBoard():
            # Handled by apply before any mutation.
            return None
        case _:
            assert_never(action)


def _record(
    previous: BoardState,
    new_state: BoardState,
    action: Action,
    description: str,
    now: int,
) -> BoardState:
    policy = policy_for(action.type)
    if not (policy.snapshot or policy.undoable):
        return new_state

    timestamp = next_timestamp(previous, now)
    undo_log = previous.undo_log
    if policy.undoable:
        undo_log = record_action(undo_log, action.type, action.payload(), timestamp)
    history = previous.version_history
    if policy.snapshot:
        history = append_snapshot(history, build_snapshot(new_state, description, timestamp))
    return replace(new_state, undo_log=undo_log, version_history=history)


def apply(
    state: BoardState,
    action: Action | Mapping[str, Any] | Any,
    *,
    now: int | None = None,
) -> BoardState:
    """Apply one action to the board and return the resulting board.

    Args:
        state: Current board.
        action: A typed action, or a raw ``{"type", "payload"}`` mapping.
        now: Clock override in epoch milliseconds (defaults to wall time).

    Returns:
        The new board, or ``state`` itself when nothing changed.
    """
    if isinstance(action, Mapping):
        action = parse_action(action)
        if action is None:
            return state
    elif not isinstance(action, _ACTION_TYPES):
        return state
    if now is None:
        now = now_ms()

    match action:
        case Undo():
            return undo(state, now=now)
        case SaveVersion():
            return save_version(state, action.description, now=now)
        case RestoreVersion():
            return restore_version(state, action.version, now=now)
        case SyncBoard():
            return replace(state, is_synced=True, last_sync_time=now)
        case LoadBoard():
            return replace(action.board, last_sync_time=now)

    outcome = _mutate(state, action, now)
    if outcome is None:
        return state
    new_state, description = outcome
    return _record(state, new_state, action, description, now)
