"""Board actions: one frozen dataclass per action type.

Callers may build these directly or hand a raw ``{"type": ..., "payload": {...}}``
mapping to :func:`parse_action`, which coerces loosely-typed payloads field by
field and substitutes defaults for anything missing or of the wrong type.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, ClassVar, TypeVar

from stickit.config import DEFAULT_NOTE_POSITION
from stickit.core.codec import BoardFormatError, board_from_dict, board_to_dict
from stickit.models.board import (
    BoardState,
    IndentDirection,
    NoteColor,
    Position,
    Priority,
    SearchScope,
)

ADD_NOTE = "ADD_NOTE"
UPDATE_NOTE = "UPDATE_NOTE"
DELETE_NOTE = "DELETE_NOTE"
MOVE_NOTE = "MOVE_NOTE"
CHANGE_NOTE_COLOR = "CHANGE_NOTE_COLOR"
CHANGE_TEXT_SIZE = "CHANGE_TEXT_SIZE"
CHANGE_TASK_SPACING = "CHANGE_TASK_SPACING"
ADD_TASK = "ADD_TASK"
UPDATE_TASK = "UPDATE_TASK"
DELETE_TASK = "DELETE_TASK"
TOGGLE_TASK = "TOGGLE_TASK"
SET_TASK_PRIORITY = "SET_TASK_PRIORITY"
INDENT_TASK = "INDENT_TASK"
REORDER_TASK = "REORDER_TASK"
MOVE_TASK = "MOVE_TASK"
SET_DRAGGED_TASK = "SET_DRAGGED_TASK"
DELETE_ARCHIVED_TASK = "DELETE_ARCHIVED_TASK"
RESTORE_ARCHIVED_TASK = "RESTORE_ARCHIVED_TASK"
SET_SEARCH = "SET_SEARCH"
CLEAR_SEARCH = "CLEAR_SEARCH"
SAVE_VERSION = "SAVE_VERSION"
RESTORE_VERSION = "RESTORE_VERSION"
UNDO = "UNDO"
SYNC_BOARD = "SYNC_BOARD"
LOAD_BOARD = "LOAD_BOARD"


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _payload_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Position):
        return {"x": value.x, "y": value.y}
    if isinstance(value, BoardState):
        return board_to_dict(value)
    if isinstance(value, tuple):
        return [_payload_value(v) for v in value]
    return value


class _BaseAction:
    type: ClassVar[str]

    def payload(self) -> dict[str, Any]:
        """Return the action payload as the camelCase mapping used on the wire."""
        return {
            _camel(f.name): _payload_value(getattr(self, f.name))
            for f in fields(self)  # type: ignore[arg-type]
        }

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "payload": self.payload()}


@dataclass(frozen=True)
class AddNote(_BaseAction):
    type: ClassVar[str] = ADD_NOTE
    color: NoteColor = NoteColor.YELLOW
    position: Position = Position(*DEFAULT_NOTE_POSITION)
    title: str = ""


@dataclass(frozen=True)
class UpdateNote(_BaseAction):
    type: ClassVar[str] = UPDATE_NOTE
    id: str
    title: str


@dataclass(frozen=True)
class DeleteNote(_BaseAction):
    type: ClassVar[str] = DELETE_NOTE
    id: str


@dataclass(frozen=True)
class MoveNote(_BaseAction):
    type: ClassVar[str] = MOVE_NOTE
    id: str
    position: Position


@dataclass(frozen=True)
class ChangeNoteColor(_BaseAction):
    type: ClassVar[str] = CHANGE_NOTE_COLOR
    id: str
    color: NoteColor


@dataclass(frozen=True)
class ChangeTextSize(_BaseAction):
    type: ClassVar[str] = CHANGE_TEXT_SIZE
    id: str
    size: int


@dataclass(frozen=True)
class ChangeTaskSpacing(_BaseAction):
    type: ClassVar[str] = CHANGE_TASK_SPACING
    id: str
    spacing: int


@dataclass(frozen=True)
class AddTask(_BaseAction):
    type: ClassVar[str] = ADD_TASK
    note_id: str
    text: str


@dataclass(frozen=True)
class UpdateTask(_BaseAction):
    type: ClassVar[str] = UPDATE_TASK
    note_id: str
    task_id: str
    text: str


@dataclass(frozen=True)
class DeleteTask(_BaseAction):
    type: ClassVar[str] = DELETE_TASK
    note_id: str
    task_id: str
    has_subtasks: bool = False


@dataclass(frozen=True)
class ToggleTask(_BaseAction):
    type: ClassVar[str] = TOGGLE_TASK
    note_id: str
    task_id: str


@dataclass(frozen=True)
class SetTaskPriority(_BaseAction):
    type: ClassVar[str] = SET_TASK_PRIORITY
    note_id: str
    task_id: str
    priority: Priority


@dataclass(frozen=True)
class IndentTask(_BaseAction):
    type: ClassVar[str] = INDENT_TASK
    note_id: str
    task_id: str
    direction: IndentDirection


@dataclass(frozen=True)
class ReorderTask(_BaseAction):
    type: ClassVar[str] = REORDER_TASK
    note_id: str
    source_index: int
    target_index: int
    has_subtasks: bool = False
    subtask_indices: tuple[int, ...] | None = None


@dataclass(frozen=True)
class MoveTask(_BaseAction):
    type: ClassVar[str] = MOVE_TASK
    source_note_id: str
    target_note_id: str
    task_id: str
    has_subtasks: bool = False
    subtask_indices: tuple[int, ...] | None = None


@dataclass(frozen=True)
class SetDraggedTask(_BaseAction):
    type: ClassVar[str] = SET_DRAGGED_TASK
    task_id: str | None = None
    note_id: str | None = None
    is_dragging: bool = False


@dataclass(frozen=True)
class DeleteArchivedTask(_BaseAction):
    type: ClassVar[str] = DELETE_ARCHIVED_TASK
    task_id: str


@dataclass(frozen=True)
class RestoreArchivedTask(_BaseAction):
    type: ClassVar[str] = RESTORE_ARCHIVED_TASK
    task_id: str


@dataclass(frozen=True)
class SetSearch(_BaseAction):
    type: ClassVar[str] = SET_SEARCH
    term: str
    scope: SearchScope = SearchScope.GLOBAL
    note_id: str | None = None


@dataclass(frozen=True)
class ClearSearch(_BaseAction):
    type: ClassVar[str] = CLEAR_SEARCH


@dataclass(frozen=True)
class SaveVersion(_BaseAction):
    type: ClassVar[str] = SAVE_VERSION
    description: str = "Manual save"


@dataclass(frozen=True)
class RestoreVersion(_BaseAction):
    type: ClassVar[str] = RESTORE_VERSION
    version: int


@dataclass(frozen=True)
class Undo(_BaseAction):
    type: ClassVar[str] = UNDO


@dataclass(frozen=True)
class SyncBoard(_BaseAction):
    type: ClassVar[str] = SYNC_BOARD


@dataclass(frozen=True)
class LoadBoard(_BaseAction):
    type: ClassVar[str] = LOAD_BOARD
    board: BoardState

    def payload(self) -> dict[str, Any]:
        return board_to_dict(self.board)


Action = (
    AddNote
    | UpdateNote
    | DeleteNote
    | MoveNote
    | ChangeNoteColor
    | ChangeTextSize
    | ChangeTaskSpacing
    | AddTask
    | UpdateTask
    | DeleteTask
    | ToggleTask
    | SetTaskPriority
    | IndentTask
    | ReorderTask
    | MoveTask
    | SetDraggedTask
    | DeleteArchivedTask
    | RestoreArchivedTask
    | SetSearch
    | ClearSearch
    | SaveVersion
    | RestoreVersion
    | Undo
    | SyncBoard
    | LoadBoard
)

ACTION_CLASSES: dict[str, type[_BaseAction]] = {
    cls.type: cls
    for cls in (
        AddNote, UpdateNote, DeleteNote, MoveNote, ChangeNoteColor, ChangeTextSize,
        ChangeTaskSpacing, AddTask, UpdateTask, DeleteTask, ToggleTask, SetTaskPriority,
        IndentTask, ReorderTask, MoveTask, SetDraggedTask, DeleteArchivedTask,
        RestoreArchivedTask, SetSearch, ClearSearch, SaveVersion, RestoreVersion, Undo,
        SyncBoard, LoadBoard,
    )
}


# --- Payload coercion ---

E = TypeVar("E", bound=Enum)


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _opt_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _bool(value: Any) -> bool:
    return value if isinstance(value, bool) else False


def _int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def _enum(enum_cls: type[E], value: Any, default: E) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _coordinate(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _position(value: Any) -> Position:
    if isinstance(value, Mapping):
        x, y = _coordinate(value.get("x")), _coordinate(value.get("y"))
        if x is not None and y is not None:
            return Position(x, y)
    return Position(*DEFAULT_NOTE_POSITION)


def _indices(value: Any) -> tuple[int, ...] | None:
    if not isinstance(value, list | tuple):
        return None
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in value):
        return None
    return tuple(value)


def parse_action(raw: Any) -> Action | None:
    """Turn a raw ``{"type", "payload"}`` mapping into a typed action.

    Returns None when the type is not recognized (or LOAD_BOARD carries
    something that is not a board document).
    """
    if not isinstance(raw, Mapping):
        return None
    action_type = raw.get("type")
    p = raw.get("payload")
    if not isinstance(p, Mapping):
        p = {}

    match action_type:
        case "ADD_NOTE":
            return AddNote(
                color=_enum(NoteColor, p.get("color"), NoteColor.YELLOW),
                position=_position(p.get("position")),
                title=_str(p.get("title")),
            )
        case "UPDATE_NOTE":
            return UpdateNote(id=_str(p.get("id")), title=_str(p.get("title")))
        case "DELETE_NOTE":
            return DeleteNote(id=_str(p.get("id")))
        case "MOVE_NOTE":
            return MoveNote(id=_str(p.get("id")), position=_position(p.get("position")))
        case "CHANGE_NOTE_COLOR":
            return ChangeNoteColor(
                id=_str(p.get("id")),
                color=_enum(NoteColor, p.get("color"), NoteColor.YELLOW),
            )
        case "CHANGE_TEXT_SIZE":
            return ChangeTextSize(id=_str(p.get("id")), size=_int(p.get("size")))
        case "CHANGE_TASK_SPACING":
            return ChangeTaskSpacing(id=_str(p.get("id")), spacing=_int(p.get("spacing")))
        case "ADD_TASK":
            return AddTask(note_id=_str(p.get("noteId")), text=_str(p.get("text")))
        case "UPDATE_TASK":
            return UpdateTask(
                note_id=_str(p.get("noteId")),
                task_id=_str(p.get("taskId")),
                text=_str(p.get("text")),
            )
        case "DELETE_TASK":
            return DeleteTask(
                note_id=_str(p.get("noteId")),
                task_id=_str(p.get("taskId")),
                has_subtasks=_bool(p.get("hasSubtasks")),
            )
        case "TOGGLE_TASK":
            return ToggleTask(note_id=_str(p.get("noteId")), task_id=_str(p.get("taskId")))
        case "SET_TASK_PRIORITY":
            return SetTaskPriority(
                note_id=_str(p.get("noteId")),
                task_id=_str(p.get("taskId")),
                priority=_enum(Priority, p.get("priority"), Priority.NONE),
            )
        case "INDENT_TASK":
            return IndentTask(
                note_id=_str(p.get("noteId")),
                task_id=_str(p.get("taskId")),
                direction=_enum(IndentDirection, p.get("direction"), IndentDirection.LEFT),
            )
        case "REORDER_TASK":
            return ReorderTask(
                note_id=_str(p.get("noteId")),
                source_index=_int(p.get("sourceIndex"), -1),
                target_index=_int(p.get("targetIndex"), -1),
                has_subtasks=_bool(p.get("hasSubtasks")),
                subtask_indices=_indices(p.get("subtaskIndices")),
            )
        case "MOVE_TASK":
            return MoveTask(
                source_note_id=_str(p.get("sourceNoteId")),
                target_note_id=_str(p.get("targetNoteId")),
                task_id=_str(p.get("taskId")),
                has_subtasks=_bool(p.get("hasSubtasks")),
                subtask_indices=_indices(p.get("subtaskIndices")),
            )
        case "SET_DRAGGED_TASK":
            return SetDraggedTask(
                task_id=_opt_str(p.get("taskId")),
                note_id=_opt_str(p.get("noteId")),
                is_dragging=_bool(p.get("isDragging")),
            )
        case "DELETE_ARCHIVED_TASK":
            return DeleteArchivedTask(task_id=_str(p.get("taskId")))
        case "RESTORE_ARCHIVED_TASK":
            return RestoreArchivedTask(task_id=_str(p.get("taskId")))
        case "SET_SEARCH":
            return SetSearch(
                term=_str(p.get("term")),
                scope=_enum(SearchScope, p.get("scope"), SearchScope.GLOBAL),
                note_id=_opt_str(p.get("noteId")),
            )
        case "CLEAR_SEARCH":
            return ClearSearch()
        case "SAVE_VERSION":
            return SaveVersion(description=_str(p.get("description")) or "Manual save")
        case "RESTORE_VERSION":
            return RestoreVersion(version=_int(p.get("version"), -1))
        case "UNDO":
            return Undo()
        case "SYNC_BOARD":
            return SyncBoard()
        case "LOAD_BOARD":
            try:
                return LoadBoard(board=board_from_dict(p))
            except BoardFormatError:
                return None
        case _:
            return None
