"""Encode and decode board documents in their persisted JSON shape.

The local cache and the remote store hold the identical document. Keys are
camelCase and every document carries ``schemaVersion``; older documents are
upgraded by :func:`migrate_document` before decoding.
"""

import json
import math
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from loguru import logger

from stickit.config import (
    DEFAULT_NOTE_POSITION,
    DEFAULT_TASK_SPACING,
    DEFAULT_TEXT_SIZE,
    MAX_INDENT,
)
from stickit.ids import new_board_id
from stickit.models.board import (
    ArchivedTask,
    BoardState,
    DraggedTask,
    Note,
    NoteColor,
    Position,
    Priority,
    SearchScope,
    SearchState,
    Snapshot,
    Task,
    UndoEntry,
    empty_board,
)

SCHEMA_VERSION = 1


class BoardFormatError(ValueError):
    """Raised when a persisted document cannot be decoded as a board."""


# --- Encoding ---


def _task_to_dict(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "text": task.text,
        "completed": task.completed,
        "indentation": task.indentation,
        "priority": task.priority.value,
    }


def _note_to_dict(note: Note) -> dict[str, Any]:
    return {
        "id": note.id,
        "title": note.title,
        "color": note.color.value,
        "tasks": [_task_to_dict(t) for t in note.tasks],
        "position": {"x": note.position.x, "y": note.position.y},
        "textSize": note.text_size,
        "taskSpacing": note.task_spacing,
    }


def _content_to_dict(board: BoardState) -> dict[str, Any]:
    return {
        "boardId": board.board_id,
        "userId": board.user_id,
        "notes": [_note_to_dict(n) for n in board.notes],
        "archivedTasks": [
            {
                "id": a.id,
                "text": a.text,
                "noteId": a.origin_note_id,
                "noteTitle": a.origin_note_title,
                "completedAt": a.completed_at,
            }
            for a in board.archived_tasks
        ],
        "draggedTask": {
            "taskId": board.dragged_task.task_id,
            "noteId": board.dragged_task.note_id,
            "isDragging": board.dragged_task.is_dragging,
        },
        "search": {
            "term": board.search.term,
            "isActive": board.search.is_active,
            "scope": board.search.scope.value,
            "noteId": board.search.note_id,
        },
        "isSynced": board.is_synced,
        "lastSyncTime": board.last_sync_time,
    }


def board_to_dict(board: BoardState) -> dict[str, Any]:
    """Serialize a board, history included, to its persisted shape."""
    data = _content_to_dict(board)
    data["versionHistory"] = [
        {
            "timestamp": s.timestamp,
            "description": s.description,
            "data": _content_to_dict(s.data),
        }
        for s in board.version_history
    ]
    data["undoLog"] = [
        {"actionType": u.action_type, "actionPayload": u.action_payload, "timestamp": u.timestamp}
        for u in board.undo_log
    ]
    data["schemaVersion"] = SCHEMA_VERSION
    return data


def board_to_json(board: BoardState) -> str:
    return json.dumps(board_to_dict(board), sort_keys=True)


# --- Decoding ---


def _finite(value: Any) -> float | None:
    """Return ``value`` as a float, or None for non-numbers, NaN, inf and huge ints."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _num(value: Any, default: float) -> float:
    number = _finite(value)
    return default if number is None else number


def _int(value: Any, default: int) -> int:
    if _finite(value) is None:
        return default
    return int(value)


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _opt_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list) else []


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        msg = f"{what} is not an object: {type(value).__name__}"
        raise BoardFormatError(msg)
    return value


def _task_from_dict(raw: Any) -> Task:
    raw = _mapping(raw, "task")
    try:
        priority = Priority(raw.get("priority"))
    except ValueError:
        priority = Priority.NONE
    return Task(
        id=_str(raw.get("id")),
        text=_str(raw.get("text")),
        completed=raw.get("completed") is True,
        indentation=min(max(0, _int(raw.get("indentation"), 0)), MAX_INDENT),
        priority=priority,
    )


def _note_from_dict(raw: Any) -> Note:
    raw = _mapping(raw, "note")
    try:
        color = NoteColor(raw.get("color"))
    except ValueError:
        color = NoteColor.YELLOW
    pos = raw.get("position") if isinstance(raw.get("position"), Mapping) else {}
    return Note(
        id=_str(raw.get("id")),
        title=_str(raw.get("title")),
        color=color,
        position=Position(
            _num(pos.get("x"), DEFAULT_NOTE_POSITION[0]),
            _num(pos.get("y"), DEFAULT_NOTE_POSITION[1]),
        ),
        tasks=tuple(_task_from_dict(t) for t in _list(raw.get("tasks"))),
        text_size=_int(raw.get("textSize"), DEFAULT_TEXT_SIZE),
        task_spacing=_int(raw.get("taskSpacing"), DEFAULT_TASK_SPACING),
    )


def _archived_from_dict(raw: Any) -> ArchivedTask:
    raw = _mapping(raw, "archived task")
    return ArchivedTask(
        id=_str(raw.get("id")),
        text=_str(raw.get("text")),
        origin_note_id=_str(raw.get("noteId")),
        origin_note_title=_str(raw.get("noteTitle")),
        completed_at=_int(raw.get("completedAt"), 0),
    )


def _content_from_dict(data: Mapping[str, Any], *, board_id: str | None = None) -> BoardState:
    if not isinstance(data.get("notes"), list):
        msg = "document has no 'notes' list"
        raise BoardFormatError(msg)

    dragged = data.get("draggedTask") if isinstance(data.get("draggedTask"), Mapping) else {}
    search = data.get("search") if isinstance(data.get("search"), Mapping) else {}
    try:
        scope = SearchScope(search.get("scope"))
    except ValueError:
        scope = SearchScope.GLOBAL

    return BoardState(
        board_id=_str(data.get("boardId")) or board_id or new_board_id(),
        user_id=_opt_str(data.get("userId")),
        notes=tuple(_note_from_dict(n) for n in data["notes"]),
        archived_tasks=tuple(_archived_from_dict(a) for a in _list(data.get("archivedTasks"))),
        dragged_task=DraggedTask(
            task_id=_opt_str(dragged.get("taskId")),
            note_id=_opt_str(dragged.get("noteId")),
            is_dragging=dragged.get("isDragging") is True,
        ),
        search=SearchState(
            term=_str(search.get("term")),
            is_active=search.get("isActive") is True,
            scope=scope,
            note_id=_opt_str(search.get("noteId")),
        ),
        is_synced=data.get("isSynced") is True,
        last_sync_time=_int(data.get("lastSyncTime"), 0),
    )


def migrate_document(data: Mapping[str, Any]) -> dict[str, Any]:
    """Upgrade a persisted document to SCHEMA_VERSION.

    Version 0 is the untagged shape: the undo log lived under ``undoStack``
    with ``type``/``payload`` keys. Task ``dueDate``/``recurrence`` and note
    ``attachments`` have no counterpart on the board and are dropped when
    decoding.
    """
    migrated = dict(data)
    version = migrated.get("schemaVersion", 0)
    if not isinstance(version, int) or isinstance(version, bool):
        msg = f"bad schemaVersion: {version!r}"
        raise BoardFormatError(msg)
    if version > SCHEMA_VERSION:
        msg = f"document schemaVersion {version} is newer than supported {SCHEMA_VERSION}"
        raise BoardFormatError(msg)

    if version < 1:
        if "undoLog" not in migrated:
            migrated["undoLog"] = [
                {
                    "actionType": entry.get("type"),
                    "actionPayload": entry.get("payload"),
                    "timestamp": entry.get("timestamp"),
                }
                for entry in _list(migrated.pop("undoStack", None))
                if isinstance(entry, Mapping)
            ]
        migrated.setdefault("archivedTasks", [])
        migrated.setdefault("versionHistory", [])
        migrated["schemaVersion"] = 1

    return migrated


def board_from_dict(data: Any) -> BoardState:
    """Decode a persisted document. Raises BoardFormatError if it is not a board."""
    data = migrate_document(_mapping(data, "document"))
    board = _content_from_dict(data)

    # A broken snapshot costs only that version, not the board.
    history: list[Snapshot] = []
    for raw in _list(data.get("versionHistory")):
        try:
            raw = _mapping(raw, "snapshot")
            snap_data = _content_from_dict(
                _mapping(raw.get("data"), "snapshot data"), board_id=board.board_id
            )
        except BoardFormatError:
            continue
        history.append(
            Snapshot(
                timestamp=_int(raw.get("timestamp"), 0),
                description=_str(raw.get("description")),
                data=snap_data,
            )
        )

    undo_log: list[UndoEntry] = []
    for raw in _list(data.get("undoLog")):
        raw = _mapping(raw, "undo entry")
        payload = raw.get("actionPayload")
        undo_log.append(
            UndoEntry(
                action_type=_str(raw.get("actionType")),
                action_payload=dict(payload) if isinstance(payload, Mapping) else {},
                timestamp=_int(raw.get("timestamp"), 0),
            )
        )

    return replace(board, version_history=tuple(history), undo_log=tuple(undo_log))


def load_board_json(text: str | None) -> BoardState:
    """Decode a cached document, falling back to an empty board on corruption.

    Corruption is logged, never raised.
    """
    if text is None:
        return empty_board()
    try:
        return board_from_dict(json.loads(text))
    except ValueError as e:
        logger.error("Stored board document is corrupted, starting fresh: {}", e)
        return empty_board()
