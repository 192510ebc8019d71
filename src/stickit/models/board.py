"""Domain models for the sticky-note board."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from stickit.config import DEFAULT_TASK_SPACING, DEFAULT_TEXT_SIZE
from stickit.ids import new_board_id


class NoteColor(str, Enum):
    """Colors a note can take."""

    YELLOW = "yellow"
    BLUE = "blue"
    GREEN = "green"
    PINK = "pink"
    PURPLE = "purple"
    ORANGE = "orange"
    RED = "red"
    TEAL = "teal"
    INDIGO = "indigo"
    LIME = "lime"
    AMBER = "amber"
    CYAN = "cyan"
    ROSE = "rose"
    SKY = "sky"
    EMERALD = "emerald"
    FUCHSIA = "fuchsia"
    VIOLET = "violet"
    GRAY = "gray"


class Priority(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SearchScope(str, Enum):
    GLOBAL = "global"
    NOTE = "note"
    ARCHIVE = "archive"


class IndentDirection(str, Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class Position:
    """Location of a note on the board. Any range is allowed."""

    x: float
    y: float


@dataclass(frozen=True)
class Task:
    """A single line in a note.

    Hierarchy is positional: the tasks directly following this one with a
    strictly greater indentation are its descendants.
    """

    id: str
    text: str
    completed: bool = False
    indentation: int = 0
    priority: Priority = Priority.NONE


@dataclass(frozen=True)
class Note:
    """A sticky note owning an ordered list of tasks."""

    id: str
    title: str
    color: NoteColor
    position: Position
    tasks: tuple[Task, ...] = ()
    text_size: int = DEFAULT_TEXT_SIZE
    task_spacing: int = DEFAULT_TASK_SPACING


@dataclass(frozen=True)
class ArchivedTask:
    """A completed task, severed from its note.

    The origin note's title is copied so it survives deletion of the note.
    """

    id: str
    text: str
    origin_note_id: str
    origin_note_title: str
    completed_at: int


@dataclass(frozen=True)
class SearchState:
    term: str = ""
    is_active: bool = False
    scope: SearchScope = SearchScope.GLOBAL
    note_id: str | None = None


@dataclass(frozen=True)
class DraggedTask:
    task_id: str | None = None
    note_id: str | None = None
    is_dragging: bool = False


@dataclass(frozen=True)
class Snapshot:
    """A point-in-time copy of the board, keyed by timestamp.

    ``data`` never carries history of its own (empty version history and
    undo log).
    """

    timestamp: int
    description: str
    data: "BoardState"


@dataclass(frozen=True)
class UndoEntry:
    action_type: str
    action_payload: dict[str, Any]
    timestamp: int


@dataclass(frozen=True)
class BoardState:
    """The root document: everything persisted for one board."""

    board_id: str
    user_id: str | None = None
    notes: tuple[Note, ...] = ()
    archived_tasks: tuple[ArchivedTask, ...] = ()
    dragged_task: DraggedTask = field(default_factory=DraggedTask)
    search: SearchState = field(default_factory=SearchState)
    version_history: tuple[Snapshot, ...] = ()
    undo_log: tuple[UndoEntry, ...] = ()
    is_synced: bool = False
    last_sync_time: int = 0

    def find_note(self, note_id: str) -> Note | None:
        return next((n for n in self.notes if n.id == note_id), None)

    def find_archived(self, archived_id: str) -> ArchivedTask | None:
        return next((t for t in self.archived_tasks if t.id == archived_id), None)


@dataclass(frozen=True)
class AuthState:
    """What the authentication subsystem tells us about the current user."""

    user_id: str | None = None
    is_authenticated: bool = False


def empty_board(board_id: str | None = None) -> BoardState:
    """Return a freshly initialized board with no notes."""
    return BoardState(board_id=board_id or new_board_id())
