"""Tests for the board reducer."""

from dataclasses import replace

import pytest

from stickit.config import MAX_UNDO_LOG, MAX_VERSION_HISTORY
from stickit.core.reducer import apply
from stickit.models.actions import (
    ACTION_CLASSES,
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
    SetDraggedTask,
    SetSearch,
    SetTaskPriority,
    SyncBoard,
    ToggleTask,
    UpdateNote,
    UpdateTask,
)
from stickit.models.board import (
    BoardState,
    IndentDirection,
    NoteColor,
    Position,
    Priority,
    SearchScope,
    empty_board,
)


def _ids(state: BoardState, note_id: str) -> list[str]:
    note = state.find_note(note_id)
    assert note is not None
    return [t.id for t in note.tasks]


def _indents(state: BoardState, note_id: str) -> list[int]:
    note = state.find_note(note_id)
    assert note is not None
    return [t.indentation for t in note.tasks]


# --- Scenarios ---


def test_add_note_to_empty_board_records_one_version() -> None:
    state = apply(
        empty_board("b"),
        AddNote(color=NoteColor.YELLOW, position=Position(100, 100)),
        now=1000,
    )
    assert len(state.notes) == 1
    assert len(state.version_history) == 1
    assert len(state.undo_log) == 1
    assert state.notes[0].title == "New Note"
    assert state.version_history[0].description == "Added new note: New Note"


def test_toggle_task_archives_it(single_task_board: BoardState) -> None:
    state = apply(single_task_board, ToggleTask(note_id="n1", task_id="t1"), now=5000)
    assert state.notes[0].tasks == ()
    assert len(state.archived_tasks) == 1
    archived = state.archived_tasks[0]
    assert archived.text == "Buy milk"
    assert archived.origin_note_id == "n1"
    assert archived.origin_note_title == "Groceries"
    assert archived.completed_at == 5000
    assert archived.id != "t1"


def test_add_task_with_blank_text_is_a_noop() -> None:
    state = apply(empty_board("b"), AddNote(), now=1)
    note_id = state.notes[0].id
    after = apply(state, AddTask(note_id=note_id, text="   "), now=2)
    assert after is state
    assert after.notes[0].tasks == ()


def test_undo_log_keeps_the_newest_twenty(board: BoardState) -> None:
    state = board
    for i in range(MAX_UNDO_LOG + 1):
        state = apply(state, UpdateNote(id="work", title=f"title {i}"), now=1000 + i)
    assert len(state.undo_log) == MAX_UNDO_LOG
    titles = [e.action_payload["title"] for e in state.undo_log]
    assert titles[0] == f"title {MAX_UNDO_LOG}"
    assert "title 0" not in titles


def test_restore_archived_task_of_deleted_note_creates_restored_note(
    single_task_board: BoardState,
) -> None:
    state = apply(single_task_board, ToggleTask(note_id="n1", task_id="t1"), now=1)
    archived_id = state.archived_tasks[0].id
    state = apply(state, DeleteNote(id="n1"), now=2)
    assert state.notes == ()

    state = apply(state, RestoreArchivedTask(task_id=archived_id), now=3)
    assert len(state.notes) == 1
    restored = state.notes[0]
    assert restored.title == "Restored Tasks"
    assert restored.color is NoteColor.YELLOW
    assert restored.position == Position(200.0, 200.0)
    assert [t.text for t in restored.tasks] == ["Buy milk"]
    assert state.archived_tasks == ()


# --- Identity on no-ops ---


def test_unknown_raw_action_returns_same_state(board: BoardState) -> None:
    assert apply(board, {"type": "NOT_AN_ACTION", "payload": {}}) is board
    assert apply(board, {"payload": {}}) is board
    assert apply(board, object()) is board


def test_actions_on_missing_targets_return_same_state(board: BoardState) -> None:
    missing = [
        UpdateNote(id="nope", title="x"),
        DeleteNote(id="nope"),
        MoveNote(id="nope", position=Position(1, 1)),
        ChangeNoteColor(id="nope", color=NoteColor.RED),
        AddTask(note_id="nope", text="x"),
        UpdateTask(note_id="work", task_id="nope", text="x"),
        DeleteTask(note_id="work", task_id="nope"),
        ToggleTask(note_id="work", task_id="nope"),
        SetTaskPriority(note_id="nope", task_id="a", priority=Priority.HIGH),
        IndentTask(note_id="work", task_id="nope", direction=IndentDirection.RIGHT),
        ReorderTask(note_id="work", source_index=7, target_index=0),
        MoveTask(source_note_id="work", target_note_id="nope", task_id="a"),
        DeleteArchivedTask(task_id="nope"),
        RestoreArchivedTask(task_id="nope"),
    ]
    for action in missing:
        assert apply(board, action) is board, action


def test_raw_mapping_is_parsed(board: BoardState) -> None:
    state = apply(
        board, {"type": "ADD_TASK", "payload": {"noteId": "home", "text": "  Feed cat "}}
    )
    assert [t.text for t in state.find_note("home").tasks] == ["Water plants", "Feed cat"]


@pytest.mark.parametrize("action_type", sorted(ACTION_CLASSES))
def test_every_action_type_is_handled(board: BoardState, action_type: str) -> None:
    apply(board, {"type": action_type, "payload": {}})


# --- Notes ---


def test_add_note_with_title_and_color(board: BoardState) -> None:
    state = apply(board, AddNote(color=NoteColor.BLUE, position=Position(5, 6), title="Ideas"))
    note = state.notes[-1]
    assert (note.title, note.color, note.position) == ("Ideas", NoteColor.BLUE, Position(5, 6))
    assert note.tasks == ()
    assert note.id not in {"work", "home"}


def test_rename_to_blank_title_uses_untitled(board: BoardState) -> None:
    state = apply(board, UpdateNote(id="work", title="  "))
    assert state.find_note("work").title == "Untitled Note"
    assert state.version_history[-1].description == "Renamed note to: Untitled Note"


def test_move_note_is_not_recorded(board: BoardState) -> None:
    state = apply(board, MoveNote(id="work", position=Position(300, 40)))
    assert state.find_note("work").position == Position(300, 40)
    assert state.version_history == ()
    assert state.undo_log == ()


def test_oversized_coordinates_fall_back_to_default_position(board: BoardState) -> None:
    huge = 10**400
    state = apply(board, {"type": "ADD_NOTE", "payload": {"position": {"x": huge, "y": 0}}})
    assert state.notes[-1].position == Position(100, 100)

    state = apply(state, MoveNote(id="work", position=Position(300, 40)))
    moved = apply(
        state, {"type": "MOVE_NOTE", "payload": {"id": "work", "position": {"x": 5, "y": -huge}}}
    )
    assert moved.find_note("work").position == Position(100, 100)


def test_delete_note_removes_its_tasks(board: BoardState) -> None:
    state = apply(board, DeleteNote(id="work"))
    assert [n.id for n in state.notes] == ["home"]
    assert state.version_history[-1].description == "Deleted note: Work"


def test_text_size_and_spacing_are_clamped_and_undoable_without_snapshot(
    board: BoardState,
) -> None:
    state = apply(board, ChangeTextSize(id="work", size=99))
    state = apply(state, ChangeTaskSpacing(id="work", spacing=0))
    note = state.find_note("work")
    assert note.text_size == 20
    assert note.task_spacing == 2
    assert state.version_history == ()
    assert [e.action_type for e in state.undo_log] == ["CHANGE_TASK_SPACING", "CHANGE_TEXT_SIZE"]


# --- Tasks ---


def test_update_task_trims_text(board: BoardState) -> None:
    state = apply(board, UpdateTask(note_id="work", task_id="d", text="  Send fax  "))
    assert state.find_note("work").tasks[3].text == "Send fax"


def test_update_task_to_blank_text_is_stored(board: BoardState) -> None:
    state = apply(board, UpdateTask(note_id="work", task_id="d", text="   "))
    assert state.find_note("work").tasks[3].text == ""


def test_set_priority(board: BoardState) -> None:
    state = apply(board, SetTaskPriority(note_id="home", task_id="h", priority=Priority.HIGH))
    assert state.find_note("home").tasks[0].priority is Priority.HIGH
    assert state.version_history[-1].description.startswith("Set priority high")


def test_delete_task_alone_keeps_subtasks(board: BoardState) -> None:
    state = apply(board, DeleteTask(note_id="work", task_id="a"))
    assert _ids(state, "work") == ["b", "c", "d"]


def test_delete_task_with_subtasks(board: BoardState) -> None:
    state = apply(board, DeleteTask(note_id="work", task_id="a", has_subtasks=True))
    assert _ids(state, "work") == ["d"]


def test_indent_right_carries_subtasks(board: BoardState) -> None:
    state = apply(
        board, IndentTask(note_id="work", task_id="a", direction=IndentDirection.RIGHT)
    )
    assert _indents(state, "work") == [1, 2, 2, 0]
    assert state.version_history == ()
    assert state.undo_log[0].action_type == "INDENT_TASK"


def test_indent_left_at_zero_is_a_noop(board: BoardState) -> None:
    action = IndentTask(note_id="work", task_id="d", direction=IndentDirection.LEFT)
    assert apply(board, action) is board


def test_reorder_single_task(board: BoardState) -> None:
    state = apply(board, ReorderTask(note_id="work", source_index=3, target_index=0))
    assert _ids(state, "work") == ["d", "a", "b", "c"]


def test_reorder_block_downwards(board: BoardState) -> None:
    action = ReorderTask(note_id="work", source_index=0, target_index=4, has_subtasks=True)
    state = apply(board, action)
    assert _ids(state, "work") == ["d", "a", "b", "c"]
    assert _indents(state, "work") == [0, 0, 1, 1]


def test_reorder_uses_supplied_subtask_indices(board: BoardState) -> None:
    action = ReorderTask(
        note_id="work",
        source_index=0,
        target_index=4,
        has_subtasks=True,
        subtask_indices=(1,),
    )
    state = apply(board, action)
    assert _ids(state, "work") == ["c", "d", "a", "b"]


def test_reorder_to_same_place_is_a_noop(board: BoardState) -> None:
    assert apply(board, ReorderTask(note_id="work", source_index=1, target_index=1)) is board


def test_move_task_with_subtasks_to_other_note(board: BoardState) -> None:
    action = MoveTask(
        source_note_id="work", target_note_id="home", task_id="a", has_subtasks=True
    )
    state = apply(board, action)
    assert _ids(state, "work") == ["d"]
    assert _ids(state, "home") == ["h", "a", "b", "c"]
    assert state.version_history[-1].description == (
        'Moved tasks from "Work" to "Home": Write report'
    )


def test_move_task_within_same_note_is_a_noop(board: BoardState) -> None:
    action = MoveTask(source_note_id="work", target_note_id="work", task_id="a")
    assert apply(board, action) is board


# --- View state and sync ---


def test_search_and_drag_state_are_not_recorded(board: BoardState) -> None:
    state = apply(board, SetSearch(term="milk", scope=SearchScope.NOTE, note_id="home"))
    assert state.search.is_active
    assert state.search.scope is SearchScope.NOTE
    state = apply(state, SetDraggedTask(task_id="a", note_id="work", is_dragging=True))
    assert state.dragged_task.is_dragging
    state = apply(state, ClearSearch())
    assert not state.search.is_active
    assert state.search.term == ""
    assert state.version_history == ()
    assert state.undo_log == ()


def test_sync_board_marks_synced(board: BoardState) -> None:
    state = apply(board, SyncBoard(), now=4242)
    assert state.is_synced
    assert state.last_sync_time == 4242
    assert state.notes == board.notes


def test_load_board_replaces_state(board: BoardState) -> None:
    other = empty_board("other")
    state = apply(board, LoadBoard(board=other), now=77)
    assert state == replace(other, last_sync_time=77)


def test_load_board_with_invalid_payload_is_a_noop(board: BoardState) -> None:
    assert apply(board, {"type": "LOAD_BOARD", "payload": {"boardId": "x"}}) is board


# --- Invariants over sequences ---


def test_history_and_undo_stay_bounded(board: BoardState) -> None:
    state = board
    for i in range(MAX_VERSION_HISTORY + 15):
        state = apply(state, AddTask(note_id="home", text=f"task {i}"), now=10)
    assert len(state.version_history) == MAX_VERSION_HISTORY
    assert len(state.undo_log) == MAX_UNDO_LOG
    timestamps = [s.timestamp for s in state.version_history]
    assert timestamps == sorted(set(timestamps))


def test_no_task_is_lost_or_duplicated_across_moves(board: BoardState) -> None:
    actions = [
        MoveTask(source_note_id="work", target_note_id="home", task_id="a", has_subtasks=True),
        ReorderTask(note_id="home", source_index=0, target_index=4),
        MoveTask(source_note_id="home", target_note_id="work", task_id="b"),
        IndentTask(note_id="work", task_id="b", direction=IndentDirection.RIGHT),
        ReorderTask(note_id="work", source_index=1, target_index=0, has_subtasks=True),
    ]
    state = board
    for action in actions:
        state = apply(state, action)
    all_ids = [t.id for n in state.notes for t in n.tasks]
    assert sorted(all_ids) == ["a", "b", "c", "d", "h"]
