"""Tests for version snapshots, restore and undo."""

from dataclasses import replace

from stickit.core.history.snapshots import (
    append_snapshot,
    build_snapshot,
    next_timestamp,
    restore_version,
    save_version,
)
from stickit.core.history.undo import record_action, undo
from stickit.core.reducer import apply
from stickit.models.actions import (
    AddNote,
    AddTask,
    IndentTask,
    RestoreVersion,
    SaveVersion,
    SetSearch,
    Undo,
)
from stickit.models.board import BoardState, IndentDirection, empty_board


def test_next_timestamp_is_strictly_increasing(board: BoardState) -> None:
    state = save_version(board, "one", now=100)
    assert next_timestamp(state, 100) == 101
    assert next_timestamp(state, 500) == 500


def test_snapshot_data_has_no_history(board: BoardState) -> None:
    state = save_version(board, "one", now=100)
    snapshot = build_snapshot(state, "two", 200)
    assert snapshot.data.version_history == ()
    assert snapshot.data.undo_log == ()
    assert snapshot.data.notes == board.notes


def test_append_snapshot_drops_oldest(board: BoardState) -> None:
    history = ()
    for ts in range(5):
        history = append_snapshot(history, build_snapshot(board, str(ts), ts), limit=3)
    assert [s.description for s in history] == ["2", "3", "4"]


def test_save_version_through_reducer_is_not_undoable(board: BoardState) -> None:
    state = apply(board, SaveVersion(description="Before the big cleanup"), now=10)
    assert [s.description for s in state.version_history] == ["Before the big cleanup"]
    assert state.undo_log == ()


def test_restore_round_trip(board: BoardState) -> None:
    saved = apply(board, SaveVersion(), now=10)
    checkpoint = saved.version_history[-1].timestamp

    edited = apply(saved, AddTask(note_id="home", text="Fix sink"), now=20)
    edited = apply(edited, AddNote(title="Later"), now=30)
    assert edited.notes != board.notes

    restored = apply(edited, RestoreVersion(version=checkpoint), now=40)
    assert restored.notes == board.notes
    assert restored.archived_tasks == board.archived_tasks
    assert restored.undo_log == edited.undo_log
    assert restored.board_id == board.board_id
    assert restored.version_history[-1].description == "State before restoring to: Manual save"
    assert restored.version_history[-1].data.notes == edited.notes


def test_restoring_the_pre_restore_entry_recovers_the_board(board: BoardState) -> None:
    saved = apply(board, SaveVersion(), now=10)
    checkpoint = saved.version_history[-1].timestamp
    edited = apply(saved, AddTask(note_id="home", text="Fix sink"), now=20)
    edited = apply(edited, SetSearch(term="sink"), now=25)

    restored = apply(edited, RestoreVersion(version=checkpoint), now=30)
    pre_restore = restored.version_history[-1].timestamp
    back = apply(restored, RestoreVersion(version=pre_restore), now=40)

    def content(state: BoardState) -> BoardState:
        return replace(state, version_history=(), undo_log=())

    assert content(back) == content(edited)


def test_restore_of_unknown_version_is_a_noop(board: BoardState) -> None:
    assert restore_version(board, 12345, now=1) is board
    assert apply(board, RestoreVersion(version=-1)) is board


def test_record_action_prepends_and_trims() -> None:
    log = ()
    for i in range(4):
        log = record_action(log, "ADD_TASK", {"i": i}, i, limit=3)
    assert [e.action_payload["i"] for e in log] == [3, 2, 1]


def test_undo_returns_to_snapshot_before_last_action() -> None:
    state = apply(empty_board("b"), AddNote(title="Inbox"), now=1000)
    note_id = state.notes[0].id
    state = apply(state, AddTask(note_id=note_id, text="Call mom"), now=2000)

    undone = apply(state, Undo(), now=3000)
    assert undone.notes[0].tasks == ()
    assert undone.notes[0].title == "Inbox"
    assert [e.action_type for e in undone.undo_log] == ["ADD_NOTE"]
    assert len(undone.version_history) == 3
    assert undone.version_history[-1].description == "State before undoing: ADD_TASK"


def test_undo_without_earlier_snapshot_only_drops_entry(board: BoardState) -> None:
    indented = apply(
        board, IndentTask(note_id="work", task_id="d", direction=IndentDirection.RIGHT), now=5
    )
    undone = undo(indented, now=6)
    assert undone.notes == indented.notes
    assert undone.undo_log == ()
    assert len(undone.version_history) == 1


def test_undo_with_empty_log_is_a_noop(board: BoardState) -> None:
    assert apply(board, Undo()) is board
