"""Tests for action payloads and raw action parsing."""

from stickit.models.actions import (
    ACTION_CLASSES,
    AddNote,
    DeleteTask,
    IndentTask,
    LoadBoard,
    MoveNote,
    ReorderTask,
    RestoreVersion,
    SaveVersion,
    parse_action,
)
from stickit.models.board import IndentDirection, NoteColor, Position, empty_board


def test_payload_uses_camel_case() -> None:
    action = DeleteTask(note_id="n", task_id="t", has_subtasks=True)
    assert action.to_dict() == {
        "type": "DELETE_TASK",
        "payload": {"noteId": "n", "taskId": "t", "hasSubtasks": True},
    }


def test_payload_flattens_enums_positions_and_tuples() -> None:
    assert AddNote(color=NoteColor.RED, position=Position(1, 2), title="x").payload() == {
        "color": "red",
        "position": {"x": 1, "y": 2},
        "title": "x",
    }
    reorder = ReorderTask(note_id="n", source_index=0, target_index=2, subtask_indices=(1,))
    assert reorder.payload()["subtaskIndices"] == [1]


def test_parsed_payload_round_trips() -> None:
    action = IndentTask(note_id="work", task_id="a", direction=IndentDirection.RIGHT)
    assert parse_action(action.to_dict()) == action


def test_every_type_is_registered() -> None:
    assert len(ACTION_CLASSES) == 25
    for action_type, cls in ACTION_CLASSES.items():
        assert cls.type == action_type


def test_missing_fields_get_defaults() -> None:
    assert parse_action({"type": "ADD_NOTE"}) == AddNote(
        color=NoteColor.YELLOW, position=Position(100.0, 100.0), title=""
    )
    assert parse_action({"type": "SAVE_VERSION", "payload": {}}) == SaveVersion("Manual save")
    reorder = parse_action({"type": "REORDER_TASK", "payload": {"noteId": "n"}})
    assert reorder == ReorderTask(note_id="n", source_index=-1, target_index=-1)


def test_wrong_types_are_coerced_field_by_field() -> None:
    action = parse_action(
        {
            "type": "ADD_NOTE",
            "payload": {"color": ["red"], "position": {"x": "1", "y": 2}, "title": 5},
        }
    )
    assert action == AddNote()

    assert parse_action({"type": "RESTORE_VERSION", "payload": {"version": "123"}}) == (
        RestoreVersion(version=123)
    )
    move = parse_action({"type": "MOVE_NOTE", "payload": {"id": "n", "position": {"x": 3, "y": 4}}})
    assert move == MoveNote(id="n", position=Position(3.0, 4.0))

    reorder = parse_action(
        {
            "type": "REORDER_TASK",
            "payload": {"noteId": "n", "sourceIndex": 1, "targetIndex": 0, "subtaskIndices": "2"},
        }
    )
    assert reorder.subtask_indices is None


def test_unknown_or_malformed_actions_parse_to_none() -> None:
    assert parse_action({"type": "EXPLODE"}) is None
    assert parse_action(["ADD_NOTE"]) is None
    assert parse_action({"type": "LOAD_BOARD", "payload": {"nope": 1}}) is None


def test_load_board_parses_a_document() -> None:
    board = empty_board("xyz")
    action = parse_action(LoadBoard(board=board).to_dict())
    assert action == LoadBoard(board=board)
