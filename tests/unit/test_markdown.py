"""Tests for markdown rendering of notes and boards."""

from stickit.core.reducer import apply
from stickit.core.tree.markdown import render_board_as_markdown, render_note_as_markdown
from stickit.models.actions import SetTaskPriority, ToggleTask
from stickit.models.board import BoardState, Priority, Task
from tests.unit.fakes import make_note


def test_render_note_indents_subtasks(board: BoardState) -> None:
    md = render_note_as_markdown(board.find_note("work"))
    assert md.splitlines() == [
        "## Work",
        "- [ ] Write report",
        "    - [ ] Collect numbers",
        "    - [ ] Draw charts",
        "- [ ] Send email",
    ]


def test_render_note_with_ids_and_priority(board: BoardState) -> None:
    state = apply(board, SetTaskPriority(note_id="home", task_id="h", priority=Priority.MEDIUM))
    md = render_note_as_markdown(state.find_note("home"), show_ids=True)
    assert "## Home  [id=home]" in md
    assert "- [ ] Water plants (!!)  [id=h]" in md


def test_multiline_task_text_is_continued() -> None:
    note = make_note("n", Task(id="t", text="first\nsecond", completed=True))
    assert render_note_as_markdown(note).splitlines()[1:] == ["- [x] first", "  second"]


def test_render_single_note(board: BoardState) -> None:
    md = render_board_as_markdown(board, note_id="home")
    assert "Water plants" in md
    assert "Work" not in md
    assert render_board_as_markdown(board, note_id="nope") == ""


def test_render_board_with_archive(board: BoardState) -> None:
    state = apply(board, ToggleTask(note_id="home", task_id="h"))
    md = render_board_as_markdown(state, include_archived=True)
    assert "## Archived" in md
    assert "- [x] Water plants (from Home)" in md
    assert "## Archived" not in render_board_as_markdown(state)


def test_empty_board_renders_empty() -> None:
    assert render_board_as_markdown(BoardState(board_id="b")) == ""
