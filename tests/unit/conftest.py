"""Shared test fixtures."""

import pytest

from stickit.models.board import BoardState, NoteColor, Task
from tests.unit.fakes import make_note


@pytest.fixture
def board() -> BoardState:
    """Two notes; "work" holds a task with two subtasks followed by a sibling.

    work:  a (0), b (1), c (1), d (0)
    home:  h (0)
    """
    work = make_note(
        "work",
        Task(id="a", text="Write report"),
        Task(id="b", text="Collect numbers", indentation=1),
        Task(id="c", text="Draw charts", indentation=1),
        Task(id="d", text="Send email"),
    )
    home = make_note("home", Task(id="h", text="Water plants"), color=NoteColor.GREEN)
    return BoardState(board_id="board-1", notes=(work, home))


@pytest.fixture
def single_task_board() -> BoardState:
    """One note holding one task."""
    return BoardState(
        board_id="board-2",
        notes=(make_note("n1", Task(id="t1", text="Buy milk"), title="Groceries"),),
    )
