"""Identifier generation for notes, tasks and boards."""

import uuid


def new_id() -> str:
    """Return an opaque identifier for a note, task or archived task."""
    return uuid.uuid4().hex[:12]


def new_board_id() -> str:
    """Return a board identifier, stable for the lifetime of the board."""
    return str(uuid.uuid4())
