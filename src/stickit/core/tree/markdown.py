"""Render notes and their tasks as markdown."""

import io

from stickit.models.board import BoardState, Note, Priority

_PRIORITY_MARKS = {
    Priority.NONE: "",
    Priority.LOW: " (!)",
    Priority.MEDIUM: " (!!)",
    Priority.HIGH: " (!!!)",
}


def render_note_as_markdown(note: Note, *, show_ids: bool = False) -> str:
    """Render one note as a heading followed by an indented checklist."""
    out = io.StringIO()
    heading = f"## {note.title}"
    if show_ids:
        heading += f"  [id={note.id}]"
    out.write(f"{heading}\n")
    for task in note.tasks:
        indent = "    " * task.indentation
        box = "- [x] " if task.completed else "- [ ] "
        lines = task.text.split("\n")
        suffix = _PRIORITY_MARKS[task.priority]
        if show_ids:
            suffix += f"  [id={task.id}]"
        out.write(f"{indent}{box}{lines[0]}{suffix}\n")
        for line in lines[1:]:
            out.write(f"{indent}  {line}\n")
    return out.getvalue()


def render_board_as_markdown(
    board: BoardState,
    *,
    note_id: str | None = None,
    include_archived: bool = False,
    show_ids: bool = False,
) -> str:
    """Render the board (or a single note) as markdown.

    Args:
        board: Board to render.
        note_id: Only render this note.
        include_archived: Append the archived (completed) tasks.
        show_ids: Include note/task ids, for use from the command line.

    Returns:
        Markdown string, empty if ``note_id`` matches nothing.
    """
    notes = board.notes
    if note_id is not None:
        notes = tuple(n for n in notes if n.id == note_id)
        if not notes:
            return ""

    sections = [render_note_as_markdown(n, show_ids=show_ids) for n in notes]

    if include_archived and board.archived_tasks:
        out = io.StringIO()
        out.write("## Archived\n")
        for archived in board.archived_tasks:
            line = f"- [x] {archived.text} (from {archived.origin_note_title})"
            if show_ids:
                line += f"  [id={archived.id}]"
            out.write(f"{line}\n")
        sections.append(out.getvalue())

    return "\n".join(sections)
