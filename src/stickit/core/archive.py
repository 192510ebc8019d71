"""Completing, restoring and deleting archived tasks.

Completion is not a field flip: the task leaves its note and becomes an
ArchivedTask. Restoring creates a brand-new task, in the origin note if it
still exists and otherwise in a fresh "Restored Tasks" note.

Each function returns ``(new_state, description)`` or None when the target
does not exist.
"""

from dataclasses import replace

from stickit.config import RESTORED_NOTE_POSITION, RESTORED_NOTE_TITLE
from stickit.ids import new_id
from stickit.models.board import ArchivedTask, BoardState, Note, NoteColor, Position, Task


def excerpt(text: str, length: int = 20) -> str:
    return text[:length] + ("..." if len(text) > length else "")


def complete_task(
    state: BoardState, note_id: str, task_id: str, *, now: int
) -> tuple[BoardState, str] | None:
    note = state.find_note(note_id)
    if note is None:
        return None
    task = next((t for t in note.tasks if t.id == task_id), None)
    if task is None:
        return None

    if task.completed:
        # Only reachable from hand-edited documents; flip it back in place.
        tasks = tuple(replace(t, completed=False) if t.id == task_id else t for t in note.tasks)
        notes = tuple(replace(n, tasks=tasks) if n.id == note_id else n for n in state.notes)
        return (
            replace(state, notes=notes),
            f"Marked task as incomplete in {note.title}: {excerpt(task.text)}",
        )

    archived = ArchivedTask(
        id=new_id(),
        text=task.text,
        origin_note_id=note.id,
        origin_note_title=note.title,
        completed_at=now,
    )
    remaining = tuple(t for t in note.tasks if t.id != task_id)
    notes = tuple(replace(n, tasks=remaining) if n.id == note_id else n for n in state.notes)
    return (
        replace(state, notes=notes, archived_tasks=(*state.archived_tasks, archived)),
        f"Completed and archived task from {note.title}: {excerpt(task.text)}",
    )


def restore_archived_task(state: BoardState, archived_id: str) -> tuple[BoardState, str] | None:
    archived = state.find_archived(archived_id)
    if archived is None:
        return None

    restored = Task(id=new_id(), text=archived.text)
    remaining = tuple(a for a in state.archived_tasks if a.id != archived_id)

    if state.find_note(archived.origin_note_id) is None:
        host = Note(
            id=new_id(),
            title=RESTORED_NOTE_TITLE,
            color=NoteColor.YELLOW,
            position=Position(*RESTORED_NOTE_POSITION),
            tasks=(restored,),
        )
        return (
            replace(state, notes=(*state.notes, host), archived_tasks=remaining),
            f'Restored archived task to new note "{host.title}": {excerpt(archived.text)}',
        )

    notes = tuple(
        replace(n, tasks=(*n.tasks, restored)) if n.id == archived.origin_note_id else n
        for n in state.notes
    )
    return (
        replace(state, notes=notes, archived_tasks=remaining),
        f'Restored archived task to "{archived.origin_note_title}": {excerpt(archived.text)}',
    )


def delete_archived_task(state: BoardState, archived_id: str) -> tuple[BoardState, str] | None:
    archived = state.find_archived(archived_id)
    if archived is None:
        return None
    remaining = tuple(a for a in state.archived_tasks if a.id != archived_id)
    return (
        replace(state, archived_tasks=remaining),
        f"Deleted archived task: {excerpt(archived.text)}",
    )
