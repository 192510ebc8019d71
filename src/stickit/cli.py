"""CLI for the sticky-note board (edit, history, sync, MCP server)."""

import asyncio
import json
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger

from stickit.config import (
    BACKUP_INTERVAL_SECONDS,
    DEFAULT_NOTE_POSITION,
    resolve_data_directory,
)
from stickit.core.codec import board_to_json
from stickit.core.reducer import now_ms
from stickit.core.tree.markdown import render_board_as_markdown
from stickit.logging_config import configure_logging
from stickit.models.actions import (
    ACTION_CLASSES,
    Action,
    AddNote,
    AddTask,
    LoadBoard,
    RestoreArchivedTask,
    RestoreVersion,
    SaveVersion,
    ToggleTask,
    Undo,
)
from stickit.models.board import NoteColor, Position
from stickit.storage.remote import RemoteStoreError
from stickit.storage.sqlite_cache import get_metadata, set_metadata
from stickit.sync.session import BoardSession, is_backup_due, open_session

app = typer.Typer(help="Sticky-note board: notes, tasks, version history and sync.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Directory holding the local board cache"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


def _format_ms(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=UTC).strftime("%Y-%m-%d %H:%M:%S")


@contextmanager
def _session(data_dir: Path | None) -> Iterator[BoardSession]:
    session, cache = open_session(data_dir or resolve_data_directory())
    try:
        yield session
    finally:
        cache.close()


def _push(session: BoardSession) -> None:
    """Push local changes when remote sync is configured and signed in."""
    if session.remote is None or session.user_id is None:
        return
    if not asyncio.run(session.sync_now()):
        typer.echo("Warning: remote sync failed, changes are saved locally only.", err=True)


def _apply(session: BoardSession, action: Action | dict[str, Any]) -> bool:
    """Dispatch and report; returns whether the board changed."""
    before = session.state
    after = session.dispatch(action)
    if after is before:
        typer.echo("Nothing changed.")
        return False
    _push(session)
    return True


@app.command()
def show(
    note: Annotated[str | None, typer.Option("--note", "-n", help="Only show this note")] = None,
    archived: bool = typer.Option(False, "--archived", "-a", help="Include archived tasks"),
    ids: bool = typer.Option(True, "--ids/--no-ids", help="Show note and task ids"),
    data_dir: DataDirOption = None,
) -> None:
    """Print the board as markdown."""
    with _session(data_dir) as session:
        board = session.state
        if not board.notes and not board.archived_tasks:
            typer.echo("Board is empty.")
            return
        text = render_board_as_markdown(
            board, note_id=note, include_archived=archived, show_ids=ids
        )
        if not text:
            typer.echo(f"Note '{note}' not found.")
            raise typer.Exit(1)
        typer.echo(text)


@app.command()
def dispatch(
    action_type: str = typer.Argument(..., help="Action type, e.g. ADD_TASK"),
    payload: Annotated[
        str, typer.Option("--payload", "-p", help="Action payload as a JSON object")
    ] = "{}",
    data_dir: DataDirOption = None,
) -> None:
    """Apply a raw action to the board."""
    if action_type not in ACTION_CLASSES:
        typer.echo(f"Unknown action type '{action_type}'.")
        raise typer.Exit(1)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        typer.echo(f"Invalid JSON payload: {e}")
        raise typer.Exit(1) from None
    if not isinstance(data, dict):
        typer.echo("Payload must be a JSON object.")
        raise typer.Exit(1)

    with _session(data_dir) as session:
        if _apply(session, {"type": action_type, "payload": data}):
            typer.echo(f"Applied {action_type}.")


@app.command("add-note")
def add_note(
    title: str = typer.Argument("", help="Note title"),
    color: NoteColor = typer.Option(NoteColor.YELLOW, "--color", "-c", help="Note color"),
    x: float = typer.Option(DEFAULT_NOTE_POSITION[0], "--x", help="Horizontal position"),
    y: float = typer.Option(DEFAULT_NOTE_POSITION[1], "--y", help="Vertical position"),
    data_dir: DataDirOption = None,
) -> None:
    """Add a note to the board."""
    with _session(data_dir) as session:
        if _apply(session, AddNote(color=color, position=Position(x, y), title=title)):
            note = session.state.notes[-1]
            typer.echo(f"Added note '{note.title}'  id={note.id}")


@app.command("add-task")
def add_task(
    note_id: str = typer.Argument(..., help="Note id"),
    text: str = typer.Argument(..., help="Task text"),
    data_dir: DataDirOption = None,
) -> None:
    """Append a task to a note."""
    with _session(data_dir) as session:
        if session.state.find_note(note_id) is None:
            typer.echo(f"Note '{note_id}' not found.")
            raise typer.Exit(1)
        if not text.strip():
            typer.echo("Task text must not be empty.")
            raise typer.Exit(1)
        _apply(session, AddTask(note_id=note_id, text=text))
        note = session.state.find_note(note_id)
        if note is not None and note.tasks:
            typer.echo(f"Added task  id={note.tasks[-1].id}")


@app.command()
def complete(
    note_id: str = typer.Argument(..., help="Note id"),
    task_id: str = typer.Argument(..., help="Task id"),
    data_dir: DataDirOption = None,
) -> None:
    """Complete a task, moving it to the archive."""
    with _session(data_dir) as session:
        if _apply(session, ToggleTask(note_id=note_id, task_id=task_id)):
            typer.echo(session.state.version_history[-1].description)


@app.command()
def archived(
    data_dir: DataDirOption = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List archived (completed) tasks."""
    with _session(data_dir) as session:
        tasks = session.state.archived_tasks
        if output_json:
            rows = [
                {
                    "id": t.id,
                    "text": t.text,
                    "note_id": t.origin_note_id,
                    "note_title": t.origin_note_title,
                    "completed_at": t.completed_at,
                }
                for t in tasks
            ]
            typer.echo(json.dumps(rows, indent=2))
            return
        if not tasks:
            typer.echo("No archived tasks.")
            return
        for t in tasks:
            typer.echo(f"  {_format_ms(t.completed_at)}  [{t.origin_note_title}] {t.text}")
            typer.echo(f"    id={t.id}")


@app.command("restore-task")
def restore_task(
    archived_id: str = typer.Argument(..., help="Archived task id"),
    data_dir: DataDirOption = None,
) -> None:
    """Put an archived task back on the board."""
    with _session(data_dir) as session:
        if session.state.find_archived(archived_id) is None:
            typer.echo(f"Archived task '{archived_id}' not found.")
            raise typer.Exit(1)
        _apply(session, RestoreArchivedTask(task_id=archived_id))
        typer.echo(session.state.version_history[-1].description)


@app.command()
def history(
    limit: int = typer.Option(20, "--limit", "-n", help="Max entries, newest first"),
    data_dir: DataDirOption = None,
) -> None:
    """List saved versions of the board."""
    with _session(data_dir) as session:
        versions = session.state.version_history
        if not versions:
            typer.echo("No saved versions.")
            return
        typer.echo(f"{len(versions)} versions (showing up to {limit}):\n")
        for snapshot in reversed(versions[-limit:]):
            typer.echo(
                f"  {snapshot.timestamp}  {_format_ms(snapshot.timestamp)}  {snapshot.description}"
            )


@app.command("save-version")
def save_version(
    description: str = typer.Argument("Manual save", help="Description of the version"),
    data_dir: DataDirOption = None,
) -> None:
    """Save a named checkpoint of the board."""
    with _session(data_dir) as session:
        _apply(session, SaveVersion(description=description))
        typer.echo(f"Saved version {session.state.version_history[-1].timestamp}.")


@app.command()
def restore(
    timestamp: int = typer.Argument(..., help="Version timestamp from 'history'"),
    data_dir: DataDirOption = None,
) -> None:
    """Restore the board to a saved version."""
    with _session(data_dir) as session:
        if not any(s.timestamp == timestamp for s in session.state.version_history):
            typer.echo(f"Version {timestamp} not found.")
            raise typer.Exit(1)
        _apply(session, RestoreVersion(version=timestamp))
        typer.echo(f"Restored version {timestamp}.")


@app.command()
def undo(data_dir: DataDirOption = None) -> None:
    """Undo the most recent undoable action."""
    with _session(data_dir) as session:
        if not session.state.undo_log:
            typer.echo("Nothing to undo.")
            raise typer.Exit(1)
        action_type = session.state.undo_log[0].action_type
        _apply(session, Undo())
        typer.echo(f"Undid {action_type}.")


@app.command()
def export(
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write to this file instead of stdout")
    ] = None,
    markdown: bool = typer.Option(False, "--markdown", "-m", help="Export as markdown"),
    data_dir: DataDirOption = None,
) -> None:
    """Export the board document as JSON (or markdown)."""
    with _session(data_dir) as session:
        board = session.state
        if markdown:
            text = render_board_as_markdown(board, include_archived=True)
        else:
            text = board_to_json(board)
        if output is None:
            typer.echo(text)
            return
        output.write_text(text, encoding="utf-8")
        typer.echo(f"Exported board {board.board_id} to {output}")


@app.command()
def sync(data_dir: DataDirOption = None) -> None:
    """Pull, merge and push the board, then back it up if a backup is due."""
    session, cache = open_session(data_dir or resolve_data_directory())
    try:
        if session.remote is None or session.user_id is None:
            typer.echo("Remote sync needs STICKIT_REMOTE_URL and STICKIT_USER_ID.")
            raise typer.Exit(1)

        last = get_metadata(cache.conn, "last_backup_at")
        session.last_backup_at = int(last) if last else None

        async def run() -> bool:
            ok = await session.sync_now()
            if is_backup_due(session.last_backup_at, BACKUP_INTERVAL_SECONDS, now_ms()):
                await session.create_backup("Automatic backup")
            return ok

        ok = asyncio.run(run())
        if session.last_backup_at is not None:
            set_metadata(cache.conn, "last_backup_at", str(session.last_backup_at))
        if not ok:
            typer.echo("Sync failed, see log for details.")
            raise typer.Exit(1)
        typer.echo(f"Board {session.state.board_id} synced.")
    finally:
        cache.close()


@app.command()
def backups(
    restore_id: Annotated[
        str | None, typer.Option("--restore", "-r", help="Replace the board with this backup")
    ] = None,
    delete_id: Annotated[
        str | None, typer.Option("--delete", help="Delete this backup")
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """List, restore or delete remote backups of the board."""
    with _session(data_dir) as session:
        store = session.backups
        if store is None:
            typer.echo("Backups need STICKIT_REMOTE_URL.")
            raise typer.Exit(1)
        try:
            if restore_id:
                board = store.get_backup(restore_id)
                session.dispatch(LoadBoard(board=board))
                typer.echo(f"Restored backup {restore_id}.")
                _push(session)
                return
            if delete_id:
                store.delete_backup(delete_id)
                typer.echo(f"Deleted backup {delete_id}.")
                return
            rows = store.list_backups(session.state.board_id)
        except RemoteStoreError as e:
            logger.error("{}", e)
            raise typer.Exit(1) from None

        if not rows:
            typer.echo("No backups.")
            return
        for b in rows:
            typer.echo(f"  {_format_ms(b.created_at)}  {b.description}  id={b.id}")


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from stickit.mcp.server import run_mcp_server

    run_mcp_server()


if __name__ == "__main__":
    app()
