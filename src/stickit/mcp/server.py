"""MCP server exposing the sticky-note board to assistants."""

import asyncio
import contextlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from stickit.config import resolve_data_directory
from stickit.core.tree.markdown import render_board_as_markdown
from stickit.models.actions import ACTION_CLASSES, RestoreVersion, Undo
from stickit.storage.sqlite_cache import SqliteCache
from stickit.sync.session import BoardSession, open_session


def _iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=UTC).isoformat()


# --- Core functions (testable without MCP context) ---


def board_overview(session: BoardSession) -> dict[str, Any]:
    """Summarize the board: notes with their tasks, archive and history sizes."""
    board = session.state
    return {
        "board_id": board.board_id,
        "notes": [
            {
                "id": n.id,
                "title": n.title,
                "color": n.color.value,
                "tasks": [
                    {
                        "id": t.id,
                        "text": t.text,
                        "indentation": t.indentation,
                        "priority": t.priority.value,
                        "completed": t.completed,
                    }
                    for t in n.tasks
                ],
            }
            for n in board.notes
        ],
        "archived_count": len(board.archived_tasks),
        "version_count": len(board.version_history),
        "undo_depth": len(board.undo_log),
        "is_synced": board.is_synced,
    }


def board_dispatch(
    session: BoardSession,
    *,
    action_type: str,
    payload: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Apply one action to the board.

    Args:
        action_type: Action type, e.g. "ADD_TASK" or "INDENT_TASK".
        payload: Action payload with camelCase keys (noteId, taskId, ...).
    """
    if action_type not in ACTION_CLASSES:
        return {
            "error": f"Unknown action type '{action_type}'.",
            "known_types": sorted(ACTION_CLASSES),
        }
    before = session.state
    after = session.dispatch({"type": action_type, "payload": payload or {}})
    result: dict[str, Any] = {"changed": after is not before}
    if after is not before and len(after.version_history) > len(before.version_history):
        result["description"] = after.version_history[-1].description
    return result


def board_history(session: BoardSession, *, limit: int = 20) -> dict[str, Any]:
    """List saved versions, newest first.

    Args:
        limit: Max entries (1-50, default 20).
    """
    limit = max(1, min(limit, 50))
    versions = session.state.version_history
    return {
        "versions": [
            {
                "timestamp": s.timestamp,
                "time": _iso(s.timestamp),
                "description": s.description,
            }
            for s in reversed(versions[-limit:])
        ],
        "total": len(versions),
    }


def board_restore_version(session: BoardSession, *, timestamp: int) -> dict[str, Any]:
    """Restore the board to the version with this timestamp.

    Args:
        timestamp: Version timestamp from board_history.
    """
    if not any(s.timestamp == timestamp for s in session.state.version_history):
        return {"error": f"Version {timestamp} not found."}
    session.dispatch(RestoreVersion(version=timestamp))
    return {"restored": timestamp, "note_count": len(session.state.notes)}


def board_undo(session: BoardSession) -> dict[str, Any]:
    """Undo the most recent undoable action."""
    if not session.state.undo_log:
        return {"error": "Nothing to undo."}
    undone = session.state.undo_log[0].action_type
    session.dispatch(Undo())
    return {"undone": undone, "remaining": len(session.state.undo_log)}


def board_render(
    session: BoardSession,
    *,
    note_id: str | None = None,
    include_archived: bool = False,
) -> dict[str, Any]:
    """Render the board (or one note) as markdown with ids.

    Args:
        note_id: Only render this note.
        include_archived: Append archived tasks.
    """
    text = render_board_as_markdown(
        session.state, note_id=note_id, include_archived=include_archived, show_ids=True
    )
    if note_id is not None and not text:
        return {"error": f"Note '{note_id}' not found."}
    return {"markdown": text}


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    session: BoardSession
    cache: SqliteCache


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open the board on startup; flush pending writes and close on shutdown."""
    session, cache = open_session(resolve_data_directory())
    backup_task: asyncio.Task[None] | None = None
    try:
        if session.user_id is not None:
            await session.authenticate(session.auth)
            if session.backups is not None:
                backup_task = asyncio.create_task(session.backup_loop())
        logger.info(
            "Board {} loaded with {} notes", session.state.board_id, len(session.state.notes)
        )
        yield ServerContext(session=session, cache=cache)
    finally:
        if backup_task is not None:
            backup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await backup_task
        await session.flush()
        cache.close()


mcp_server = FastMCP(
    "stickit",
    instructions="""\
A board of sticky notes, each holding an ordered task list. Subtasks are tasks
with a larger indentation directly below their parent.

1. Call board_overview_tool (or board_render_tool) to see note and task ids.
2. Change the board with board_dispatch_tool, e.g. ADD_TASK with
   {"noteId": ..., "text": ...}, TOGGLE_TASK to complete (archive) a task.
3. Every meaningful change is saved as a version; use board_history_tool and
   board_restore_version_tool to go back, or board_undo_tool.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def board_overview_tool(ctx: Context) -> dict[str, Any]:
    """Summarize the board: notes, tasks and their ids."""
    return board_overview(_ctx(ctx).session)


@mcp_server.tool()
async def board_dispatch_tool(
    ctx: Context,
    action_type: str,
    payload: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Apply one action to the board.

    Common actions and payloads:
    - ADD_NOTE {"title", "color", "position": {"x", "y"}}
    - ADD_TASK {"noteId", "text"}
    - UPDATE_TASK {"noteId", "taskId", "text"}
    - TOGGLE_TASK {"noteId", "taskId"} completes and archives the task
    - INDENT_TASK {"noteId", "taskId", "direction": "left" | "right"}
    - MOVE_TASK {"sourceNoteId", "targetNoteId", "taskId", "hasSubtasks"}
    - RESTORE_ARCHIVED_TASK {"taskId"}

    Args:
        action_type: Action type.
        payload: Action payload with camelCase keys.
    """
    return board_dispatch(_ctx(ctx).session, action_type=action_type, payload=payload)


@mcp_server.tool()
async def board_history_tool(ctx: Context, limit: int = 20) -> dict[str, Any]:
    """List saved versions of the board, newest first.

    Args:
        limit: Max entries (1-50, default 20).
    """
    return board_history(_ctx(ctx).session, limit=limit)


@mcp_server.tool()
async def board_restore_version_tool(ctx: Context, timestamp: int) -> dict[str, Any]:
    """Restore the board to a saved version. The current board is saved first.

    Args:
        timestamp: Version timestamp from board_history_tool.
    """
    return board_restore_version(_ctx(ctx).session, timestamp=timestamp)


@mcp_server.tool()
async def board_undo_tool(ctx: Context) -> dict[str, Any]:
    """Undo the most recent undoable action."""
    return board_undo(_ctx(ctx).session)


@mcp_server.tool()
async def board_render_tool(
    ctx: Context,
    note_id: str | None = None,
    include_archived: bool = False,
) -> dict[str, Any]:
    """Render the board (or one note) as a markdown checklist.

    Args:
        note_id: Only render this note.
        include_archived: Append archived tasks.
    """
    return board_render(_ctx(ctx).session, note_id=note_id, include_archived=include_archived)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from stickit.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")
