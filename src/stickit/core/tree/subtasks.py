"""Hierarchy helpers for a note's flat, indentation-encoded task list.

A task's descendants are the tasks that directly follow it with a strictly
greater indentation; the first task at the same or a lower indentation ends
the subtree. Every operation that moves, shifts or deletes a task together
with its subtasks goes through :func:`block_indices`.
"""

from collections.abc import Sequence
from dataclasses import replace

from stickit.config import MAX_INDENT
from stickit.models.board import Task


def clamp_indentation(value: int) -> int:
    return min(max(0, value), MAX_INDENT)


def descendant_indices(tasks: Sequence[Task], index: int) -> list[int]:
    """Return the indices of all descendants of ``tasks[index]``."""
    if not 0 <= index < len(tasks):
        return []
    parent_indent = tasks[index].indentation
    result: list[int] = []
    for i in range(index + 1, len(tasks)):
        if tasks[i].indentation <= parent_indent:
            break
        result.append(i)
    return result


def block_indices(
    tasks: Sequence[Task],
    index: int,
    provided: Sequence[int] | None = None,
) -> list[int]:
    """Return ``index`` plus its subtasks, sorted.

    Caller-supplied subtask indices are used when they are all in range,
    distinct and different from ``index``; otherwise the subtree is computed.
    """
    if provided:
        candidates = set(provided)
        valid = (
            len(candidates) == len(provided)
            and index not in candidates
            and all(0 <= i < len(tasks) for i in candidates)
        )
        if valid:
            return sorted({index, *candidates})
    return [index, *descendant_indices(tasks, index)]


def shift_block(tasks: Sequence[Task], index: int, delta: int) -> tuple[Task, ...]:
    """Shift the indentation of a task and its descendants by ``delta``."""
    block = set(block_indices(tasks, index))
    return tuple(
        replace(t, indentation=clamp_indentation(t.indentation + delta)) if i in block else t
        for i, t in enumerate(tasks)
    )


def split_block(
    tasks: Sequence[Task], indices: Sequence[int]
) -> tuple[list[Task], list[Task]]:
    """Split tasks into (block at ``indices``, everything else), keeping order."""
    chosen = set(indices)
    block = [t for i, t in enumerate(tasks) if i in chosen]
    rest = [t for i, t in enumerate(tasks) if i not in chosen]
    return block, rest
