"""Which actions produce a version snapshot and which can be undone.

Both the snapshot builder and the undo log consult this one table.
"""

from dataclasses import dataclass

from stickit.models import actions as a


@dataclass(frozen=True)
class ActionPolicy:
    snapshot: bool
    undoable: bool


_CONTENT_EDIT = ActionPolicy(snapshot=True, undoable=True)
_LAYOUT_EDIT = ActionPolicy(snapshot=False, undoable=True)
_NOT_RECORDED = ActionPolicy(snapshot=False, undoable=False)

POLICIES: dict[str, ActionPolicy] = {
    a.ADD_NOTE: _CONTENT_EDIT,
    a.UPDATE_NOTE: _CONTENT_EDIT,
    a.DELETE_NOTE: _CONTENT_EDIT,
    a.CHANGE_NOTE_COLOR: _CONTENT_EDIT,
    a.ADD_TASK: _CONTENT_EDIT,
    a.UPDATE_TASK: _CONTENT_EDIT,
    a.DELETE_TASK: _CONTENT_EDIT,
    a.TOGGLE_TASK: _CONTENT_EDIT,
    a.SET_TASK_PRIORITY: _CONTENT_EDIT,
    a.MOVE_TASK: _CONTENT_EDIT,
    a.DELETE_ARCHIVED_TASK: _CONTENT_EDIT,
    a.RESTORE_ARCHIVED_TASK: _CONTENT_EDIT,
    a.INDENT_TASK: _LAYOUT_EDIT,
    a.REORDER_TASK: _LAYOUT_EDIT,
    a.CHANGE_TEXT_SIZE: _LAYOUT_EDIT,
    a.CHANGE_TASK_SPACING: _LAYOUT_EDIT,
    # Continuous gestures and ephemeral view state.
    a.MOVE_NOTE: _NOT_RECORDED,
    a.SET_DRAGGED_TASK: _NOT_RECORDED,
    a.SET_SEARCH: _NOT_RECORDED,
    a.CLEAR_SEARCH: _NOT_RECORDED,
    # History and sync bookkeeping record themselves, if at all.
    a.SAVE_VERSION: _NOT_RECORDED,
    a.RESTORE_VERSION: _NOT_RECORDED,
    a.UNDO: _NOT_RECORDED,
    a.SYNC_BOARD: _NOT_RECORDED,
    a.LOAD_BOARD: _NOT_RECORDED,
}


def policy_for(action_type: str) -> ActionPolicy:
    return POLICIES.get(action_type, _NOT_RECORDED)
