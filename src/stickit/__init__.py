"""Sticky-note board state core with version history, undo and sync."""

from stickit.core.reducer import apply
from stickit.models.actions import parse_action
from stickit.models.board import BoardState, empty_board
from stickit.protocols import BackupStoreProtocol, LocalCacheProtocol, RemoteStoreProtocol
from stickit.sync.session import BoardSession

__all__ = [
    "BackupStoreProtocol",
    "BoardSession",
    "BoardState",
    "LocalCacheProtocol",
    "RemoteStoreProtocol",
    "apply",
    "empty_board",
    "parse_action",
]
