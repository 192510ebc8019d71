"""Protocols for the persistence collaborators of a board session."""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from stickit.models.board import BoardState


@dataclass(frozen=True)
class BackupInfo:
    """A point-in-time full copy of a board kept by the backup store."""

    id: str
    board_id: str
    user_id: str
    created_at: int
    description: str


@runtime_checkable
class LocalCacheProtocol(Protocol):
    """Durable local storage holding one board under a fixed key."""

    def get(self) -> BoardState | None:
        """Return the stored board, or None if nothing was stored yet."""
        ...

    def set(self, board: BoardState) -> None:
        """Store the board, replacing any previous copy."""
        ...


@runtime_checkable
class RemoteStoreProtocol(Protocol):
    """Remote persistence service for boards."""

    def save(self, user_id: str, board: BoardState) -> str:
        """Write the board for the given user and return its id."""
        ...

    def load(self, board_id: str) -> BoardState | None:
        """Fetch a board, returning None if the remote has no copy."""
        ...


@runtime_checkable
class BackupStoreProtocol(Protocol):
    """Remote store of full board backups."""

    def create_backup(
        self, user_id: str, board_id: str, board: BoardState, description: str
    ) -> str:
        """Store a backup and return its id."""
        ...

    def list_backups(self, board_id: str) -> list[BackupInfo]:
        """List backups of a board, newest first."""
        ...

    def get_backup(self, backup_id: str) -> BoardState:
        """Return the board stored in a backup."""
        ...

    def delete_backup(self, backup_id: str) -> None:
        """Delete a backup."""
        ...
