"""HTTP client for the remote board store and its backups."""

import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import requests
from loguru import logger

from stickit.config import API_TOKEN_FILES
from stickit.core.codec import BoardFormatError, board_from_dict, board_to_dict
from stickit.models.board import BoardState
from stickit.protocols import BackupInfo


class RemoteStoreError(RuntimeError):
    """A remote call failed (network, HTTP status, or malformed response)."""


def read_api_token(token_files: list[Path] | None = None) -> str | None:
    """Return the token from the first existing token file, if any."""
    for token_path in token_files if token_files is not None else API_TOKEN_FILES:
        try:
            return token_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            pass
    return None


class HttpRemoteStore:
    """Boards and backups stored behind a small JSON HTTP API.

    Endpoints, relative to ``base_url``:

    - ``PUT /boards/{board_id}`` and ``GET /boards/{board_id}``
    - ``POST /backups``, ``GET /backups?boardId=...``
    - ``GET /backups/{id}`` and ``DELETE /backups/{id}``
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.sess = session or requests.Session()
        if token:
            self.sess.headers["Authorization"] = f"Bearer {token}"
        logger.debug("Remote store ready: {!r}, token {}", self.base_url, "set" if token else "none")

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response | None:
        """Send a request; returns None on 404, raises RemoteStoreError otherwise."""
        url = f"{self.base_url}/{path}"
        logger.debug("Remote request: {} {}", method, url)
        try:
            r = self.sess.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            msg = f"{method} {url} failed: {e}"
            raise RemoteStoreError(msg) from e
        if r.status_code == 404:
            return None
        try:
            r.raise_for_status()
        except requests.HTTPError as e:
            msg = f"{method} {url} -> {r.status_code}"
            raise RemoteStoreError(msg) from e
        return r

    def _json(self, r: requests.Response) -> Any:
        try:
            return r.json()
        except ValueError as e:
            msg = f"Malformed JSON from {r.url!r}"
            raise RemoteStoreError(msg) from e

    def _decode(self, data: Any) -> BoardState:
        try:
            return board_from_dict(data)
        except BoardFormatError as e:
            msg = f"Remote returned something that is not a board: {e}"
            raise RemoteStoreError(msg) from e

    # --- Boards ---

    def save(self, user_id: str, board: BoardState) -> str:
        body = {
            **board_to_dict(board),
            "userId": user_id,
            "lastUpdated": datetime.now(tz=UTC).isoformat(),
        }
        r = self._request("PUT", f"boards/{board.board_id}", json=body)
        if r is None:
            msg = f"Board endpoint not found for {board.board_id!r}"
            raise RemoteStoreError(msg)
        logger.debug("Saved board {} for user {}", board.board_id, user_id)
        return board.board_id

    def load(self, board_id: str) -> BoardState | None:
        r = self._request("GET", f"boards/{board_id}")
        if r is None:
            logger.debug("Board {} not found on remote", board_id)
            return None
        return self._decode(self._json(r))

    # --- Backups ---

    def create_backup(
        self, user_id: str, board_id: str, board: BoardState, description: str
    ) -> str:
        body = {
            "userId": user_id,
            "boardId": board_id,
            "data": board_to_dict(board),
            "createdAt": int(time.time() * 1000),
            "description": description,
        }
        r = self._request("POST", "backups", json=body)
        if r is None:
            msg = "Backup endpoint not found"
            raise RemoteStoreError(msg)
        rv = self._json(r)
        if not isinstance(rv, dict) or not isinstance(rv.get("id"), str):
            msg = f"Backup response has no id: {rv!r}"
            raise RemoteStoreError(msg)
        return rv["id"]

    def list_backups(self, board_id: str) -> list[BackupInfo]:
        r = self._request("GET", "backups", params={"boardId": board_id})
        if r is None:
            return []
        rows = self._json(r)
        if not isinstance(rows, list):
            msg = f"Backup list is not a list: {type(rows).__name__}"
            raise RemoteStoreError(msg)
        backups = [
            BackupInfo(
                id=str(row.get("id", "")),
                board_id=str(row.get("boardId", board_id)),
                user_id=str(row.get("userId", "")),
                created_at=int(row.get("createdAt") or 0),
                description=str(row.get("description", "")),
            )
            for row in rows
            if isinstance(row, dict)
        ]
        return sorted(backups, key=lambda b: b.created_at, reverse=True)

    def get_backup(self, backup_id: str) -> BoardState:
        r = self._request("GET", f"backups/{backup_id}")
        if r is None:
            msg = f"Backup not found: {backup_id!r}"
            raise RemoteStoreError(msg)
        rv = self._json(r)
        if not isinstance(rv, dict):
            msg = f"Backup {backup_id!r} is not an object"
            raise RemoteStoreError(msg)
        return self._decode(rv.get("data"))

    def delete_backup(self, backup_id: str) -> None:
        if self._request("DELETE", f"backups/{backup_id}") is None:
            msg = f"Backup not found: {backup_id!r}"
            raise RemoteStoreError(msg)
