"""Read-modify-save editing of one remote text file."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from panelfiles.core.exceptions import EditorBusyError, EditorStateError
from panelfiles.models import EditorStatus, Entry
from panelfiles.services.remote_client import RemoteDirectoryClient

logger = logging.getLogger(__name__)


class EditorSession:
    """closed -> loading -> ready -> saving -> closed.

    A failed read closes the session before it reaches ready; a failed save
    returns to ready with the edits kept. Writes are last-write-wins: the
    remote file is not checked for changes made since it was read.
    """

    def __init__(
        self,
        client: RemoteDirectoryClient,
        server_id: str,
        *,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self._client = client
        self._server_id = server_id
        self._on_change = on_change
        self.status = EditorStatus.CLOSED
        self.file: Optional[Entry] = None
        self.path: Optional[str] = None
        self.content: str = ""
        self._generation = 0

    def _changed(self) -> None:
        if self._on_change:
            self._on_change()

    def _reset(self) -> None:
        self.status = EditorStatus.CLOSED
        self.file = None
        self.path = None
        self.content = ""

    @property
    def is_open(self) -> bool:
        return self.status is not EditorStatus.CLOSED

    async def open(self, entry: Entry, path: str) -> None:
        if self.status is EditorStatus.SAVING:
            raise EditorBusyError("Cannot open another file while a save is in progress")
        if self.status in (EditorStatus.LOADING, EditorStatus.READY) and self.path == path:
            return
        if self.status is EditorStatus.READY:
            logger.info("EditorSession: discarding unsaved edits of %s", self.path)

        self._generation += 1
        generation = self._generation
        self.status = EditorStatus.LOADING
        self.file = entry
        self.path = path
        self.content = ""
        self._changed()

        try:
            content = await self._client.read_text(self._server_id, path)
        except Exception:
            if generation != self._generation:
                logger.debug("EditorSession: dropping failed read of %s", path, exc_info=True)
                return
            self._reset()
            self._changed()
            raise
        if generation != self._generation:
            logger.debug("EditorSession: discarding stale read of %s", path)
            return
        self.content = content
        self.status = EditorStatus.READY
        self._changed()

    def update(self, content: str) -> None:
        if self.status is not EditorStatus.READY:
            raise EditorStateError(f"Cannot edit while the session is {self.status.value}")
        self.content = content
        self._changed()

    async def save(self) -> None:
        if self.status is EditorStatus.SAVING:
            raise EditorBusyError()
        if self.status is not EditorStatus.READY or self.path is None:
            raise EditorStateError(f"Cannot save while the session is {self.status.value}")

        self.status = EditorStatus.SAVING
        self._changed()
        try:
            await self._client.write_text(self._server_id, self.path, self.content)
        except Exception:
            self.status = EditorStatus.READY
            self._changed()
            raise
        logger.info("EditorSession: saved %s", self.path)
        self._reset()
        self._changed()

    def close(self) -> None:
        if self.status is EditorStatus.SAVING:
            raise EditorBusyError("Cannot close while a save is in progress")
        if self.status is EditorStatus.CLOSED:
            return
        self._generation += 1
        self._reset()
        self._changed()
