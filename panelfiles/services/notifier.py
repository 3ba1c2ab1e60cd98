"""Publish file manager state changes to registered observers."""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Set

from panelfiles.core.request_context import server_context

FileManagerHook = Callable[[str, str], Awaitable[None] | None]

logger = logging.getLogger(__name__)

LISTING = "listing"
SELECTION = "selection"
TRANSFER = "transfer"
EDITOR = "editor"


class FileManagerNotifier:
    """Central dispatcher for `(server_id, event)` hooks."""

    def __init__(self) -> None:
        self._hooks: List[FileManagerHook] = []
        self._pending: Set[asyncio.Task] = set()

    def register(self, hook: FileManagerHook) -> None:
        self._hooks.append(hook)

    def unregister(self, hook: FileManagerHook) -> None:
        if hook in self._hooks:
            self._hooks.remove(hook)

    def notify(self, server_id: str, event: str) -> None:
        """Run hooks inline; coroutine hooks are scheduled on the running loop."""
        for hook in list(self._hooks):
            try:
                result = hook(server_id, event)
                if inspect.isawaitable(result):
                    self._schedule(result, server_id, event)
            except Exception:  # noqa: BLE001
                logger.warning("File manager hook failed for server %s (%s)", server_id, event)

    def _schedule(self, awaitable: Awaitable[None], server_id: str, event: str) -> None:
        async def _runner() -> None:
            try:
                with server_context(server_id):
                    await awaitable
            except Exception:  # noqa: BLE001
                logger.warning("File manager hook failed for server %s (%s)", server_id, event)

        task = asyncio.get_running_loop().create_task(_runner())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
