"""Service registry that wires the gateway services together."""
import asyncio
import logging
from typing import Dict, Optional

from panelfiles.core.config import Settings
from panelfiles.core.request_context import request_context
from panelfiles.services.file_manager import FileManagerController
from panelfiles.services.http_remote_client import HttpRemoteDirectoryClient
from panelfiles.services.notifier import FileManagerNotifier
from panelfiles.services.remote_client import RemoteDirectoryClient

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """Container object for dependency injection.

    Owns the single panel connection and one file manager controller per
    game server, created on first use.
    """

    def __init__(self, settings: Settings, *, client: Optional[RemoteDirectoryClient] = None) -> None:
        self.settings = settings
        self.remote_client = client or HttpRemoteDirectoryClient(settings)
        self.notifier = FileManagerNotifier()
        self._controllers: Dict[str, FileManagerController] = {}
        self._startup_lock = asyncio.Lock()
        self._shutdown_lock = asyncio.Lock()
        self._started = False

    def controller(self, server_id: str) -> FileManagerController:
        controller = self._controllers.get(server_id)
        if controller is None:
            logger.debug("Creating file manager for server %s", server_id)
            controller = FileManagerController(
                self.remote_client,
                server_id,
                self.settings,
                notifier=self.notifier,
            )
            self._controllers[server_id] = controller
        return controller

    @property
    def server_ids(self) -> list[str]:
        return sorted(self._controllers)

    async def startup(self) -> None:
        async with self._startup_lock:
            if self._started:
                return
            with request_context("bg:registry"):
                logger.info("Starting background services")
                await self.remote_client.start()
                self._started = True
                logger.info("Background services started")

    async def shutdown(self) -> None:
        async with self._shutdown_lock:
            with request_context("bg:registry"):
                logger.info("Stopping background services")
                if self._started:
                    self._started = False
                    try:
                        await self.remote_client.stop()
                    except Exception as exc:  # noqa: BLE001
                        logger.error("Panel client stop failed: %s", exc, exc_info=exc)
                self._controllers.clear()
                logger.info("Background services stopped")
