"""Contract for the panel backend's per-server file API."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Callable, List, Optional

from panelfiles.models import ArchiveFormat, Entry
from panelfiles.services.transfer_sources import SourceFile

ProgressCallback = Optional[Callable[[int], None]]


class RemoteError(Exception):
    """Base class for file API errors."""


class RemoteConnectionError(RemoteError):
    """Raised when the backend cannot be reached or the call times out."""


class RemoteAuthError(RemoteError):
    """Raised when the backend rejects the configured credentials."""


class RemoteNotFoundError(RemoteError):
    """Raised when the target path or server does not exist."""


class RemoteAlreadyExistsError(RemoteError):
    """Raised when creating something that already exists."""


class RemoteResponseError(RemoteError):
    """Raised for any other non-success reply."""

    def __init__(self, status: int, message: str):
        super().__init__(f"{status} {message}")
        self.status = status
        self.message = message


class RemoteStream:
    """Async byte stream for downloads and archives.

    Wraps an async chunk iterator together with the metadata a caller needs
    to relay it (file name, size when known).
    """

    def __init__(
        self,
        chunks: AsyncIterator[bytes],
        *,
        filename: str,
        size: Optional[int] = None,
        media_type: str = "application/octet-stream",
    ) -> None:
        self._chunks = chunks
        self.filename = filename
        self.size = size
        self.media_type = media_type

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._chunks

    async def read(self) -> bytes:
        return b"".join([chunk async for chunk in self._chunks])

    async def aclose(self) -> None:
        closer = getattr(self._chunks, "aclose", None)
        if closer is not None:
            await closer()


class RemoteDirectoryClient(ABC):
    """Request/response operations against one panel backend.

    The client is an explicitly owned connection handle: whoever creates it
    calls `start()` before use and `stop()` when done.
    """

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    async def ping(self) -> bool:
        return True

    @abstractmethod
    async def list(self, server_id: str, path: str) -> List[Entry]:
        ...

    @abstractmethod
    async def mkdir(self, server_id: str, path: str) -> None:
        """Create one directory; raises RemoteAlreadyExistsError when present."""

    @abstractmethod
    async def rename(self, server_id: str, old_path: str, new_name: str) -> None:
        ...

    @abstractmethod
    async def move(self, server_id: str, source_path: str, destination_path: str) -> None:
        ...

    @abstractmethod
    async def copy(self, server_id: str, source_path: str, destination_path: str) -> None:
        ...

    @abstractmethod
    async def delete(self, server_id: str, path: str) -> None:
        ...

    @abstractmethod
    async def read_text(self, server_id: str, path: str) -> str:
        ...

    @abstractmethod
    async def write_text(self, server_id: str, path: str, content: str) -> None:
        ...

    @abstractmethod
    async def upload(
        self,
        server_id: str,
        directory: str,
        handle: SourceFile,
        on_progress: ProgressCallback = None,
    ) -> None:
        """Upload `handle` into `directory`, reporting integer percentages."""

    @abstractmethod
    async def download(self, server_id: str, path: str) -> RemoteStream:
        ...

    @abstractmethod
    async def archive(
        self,
        server_id: str,
        paths: List[str],
        name: str,
        format: ArchiveFormat,
        destination_path: str,
    ) -> RemoteStream:
        ...

    @abstractmethod
    async def extract(self, server_id: str, archive_path: str, destination_path: str) -> None:
        ...
