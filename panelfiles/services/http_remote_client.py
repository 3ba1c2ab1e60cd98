"""`requests`-backed RemoteDirectoryClient for the panel backend file API.

- Blocking HTTP calls run on worker threads via asyncio.to_thread
- Upload progress is counted on the worker thread and handed back to the loop
- Backend error replies are mapped onto the RemoteError hierarchy
"""

import asyncio
import logging
import re
from typing import AsyncIterator, Callable, List, Optional

import requests
from requests_toolbelt.multipart.encoder import MultipartEncoder, MultipartEncoderMonitor

from panelfiles.core.config import Settings
from panelfiles.core.metrics import metrics
from panelfiles.models import ArchiveFormat, Entry, EntryKind
from panelfiles.services.paths import basename
from panelfiles.services.remote_client import (
    ProgressCallback,
    RemoteAlreadyExistsError,
    RemoteAuthError,
    RemoteConnectionError,
    RemoteDirectoryClient,
    RemoteError,
    RemoteNotFoundError,
    RemoteResponseError,
    RemoteStream,
)
from panelfiles.services.transfer_sources import SourceFile

logger = logging.getLogger(__name__)

_FILENAME_RE = re.compile(r'filename="?([^";]+)"?')


class HttpRemoteDirectoryClient(RemoteDirectoryClient):
    def __init__(self, settings: Settings, *, session_factory: Callable[[], requests.Session] = requests.Session):
        self._settings = settings
        self._session_factory = session_factory
        self._session: Optional[requests.Session] = None
        base = settings.panel_url.rstrip("/")
        if base.endswith("/api"):
            base = base[: -len("/api")]
        self._base_url = base
        self._timeout = settings.request_timeout
        self._upload_timeout = settings.upload_timeout
        self._chunk_size = settings.chunk_size

    # -------------------------
    # lifecycle
    # -------------------------
    async def start(self) -> None:
        if self._session is not None:
            return
        session = self._session_factory()
        if self._settings.panel_token:
            session.headers["Authorization"] = f"Bearer {self._settings.panel_token}"
        self._session = session
        logger.info("HttpRemoteDirectoryClient: session opened for %s", self._base_url)

    async def stop(self) -> None:
        if self._session is None:
            return
        session, self._session = self._session, None
        try:
            await asyncio.to_thread(session.close)
        except Exception as exc:  # noqa: BLE001
            logger.warning("HttpRemoteDirectoryClient: error closing session: %s", exc)
        logger.info("HttpRemoteDirectoryClient: session closed")

    async def ping(self) -> bool:
        try:
            response = await self._call("ping", "GET", f"{self._base_url}/api/health", timeout=5.0)
        except RemoteError as exc:
            logger.warning("HttpRemoteDirectoryClient: health check failed: %s", exc)
            return False
        response.close()
        return True

    # -------------------------
    # helpers
    # -------------------------
    def _url(self, endpoint: str) -> str:
        return f"{self._base_url}/api/files/{endpoint}"

    @staticmethod
    def _error_for(response: requests.Response) -> RemoteError:
        message = ""
        try:
            payload = response.json()
            if isinstance(payload, dict):
                message = str(payload.get("error") or payload.get("message") or "")
        except ValueError:
            message = ""
        if not message:
            message = (response.text or response.reason or "").strip() or "Request failed"
        status = response.status_code
        if status == 409:
            return RemoteAlreadyExistsError(message)
        if status == 404:
            return RemoteNotFoundError(message)
        if status in (401, 403):
            return RemoteAuthError(message)
        return RemoteResponseError(status, message)

    def _send(self, method: str, url: str, *, timeout: Optional[float] = None, **kwargs) -> requests.Response:
        session = self._session
        if session is None:
            raise RemoteConnectionError("Remote client is not started")
        try:
            response = session.request(method, url, timeout=timeout or self._timeout, **kwargs)
        except requests.Timeout as exc:
            raise RemoteConnectionError(f"{method} {url} timed out") from exc
        except requests.ConnectionError as exc:
            raise RemoteConnectionError(f"{method} {url} failed: {exc}") from exc
        except requests.RequestException as exc:
            raise RemoteError(str(exc)) from exc
        if response.status_code >= 400:
            error = self._error_for(response)
            response.close()
            raise error
        return response

    async def _call(self, op: str, method: str, url: str, **kwargs) -> requests.Response:
        name = f"remote.{op}"
        try:
            with metrics.timed(name):
                return await asyncio.to_thread(self._send, method, url, **kwargs)
        finally:
            if metrics.should_alert(name):
                logger.warning("HttpRemoteDirectoryClient: %s is failing or slow", name)

    async def _json(self, op: str, method: str, endpoint: str, **kwargs) -> dict:
        response = await self._call(op, method, self._url(endpoint), **kwargs)
        try:
            if not response.content:
                return {}
            payload = response.json()
        except ValueError as exc:
            raise RemoteResponseError(response.status_code, "Invalid JSON in response") from exc
        finally:
            response.close()
        return payload if isinstance(payload, dict) else {}

    async def _stream_chunks(self, response: requests.Response) -> AsyncIterator[bytes]:
        iterator = response.iter_content(chunk_size=self._chunk_size)
        try:
            while True:
                chunk = await asyncio.to_thread(next, iterator, None)
                if chunk is None:
                    break
                if chunk:
                    yield chunk
        finally:
            response.close()

    def _to_stream(self, response: requests.Response, fallback_name: str) -> RemoteStream:
        disposition = response.headers.get("Content-Disposition", "")
        match = _FILENAME_RE.search(disposition)
        filename = match.group(1) if match else fallback_name
        length = response.headers.get("Content-Length")
        size = int(length) if length and length.isdigit() else None
        return RemoteStream(
            self._stream_chunks(response),
            filename=filename,
            size=size,
            media_type=response.headers.get("Content-Type", "application/octet-stream"),
        )

    @staticmethod
    def _parse_entry(item: dict) -> Optional[Entry]:
        name = item.get("name")
        if not name or name in {".", ".."}:
            return None
        kind = EntryKind.DIRECTORY if item.get("type") == "directory" else EntryKind.FILE
        try:
            return Entry(
                name=name,
                kind=kind,
                size=int(item.get("size") or 0),
                modified_at=item.get("modified") or None,
            )
        except (TypeError, ValueError) as exc:
            logger.warning("HttpRemoteDirectoryClient: skipping malformed entry %r: %s", name, exc)
            return None

    # -------------------------
    # file API
    # -------------------------
    async def list(self, server_id: str, path: str) -> List[Entry]:
        payload = await self._json("list", "GET", "list", params={"serverId": server_id, "path": path})
        entries: List[Entry] = []
        for item in payload.get("files") or []:
            if not isinstance(item, dict):
                continue
            entry = self._parse_entry(item)
            if entry:
                entries.append(entry)
        return entries

    async def mkdir(self, server_id: str, path: str) -> None:
        await self._json("mkdir", "POST", "folder", json={"serverId": server_id, "path": path})

    async def rename(self, server_id: str, old_path: str, new_name: str) -> None:
        await self._json(
            "rename", "POST", "rename",
            json={"serverId": server_id, "oldPath": old_path, "newName": new_name},
        )

    async def move(self, server_id: str, source_path: str, destination_path: str) -> None:
        await self._json(
            "move", "POST", "move",
            json={"serverId": server_id, "sourcePath": source_path, "destinationPath": destination_path},
        )

    async def copy(self, server_id: str, source_path: str, destination_path: str) -> None:
        await self._json(
            "copy", "POST", "copy",
            json={"serverId": server_id, "sourcePath": source_path, "destinationPath": destination_path},
        )

    async def delete(self, server_id: str, path: str) -> None:
        await self._json("delete", "DELETE", "delete", params={"serverId": server_id, "path": path})

    async def read_text(self, server_id: str, path: str) -> str:
        payload = await self._json("read", "GET", "read", params={"serverId": server_id, "path": path})
        return str(payload.get("content") or "")

    async def write_text(self, server_id: str, path: str, content: str) -> None:
        await self._json(
            "write", "POST", "write",
            json={"serverId": server_id, "path": path, "content": content},
        )

    async def upload(
        self,
        server_id: str,
        directory: str,
        handle: SourceFile,
        on_progress: ProgressCallback = None,
    ) -> None:
        loop = asyncio.get_running_loop()
        last_percent = -1

        def _progress(monitor: MultipartEncoderMonitor) -> None:
            nonlocal last_percent
            if not on_progress or not monitor.len:
                return
            percent = min(100, int(monitor.bytes_read * 100 / monitor.len))
            if percent == last_percent:
                return
            last_percent = percent
            loop.call_soon_threadsafe(on_progress, percent)

        def _do_upload() -> requests.Response:
            stream = handle.open()
            try:
                # text fields go first so the backend sees them before the `file` part
                encoder = MultipartEncoder(
                    fields=[
                        ("serverId", server_id),
                        ("path", directory),
                        ("file", (handle.name, stream, "application/octet-stream")),
                    ]
                )
                body = MultipartEncoderMonitor(encoder, _progress)
                return self._send(
                    "POST",
                    self._url("upload"),
                    data=body,
                    headers={"Content-Type": body.content_type},
                    timeout=self._upload_timeout,
                )
            finally:
                stream.close()

        with metrics.timed("remote.upload"):
            response = await asyncio.to_thread(_do_upload)
        response.close()
        logger.debug("HttpRemoteDirectoryClient: uploaded %s into %s", handle.name, directory)

    async def download(self, server_id: str, path: str) -> RemoteStream:
        response = await self._call(
            "download", "GET", self._url("download"),
            params={"serverId": server_id, "path": path},
            stream=True,
        )
        return self._to_stream(response, basename(path) or "download")

    async def archive(
        self,
        server_id: str,
        paths: List[str],
        name: str,
        format: ArchiveFormat,
        destination_path: str,
    ) -> RemoteStream:
        archive_name = f"{name}.{format.value}"
        response = await self._call(
            "archive", "POST", self._url("archive"),
            json={
                "serverId": server_id,
                "paths": paths,
                "archiveName": archive_name,
                "format": format.value,
                "destinationPath": destination_path,
            },
            stream=True,
        )
        return self._to_stream(response, archive_name)

    async def extract(self, server_id: str, archive_path: str, destination_path: str) -> None:
        await self._json(
            "extract", "POST", "extract",
            json={"serverId": server_id, "archivePath": archive_path, "destinationPath": destination_path},
        )
