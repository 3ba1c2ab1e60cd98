import asyncio
import os
import tempfile
from typing import AsyncIterator, Dict, List, Optional, Set, Tuple

import pytest

# Keep the module-level app in panelfiles.main away from the project root config.
os.environ.setdefault(
    "PANELFILES_CONFIG",
    os.path.join(tempfile.mkdtemp(prefix="panelfiles-tests-"), "panelfiles.json"),
)

from panelfiles.core.config import Settings  # noqa: E402
from panelfiles.models import ArchiveFormat, Entry, EntryKind  # noqa: E402
from panelfiles.services import paths  # noqa: E402
from panelfiles.services.file_manager import FileManagerController  # noqa: E402
from panelfiles.services.remote_client import (  # noqa: E402
    RemoteAlreadyExistsError,
    RemoteDirectoryClient,
    RemoteNotFoundError,
    RemoteStream,
)
from panelfiles.services.transfer_sources import SourceFile  # noqa: E402


async def _chunks(data: bytes) -> AsyncIterator[bytes]:
    for start in range(0, len(data), 4):
        yield data[start:start + 4]


class FakeRemoteClient(RemoteDirectoryClient):
    """In-memory panel backend holding one tree shared by every server id."""

    def __init__(self) -> None:
        self.dirs: Set[str] = {paths.ROOT}
        self.files: Dict[str, bytes] = {}
        self.calls: List[Tuple] = []
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.list_gates: Dict[str, asyncio.Event] = {}
        self.read_gates: Dict[str, asyncio.Event] = {}
        self.write_gate: Optional[asyncio.Event] = None
        self.started = False
        self.stopped = False

    # helpers
    def add_dir(self, path: str) -> None:
        current = paths.ROOT
        for part in paths.segments(path):
            current = paths.join(current, part)
            self.dirs.add(current)

    def add_file(self, path: str, data: bytes = b"") -> None:
        self.add_dir(paths.parent(path))
        self.files[path] = data

    def fail(self, op: str, path: str, exc: Exception) -> None:
        self.failures[(op, path)] = exc

    def _check(self, op: str, path: str) -> None:
        exc = self.failures.get((op, path))
        if exc is not None:
            raise exc

    def _exists(self, path: str) -> bool:
        return path in self.dirs or path in self.files

    def _subtree(self, path: str) -> Tuple[List[str], List[str]]:
        prefix = path.rstrip("/") + "/"
        dirs = [d for d in self.dirs if d == path or d.startswith(prefix)]
        files = [f for f in self.files if f == path or f.startswith(prefix)]
        return dirs, files

    def _relocate(self, source: str, target: str, *, keep: bool) -> None:
        if not self._exists(source):
            raise RemoteNotFoundError(f"{source} not found")
        if self._exists(target):
            raise RemoteAlreadyExistsError(f"{target} already exists")
        dirs, files = self._subtree(source)
        for d in dirs:
            self.dirs.add(target + d[len(source):])
            if not keep:
                self.dirs.discard(d)
        for f in files:
            data = self.files[f]
            self.files[target + f[len(source):]] = data
            if not keep:
                del self.files[f]

    # lifecycle
    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    # file API
    async def list(self, server_id: str, path: str) -> List[Entry]:
        self.calls.append(("list", server_id, path))
        gate = self.list_gates.get(path)
        if gate is not None:
            await gate.wait()
        self._check("list", path)
        if path not in self.dirs:
            raise RemoteNotFoundError(f"{path} not found")
        entries: List[Entry] = []
        for d in self.dirs:
            if d != paths.ROOT and paths.parent(d) == path:
                entries.append(Entry(name=paths.basename(d), kind=EntryKind.DIRECTORY))
        for f, data in self.files.items():
            if paths.parent(f) == path:
                entries.append(Entry(name=paths.basename(f), kind=EntryKind.FILE, size=len(data)))
        return entries

    async def mkdir(self, server_id: str, path: str) -> None:
        self.calls.append(("mkdir", server_id, path))
        self._check("mkdir", path)
        if self._exists(path):
            raise RemoteAlreadyExistsError(f"{path} already exists")
        if paths.parent(path) not in self.dirs:
            raise RemoteNotFoundError(f"{paths.parent(path)} not found")
        self.dirs.add(path)

    async def rename(self, server_id: str, old_path: str, new_name: str) -> None:
        self.calls.append(("rename", server_id, old_path, new_name))
        self._check("rename", old_path)
        self._relocate(old_path, paths.join(paths.parent(old_path), new_name), keep=False)

    async def move(self, server_id: str, source_path: str, destination_path: str) -> None:
        self.calls.append(("move", server_id, source_path, destination_path))
        self._check("move", source_path)
        self._relocate(source_path, destination_path, keep=False)

    async def copy(self, server_id: str, source_path: str, destination_path: str) -> None:
        self.calls.append(("copy", server_id, source_path, destination_path))
        self._check("copy", source_path)
        self._relocate(source_path, destination_path, keep=True)

    async def delete(self, server_id: str, path: str) -> None:
        self.calls.append(("delete", server_id, path))
        self._check("delete", path)
        if not self._exists(path):
            raise RemoteNotFoundError(f"{path} not found")
        dirs, files = self._subtree(path)
        for d in dirs:
            self.dirs.discard(d)
        for f in files:
            del self.files[f]

    async def read_text(self, server_id: str, path: str) -> str:
        self.calls.append(("read", server_id, path))
        gate = self.read_gates.get(path)
        if gate is not None:
            await gate.wait()
        self._check("read", path)
        if path not in self.files:
            raise RemoteNotFoundError(f"{path} not found")
        return self.files[path].decode("utf-8")

    async def write_text(self, server_id: str, path: str, content: str) -> None:
        self.calls.append(("write", server_id, path))
        if self.write_gate is not None:
            await self.write_gate.wait()
        self._check("write", path)
        self.files[path] = content.encode("utf-8")

    async def upload(self, server_id: str, directory: str, handle: SourceFile, on_progress=None) -> None:
        target = paths.join(directory, handle.name)
        self.calls.append(("upload", server_id, target))
        self._check("upload", target)
        if directory not in self.dirs:
            raise RemoteNotFoundError(f"{directory} not found")
        stream = handle.open()
        try:
            data = stream.read()
        finally:
            stream.close()
        if on_progress:
            on_progress(50)
            on_progress(30)
            on_progress(100)
        self.files[target] = data

    async def download(self, server_id: str, path: str) -> RemoteStream:
        self.calls.append(("download", server_id, path))
        self._check("download", path)
        if path not in self.files:
            raise RemoteNotFoundError(f"{path} not found")
        data = self.files[path]
        return RemoteStream(_chunks(data), filename=paths.basename(path), size=len(data))

    async def archive(
        self,
        server_id: str,
        paths_: List[str],
        name: str,
        format: ArchiveFormat,
        destination_path: str,
    ) -> RemoteStream:
        self.calls.append(("archive", server_id, tuple(paths_), name, format.value, destination_path))
        self._check("archive", destination_path)
        archive_name = f"{name}.{format.value}"
        data = ("\n".join(paths_)).encode("utf-8")
        self.files[paths.join(destination_path, archive_name)] = data
        return RemoteStream(_chunks(data), filename=archive_name, size=len(data))

    async def extract(self, server_id: str, archive_path: str, destination_path: str) -> None:
        self.calls.append(("extract", server_id, archive_path, destination_path))
        self._check("extract", archive_path)
        if archive_path not in self.files:
            raise RemoteNotFoundError(f"{archive_path} not found")
        self.dirs.add(paths.join(destination_path, "extracted"))

    def ops(self, name: str) -> List[Tuple]:
        return [call for call in self.calls if call[0] == name]


@pytest.fixture
def settings() -> Settings:
    return Settings(api_token="test-token", auth_enabled=True, disclosure_batch_size=2)


@pytest.fixture
def remote() -> FakeRemoteClient:
    client = FakeRemoteClient()
    client.add_dir("/config")
    client.add_dir("/logs")
    client.add_file("/server.properties", b"motd=hello\n")
    client.add_file("/world.zip", b"PK")
    client.add_file("/banner.png", b"\x89PNG")
    client.add_file("/config/ops.json", b"[]")
    return client


@pytest.fixture
def controller(remote: FakeRemoteClient, settings: Settings) -> FileManagerController:
    return FileManagerController(remote, "srv-1", settings)
