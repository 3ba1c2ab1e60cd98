"""File manager orchestration for one game server's working directory."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from panelfiles.core.config import Settings
from panelfiles.core.exceptions import DomainError, EditorBusyError, TransferBusyError
from panelfiles.models import (
    ArchiveFormat,
    ArchiveRequest,
    Breadcrumb,
    EditorStatus,
    Entry,
    TransferProgress,
    sort_entries,
)
from panelfiles.services import notifier as events
from panelfiles.services import paths
from panelfiles.services.editor_session import EditorSession
from panelfiles.services.notifier import FileManagerNotifier
from panelfiles.services.remote_client import RemoteDirectoryClient, RemoteError, RemoteStream
from panelfiles.services.selection import SelectionModel
from panelfiles.services.transfer_executor import TransferExecutor, TransferReport
from panelfiles.services.transfer_planner import TransferPlanner
from panelfiles.services.transfer_sources import SourceEntry
from panelfiles.services.utils.errors import normalize_remote_error

logger = logging.getLogger(__name__)

DOWNLOAD_ARCHIVE_NAME = "download"


@dataclass
class Activation:
    """What a double-activation resolved to."""

    action: str
    path: str
    stream: Optional[RemoteStream] = None


def validate_name(name: str) -> str:
    clean = (name or "").strip()
    if not clean:
        raise ValueError("Name cannot be empty")
    if "/" in clean or "\\" in clean:
        raise ValueError("Name cannot contain path separators")
    if clean in {".", ".."}:
        raise ValueError("Name is invalid")
    return clean


class FileManagerController:
    """Owns the working directory, listing, selection, transfers and editor.

    The remote backend owns all filesystem state: every mutation is followed by
    a fresh listing fetch instead of patching the local copy.
    """

    def __init__(
        self,
        client: RemoteDirectoryClient,
        server_id: str,
        settings: Settings,
        *,
        notifier: Optional[FileManagerNotifier] = None,
        planner: Optional[TransferPlanner] = None,
        executor: Optional[TransferExecutor] = None,
    ) -> None:
        self._client = client
        self.server_id = server_id
        self._notifier = notifier or FileManagerNotifier()
        self._planner = planner or TransferPlanner()
        self._executor = executor or TransferExecutor(client)
        self._editable = {ext.lower() for ext in settings.editable_extensions}
        self._archives = {ext.lower() for ext in settings.archive_extensions}

        self.cwd = paths.ROOT
        self.entries: List[Entry] = []
        self.selection = SelectionModel()
        self.editor = EditorSession(client, server_id, on_change=lambda: self._emit(events.EDITOR))
        self.transfer = TransferProgress()
        self.last_transfer: Optional[TransferReport] = None
        self.last_error: Optional[str] = None
        self.filter_query = ""
        self.loaded = False
        self._transfer_active = False

    # -------------------------
    # helpers
    # -------------------------
    def _emit(self, event: str) -> None:
        self._notifier.notify(self.server_id, event)

    def _fail(self, exc: Exception, fallback: str) -> DomainError:
        error = normalize_remote_error(exc, fallback=fallback)
        self.last_error = error.detail
        logger.warning("FileManager[%s]: %s: %s", self.server_id, fallback, error.detail)
        return error

    def entry(self, name: str) -> Entry:
        for item in self.entries:
            if item.name == name:
                return item
        raise ValueError(f"'{name}' is not in the current listing")

    def path_of(self, name: str) -> str:
        return paths.join(self.cwd, name)

    def breadcrumbs(self) -> List[Breadcrumb]:
        return paths.breadcrumbs(self.cwd)

    def visible_entries(self) -> List[Entry]:
        query = self.filter_query.casefold()
        if not query:
            return list(self.entries)
        return [item for item in self.entries if query in item.name.casefold()]

    def totals(self) -> dict:
        files = [item for item in self.entries if not item.is_directory]
        return {
            "file_count": len(files),
            "directory_count": len(self.entries) - len(files),
            "total_size": sum(item.size for item in files),
        }

    def is_editable(self, entry: Entry) -> bool:
        return not entry.is_directory and entry.extension in self._editable

    def is_archive(self, entry: Entry) -> bool:
        return not entry.is_directory and entry.extension in self._archives

    def selection_is_archive(self) -> bool:
        if len(self.selection) != 1:
            return False
        name = next(iter(self.selection.selected))
        return self.is_archive(self.entry(name))

    def _selected_names(self) -> List[str]:
        names = self.selection.ordered()
        if not names:
            raise ValueError("No items selected")
        return names

    def _single_target(self, name: Optional[str]) -> str:
        if name is not None:
            self.entry(name)
            return name
        names = self.selection.ordered()
        if len(names) != 1:
            raise ValueError("Select exactly one item")
        return names[0]

    # -------------------------
    # listing & navigation
    # -------------------------
    async def refresh(self) -> bool:
        """Fetch the listing; a response for a directory already left is dropped."""
        path = self.cwd
        try:
            entries = await self._client.list(self.server_id, path)
        except RemoteError as exc:
            if path != self.cwd:
                logger.debug("FileManager[%s]: ignoring failed listing of %s", self.server_id, path)
                return False
            self.entries = []
            self.selection.set_listing([])
            self._emit(events.LISTING)
            raise self._fail(exc, "Failed to load files") from exc

        if path != self.cwd:
            logger.debug("FileManager[%s]: discarding stale listing of %s", self.server_id, path)
            return False
        self.entries = sort_entries(entries)
        self.selection.set_listing([item.name for item in self.entries])
        self.loaded = True
        self._emit(events.LISTING)
        return True

    async def navigate_to(self, path: str) -> None:
        target = paths.normalize(path)
        self.cwd = target
        self.entries = []
        self.selection.clear()
        self.selection.set_listing([])
        self._emit(events.SELECTION)
        await self.refresh()

    async def navigate_into(self, name: str) -> None:
        entry = self.entry(name)
        if not entry.is_directory:
            raise ValueError(f"'{name}' is not a directory")
        await self.navigate_to(self.path_of(name))

    async def navigate_up(self) -> None:
        if self.cwd == paths.ROOT:
            return
        await self.navigate_to(paths.parent(self.cwd))

    def set_filter(self, query: str) -> None:
        self.filter_query = (query or "").strip()
        self._emit(events.LISTING)

    # -------------------------
    # selection gestures
    # -------------------------
    def click(self, name: str) -> None:
        self.selection.click(name)
        self._emit(events.SELECTION)

    def toggle(self, name: str) -> None:
        self.selection.toggle(name)
        self._emit(events.SELECTION)

    def range_select(self, name: str) -> None:
        self.selection.range_select(name)
        self._emit(events.SELECTION)

    def select_all(self) -> None:
        self.selection.select_all()
        self._emit(events.SELECTION)

    def clear_selection(self) -> None:
        self.selection.clear()
        self._emit(events.SELECTION)

    # -------------------------
    # transfers
    # -------------------------
    @property
    def transfer_active(self) -> bool:
        return self._transfer_active

    async def upload(self, items: Sequence[SourceEntry]) -> TransferReport:
        """Disclose the dropped items completely, then run the batch.

        The destination is captured before disclosure starts, so navigating
        away while the batch runs does not redirect it. The listing is
        refreshed once afterwards, whether the batch succeeded or not.
        """
        if self._transfer_active:
            raise TransferBusyError()
        destination = self.cwd
        self._transfer_active = True
        try:
            plan = await self._planner.plan(items, destination)
            self.transfer = TransferProgress()
            report = await self._executor.execute(
                self.server_id,
                plan,
                self.transfer,
                on_progress=lambda _progress: self._emit(events.TRANSFER),
            )
        except (DomainError, ValueError) as exc:
            self.last_error = str(exc)
            raise
        except Exception as exc:
            logger.exception("FileManager[%s]: upload batch into %s aborted", self.server_id, destination)
            raise self._fail(exc, "Upload failed") from exc
        else:
            self.last_transfer = report
            if report.error:
                self.last_error = report.error
            elif report.skipped:
                self.last_error = (
                    f"Upload of {report.label} skipped {len(report.skipped)} unreadable folder(s)"
                )
            return report
        finally:
            self._transfer_active = False
            self.transfer = TransferProgress()
            self._emit(events.TRANSFER)
            try:
                await self.refresh()
            except DomainError as exc:
                logger.warning("FileManager[%s]: refresh after upload failed: %s", self.server_id, exc.detail)

    # -------------------------
    # editor
    # -------------------------
    async def open_editor(self, name: str) -> None:
        entry = self.entry(name)
        if entry.is_directory:
            raise ValueError(f"'{name}' is a directory")
        try:
            await self.editor.open(entry, self.path_of(name))
        except RemoteError as exc:
            raise self._fail(exc, "Failed to read file") from exc

    def update_editor(self, content: str) -> None:
        self.editor.update(content)

    async def save_editor(self, content: Optional[str] = None) -> None:
        if self.editor.status is EditorStatus.SAVING:
            raise EditorBusyError()
        if content is not None:
            self.editor.update(content)
        try:
            await self.editor.save()
        except RemoteError as exc:
            raise self._fail(exc, "Failed to save file") from exc
        await self.refresh()

    def close_editor(self) -> None:
        self.editor.close()

    # -------------------------
    # pass-throughs
    # -------------------------
    async def create_folder(self, name: str) -> str:
        folder = self.path_of(validate_name(name))
        try:
            await self._client.mkdir(self.server_id, folder)
        except RemoteError as exc:
            raise self._fail(exc, "Folder creation failed") from exc
        await self.refresh()
        return folder

    async def rename(self, new_name: str, name: Optional[str] = None) -> str:
        target = self._single_target(name)
        clean = validate_name(new_name)
        try:
            await self._client.rename(self.server_id, self.path_of(target), clean)
        except RemoteError as exc:
            raise self._fail(exc, "Rename failed") from exc
        await self.refresh()
        if clean in {item.name for item in self.entries}:
            self.selection.click(clean)
            self._emit(events.SELECTION)
        return self.path_of(clean)

    async def move(self, destination: str) -> List[str]:
        names = self._selected_names()
        target_dir = paths.normalize(destination)
        moved: List[str] = []
        for name in names:
            try:
                await self._client.move(self.server_id, self.path_of(name), paths.join(target_dir, name))
            except RemoteError as exc:
                raise self._fail(exc, f"Move of '{name}' failed") from exc
            moved.append(name)
        self.selection.clear()
        await self.refresh()
        return moved

    async def copy(self, destination: Optional[str] = None) -> List[str]:
        names = self._selected_names()
        target_dir = paths.normalize(destination) if destination else None
        copies: List[str] = []
        for name in names:
            if target_dir is None:
                target = self.path_of(f"{name}_copy")
            else:
                target = paths.join(target_dir, name)
            try:
                await self._client.copy(self.server_id, self.path_of(name), target)
            except RemoteError as exc:
                raise self._fail(exc, f"Copy of '{name}' failed") from exc
            copies.append(target)
        self.selection.clear()
        await self.refresh()
        return copies

    async def delete(self) -> List[str]:
        names = self._selected_names()
        deleted: List[str] = []
        for name in names:
            try:
                await self._client.delete(self.server_id, self.path_of(name))
            except RemoteError as exc:
                raise self._fail(exc, f"Delete of '{name}' failed") from exc
            deleted.append(self.path_of(name))
        self.selection.clear()
        await self.refresh()
        return deleted

    def build_archive_request(self, name: str, format: ArchiveFormat = ArchiveFormat.ZIP) -> ArchiveRequest:
        return ArchiveRequest(
            paths=[self.path_of(item) for item in self._selected_names()],
            name=validate_name(name),
            format=format,
        )

    async def archive(self, name: str, format: ArchiveFormat = ArchiveFormat.ZIP) -> RemoteStream:
        request = self.build_archive_request(name, format)
        try:
            stream = await self._client.archive(
                self.server_id, request.paths, request.name, request.format, self.cwd
            )
        except RemoteError as exc:
            raise self._fail(exc, "Archive creation failed") from exc
        await self.refresh()
        return stream

    async def extract(self, name: Optional[str] = None) -> str:
        target = self._single_target(name)
        if not self.is_archive(self.entry(target)):
            raise ValueError(f"'{target}' is not an archive")
        try:
            await self._client.extract(self.server_id, self.path_of(target), self.cwd)
        except RemoteError as exc:
            raise self._fail(exc, "Extraction failed") from exc
        await self.refresh()
        return self.cwd

    async def download(self, name: str) -> RemoteStream:
        entry = self.entry(name)
        if entry.is_directory:
            raise ValueError(f"'{name}' is a directory")
        try:
            return await self._client.download(self.server_id, self.path_of(name))
        except RemoteError as exc:
            raise self._fail(exc, "Download failed") from exc

    async def download_selection(self) -> RemoteStream:
        names = self._selected_names()
        if len(names) == 1 and not self.entry(names[0]).is_directory:
            return await self.download(names[0])
        return await self.archive(DOWNLOAD_ARCHIVE_NAME)

    async def activate(self, name: str) -> Activation:
        entry = self.entry(name)
        path = self.path_of(name)
        if entry.is_directory:
            await self.navigate_to(path)
            return Activation(action="navigate", path=path)
        if self.is_editable(entry):
            await self.open_editor(name)
            return Activation(action="edit", path=path)
        stream = await self.download(name)
        return Activation(action="download", path=path, stream=stream)
