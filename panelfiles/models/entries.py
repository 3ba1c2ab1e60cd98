"""Domain models for remote directory listings and file manager state."""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class EntryKind(str, Enum):
    """Kind of a remote listing row."""

    FILE = "file"
    DIRECTORY = "directory"


class TransferStatus(str, Enum):
    """Overall state of an upload batch."""

    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class EditorStatus(str, Enum):
    """States of the remote text editing session."""

    CLOSED = "closed"
    LOADING = "loading"
    READY = "ready"
    SAVING = "saving"


class ArchiveFormat(str, Enum):
    ZIP = "zip"
    TAR = "tar"
    TAR_GZ = "tar.gz"


def extension_of(name: str) -> Optional[str]:
    """Lower-cased suffix after the last dot, None for dotfiles and bare names."""
    stem, dot, suffix = name.rpartition(".")
    if not dot or not stem or not suffix:
        return None
    return suffix.lower()


class Entry(BaseModel):
    """One remote listing row. Listings are replaced wholesale, never patched."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: EntryKind
    size: int = 0
    modified_at: Optional[datetime] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def extension(self) -> Optional[str]:
        if self.kind is EntryKind.DIRECTORY:
            return None
        return extension_of(self.name)

    @property
    def is_directory(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


def sort_key(entry: Entry) -> tuple:
    """Canonical ordering: directories first, then files, both alphabetic."""
    return (not entry.is_directory, entry.name.casefold(), entry.name)


def sort_entries(entries: List[Entry]) -> List[Entry]:
    return sorted(entries, key=sort_key)


class Breadcrumb(BaseModel):
    label: str
    path: str


class ArchiveRequest(BaseModel):
    """Archive submission built from the selection and working directory."""

    paths: List[str] = Field(..., min_length=1)
    name: str
    format: ArchiveFormat = ArchiveFormat.ZIP

    @property
    def archive_name(self) -> str:
        return f"{self.name}.{self.format.value}"


class TransferProgress(BaseModel):
    """Per-item upload percentages plus the batch status.

    Status only moves forward: idle -> running -> done, or running -> failed.
    """

    items: Dict[str, int] = Field(default_factory=dict)
    status: TransferStatus = TransferStatus.IDLE
    failed_item: Optional[str] = None

    def start(self) -> None:
        if self.status is not TransferStatus.IDLE:
            raise RuntimeError(f"Cannot start a transfer in status {self.status.value}")
        self.status = TransferStatus.RUNNING

    def begin_item(self, key: str) -> None:
        self.items[key] = 0

    def advance(self, key: str, percent: int) -> None:
        current = self.items.get(key, 0)
        self.items[key] = max(current, min(100, max(0, int(percent))))

    def complete_item(self, key: str) -> None:
        self.items[key] = 100

    def finish(self) -> None:
        if self.status is not TransferStatus.RUNNING:
            raise RuntimeError(f"Cannot finish a transfer in status {self.status.value}")
        self.status = TransferStatus.DONE

    def fail(self, key: Optional[str] = None) -> None:
        if self.status is not TransferStatus.RUNNING:
            raise RuntimeError(f"Cannot fail a transfer in status {self.status.value}")
        self.status = TransferStatus.FAILED
        self.failed_item = key

    @property
    def overall_percent(self) -> int:
        if not self.items:
            return 0
        return int(sum(self.items.values()) / len(self.items))
