"""Schemas for the file manager endpoints."""
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from panelfiles.models import ArchiveFormat, Breadcrumb, EditorStatus, EntryKind, TransferStatus
from panelfiles.schemas.common import SimpleMessage


class FileEntry(BaseModel):
    """Single listing row as shown in the file table."""

    name: str
    path: str
    kind: EntryKind
    is_directory: bool
    size: int
    size_label: str
    modified_at: Optional[datetime] = None
    extension: Optional[str] = None
    selected: bool = False
    editable: bool = False
    archive: bool = False


class FileTotals(BaseModel):
    file_count: int
    directory_count: int
    total_size: int
    total_size_label: str


class TransferProgressResponse(BaseModel):
    active: bool
    status: TransferStatus
    items: Dict[str, int] = Field(default_factory=dict)
    overall_percent: int = 0
    failed_item: Optional[str] = None


class TransferReportResponse(BaseModel):
    """Outcome of the last finished upload batch."""

    label: str
    destination: str
    status: TransferStatus
    ok: bool
    progress: Dict[str, int] = Field(default_factory=dict)
    folders_created: List[str] = Field(default_factory=list)
    folder_errors: List[Dict[str, str]] = Field(default_factory=list)
    uploaded: List[str] = Field(default_factory=list)
    skipped: List[Dict[str, str]] = Field(default_factory=list)
    failed_item: Optional[str] = None
    error: Optional[str] = None


class EditorResponse(BaseModel):
    status: EditorStatus
    path: Optional[str] = None
    name: Optional[str] = None
    content: str = ""


class FileManagerState(BaseModel):
    """Full file manager view for one game server."""

    server_id: str
    cwd: str
    breadcrumbs: List[Breadcrumb]
    entries: List[FileEntry]
    filter: str = ""
    selection: List[str] = Field(default_factory=list)
    anchor: Optional[str] = None
    selection_is_archive: bool = False
    totals: FileTotals
    transfer: TransferProgressResponse
    last_transfer: Optional[TransferReportResponse] = None
    last_error: Optional[str] = None
    editor: EditorResponse


class NavigateRequest(BaseModel):
    path: Optional[str] = Field(default=None, description="Absolute remote path to open")
    name: Optional[str] = Field(default=None, description="Child directory of the working directory")
    up: bool = Field(default=False, description="Go to the parent directory")


class SelectionRequest(BaseModel):
    action: Literal["click", "toggle", "range", "all", "clear"]
    name: Optional[str] = None


class FilterRequest(BaseModel):
    query: str = ""


class NameRequest(BaseModel):
    name: str = Field(..., min_length=1)


class RenameRequest(BaseModel):
    new_name: str = Field(..., min_length=1)
    name: Optional[str] = Field(default=None, description="Entry to rename, defaults to the single selected one")


class DestinationRequest(BaseModel):
    destination: str = Field(..., min_length=1)


class CopyRequest(BaseModel):
    destination: Optional[str] = None


class ArchiveCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    format: ArchiveFormat = ArchiveFormat.ZIP


class ExtractRequest(BaseModel):
    name: Optional[str] = None


class EditorOpenRequest(BaseModel):
    name: str = Field(..., min_length=1)


class EditorContentRequest(BaseModel):
    content: str


class EditorSaveRequest(BaseModel):
    content: Optional[str] = None


class ActivateResponse(BaseModel):
    action: Literal["navigate", "edit"]
    path: str
    state: FileManagerState


class FileOperationResponse(SimpleMessage):
    """Result of a pass-through file operation."""

    path: Optional[str] = None
    paths: List[str] = Field(default_factory=list)
