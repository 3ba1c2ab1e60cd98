"""Pydantic schemas exposed by the gateway API."""
from .common import ErrorResponse, SimpleMessage
from .files import (
    ActivateResponse,
    ArchiveCreateRequest,
    CopyRequest,
    DestinationRequest,
    EditorContentRequest,
    EditorOpenRequest,
    EditorResponse,
    EditorSaveRequest,
    ExtractRequest,
    FileEntry,
    FileManagerState,
    FileOperationResponse,
    FileTotals,
    FilterRequest,
    NameRequest,
    NavigateRequest,
    RenameRequest,
    SelectionRequest,
    TransferProgressResponse,
    TransferReportResponse,
)

__all__ = [
    "ErrorResponse",
    "SimpleMessage",
    "ActivateResponse",
    "ArchiveCreateRequest",
    "CopyRequest",
    "DestinationRequest",
    "EditorContentRequest",
    "EditorOpenRequest",
    "EditorResponse",
    "EditorSaveRequest",
    "ExtractRequest",
    "FileEntry",
    "FileManagerState",
    "FileOperationResponse",
    "FileTotals",
    "FilterRequest",
    "NameRequest",
    "NavigateRequest",
    "RenameRequest",
    "SelectionRequest",
    "TransferProgressResponse",
    "TransferReportResponse",
]
