"""Domain models exposed by the panelfiles package."""
from .entries import (
    ArchiveFormat,
    ArchiveRequest,
    Breadcrumb,
    EditorStatus,
    Entry,
    EntryKind,
    TransferProgress,
    TransferStatus,
    extension_of,
    sort_entries,
    sort_key,
)

__all__ = [
    "ArchiveFormat",
    "ArchiveRequest",
    "Breadcrumb",
    "EditorStatus",
    "Entry",
    "EntryKind",
    "TransferProgress",
    "TransferStatus",
    "extension_of",
    "sort_entries",
    "sort_key",
]
