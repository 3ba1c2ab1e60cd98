"""File manager endpoints for one game server."""
import json
import logging
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import StreamingResponse

from panelfiles.api.dependencies import get_controller, get_service_registry
from panelfiles.core.exceptions import BadRequestError
from panelfiles.schemas import (
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
from panelfiles.services.file_manager import FileManagerController
from panelfiles.services.registry import ServiceRegistry
from panelfiles.services.remote_client import RemoteStream
from panelfiles.services.transfer_executor import TransferReport
from panelfiles.services.transfer_sources import StreamFile, build_tree
from panelfiles.services.utils.formatting import format_size

logger = logging.getLogger(__name__)

router = APIRouter()


# -------------------------
# presentation helpers
# -------------------------
def _report_payload(report: TransferReport) -> TransferReportResponse:
    return TransferReportResponse(
        label=report.label,
        destination=report.destination,
        status=report.status,
        ok=report.ok,
        progress=report.progress,
        folders_created=report.folders_created,
        folder_errors=[{"path": path, "error": error} for path, error in report.folder_errors],
        uploaded=report.uploaded,
        skipped=[{"path": path, "reason": reason} for path, reason in report.skipped],
        failed_item=report.failed_item,
        error=report.error,
    )


def _transfer_payload(controller: FileManagerController) -> TransferProgressResponse:
    progress = controller.transfer
    return TransferProgressResponse(
        active=controller.transfer_active,
        status=progress.status,
        items=dict(progress.items),
        overall_percent=progress.overall_percent,
        failed_item=progress.failed_item,
    )


def _editor_payload(controller: FileManagerController) -> EditorResponse:
    editor = controller.editor
    return EditorResponse(
        status=editor.status,
        path=editor.path,
        name=editor.file.name if editor.file else None,
        content=editor.content,
    )


def _state(controller: FileManagerController) -> FileManagerState:
    selected = controller.selection.selected
    entries = [
        FileEntry(
            name=item.name,
            path=controller.path_of(item.name),
            kind=item.kind,
            is_directory=item.is_directory,
            size=item.size,
            size_label="" if item.is_directory else format_size(item.size),
            modified_at=item.modified_at,
            extension=item.extension,
            selected=item.name in selected,
            editable=controller.is_editable(item),
            archive=controller.is_archive(item),
        )
        for item in controller.visible_entries()
    ]
    totals = controller.totals()
    return FileManagerState(
        server_id=controller.server_id,
        cwd=controller.cwd,
        breadcrumbs=controller.breadcrumbs(),
        entries=entries,
        filter=controller.filter_query,
        selection=controller.selection.ordered(),
        anchor=controller.selection.anchor,
        selection_is_archive=controller.selection_is_archive(),
        totals=FileTotals(
            total_size_label=format_size(totals["total_size"]),
            **totals,
        ),
        transfer=_transfer_payload(controller),
        last_transfer=_report_payload(controller.last_transfer) if controller.last_transfer else None,
        last_error=controller.last_error,
        editor=_editor_payload(controller),
    )


def _stream_response(stream: RemoteStream) -> StreamingResponse:
    async def _relay():
        try:
            async for chunk in stream:
                yield chunk
        finally:
            await stream.aclose()

    headers = {
        "Content-Disposition": f"attachment; filename*=UTF-8''{quote(stream.filename)}",
    }
    if stream.size is not None:
        headers["X-File-Size"] = str(stream.size)
    return StreamingResponse(_relay(), media_type=stream.media_type, headers=headers)


def _parse_relative_paths(raw: Optional[str], count: int) -> Optional[List[str]]:
    if not raw:
        return None
    try:
        values = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise BadRequestError("relative_paths must be a JSON list of strings") from exc
    if not isinstance(values, list) or not all(isinstance(value, str) for value in values):
        raise BadRequestError("relative_paths must be a JSON list of strings")
    if len(values) != count:
        raise BadRequestError("relative_paths must have one entry per uploaded file")
    return values


# -------------------------
# listing & navigation
# -------------------------
@router.get("", response_model=FileManagerState, summary="Current file manager state")
async def read_state(
    refresh: bool = Query(False, description="Reload the listing before answering"),
    controller: FileManagerController = Depends(get_controller),
) -> FileManagerState:
    if refresh:
        await controller.refresh()
    return _state(controller)


@router.post("/refresh", response_model=FileManagerState, summary="Reload the working directory")
async def refresh_listing(controller: FileManagerController = Depends(get_controller)) -> FileManagerState:
    await controller.refresh()
    return _state(controller)


@router.post("/navigate", response_model=FileManagerState, summary="Change the working directory")
async def navigate(
    payload: NavigateRequest,
    controller: FileManagerController = Depends(get_controller),
) -> FileManagerState:
    if payload.up:
        await controller.navigate_up()
    elif payload.name is not None:
        await controller.navigate_into(payload.name)
    elif payload.path is not None:
        await controller.navigate_to(payload.path)
    else:
        raise BadRequestError("Provide path, name or up")
    return _state(controller)


@router.post("/filter", response_model=FileManagerState, summary="Filter the visible listing by name")
async def set_filter(
    payload: FilterRequest,
    controller: FileManagerController = Depends(get_controller),
) -> FileManagerState:
    controller.set_filter(payload.query)
    return _state(controller)


@router.post("/selection", response_model=FileManagerState, summary="Apply a selection gesture")
async def change_selection(
    payload: SelectionRequest,
    controller: FileManagerController = Depends(get_controller),
) -> FileManagerState:
    if payload.action in {"click", "toggle", "range"} and not payload.name:
        raise BadRequestError(f"Selection action '{payload.action}' requires a name")
    if payload.action == "click":
        controller.click(payload.name)
    elif payload.action == "toggle":
        controller.toggle(payload.name)
    elif payload.action == "range":
        controller.range_select(payload.name)
    elif payload.action == "all":
        controller.select_all()
    else:
        controller.clear_selection()
    return _state(controller)


@router.post("/activate", summary="Open a folder, edit a text file or download anything else")
async def activate(
    payload: NameRequest,
    controller: FileManagerController = Depends(get_controller),
):
    activation = await controller.activate(payload.name)
    if activation.stream is not None:
        return _stream_response(activation.stream)
    return ActivateResponse(action=activation.action, path=activation.path, state=_state(controller))


# -------------------------
# transfers
# -------------------------
@router.post("/upload", response_model=TransferReportResponse, summary="Upload files and folders")
async def upload(
    files: List[UploadFile] = File(..., description="Files to upload"),
    relative_paths: Optional[str] = Form(
        None,
        description="JSON list with each file's path relative to the drop, in upload order",
    ),
    controller: FileManagerController = Depends(get_controller),
    registry: ServiceRegistry = Depends(get_service_registry),
) -> TransferReportResponse:
    names = _parse_relative_paths(relative_paths, len(files))
    handles = [
        StreamFile(upload.filename or f"upload-{index}", upload.file, upload.size)
        for index, upload in enumerate(files)
    ]
    relative = names or [handle.name for handle in handles]
    try:
        items = build_tree(
            zip(relative, handles),
            batch_size=registry.settings.disclosure_batch_size,
        )
    except ValueError as exc:
        raise BadRequestError(str(exc)) from exc

    report = await controller.upload(items)
    return _report_payload(report)


@router.get("/transfer", response_model=TransferProgressResponse, summary="Live upload progress")
async def read_transfer(controller: FileManagerController = Depends(get_controller)) -> TransferProgressResponse:
    return _transfer_payload(controller)


# -------------------------
# editor
# -------------------------
@router.get("/editor", response_model=EditorResponse, summary="Editor session state")
async def read_editor(controller: FileManagerController = Depends(get_controller)) -> EditorResponse:
    return _editor_payload(controller)


@router.post("/editor/open", response_model=EditorResponse, summary="Load a text file into the editor")
async def open_editor(
    payload: EditorOpenRequest,
    controller: FileManagerController = Depends(get_controller),
) -> EditorResponse:
    await controller.open_editor(payload.name)
    return _editor_payload(controller)


@router.put("/editor/content", response_model=EditorResponse, summary="Replace the edited content")
async def update_editor(
    payload: EditorContentRequest,
    controller: FileManagerController = Depends(get_controller),
) -> EditorResponse:
    controller.update_editor(payload.content)
    return _editor_payload(controller)


@router.post("/editor/save", response_model=FileManagerState, summary="Write the edited content back")
async def save_editor(
    payload: EditorSaveRequest,
    controller: FileManagerController = Depends(get_controller),
) -> FileManagerState:
    await controller.save_editor(payload.content)
    return _state(controller)


@router.post("/editor/close", response_model=EditorResponse, summary="Discard the editor session")
async def close_editor(controller: FileManagerController = Depends(get_controller)) -> EditorResponse:
    controller.close_editor()
    return _editor_payload(controller)


# -------------------------
# pass-through operations
# -------------------------
@router.post("/folders", response_model=FileOperationResponse, summary="Create a folder in the working directory")
async def create_folder(
    payload: NameRequest,
    controller: FileManagerController = Depends(get_controller),
) -> FileOperationResponse:
    path = await controller.create_folder(payload.name)
    return FileOperationResponse(success=True, message=f"Folder '{payload.name.strip()}' created", path=path)


@router.post("/rename", response_model=FileOperationResponse, summary="Rename one entry")
async def rename(
    payload: RenameRequest,
    controller: FileManagerController = Depends(get_controller),
) -> FileOperationResponse:
    path = await controller.rename(payload.new_name, payload.name)
    return FileOperationResponse(success=True, message="Renamed successfully", path=path)


@router.post("/move", response_model=FileOperationResponse, summary="Move the selection")
async def move(
    payload: DestinationRequest,
    controller: FileManagerController = Depends(get_controller),
) -> FileOperationResponse:
    moved = await controller.move(payload.destination)
    return FileOperationResponse(
        success=True,
        message=f"Moved {len(moved)} item(s)",
        path=payload.destination,
        paths=moved,
    )


@router.post("/copy", response_model=FileOperationResponse, summary="Copy the selection")
async def copy(
    payload: CopyRequest,
    controller: FileManagerController = Depends(get_controller),
) -> FileOperationResponse:
    copies = await controller.copy(payload.destination)
    return FileOperationResponse(success=True, message=f"Copied {len(copies)} item(s)", paths=copies)


@router.post("/delete", response_model=FileOperationResponse, summary="Delete the selection")
async def delete(controller: FileManagerController = Depends(get_controller)) -> FileOperationResponse:
    deleted = await controller.delete()
    return FileOperationResponse(success=True, message=f"Deleted {len(deleted)} item(s)", paths=deleted)


@router.post("/archive", summary="Archive the selection and stream the result")
async def archive(
    payload: ArchiveCreateRequest,
    controller: FileManagerController = Depends(get_controller),
) -> StreamingResponse:
    stream = await controller.archive(payload.name, payload.format)
    return _stream_response(stream)


@router.post("/extract", response_model=FileOperationResponse, summary="Extract an archive into the working directory")
async def extract(
    payload: ExtractRequest,
    controller: FileManagerController = Depends(get_controller),
) -> FileOperationResponse:
    destination = await controller.extract(payload.name)
    return FileOperationResponse(success=True, message="Extracted successfully", path=destination)


@router.get("/download", summary="Download one entry or the selection")
async def download(
    name: Optional[str] = Query(None, description="Single file to download instead of the selection"),
    controller: FileManagerController = Depends(get_controller),
) -> StreamingResponse:
    if name:
        stream = await controller.download(name)
    else:
        stream = await controller.download_selection()
    logger.info("Download of %s started", stream.filename)
    return _stream_response(stream)
