"""Run a TransferPlan against the remote file API."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from panelfiles.models import TransferProgress, TransferStatus
from panelfiles.services.remote_client import RemoteAlreadyExistsError, RemoteDirectoryClient, RemoteError
from panelfiles.services.transfer_planner import PlannedFile, TransferPlan

logger = logging.getLogger(__name__)

ProgressListener = Optional[Callable[[TransferProgress], None]]


@dataclass
class TransferReport:
    """Outcome of one batch, kept after the live progress is cleared."""

    label: str
    destination: str
    status: TransferStatus
    progress: dict
    folders_created: List[str] = field(default_factory=list)
    folder_errors: List[Tuple[str, str]] = field(default_factory=list)
    uploaded: List[str] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)
    failed_item: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is TransferStatus.DONE


class TransferExecutor:
    """Creates folders in plan order, then uploads files one at a time.

    Folder creation is best effort: "already exists" is ignored and any other
    failure is recorded while the next folder is attempted. Uploads are
    fail-fast: the first failed file stops the remaining queue.
    """

    def __init__(self, client: RemoteDirectoryClient) -> None:
        self._client = client

    async def execute(
        self,
        server_id: str,
        plan: TransferPlan,
        progress: Optional[TransferProgress] = None,
        on_progress: ProgressListener = None,
    ) -> TransferReport:
        progress = progress if progress is not None else TransferProgress()
        progress.start()
        report = TransferReport(
            label=plan.label,
            destination=plan.destination,
            status=TransferStatus.RUNNING,
            progress={},
            skipped=[(item.relative_path, item.reason) for item in plan.skipped],
        )

        def _emit() -> None:
            if on_progress:
                try:
                    on_progress(progress)
                except Exception:  # noqa: BLE001
                    logger.debug("TransferExecutor: progress listener failed", exc_info=True)

        _emit()
        await self._create_folders(server_id, plan, report)

        for planned in plan.files:
            key = planned.relative_path
            progress.begin_item(key)
            _emit()
            try:
                await self._upload(server_id, plan, planned, progress, _emit)
            except Exception as exc:  # noqa: BLE001
                logger.warning("TransferExecutor: upload of %s failed: %s", key, exc)
                progress.fail(key)
                report.failed_item = key
                report.error = f"Upload of {plan.label} failed at '{key}': {exc}"
                break
            progress.complete_item(key)
            report.uploaded.append(key)
            _emit()
        else:
            progress.finish()

        report.status = progress.status
        report.progress = dict(progress.items)
        _emit()
        logger.info(
            "TransferExecutor: batch %s into %s finished with %s (%s/%s files)",
            plan.label,
            plan.destination,
            report.status.value,
            len(report.uploaded),
            len(plan.files),
        )
        return report

    async def _create_folders(self, server_id: str, plan: TransferPlan, report: TransferReport) -> None:
        for folder in plan.folders:
            try:
                await self._client.mkdir(server_id, folder)
            except RemoteAlreadyExistsError:
                logger.debug("TransferExecutor: folder %s already exists", folder)
                continue
            except RemoteError as exc:
                logger.warning("TransferExecutor: mkdir %s failed: %s", folder, exc)
                report.folder_errors.append((folder, str(exc)))
                continue
            report.folders_created.append(folder)

    async def _upload(
        self,
        server_id: str,
        plan: TransferPlan,
        planned: PlannedFile,
        progress: TransferProgress,
        emit: Callable[[], None],
    ) -> None:
        key = planned.relative_path

        def _on_progress(percent: int) -> None:
            progress.advance(key, percent)
            emit()

        await self._client.upload(
            server_id,
            plan.target_directory(planned),
            planned.handle,
            _on_progress,
        )
