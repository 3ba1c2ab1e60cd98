"""Turn dropped items into an ordered folder plan and a flat upload plan."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from panelfiles.services import paths
from panelfiles.services.transfer_sources import SourceDirectory, SourceEntry, SourceFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedFile:
    relative_path: str
    handle: SourceFile

    @property
    def directory(self) -> str:
        """Relative directory part, empty for top-level files."""
        head, _, _ = self.relative_path.rpartition("/")
        return head


@dataclass(frozen=True)
class SkippedTree:
    relative_path: str
    reason: str


@dataclass
class TransferPlan:
    """Folder creations (ancestors first) and uploads for one gesture."""

    destination: str
    folders: List[str] = field(default_factory=list)
    files: List[PlannedFile] = field(default_factory=list)
    skipped: List[SkippedTree] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.folders and not self.files

    @property
    def label(self) -> str:
        """Short human name for the batch used in user-facing messages."""
        roots: List[str] = []
        for planned in self.files:
            root = planned.relative_path.split("/", 1)[0]
            if root not in roots:
                roots.append(root)
        if not roots:
            return "empty batch"
        head = f"'{roots[0]}'" if len(roots) == 1 else f"'{roots[0]}' and {len(roots) - 1} more"
        count = len(self.files)
        return f"{head} ({count} file{'s' if count != 1 else ''})"

    def target_directory(self, planned: PlannedFile) -> str:
        return paths.join_relative(self.destination, planned.directory)


def folder_order_key(path: str) -> Tuple[int, str]:
    return (paths.depth(path), path)


def flat_plan(files: Sequence[SourceFile], destination: str) -> TransferPlan:
    """One-level batch for plain file drops; there is no folder phase."""
    return TransferPlan(
        destination=destination,
        files=[PlannedFile(relative_path=handle.name, handle=handle) for handle in files],
    )


class TransferPlanner:
    """Discloses directory handles depth-first with an explicit work stack."""

    async def _disclose(self, directory: SourceDirectory) -> List[SourceEntry]:
        reader = directory.create_reader()
        children: List[SourceEntry] = []
        while True:
            batch = await reader.read_entries()
            if not batch:
                return children
            children.extend(batch)

    async def plan(self, items: Sequence[SourceEntry], destination: str) -> TransferPlan:
        if not any(item.is_directory for item in items):
            return flat_plan([item for item in items if isinstance(item, SourceFile)], destination)

        plan = TransferPlan(destination=destination)
        seen_folders: set[str] = set()
        stack: List[Tuple[SourceEntry, Optional[str]]] = [(item, None) for item in reversed(items)]

        while stack:
            entry, parent_relative = stack.pop()
            relative = f"{parent_relative}/{entry.name}" if parent_relative else entry.name

            if isinstance(entry, SourceFile):
                plan.files.append(PlannedFile(relative_path=relative, handle=entry))
                continue
            if not isinstance(entry, SourceDirectory):
                logger.warning("TransferPlanner: unsupported entry %r at %s", entry, relative)
                plan.skipped.append(SkippedTree(relative, "Unsupported entry type"))
                continue

            try:
                children = await self._disclose(entry)
            except Exception as exc:  # noqa: BLE001
                logger.warning("TransferPlanner: dropping sub-tree %s: %s", relative, exc)
                plan.skipped.append(SkippedTree(relative, str(exc) or type(exc).__name__))
                continue

            folder = paths.join_relative(destination, relative)
            if folder not in seen_folders:
                seen_folders.add(folder)
                plan.folders.append(folder)
            stack.extend((child, relative) for child in reversed(children))

        plan.folders.sort(key=folder_order_key)
        logger.debug(
            "TransferPlanner: %s folders, %s files, %s skipped for %s",
            len(plan.folders),
            len(plan.files),
            len(plan.skipped),
            destination,
        )
        return plan
