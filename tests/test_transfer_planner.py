from typing import List

from panelfiles.services.transfer_planner import TransferPlanner
from panelfiles.services.transfer_sources import (
    DirectoryReader,
    MemoryDirectory,
    MemoryFile,
    SourceDirectory,
    SourceEntry,
)


class BrokenReader(DirectoryReader):
    async def read_entries(self) -> List[SourceEntry]:
        raise PermissionError("permission denied")


class BrokenDirectory(SourceDirectory):
    def __init__(self, name: str) -> None:
        self.name = name

    def create_reader(self) -> DirectoryReader:
        return BrokenReader()


def _tree():
    return [
        MemoryDirectory(
            "data",
            [MemoryDirectory("sub", [MemoryFile("a.txt", b"a")]), MemoryFile("b.txt", b"b")],
        ),
        MemoryFile("top.txt", b"t"),
    ]


async def test_plan_orders_folders_before_descendants_and_files_depth_first():
    plan = await TransferPlanner().plan(_tree(), "/srv")

    assert plan.destination == "/srv"
    assert plan.folders == ["/srv/data", "/srv/data/sub"]
    assert [f.relative_path for f in plan.files] == ["data/sub/a.txt", "data/b.txt", "top.txt"]
    assert plan.target_directory(plan.files[0]) == "/srv/data/sub"
    assert plan.target_directory(plan.files[2]) == "/srv"
    assert plan.skipped == []


async def test_plan_at_root_destination():
    plan = await TransferPlanner().plan(_tree(), "/")
    assert plan.folders == ["/data", "/data/sub"]
    assert plan.target_directory(plan.files[1]) == "/data"


async def test_plain_files_use_flat_plan():
    files = [MemoryFile("a.txt"), MemoryFile("b.txt")]
    plan = await TransferPlanner().plan(files, "/logs")
    assert plan.folders == []
    assert [f.relative_path for f in plan.files] == ["a.txt", "b.txt"]
    assert plan.label == "'a.txt' and 1 more (2 files)"


async def test_large_directory_is_read_until_exhausted():
    children = [MemoryFile(f"file{i:03}.txt") for i in range(250)]
    plan = await TransferPlanner().plan([MemoryDirectory("big", children, batch_size=100)], "/")
    assert len(plan.files) == 250
    assert plan.folders == ["/big"]


async def test_unreadable_subtree_is_skipped_and_rest_continues():
    items = [
        MemoryDirectory("mods", [BrokenDirectory("locked"), MemoryFile("mod.jar")]),
    ]
    plan = await TransferPlanner().plan(items, "/")

    assert plan.folders == ["/mods"]
    assert [f.relative_path for f in plan.files] == ["mods/mod.jar"]
    assert len(plan.skipped) == 1
    assert plan.skipped[0].relative_path == "mods/locked"
    assert "permission denied" in plan.skipped[0].reason


async def test_duplicate_folders_are_created_once():
    items = [
        MemoryDirectory("data", [MemoryFile("a.txt")]),
        MemoryDirectory("data", [MemoryFile("b.txt")]),
    ]
    plan = await TransferPlanner().plan(items, "/")
    assert plan.folders == ["/data"]
    assert [f.relative_path for f in plan.files] == ["data/a.txt", "data/b.txt"]


async def test_empty_folder_still_gets_created():
    plan = await TransferPlanner().plan([MemoryDirectory("empty")], "/")
    assert plan.folders == ["/empty"]
    assert plan.files == []
    assert not plan.is_empty
