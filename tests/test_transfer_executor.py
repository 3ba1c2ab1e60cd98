from panelfiles.models import TransferProgress, TransferStatus
from panelfiles.services.remote_client import RemoteResponseError
from panelfiles.services.transfer_executor import TransferExecutor
from panelfiles.services.transfer_planner import TransferPlan, TransferPlanner
from panelfiles.services.transfer_sources import MemoryDirectory, MemoryFile


async def test_folders_then_files_in_order(remote):
    items = [MemoryDirectory("data", [MemoryDirectory("sub", [MemoryFile("a.txt", b"a")])])]
    plan = await TransferPlanner().plan(items, "/")

    report = await TransferExecutor(remote).execute("srv-1", plan)

    assert report.ok
    assert report.status is TransferStatus.DONE
    assert [call[2] for call in remote.ops("mkdir")] == ["/data", "/data/sub"]
    assert remote.files["/data/sub/a.txt"] == b"a"
    assert report.uploaded == ["data/sub/a.txt"]
    assert report.progress == {"data/sub/a.txt": 100}


async def test_existing_folders_are_ignored_and_other_failures_recorded(remote):
    remote.add_dir("/exists")
    remote.fail("mkdir", "/broken", RemoteResponseError(500, "disk full"))
    plan = TransferPlan(destination="/", folders=["/exists", "/broken", "/fresh"])

    report = await TransferExecutor(remote).execute("srv-1", plan)

    assert report.ok
    assert report.folders_created == ["/fresh"]
    assert report.folder_errors == [("/broken", "500 disk full")]
    assert "/fresh" in remote.dirs


async def test_first_failed_upload_stops_the_queue(remote):
    files = [MemoryFile("one.txt", b"1"), MemoryFile("two.txt", b"2"), MemoryFile("three.txt", b"3")]
    remote.fail("upload", "/two.txt", RemoteResponseError(500, "boom"))
    plan = await TransferPlanner().plan(files, "/")
    progress = TransferProgress()

    report = await TransferExecutor(remote).execute("srv-1", plan, progress)

    assert report.status is TransferStatus.FAILED
    assert report.failed_item == "two.txt"
    assert report.uploaded == ["one.txt"]
    assert "two.txt" in report.error
    assert [call[2] for call in remote.ops("upload")] == ["/one.txt", "/two.txt"]
    assert "/three.txt" not in remote.files
    assert progress.status is TransferStatus.FAILED
    assert "three.txt" not in progress.items


async def test_progress_never_moves_backwards(remote):
    plan = await TransferPlanner().plan([MemoryFile("a.txt", b"abc")], "/")
    seen = []

    def listener(progress):
        seen.append(progress.items.get("a.txt"))

    await TransferExecutor(remote).execute("srv-1", plan, on_progress=listener)

    values = [value for value in seen if value is not None]
    assert values == sorted(values)
    assert values[-1] == 100


async def test_empty_plan_finishes_immediately(remote):
    report = await TransferExecutor(remote).execute("srv-1", TransferPlan(destination="/"))
    assert report.status is TransferStatus.DONE
    assert remote.ops("upload") == []


async def test_unexpected_upload_error_fails_the_batch(remote):
    remote.fail("upload", "/b.txt", ValueError("I/O operation on closed file"))
    plan = await TransferPlanner().plan([MemoryFile("a.txt", b"a"), MemoryFile("b.txt", b"b")], "/")

    report = await TransferExecutor(remote).execute("srv-1", plan)

    assert report.status is TransferStatus.FAILED
    assert report.failed_item == "b.txt"
    assert report.uploaded == ["a.txt"]
    assert "closed file" in report.error
