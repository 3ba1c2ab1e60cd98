import asyncio

import pytest

from panelfiles.core.exceptions import EditorBusyError, EditorStateError
from panelfiles.models import EditorStatus, Entry, EntryKind
from panelfiles.services.editor_session import EditorSession
from panelfiles.services.remote_client import RemoteNotFoundError

PROPS = Entry(name="server.properties", kind=EntryKind.FILE, size=11)
OPS = Entry(name="ops.json", kind=EntryKind.FILE, size=2)


@pytest.fixture
def session(remote):
    return EditorSession(remote, "srv-1")


async def test_open_edit_save_closes_session(session, remote):
    await session.open(PROPS, "/server.properties")
    assert session.status is EditorStatus.READY
    assert session.content == "motd=hello\n"

    session.update("motd=bye\n")
    await session.save()

    assert remote.files["/server.properties"] == b"motd=bye\n"
    assert session.status is EditorStatus.CLOSED
    assert session.path is None


async def test_failed_read_never_reaches_ready(session, remote):
    missing = Entry(name="gone.txt", kind=EntryKind.FILE)
    with pytest.raises(RemoteNotFoundError):
        await session.open(missing, "/gone.txt")
    assert session.status is EditorStatus.CLOSED
    assert session.file is None


async def test_failed_save_keeps_edits(session, remote):
    remote.fail("write", "/server.properties", RemoteNotFoundError("gone"))
    await session.open(PROPS, "/server.properties")
    session.update("edited")

    with pytest.raises(RemoteNotFoundError):
        await session.save()

    assert session.status is EditorStatus.READY
    assert session.content == "edited"


async def test_second_save_while_saving_is_rejected(session, remote):
    remote.write_gate = asyncio.Event()
    await session.open(PROPS, "/server.properties")
    session.update("one")

    first = asyncio.create_task(session.save())
    await asyncio.sleep(0)
    assert session.status is EditorStatus.SAVING

    with pytest.raises(EditorBusyError):
        await session.save()
    with pytest.raises(EditorBusyError):
        session.close()
    with pytest.raises(EditorStateError):
        session.update("two")

    remote.write_gate.set()
    await first
    assert len(remote.ops("write")) == 1
    assert remote.files["/server.properties"] == b"one"


async def test_reopening_same_file_is_a_no_op(session, remote):
    await session.open(PROPS, "/server.properties")
    session.update("draft")
    await session.open(PROPS, "/server.properties")
    assert session.content == "draft"
    assert len(remote.ops("read")) == 1


async def test_stale_read_is_discarded_when_another_file_opens(session, remote):
    gate = asyncio.Event()
    remote.read_gates["/server.properties"] = gate

    slow = asyncio.create_task(session.open(PROPS, "/server.properties"))
    await asyncio.sleep(0)
    assert session.status is EditorStatus.LOADING

    await session.open(OPS, "/config/ops.json")
    gate.set()
    await slow

    assert session.path == "/config/ops.json"
    assert session.content == "[]"
    assert session.status is EditorStatus.READY


async def test_close_discards_pending_read(session, remote):
    gate = asyncio.Event()
    remote.read_gates["/server.properties"] = gate
    pending = asyncio.create_task(session.open(PROPS, "/server.properties"))
    await asyncio.sleep(0)

    session.close()
    gate.set()
    await pending

    assert session.status is EditorStatus.CLOSED
    assert session.content == ""


async def test_update_and_save_require_ready(session):
    with pytest.raises(EditorStateError):
        session.update("x")
    with pytest.raises(EditorStateError):
        await session.save()


async def test_failed_read_of_replaced_session_is_dropped(session, remote):
    gate = asyncio.Event()
    remote.read_gates["/server.properties"] = gate
    remote.fail("read", "/server.properties", RemoteNotFoundError("gone"))

    slow = asyncio.create_task(session.open(PROPS, "/server.properties"))
    await asyncio.sleep(0)
    await session.open(OPS, "/config/ops.json")
    gate.set()
    await slow

    assert session.path == "/config/ops.json"
    assert session.status is EditorStatus.READY
