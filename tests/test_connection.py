import asyncio
from types import SimpleNamespace

import pytest
from aiohttp import WSMsgType

from brio.kernel.broadcaster import Broadcaster
from brio.kernel.connection import Connection
from brio.kernel.ws_types import (
    PatchMessage,
    ShutdownMessage,
    WsConnectionError,
    WsPatch,
)


class FakeStream:
    def __init__(self, fail_ping=False):
        self.incoming = asyncio.Queue()
        self.sent = []
        self.error = None
        self.fail_ping = fail_ping

    def feed(self, kind, data=None):
        self.incoming.put_nowait(SimpleNamespace(type=kind, data=data, extra=None))

    async def receive(self):
        return await self.incoming.get()

    async def send_str(self, data):
        self.sent.append(("text", data))

    async def ping(self, data=b""):
        if self.fail_ping:
            raise ConnectionResetError("peer gone")
        self.sent.append(("ping", data))

    async def pong(self, data=b""):
        self.sent.append(("pong", data))

    async def close(self):
        self.sent.append(("close",))
        return True

    def exception(self):
        return self.error


async def wait_until(condition, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


def texts(stream):
    return [entry[1] for entry in stream.sent if entry[0] == "text"]


@pytest.mark.asyncio
async def test_connection_generates_unique_client_id():
    broadcaster = Broadcaster()
    first = Connection(FakeStream(), broadcaster.subscribe())
    second = Connection(FakeStream(), broadcaster.subscribe())
    assert first.client_id != second.client_id


@pytest.mark.asyncio
async def test_client_close_ends_run_and_unsubscribes():
    broadcaster = Broadcaster()
    stream = FakeStream()
    stream.feed(WSMsgType.CLOSE)
    connection = Connection(stream, broadcaster.subscribe())
    assert broadcaster.client_count() == 1
    await asyncio.wait_for(connection.run(), 2)
    assert stream.sent[-1] == ("close",)
    assert broadcaster.client_count() == 0


@pytest.mark.asyncio
async def test_ping_from_client_is_answered_with_pong():
    broadcaster = Broadcaster()
    stream = FakeStream()
    stream.feed(WSMsgType.PING, b"abc")
    stream.feed(WSMsgType.CLOSE)
    await asyncio.wait_for(Connection(stream, broadcaster.subscribe()).run(), 2)
    assert ("pong", b"abc") in stream.sent


@pytest.mark.asyncio
async def test_text_from_client_is_ignored():
    broadcaster = Broadcaster()
    stream = FakeStream()
    stream.feed(WSMsgType.TEXT, "hello")
    stream.feed(WSMsgType.CLOSE)
    await asyncio.wait_for(Connection(stream, broadcaster.subscribe()).run(), 2)
    assert texts(stream) == []
    assert stream.sent[-1] == ("close",)


@pytest.mark.asyncio
async def test_shutdown_broadcast_is_forwarded():
    broadcaster = Broadcaster()
    stream = FakeStream()
    task = asyncio.create_task(Connection(stream, broadcaster.subscribe()).run())
    broadcaster.broadcast(ShutdownMessage())
    await wait_until(lambda: texts(stream))
    stream.feed(WSMsgType.CLOSE)
    await asyncio.wait_for(task, 2)
    assert texts(stream) == ['{"type":"shutdown"}']


@pytest.mark.asyncio
async def test_patch_broadcast_is_forwarded_as_json():
    broadcaster = Broadcaster()
    stream = FakeStream()
    patch = WsPatch([{"op": "add", "path": "/a", "value": 1}])
    task = asyncio.create_task(Connection(stream, broadcaster.subscribe()).run())
    broadcaster.broadcast(PatchMessage(patch))
    await wait_until(lambda: texts(stream))
    stream.feed(WSMsgType.CLOSE)
    await asyncio.wait_for(task, 2)
    assert texts(stream) == [patch.to_json()]


@pytest.mark.asyncio
async def test_closed_channel_ends_run_gracefully():
    broadcaster = Broadcaster()
    stream = FakeStream()
    receiver = broadcaster.subscribe()
    receiver.close()
    await asyncio.wait_for(Connection(stream, receiver).run(), 2)
    assert stream.sent[-1] == ("close",)


@pytest.mark.asyncio
async def test_stream_error_raises_connection_error():
    broadcaster = Broadcaster()
    stream = FakeStream()
    stream.error = ConnectionResetError("broken")
    stream.feed(WSMsgType.ERROR)
    with pytest.raises(WsConnectionError):
        await asyncio.wait_for(Connection(stream, broadcaster.subscribe()).run(), 2)
    assert ("close",) not in stream.sent
    assert broadcaster.client_count() == 0


@pytest.mark.asyncio
async def test_failed_ping_raises_connection_error():
    broadcaster = Broadcaster()
    stream = FakeStream(fail_ping=True)
    with pytest.raises(WsConnectionError):
        await asyncio.wait_for(Connection(stream, broadcaster.subscribe()).run(), 2)
    assert broadcaster.client_count() == 0


@pytest.mark.asyncio
async def test_pings_are_sent_periodically():
    broadcaster = Broadcaster()
    stream = FakeStream()
    connection = Connection(stream, broadcaster.subscribe(), ping_interval=0.01)
    task = asyncio.create_task(connection.run())
    await wait_until(lambda: sum(1 for entry in stream.sent if entry[0] == "ping") >= 3)
    stream.feed(WSMsgType.CLOSE)
    await asyncio.wait_for(task, 2)
    assert stream.sent[-1] == ("close",)