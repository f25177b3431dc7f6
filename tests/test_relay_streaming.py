"""
Flow-control and termination behaviour, driven at the ASGI level so the
test controls exactly how fast (or whether) the client takes data.
"""
import asyncio
import logging

import httpx
import pytest

from conftest import SCOPE, ChunkStream, Origin, never_disconnects
from riptide.relay.segment import CHUNK_SIZE, SegmentRelay

SEGMENT_URL = "https://origin.example/big.ts"


def test_slow_client_pauses_upstream_reads():
    stream = ChunkStream(chunks=64)           # 4 MiB upstream body
    relay = SegmentRelay(transport=Origin(stream=stream, headers={"content-type": "video/mp2t"}).transport)

    async def scenario():
        response = await relay.relay(SEGMENT_URL, "{}")
        release = asyncio.Event()
        bodies = []

        async def slow_send(message):
            if message["type"] == "http.response.body":
                bodies.append(message.get("body", b""))
                if len(bodies) == 2:
                    await release.wait()

        task = asyncio.create_task(response(SCOPE, never_disconnects, slow_send))
        await asyncio.sleep(0.05)
        paused_at = stream.reads
        await asyncio.sleep(0.05)
        # client is stuck, so nothing more is pulled from the origin
        assert stream.reads == paused_at
        assert paused_at <= 3
        release.set()
        await task
        return bodies

    bodies = asyncio.run(scenario())

    assert stream.reads == 64
    assert sum(len(b) for b in bodies) == 64 * CHUNK_SIZE
    assert max(len(b) for b in bodies) <= CHUNK_SIZE
    assert stream.closed


def test_client_disconnect_stops_relay_quietly(caplog):
    stream = ChunkStream(chunks=64)
    relay = SegmentRelay(transport=Origin(stream=stream).transport)

    async def scenario():
        response = await relay.relay(SEGMENT_URL, None)
        sent = []

        async def send(message):
            if message["type"] == "http.response.body" and sent:
                raise ConnectionResetError("client went away")
            if message["type"] == "http.response.body":
                sent.append(message)

        await response(SCOPE, never_disconnects, send)

    with caplog.at_level(logging.DEBUG, logger="riptide"):
        asyncio.run(scenario())

    assert stream.reads <= 2
    assert stream.closed
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


def test_fault_after_headers_truncates_connection(caplog):
    stream = ChunkStream(chunks=8, fail_after=2)
    relay = SegmentRelay(transport=Origin(stream=stream, headers={"content-type": "video/mp2t"}).transport)
    messages = []

    async def scenario():
        response = await relay.relay(SEGMENT_URL, "{}")

        async def send(message):
            messages.append(message)

        await response(SCOPE, never_disconnects, send)

    with caplog.at_level(logging.ERROR, logger="riptide"):
        asyncio.run(scenario())

    assert messages[0]["type"] == "http.response.start"
    assert messages[0]["status"] == 200
    bodies = [m for m in messages if m["type"] == "http.response.body"]
    assert len(bodies) == 2
    # the response is never completed, so the server drops the connection
    assert all(m.get("more_body") for m in bodies)
    assert stream.closed
    assert any("big.ts" in r.getMessage() for r in caplog.records if r.levelno == logging.ERROR)


def test_unexpected_fault_mid_stream_is_logged_not_raised(caplog):
    stream = ChunkStream(chunks=4, fail_after=1, error=RuntimeError("decoder state lost"))
    relay = SegmentRelay(transport=Origin(stream=stream).transport)
    messages = []

    async def scenario():
        response = await relay.relay(SEGMENT_URL, None)

        async def send(message):
            messages.append(message)

        await response(SCOPE, never_disconnects, send)

    with caplog.at_level(logging.ERROR, logger="riptide"):
        asyncio.run(scenario())

    assert messages[0]["status"] == 200
    assert all(m.get("more_body") for m in messages if m["type"] == "http.response.body")
    assert stream.closed
    assert any("decoder state lost" in r.getMessage() for r in caplog.records)


def test_cancelled_connect_releases_client():
    async def hang(request):
        await asyncio.Event().wait()

    relay = SegmentRelay(transport=httpx.MockTransport(hang))
    clients = []
    make_client = relay._client

    def tracking_client():
        clients.append(make_client())
        return clients[-1]

    relay._client = tracking_client

    async def scenario():
        task = asyncio.create_task(relay.relay(SEGMENT_URL, None))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert len(clients) == 1
    assert clients[0].is_closed
