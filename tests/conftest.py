import asyncio

import httpx

from riptide.relay.segment import CHUNK_SIZE

SCOPE = {
    "type": "http",
    "asgi": {"version": "3.0", "spec_version": "2.4"},
    "http_version": "1.1",
    "method": "GET",
    "path": "/ts-proxy",
    "headers": [],
}


class ChunkStream(httpx.AsyncByteStream):
    """Upstream body that counts how many chunks have been pulled from it."""

    def __init__(self, chunks, size=CHUNK_SIZE, fail_after=None, error=None):
        self.chunks = chunks
        self.size = size
        self.fail_after = fail_after
        self.error = error or httpx.ReadError("upstream reset")
        self.reads = 0
        self.closed = False

    async def __aiter__(self):
        for i in range(self.chunks):
            if self.fail_after is not None and i == self.fail_after:
                raise self.error
            self.reads += 1
            yield b"\x47" * self.size

    async def aclose(self):
        self.closed = True


class BodyStream(httpx.AsyncByteStream):
    """Serves a fixed body lazily, the way a live origin connection would."""

    def __init__(self, body):
        self.body = body
        self.closed = False

    async def __aiter__(self):
        if self.body:
            yield self.body

    async def aclose(self):
        self.closed = True


class Origin:
    """Fake origin server behind httpx.MockTransport; records every request."""

    def __init__(self, status=200, body=b"", headers=None, stream=None, exc=None):
        self.status = status
        self.body = body
        self.headers = headers or {}
        self.stream = stream
        self.exc = exc
        self.calls = []

    def handler(self, request):
        self.calls.append(request)
        if self.exc is not None:
            raise self.exc
        if self.stream is not None:
            return httpx.Response(self.status, headers=self.headers, stream=self.stream)
        headers = {"content-length": str(len(self.body)), **self.headers}
        return httpx.Response(self.status, headers=headers, stream=BodyStream(self.body))

    @property
    def transport(self):
        return httpx.MockTransport(self.handler)


class FakeFetcher:
    """Stands in for providers.fetcher.Fetcher; replays canned answers in order."""

    def __init__(self, responses=(), json_responses=()):
        self.responses = list(responses)
        self.json_responses = list(json_responses)
        self.calls = []

    async def get_json_status(self, url, **kwargs):
        self.calls.append(url)
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def get_json(self, url, **kwargs):
        self.calls.append(url)
        if not self.json_responses:
            raise AssertionError(f"unexpected request to {url}")
        return self.json_responses.pop(0)

    async def close(self):
        pass


async def never_disconnects():
    await asyncio.Event().wait()
