"""
Segment relay: forwards one video segment (MPEG-TS chunk) from an origin
to one player connection.

The upstream body is pulled chunk by chunk only as fast as the ASGI server
accepts it, so a slow player stalls the origin read instead of filling
memory. Client disconnects are routine for players (seeking, quality
switches) and are dropped quietly.
"""
from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

import httpx
from fastapi.responses import PlainTextResponse, Response, StreamingResponse
from starlette.requests import ClientDisconnect
from starlette.types import Receive, Scope, Send

from ..core.errors import RelayError, RelayErrorKind

log = logging.getLogger("riptide.relay")

CHUNK_SIZE = 64 * 1024                # read size tuned for video chunks
CONNECT_TIMEOUT = 5.0

CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

BASE_HEADERS = {
    "User-Agent": CHROME_UA,
    "Accept": "*/*",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "*",
    "Access-Control-Allow-Methods": "*",
}

# Segments never change once published
CACHE_CONTROL = "public, max-age=31536000"
DEFAULT_CONTENT_TYPE = "video/mp2t"

HeadersParam = Union[str, Mapping[str, str], None]


@dataclass(frozen=True)
class RelayRequest:
    target_url: str
    headers: dict[str, str] = field(default_factory=dict)


def _is_sendable(text: str) -> bool:
    # HTTP/1.1 header text is ASCII on a single line
    return text.isascii() and "\r" not in text and "\n" not in text


def parse_headers(headers_param: HeadersParam) -> dict[str, str]:
    """Accept a mapping or a JSON object string; anything else is a 400."""
    if headers_param is None or headers_param == "":
        return {}
    if isinstance(headers_param, str):
        try:
            headers_param = json.loads(headers_param)
        except ValueError:
            raise RelayError(RelayErrorKind.INVALID_REQUEST, 400, "Invalid headers format")
    if not isinstance(headers_param, Mapping):
        raise RelayError(RelayErrorKind.INVALID_REQUEST, 400, "Invalid headers format")
    headers = {str(k): str(v) for k, v in headers_param.items()}
    if not all(_is_sendable(k) and _is_sendable(v) for k, v in headers.items()):
        raise RelayError(RelayErrorKind.INVALID_REQUEST, 400, "Invalid headers format")
    return headers


def _is_stripped(name: str) -> bool:
    # Host and Sec-Fetch-* trip anti-bot checks or host mismatches upstream
    lower = name.lower()
    return lower == "host" or lower.startswith("sec-fetch-")


def build_upstream_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Baseline headers, overlaid by the caller's (caller wins), then sanitized."""
    overridden = {k.lower() for k in headers}
    merged = {k: v for k, v in BASE_HEADERS.items() if k.lower() not in overridden}
    merged.update(headers)
    return {k: v for k, v in merged.items() if not _is_stripped(k)}


def is_absolute_http_url(url: str) -> bool:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.host)


def _segment_name(url: str) -> str:
    return url.rstrip("/").rsplit("/", 1)[-1] or url


class SegmentResponse(StreamingResponse):
    """
    Streams an open upstream response to the client and releases it
    (and its client) however the transfer ends.
    """

    def __init__(self, upstream: httpx.Response, client: httpx.AsyncClient, *,
                 target_url: str, chunk_size: int, logger: logging.Logger):
        self.upstream = upstream
        self.client = client
        self.target_url = target_url
        self.log = logger

        # content-type is passed as a plain header so it goes out exactly as the origin sent it
        headers = {"Content-Type": upstream.headers.get("content-type") or DEFAULT_CONTENT_TYPE}
        headers.update(CORS_HEADERS)
        headers["Cache-Control"] = CACHE_CONTROL
        for name in ("content-length", "content-encoding"):
            value = upstream.headers.get(name)
            if value:
                headers[name.title()] = value

        super().__init__(upstream.aiter_raw(chunk_size), status_code=200, headers=headers)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except (ClientDisconnect, OSError):
            self.log.debug("[relay] %s: %s", RelayErrorKind.CLIENT_DISCONNECTED.value,
                           _segment_name(self.target_url))
        except Exception as e:
            # headers are already out; the connection just ends short
            self.log.error("[TS Proxy Error] %s: %s", _segment_name(self.target_url), e)
        finally:
            await self.upstream.aclose()
            await self.client.aclose()


class SegmentRelay:
    def __init__(self, *, disabled: bool = False, timeout: float = 15.0,
                 chunk_size: int = CHUNK_SIZE,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 logger: Optional[logging.Logger] = None):
        self.disabled = disabled
        self.timeout = httpx.Timeout(timeout, connect=min(CONNECT_TIMEOUT, timeout))
        self.chunk_size = chunk_size
        self.transport = transport
        self.log = logger or log

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self.transport,
        )

    def prepare(self, target_url: Optional[str], headers_param: HeadersParam) -> RelayRequest:
        if self.disabled:
            raise RelayError(RelayErrorKind.DISABLED, 404, "TS proxying is disabled")
        if not target_url:
            raise RelayError(RelayErrorKind.INVALID_REQUEST, 400, "URL parameter is required")
        if not is_absolute_http_url(target_url):
            raise RelayError(RelayErrorKind.INVALID_REQUEST, 400, "Invalid URL")
        return RelayRequest(target_url=target_url, headers=parse_headers(headers_param))

    async def relay(self, target_url: Optional[str], headers_param: HeadersParam = None) -> Response:
        client = None
        try:
            request = self.prepare(target_url, headers_param)
            client = self._client()
            upstream = await self._open(client, request)
        except RelayError as e:
            if client is not None:
                await client.aclose()
            return self._error_response(e)
        except BaseException:
            # cancelled mid-connect
            if client is not None:
                await client.aclose()
            raise

        return SegmentResponse(
            upstream, client,
            target_url=request.target_url,
            chunk_size=self.chunk_size,
            logger=self.log,
        )

    async def _open(self, client: httpx.AsyncClient, request: RelayRequest) -> httpx.Response:
        name = _segment_name(request.target_url)
        try:
            upstream = await client.send(
                client.build_request("GET", request.target_url,
                                     headers=build_upstream_headers(request.headers)),
                stream=True,
            )
        except Exception as e:
            self.log.error("[TS Proxy Error] %s: %s", name, e)
            raise RelayError(RelayErrorKind.UPSTREAM_UNAVAILABLE, 500, str(e))

        if not upstream.is_success:
            # fail fast: the body is never read
            await upstream.aclose()
            self.log.debug("[relay] upstream %s for %s", upstream.status_code, name)
            raise RelayError(RelayErrorKind.UPSTREAM_REJECTED, upstream.status_code)
        return upstream

    @staticmethod
    def _error_response(error: RelayError) -> Response:
        if error.kind in (RelayErrorKind.UPSTREAM_REJECTED, RelayErrorKind.UPSTREAM_UNAVAILABLE):
            return Response(status_code=error.status_code)
        return PlainTextResponse(error.message, status_code=error.status_code)
