"""
HTTP fetcher for providers. Wraps aiohttp with common defaults,
headers and timeout.
"""
from __future__ import annotations
import json
import aiohttp
from typing import Any, Optional

DEFAULT_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)


class Fetcher:
    def __init__(self, *, timeout: float = 10):
        self.timeout = aiohttp.ClientTimeout(total=timeout, connect=4)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"User-Agent": DEFAULT_UA},
                connector=aiohttp.TCPConnector(ssl=False),
            )
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    # ── convenience methods ──────────────────

    async def get_json(self, url: str, *, headers: dict | None = None) -> Any:
        session = await self._get_session()
        async with session.get(url, headers=headers or {}) as resp:
            return await resp.json(content_type=None)

    async def get_json_status(
        self,
        url: str,
        *,
        headers: dict | None = None,
        timeout: float | None = None,
    ) -> tuple[int, Any]:
        """
        Returns (status, data) for any status below 500; `data` is None when
        the body is not JSON. Server errors raise aiohttp.ClientResponseError.
        """
        session = await self._get_session()
        extra = {"timeout": aiohttp.ClientTimeout(total=timeout, connect=4)} if timeout else {}
        async with session.get(url, headers=headers or {}, **extra) as resp:
            if resp.status >= 500:
                raise aiohttp.ClientResponseError(
                    resp.request_info, resp.history, status=resp.status,
                    message=f"Request failed with status code {resp.status}",
                )
            body = await resp.text()
            try:
                data = json.loads(body)
            except ValueError:
                data = None
            return resp.status, data
