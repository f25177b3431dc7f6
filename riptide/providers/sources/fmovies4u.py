"""
Fmovies4u: JSON API at fmovies4u.com.

Flow:
  1. /api/movie/{tmdb} or /api/tv/{tmdb}/{s}/{e}  → {success, sources[]}
  2. each source carries url[] items whose `link` is fmovies4u's own proxy
     URL; the real stream URL and its headers live in the query string
  3. tracks[] on each source are subtitles

The API is flaky: empty or unsuccessful answers are retried a few times
with linear backoff before giving up.
"""
from __future__ import annotations
import asyncio
import json
import logging
from urllib.parse import urlparse, parse_qs, unquote

import aiohttp

from ...core.errors import ProviderError, ProviderErrorKind
from ..base import MediaRequest, ProviderResult, StreamFile, Subtitle
from ..fetcher import Fetcher
from ..retry import RetryPolicy
from ..runner import Provider, register_provider

log = logging.getLogger("riptide.providers.fmovies4u")

BASE = "https://fmovies4u.com"
API_BASE = f"{BASE}/api"
TIMEOUT = 20

REQUEST_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json",
    "Referer": BASE,
    "Origin": BASE,
}


def extract_stream(proxy_url: str) -> tuple[str, dict]:
    """
    Unwrap an fmovies4u proxy link into (stream_url, headers).
    Handles full URLs, protocol-relative URLs and bare `file2/` paths.
    """
    parsed = urlparse(proxy_url)
    if not parsed.scheme or not parsed.netloc:
        return proxy_url, {}

    query = parse_qs(parsed.query)

    encoded = query.get("url", [""])[0]
    if encoded:
        decoded = unquote(encoded)
        if decoded.startswith("file2/"):
            stream_url = f"{BASE}/{decoded}"
        elif decoded.startswith("//"):
            stream_url = "https:" + decoded
        elif not decoded.startswith(("http://", "https://")):
            stream_url = f"{BASE}/{decoded}"
        else:
            stream_url = decoded
    else:
        stream_url = proxy_url

    headers = {}
    raw_headers = query.get("headers", [""])[0]
    if raw_headers:
        for candidate in (unquote(raw_headers), raw_headers):
            try:
                parsed_headers = json.loads(candidate)
            except ValueError:
                continue
            if isinstance(parsed_headers, dict):
                headers = parsed_headers
            break

    return stream_url, headers


def parse_sources(sources: list) -> ProviderResult:
    files: list[StreamFile] = []
    subtitles: list[Subtitle] = []

    for source in sources:
        if not isinstance(source, dict):
            continue
        provider_name = source.get("provider") or "Superior"
        source_headers = source.get("headers") or {}

        # url list (hls / mp4 streams)
        url_items = source.get("url")
        if isinstance(url_items, list):
            for item in url_items:
                if not isinstance(item, dict) or not item.get("link"):
                    continue
                stream_url, extracted = extract_stream(item["link"])
                if not stream_url:
                    continue
                files.append(StreamFile(
                    file=stream_url,
                    type="hls" if item.get("type") == "hls" else "mp4",
                    source=f"Fmovies4u-{provider_name}",
                    quality=item.get("quality") or item.get("lang") or "Auto",
                    headers={**extracted, **source_headers},
                ))

        # tracks (subtitles)
        tracks = source.get("tracks")
        if isinstance(tracks, list):
            for track in tracks:
                if isinstance(track, dict) and track.get("file"):
                    subtitles.append(Subtitle(
                        url=track["file"],
                        lang=track.get("label") or "English",
                    ))

    return ProviderResult(files=files, subtitles=subtitles)


@register_provider
class Fmovies4u(Provider):
    id = "fmovies4u"
    name = "Fmovies4u"
    rank = 200
    media_types = ["movie", "tv"]
    retry = RetryPolicy(max_attempts=3, base_delay=1.0)

    def api_url(self, media: MediaRequest) -> str:
        if media.is_tv:
            return f"{API_BASE}/tv/{media.tmdb}/{media.season}/{media.episode}"
        return f"{API_BASE}/movie/{media.tmdb}"

    async def scrape(self, media: MediaRequest, fetcher: Fetcher):
        url = self.api_url(media)
        retry = self.retry

        for attempt in retry.attempts():
            log.info(f"[fmovies4u] Attempt {attempt}/{retry.max_attempts}: {url}")

            try:
                status, data = await fetcher.get_json_status(
                    url, headers=REQUEST_HEADERS, timeout=TIMEOUT)
            except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
                log.warning(f"[fmovies4u] Network error: {e!r}")
                if retry.should_retry(attempt):
                    await retry.backoff(attempt)
                    continue
                return self._error(ProviderErrorKind.UPSTREAM_ERROR,
                                   str(e) or "network error", 500, retryable=True)
            except aiohttp.ClientResponseError as e:
                log.warning(f"[fmovies4u] Error: {e.message}")
                return self._error(ProviderErrorKind.UPSTREAM_ERROR, e.message, 500)

            if status != 200 or not isinstance(data, dict) or not data.get("success"):
                log.info(f"[fmovies4u] API returned success: false or unexpected status: {status}")
                if retry.should_retry(attempt):
                    await retry.backoff(attempt)
                    continue
                return self._error(ProviderErrorKind.NOT_FOUND, "No streams found (API Error)",
                                   status if status >= 400 else 404)

            sources = data.get("sources") or []
            result = parse_sources(sources if isinstance(sources, list) else [])

            if not result.files:
                if retry.should_retry(attempt):
                    log.info("[fmovies4u] No files found in response, retrying...")
                    await retry.backoff(attempt)
                    continue
                return self._error(ProviderErrorKind.NOT_FOUND, "No streams available", 404)

            return result

        return self._error(ProviderErrorKind.NOT_FOUND, "No streams available", 404)

    def _error(self, kind, message, status_code, retryable=False) -> ProviderError:
        return ProviderError(kind=kind, message=message, provider=self.name,
                             status_code=status_code, retryable=retryable)
