"""
VidLink: vidlink.pro JSON API.

The API expects the TMDB id in an encrypted form: a fixed 32-char "A" prefix
followed by a suffix produced with a key nobody has recovered yet. Until
`encode_id` is implemented every fetch comes back as PROVIDER_BROKEN
without touching the network.
"""
from __future__ import annotations
import logging

from ...core.errors import ProviderError, ProviderErrorKind
from ..base import MediaRequest, ProviderResult, StreamFile
from ..fetcher import Fetcher
from ..runner import Provider, register_provider

log = logging.getLogger("riptide.providers.vidlink")

BASE = "https://vidlink.pro"
ID_PADDING = "A" * 32
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
HEADERS = {"Referer": BASE, "User-Agent": USER_AGENT}
BROKEN_HINT = "Encryption logic likely missing or API changed"


def encode_id(tmdb) -> str:
    raise NotImplementedError("VidLink id encoding is unknown")


@register_provider
class VidLink(Provider):
    id = "vidlink"
    name = "VidLink"
    rank = 100
    media_types = ["movie", "tv"]
    broken = True

    def api_url(self, media: MediaRequest) -> str:
        encoded = ID_PADDING + encode_id(media.tmdb)
        if media.is_tv:
            return f"{BASE}/api/b/tv/{encoded}/{media.season}/{media.episode}?multiLang=0"
        return f"{BASE}/api/b/movie/{encoded}?multiLang=0"

    async def scrape(self, media: MediaRequest, fetcher: Fetcher):
        try:
            url = self.api_url(media)
        except NotImplementedError as e:
            log.debug(f"[vidlink] {e}")
            return ProviderError(
                kind=ProviderErrorKind.PROVIDER_BROKEN,
                message=f"VidLink error: {e}",
                provider=self.name,
                status_code=500,
                hint=BROKEN_HINT,
                unimplemented=True,
            )

        data = await fetcher.get_json(url, headers=HEADERS)
        if not isinstance(data, dict) or not data.get("stream"):
            return ProviderError(
                kind=ProviderErrorKind.NOT_FOUND,
                message="VidLink error: No stream found in response",
                provider=self.name,
                status_code=404,
                hint=BROKEN_HINT,
            )

        return ProviderResult(files=[
            StreamFile(file=data["stream"], type="hls", source=self.name,
                       headers=dict(HEADERS))
        ])
