"""
Provider engine: keeps the provider registry and runs fetches.

Usage:
    engine = ProviderEngine()
    result = await engine.fetch("fmovies4u", MediaRequest(tmdb=550))
    if isinstance(result, ProviderError):
        print(result.to_dict())
    await engine.close()
"""
from __future__ import annotations
import asyncio
import logging
from typing import Optional, Union

from ..core.errors import ProviderError, ProviderErrorKind
from .base import MediaRequest, ProviderResult
from .fetcher import Fetcher

log = logging.getLogger("riptide.providers")

FetchOutcome = Union[ProviderResult, ProviderError]


# ──────────────────────────────
#  Provider base + registry
# ──────────────────────────────
class Provider:
    id: str
    name: str
    rank: int
    media_types: list[str] = ["movie", "tv"]
    broken: bool = False            # integration known to be incomplete

    async def scrape(self, media: MediaRequest, fetcher: Fetcher) -> FetchOutcome:
        raise NotImplementedError

    async def fetch(self, media: MediaRequest, fetcher: Fetcher) -> FetchOutcome:
        """Run the scraper; anything it raises comes back as a ProviderError."""
        try:
            return await self.scrape(media, fetcher)
        except Exception as e:
            log.warning(f"[{self.id}] Provider failed: {e}")
            return ProviderError(
                kind=ProviderErrorKind.UPSTREAM_ERROR,
                message=str(e) or type(e).__name__,
                provider=self.name,
                status_code=500,
            )


# Global registry, populated when provider modules are imported
_PROVIDERS: dict[str, Provider] = {}


def register_provider(provider_cls):
    """Decorator to register a provider class."""
    inst = provider_cls()
    _PROVIDERS[inst.id] = inst
    return provider_cls


def get_provider(provider_id: str) -> Optional[Provider]:
    return _PROVIDERS.get(provider_id)


# ──────────────────────────────
#  Engine
# ──────────────────────────────
class ProviderEngine:
    def __init__(self, *, timeout: float = 12, fetcher: Fetcher | None = None,
                 logger: logging.Logger | None = None):
        self.fetcher = fetcher or Fetcher(timeout=timeout)
        self.log = logger or log

    async def close(self):
        await self.fetcher.close()

    def list_providers(self):
        ranked = sorted(_PROVIDERS.values(), key=lambda p: p.rank, reverse=True)
        return [{'id': p.id, 'name': p.name, 'rank': p.rank,
                 'media_types': list(p.media_types), 'broken': p.broken}
                for p in ranked]

    async def fetch(self, provider_id: str, media: MediaRequest) -> FetchOutcome:
        """Run a single named provider."""
        provider = get_provider(provider_id)
        if not provider:
            return ProviderError(
                kind=ProviderErrorKind.NOT_FOUND,
                message=f"Unknown provider: {provider_id}",
                provider=provider_id,
                status_code=404,
            )
        if media.type not in provider.media_types:
            return ProviderError(
                kind=ProviderErrorKind.INVALID_REQUEST,
                message=f"{provider.name} does not serve {media.type}",
                provider=provider.name,
                status_code=400,
            )

        self.log.info(f"[{provider.id}] Fetching {media.type} {media.tmdb}")
        result = await provider.fetch(media, self.fetcher)
        if isinstance(result, ProviderError):
            self.log.info(f"[{provider.id}] {result.kind.value}: {result.message}")
        else:
            self.log.info(f"[{provider.id}] {len(result.files)} file(s), "
                          f"{len(result.subtitles)} subtitle(s)")
        return result

    async def fetch_all(self, media: MediaRequest) -> dict[str, FetchOutcome]:
        """Run every provider that serves this media type concurrently."""
        applicable = [p for p in _PROVIDERS.values() if media.type in p.media_types]
        outcomes = await asyncio.gather(*(self.fetch(p.id, media) for p in applicable))
        return {p.id: outcome for p, outcome in zip(applicable, outcomes)}


# ──────────────────────────────
#  Import all providers to register them
# ──────────────────────────────
def _load_providers():
    from .sources import fmovies4u      # noqa: F401  rank 200
    from .sources import vidlink        # noqa: F401  rank 100 (broken)

_load_providers()
