from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from riptide.core.config import Settings, get_settings
from riptide.core.errors import ProviderError, ProviderErrorKind
from riptide.core.helpers import check_if_possible_tmdb_id, handle_error_response
from riptide.core.log_setup import configure_logging
from riptide.providers.base import MediaRequest
from riptide.providers.runner import ProviderEngine
from riptide.relay.health import get_proxy_health
from riptide.relay.segment import SegmentRelay


def create_app(settings: Optional[Settings] = None, *, relay: Optional[SegmentRelay] = None,
               engine: Optional[ProviderEngine] = None) -> FastAPI:
    settings = settings or get_settings()
    logger = configure_logging(settings)

    relay = relay or SegmentRelay(
        disabled=settings.disable_m3u8,
        timeout=settings.relay_timeout,
        logger=logger.getChild("relay"),
    )
    engine = engine or ProviderEngine(
        timeout=settings.provider_timeout,
        logger=logger.getChild("providers"),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await engine.close()

    app = FastAPI(title="Riptide", lifespan=lifespan)
    app.state.settings = settings
    app.state.relay = relay
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- 1. HEALTH ---

    @app.get("/health")
    def health():
        return get_proxy_health()

    # --- 2. SEGMENT RELAY ---

    @app.get("/ts-proxy")
    async def ts_proxy(url: Optional[str] = None, headers: Optional[str] = None):
        return await relay.relay(url, headers)

    @app.post("/ts-proxy")
    async def ts_proxy_body(request: Request):
        try:
            payload = await request.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            payload = {}
        return await relay.relay(payload.get("url"), payload.get("headers"))

    # --- 3. PROVIDERS ---

    @app.get("/providers")
    def list_providers():
        return engine.list_providers()

    async def _run(provider: str, media_or_error):
        if isinstance(media_or_error, ProviderError):
            return handle_error_response(media_or_error)
        result = await engine.fetch(provider, media_or_error)
        if isinstance(result, ProviderError):
            return handle_error_response(result)
        return result.to_dict()

    def _media(provider: str, tmdb: str, type_: str, season=None, episode=None):
        if not check_if_possible_tmdb_id(tmdb):
            return ProviderError(
                kind=ProviderErrorKind.INVALID_REQUEST,
                message=f"Invalid TMDB id: {tmdb}",
                provider=provider,
                status_code=400,
            )
        return MediaRequest(tmdb=tmdb, type=type_, season=season, episode=episode)

    @app.get("/api/{provider}/movie/{tmdb}")
    async def provider_movie(provider: str, tmdb: str):
        return await _run(provider, _media(provider, tmdb, "movie"))

    @app.get("/api/{provider}/tv/{tmdb}/{season}/{episode}")
    async def provider_tv(provider: str, tmdb: str, season: int, episode: int):
        return await _run(provider, _media(provider, tmdb, "tv", season, episode))

    return app


app = create_app()
