"""
Process settings, read once from the environment (and `.env` if present).
"""
from __future__ import annotations
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    disable_m3u8: bool = False
    production: bool = False
    log_level: str = "INFO"
    relay_timeout: float = 15.0
    provider_timeout: float = 12.0
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        # DISABLE_M3U8 is matched exactly: only the lowercase "true" disables the relay
        return cls(
            disable_m3u8=os.getenv("DISABLE_M3U8") == "true",
            production=os.getenv("PRODUCTION") in ("true", "TRUE"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            relay_timeout=_float_env("RELAY_TIMEOUT", 15.0),
            provider_timeout=_float_env("PROVIDER_TIMEOUT", 12.0),
            host=os.getenv("HOST", "127.0.0.1"),
            port=int(_float_env("PORT", 8000)),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv()
    return Settings.from_env()
