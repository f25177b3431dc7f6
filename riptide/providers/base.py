"""
Core types for the Riptide provider system.

A provider turns a MediaRequest into a ProviderResult:
  - files:     playable locations (HLS playlists or direct mp4), each with the
               headers needed to fetch it on its own
  - subtitles: external subtitle tracks
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Union

# ──────────────────────────────
#  Media request (passed to providers)
# ──────────────────────────────
@dataclass(frozen=True)
class MediaRequest:
    tmdb: Union[int, str]
    type: str = "movie"               # "movie" | "tv"
    season: Optional[int] = None
    episode: Optional[int] = None

    def __post_init__(self):
        # Normalize: accept both "show" and "tv" → always "tv"
        if self.type == "show":
            object.__setattr__(self, "type", "tv")
        if self.type not in ("movie", "tv"):
            raise ValueError(f"unsupported media type: {self.type!r}")

    @property
    def is_tv(self) -> bool:
        return self.type == "tv"

# ──────────────────────────────
#  Subtitle
# ──────────────────────────────
@dataclass
class Subtitle:
    url: str
    lang: str

    def to_dict(self):
        return {"url": self.url, "lang": self.lang}

# ──────────────────────────────
#  Stream file
# ──────────────────────────────
@dataclass
class StreamFile:
    file: str
    type: str                         # "hls" | "mp4"
    source: str
    quality: str = "Auto"
    headers: dict[str, str] = field(default_factory=dict)

    def to_dict(self):
        return {
            "file": self.file,
            "type": self.type,
            "source": self.source,
            "quality": self.quality,
            "headers": dict(self.headers),
        }

# ──────────────────────────────
#  Provider output
# ──────────────────────────────
@dataclass
class ProviderResult:
    files: list[StreamFile] = field(default_factory=list)
    subtitles: list[Subtitle] = field(default_factory=list)

    def to_dict(self):
        return {
            "files": [f.to_dict() for f in self.files],
            "subtitles": [s.to_dict() for s in self.subtitles],
        }
