"""
Error types for the two layers.

Relay errors are exceptions that never leave the relay (they are turned into
a status code). Provider errors are plain values returned in place of a
result, so callers always get something they can inspect.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional


# ──────────────────────────────
#  Relay
# ──────────────────────────────
class RelayErrorKind(str, Enum):
    DISABLED = "disabled"
    INVALID_REQUEST = "invalid_request"
    UPSTREAM_REJECTED = "upstream_rejected"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    CLIENT_DISCONNECTED = "client_disconnected"


class RelayError(Exception):
    def __init__(self, kind: RelayErrorKind, status_code: int, message: str = ""):
        super().__init__(message or kind.value)
        self.kind = kind
        self.status_code = status_code
        self.message = message


# ──────────────────────────────
#  Providers
# ──────────────────────────────
class ProviderErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    PROVIDER_BROKEN = "provider_broken"
    UPSTREAM_ERROR = "upstream_error"
    INVALID_REQUEST = "invalid_request"


@dataclass(frozen=True)
class ProviderError:
    kind: ProviderErrorKind
    message: str
    provider: str
    status_code: int
    hint: Optional[str] = None
    unimplemented: bool = False       # integration is known to be incomplete
    retryable: bool = False

    def to_dict(self):
        return {
            "error": self.message,
            "kind": self.kind.value,
            "provider": self.provider,
            "status": self.status_code,
            "hint": self.hint,
            "unimplemented": self.unimplemented,
            "retryable": self.retryable,
        }
