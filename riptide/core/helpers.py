import re

from fastapi.responses import JSONResponse

from .errors import ProviderError

_TMDB_RE = re.compile(r"[0-9]+")


def check_if_possible_tmdb_id(text: str) -> bool:
    """'155' -> True, '1234567890abc' -> False"""
    return bool(_TMDB_RE.fullmatch(text or ""))


def handle_error_response(error: ProviderError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_dict())
