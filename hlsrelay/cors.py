from __future__ import annotations

from fastapi import FastAPI
from loguru import logger
from starlette.middleware.cors import CORSMiddleware

# Players only read from the relay, apart from POST /register.
RELAY_METHODS = ["GET", "HEAD", "POST", "OPTIONS"]
# hls.js and native players inspect these on segment responses.
EXPOSED_HEADERS = ["Content-Length", "Content-Type", "Cache-Control"]
PREFLIGHT_MAX_AGE_SECONDS = 600


def apply_cors_middleware(
    app: FastAPI,
    *,
    origins: list[str],
    allow_credentials: bool,
) -> None:
    """Let browser players on other origins fetch playlists and segments.

    - No middleware if origins is empty.
    - Wildcard origins ("*") always disable credentials.
    """

    if not origins:
        logger.debug("CORS disabled; relay is same-origin only")
        return

    is_wildcard = "*" in origins
    credentials = False if is_wildcard else allow_credentials
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if is_wildcard else origins,
        allow_credentials=credentials,
        allow_methods=RELAY_METHODS,
        allow_headers=["Content-Type", "Range"],
        expose_headers=EXPOSED_HEADERS,
        max_age=PREFLIGHT_MAX_AGE_SECONDS,
    )
    logger.info(
        "CORS enabled for {} (credentials={})",
        "*" if is_wildcard else ", ".join(origins),
        credentials,
    )
