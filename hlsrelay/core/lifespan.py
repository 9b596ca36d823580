from __future__ import annotations

from contextlib import asynccontextmanager

from loguru import logger
from fastapi import FastAPI

from hlsrelay.config import (
    CONTENT_CACHE_TTL_SECONDS,
    SWEEP_INTERVAL_SECONDS,
    URL_TTL_SECONDS,
)
from hlsrelay.core.relay import CONTENT_CACHE, REGISTRY, ExpirySweeper


def build_sweeper() -> ExpirySweeper:
    """Create the sweeper for the process-wide registry and content cache."""
    return ExpirySweeper(
        REGISTRY,
        CONTENT_CACHE,
        interval_seconds=SWEEP_INTERVAL_SECONDS,
        url_ttl_seconds=URL_TTL_SECONDS,
        content_ttl_seconds=CONTENT_CACHE_TTL_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup: starting expiry sweeper.")
    sweeper = build_sweeper()
    sweeper.start()
    app.state.sweeper = sweeper
    try:
        yield
    finally:
        await sweeper.stop()
        logger.info("Application shutdown complete.")
