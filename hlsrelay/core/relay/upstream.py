from __future__ import annotations

import asyncio
from typing import Optional
from urllib.parse import urlsplit

import httpx
from loguru import logger

from hlsrelay.config import UPSTREAM_TIMEOUT_SECONDS, UPSTREAM_USER_AGENT
from .errors import UpstreamError


def redact_upstream(url: str) -> str:
    """
    Produce a short identifier for logging upstream URLs at verbose levels.
    """
    try:
        parsed = urlsplit(url)
        host = parsed.netloc
        path = parsed.path or "/"
        return f"{host}:{hash(path) & 0xFFFF_FFFF:x}"
    except Exception:
        return "<redacted>"


def _build_async_client() -> httpx.AsyncClient:
    """
    Build an AsyncClient for origin fetches without env proxies.
    """
    logger.trace("Building upstream AsyncClient")
    timeout = httpx.Timeout(UPSTREAM_TIMEOUT_SECONDS, connect=10.0)
    headers = {"User-Agent": UPSTREAM_USER_AGENT} if UPSTREAM_USER_AGENT else None
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        trust_env=False,
        headers=headers,
    )


async def fetch_bytes(url: str) -> bytes:
    """
    GET `url` from origin and return the full body.

    Raises:
        UpstreamError: On transport errors, timeouts and non-2xx responses.
    """
    logger.trace("Fetching upstream {}", redact_upstream(url))
    try:
        async with _build_async_client() as client:
            response = await client.get(url)
    except httpx.HTTPError as exc:
        raise UpstreamError(url, f"{type(exc).__name__}: {exc}") from exc
    if not response.is_success:
        raise UpstreamError(
            url, f"unexpected status {response.status_code}", response.status_code
        )
    return response.content


class UpstreamFetcher:
    """
    Origin fetcher that collapses concurrent fetches of the same key.

    While a fetch for a key is in flight, further callers for that key await
    the same task instead of hitting the origin again.
    """

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Task[bytes]] = {}

    def _forget(self, key: str, task: asyncio.Task[bytes]) -> None:
        if self._inflight.get(key) is task:
            self._inflight.pop(key, None)
        # Waiters may all have been cancelled; mark the failure as retrieved.
        if not task.cancelled():
            exc = task.exception()
            if exc is not None:
                logger.debug("Upstream fetch for {} failed: {}", key, exc)

    async def fetch(self, url: str, *, key: Optional[str] = None) -> bytes:
        key = key or url
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fetch_bytes(url))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            logger.debug("Joining in-flight upstream fetch for {}", key)
        return await asyncio.shield(task)

    @property
    def inflight(self) -> int:
        return len(self._inflight)


FETCHER = UpstreamFetcher()
