from __future__ import annotations

import asyncio
from typing import Optional

from loguru import logger

from .cache import ContentCache
from .registry import UrlRegistry


class ExpirySweeper:
    """
    Periodically evicts stale registry and content cache entries.

    Runs as an asyncio task owned by the application lifespan: `start` at
    startup, `stop` on shutdown.
    """

    def __init__(
        self,
        registry: UrlRegistry,
        cache: ContentCache,
        *,
        interval_seconds: float,
        url_ttl_seconds: float,
        content_ttl_seconds: float,
    ):
        self._registry = registry
        self._cache = cache
        self._interval = interval_seconds
        self._url_ttl = url_ttl_seconds
        self._content_ttl = content_ttl_seconds
        self._task: Optional[asyncio.Task[None]] = None

    def sweep_once(self) -> tuple[int, int]:
        """
        Run one eviction cycle.

        Returns:
            tuple[int, int]: (evicted registry entries, evicted content cache entries).
        """
        urls = self._registry.sweep(self._url_ttl)
        content = self._cache.sweep(self._content_ttl)
        if urls or content:
            logger.info(
                "Sweeper evicted {} registry and {} content entries", urls, content
            )
        else:
            logger.trace("Sweeper found nothing to evict")
        return urls, content

    async def _run(self) -> None:
        logger.info(
            "Starting expiry sweeper: interval={}s, url_ttl={}s, content_ttl={}s",
            self._interval,
            self._url_ttl,
            self._content_ttl,
        )
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.sweep_once()
            except Exception as e:
                logger.warning(f"Sweeper cycle failed: {e}")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="expiry-sweeper")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Expiry sweeper stopped")
