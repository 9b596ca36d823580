from __future__ import annotations

from datetime import datetime, timedelta
import threading
from typing import Callable, Optional, Protocol

from loguru import logger

from .types import ContentEntry, Payload, utcnow


def manifest_key(token: str) -> str:
    return f"manifest:{token}"


def segment_key(token: str) -> str:
    return f"segment:{token}"


class ContentCache(Protocol):
    """
    Short-lived store for fetched playlists and segments.
    """

    def get_fresh(self, key: str, ttl_seconds: float) -> Optional[Payload]: ...

    def put(self, key: str, payload: Payload) -> None: ...

    def sweep(self, max_age_seconds: float, now: Optional[datetime] = None) -> int: ...


class MemoryContentCache:
    """
    Thread-safe in-memory content cache.

    Freshness is decided per lookup (the caller passes the window), while
    eviction happens only in `sweep`. A manifest can therefore be too old to
    reuse long before it is old enough to be dropped.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._data: dict[str, ContentEntry] = {}
        self._lock = threading.Lock()

    def get_fresh(self, key: str, ttl_seconds: float) -> Optional[Payload]:
        """
        Return the cached payload for `key` if it is younger than `ttl_seconds`.

        Returns:
            str | bytes | None: The payload on a fresh hit, `None` on a miss or stale entry.
        """
        now = self._clock()
        with self._lock:
            entry = self._data.get(key)
        if entry is None:
            logger.trace("Content cache miss for {}", key)
            return None
        if now - entry.cached_at >= timedelta(seconds=ttl_seconds):
            logger.trace("Content cache stale for {}", key)
            return None
        logger.trace("Content cache hit for {}", key)
        return entry.payload

    def put(self, key: str, payload: Payload) -> None:
        logger.trace("Content cache set for {}", key)
        entry = ContentEntry(key=key, payload=payload, cached_at=self._clock())
        with self._lock:
            self._data[key] = entry

    def sweep(self, max_age_seconds: float, now: Optional[datetime] = None) -> int:
        """
        Evict every entry older than `max_age_seconds`, whatever its kind.

        Returns:
            int: Number of evicted entries.
        """
        now = now or self._clock()
        max_age = timedelta(seconds=max_age_seconds)
        with self._lock:
            stale = [k for k, e in self._data.items() if now - e.cached_at > max_age]
            for key in stale:
                del self._data[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


CONTENT_CACHE = MemoryContentCache()
