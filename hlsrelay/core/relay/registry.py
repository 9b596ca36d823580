from __future__ import annotations

from datetime import datetime, timedelta
import threading
from typing import Callable, Optional, Protocol

from loguru import logger

from hlsrelay.config import URL_TTL_SECONDS
from .errors import TokenExpiredError, TokenNotFoundError
from .ids import generate_id
from .types import RegistryEntry, utcnow


class UrlRegistry(Protocol):
    """
    Store mapping opaque tokens to origin URLs.
    """

    def register(self, url: str) -> str: ...

    def resolve(self, token: str) -> str: ...

    def sweep(
        self, ttl_seconds: Optional[float] = None, now: Optional[datetime] = None
    ) -> int: ...


class MemoryUrlRegistry:
    """
    Thread-safe in-memory token -> URL registry with TTL expiry.
    """

    def __init__(
        self,
        ttl_seconds: float,
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Create an empty registry.

        Parameters:
            ttl_seconds (float): Lifetime of an entry, measured from its (latest) registration.
            clock (Callable[[], datetime]): Source of the current time; tests inject a fake clock.
        """
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._data: dict[str, RegistryEntry] = {}
        self._lock = threading.Lock()

    def _is_expired(self, entry: RegistryEntry, now: datetime) -> bool:
        return now - entry.created_at > self._ttl

    def register(self, url: str) -> str:
        """
        Register `url` and return its token.

        Re-registering a known URL keeps the same token and refreshes the entry's
        creation time, so a URL that keeps showing up in live playlists stays
        resolvable.
        """
        token = generate_id(url)
        entry = RegistryEntry(token=token, url=url, created_at=self._clock())
        with self._lock:
            self._data[token] = entry
        logger.trace("Registered {}", token)
        return token

    def resolve(self, token: str) -> str:
        """
        Return the origin URL registered under `token`.

        Raises:
            TokenNotFoundError: If the token was never registered or was already evicted.
            TokenExpiredError: If the entry outlived its TTL; the entry is evicted, so the
                next lookup raises TokenNotFoundError.
        """
        now = self._clock()
        with self._lock:
            entry = self._data.get(token)
            if entry is None:
                logger.trace("Registry miss for {}", token)
                raise TokenNotFoundError(token)
            if self._is_expired(entry, now):
                self._data.pop(token, None)
                logger.debug("Registry entry {} expired", token)
                raise TokenExpiredError(token)
        return entry.url

    def sweep(
        self, ttl_seconds: Optional[float] = None, now: Optional[datetime] = None
    ) -> int:
        """
        Evict every entry older than `ttl_seconds` (the registry TTL when omitted).

        Returns:
            int: Number of evicted entries.
        """
        now = now or self._clock()
        ttl = self._ttl if ttl_seconds is None else timedelta(seconds=ttl_seconds)
        with self._lock:
            stale = [t for t, e in self._data.items() if now - e.created_at > ttl]
            for token in stale:
                del self._data[token]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


REGISTRY = MemoryUrlRegistry(URL_TTL_SECONDS)
