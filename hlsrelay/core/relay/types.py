from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Union

Payload = Union[str, bytes]


def utcnow() -> datetime:
    """
    Get the current UTC time as a timezone-aware datetime.
    """
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RegistryEntry:
    """
    An origin URL registered under an opaque token.
    """

    token: str
    url: str
    created_at: datetime


@dataclass(frozen=True)
class ContentEntry:
    key: str
    payload: Payload
    cached_at: datetime
