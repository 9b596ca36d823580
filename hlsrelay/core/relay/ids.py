from __future__ import annotations

import hashlib

ID_LENGTH = 10


def generate_id(url: str) -> str:
    """
    Derive the opaque token for a URL.

    The token is a pure function of the URL string: the same URL always maps to
    the same token, which keeps re-registration idempotent and lets cache keys
    survive repeated playlist rewrites.
    """
    return hashlib.md5(url.encode("utf-8")).hexdigest()[:ID_LENGTH]
