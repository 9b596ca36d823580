from .errors import (
    RelayError,
    InvalidRequestError,
    TokenNotFoundError,
    TokenExpiredError,
    UpstreamError,
)
from .ids import generate_id, ID_LENGTH
from .types import RegistryEntry, ContentEntry
from .registry import REGISTRY, MemoryUrlRegistry, UrlRegistry
from .cache import (
    CONTENT_CACHE,
    ContentCache,
    MemoryContentCache,
    manifest_key,
    segment_key,
)
from .hls import (
    PlaylistRewriter,
    PlaylistRewriterProtocol,
    is_master_playlist,
    resolve_reference,
)
from .upstream import FETCHER, UpstreamFetcher, redact_upstream
from .sweeper import ExpirySweeper


__all__ = [
    "RelayError",
    "InvalidRequestError",
    "TokenNotFoundError",
    "TokenExpiredError",
    "UpstreamError",
    "generate_id",
    "ID_LENGTH",
    "RegistryEntry",
    "ContentEntry",
    "REGISTRY",
    "MemoryUrlRegistry",
    "UrlRegistry",
    "CONTENT_CACHE",
    "ContentCache",
    "MemoryContentCache",
    "manifest_key",
    "segment_key",
    "PlaylistRewriter",
    "PlaylistRewriterProtocol",
    "is_master_playlist",
    "resolve_reference",
    "FETCHER",
    "UpstreamFetcher",
    "redact_upstream",
    "ExpirySweeper",
]
