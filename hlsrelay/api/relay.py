from __future__ import annotations

from typing import NoReturn
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from loguru import logger
from pydantic import BaseModel

from hlsrelay.config import CONTENT_CACHE_TTL_SECONDS, MANIFEST_FRESH_SECONDS
from hlsrelay.core.relay import (
    CONTENT_CACHE,
    FETCHER,
    REGISTRY,
    ContentCache,
    InvalidRequestError,
    PlaylistRewriter,
    PlaylistRewriterProtocol,
    RelayError,
    UpstreamFetcher,
    UrlRegistry,
    manifest_key,
    redact_upstream,
    segment_key,
)


router = APIRouter()

HLS_MEDIA_TYPE = "application/vnd.apple.mpegurl"
SEGMENT_MEDIA_TYPE = "video/mp2t"
_PROCESSING_ERROR = "error processing stream"
_MANIFEST_HEADERS = {"Cache-Control": "no-cache"}


class RegisterResponse(BaseModel):
    id: str


def get_registry() -> UrlRegistry:
    return REGISTRY


def get_content_cache() -> ContentCache:
    return CONTENT_CACHE


def get_fetcher() -> UpstreamFetcher:
    return FETCHER


def get_rewriter(
    registry: UrlRegistry = Depends(get_registry),
) -> PlaylistRewriterProtocol:
    return PlaylistRewriter(registry)


def _raise_http(exc: Exception, *, what: str, token: str) -> NoReturn:
    """
    Translate a failure into an HTTPException with a client-safe detail.

    Internal context (origin URL, upstream status) goes to the log only.
    """
    if isinstance(exc, RelayError) and exc.status_code < 500:
        logger.warning("{} {} rejected ({}): {}", what, token, exc.status_code, exc)
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    if isinstance(exc, RelayError):
        logger.error("{} {} failed: {}", what, token, exc)
    else:
        logger.exception("{} {} failed unexpectedly: {}", what, token, exc)
    raise HTTPException(status_code=500, detail=_PROCESSING_ERROR) from exc


def _validate_registration_url(url: object) -> str:
    """
    Ensure a registration payload carries a usable http(s) URL.
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidRequestError("missing url")
    url = url.strip()
    parsed = urlsplit(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidRequestError("invalid url scheme")
    return url


async def _load_manifest(
    token: str, url: str, *, cache: ContentCache, fetcher: UpstreamFetcher
) -> str:
    """
    Return playlist text for `token`, reusing a cached copy within the freshness window.
    """
    key = manifest_key(token)
    cached = cache.get_fresh(key, MANIFEST_FRESH_SECONDS)
    if isinstance(cached, str):
        logger.debug("Manifest cache hit for {}", token)
        return cached
    body = await fetcher.fetch(url, key=key)
    text = body.decode("utf-8", errors="replace")
    cache.put(key, text)
    logger.success(
        "Fetched manifest {} from {} ({} bytes)", token, redact_upstream(url), len(body)
    )
    return text


def _manifest_response(text: str) -> Response:
    return Response(
        content=text.encode("utf-8"),
        media_type=HLS_MEDIA_TYPE,
        headers=_MANIFEST_HEADERS,
    )


@router.post("/register", response_model=RegisterResponse)
async def register(
    request: Request,
    registry: UrlRegistry = Depends(get_registry),
):
    """
    Register an origin playlist URL and return its opaque id.
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    raw_url = payload.get("url") if isinstance(payload, dict) else None
    try:
        url = _validate_registration_url(raw_url)
    except InvalidRequestError as exc:
        _raise_http(exc, what="Registration", token="-")
    token = registry.register(url)
    logger.info("Registered stream {} ({})", token, redact_upstream(url))
    return RegisterResponse(id=token)


@router.get("/stream/{token}")
async def stream(
    token: str,
    registry: UrlRegistry = Depends(get_registry),
    cache: ContentCache = Depends(get_content_cache),
    fetcher: UpstreamFetcher = Depends(get_fetcher),
    rewriter: PlaylistRewriterProtocol = Depends(get_rewriter),
):
    """
    Serve the registered root playlist with every reference routed through the relay.
    """
    logger.info("Relay stream {}", token)
    try:
        url = registry.resolve(token)
        text = await _load_manifest(token, url, cache=cache, fetcher=fetcher)
        rewritten = rewriter.rewrite_root(text, base_url=url, root_token=token)
    except Exception as exc:
        _raise_http(exc, what="Stream", token=token)
    return _manifest_response(rewritten)


@router.get("/variant/{root_token}/{variant_token}")
async def variant(
    root_token: str,
    variant_token: str,
    registry: UrlRegistry = Depends(get_registry),
    cache: ContentCache = Depends(get_content_cache),
    fetcher: UpstreamFetcher = Depends(get_fetcher),
    rewriter: PlaylistRewriterProtocol = Depends(get_rewriter),
):
    """
    Serve a variant playlist. Lookup is by `variant_token`; `root_token` is only carried along.
    """
    logger.info("Relay variant {} (root {})", variant_token, root_token)
    try:
        url = registry.resolve(variant_token)
        text = await _load_manifest(variant_token, url, cache=cache, fetcher=fetcher)
        rewritten = rewriter.rewrite_variant(text, base_url=url, root_token=root_token)
    except Exception as exc:
        _raise_http(exc, what="Variant", token=variant_token)
    return _manifest_response(rewritten)


@router.get("/segment/{root_token}/{segment_token}")
async def segment(
    root_token: str,
    segment_token: str,
    registry: UrlRegistry = Depends(get_registry),
    cache: ContentCache = Depends(get_content_cache),
    fetcher: UpstreamFetcher = Depends(get_fetcher),
):
    """
    Serve a media segment, cached for the full content TTL since segments never change.
    """
    logger.trace("Relay segment {} (root {})", segment_token, root_token)
    key = segment_key(segment_token)
    try:
        url = registry.resolve(segment_token)
        cached = cache.get_fresh(key, CONTENT_CACHE_TTL_SECONDS)
        if isinstance(cached, bytes):
            body = cached
        else:
            body = await fetcher.fetch(url, key=key)
            cache.put(key, body)
            logger.debug("Fetched segment {} ({} bytes)", segment_token, len(body))
    except Exception as exc:
        _raise_http(exc, what="Segment", token=segment_token)
    return Response(content=body, media_type=SEGMENT_MEDIA_TYPE)
