import sys
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI, Response
from fastapi.testclient import TestClient

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

SEGMENT_BYTES = b"\x47\x40\x00\x10" + bytes(range(256)) * 4


class FakeClock:
    """Manually advanced clock injected into the registry and content cache."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def build_upstream_app(hits: Counter) -> FastAPI:
    """
    Create an in-memory FastAPI app that simulates an HLS origin.

    Every request path is counted in `hits` so tests can assert on origin traffic.
    """
    app = FastAPI()

    @app.middleware("http")
    async def count_hits(request, call_next):
        hits[request.url.path] += 1
        return await call_next(request)

    @app.get("/live/master.m3u8")
    async def master():
        playlist = (
            "#EXTM3U\n"
            "#EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=640x360\n"
            "low/index.m3u8\n"
            "#EXT-X-STREAM-INF:BANDWIDTH=1400000,RESOLUTION=1280x720\n"
            "http://upstream/live/high/index.m3u8\n"
        )
        return Response(content=playlist, media_type="application/vnd.apple.mpegurl")

    @app.get("/live/low/index.m3u8")
    async def low():
        playlist = (
            "#EXTM3U\n"
            "#EXT-X-TARGETDURATION:6\n"
            "#EXTINF:6.0,\n"
            "seg1.ts\n"
            "#EXTINF:6.0,\n"
            "seg2.ts\n"
        )
        return Response(content=playlist, media_type="application/vnd.apple.mpegurl")

    @app.get("/live/high/index.m3u8")
    async def high():
        playlist = (
            "#EXTM3U\n"
            "#EXTINF:6.0,\n"
            "http://upstream/live/high/seg1.ts\n"
            "#EXTINF:6.0,\n"
            "backup.m3u8\n"
        )
        return Response(content=playlist, media_type="application/vnd.apple.mpegurl")

    @app.get("/live/media.m3u8")
    async def media():
        playlist = "#EXTM3U\n#EXTINF:6.0,\nlow/seg1.ts\n#EXT-X-ENDLIST\n"
        return Response(content=playlist, media_type="application/vnd.apple.mpegurl")

    @app.get("/live/low/seg1.ts")
    async def segment():
        return Response(content=SEGMENT_BYTES, media_type="video/mp2t")

    @app.get("/broken.m3u8")
    async def broken():
        return Response(content=b"unavailable", status_code=503, media_type="text/plain")

    return app


def patch_async_client(monkeypatch, upstream_app):
    """
    Route origin fetches to `upstream_app` via an ASGI transport.
    """

    def _factory():
        transport = httpx.ASGITransport(app=upstream_app)
        return httpx.AsyncClient(
            transport=transport,
            base_url="http://upstream",
            follow_redirects=True,
            trust_env=False,
        )

    monkeypatch.setattr("hlsrelay.core.relay.upstream._build_async_client", _factory)


@dataclass
class Relay:
    client: TestClient
    clock: FakeClock
    registry: object
    cache: object
    hits: Counter

    def register(self, url: str) -> str:
        resp = self.client.post("/register", json={"url": url})
        assert resp.status_code == 200
        return resp.json()["id"]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def relay(monkeypatch, clock):
    from hlsrelay.api import relay as relay_api
    from hlsrelay.core.relay import MemoryContentCache, MemoryUrlRegistry, UpstreamFetcher
    from hlsrelay.main import app

    hits: Counter = Counter()
    patch_async_client(monkeypatch, build_upstream_app(hits))

    registry = MemoryUrlRegistry(3600, clock=clock)
    cache = MemoryContentCache(clock=clock)
    fetcher = UpstreamFetcher()
    app.dependency_overrides[relay_api.get_registry] = lambda: registry
    app.dependency_overrides[relay_api.get_content_cache] = lambda: cache
    app.dependency_overrides[relay_api.get_fetcher] = lambda: fetcher
    try:
        with TestClient(app) as c:
            yield Relay(client=c, clock=clock, registry=registry, cache=cache, hits=hits)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def client():
    from hlsrelay.main import app

    with TestClient(app) as c:
        yield c
