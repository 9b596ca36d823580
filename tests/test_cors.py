from __future__ import annotations

from fastapi import FastAPI, Response
from fastapi.testclient import TestClient

from hlsrelay.cors import apply_cors_middleware

PLAYER_ORIGIN = "http://player.local:8080"


def _make_app(*, origins: list[str], allow_credentials: bool) -> FastAPI:
    app = FastAPI()

    @app.post("/register")
    def register():
        return {"id": "0123456789"}

    @app.get("/segment/{root}/{token}")
    def segment(root: str, token: str):
        return Response(content=b"\x47", media_type="video/mp2t")

    apply_cors_middleware(app, origins=origins, allow_credentials=allow_credentials)
    return app


def _preflight(app: FastAPI):
    return TestClient(app).options(
        "/register",
        headers={
            "Origin": PLAYER_ORIGIN,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )


def test_cors_wildcard_disables_credentials() -> None:
    res = _preflight(_make_app(origins=["*"], allow_credentials=True))

    assert res.status_code == 200
    assert res.headers.get("access-control-allow-origin") == "*"
    assert "access-control-allow-credentials" not in res.headers


def test_cors_specific_origin_allows_credentials_when_enabled() -> None:
    res = _preflight(_make_app(origins=[PLAYER_ORIGIN], allow_credentials=True))

    assert res.status_code == 200
    assert res.headers.get("access-control-allow-origin") == PLAYER_ORIGIN
    assert res.headers.get("access-control-allow-credentials") == "true"


def test_cors_rejects_unlisted_origin() -> None:
    res = _preflight(_make_app(origins=["http://other.local"], allow_credentials=False))

    assert res.status_code == 400
    assert "access-control-allow-origin" not in res.headers


def test_cors_off_adds_no_headers() -> None:
    res = _preflight(_make_app(origins=[], allow_credentials=True))

    assert res.status_code == 405
    assert "access-control-allow-origin" not in res.headers


def test_cors_exposes_segment_headers_and_caches_preflight() -> None:
    app = _make_app(origins=[PLAYER_ORIGIN], allow_credentials=False)
    client = TestClient(app)

    res = client.get("/segment/root/abc", headers={"Origin": PLAYER_ORIGIN})
    exposed = res.headers.get("access-control-expose-headers", "")
    assert res.status_code == 200
    assert "Content-Length" in exposed

    pre = client.options(
        "/segment/root/abc",
        headers={
            "Origin": PLAYER_ORIGIN,
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "range",
        },
    )
    assert pre.status_code == 200
    assert pre.headers.get("access-control-max-age") == "600"
