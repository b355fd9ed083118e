"""
Tests for logging helpers and middleware.
"""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from ollama_proxy.core.logging import REDACTED, redact_headers, sanitize_headers
from ollama_proxy.core.middleware import PreflightMiddleware, allow_origin_headers


def test_sanitize_headers_masks_credentials():
    headers = {"Authorization": "Bearer API KEY", "cookie": "sid=1", "accept": "*/*"}

    assert sanitize_headers(headers) == {
        "Authorization": REDACTED,
        "cookie": REDACTED,
        "accept": "*/*",
    }


def test_redact_headers_processor():
    event = {"event": "Request headers", "headers": {"authorization": "Bearer API KEY"}}

    assert redact_headers(None, "debug", event)["headers"] == {"authorization": REDACTED}


def test_redact_headers_processor_ignores_other_events():
    event = {"event": "Request started", "path": "/health"}

    assert redact_headers(None, "info", dict(event)) == event


def make_app(**kwargs) -> FastAPI:
    app = FastAPI()

    @app.get("/ping")
    async def ping():
        return {"pong": True}

    app.add_middleware(PreflightMiddleware, **kwargs)
    return app


def test_preflight_echoes_listed_origin():
    client = TestClient(make_app(allow_origins=["http://a.example"]))

    response = client.options("/ping", headers={"Origin": "http://a.example"})

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://a.example"
    assert response.headers["vary"] == "Origin"


def test_preflight_for_unlisted_origin_has_no_allow_origin():
    client = TestClient(make_app(allow_origins=["http://a.example"]))

    response = client.options("/ping", headers={"Origin": "http://b.example"})

    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers


def test_other_methods_reach_the_app():
    client = TestClient(make_app())

    assert client.get("/ping").json() == {"pong": True}


def test_allow_origin_headers():
    assert allow_origin_headers("", ["*"]) == {"Access-Control-Allow-Origin": "*"}
    assert allow_origin_headers("http://a.example", ["http://a.example"]) == {
        "Access-Control-Allow-Origin": "http://a.example",
        "Vary": "Origin",
    }
    assert allow_origin_headers("http://b.example", ["http://a.example"]) == {}
