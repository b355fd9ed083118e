"""Pytest fixtures for the proxy tests.

The upstream services are never contacted: every application under test
gets an ``httpx.MockTransport`` driven by a ``StubUpstream``.
"""

import json
from typing import Any, AsyncIterator, Callable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from ollama_proxy.core.config import Settings
from ollama_proxy.main import create_app

API_KEY = "API KEY"


class UpstreamStream(httpx.AsyncByteStream):
    """Response body that is still unread when it reaches the forwarder.

    ``httpx.Response(content=...)`` reads its body on construction, which a
    real upstream response never is.
    """

    def __init__(self, content: bytes) -> None:
        self.content = content

    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield self.content


def upstream_response(
    status_code: int,
    *,
    content: bytes = b"",
    json_body: Any = None,
    headers: Any = None,
) -> httpx.Response:
    """Build an upstream response with an unread body."""
    headers = httpx.Headers(headers)
    if json_body is not None:
        content = json.dumps(json_body).encode("utf-8")
        headers.setdefault("Content-Type", "application/json")
    return httpx.Response(status_code, headers=headers, stream=UpstreamStream(content))


class StubUpstream:
    """Records forwarded requests and answers them with a canned handler."""

    def __init__(self, handler: Optional[Callable[[httpx.Request], httpx.Response]] = None) -> None:
        self.requests: List[httpx.Request] = []
        self.handler = handler or echo

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "upstream was never called"
        return self.requests[-1]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def echo(request: httpx.Request) -> httpx.Response:
    """Answer with the request body."""
    return upstream_response(
        200,
        content=request.content,
        headers={"Content-Type": "application/json"},
    )


def refuse(request: httpx.Request) -> httpx.Response:
    """Fail like an upstream that is not listening."""
    raise httpx.ConnectError("[Errno 111] Connection refused", request=request)


@pytest.fixture
def settings() -> Settings:
    """Settings with a known API key, ignoring any local .env file"""
    return Settings(_env_file=None, ollama_api_key=API_KEY)


@pytest.fixture
def upstream() -> StubUpstream:
    return StubUpstream()


@pytest.fixture
def ollama_app(settings, upstream):
    return create_app(settings, settings.ollama_proxy_config(), transport=upstream.transport())


@pytest.fixture
def globaltags_app(settings, upstream):
    return create_app(settings, settings.globaltags_proxy_config(), transport=upstream.transport())


@pytest.fixture
def ollama_client(ollama_app) -> TestClient:
    return TestClient(ollama_app)


@pytest.fixture
def globaltags_client(globaltags_app) -> TestClient:
    return TestClient(globaltags_app)


@pytest.fixture
def auth_headers() -> dict:
    """Headers of a correctly authenticated request"""
    return {"Authorization": f"Bearer {API_KEY}"}
