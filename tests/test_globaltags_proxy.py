"""
Tests for the GlobalTags pass-through proxy.
"""

from fastapi import status
from fastapi.testclient import TestClient

from ollama_proxy.main import create_app
from tests.conftest import StubUpstream, refuse, upstream_response


def test_any_path_is_forwarded_without_authentication(globaltags_client, upstream):
    response = globaltags_client.get("/tags/search?q=python&limit=5")

    assert response.status_code == status.HTTP_200_OK
    forwarded = upstream.last_request
    assert forwarded.method == "GET"
    assert str(forwarded.url) == "http://127.0.0.1:8000/tags/search?q=python&limit=5"


def test_host_is_rewritten_to_upstream(globaltags_client, upstream):
    globaltags_client.get("/", headers={"Host": "proxy.example:8010"})

    assert upstream.last_request.headers["host"] == "127.0.0.1:8000"


def test_request_headers_and_body_are_forwarded(globaltags_client, upstream):
    globaltags_client.put(
        "/tags/7",
        content=b"name=python",
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
            "Authorization": "Bearer user-token",
            "X-Request": "abc",
        },
    )

    forwarded = upstream.last_request
    assert forwarded.method == "PUT"
    assert forwarded.content == b"name=python"
    assert forwarded.headers["content-type"] == "application/x-www-form-urlencoded"
    assert forwarded.headers["authorization"] == "Bearer user-token"
    assert forwarded.headers["x-request"] == "abc"


def test_response_is_relayed(settings):
    upstream = StubUpstream(
        lambda request: upstream_response(
            201,
            content=b"<p>created</p>",
            headers={"Content-Type": "text/html", "Location": "/tags/8"},
        )
    )
    client = TestClient(create_app(settings, settings.globaltags_proxy_config(), transport=upstream.transport()))

    response = client.post("/tags", content=b"{}")

    assert response.status_code == status.HTTP_201_CREATED
    assert response.text == "<p>created</p>"
    assert response.headers["content-type"] == "text/html"
    assert response.headers["location"] == "/tags/8"


def test_health_is_answered_locally(globaltags_client, upstream):
    response = globaltags_client.get("/health")

    assert response.json() == {"status": "ok", "message": "GlobalTags proxy is running"}
    assert upstream.requests == []


def test_preflight_is_answered_locally(globaltags_client, upstream):
    response = globaltags_client.options("/tags", headers={"Origin": "http://localhost:3000"})

    assert response.status_code == status.HTTP_200_OK
    assert upstream.requests == []


def test_docs_and_metrics_are_not_shadowed(globaltags_client, upstream):
    globaltags_client.get("/docs")
    globaltags_client.get("/metrics")

    assert [request.url.path for request in upstream.requests] == ["/docs", "/metrics"]


def test_unreachable_upstream(settings):
    upstream = StubUpstream(refuse)
    client = TestClient(create_app(settings, settings.globaltags_proxy_config(), transport=upstream.transport()))

    response = client.get("/tags")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["error"] == "Proxy error"


def test_percent_encoded_path_is_forwarded_unchanged(globaltags_client, upstream):
    response = globaltags_client.get("/files/a%3Fb%23c/d%2Fe?x=1")

    assert response.status_code == status.HTTP_200_OK
    assert upstream.last_request.url.raw_path == b"/files/a%3Fb%23c/d%2Fe?x=1"


def test_repeated_set_cookie_headers_are_relayed_separately(settings):
    cookies = ["a=1; Expires=Wed, 21 Oct 2026 07:28:00 GMT", "b=2"]
    upstream = StubUpstream(
        lambda request: upstream_response(
            200,
            content=b"ok",
            headers=[("Set-Cookie", cookies[0]), ("Set-Cookie", cookies[1])],
        )
    )
    client = TestClient(create_app(settings, settings.globaltags_proxy_config(), transport=upstream.transport()))

    response = client.get("/login")

    assert response.headers.get_list("set-cookie") == cookies
    assert response.text == "ok"


def test_repeated_request_headers_are_forwarded(globaltags_client, upstream):
    globaltags_client.get("/tags", headers=[("X-Tag", "a"), ("X-Tag", "b")])

    assert upstream.last_request.headers.get_list("x-tag") == ["a", "b"]
