"""Proxy router.

This module builds the routes of one proxy instance from its
configuration: a health check, and either a single authenticated
endpoint or a catch-all pass-through.
"""

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
import structlog

from ..auth.dependencies import require_api_key
from ..core.exceptions import RouteNotFoundError
from ..models.common import HealthResponse
from ..models.proxy import HttpMethod, ProxyConfig, ProxyError, ProxyRequest, ProxyResponse
from .service import Forwarder

logger = structlog.get_logger(__name__)

PROXY_METHODS = [method.value for method in HttpMethod]


def get_forwarder(request: Request) -> Forwarder:
    """Get the forwarder of the application serving the request."""
    return request.app.state.forwarder


async def read_proxy_request(request: Request) -> ProxyRequest:
    """Buffer an inbound request in full.

    The path is taken from the raw request target so percent-encoded
    characters reach the upstream unchanged, and repeated headers are kept.

    Args:
        request: FastAPI request object.

    Returns:
        ProxyRequest: The request with its complete body.
    """
    raw_path = request.scope.get("raw_path") or request.url.path.encode("utf-8")
    return ProxyRequest(
        method=request.method,
        path=raw_path.split(b"?", 1)[0].decode("latin-1"),
        query=request.url.query,
        headers=[
            (key.decode("latin-1"), value.decode("latin-1"))
            for key, value in request.headers.raw
        ],
        body=await request.body(),
    )


def relay_response(result: ProxyResponse) -> Response:
    """Build the client response from an upstream response.

    Headers are appended one by one so repeated ones such as Set-Cookie
    stay separate. The upstream Content-Length wins when present.
    """
    response = Response(content=result.body, status_code=result.status_code)
    if any(key == "content-length" for key, _ in result.headers):
        del response.headers["content-length"]
    for key, value in result.headers:
        response.headers.append(key, value)
    return response


def build_router(config: ProxyConfig) -> APIRouter:
    """Create the routes of a proxy instance.

    Args:
        config: Proxy configuration.

    Returns:
        APIRouter: Router to include in the proxy's application.
    """
    router = APIRouter()
    auth = [Depends(require_api_key(config))]

    @router.get("/health", response_model=HealthResponse, summary="Health check")
    async def health_check() -> HealthResponse:
        logger.info("Health check requested", proxy=config.name)
        return HealthResponse(message=config.description)

    async def forward(
        request: Request,
        forwarder: Forwarder = Depends(get_forwarder),
    ) -> Response:
        proxy_request = await read_proxy_request(request)
        logger.debug(
            "Forwarding request",
            proxy=config.name,
            method=proxy_request.method,
            path=proxy_request.path,
            headers=dict(proxy_request.headers),
            body_size=len(proxy_request.body),
        )

        result = await forwarder.forward(proxy_request)

        if isinstance(result, ProxyError):
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=result.to_payload(),
            )

        return relay_response(result)

    async def not_found(request: Request) -> Response:
        raise RouteNotFoundError(request.method, request.url.path)

    if config.upstream_path is not None:
        router.add_api_route(
            config.upstream_path,
            forward,
            methods=["POST"],
            dependencies=auth,
            summary=f"Forward to {config.upstream_origin}{config.upstream_path}",
        )
        router.add_api_route(
            "/{path:path}",
            not_found,
            methods=PROXY_METHODS,
            dependencies=auth,
            include_in_schema=False,
        )
    else:
        router.add_api_route(
            "/{path:path}",
            forward,
            methods=PROXY_METHODS,
            dependencies=auth,
            include_in_schema=False,
        )

    return router
