"""Custom middleware for the FastAPI application.

This module provides middleware for preflight handling, correlation ID
tracking and request logging.
"""

import time
import uuid
from typing import Callable, Collection, Dict, Sequence

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import structlog

from .monitoring import track_request

logger = structlog.get_logger(__name__)


def allow_origin_headers(origin: str, allow_origins: Collection[str]) -> Dict[str, str]:
    """Access-Control-Allow-Origin headers for a request from ``origin``.

    Args:
        origin: Value of the request's Origin header, may be empty.
        allow_origins: Allowed origins, ``*`` for any.

    Returns:
        Dict[str, str]: Empty when the origin is not allowed.
    """
    if "*" in allow_origins:
        return {"Access-Control-Allow-Origin": "*"}
    if origin in allow_origins:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    return {}


class PreflightMiddleware(BaseHTTPMiddleware):
    """Middleware answering every OPTIONS request directly.

    Preflight requests never carry the Authorization header, so they are
    answered with an empty 200 and the CORS headers before any route or
    authentication runs, whatever headers they do carry.
    """

    def __init__(
        self,
        app: ASGIApp,
        allow_origins: Sequence[str] = ("*",),
        allow_methods: Sequence[str] = ("GET", "POST", "OPTIONS"),
        allow_headers: Sequence[str] = ("Content-Type", "Authorization"),
    ) -> None:
        """Initialize the middleware.

        Args:
            app: ASGI application.
            allow_origins: Allowed origins, ``*`` for any.
            allow_methods: Allowed methods.
            allow_headers: Allowed request headers.
        """
        super().__init__(app)
        self.allow_origins = set(allow_origins)
        self.allow_methods = ", ".join(allow_methods)
        self.allow_headers = ", ".join(allow_headers)

    def preflight_headers(self, origin: str) -> Dict[str, str]:
        """CORS headers for a preflight response.

        Args:
            origin: Value of the request's Origin header, may be empty.

        Returns:
            Dict[str, str]: Response headers.
        """
        headers = {
            "Access-Control-Allow-Methods": self.allow_methods,
            "Access-Control-Allow-Headers": self.allow_headers,
        }
        headers.update(allow_origin_headers(origin, self.allow_origins))
        return headers

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method != "OPTIONS":
            return await call_next(request)

        logger.debug("Handling OPTIONS request directly", path=request.url.path)
        return Response(
            status_code=status.HTTP_200_OK,
            headers=self.preflight_headers(request.headers.get("origin", "")),
        )


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add correlation ID to requests.

    This middleware generates a unique correlation ID for each request
    and makes it available throughout the request lifecycle.
    """

    def __init__(self, app: ASGIApp, header_name: str = "X-Correlation-ID") -> None:
        """Initialize the middleware.

        Args:
            app: ASGI application.
            header_name: Header name for correlation ID.
        """
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(self.header_name) or str(uuid.uuid4())

        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
        request.state.correlation_id = correlation_id

        try:
            response = await call_next(request)
            response.headers[self.header_name] = correlation_id
            return response
        finally:
            structlog.contextvars.clear_contextvars()


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log HTTP requests and responses.

    This middleware logs request and response information including
    timing, status codes, and other relevant details.
    """

    def __init__(self, app: ASGIApp, proxy_name: str) -> None:
        """Initialize the middleware.

        Args:
            app: ASGI application.
            proxy_name: Name of the proxy serving the requests.
        """
        super().__init__(app)
        self.proxy_name = proxy_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        logger.info(
            "Request started",
            proxy=self.proxy_name,
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )
        logger.debug("Request headers", headers=dict(request.headers))

        try:
            response = await call_next(request)
        except Exception as exc:
            process_time = time.time() - start_time
            logger.error(
                "Request failed",
                proxy=self.proxy_name,
                method=request.method,
                path=request.url.path,
                process_time=f"{process_time:.4f}s",
                error=str(exc),
            )
            raise

        process_time = time.time() - start_time
        logger.info(
            "Request completed",
            proxy=self.proxy_name,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time=f"{process_time:.4f}s",
        )
        track_request(self.proxy_name, request.method, response.status_code, process_time)

        return response
