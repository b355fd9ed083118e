"""FastAPI application entry point.

This module builds one FastAPI application per proxy configuration and
serves the authenticated Ollama proxy and the GlobalTags pass-through
proxy side by side.
"""

import asyncio
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, List, Optional, Sequence

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import httpx
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import ValidationError
import structlog
import uvicorn

from .core.config import Settings, get_settings
from .core.exceptions import AuthenticationError, BaseAppException, ConfigurationError
from .core.logging import setup_logging
from .core.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    PreflightMiddleware,
    allow_origin_headers,
)
from .core.monitoring import setup_monitoring, track_error
from .models.common import ErrorResponse
from .models.proxy import ProxyConfig
from .proxy.router import build_router
from .proxy.service import Forwarder

logger = structlog.get_logger(__name__)


def create_app(
    settings: Settings,
    config: ProxyConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Create and configure the FastAPI application of one proxy.

    Args:
        settings: Application settings.
        config: Configuration of the proxy to serve.
        transport: Transport override for upstream calls.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info(
            "Starting proxy",
            proxy=config.name,
            port=config.listen_port,
            upstream=config.upstream_origin,
            version=settings.app_version,
        )
        setup_monitoring(settings.app_name, settings.app_version)

        if config.require_auth and not config.expected_api_key:
            logger.warning(
                "API key is empty, a blank bearer token will be accepted",
                proxy=config.name,
            )

        yield

        logger.info("Shutting down proxy", proxy=config.name)

    # Interactive docs would shadow upstream paths on a pass-through proxy
    show_docs = config.upstream_path is not None and not settings.is_production

    app = FastAPI(
        title=f"{settings.app_name} ({config.name})",
        version=settings.app_version,
        description=config.description,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
        openapi_url="/openapi.json" if show_docs else None,
    )

    app.state.config = config
    app.state.forwarder = Forwarder(
        config,
        timeout=settings.upstream_timeout,
        transport=transport,
    )

    # Outermost last: correlation ID, logging, preflight, CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=settings.cors_allow_methods_list,
        allow_headers=settings.cors_allow_headers_list,
    )
    app.add_middleware(
        PreflightMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=settings.cors_allow_methods_list,
        allow_headers=settings.cors_allow_headers_list,
    )
    app.add_middleware(LoggingMiddleware, proxy_name=config.name)
    app.add_middleware(CorrelationIDMiddleware)

    add_exception_handlers(app, allow_origins=settings.cors_origins_list)

    if config.expose_metrics:
        @app.get("/metrics", include_in_schema=False)
        async def metrics() -> Response:
            return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(build_router(config))

    return app


def add_exception_handlers(app: FastAPI, allow_origins: Sequence[str] = ("*",)) -> None:
    """Add global exception handlers to the FastAPI app.

    Args:
        app: FastAPI application instance.
        allow_origins: Allowed CORS origins. Unexpected errors are answered
            outside the CORS middleware, so their handler sets the header.
    """

    @app.exception_handler(BaseAppException)
    async def app_exception_handler(
        request: Request, exc: BaseAppException
    ) -> JSONResponse:
        """Handle authentication, authorization and routing errors."""
        logger.warning(
            "Request rejected",
            error=str(exc),
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            path=request.url.path,
        )
        headers = None
        if isinstance(exc, AuthenticationError):
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=exc.message).to_payload(),
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected errors."""
        logger.exception(
            "Unhandled exception",
            error=str(exc),
            path=request.url.path,
        )
        track_error(type(exc).__name__, "app")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error="Server error", message=str(exc)).to_payload(),
            headers=allow_origin_headers(request.headers.get("origin", ""), allow_origins),
        )


def load_settings() -> Settings:
    """Load and validate settings from the environment.

    Raises:
        ConfigurationError: If a setting is missing or invalid.
    """
    try:
        return get_settings()
    except ValidationError as e:
        raise ConfigurationError("Invalid configuration", cause=e) from e


def proxy_configs(settings: Settings) -> List[ProxyConfig]:
    """Configurations of the proxies to run."""
    configs = [settings.ollama_proxy_config()]
    if settings.globaltags_enabled:
        configs.append(settings.globaltags_proxy_config())
    return configs


async def serve(settings: Settings) -> None:
    """Serve every configured proxy until one of them stops.

    Args:
        settings: Application settings.
    """
    servers = []
    for config in proxy_configs(settings):
        server_config = uvicorn.Config(
            create_app(settings, config),
            host=settings.host,
            port=config.listen_port,
            log_level=settings.log_level.lower(),
        )
        servers.append(uvicorn.Server(server_config))
        logger.info(
            "Proxy configured",
            proxy=config.name,
            url=f"http://localhost:{config.listen_port}",
            upstream=config.upstream_origin,
        )

    tasks = [asyncio.create_task(server.serve()) for server in servers]
    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

    # A stopped proxy takes the others down with it
    for server in servers:
        server.should_exit = True
    await asyncio.gather(*pending)

    for task in done:
        task.result()


def main() -> None:
    """Console entry point."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"Configuration error: {e.cause}", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings)

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, proxies stopped")


if __name__ == "__main__":
    main()
