"""Authentication dependencies for FastAPI.

This module provides the static bearer token check guarding the
Ollama proxy.
"""

from typing import Callable, Optional

from fastapi import Request
import structlog

from ..core.exceptions import AuthenticationError, AuthorizationError
from ..core.monitoring import track_auth_attempt
from ..models.proxy import ProxyConfig

BEARER_PREFIX = "Bearer "

logger = structlog.get_logger(__name__)


def extract_bearer_token(auth_header: Optional[str]) -> str:
    """Extract the token from an Authorization header.

    Args:
        auth_header: Raw Authorization header value.

    Returns:
        str: Everything after the ``Bearer `` prefix.

    Raises:
        AuthenticationError: If the header is missing or not a bearer token.
    """
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        raise AuthenticationError()
    return auth_header[len(BEARER_PREFIX):]


def verify_api_key(token: str, config: ProxyConfig) -> None:
    """Compare a bearer token with the configured API key.

    Args:
        token: Token presented by the client.
        config: Proxy configuration.

    Raises:
        AuthorizationError: If the token does not match.
    """
    if token != config.expected_api_key:
        raise AuthorizationError()


def require_api_key(config: ProxyConfig) -> Callable:
    """Create a dependency enforcing the proxy's API key.

    Preflight requests and proxies without ``require_auth`` pass through.

    Args:
        config: Proxy configuration.

    Returns:
        Callable: Dependency function.
    """
    async def check_api_key(request: Request) -> None:
        if not config.require_auth or request.method == "OPTIONS":
            return

        try:
            token = extract_bearer_token(request.headers.get("authorization"))
        except AuthenticationError:
            logger.warning(
                "Missing or invalid Authorization header",
                proxy=config.name,
                path=request.url.path,
                client_ip=request.client.host if request.client else None,
            )
            track_auth_attempt(config.name, "missing")
            raise

        try:
            verify_api_key(token, config)
        except AuthorizationError:
            logger.warning(
                "Invalid API key",
                proxy=config.name,
                path=request.url.path,
                client_ip=request.client.host if request.client else None,
            )
            track_auth_attempt(config.name, "invalid")
            raise

        logger.debug("Authentication successful", proxy=config.name)
        track_auth_attempt(config.name, "success")

    return check_api_key
