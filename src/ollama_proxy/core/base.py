"""Base classes and utilities.

This module provides the base class for clients talking to upstream
services.
"""

from typing import Optional

import structlog


class BaseClient:
    """Base HTTP client class.

    Provides URL building and request/response logging for clients of
    upstream services.
    """

    def __init__(self, name: str, base_url: str, timeout: Optional[float] = None) -> None:
        """Initialize the client.

        Args:
            name: Client name for logging.
            base_url: Base URL for the service.
            timeout: Request timeout in seconds, None to wait indefinitely.
        """
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = structlog.get_logger(f"{name}Client")

    def _build_url(self, path: str, query: str = "") -> str:
        """Build full URL from path.

        Args:
            path: URL path.
            query: Raw query string, without the leading '?'.

        Returns:
            str: Full URL.
        """
        path = path.lstrip("/")
        url = f"{self.base_url}/{path}"
        if query:
            url = f"{url}?{query}"
        return url

    def _log_request(self, method: str, url: str, **kwargs) -> None:
        """Log outgoing request.

        Args:
            method: HTTP method.
            url: Request URL.
            **kwargs: Additional fields to log.
        """
        self.logger.info(
            "Outgoing request",
            method=method,
            url=url,
            timeout=self.timeout,
            **kwargs,
        )

    def _log_response(self, method: str, url: str, status_code: int, duration: float) -> None:
        """Log response.

        Args:
            method: HTTP method.
            url: Request URL.
            status_code: Response status code.
            duration: Request duration in seconds.
        """
        self.logger.info(
            "Response received",
            method=method,
            url=url,
            status_code=status_code,
            duration=f"{duration:.4f}s",
        )
