"""Custom exception classes.

This module defines custom exceptions used throughout the application.
Each request-level exception carries the HTTP status and the ``error``
text the exception handlers send back to the client.
"""

from typing import Any, Dict, Optional

from fastapi import status


class BaseAppException(Exception):
    """Base exception class for the application.

    All custom exceptions should inherit from this class.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Error message.
            details: Additional error details.
            cause: Underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """String representation of the exception."""
        return self.message

    def __repr__(self) -> str:
        """Detailed representation of the exception."""
        return f"{self.__class__.__name__}('{self.message}', details={self.details})"


class ConfigurationError(BaseAppException):
    """Raised when there's a configuration error."""
    pass


class AuthenticationError(BaseAppException):
    """Raised when the Authorization header is missing or not a bearer token."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication failed", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class AuthorizationError(BaseAppException):
    """Raised when a well-formed bearer token does not match the API key."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Invalid API key", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class RouteNotFoundError(BaseAppException):
    """Raised when the authenticated proxy is asked for a path it does not forward.

    Attributes:
        method: HTTP method of the request.
        path: Request path.
    """

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, method: str, path: str) -> None:
        super().__init__("Not found", details={"method": method, "path": path})
        self.method = method
        self.path = path
