"""Proxy-related data models.

This module contains Pydantic models for proxy configuration, the
requests the proxies accept and the results of forwarding them.
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import ConfigDict, Field, field_validator

from .common import BaseModel

# Header name/value pairs in wire order, repeated names kept.
HeaderList = List[Tuple[str, str]]


class HttpMethod(str, Enum):
    """HTTP method enumeration."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ProxyConfig(BaseModel):
    """Configuration of one proxy instance.

    Built once at startup and never mutated. The authenticated Ollama
    proxy and the GlobalTags pass-through proxy are two values of this
    model driving the same forwarder.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Proxy name used in logs and metrics")
    description: str = Field(..., description="Message reported by the health endpoint")
    listen_port: int = Field(..., ge=1, le=65535, description="Port the proxy listens on")
    upstream_scheme: str = Field(default="http", description="Upstream URL scheme")
    upstream_host: str = Field(..., min_length=1, description="Upstream host")
    upstream_port: int = Field(..., ge=1, le=65535, description="Upstream port")
    upstream_path: Optional[str] = Field(
        None,
        description="Fixed path to forward; None forwards every path"
    )
    expected_api_key: Optional[str] = Field(None, description="Bearer token clients must present")
    require_auth: bool = Field(default=False, description="Whether requests need a bearer token")
    rewrite_host: bool = Field(default=False, description="Rewrite Host to the upstream origin")
    expose_metrics: bool = Field(default=False, description="Serve Prometheus metrics")

    @field_validator("upstream_path")
    @classmethod
    def validate_upstream_path(cls, v: Optional[str]) -> Optional[str]:
        """Validate the fixed upstream path."""
        if v is not None and not v.startswith("/"):
            v = "/" + v
        return v

    @property
    def upstream_origin(self) -> str:
        """Upstream origin, e.g. ``http://127.0.0.1:11434``."""
        return f"{self.upstream_scheme}://{self.upstream_host}:{self.upstream_port}"

    @property
    def upstream_netloc(self) -> str:
        """Upstream ``host:port`` as sent in the Host header."""
        return f"{self.upstream_host}:{self.upstream_port}"


class ProxyRequest(BaseModel):
    """Inbound request, fully buffered."""

    method: HttpMethod = Field(..., description="HTTP method")
    path: str = Field(..., description="Request path, still percent-encoded")
    query: str = Field(default="", description="Raw query string")
    headers: HeaderList = Field(default_factory=list, description="Request headers")
    body: bytes = Field(default=b"", description="Request body")

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Validate request path."""
        if not v.startswith("/"):
            v = "/" + v
        return v

    @field_validator("headers", mode="before")
    @classmethod
    def normalize_headers(cls, v: Any) -> Any:
        """Normalize header names to lowercase."""
        return _lower_header_names(v)


class ProxyResponse(BaseModel):
    """Upstream response, read in full."""

    status_code: int = Field(..., description="HTTP status code")
    headers: HeaderList = Field(default_factory=list, description="Response headers")
    body: bytes = Field(default=b"", description="Raw response body")
    elapsed_time: float = Field(..., description="Request duration in seconds")

    @field_validator("headers", mode="before")
    @classmethod
    def normalize_headers(cls, v: Any) -> Any:
        """Normalize header names to lowercase."""
        return _lower_header_names(v)


class ProxyError(BaseModel):
    """Failure to reach the upstream service."""

    error: str = Field(default="Proxy error", description="Error summary returned to the client")
    message: str = Field(..., description="Underlying error text")
    error_type: str = Field(..., description="Exception class of the underlying error")
    target_url: str = Field(..., description="URL that could not be reached")
    elapsed_time: float = Field(..., description="Time elapsed before error")

    def to_payload(self) -> Dict[str, str]:
        """Body sent back to the client."""
        return {"error": self.error, "message": self.message}


def _lower_header_names(headers: Any) -> Any:
    if isinstance(headers, Mapping):
        headers = headers.items()
    return [(str(key).lower(), value) for key, value in headers]
