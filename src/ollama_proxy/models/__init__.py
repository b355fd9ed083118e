"""Pydantic models for the application.

This module contains all data models used throughout the application
for request/response validation and serialization.
"""

from .common import BaseModel, ErrorResponse, HealthResponse
from .proxy import HttpMethod, ProxyConfig, ProxyError, ProxyRequest, ProxyResponse

__all__ = [
    # Proxy models
    "HttpMethod",
    "ProxyConfig",
    "ProxyError",
    "ProxyRequest",
    "ProxyResponse",
    # Common models
    "BaseModel",
    "ErrorResponse",
    "HealthResponse",
]
