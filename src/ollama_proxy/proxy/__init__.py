"""Proxy module.

This module provides request forwarding to the Ollama server and the
GlobalTags service.
"""

from .router import build_router
from .service import Forwarder

__all__ = [
    "Forwarder",
    "build_router",
]
