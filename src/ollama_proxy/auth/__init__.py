"""Authentication module.

This module provides the static bearer token check for the Ollama proxy.
"""

from .dependencies import extract_bearer_token, require_api_key, verify_api_key

__all__ = [
    "extract_bearer_token",
    "require_api_key",
    "verify_api_key",
]
