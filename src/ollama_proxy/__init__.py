"""Authenticated reverse proxy for a local Ollama server.

Also serves an unauthenticated pass-through proxy for the GlobalTags
service.
"""

__version__ = "1.0.0"
