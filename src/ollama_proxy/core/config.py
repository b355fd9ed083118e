"""Application configuration management.

This module provides configuration management using Pydantic settings
with environment variable support.
"""

from functools import lru_cache
from typing import List, Optional

import httpx
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models.proxy import ProxyConfig


class Settings(BaseSettings):
    """Application settings.

    All settings can be overridden using environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    app_name: str = Field(default="Ollama Auth Proxy", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment (development, staging, production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Host both proxies bind to")

    # Ollama proxy settings
    ollama_port: int = Field(default=8011, ge=1, le=65535, description="Port of the authenticated Ollama proxy")
    ollama_upstream_url: str = Field(
        default="http://127.0.0.1:11434",
        description="Ollama server origin"
    )
    ollama_path: str = Field(default="/api/generate", description="The single endpoint forwarded to Ollama")
    ollama_api_key: str = Field(default="", description="Bearer token clients must present")

    # GlobalTags proxy settings
    globaltags_enabled: bool = Field(default=True, description="Run the GlobalTags pass-through proxy")
    globaltags_port: int = Field(default=8010, ge=1, le=65535, description="Port of the GlobalTags proxy")
    globaltags_upstream_url: str = Field(
        default="http://127.0.0.1:8000",
        description="GlobalTags service origin"
    )

    # Upstream settings
    upstream_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Upstream request timeout in seconds (unset waits forever)"
    )

    # Logging settings
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="Log format (json or text)")
    log_file: Optional[str] = Field(default=None, description="Log file path")
    log_max_size: str = Field(default="10MB", description="Maximum log file size")
    log_backup_count: int = Field(default=5, description="Number of backup log files")

    # CORS settings
    cors_origins: str = Field(default="*", description="Comma-separated allowed CORS origins")
    cors_allow_methods: str = Field(default="GET,POST,OPTIONS", description="Comma-separated allowed CORS methods")
    cors_allow_headers: str = Field(
        default="Content-Type,Authorization",
        description="Comma-separated allowed CORS headers"
    )

    # Monitoring settings
    metrics_enabled: bool = Field(default=True, description="Expose Prometheus metrics on the Ollama proxy")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = ["development", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        allowed = ["json", "text"]
        if v not in allowed:
            raise ValueError(f"Log format must be one of {allowed}")
        return v

    @field_validator("ollama_upstream_url", "globaltags_upstream_url")
    @classmethod
    def validate_upstream_url(cls, v: str) -> str:
        """Validate that an upstream URL is an http(s) origin."""
        try:
            url = httpx.URL(v)
        except httpx.InvalidURL as e:
            raise ValueError(f"Invalid upstream URL: {v}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"Upstream URL must be an http(s) origin, got: {v}")
        return v.rstrip("/")

    @field_validator("ollama_path")
    @classmethod
    def validate_ollama_path(cls, v: str) -> str:
        """Make sure the forwarded path is absolute."""
        if not v.startswith("/"):
            v = "/" + v
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list."""
        return _split(self.cors_origins)

    @property
    def cors_allow_methods_list(self) -> List[str]:
        """Get CORS methods as a list."""
        return [method.upper() for method in _split(self.cors_allow_methods)]

    @property
    def cors_allow_headers_list(self) -> List[str]:
        """Get CORS headers as a list."""
        return _split(self.cors_allow_headers)

    def ollama_proxy_config(self) -> ProxyConfig:
        """Build the configuration of the authenticated Ollama proxy.

        Returns:
            ProxyConfig: Immutable proxy configuration.
        """
        url = httpx.URL(self.ollama_upstream_url)
        return ProxyConfig(
            name="ollama",
            description="CORS proxy is running",
            listen_port=self.ollama_port,
            upstream_scheme=url.scheme,
            upstream_host=url.host,
            upstream_port=url.port or _default_port(url.scheme),
            upstream_path=self.ollama_path,
            expected_api_key=self.ollama_api_key,
            require_auth=True,
            rewrite_host=False,
            expose_metrics=self.metrics_enabled,
        )

    def globaltags_proxy_config(self) -> ProxyConfig:
        """Build the configuration of the GlobalTags pass-through proxy.

        Returns:
            ProxyConfig: Immutable proxy configuration.
        """
        url = httpx.URL(self.globaltags_upstream_url)
        return ProxyConfig(
            name="globaltags",
            description="GlobalTags proxy is running",
            listen_port=self.globaltags_port,
            upstream_scheme=url.scheme,
            upstream_host=url.host,
            upstream_port=url.port or _default_port(url.scheme),
            upstream_path=None,
            expected_api_key=None,
            require_auth=False,
            rewrite_host=True,
            expose_metrics=False,
        )


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _default_port(scheme: str) -> int:
    return 443 if scheme == "https" else 80


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
