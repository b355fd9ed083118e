"""Monitoring and metrics collection.

This module provides Prometheus metrics collection for both proxies.
"""

from typing import Optional

from prometheus_client import Counter, Histogram, Info
import structlog

logger = structlog.get_logger(__name__)

# Prometheus metrics
request_count = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["proxy", "method", "status_code"]
)

request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["proxy", "method"]
)

auth_attempts = Counter(
    "auth_attempts_total",
    "Total number of API key checks",
    ["proxy", "status"]
)

proxy_requests = Counter(
    "proxy_requests_total",
    "Total number of forwarded requests",
    ["target", "status"]
)

proxy_duration = Histogram(
    "proxy_request_duration_seconds",
    "Upstream round trip duration in seconds",
    ["target"]
)

error_count = Counter(
    "errors_total",
    "Total number of errors",
    ["type", "component"]
)

# Application info
app_info = Info(
    "app_info",
    "Application information"
)


def setup_monitoring(name: str, version: str) -> None:
    """Setup monitoring and metrics collection.

    Args:
        name: Application name.
        version: Application version.
    """
    logger.info("Setting up monitoring")

    app_info.info({
        "version": version,
        "name": name,
    })


def track_request(proxy: str, method: str, status_code: int, duration: float) -> None:
    """Track HTTP request metrics.

    Args:
        proxy: Proxy instance name.
        method: HTTP method.
        status_code: Response status code.
        duration: Request duration in seconds.
    """
    request_count.labels(
        proxy=proxy,
        method=method,
        status_code=status_code
    ).inc()

    request_duration.labels(
        proxy=proxy,
        method=method
    ).observe(duration)


def track_auth_attempt(proxy: str, status: str) -> None:
    """Track an API key check.

    Args:
        proxy: Proxy instance name.
        status: Outcome (success, missing, invalid).
    """
    auth_attempts.labels(proxy=proxy, status=status).inc()


def track_proxy_request(target: str, status: str, duration: Optional[float] = None) -> None:
    """Track proxy request metrics.

    Args:
        target: Proxy target.
        status: Upstream status code, or "error".
        duration: Request duration in seconds.
    """
    proxy_requests.labels(target=target, status=status).inc()

    if duration is not None:
        proxy_duration.labels(target=target).observe(duration)


def track_error(error_type: str, component: str) -> None:
    """Track error occurrence.

    Args:
        error_type: Type of error.
        component: Component where error occurred.
    """
    error_count.labels(type=error_type, component=component).inc()
