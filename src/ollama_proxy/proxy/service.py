"""Upstream forwarding.

This module provides the forwarder shared by the authenticated Ollama
proxy and the GlobalTags pass-through proxy. The request body is always
buffered in full before the upstream call, and the upstream response is
read in full before it is relayed.
"""

import time
from typing import Optional, Set, Union

import httpx

from ..core.base import BaseClient
from ..core.monitoring import track_proxy_request
from ..models.proxy import HeaderList, ProxyConfig, ProxyError, ProxyRequest, ProxyResponse

# Headers describing a single connection rather than the payload. Any header
# named in a Connection header is treated the same way.
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-connection",
    "transfer-encoding",
    "te",
    "trailer",
    "upgrade",
})

ForwardResult = Union[ProxyResponse, ProxyError]


class Forwarder(BaseClient):
    """Forwards buffered requests to one fixed upstream."""

    def __init__(
        self,
        config: ProxyConfig,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the forwarder.

        Args:
            config: Proxy configuration.
            timeout: Upstream timeout in seconds, None to wait indefinitely.
            transport: Transport override, used to stub the upstream.
        """
        super().__init__(
            name=config.name,
            base_url=config.upstream_origin,
            timeout=timeout,
        )
        self.config = config
        self._transport = transport

    def target_url(self, request: ProxyRequest) -> str:
        """Upstream URL for an inbound request.

        A configured fixed path replaces the request path and drops the
        query string; otherwise both are kept as received, percent-encoding
        included.
        """
        if self.config.upstream_path is not None:
            return self._build_url(self.config.upstream_path)
        return self._build_url(request.path, request.query)

    def upstream_headers(self, request: ProxyRequest) -> HeaderList:
        """Headers sent to the upstream for an inbound request."""
        if self.config.upstream_path is not None:
            return [
                ("content-type", "application/json"),
                ("content-length", str(len(request.body))),
            ]

        dropped = {"content-length"}
        if self.config.require_auth:
            dropped.add("authorization")
        if self.config.rewrite_host:
            dropped.add("host")

        headers = [
            (key, value)
            for key, value in strip_hop_by_hop(request.headers)
            if key not in dropped
        ]
        if self.config.rewrite_host:
            headers.insert(0, ("host", self.config.upstream_netloc))
        return headers

    async def forward(self, request: ProxyRequest) -> ForwardResult:
        """Forward a buffered request and read the upstream response.

        Args:
            request: Inbound request.

        Returns:
            ForwardResult: The upstream response, or a ProxyError when the
            upstream could not be reached.
        """
        url = self.target_url(request)
        headers = self.upstream_headers(request)
        start_time = time.time()

        self._log_request(request.method, url, body_size=len(request.body))

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                upstream_request = client.build_request(
                    request.method,
                    url,
                    headers=headers,
                    content=request.body,
                )
                response = await client.send(upstream_request, stream=True)
                try:
                    body = b"".join([chunk async for chunk in response.aiter_raw()])
                finally:
                    await response.aclose()
        except httpx.RequestError as e:
            duration = time.time() - start_time
            self.logger.error(
                "Upstream request failed",
                method=request.method,
                url=url,
                error=str(e),
                error_type=type(e).__name__,
                duration=f"{duration:.4f}s",
            )
            track_proxy_request(self.config.name, "error", duration)
            return ProxyError(
                message=str(e),
                error_type=type(e).__name__,
                target_url=url,
                elapsed_time=duration,
            )

        duration = time.time() - start_time
        self._log_response(request.method, url, response.status_code, duration)
        track_proxy_request(self.config.name, str(response.status_code), duration)

        return ProxyResponse(
            status_code=response.status_code,
            headers=strip_hop_by_hop(response.headers.multi_items()),
            body=body,
            elapsed_time=duration,
        )


def connection_tokens(headers: HeaderList) -> Set[str]:
    """Header names listed in the Connection header(s)."""
    tokens = set()
    for key, value in headers:
        if key.lower() == "connection":
            tokens.update(token.strip().lower() for token in value.split(",") if token.strip())
    return tokens


def strip_hop_by_hop(headers: HeaderList) -> HeaderList:
    """Drop hop-by-hop headers, keeping repeated end-to-end headers apart."""
    dropped = HOP_BY_HOP_HEADERS | connection_tokens(headers)
    return [
        (key.lower(), value)
        for key, value in headers
        if key.lower() not in dropped
    ]
