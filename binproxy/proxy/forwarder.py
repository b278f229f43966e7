"""Async HTTP forwarder for dispatching requests to the upstream API.

Uses one shared httpx.AsyncClient for every in-flight request. Bodies are
read raw (no transport-side decoding) and fully buffered.
"""

import asyncio
import logging
from typing import Optional

import httpx

from binproxy.proxy.errors import RequestBuildError, UpstreamReadError, UpstreamUnavailableError
from binproxy.proxy.models import OutboundRequest, UpstreamResponse, decode_headers, encode_headers

logger = logging.getLogger(__name__)

# Default upstream API URL
DEFAULT_UPSTREAM_URL = "https://api.binance.com/api/v3"
DEFAULT_TIMEOUT = 30.0

# Headers the transport must not add on its own
TRANSPORT_STRIP_HEADERS = ("connection", "keep-alive")


class Forwarder:
    """Async HTTP forwarder that proxies requests to a single upstream."""

    def __init__(
        self,
        base_url: str = DEFAULT_UPSTREAM_URL,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Base URL of the upstream API.
            timeout: Bound on the whole round trip, in seconds.
            client: Pre-built client to share (not closed by this forwarder).
            transport: Transport for the lazily created client (tests use
                httpx.MockTransport).
        """
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazy-init the httpx async client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                headers={"Accept-Encoding": "gzip, deflate"},
                transport=self._transport,
            )
            self._owns_client = True
        return self._client

    async def dispatch(self, outbound: OutboundRequest) -> UpstreamResponse:
        """Send a request upstream and buffer the raw response.

        Raises:
            RequestBuildError: If the request cannot be constructed.
            UpstreamUnavailableError: On transport failure or timeout.
            UpstreamReadError: If the body cannot be read after headers.
        """
        client = await self._get_client()
        try:
            request = client.build_request(
                outbound.method,
                outbound.url,
                headers=encode_headers(outbound.headers),
                content=outbound.body or None,
            )
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise RequestBuildError(f"Error building upstream request: {e}") from e

        for name in TRANSPORT_STRIP_HEADERS:
            request.headers.pop(name, None)

        try:
            return await asyncio.wait_for(self._send(client, request), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.error("Upstream timed out after %.1fs: %s %s", self._timeout, outbound.method, outbound.url)
            raise UpstreamUnavailableError(
                f"Error connecting to upstream: timed out after {self._timeout:g}s"
            ) from e

    async def _send(self, client: httpx.AsyncClient, request: httpx.Request) -> UpstreamResponse:
        try:
            response = await client.send(request, stream=True)
        except httpx.TransportError as e:
            logger.error("Upstream request failed: %s %s: %s", request.method, request.url, e)
            raise UpstreamUnavailableError(f"Error connecting to upstream: {e}") from e

        try:
            body = b"".join([chunk async for chunk in response.aiter_raw()])
        except (httpx.TransportError, httpx.StreamError) as e:
            logger.error("Failed to read upstream response: %s", e)
            raise UpstreamReadError(f"Error reading upstream response: {e}") from e
        finally:
            await response.aclose()

        return UpstreamResponse(
            status_code=response.status_code,
            headers=decode_headers(response.headers.raw),
            body=body,
        )

    async def ping(self) -> int:
        """GET {base_url}/ping and return the upstream status code.

        Raises:
            UpstreamUnavailableError: If the upstream cannot be reached.
        """
        outbound = OutboundRequest(method="GET", url=f"{self.base_url}/ping")
        upstream = await self.dispatch(outbound)
        return upstream.status_code

    async def close(self) -> None:
        """Close the underlying httpx client if this forwarder created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
