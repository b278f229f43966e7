"""Forwarding translator: inbound request -> upstream request -> relayed response.

Pipeline, executed once per request:
    path normalization -> query normalization -> request header filtering
    -> upstream dispatch -> gzip decompression (conditional)
    -> response header filtering -> proxied response

Stateless and reentrant; the only shared pieces are the upstream base URL
and the forwarder's HTTP client.
"""

import gzip
import json
import logging
import zlib
from typing import Optional, Tuple
from urllib.parse import urlencode

from binproxy.proxy.errors import DecompressionError
from binproxy.proxy.forwarder import Forwarder
from binproxy.proxy.models import (
    InboundRequest,
    MultiMap,
    OutboundRequest,
    ProxiedResponse,
    UpstreamResponse,
    get_first,
    has_key,
)
from binproxy.utils.helpers import format_bytes, preview_body

logger = logging.getLogger(__name__)

DEFAULT_API_PREFIX = "/api"
DEFAULT_SYMBOLS_PARAM = "symbols"
DEFAULT_USER_AGENT = "Binance-Proxy/1.0"
DEFAULT_CORS_MAX_AGE = 3600
UPSTREAM_ACCEPT_ENCODING = "gzip, deflate"

# Never forwarded upstream; framing is recomputed from the buffered body
STRIP_REQUEST_HEADERS = {"host", "connection", "keep-alive", "content-length", "transfer-encoding"}

# Meaningless once the upstream body has been fully buffered
HOP_BY_HOP_RESPONSE_HEADERS = {"connection", "keep-alive", "transfer-encoding"}

CORS_HEADERS: MultiMap = [
    ("Access-Control-Allow-Origin", "*"),
    ("Access-Control-Allow-Methods", "GET, POST, PUT, DELETE, OPTIONS"),
    ("Access-Control-Allow-Headers", "Content-Type, Authorization"),
]


def cors_headers(max_age: Optional[int] = None) -> MultiMap:
    """CORS policy headers asserted by the proxy on every response."""
    headers = list(CORS_HEADERS)
    if max_age is not None:
        headers.append(("Access-Control-Max-Age", str(max_age)))
    return headers


def normalize_path(path: str, prefix: str = DEFAULT_API_PREFIX) -> str:
    """Strip a leading API prefix segment and guarantee a leading slash.

    >>> normalize_path("/api/ticker/24hr")
    '/ticker/24hr'
    >>> normalize_path("ticker/price")
    '/ticker/price'
    """
    if prefix:
        prefix = "/" + prefix.strip("/")
        if path == prefix or path.startswith(prefix + "/"):
            path = path[len(prefix):]
    if not path.startswith("/"):
        path = "/" + path
    return path


def normalize_symbols(value: str) -> str:
    """Convert a comma-separated symbol list into a JSON array string.

    Values already starting with ``[`` are returned unchanged, as is the
    original value if encoding fails.
    """
    if value.startswith("["):
        return value
    symbols = [s.strip() for s in value.split(",")]
    try:
        return json.dumps(symbols, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        logger.warning("Could not encode symbols %r as JSON: %s", value, e)
        return value


def normalize_query(params: MultiMap, symbols_param: str = DEFAULT_SYMBOLS_PARAM) -> MultiMap:
    """Copy the query multimap, rewriting the symbols parameter if present.

    All values of the symbols key collapse into one normalized value, kept at
    the position of its first occurrence.
    """
    result: MultiMap = []
    replaced = False
    for key, value in params:
        if key != symbols_param:
            result.append((key, value))
        elif not replaced:
            normalized = normalize_symbols(value)
            if normalized != value:
                logger.debug("Converted %s from %r to %r", symbols_param, value, normalized)
            result.append((key, normalized))
            replaced = True
    return result


def build_target_url(base_url: str, path: str, params: MultiMap) -> str:
    """Upstream base + normalized path, plus a query string when non-empty."""
    url = f"{base_url.rstrip('/')}{path}"
    if params:
        url += "?" + urlencode(params)
    return url


def filter_request_headers(headers: MultiMap, user_agent: str = DEFAULT_USER_AGENT) -> MultiMap:
    """Build outbound headers from the inbound ones."""
    result: MultiMap = []
    accept_encoding_set = False
    for key, value in headers:
        key_lower = key.lower()
        if key_lower in STRIP_REQUEST_HEADERS:
            continue
        if key_lower == "accept-encoding":
            if not accept_encoding_set:
                result.append(("Accept-Encoding", UPSTREAM_ACCEPT_ENCODING))
                accept_encoding_set = True
            continue
        result.append((key, value))

    if not get_first(result, "user-agent"):
        result = [(k, v) for k, v in result if k.lower() != "user-agent"]
        result.append(("User-Agent", user_agent))
    return result


def decompress_body(body: bytes, content_encoding: str) -> Tuple[bytes, bool]:
    """Gunzip ``body`` when the upstream declared gzip.

    Returns:
        (body, decompressed) -- the original bytes and False when the
        encoding is not gzip or the data is corrupt.
    """
    if content_encoding.strip().lower() != "gzip":
        return body, False
    try:
        return gzip.decompress(body), True
    except (OSError, EOFError, zlib.error) as e:
        logger.warning("Failed to decompress gzip body (%s), relaying original bytes", e)
        return body, False


def infer_content_type(body: bytes) -> str:
    """Guess a content type for a response that declared none."""
    if not body:
        return "application/json"
    try:
        json.loads(body)
    except ValueError:
        return "text/plain; charset=utf-8"
    return "application/json"


def build_response_headers(
    upstream_headers: MultiMap,
    body: bytes,
    decompressed: bool,
) -> MultiMap:
    """Filter upstream headers and assert proxy policy on the result."""
    skip = set(HOP_BY_HOP_RESPONSE_HEADERS)
    skip.update(name.lower() for name, _ in CORS_HEADERS)
    if decompressed:
        skip.update({"content-encoding", "content-length"})

    headers: MultiMap = [(k, v) for k, v in upstream_headers if k.lower() not in skip]

    if not get_first(headers, "content-type"):
        headers = [(k, v) for k, v in headers if k.lower() != "content-type"]
        headers.append(("Content-Type", infer_content_type(body)))

    headers.extend(CORS_HEADERS)

    if decompressed or not has_key(headers, "content-length"):
        headers.append(("Content-Length", str(len(body))))
    return headers


class ForwardingTranslator:
    """Convert inbound requests into upstream requests and relay the responses."""

    def __init__(
        self,
        forwarder: Forwarder,
        api_prefix: str = DEFAULT_API_PREFIX,
        symbols_param: str = DEFAULT_SYMBOLS_PARAM,
        user_agent: str = DEFAULT_USER_AGENT,
        cors_max_age: int = DEFAULT_CORS_MAX_AGE,
        strict_decompression: bool = False,
    ):
        """
        Args:
            forwarder: Transport used for upstream dispatch.
            api_prefix: Leading path segment stripped before forwarding.
            symbols_param: Query parameter holding a list of symbols.
            user_agent: User-Agent sent when the client supplied none.
            cors_max_age: Max-age (seconds) advertised on preflight responses.
            strict_decompression: Fail the request on a corrupt gzip body
                instead of relaying the original bytes.
        """
        self.forwarder = forwarder
        self.api_prefix = api_prefix
        self.symbols_param = symbols_param
        self.user_agent = user_agent
        self.cors_max_age = cors_max_age
        self.strict_decompression = strict_decompression

    @property
    def upstream_url(self) -> str:
        return self.forwarder.base_url

    def translate(self, inbound: InboundRequest) -> OutboundRequest:
        """Map an inbound request onto the upstream request."""
        path = normalize_path(inbound.path, self.api_prefix)
        params = normalize_query(inbound.query, self.symbols_param)
        return OutboundRequest(
            method=inbound.method.upper(),
            url=build_target_url(self.upstream_url, path, params),
            headers=filter_request_headers(inbound.headers, self.user_agent),
            body=inbound.body,
        )

    def preflight(self) -> ProxiedResponse:
        """Answer a CORS preflight without touching the upstream."""
        return ProxiedResponse(
            status_code=200,
            headers=cors_headers(self.cors_max_age) + [("Content-Length", "0")],
        )

    def relay(self, upstream: UpstreamResponse) -> ProxiedResponse:
        """Turn a buffered upstream response into the proxied response."""
        encoding = upstream.content_encoding
        body, decompressed = decompress_body(upstream.body, encoding)
        if encoding == "gzip" and not decompressed and self.strict_decompression:
            raise DecompressionError("Failed to decompress upstream gzip body")
        if decompressed:
            logger.debug(
                "Decompressed gzip body: %s -> %s",
                format_bytes(len(upstream.body)), format_bytes(len(body)),
            )

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Response body:\n%s", preview_body(body))

        return ProxiedResponse(
            status_code=upstream.status_code,
            headers=build_response_headers(upstream.headers, body, decompressed),
            body=body,
            decompressed=decompressed,
        )

    async def forward(self, inbound: InboundRequest) -> ProxiedResponse:
        """Run the full pipeline for one request.

        Raises:
            ProxyError: On proxy-originated failures (see binproxy.proxy.errors)
        """
        if inbound.method.upper() == "OPTIONS":
            return self.preflight()

        outbound = self.translate(inbound)
        logger.debug("Proxying %s %s -> %s", inbound.method, inbound.path, outbound.url)

        upstream = await self.forwarder.dispatch(outbound)
        logger.debug("Upstream status: %d", upstream.status_code)
        if not 200 <= upstream.status_code < 300:
            logger.warning(
                "Upstream returned non-OK status %d for %s %s",
                upstream.status_code, outbound.method, outbound.url,
            )
        return self.relay(upstream)
