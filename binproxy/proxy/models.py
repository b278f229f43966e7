"""Per-request value objects flowing through the forwarding pipeline.

Headers and query parameters are ordered multimaps: lists of (key, value)
pairs, so repeated keys keep their declaration order.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

MultiMap = List[Tuple[str, str]]


def get_first(items: MultiMap, key: str) -> Optional[str]:
    """Return the first value for ``key`` (case-insensitive), or None."""
    key_lower = key.lower()
    for k, v in items:
        if k.lower() == key_lower:
            return v
    return None


def has_key(items: MultiMap, key: str) -> bool:
    key_lower = key.lower()
    return any(k.lower() == key_lower for k, _ in items)


@dataclass
class InboundRequest:
    """Request received from the proxy's own client."""
    method: str
    path: str
    query: MultiMap = field(default_factory=list)
    headers: MultiMap = field(default_factory=list)
    body: Optional[bytes] = None


@dataclass
class OutboundRequest:
    """Request sent to the upstream, derived from an InboundRequest."""
    method: str
    url: str
    headers: MultiMap = field(default_factory=list)
    body: Optional[bytes] = None


@dataclass
class UpstreamResponse:
    """Raw upstream response; body may still be compressed."""
    status_code: int
    headers: MultiMap = field(default_factory=list)
    body: bytes = b""

    @property
    def content_encoding(self) -> str:
        return (get_first(self.headers, "content-encoding") or "").strip().lower()


@dataclass
class ProxiedResponse:
    """Response relayed back to the client."""
    status_code: int
    headers: MultiMap = field(default_factory=list)
    body: bytes = b""
    decompressed: bool = False

    def header(self, key: str) -> Optional[str]:
        return get_first(self.headers, key)


# Header text is kept as latin-1 so every byte survives a decode/encode round trip
HEADER_ENCODING = "latin-1"


def encode_headers(items: MultiMap) -> List[Tuple[bytes, bytes]]:
    return [(k.encode(HEADER_ENCODING), v.encode(HEADER_ENCODING)) for k, v in items]


def decode_headers(raw: List[Tuple[bytes, bytes]]) -> MultiMap:
    return [(k.decode(HEADER_ENCODING), v.decode(HEADER_ENCODING)) for k, v in raw]
