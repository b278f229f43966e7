"""Exceptions for failures originating in the proxy itself.

Each carries the HTTP status and numeric code reported to the client, so the
JSON envelope can be told apart from the upstream's own error payloads.
"""

from typing import Any, Dict, Optional


class ProxyError(Exception):
    """Base exception for all proxy-originated errors.

    Attributes:
        message: Human-readable message
        status_code: HTTP status returned to the client
        code: Numeric error code placed in the JSON body
    """

    status_code = 500
    code = -1000

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code

    def to_payload(self) -> Dict[str, Any]:
        return {"code": self.code, "msg": self.message, "message": self.message}


class RequestBuildError(ProxyError):
    """Raised when the outbound request cannot be constructed."""

    status_code = 500
    code = -1000


class UpstreamUnavailableError(ProxyError):
    """Raised on transport failures: DNS, refused connection, timeout."""

    status_code = 502
    code = -1000


class UpstreamReadError(ProxyError):
    """Raised when the upstream body cannot be read after headers arrived."""

    status_code = 500
    code = -1001


class DecompressionError(ProxyError):
    """Raised on a corrupt gzip body, only under strict decompression."""

    status_code = 500
    code = -1002
