"""binproxy - Transparent reverse proxy for the Binance REST API."""

__version__ = "0.1.0"

from binproxy.proxy.models import (
    InboundRequest,
    OutboundRequest,
    UpstreamResponse,
    ProxiedResponse,
)
from binproxy.proxy.errors import (
    ProxyError,
    RequestBuildError,
    UpstreamUnavailableError,
    UpstreamReadError,
    DecompressionError,
)
from binproxy.proxy.forwarder import Forwarder
from binproxy.proxy.translator import ForwardingTranslator
from binproxy.config.settings import Settings

__all__ = [
    "InboundRequest",
    "OutboundRequest",
    "UpstreamResponse",
    "ProxiedResponse",
    "ProxyError",
    "RequestBuildError",
    "UpstreamUnavailableError",
    "UpstreamReadError",
    "DecompressionError",
    "Forwarder",
    "ForwardingTranslator",
    "Settings",
]
