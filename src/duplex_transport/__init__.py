"""Public surface for the duplex HTTP transport."""

from .config import TransportOptions
from .envelope import ResponseEnvelope
from .errors import (
    ClientConfigError,
    DuplexTransportError,
    HTTPStatusError,
    RequestError,
    ResponseDecodeError,
    ResponseReadError,
)
from .tls import TLSConfig
from .transport import HttpClient, HTTPTransport, Transporter
from .types import SendResult
from .version import __version__

__all__ = [
    "__version__",
    "ClientConfigError",
    "DuplexTransportError",
    "HTTPStatusError",
    "HTTPTransport",
    "HttpClient",
    "RequestError",
    "ResponseDecodeError",
    "ResponseEnvelope",
    "ResponseReadError",
    "SendResult",
    "TLSConfig",
    "TransportOptions",
    "Transporter",
]
