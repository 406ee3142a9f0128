"""Transport implementations exposed to users."""

from .base import CHANNELS, Channel, ClientFactory, DataReceiveHandler, Direction, NetworkClient, Transporter
from .client import HttpClient, create_http_client
from .http import HTTPTransport

__all__ = [
    "CHANNELS",
    "Channel",
    "ClientFactory",
    "DataReceiveHandler",
    "Direction",
    "HTTPTransport",
    "HttpClient",
    "NetworkClient",
    "Transporter",
    "create_http_client",
]
