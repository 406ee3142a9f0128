"""Exceptions raised by the duplex HTTP transport."""

from __future__ import annotations

from typing import Any


class DuplexTransportError(Exception):
    """Base error for all transport failures."""

    def __init__(self, message: str, *, context: Any | None = None) -> None:
        super().__init__(message)
        self.context = context


class ClientConfigError(DuplexTransportError):
    """Raised when the network client cannot be built from the TLS settings."""


class RequestError(DuplexTransportError):
    """Raised when an outbound request produced no response at all."""


class ResponseReadError(DuplexTransportError):
    """Raised when a response arrived but its body could not be read."""


class ResponseDecodeError(DuplexTransportError):
    """Raised when a response body is not valid JSON."""


class HTTPStatusError(DuplexTransportError):
    """Raised for status codes >= 400.

    The serialized response envelope is still available on ``envelope``;
    the message is the reason phrase for the status.
    """

    def __init__(self, message: str, *, status_code: int, envelope: bytes) -> None:
        super().__init__(message, context=envelope)
        self.status_code = status_code
        self.envelope = envelope


__all__ = [
    "ClientConfigError",
    "DuplexTransportError",
    "HTTPStatusError",
    "RequestError",
    "ResponseDecodeError",
    "ResponseReadError",
]
