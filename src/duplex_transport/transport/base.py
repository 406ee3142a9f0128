"""Common transport abstractions."""

from __future__ import annotations

from typing import Callable, Literal, Mapping, Protocol, runtime_checkable

import httpx

from ..tls import TLSConfig

Channel = Literal["control", "data"]
Direction = Literal["in", "out"]

CHANNELS: tuple[Channel, ...] = ("control", "data")

DataReceiveHandler = Callable[[bytes, str], None]


@runtime_checkable
class NetworkClient(Protocol):
    """Issues requests; responses come back with their bodies still unread.

    Implementations raise ``httpx.HTTPError`` when no response is obtained.
    """

    def get(self, url: str) -> httpx.Response: ...

    def post(self, url: str, headers: Mapping[str, str], body: bytes) -> httpx.Response: ...

    def close(self) -> None: ...


ClientFactory = Callable[[TLSConfig | None, str], NetworkClient]


@runtime_checkable
class Transporter(Protocol):
    """Interface shared by every duplex transport."""

    def connect(self) -> None: ...

    def disconnect(self, quiesce: int) -> None: ...

    def send_data(self, data: bytes, dest: str) -> bytes | None: ...

    def reload_tls_config(self, tls_config: TLSConfig | None) -> None: ...


__all__ = [
    "CHANNELS",
    "Channel",
    "ClientFactory",
    "DataReceiveHandler",
    "Direction",
    "NetworkClient",
    "Transporter",
]
