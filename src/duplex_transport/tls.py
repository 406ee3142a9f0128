"""Immutable TLS settings for the network client."""

from __future__ import annotations

import ssl
from dataclasses import dataclass, replace
from typing import Iterable


@dataclass(frozen=True)
class TLSConfig:
    cert_file: str | None = None
    key_file: str | None = None
    ca_files: tuple[str, ...] = ()
    verify: bool = True
    minimum_version: ssl.TLSVersion = ssl.TLSVersion.TLSv1_2

    def __post_init__(self) -> None:
        # Accept any iterable of paths but store a tuple so copies share nothing mutable.
        object.__setattr__(self, "ca_files", tuple(self.ca_files))

    @classmethod
    def from_files(
        cls,
        *,
        cert_file: str | None = None,
        key_file: str | None = None,
        ca_files: Iterable[str] = (),
        verify: bool = True,
    ) -> "TLSConfig":
        return cls(cert_file=cert_file, key_file=key_file, ca_files=tuple(ca_files), verify=verify)

    def clone(self) -> "TLSConfig":
        return replace(self)

    def to_ssl_context(self) -> ssl.SSLContext:
        """Build a client-side context; raises ``OSError``/``ssl.SSLError`` on bad files."""
        context = ssl.create_default_context()
        context.minimum_version = self.minimum_version
        for ca_file in self.ca_files:
            context.load_verify_locations(cafile=ca_file)
        if self.cert_file:
            context.load_cert_chain(self.cert_file, self.key_file)
        if not self.verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context


__all__ = ["TLSConfig"]
