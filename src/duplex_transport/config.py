"""Transport settings and environment loading."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .logger import LogLevel
from .tls import TLSConfig

DEFAULT_PATH_PREFIX = "yggdrasil"
DEFAULT_POLLING_INTERVAL = 5.0
DEFAULT_READ_TIMEOUT = 60.0
ENV_PREFIX = "DUPLEX_"


@dataclass
class TransportOptions:
    client_id: str
    server: str
    tls_config: TLSConfig | None = None
    user_agent: str = "duplex-transport"
    polling_interval: float = DEFAULT_POLLING_INTERVAL
    path_prefix: str = DEFAULT_PATH_PREFIX
    read_timeout: float = DEFAULT_READ_TIMEOUT
    log_level: LogLevel = "info"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "TransportOptions":
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            return env.get(ENV_PREFIX + name) or None

        client_id = get("CLIENT_ID")
        server = get("SERVER")
        if not client_id or not server:
            raise ValueError(f"{ENV_PREFIX}CLIENT_ID and {ENV_PREFIX}SERVER must be set")

        cert_file = get("TLS_CERT")
        key_file = get("TLS_KEY")
        ca_file = get("TLS_CA")
        tls_config = None
        if cert_file or key_file or ca_file:
            tls_config = TLSConfig(
                cert_file=cert_file,
                key_file=key_file,
                ca_files=tuple(path for path in (ca_file or "").split(os.pathsep) if path),
            )

        return cls(
            client_id=client_id,
            server=server,
            tls_config=tls_config,
            user_agent=get("USER_AGENT") or "duplex-transport",
            polling_interval=float(get("POLLING_INTERVAL") or DEFAULT_POLLING_INTERVAL),
            path_prefix=get("PATH_PREFIX") or DEFAULT_PATH_PREFIX,
            read_timeout=float(get("READ_TIMEOUT") or DEFAULT_READ_TIMEOUT),
            log_level=_log_level(get("LOG_LEVEL") or "info"),
        )


def _log_level(value: str) -> LogLevel:
    normalized = value.strip().lower()
    if normalized == "warning":
        normalized = "warn"
    if normalized not in {"trace", "debug", "info", "warn", "error"}:
        raise ValueError(f"Unsupported log level: {value}")
    return normalized  # type: ignore[return-value]


__all__ = ["DEFAULT_PATH_PREFIX", "DEFAULT_POLLING_INTERVAL", "DEFAULT_READ_TIMEOUT", "TransportOptions"]
