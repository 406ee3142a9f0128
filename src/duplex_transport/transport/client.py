"""Network client built on top of httpx."""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from ..config import DEFAULT_READ_TIMEOUT
from ..errors import ClientConfigError
from ..logger import BoundLogger, create_logger
from ..tls import TLSConfig


class HttpClient:
    """Issues GET/POST requests with a fixed user agent and TLS configuration.

    Responses are returned with the body still unread so callers can tell a
    failed request apart from a failed body read. Callers must close them.
    """

    def __init__(
        self,
        tls_config: TLSConfig | None,
        user_agent: str,
        *,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self.user_agent = user_agent
        self.tls_config = tls_config
        self._logger = (logger or create_logger()).child("client")
        try:
            verify = tls_config.to_ssl_context() if tls_config is not None else True
        except OSError as exc:
            raise ClientConfigError(f"cannot build TLS context: {exc}", context=tls_config) from exc
        self._client = httpx.Client(
            verify=verify,
            headers={"User-Agent": user_agent},
            timeout=httpx.Timeout(read_timeout),
            transport=transport,
        )

    def get(self, url: str) -> httpx.Response:
        self._logger.trace("HTTP GET %s", url)
        response = self._send("GET", url)
        self._logger.trace("HTTP <- %s status=%s", url, response.status_code)
        return response

    def post(self, url: str, headers: Mapping[str, str], body: bytes) -> httpx.Response:
        self._logger.trace("HTTP POST %s bytes=%d", url, len(body))
        response = self._send("POST", url, headers=dict(headers), content=body)
        self._logger.trace("HTTP <- %s status=%s", url, response.status_code)
        return response

    def close(self) -> None:
        self._client.close()

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        # Malformed URLs and a closed client never reach the wire; report them as request failures.
        try:
            request = self._client.build_request(method, url, **kwargs)
        except httpx.InvalidURL as exc:
            raise httpx.RequestError(f"invalid URL {url!r}: {exc}") from exc
        try:
            return self._client.send(request, stream=True)
        except RuntimeError as exc:
            if not self._client.is_closed:
                raise
            raise httpx.RequestError(str(exc), request=request) from exc


def create_http_client(
    tls_config: TLSConfig | None,
    user_agent: str,
    *,
    read_timeout: float = DEFAULT_READ_TIMEOUT,
    logger: BoundLogger | None = None,
) -> HttpClient:
    return HttpClient(tls_config, user_agent, read_timeout=read_timeout, logger=logger)


__all__ = ["HttpClient", "create_http_client"]
