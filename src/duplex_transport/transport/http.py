"""Duplex transport emulated with HTTP polling and posting."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from functools import partial

import httpx

from ..config import DEFAULT_PATH_PREFIX, DEFAULT_READ_TIMEOUT, TransportOptions
from ..envelope import ResponseEnvelope, status_reason
from ..errors import (
    DuplexTransportError,
    HTTPStatusError,
    RequestError,
    ResponseReadError,
)
from ..logger import BoundLogger, LogLevel, create_logger
from ..tls import TLSConfig
from ..types import SendResult
from .base import CHANNELS, Channel, ClientFactory, DataReceiveHandler, Direction, NetworkClient
from .client import create_http_client


@dataclass(frozen=True)
class _ConnectionState:
    client: NetworkClient
    is_tls: bool


class HTTPTransport:
    """Sends and receives control and data messages over plain HTTP requests.

    Inbound messages are fetched by two background threads, one per channel,
    that GET ``{prefix}/{channel}/{client_id}/in`` every ``polling_interval``
    seconds and pass the body to ``handler(body, channel)``. Outbound messages
    are POSTed synchronously by :meth:`send_data`.

    :meth:`connect` is not idempotent: each call starts another pair of poll
    threads.
    """

    def __init__(
        self,
        client_id: str,
        server: str,
        tls_config: TLSConfig | None,
        user_agent: str,
        polling_interval: float,
        handler: DataReceiveHandler,
        *,
        path_prefix: str = DEFAULT_PATH_PREFIX,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        client_factory: ClientFactory | None = None,
        logger: object | None = None,
        log_level: LogLevel = "info",
    ) -> None:
        self.client_id = client_id
        self.server = server
        self.user_agent = user_agent
        self.polling_interval = polling_interval
        self.path_prefix = path_prefix
        self._handler = handler
        self._logger = create_logger(logger=logger, level=log_level).child("http")
        self._client_factory = client_factory or partial(
            create_http_client, read_timeout=read_timeout, logger=self._logger
        )
        self._shutdown = threading.Event()
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._retired: list[NetworkClient] = []
        self._state = self._build_state(tls_config)
        self._logger.info("Initialized HTTP transport for %s (client %s)", server, client_id)

    @classmethod
    def from_options(
        cls,
        options: TransportOptions,
        handler: DataReceiveHandler,
        *,
        client_factory: ClientFactory | None = None,
        logger: object | None = None,
    ) -> "HTTPTransport":
        return cls(
            options.client_id,
            options.server,
            options.tls_config,
            options.user_agent,
            options.polling_interval,
            handler,
            path_prefix=options.path_prefix,
            read_timeout=options.read_timeout,
            client_factory=client_factory,
            logger=logger,
            log_level=options.log_level,
        )

    @property
    def is_tls(self) -> bool:
        return self._state.is_tls

    @property
    def is_connected(self) -> bool:
        return not self._shutdown.is_set()

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def connect(self) -> None:
        self._shutdown.clear()
        self._threads = [thread for thread in self._threads if thread.is_alive()]
        for channel in CHANNELS:
            thread = threading.Thread(
                target=self._poll,
                args=(channel,),
                name=f"duplex-poll-{channel}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        self._logger.info("Started polling %s every %ss", self.server, self.polling_interval)

    def disconnect(self, quiesce: int, *, join_timeout: float | None = None) -> None:
        """Wait ``quiesce`` milliseconds, then stop polling and sending.

        Traffic keeps flowing during the quiesce window. Once it elapses, no new
        request is started; this call then waits for the poll threads to exit
        (at most ``join_timeout`` seconds each when given). In-flight requests
        are not cancelled. A negative ``quiesce`` is treated as zero.
        """
        time.sleep(max(quiesce, 0) / 1000)
        self._shutdown.set()
        self._logger.info("Disconnecting from %s", self.server)
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current:
                thread.join(join_timeout)
        if self.is_running:
            self._logger.warn("Poll threads still running after %ss", join_timeout)

    def reload_tls_config(self, tls_config: TLSConfig | None) -> None:
        state = self._build_state(tls_config)
        with self._lock:
            # Single attribute swap: readers see the old pair or the new pair, never a mix.
            previous, self._state = self._state, state
            self._retired.append(previous.client)
        self._logger.info("Reloaded TLS configuration (tls=%s)", state.is_tls)

    def close(self) -> None:
        """Stop polling and close the current client and every client replaced by a TLS reload."""
        self._shutdown.set()
        with self._lock:
            clients = [*self._retired, self._state.client]
            self._retired = []
        for client in clients:
            client.close()

    def compose_url(self, direction: Direction, channel: str) -> str:
        return self._url(self._state, direction, channel)

    def send_data(self, data: bytes, dest: str) -> bytes | None:
        """POST ``data`` to the ``dest`` channel and return the serialized envelope.

        Returns ``None`` without sending anything once the transport is
        disconnected; check :attr:`is_connected` to tell this apart from an
        empty result. For status codes >= 400 an :class:`HTTPStatusError` is
        raised that still carries the envelope bytes.
        """
        if self._shutdown.is_set():
            return None
        state = self._state
        url = self._url(state, "out", dest)
        self._logger.trace("posting HTTP request body: %s", data)
        try:
            response = state.client.post(url, {"Content-Type": "application/json"}, data)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RequestError(f"cannot do HTTP request: {exc}", context=url) from exc

        try:
            try:
                body = response.read()
            except (httpx.HTTPError, httpx.StreamError) as exc:
                raise ResponseReadError(f"cannot read HTTP response body: {exc}", context=url) from exc
        finally:
            response.close()

        envelope = ResponseEnvelope.from_response(response, body)
        payload = envelope.to_bytes()
        if response.status_code >= 400:
            raise HTTPStatusError(
                status_reason(response.status_code),
                status_code=response.status_code,
                envelope=payload,
            )
        return payload

    def send_data_safe(self, data: bytes, dest: str) -> SendResult:
        try:
            return SendResult(ok=True, data=self.send_data(data, dest))
        except HTTPStatusError as exc:
            return SendResult(ok=False, data=exc.envelope, error=exc)
        except DuplexTransportError as exc:
            return SendResult(ok=False, error=exc)

    def receive_data(self, data: bytes, dest: str) -> None:
        self._handler(data, dest)

    def _poll(self, channel: Channel) -> None:
        logger = self._logger.child(channel)
        logger.debug("Poller started")
        while not self._shutdown.is_set():
            state = self._state
            url = self._url(state, "in", channel)
            try:
                response = state.client.get(url)
            except httpx.HTTPError as exc:
                logger.trace("cannot get HTTP request: %s", exc)
            except Exception as exc:
                logger.error("cannot get HTTP request: %s", exc, exc_info=True)
            else:
                self._dispatch(response, channel, logger)
            if self._shutdown.wait(self.polling_interval):
                break
        logger.debug("Poller stopped")

    def _dispatch(self, response: httpx.Response, channel: Channel, logger: BoundLogger) -> None:
        try:
            try:
                data = response.read()
            except (httpx.HTTPError, httpx.StreamError) as exc:
                logger.error("cannot read response body: %s", exc)
                return
            try:
                self.receive_data(data, channel)
            except Exception as exc:
                logger.error("data handler failed: %s", exc, exc_info=True)
        finally:
            response.close()

    def _build_state(self, tls_config: TLSConfig | None) -> _ConnectionState:
        config = tls_config.clone() if tls_config is not None else None
        return _ConnectionState(client=self._client_factory(config, self.user_agent), is_tls=config is not None)

    def _url(self, state: _ConnectionState, direction: Direction, channel: str) -> str:
        scheme = "https" if state.is_tls else "http"
        segments = [self.path_prefix.strip("/"), channel, self.client_id, direction]
        path = "/".join(segment for segment in segments if segment)
        return f"{scheme}://{self.server}/{path}"


__all__ = ["HTTPTransport"]
