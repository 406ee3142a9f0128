import threading
import time
from typing import Callable

import httpx

from duplex_transport import HTTPTransport, TLSConfig


class BrokenStream(httpx.SyncByteStream):
    def __iter__(self):
        raise httpx.ReadError("connection reset by peer")


class ScriptedClient:
    """Serves numbered payloads per channel and records every GET."""

    def __init__(self, *, failures: int = 0, broken_bodies: bool = False) -> None:
        self._lock = threading.Lock()
        self._failures = failures
        self._broken_bodies = broken_bodies
        self.gets: list[str] = []

    def get(self, url: str) -> httpx.Response:
        with self._lock:
            self.gets.append(url)
            if self._failures > 0:
                self._failures -= 1
                raise httpx.ConnectError("connection refused")
            count = sum(1 for seen in self.gets if seen == url)
        if self._broken_bodies:
            return httpx.Response(200, stream=BrokenStream())
        channel = url.split("/")[-3]
        return httpx.Response(200, content=f"{channel}-{count}".encode())

    def post(self, url: str, headers, body: bytes) -> httpx.Response:  # pragma: no cover - not used
        raise httpx.ConnectError("not used")

    def close(self) -> None:
        pass

    def count(self, channel: str) -> int:
        with self._lock:
            return sum(1 for url in self.gets if f"/{channel}/" in url)


def wait_for(predicate: Callable[[], bool], timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def make_transport(client: ScriptedClient, handler, interval: float = 0.01) -> HTTPTransport:
    return HTTPTransport(
        "abc",
        "h.example.com",
        None,
        "test-agent/1.0",
        interval,
        handler,
        client_factory=lambda tls, user_agent: client,
    )


def test_pollers_dispatch_both_channels_in_order() -> None:
    received: dict[str, list[bytes]] = {"control": [], "data": []}
    lock = threading.Lock()

    def handler(data: bytes, channel: str) -> None:
        with lock:
            received[channel].append(data)

    client = ScriptedClient()
    transport = make_transport(client, handler)
    transport.connect()
    try:
        assert wait_for(lambda: len(received["control"]) >= 3 and len(received["data"]) >= 3)
    finally:
        transport.disconnect(0, join_timeout=2.0)

    assert received["control"][:3] == [b"control-1", b"control-2", b"control-3"]
    assert received["data"][:3] == [b"data-1", b"data-2", b"data-3"]
    assert "http://h.example.com/yggdrasil/control/abc/in" in client.gets
    assert "http://h.example.com/yggdrasil/data/abc/in" in client.gets


def test_blocked_control_handler_does_not_delay_data_channel() -> None:
    release = threading.Event()
    data_calls: list[bytes] = []

    def handler(data: bytes, channel: str) -> None:
        if channel == "control":
            release.wait(5.0)
            return
        data_calls.append(data)

    client = ScriptedClient()
    transport = make_transport(client, handler)
    transport.connect()
    try:
        assert wait_for(lambda: len(data_calls) >= 5)
        assert client.count("control") == 1
    finally:
        release.set()
        transport.disconnect(0, join_timeout=2.0)


def test_request_failures_do_not_stop_polling() -> None:
    received: list[str] = []
    client = ScriptedClient(failures=4)
    transport = make_transport(client, lambda data, channel: received.append(channel))
    transport.connect()
    try:
        assert wait_for(lambda: "control" in received and "data" in received)
    finally:
        transport.disconnect(0, join_timeout=2.0)


def test_read_failures_are_rate_limited_by_polling_interval() -> None:
    received: list[bytes] = []
    client = ScriptedClient(broken_bodies=True)
    transport = make_transport(client, lambda data, channel: received.append(data), interval=0.05)
    transport.connect()
    time.sleep(0.3)
    transport.disconnect(0, join_timeout=2.0)

    assert received == []
    assert 1 <= client.count("control") <= 12
    assert 1 <= client.count("data") <= 12


def test_handler_exceptions_do_not_stop_polling() -> None:
    calls: list[bytes] = []

    def handler(data: bytes, channel: str) -> None:
        if channel == "data":
            calls.append(data)
            raise RuntimeError("handler blew up")

    transport = make_transport(ScriptedClient(), handler)
    transport.connect()
    try:
        assert wait_for(lambda: len(calls) >= 3)
    finally:
        transport.disconnect(0, join_timeout=2.0)


def test_disconnect_waits_quiesce_then_joins_pollers() -> None:
    client = ScriptedClient()
    transport = make_transport(client, lambda data, channel: None)
    transport.connect()
    assert wait_for(lambda: client.count("data") >= 1)

    started = time.monotonic()
    transport.disconnect(100, join_timeout=2.0)
    elapsed = time.monotonic() - started

    assert elapsed >= 0.1
    assert transport.is_running is False
    assert transport.is_connected is False
    issued = len(client.gets)
    time.sleep(0.05)
    assert len(client.gets) == issued


def test_polling_continues_during_quiesce_window() -> None:
    client = ScriptedClient()
    transport = make_transport(client, lambda data, channel: None)
    transport.connect()
    assert wait_for(lambda: client.count("control") >= 1)

    before = client.count("control")
    transport.disconnect(150, join_timeout=2.0)

    assert client.count("control") > before + 1


def test_connect_twice_starts_another_pair_of_pollers() -> None:
    transport = make_transport(ScriptedClient(), lambda data, channel: None)
    transport.connect()
    transport.connect()
    try:
        alive = [thread for thread in transport._threads if thread.is_alive()]
        assert len(alive) == 4
        assert sorted(thread.name for thread in alive) == [
            "duplex-poll-control",
            "duplex-poll-control",
            "duplex-poll-data",
            "duplex-poll-data",
        ]
    finally:
        transport.disconnect(0, join_timeout=2.0)
    assert transport.is_running is False


def test_reconnect_after_disconnect_resumes_polling() -> None:
    client = ScriptedClient()
    transport = make_transport(client, lambda data, channel: None)
    transport.connect()
    transport.disconnect(0, join_timeout=2.0)
    issued = client.count("data")

    transport.connect()
    try:
        assert wait_for(lambda: client.count("data") > issued)
        assert transport.is_connected is True
    finally:
        transport.disconnect(0, join_timeout=2.0)


def test_disconnect_before_connect_never_polls() -> None:
    client = ScriptedClient()
    transport = make_transport(client, lambda data, channel: None)
    transport.disconnect(0)
    assert client.gets == []
    assert transport.is_running is False


class ExplodingClient(ScriptedClient):
    """Raises a non-httpx error on every other GET."""

    def get(self, url: str) -> httpx.Response:
        response = super().get(url)
        if len(self.gets) % 2:
            raise ValueError("unexpected client failure")
        return response


def test_pollers_survive_non_httpx_client_errors() -> None:
    received: list[str] = []
    client = ExplodingClient()
    transport = make_transport(client, lambda data, channel: received.append(channel))
    transport.connect()
    try:
        assert wait_for(lambda: client.count("control") >= 4 and client.count("data") >= 4)
        assert transport.is_running is True
    finally:
        transport.disconnect(0, join_timeout=2.0)
    assert received


def test_reload_tls_config_switches_live_pollers_to_new_client() -> None:
    clients = [ScriptedClient(), ScriptedClient()]
    created: list[ScriptedClient] = []

    def factory(tls_config, user_agent):
        created.append(clients[len(created)])
        return created[-1]

    transport = HTTPTransport("abc", "h.example.com", None, "agent", 0.01, lambda d, c: None, client_factory=factory)
    transport.connect()
    try:
        assert wait_for(lambda: clients[0].count("control") >= 2 and clients[0].count("data") >= 2)
        transport.reload_tls_config(TLSConfig())
        assert wait_for(lambda: clients[1].count("control") >= 2 and clients[1].count("data") >= 2)
        settled = len(clients[0].gets)
        time.sleep(0.05)
        assert len(clients[0].gets) == settled
    finally:
        transport.disconnect(0, join_timeout=2.0)

    assert all(url.startswith("http://") for url in clients[0].gets)
    assert clients[1].gets
    assert all(url.startswith("https://") for url in clients[1].gets)


def test_steady_state_issues_one_request_per_channel_per_interval() -> None:
    interval = 0.1
    client = ScriptedClient()
    transport = make_transport(client, lambda data, channel: None, interval=interval)
    started = time.monotonic()
    transport.connect()
    time.sleep(1.0)
    transport.disconnect(0, join_timeout=2.0)
    elapsed = time.monotonic() - started

    for channel in ("control", "data"):
        count = client.count(channel)
        assert 5 <= count <= int(elapsed / interval) + 1


def test_negative_quiesce_is_treated_as_zero() -> None:
    transport = make_transport(ScriptedClient(), lambda data, channel: None)
    transport.connect()
    transport.disconnect(-250, join_timeout=2.0)
    assert transport.is_connected is False
    assert transport.is_running is False
