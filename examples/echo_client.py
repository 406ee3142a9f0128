"""Polls the control and data channels and echoes every data message back."""

from __future__ import annotations

import signal
import threading

from duplex_transport import HTTPStatusError, HTTPTransport, ResponseEnvelope, TransportOptions


def main() -> None:
    options = TransportOptions.from_env()
    stop = threading.Event()
    transport: HTTPTransport

    def on_message(payload: bytes, channel: str) -> None:
        print(f"<- [{channel}] {payload!r}")
        if channel != "data" or not payload:
            return
        try:
            reply = transport.send_data(payload, "data")
        except HTTPStatusError as exc:
            print(f"-> rejected: {exc} {ResponseEnvelope.from_bytes(exc.envelope).body!r}")
            return
        if reply is not None:
            print(f"-> status {ResponseEnvelope.from_bytes(reply).status_code}")

    transport = HTTPTransport.from_options(options, on_message)
    signal.signal(signal.SIGINT, lambda *_: stop.set())

    print(f"Polling {options.server} as {options.client_id}, Ctrl-C to stop")
    transport.connect()
    stop.wait()
    transport.disconnect(500, join_timeout=options.read_timeout)
    transport.close()


if __name__ == "__main__":
    main()
