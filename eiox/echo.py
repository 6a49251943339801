"""An echo server: every message a client sends is sent straight back."""

from __future__ import annotations

import argparse
import contextlib
import logging
from datetime import timedelta
from typing import Optional, Sequence

import uvicorn

from .config import EngineIoConfig
from .errors import EngineIoError
from .handler import EngineIoHandler
from .service import AsgiApp, EngineIoService, Receive, Scope, Send, not_found_app
from .socket import Socket

E2E_CONFIG = EngineIoConfig(
    ping_interval=timedelta(milliseconds=300),
    ping_timeout=timedelta(milliseconds=200),
    max_payload=1_000_000,
)


class EchoHandler(EngineIoHandler):
    """Prints every event and echoes messages back to their sender."""

    def on_connect(self, socket: Socket) -> None:
        print(f"socket connect {socket.sid}")

    def on_disconnect(self, socket: Socket) -> None:
        print(f"socket disconnect {socket.sid}")

    def on_message(self, msg: str, socket: Socket) -> None:
        print(f"Ping pong message {msg!r}")
        with contextlib.suppress(EngineIoError):
            socket.emit(msg)

    def on_binary(self, data: bytes, socket: Socket) -> None:
        print(f"Ping pong binary message {list(data)}")
        with contextlib.suppress(EngineIoError):
            socket.emit_binary(data)


def build_app(config: Optional[EngineIoConfig] = None) -> EngineIoService:
    """The echo server as an ASGI app."""
    return EngineIoService(EchoHandler(), config)


def _text_app(text: str) -> AsgiApp:
    body = text.encode("utf-8")

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await not_found_app(scope, receive, send)
            return
        await send(
            {
                "type": "http.response.start",
                "status": 200,
                "headers": [
                    (b"content-type", b"text/plain; charset=utf-8"),
                    (b"content-length", str(len(body)).encode("ascii")),
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})

    return app


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the echo server."""
    parser = argparse.ArgumentParser(prog="eiox-echo", description="Engine.IO echo server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=3000)
    parser.add_argument(
        "--e2e",
        action="store_true",
        help="short heartbeat and 1MB payload, for protocol test suites",
    )
    parser.add_argument("--greeting", help="text served on every other path")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.e2e else logging.INFO)
    config = E2E_CONFIG if args.e2e else EngineIoConfig()
    if args.greeting is not None:
        app = EngineIoService(EchoHandler(), config, inner=_text_app(args.greeting))
    else:
        app = build_app(config)

    logging.getLogger(__name__).info("Starting server")
    uvicorn.run(app, host=args.host, port=args.port)
    return 0