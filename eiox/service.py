"""The ASGI application that routes requests to the Engine.IO engine."""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, MutableMapping, Optional, Union
from urllib.parse import urlsplit

from .config import EngineIoConfig
from .engine import EngineIo, WebSocketConnection
from .errors import (
    BadHandshakeMethodError,
    EngineIoError,
    UnknownTransportError,
    UnsupportedProtocolVersionError,
)
from .handler import EngineIoHandler
from .packet import TransportType
from .responses import Response, empty_response, error_response
from .sid import Sid
from .socket import SocketReq

_log = logging.getLogger(__name__)

Scope = MutableMapping[str, Any]
Message = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
AsgiApp = Callable[[Scope, Receive, Send], Awaitable[None]]


async def _send_response(send: Send, response: Response) -> None:
    headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in response.headers.items()
    ]
    headers.append((b"content-length", str(len(response.body)).encode("ascii")))
    await send({"type": "http.response.start", "status": response.status, "headers": headers})
    await send({"type": "http.response.body", "body": response.body})


async def not_found_app(scope: Scope, receive: Receive, send: Send) -> None:
    """An ASGI app that answers every request with 404 and accepts lifespan events."""
    kind = scope["type"]
    if kind == "lifespan":
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return
    elif kind == "http":
        await _send_response(send, empty_response(404))
    elif kind == "websocket":
        await send({"type": "websocket.close", "code": 1000})


def _parse_sid(segment: Optional[str]) -> Optional[Sid]:
    if segment is None:
        return None
    try:
        return Sid.parse(segment.split("=")[1])
    except ValueError:
        return None


@dataclass(frozen=True)
class RequestInfo:
    """What an Engine.IO request asks for, taken from its method and query."""

    sid: Optional[Sid]
    transport: TransportType
    method: str

    @classmethod
    def parse(cls, method: str, uri: str) -> RequestInfo:
        """Extract transport and session id from a request URI."""
        if "?" not in uri:
            raise UnknownTransportError()
        query = urlsplit(uri).query
        if "EIO=4" not in query:
            raise UnsupportedProtocolVersionError()
        segments = query.split("&")
        sid = _parse_sid(next((s for s in segments if s.startswith("sid=")), None))
        transport_segment = next((s for s in segments if s.startswith("transport=")), None)
        if transport_segment is None:
            raise UnknownTransportError()
        transport = TransportType.parse(transport_segment.split("=")[1])
        method = method.upper()
        if method != "GET" and sid is None:
            raise BadHandshakeMethodError()
        return cls(sid=sid, transport=transport, method=method)


class _AsgiWebSocket(WebSocketConnection):
    """An accepted ASGI websocket."""

    def __init__(self, receive: Receive, send: Send) -> None:
        self._receive = receive
        self._send = send
        self.closed = False

    async def receive(self) -> Union[str, bytes, None]:
        while not self.closed:
            message = await self._receive()
            if message["type"] == "websocket.receive":
                text = message.get("text")
                if text is not None:
                    return text
                data = message.get("bytes")
                if data is not None:
                    return bytes(data)
            elif message["type"] == "websocket.disconnect":
                self.closed = True
        return None

    async def send_text(self, text: str) -> None:
        await self._send({"type": "websocket.send", "text": text})

    async def send_bytes(self, data: bytes) -> None:
        await self._send({"type": "websocket.send", "bytes": data})

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self._send({"type": "websocket.close", "code": 1000})


def _scope_uri(scope: Scope) -> str:
    query = scope.get("query_string", b"").decode("latin-1")
    return scope["path"] + ("?" + query if query else "")


def _scope_headers(scope: Scope) -> dict[str, str]:
    return {
        name.decode("latin-1"): value.decode("latin-1")
        for name, value in scope.get("headers", [])
    }


async def _read_body(receive: Receive) -> Optional[bytes]:
    chunks: list[bytes] = []
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            return None
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            return b"".join(chunks)


class EngineIoService:
    """An ASGI app serving Engine.IO under ``config.req_path``.

    Requests outside that path go to ``inner``, which answers 404 by default.
    """

    def __init__(
        self,
        handler: EngineIoHandler,
        config: Optional[EngineIoConfig] = None,
        inner: Optional[AsgiApp] = None,
    ) -> None:
        self.engine = EngineIo(handler, config)
        self.inner: AsgiApp = inner if inner is not None else not_found_app

    def __repr__(self) -> str:
        return "EngineIoService()"

    def _handles(self, path: str) -> bool:
        return path.startswith(self.engine.config.req_path)

    async def handle_http(
        self, method: str, uri: str, headers: Mapping[str, str], body: bytes
    ) -> Optional[Response]:
        """Answer an Engine.IO http request; None when its path is outside ``req_path``."""
        if not self._handles(urlsplit(uri).path):
            return None
        try:
            return await self._dispatch_http(method, uri, headers, body)
        except EngineIoError as exc:
            return error_response(exc)

    async def _dispatch_http(
        self, method: str, uri: str, headers: Mapping[str, str], body: bytes
    ) -> Response:
        info = RequestInfo.parse(method, uri)
        if info.transport is TransportType.POLLING:
            if info.method == "GET" and info.sid is None:
                return self.engine.on_open_http_req(SocketReq(uri=uri, headers=dict(headers)))
            if info.method == "GET" and info.sid is not None:
                return await self.engine.on_polling_http_req(info.sid)
            if info.method == "POST" and info.sid is not None:
                return await self.engine.on_post_http_req(info.sid, body)
        # Websocket sessions arrive as ASGI websocket scopes; a plain http
        # request for that transport was not upgraded by the server.
        return empty_response(400)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        kind = scope["type"]
        if kind in ("http", "websocket") and self._handles(scope["path"]):
            if kind == "http":
                await self._serve_http(scope, receive, send)
            else:
                await self._serve_websocket(scope, receive, send)
            return
        await self.inner(scope, receive, send)

    async def _serve_http(self, scope: Scope, receive: Receive, send: Send) -> None:
        body = await _read_body(receive)
        if body is None:
            return
        response = await self.handle_http(
            scope["method"], _scope_uri(scope), _scope_headers(scope), body
        )
        await _send_response(send, response if response is not None else empty_response(404))

    async def _serve_websocket(self, scope: Scope, receive: Receive, send: Send) -> None:
        uri = _scope_uri(scope)
        try:
            info = RequestInfo.parse("GET", uri)
        except EngineIoError as exc:
            _log.debug("rejecting websocket request: %r", exc)
            await send({"type": "websocket.close", "code": 1008})
            return
        if info.transport is not TransportType.WEBSOCKET:
            await send({"type": "websocket.close", "code": 1008})
            return
        message = await receive()
        if message["type"] != "websocket.connect":
            return
        await send({"type": "websocket.accept"})
        ws = _AsgiWebSocket(receive, send)
        try:
            await self.engine.on_ws_req(info.sid, ws, SocketReq(uri=uri, headers=_scope_headers(scope)))
        except EngineIoError as exc:
            _log.debug("ws closed with error: %r", exc)
        finally:
            with contextlib.suppress(OSError, RuntimeError):
                await ws.close()