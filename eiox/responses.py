"""HTTP responses produced by the Engine.IO server."""

from __future__ import annotations

import base64
import hashlib
import logging
from dataclasses import dataclass, field

from .errors import (
    BadHandshakeMethodError,
    BadPacketError,
    HttpErrorResponse,
    TransportMismatchError,
    UnknownSessionIdError,
    UnknownTransportError,
    UnsupportedProtocolVersionError,
)

_log = logging.getLogger(__name__)

_WS_GUID = b"258EAFA5-E914-47DA-95CA-C5AB0DC85B11"

_CONNECTION_ERRORS: tuple[tuple[type[Exception], str], ...] = (
    (UnknownTransportError, '{"code":"0","message":"Transport unknown"}'),
    (UnknownSessionIdError, '{"code":"1","message":"Session ID unknown"}'),
    (BadHandshakeMethodError, '{"code":"2","message":"Bad handshake method"}'),
    (TransportMismatchError, '{"code":"3","message":"Bad request"}'),
    (UnsupportedProtocolVersionError, '{"code":"5","message":"Unsupported protocol version"}'),
)


@dataclass
class Response:
    """A complete HTTP response: status, headers and body."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


def _to_bytes(data: str | bytes | bytearray | memoryview) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def http_response(status: int, data: str | bytes | bytearray | memoryview) -> Response:
    """A plain-text response carrying ``data``."""
    return Response(
        status=status,
        headers={"Content-Type": "text/plain; charset=UTF-8"},
        body=_to_bytes(data),
    )


def empty_response(status: int) -> Response:
    """A response with the given status and no body."""
    return Response(status=status)


def derive_accept_key(ws_key: str | bytes) -> str:
    """Compute the Sec-WebSocket-Accept value for a client key."""
    digest = hashlib.sha1(_to_bytes(ws_key) + _WS_GUID).digest()
    return base64.b64encode(digest).decode("ascii")


def ws_response(ws_key: str | bytes) -> Response:
    """The 101 response that switches the connection to websocket."""
    return Response(
        status=101,
        headers={
            "Upgrade": "websocket",
            "Connection": "Upgrade",
            "Sec-WebSocket-Accept": derive_accept_key(ws_key),
        },
    )


def error_response(error: Exception) -> Response:
    """Map an error to the http response the client should receive."""
    if isinstance(error, HttpErrorResponse):
        return empty_response(error.status)
    if isinstance(error, BadPacketError):
        return empty_response(400)
    for kind, message in _CONNECTION_ERRORS:
        if isinstance(error, kind):
            return Response(
                status=400,
                headers={"Content-Type": "application/json"},
                body=message.encode("utf-8"),
            )
    _log.debug("uncaught error %r", error)
    return empty_response(500)