import json

import pytest

from eiox.errors import (
    AbortedError,
    BadHandshakeMethodError,
    BadPacketError,
    HeartbeatTimeoutError,
    HttpErrorResponse,
    TransportMismatchError,
    UnknownSessionIdError,
    UnknownTransportError,
    UnsupportedProtocolVersionError,
)
from eiox.packet import Packet, PacketType
from eiox.responses import (
    Response,
    derive_accept_key,
    empty_response,
    error_response,
    http_response,
    ws_response,
)
from eiox.sid import Sid


def test_http_response_text():
    resp = http_response(200, "ok")
    assert resp.status == 200
    assert resp.body == b"ok"
    assert resp.headers["Content-Type"] == "text/plain; charset=UTF-8"


def test_http_response_bytes_and_unicode():
    assert http_response(200, b"\x01\x02").body == b"\x01\x02"
    assert http_response(200, "é").body == "é".encode("utf-8")


def test_empty_response():
    resp = empty_response(404)
    assert resp == Response(status=404, headers={}, body=b"")


def test_derive_accept_key_worked_example():
    assert derive_accept_key("dGhlIHNhbXBsZSBub25jZQ==") == "s3pPLMBiTxaQ9kYGJzPO+BsAHAU="
    assert derive_accept_key(b"dGhlIHNhbXBsZSBub25jZQ==") == "s3pPLMBiTxaQ9kYGJzPO+BsAHAU="


def test_ws_response():
    key = "dGhlIHNhbXBsZSBub25jZQ=="
    resp = ws_response(key)
    assert resp.status == 101
    assert resp.headers["Upgrade"] == "websocket"
    assert resp.headers["Connection"] == "Upgrade"
    assert resp.headers["Sec-WebSocket-Accept"] == derive_accept_key(key)
    assert resp.body == b""


def test_error_response_http_status():
    resp = error_response(HttpErrorResponse(400))
    assert resp.status == 400
    assert resp.body == b""


def test_error_response_bad_packet():
    resp = error_response(BadPacketError(Packet(PacketType.PING)))
    assert resp.status == 400
    assert resp.body == b""


@pytest.mark.parametrize(
    "error, body",
    [
        (UnknownTransportError(), '{"code":"0","message":"Transport unknown"}'),
        (UnknownSessionIdError(Sid(1)), '{"code":"1","message":"Session ID unknown"}'),
        (BadHandshakeMethodError(), '{"code":"2","message":"Bad handshake method"}'),
        (TransportMismatchError(), '{"code":"3","message":"Bad request"}'),
        (
            UnsupportedProtocolVersionError(),
            '{"code":"5","message":"Unsupported protocol version"}',
        ),
    ],
)
def test_error_response_connection_errors(error, body):
    resp = error_response(error)
    assert resp.status == 400
    assert resp.headers["Content-Type"] == "application/json"
    assert resp.body.decode("utf-8") == body
    assert set(json.loads(resp.body)) == {"code", "message"}


@pytest.mark.parametrize("error", [AbortedError(), HeartbeatTimeoutError(), ValueError("x")])
def test_error_response_uncaught(error):
    resp = error_response(error)
    assert resp.status == 500
    assert resp.body == b""