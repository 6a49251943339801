"""Exceptions raised by the Engine.IO server."""

from __future__ import annotations

from typing import Any


class EngineIoError(Exception):
    """Base class of every Engine.IO server error."""


class PacketDecodeError(EngineIoError):
    """A packet could not be decoded (bad JSON, base64 or UTF-8)."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"error decoding packet: {reason}")
        self.reason = reason


class BadPacketError(EngineIoError):
    """A well-formed packet arrived where it is not allowed."""

    def __init__(self, packet: Any) -> None:
        super().__init__("bad packet received")
        self.packet = packet


class ChannelFullError(EngineIoError):
    """The socket's outgoing buffer is full or closed."""

    def __init__(self, packet: Any = None) -> None:
        super().__init__("internal channel error: buffer full or closed")
        self.packet = packet


class HeartbeatTimeoutError(EngineIoError):
    """The client failed to answer a ping in time."""

    def __init__(self) -> None:
        super().__init__("heartbeat timeout")


class UpgradeError(EngineIoError):
    """The websocket upgrade handshake failed."""

    def __init__(self) -> None:
        super().__init__("upgrade error")


class AbortedError(EngineIoError):
    """The connection was aborted while waiting for data."""

    def __init__(self) -> None:
        super().__init__("aborted connection")


class HttpErrorResponse(EngineIoError):
    """The request should be answered with a bare http status."""

    def __init__(self, status: int) -> None:
        super().__init__(f"http error response: {status}")
        self.status = status


class UnknownTransportError(EngineIoError):
    """The requested transport is not known."""

    def __init__(self) -> None:
        super().__init__("transport unknown")


class UnknownSessionIdError(EngineIoError):
    """No session exists with the given id."""

    def __init__(self, sid: Any) -> None:
        super().__init__("unknown session id")
        self.sid = sid


class BadHandshakeMethodError(EngineIoError):
    """A handshake was attempted with a method other than GET."""

    def __init__(self) -> None:
        super().__init__("bad handshake method")


class TransportMismatchError(EngineIoError):
    """The request's transport does not match the session's transport."""

    def __init__(self) -> None:
        super().__init__("transport mismatch")


class UnsupportedProtocolVersionError(EngineIoError):
    """The client speaks a protocol version other than 4."""

    def __init__(self) -> None:
        super().__init__("unsupported protocol version")