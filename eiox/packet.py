"""Engine.IO protocol packets and their text encoding."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .config import EngineIoConfig
from .errors import PacketDecodeError, UnknownTransportError
from .sid import Sid


class TransportType(Enum):
    """The transport used by a client."""

    WEBSOCKET = "websocket"
    POLLING = "polling"

    @classmethod
    def parse(cls, value: str) -> TransportType:
        """Parse a transport name, raising UnknownTransportError."""
        try:
            return cls(value)
        except ValueError:
            raise UnknownTransportError() from None


class PacketType(Enum):
    """Kinds of Engine.IO packets."""

    OPEN = "open"
    CLOSE = "close"
    PING = "ping"
    PONG = "pong"
    PING_UPGRADE = "ping_upgrade"
    PONG_UPGRADE = "pong_upgrade"
    MESSAGE = "message"
    UPGRADE = "upgrade"
    NOOP = "noop"
    BINARY = "binary"


_SIMPLE_CODES = {
    PacketType.CLOSE: "1",
    PacketType.PING: "2",
    PacketType.PONG: "3",
    PacketType.PING_UPGRADE: "2probe",
    PacketType.PONG_UPGRADE: "3probe",
    PacketType.UPGRADE: "5",
    PacketType.NOOP: "6",
}


def _require_uint(obj: dict, key: str) -> int:
    value = obj.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise PacketDecodeError(f"field {key!r} must be an unsigned integer")
    return value


@dataclass(frozen=True)
class OpenPacket:
    """The handshake data sent to a client when a session opens."""

    sid: str
    upgrades: tuple[str, ...]
    ping_interval: int
    ping_timeout: int
    max_payload: int

    @classmethod
    def create(cls, transport: TransportType, sid: Sid, config: EngineIoConfig) -> OpenPacket:
        """Build an open packet; polling clients are always offered a websocket upgrade."""
        upgrades = ("websocket",) if transport is TransportType.POLLING else ()
        return cls(
            sid=str(sid),
            upgrades=upgrades,
            ping_interval=config.ping_interval // _MILLISECOND,
            ping_timeout=config.ping_timeout // _MILLISECOND,
            max_payload=config.max_payload,
        )

    def to_json(self) -> str:
        """Serialize with camelCase keys in protocol order."""
        return json.dumps(
            {
                "sid": self.sid,
                "upgrades": list(self.upgrades),
                "pingInterval": self.ping_interval,
                "pingTimeout": self.ping_timeout,
                "maxPayload": self.max_payload,
            },
            separators=(",", ":"),
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, text: str) -> OpenPacket:
        """Parse the JSON body of an open packet."""
        try:
            obj = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PacketDecodeError(str(exc)) from exc
        if not isinstance(obj, dict):
            raise PacketDecodeError("open packet must be a JSON object")
        sid = obj.get("sid")
        if not isinstance(sid, str):
            raise PacketDecodeError("field 'sid' must be a string")
        upgrades = obj.get("upgrades")
        if not isinstance(upgrades, list) or not all(isinstance(u, str) for u in upgrades):
            raise PacketDecodeError("field 'upgrades' must be a list of strings")
        return cls(
            sid=sid,
            upgrades=tuple(upgrades),
            ping_interval=_require_uint(obj, "pingInterval"),
            ping_timeout=_require_uint(obj, "pingTimeout"),
            max_payload=_require_uint(obj, "maxPayload"),
        )


from datetime import timedelta as _timedelta  # noqa: E402

_MILLISECOND = _timedelta(milliseconds=1)

PacketData = Union[str, bytes, OpenPacket, None]


@dataclass(frozen=True)
class Packet:
    """A single Engine.IO packet."""

    type: PacketType
    data: PacketData = None

    def __post_init__(self) -> None:
        expected: Any
        if self.type is PacketType.MESSAGE:
            expected = str
        elif self.type is PacketType.BINARY:
            expected = bytes
        elif self.type is PacketType.OPEN:
            expected = OpenPacket
        else:
            expected = type(None)
        if not isinstance(self.data, expected):
            raise TypeError(f"{self.type.name} packet cannot carry {type(self.data).__name__}")

    @classmethod
    def message(cls, text: str) -> Packet:
        return cls(PacketType.MESSAGE, text)

    @classmethod
    def binary(cls, data: bytes | bytearray | memoryview) -> Packet:
        return cls(PacketType.BINARY, bytes(data))

    @classmethod
    def open(cls, open_packet: OpenPacket) -> Packet:
        return cls(PacketType.OPEN, open_packet)

    def encode(self) -> str:
        """Serialize to the protocol's text form."""
        if self.type is PacketType.OPEN:
            return "0" + self.data.to_json()  # type: ignore[union-attr]
        if self.type is PacketType.MESSAGE:
            return "4" + self.data  # type: ignore[operator]
        if self.type is PacketType.BINARY:
            return "b" + base64.b64encode(self.data).decode("ascii")  # type: ignore[arg-type]
        return _SIMPLE_CODES[self.type]

    @classmethod
    def decode(cls, value: str | bytes) -> Packet:
        """Parse a packet from text, or from UTF-8 bytes of an http body."""
        if isinstance(value, (bytes, bytearray, memoryview)):
            try:
                value = bytes(value).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise PacketDecodeError(str(exc)) from exc
        if not value:
            raise PacketDecodeError("Packet type not found in packet string")
        packet_type, payload = value[0], value[1:]
        is_upgrade = payload.startswith("probe")
        if packet_type == "0":
            return cls.open(OpenPacket.from_json(payload))
        if packet_type == "1":
            return cls(PacketType.CLOSE)
        if packet_type == "2":
            return cls(PacketType.PING_UPGRADE if is_upgrade else PacketType.PING)
        if packet_type == "3":
            return cls(PacketType.PONG_UPGRADE if is_upgrade else PacketType.PONG)
        if packet_type == "4":
            return cls.message(payload)
        if packet_type == "5":
            return cls(PacketType.UPGRADE)
        if packet_type == "6":
            return cls(PacketType.NOOP)
        if packet_type == "b":
            return cls.binary(_decode_base64(payload))
        raise PacketDecodeError(f"Invalid packet type {packet_type}")


def _decode_base64(text: str) -> bytes:
    try:
        raw = base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError, ValueError) as exc:
        raise PacketDecodeError(f"invalid base64: {exc}") from exc
    if base64.b64encode(raw).decode("ascii") != text:
        raise PacketDecodeError("invalid base64: non-canonical encoding")
    return raw