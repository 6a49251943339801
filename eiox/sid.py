"""Session identifiers: 64-bit integers shown as 11 URL-safe base64 characters."""

from __future__ import annotations

import base64
import binascii
import logging
import secrets
from dataclasses import dataclass

_log = logging.getLogger(__name__)

_MIN = -(1 << 63)
_MAX = (1 << 63) - 1
_ENCODED_LEN = 11


@dataclass(frozen=True, order=True)
class Sid:
    """A session id wrapping a signed 64-bit integer."""

    value: int

    def __post_init__(self) -> None:
        if not _MIN <= self.value <= _MAX:
            raise ValueError(f"session id {self.value} does not fit in 64 bits")

    def __str__(self) -> str:
        raw = self.value.to_bytes(8, "big", signed=True)
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    def __int__(self) -> int:
        return self.value

    @classmethod
    def parse(cls, text: str) -> Sid:
        """Decode a session id from its 11-character form; raise ValueError if invalid."""
        if len(text) != _ENCODED_LEN:
            raise ValueError(f"invalid session id length: {text!r}")
        try:
            raw = base64.b64decode(text + "=", altchars=b"-_", validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"invalid session id: {text!r}") from exc
        sid = cls(int.from_bytes(raw, "big", signed=True))
        if str(sid) != text:
            raise ValueError(f"non-canonical session id: {text!r}")
        return sid


def generate_sid() -> Sid:
    """Generate a new random session id."""
    bits = secrets.randbits(64)
    sid = Sid(bits - (1 << 64) if bits > _MAX else bits)
    _log.debug("Generating new sid: %s", sid)
    return sid