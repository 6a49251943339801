"""Server configuration for an Engine.IO endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class EngineIoConfig:
    """Settings for an Engine.IO server.

    Build variations with ``dataclasses.replace`` or keyword arguments.
    """

    #: The path to listen for engine.io requests on.
    req_path: str = "/engine.io"
    #: The interval at which the server sends a ping packet to the client.
    ping_interval: timedelta = timedelta(milliseconds=25000)
    #: How long the server waits for a pong before closing the connection.
    ping_timeout: timedelta = timedelta(milliseconds=20000)
    #: Packets buffered per connection before ``emit()`` starts failing.
    max_buffer_size: int = 128
    #: Maximum number of bytes accepted per http request.
    max_payload: int = 100_000