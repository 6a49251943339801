"""A single Engine.IO connection and its heartbeat."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Optional

from .config import EngineIoConfig
from .errors import ChannelFullError, HeartbeatTimeoutError
from .packet import Packet, PacketType
from .sid import Sid

_log = logging.getLogger(__name__)

_HEARTBEAT_SLACK = 0.015


class ConnectionType(Enum):
    """The transport currently carrying a socket."""

    HTTP = 1
    WEBSOCKET = 2


@dataclass(frozen=True)
class SocketReq:
    """Data of the http request that created a socket."""

    uri: str
    headers: dict[str, str] = field(default_factory=dict)


class Socket:
    """A connection to the server, independent of its transport.

    Outgoing packets are buffered in ``outgoing``; whoever drains it (a
    polling request or a websocket writer) holds ``outgoing_lock``.
    """

    def __init__(
        self,
        sid: Sid,
        conn: ConnectionType,
        config: EngineIoConfig,
        req_data: SocketReq,
        close_fn: Callable[[Sid], None],
        data: Any = None,
    ) -> None:
        self.sid = sid
        self._conn = conn
        self.outgoing: asyncio.Queue[Packet] = asyncio.Queue(maxsize=config.max_buffer_size)
        self.outgoing_lock = asyncio.Lock()
        self._pongs: asyncio.Queue[None] = asyncio.Queue(maxsize=1)
        self._heartbeat: Optional[asyncio.Task[None]] = None
        self._close_fn = close_fn
        self.data = {} if data is None else data
        self.req_data = req_data

    def send(self, packet: Packet) -> None:
        """Queue a packet for the connection; raise ChannelFullError if the buffer is full."""
        _log.debug("[sid=%s] sending packet: %r", self.sid, packet)
        try:
            self.outgoing.put_nowait(packet)
        except asyncio.QueueFull:
            raise ChannelFullError(packet) from None

    def emit(self, msg: str) -> None:
        """Send a text message to the client."""
        self.send(Packet.message(msg))

    def emit_binary(self, data: bytes) -> None:
        """Send binary data to the client (base64 over polling)."""
        self.send(Packet.binary(data))

    def close(self) -> None:
        """Close the session and tell the connection to close."""
        self._close_fn(self.sid)
        try:
            self.send(Packet(PacketType.CLOSE))
        except ChannelFullError:
            pass

    def pong(self) -> None:
        """Record a pong from the client; raise HeartbeatTimeoutError if one is already pending."""
        try:
            self._pongs.put_nowait(None)
        except asyncio.QueueFull:
            raise HeartbeatTimeoutError() from None

    def is_ws(self) -> bool:
        return self._conn is ConnectionType.WEBSOCKET

    def is_http(self) -> bool:
        return self._conn is ConnectionType.HTTP

    def upgrade_to_websocket(self) -> None:
        """Mark the socket as carried by a websocket."""
        self._conn = ConnectionType.WEBSOCKET

    def spawn_heartbeat(self, interval: timedelta, timeout: timedelta) -> None:
        """Start the heartbeat task in the running event loop."""
        self._heartbeat = asyncio.get_running_loop().create_task(
            self._run_heartbeat(interval.total_seconds(), timeout.total_seconds())
        )

    def abort_heartbeat(self) -> None:
        """Cancel the heartbeat task if it is running."""
        task, self._heartbeat = self._heartbeat, None
        if task is not None:
            task.cancel()

    async def _run_heartbeat(self, interval: float, timeout: float) -> None:
        try:
            await self._heartbeat_job(interval, timeout)
        except HeartbeatTimeoutError as exc:
            self.close()
            _log.debug("[sid=%s] heartbeat error: %r", self.sid, exc)

    async def _heartbeat_job(self, interval: float, timeout: float) -> None:
        loop = asyncio.get_running_loop()
        start = loop.time()
        next_tick = start + interval
        elapsed = loop.time() - start
        await asyncio.sleep(max(0.0, interval - (_HEARTBEAT_SLACK + elapsed)))
        _log.debug("[sid=%s] heartbeat routine started", self.sid)
        while True:
            # Some clients send the pong first; consume it.
            try:
                self._pongs.get_nowait()
            except asyncio.QueueEmpty:
                pass
            try:
                self.outgoing.put_nowait(Packet(PacketType.PING))
            except asyncio.QueueFull:
                raise HeartbeatTimeoutError() from None
            try:
                await asyncio.wait_for(self._pongs.get(), timeout)
            except asyncio.TimeoutError:
                raise HeartbeatTimeoutError() from None
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            next_tick += interval