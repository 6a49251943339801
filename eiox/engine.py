"""The Engine.IO engine: session bookkeeping and transport handling."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from typing import Optional, Union

from .config import EngineIoConfig
from .errors import (
    BadPacketError,
    HttpErrorResponse,
    TransportMismatchError,
    UnknownSessionIdError,
    UpgradeError,
)
from .handler import EngineIoHandler
from .packet import OpenPacket, Packet, PacketType, TransportType
from .responses import Response, http_response
from .sid import Sid, generate_sid
from .socket import ConnectionType, Socket, SocketReq

_log = logging.getLogger(__name__)

_SEPARATOR = "\x1e"


class WebSocketConnection(ABC):
    """An accepted websocket as seen by the engine."""

    @abstractmethod
    async def receive(self) -> Union[str, bytes, None]:
        """Return the next text or binary message, or None once the peer has closed."""

    @abstractmethod
    async def send_text(self, text: str) -> None:
        """Send a text frame."""

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None:
        """Send a binary frame."""

    @abstractmethod
    async def close(self) -> None:
        """Send a close frame."""


def _split_body(body: bytes) -> list[bytes]:
    if not body:
        return []
    parts = body.split(_SEPARATOR.encode("ascii"))
    if parts[-1] == b"":
        parts.pop()
    return parts


class EngineIo:
    """Handles every Engine.IO connection and dispatches packets to the handler."""

    def __init__(self, handler: EngineIoHandler, config: Optional[EngineIoConfig] = None) -> None:
        self.handler = handler
        self.config = config if config is not None else EngineIoConfig()
        self._sockets: dict[Sid, Socket] = {}

    def _new_socket(self, sid: Sid, conn: ConnectionType, req_data: SocketReq) -> Socket:
        socket = Socket(
            sid,
            conn,
            self.config,
            req_data,
            self.close_session,
            data=type(self.handler).data_factory(),
        )
        self._sockets[sid] = socket
        return socket

    def _http_socket(self, sid: Sid) -> Socket:
        socket = self.get_socket(sid)
        if socket is None:
            raise UnknownSessionIdError(sid)
        if not socket.is_http():
            raise TransportMismatchError()
        return socket

    def on_open_http_req(self, req_data: SocketReq) -> Response:
        """Open a polling session, start its heartbeat and answer with an open packet.

        Must be called from a running event loop.
        """
        sid = generate_sid()
        socket = self._new_socket(sid, ConnectionType.HTTP, req_data)
        socket.spawn_heartbeat(self.config.ping_interval, self.config.ping_timeout)
        self.handler.on_connect(socket)
        packet = Packet.open(OpenPacket.create(TransportType.POLLING, sid, self.config))
        return http_response(200, packet.encode())

    async def on_polling_http_req(self, sid: Sid) -> Response:
        """Answer a polling GET with every buffered packet, waiting for one if none is buffered."""
        socket = self._http_socket(sid)
        # A second concurrent poll on the same session closes it.
        if socket.outgoing_lock.locked():
            socket.close()
            raise HttpErrorResponse(400)
        async with socket.outgoing_lock:
            _log.debug("[sid=%s] polling request", sid)
            encoded: list[str] = []
            while True:
                try:
                    packet = socket.outgoing.get_nowait()
                except asyncio.QueueEmpty:
                    break
                _log.debug("sending packet: %r", packet)
                encoded.append(packet.encode())
            if not encoded:
                packet = await socket.outgoing.get()
                encoded.append(packet.encode())
        return http_response(200, _SEPARATOR.join(encoded))

    async def on_post_http_req(self, sid: Sid, body: bytes) -> Response:
        """Split a polling POST body into packets and dispatch them."""
        socket = self._http_socket(sid)
        for raw in _split_body(bytes(body)):
            try:
                packet = Packet.decode(raw)
            except Exception as exc:
                _log.debug("[sid=%s] error parsing packet: %r", sid, exc)
                self.close_session(sid)
                raise
            if packet.type is PacketType.CLOSE:
                _log.debug("[sid=%s] closing session", sid)
                socket.send(Packet(PacketType.NOOP))
                self.close_session(sid)
                break
            if packet.type is PacketType.PONG:
                socket.pong()
            elif packet.type is PacketType.MESSAGE:
                self.handler.on_message(packet.data, socket)  # type: ignore[arg-type]
            elif packet.type is PacketType.BINARY:
                self.handler.on_binary(packet.data, socket)  # type: ignore[arg-type]
            else:
                _log.debug("[sid=%s] bad packet received: %r", sid, packet)
                raise BadPacketError(packet)
        return http_response(200, "ok")

    async def on_ws_req(
        self, sid: Optional[Sid], ws: WebSocketConnection, req_data: SocketReq
    ) -> None:
        """Run a websocket session until it closes.

        With a ``sid`` the existing polling session is upgraded; otherwise a new
        session is opened. Handshake failures raise; errors afterwards end the session.
        """
        if sid is not None:
            existing = self.get_socket(sid)
            if existing is None:
                raise UnknownSessionIdError(sid)
            if existing.is_ws():
                raise UpgradeError()
            _log.debug("[sid=%s] websocket connection upgrade", sid)
            await self._ws_upgrade_handshake(existing, ws)
            socket = existing
        else:
            new_sid = generate_sid()
            socket = self._new_socket(new_sid, ConnectionType.WEBSOCKET, req_data)
            _log.debug("[sid=%s] new websocket connection", new_sid)
            packet = Packet.open(OpenPacket.create(TransportType.WEBSOCKET, new_sid, self.config))
            await ws.send_text(packet.encode())
            socket.spawn_heartbeat(self.config.ping_interval, self.config.ping_timeout)

        writer = asyncio.get_running_loop().create_task(self._ws_writer(socket, ws))
        try:
            self.handler.on_connect(socket)
            try:
                await self._ws_forward_to_handler(ws, socket)
            except Exception as exc:
                _log.debug("[sid=%s] error when handling packet: %r", socket.sid, exc)
            self.close_session(socket.sid)
        finally:
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer

    async def _ws_writer(self, socket: Socket, ws: WebSocketConnection) -> None:
        async with socket.outgoing_lock:
            while True:
                packet = await socket.outgoing.get()
                try:
                    if packet.type is PacketType.BINARY:
                        await ws.send_bytes(packet.data)  # type: ignore[arg-type]
                    elif packet.type is PacketType.CLOSE:
                        await ws.close()
                    else:
                        await ws.send_text(packet.encode())
                except Exception as exc:
                    _log.debug("[sid=%s] error sending packet: %r", socket.sid, exc)
                    break
                _log.debug("[sid=%s] sent packet", socket.sid)

    async def _ws_forward_to_handler(self, ws: WebSocketConnection, socket: Socket) -> None:
        while True:
            msg = await ws.receive()
            if msg is None:
                break
            if isinstance(msg, str):
                packet = Packet.decode(msg)
                if packet.type is PacketType.CLOSE:
                    _log.debug("[sid=%s] closing session", socket.sid)
                    self.close_session(socket.sid)
                    break
                if packet.type is PacketType.PONG:
                    socket.pong()
                elif packet.type is PacketType.MESSAGE:
                    self.handler.on_message(packet.data, socket)  # type: ignore[arg-type]
                else:
                    raise BadPacketError(packet)
            else:
                self.handler.on_binary(bytes(msg), socket)

    async def _ws_upgrade_handshake(self, socket: Socket, ws: WebSocketConnection) -> None:
        # Release any pending polling request so it closes gracefully.
        socket.send(Packet(PacketType.NOOP))

        packet = await self._receive_text_packet(ws)
        if packet.type is not PacketType.PING_UPGRADE:
            raise BadPacketError(packet)
        await ws.send_text(Packet(PacketType.PONG_UPGRADE).encode())

        packet = await self._receive_text_packet(ws)
        if packet.type is not PacketType.UPGRADE:
            raise BadPacketError(packet)
        _log.debug("[sid=%s] ws upgraded successful", socket.sid)

        # Wait for any in-flight polling request to finish.
        async with socket.outgoing_lock:
            pass
        socket.upgrade_to_websocket()

    @staticmethod
    async def _receive_text_packet(ws: WebSocketConnection) -> Packet:
        msg = await ws.receive()
        if not isinstance(msg, str):
            raise UpgradeError()
        return Packet.decode(msg)

    def close_session(self, sid: Sid) -> None:
        """Remove a session, notify the handler and stop its heartbeat."""
        socket = self._sockets.pop(sid, None)
        if socket is None:
            _log.debug("[sid=%s] socket not found", sid)
            return
        self.handler.on_disconnect(socket)
        socket.abort_heartbeat()
        _log.debug("remaining sockets: %d", len(self._sockets))

    def get_socket(self, sid: Sid) -> Optional[Socket]:
        """Return the socket of a session, or None."""
        return self._sockets.get(sid)