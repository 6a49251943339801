"""The interface that user code implements to receive Engine.IO events."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, ClassVar

if TYPE_CHECKING:
    from .socket import Socket


class EngineIoHandler(ABC):
    """Receives connection, disconnection and message events for each socket."""

    #: Builds the per-socket user data stored on ``Socket.data``.
    data_factory: ClassVar[Callable[[], Any]] = dict

    @abstractmethod
    def on_connect(self, socket: Socket) -> None:
        """Called when a new socket is connected."""

    @abstractmethod
    def on_disconnect(self, socket: Socket) -> None:
        """Called when a socket is disconnected."""

    @abstractmethod
    def on_message(self, msg: str, socket: Socket) -> None:
        """Called when a text message is received from the client."""

    @abstractmethod
    def on_binary(self, data: bytes, socket: Socket) -> None:
        """Called when a binary message is received from the client."""