import pytest

from eiox.echo import EchoHandler
from eiox.handler import EngineIoHandler


class PartialHandler(EngineIoHandler):
    def on_connect(self, socket):
        pass


class FakeSocket:
    def __init__(self, sid):
        self.sid = sid
        self.emitted = []

    def emit(self, msg):
        self.emitted.append(("text", msg))

    def emit_binary(self, data):
        self.emitted.append(("binary", data))


def test_incomplete_handler_cannot_be_created():
    with pytest.raises(TypeError):
        PartialHandler()
    assert EngineIoHandler.data_factory() == {}


def test_base_cannot_be_created():
    with pytest.raises(TypeError):
        EngineIoHandler()


def test_complete_handler_dispatches(capsys):
    handler = EchoHandler()
    socket = FakeSocket("abc")
    handler.on_connect(socket)
    handler.on_message("hello", socket)
    handler.on_binary(b"\x01", socket)
    handler.on_disconnect(socket)
    assert socket.emitted == [("text", "hello"), ("binary", b"\x01")]
    out = capsys.readouterr().out
    assert "socket connect abc" in out
    assert "Ping pong message 'hello'" in out
    assert "socket disconnect abc" in out


def test_default_data_factory_gives_fresh_objects():
    first = EngineIoHandler.data_factory()
    second = EngineIoHandler.data_factory()
    assert first == {}
    assert first is not second