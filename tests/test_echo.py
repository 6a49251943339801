import asyncio
from datetime import timedelta
from unittest.mock import patch

import pytest

from eiox.config import EngineIoConfig
from eiox.echo import E2E_CONFIG, EchoHandler, build_app, main
from eiox.packet import OpenPacket
from eiox.sid import Sid


def poll_uri(sid):
    return f"/engine.io/?EIO=4&transport=polling&sid={sid}"


async def open_session(svc):
    res = await svc.handle_http("GET", "/engine.io/?EIO=4&transport=polling", {}, b"")
    return Sid.parse(OpenPacket.from_json(res.body.decode()[1:]).sid)


@pytest.mark.asyncio
async def test_echoes_text_message(capsys):
    svc = build_app(None)
    sid = await open_session(svc)
    post = await svc.handle_http("POST", poll_uri(sid), {}, b"4hello")
    poll = await svc.handle_http("GET", poll_uri(sid), {}, b"")
    assert post.body == b"ok"
    assert poll.body == b"4hello"
    svc.engine.close_session(sid)
    out = capsys.readouterr().out
    assert f"socket connect {sid}" in out
    assert "Ping pong message 'hello'" in out
    assert f"socket disconnect {sid}" in out


@pytest.mark.asyncio
async def test_echoes_binary_message():
    svc = build_app(EngineIoConfig())
    sid = await open_session(svc)
    await svc.handle_http("POST", poll_uri(sid), {}, b"bAQID")
    poll = await svc.handle_http("GET", poll_uri(sid), {}, b"")
    assert poll.body == b"bAQID"
    svc.engine.close_session(sid)


@pytest.mark.asyncio
async def test_full_buffer_is_ignored():
    svc = build_app(EngineIoConfig(max_buffer_size=1))
    sid = await open_session(svc)
    post = await svc.handle_http("POST", poll_uri(sid), {}, b"4a\x1e4b")
    assert post.status == 200
    poll = await svc.handle_http("GET", poll_uri(sid), {}, b"")
    assert poll.body == b"4a"
    svc.engine.close_session(sid)


def test_build_app_uses_config():
    svc = build_app(E2E_CONFIG)
    assert svc.engine.config.ping_interval == timedelta(milliseconds=300)
    assert svc.engine.config.ping_timeout == timedelta(milliseconds=200)
    assert svc.engine.config.max_payload == 1_000_000
    assert isinstance(svc.engine.handler, EchoHandler)


def test_main_e2e_runs_server():
    with patch("uvicorn.run") as run:
        assert main(["--e2e", "--port", "3000"]) == 0
    (app,), kwargs = run.call_args
    assert kwargs == {"host": "127.0.0.1", "port": 3000}
    assert app.engine.config == E2E_CONFIG


def test_main_defaults():
    with patch("uvicorn.run") as run:
        main([])
    (app,), kwargs = run.call_args
    assert app.engine.config == EngineIoConfig()
    assert kwargs["port"] == 3000


@pytest.mark.asyncio
async def test_main_greeting_served_on_other_paths():
    with patch("uvicorn.run") as run:
        assert main(["--greeting", "Hello, World!"]) == 0
    (app,), _ = run.call_args
    sent = []

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message):
        sent.append(message)

    scope = {"type": "http", "method": "GET", "path": "/", "query_string": b"", "headers": []}
    await asyncio.wait_for(app(scope, receive, send), 2)
    assert len(sent) >= 2
    assert sent[0]["status"] == 200
    assert sent[1]["body"] == b"Hello, World!"