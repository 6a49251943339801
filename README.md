# eiox

`eiox` is an Engine.IO (protocol version 4) server for ASGI. It serves
HTTP long-polling and WebSocket transports and supports upgrading a
polling session to WebSocket. It sends heartbeat pings and closes
sessions that do not answer them in time.

## Installation

```
pip install eiox
```

## Writing a handler

Subclass `eiox.handler.EngineIoHandler` and implement its four callbacks:

```python
from eiox.handler import EngineIoHandler


class Echo(EngineIoHandler):
    def on_connect(self, socket):
        print("connected", socket.sid)

    def on_disconnect(self, socket):
        print("disconnected", socket.sid)

    def on_message(self, msg, socket):
        socket.emit(msg)

    def on_binary(self, data, socket):
        socket.emit_binary(data)
```

Every `Socket` carries:

- `sid`, its session id (`eiox.sid.Sid`, shown as 11 URL-safe base64 characters);
- `data`, per-socket user data made by the handler class's `data_factory` (a `dict` by default);
- `req_data`, a `SocketReq` with the `uri` and `headers` of the request that opened it.

`Socket.emit` and `Socket.emit_binary` queue packets for the client. When
the socket's buffer is full they raise `eiox.errors.ChannelFullError`.
Over polling, binary data is sent base64-encoded; over WebSocket it is sent
as a binary frame. `Socket.close()` ends the session.

## Serving it

`eiox.service.EngineIoService` is an ASGI application. It handles HTTP and
WebSocket requests whose path starts with the configured `req_path` and
passes every other request to an inner ASGI app. Without an inner app,
`eiox.service.not_found_app` answers those requests with 404.

```python
from datetime import timedelta

import uvicorn
from eiox.config import EngineIoConfig
from eiox.service import EngineIoService

config = EngineIoConfig(
    ping_interval=timedelta(seconds=25),
    ping_timeout=timedelta(seconds=20),
)
app = EngineIoService(Echo(), config)
uvicorn.run(app, host="127.0.0.1", port=3000)
```

To pass other requests to your own application, use
`EngineIoService(handler, config, inner=other_asgi_app)`.

`EngineIoService.handle_http(method, uri, headers, body)` answers one
Engine.IO HTTP request directly and returns an `eiox.responses.Response`
(or `None` when the path is outside `req_path`). This is handy in tests.

Errors in a request become the protocol's error replies. For example, an
unknown session id produces HTTP 400 with
`{"code":"1","message":"Session ID unknown"}`.

## Configuration

`eiox.config.EngineIoConfig` is a frozen dataclass:

| field             | default              | meaning                                                  |
|-------------------|----------------------|----------------------------------------------------------|
| `req_path`        | `"/engine.io"`       | path prefix Engine.IO requests are served on             |
| `ping_interval`   | `timedelta(seconds=25)` | time between server pings                             |
| `ping_timeout`    | `timedelta(seconds=20)` | how long to wait for a pong before closing            |
| `max_buffer_size` | `128`                | packets buffered per socket before `emit` fails          |
| `max_payload`     | `100000`             | payload limit, in bytes, announced to clients            |

## Echo server

The package includes an echo server that sends every text and binary
message back to the client that sent it:

```
eiox-echo
```

It takes these options:

- `--host` (default `127.0.0.1`) and `--port` (default `3000`);
- `--e2e`, which sets a 300 ms ping interval, a 200 ms ping timeout, a
  1 MB `max_payload` and debug logging, for protocol test suites;
- `--greeting TEXT`, which serves `TEXT` as plain text on every path
  outside `/engine.io`.

To use the echo application inside your own server, call
`eiox.echo.build_app(config)`.

## Limitations

- `max_payload` is only announced to clients in the open packet. The
  server does not reject larger request bodies.
- WebSocket sessions are served only through ASGI WebSocket connections.
  A plain HTTP request with `transport=websocket` gets a 400 reply.
- Sessions live in the memory of one process. There is no shared state
  between workers.
- The package provides Engine.IO only. It has no higher-level layer with
  namespaces, rooms or acknowledgements.