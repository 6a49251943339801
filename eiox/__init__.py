"""Engine.IO v4 server for ASGI with polling and WebSocket transports."""

__version__ = "0.1.0"