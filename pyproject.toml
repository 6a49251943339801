[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "eiox"
version = "0.1.0"
description = "An Engine.IO v4 server for ASGI: HTTP long-polling and WebSocket transports with heartbeats"
requires-python = ">=3.10"
keywords = ["engine.io", "websocket", "long-polling", "asgi", "realtime"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "uvicorn",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
eiox-echo = "eiox.echo:main"

[tool.hatch.build.targets.wheel]
packages = ["eiox"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
