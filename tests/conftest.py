"""
Pytest configuration file for the callbridge test suite.

This file contains fixtures and fakes that are shared across multiple test files.
"""

import asyncio
import json
import os

# Keep test runs from writing log files
os.environ.setdefault("LOG_FILE_OUTPUT", "false")

import pytest

from callbridge.bridges.connection import ClientConnection
from callbridge.config.models import ApplicationConfig, GeminiConfig
from callbridge.live.client import LiveSessionError
from callbridge.services.token_store import TokenStore

_CLOSE = object()


class FakeClientConnection(ClientConnection):
    """In-memory client connection.

    Frames pushed with ``feed`` are yielded by ``iter_messages``; frames the
    bridge sends are decoded into ``sent``.
    """

    def __init__(self):
        self.sent = []
        self.closed_with = None
        self._open = True
        self._inbound: asyncio.Queue = asyncio.Queue()

    @property
    def is_open(self) -> bool:
        return self._open

    async def send_text(self, data: str) -> None:
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self._open = False
        self.closed_with = (code, reason)
        self._inbound.put_nowait(_CLOSE)

    def feed(self, frame) -> None:
        if isinstance(frame, dict):
            frame = json.dumps(frame)
        self._inbound.put_nowait(frame)

    def disconnect(self) -> None:
        self._inbound.put_nowait(_CLOSE)

    def fail(self, error: Exception) -> None:
        self._inbound.put_nowait(error)

    async def iter_messages(self):
        while True:
            item = await self._inbound.get()
            if item is _CLOSE:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    def types(self):
        return [frame["type"] for frame in self.sent]

    def of_type(self, message_type):
        return [frame for frame in self.sent if frame["type"] == message_type]


class FakeLiveSession:
    """Stand-in for ``LiveSession`` driven by a queue of server messages."""

    def __init__(self):
        self.client_content = []
        self.realtime_input = []
        self.closed = False
        self.close_calls = 0
        self.fail_realtime_input = False
        self._events: asyncio.Queue = asyncio.Queue()

    async def send_client_content(self, turns, turn_complete=True):
        self.client_content.append((turns, turn_complete))

    async def send_realtime_input(self, media):
        if self.fail_realtime_input:
            raise LiveSessionError("send failed")
        self.realtime_input.append(media)

    def push(self, message) -> None:
        self._events.put_nowait(message)

    def end(self) -> None:
        self._events.put_nowait(_CLOSE)

    def error(self, message: str = "boom") -> None:
        self._events.put_nowait(LiveSessionError(message))

    async def receive(self):
        while True:
            item = await self._events.get()
            if item is _CLOSE:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def close(self):
        self.close_calls += 1
        if not self.closed:
            self.closed = True
            self._events.put_nowait(_CLOSE)


class FakeLiveClient:
    """Stand-in for ``LiveClient`` returning a ``FakeLiveSession``.

    Set ``gate`` to an ``asyncio.Event`` to hold ``connect`` open until it is
    set, or ``error`` to make ``connect`` fail.
    """

    def __init__(self):
        self.session = FakeLiveSession()
        self.setups = []
        self.gate = None
        self.error = None

    async def connect(self, setup):
        self.setups.append(setup)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.session


async def _settle(rounds: int = 10) -> None:
    """Let pending tasks on the event loop run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def connection():
    return FakeClientConnection()


@pytest.fixture
def live_client():
    return FakeLiveClient()


@pytest.fixture
def token_store():
    return TokenStore(expiry_seconds=600, cleanup_interval=600)


@pytest.fixture
def app_config(tmp_path):
    config = ApplicationConfig(gemini=GeminiConfig(api_key="test-key", model="test-model"))
    config.recordings.recordings_dir = tmp_path / "recordings"
    return config


@pytest.fixture
def settle():
    return _settle
