import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK
from websockets.frames import Close

from callbridge.config.models import GeminiConfig, WebSocketConfig
from callbridge.live.client import (
    LiveClient,
    LiveConnectError,
    LiveSession,
    LiveSessionError,
)
from callbridge.models.live_api import Blob, Content, LiveSetup, Part


class FakeWebSocket:
    """Scripted websocket: ``recv`` answers the setup, iteration replays frames."""

    def __init__(self, setup_reply='{"setupComplete": {}}', frames=(), end_with=None):
        self.sent = []
        self.closed = False
        self.setup_reply = setup_reply
        self.frames = list(frames)
        self.end_with = end_with

    async def send(self, data):
        self.sent.append(json.loads(data))

    async def recv(self):
        return self.setup_reply

    async def close(self):
        self.closed = True

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for item in self.frames:
            yield item
        if self.end_with is not None:
            raise self.end_with


@pytest.fixture
def gemini_config():
    return GeminiConfig(api_key="secret", model="gemini-live-test")


@pytest.fixture
def client(gemini_config):
    return LiveClient(gemini_config, WebSocketConfig(open_timeout=1.0))


class TestConnect:
    async def test_connect_sends_setup_and_returns_session(self, client):
        websocket = FakeWebSocket()
        with patch(
            "callbridge.live.client.websockets.connect",
            new_callable=AsyncMock,
            return_value=websocket,
        ) as mock_connect:
            session = await client.connect(LiveSetup())

        url = mock_connect.call_args.args[0]
        assert url.startswith("wss://generativelanguage.googleapis.com/ws/")
        assert "v1beta.GenerativeService.BidiGenerateContent" in url
        assert url.endswith("?key=secret")
        assert mock_connect.call_args.kwargs["open_timeout"] == 1.0

        assert isinstance(session, LiveSession)
        assert session.model == "models/gemini-live-test"
        assert websocket.sent[0]["setup"]["model"] == "models/gemini-live-test"
        assert websocket.sent[0]["setup"]["generationConfig"] == {"responseModalities": ["AUDIO"]}

    async def test_explicit_model_is_kept(self, client):
        websocket = FakeWebSocket()
        with patch(
            "callbridge.live.client.websockets.connect",
            new_callable=AsyncMock,
            return_value=websocket,
        ):
            session = await client.connect(LiveSetup(model="models/other"))

        assert session.model == "models/other"

    async def test_missing_api_key_raises_connect_error(self):
        client = LiveClient(GeminiConfig(api_key=None, model="m"))

        with pytest.raises(LiveConnectError):
            await client.connect(LiveSetup())

    async def test_transport_failure_raises_connect_error(self, client):
        with patch(
            "callbridge.live.client.websockets.connect",
            new_callable=AsyncMock,
            side_effect=OSError("connection refused"),
        ):
            with pytest.raises(LiveConnectError):
                await client.connect(LiveSetup())

    async def test_unexpected_setup_reply_closes_socket(self, client):
        websocket = FakeWebSocket(setup_reply='{"serverContent": {}}')
        with patch(
            "callbridge.live.client.websockets.connect",
            new_callable=AsyncMock,
            return_value=websocket,
        ):
            with pytest.raises(LiveConnectError):
                await client.connect(LiveSetup())

        assert websocket.closed

    async def test_setup_timeout_raises_connect_error(self, client):
        websocket = FakeWebSocket()

        async def never():
            await asyncio.sleep(10)

        websocket.recv = never
        client.websocket_config.open_timeout = 0.01
        with patch(
            "callbridge.live.client.websockets.connect",
            new_callable=AsyncMock,
            return_value=websocket,
        ):
            with pytest.raises(LiveConnectError):
                await client.connect(LiveSetup())

        assert websocket.closed

    async def test_cancel_during_handshake_closes_socket(self, client):
        websocket = FakeWebSocket()
        handshake_started = asyncio.Event()

        async def never():
            handshake_started.set()
            await asyncio.sleep(10)

        websocket.recv = never
        with patch(
            "callbridge.live.client.websockets.connect",
            new_callable=AsyncMock,
            return_value=websocket,
        ):
            task = asyncio.create_task(client.connect(LiveSetup()))
            await handshake_started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert websocket.closed


class TestLiveSession:
    async def test_send_client_content(self):
        websocket = FakeWebSocket()
        session = LiveSession(websocket)

        await session.send_client_content([Content(role="user", parts=[Part(text="hi")])])

        assert websocket.sent == [
            {
                "clientContent": {
                    "turns": [{"role": "user", "parts": [{"text": "hi"}]}],
                    "turnComplete": True,
                }
            }
        ]

    async def test_send_realtime_input(self):
        websocket = FakeWebSocket()
        session = LiveSession(websocket)

        await session.send_realtime_input(Blob(mimeType="audio/pcm;rate=16000", data="AAAA"))

        assert websocket.sent == [
            {"realtimeInput": {"mediaChunks": [{"mimeType": "audio/pcm;rate=16000", "data": "AAAA"}]}}
        ]

    async def test_send_after_close_raises(self):
        session = LiveSession(FakeWebSocket())
        await session.close()

        with pytest.raises(LiveSessionError):
            await session.send_realtime_input(Blob(mimeType="audio/pcm;rate=16000", data="AAAA"))

    async def test_receive_decodes_text_and_binary_frames(self):
        frames = [
            '{"serverContent": {"turnComplete": true}}',
            b'{"serverContent": {"interrupted": true}}',
        ]
        session = LiveSession(FakeWebSocket(frames=frames))

        messages = [message async for message in session.receive()]

        assert messages[0].serverContent.turnComplete is True
        assert messages[1].serverContent.interrupted is True

    async def test_clean_close_ends_stream(self):
        session = LiveSession(
            FakeWebSocket(frames=['{"goAway": {"timeLeft": "1s"}}'], end_with=ConnectionClosedOK(Close(1000, ""), None))
        )

        messages = [message async for message in session.receive()]

        assert len(messages) == 1
        assert messages[0].goAway.timeLeft == "1s"

    async def test_abnormal_close_raises_session_error(self):
        session = LiveSession(
            FakeWebSocket(end_with=ConnectionClosedError(Close(1011, "internal error"), None))
        )

        with pytest.raises(LiveSessionError):
            async for _ in session.receive():
                pass

    async def test_malformed_frame_raises_session_error(self):
        session = LiveSession(FakeWebSocket(frames=["not json"]))

        with pytest.raises(LiveSessionError):
            async for _ in session.receive():
                pass

    async def test_close_is_idempotent(self):
        websocket = FakeWebSocket()
        websocket.close = AsyncMock()
        session = LiveSession(websocket)

        await session.close()
        await session.close()

        assert session.closed
        websocket.close.assert_awaited_once()
