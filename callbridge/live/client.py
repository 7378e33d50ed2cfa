"""
Client for the Gemini Live streaming speech API.

``LiveClient.connect`` opens the BidiGenerateContent WebSocket, performs the
setup handshake and returns a ``LiveSession``. A session exposes the two
outbound message kinds the bridge needs (conversation turns and realtime
media) and a single ordered stream of server messages via ``receive()``.

The stream ends normally when the remote side closes cleanly, and raises
``LiveSessionError`` when the connection fails or a frame cannot be decoded,
so every consumer sees at most one terminal outcome.
"""

import asyncio
import json
from typing import AsyncIterator, List, Optional, Union

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from callbridge.config.logging_config import configure_logging
from callbridge.config.models import GeminiConfig, WebSocketConfig
from callbridge.models.live_api import (
    Blob,
    ClientContent,
    ClientContentMessage,
    Content,
    LiveModel,
    LiveServerMessage,
    LiveSetup,
    RealtimeInput,
    RealtimeInputMessage,
    SetupMessage,
)

logger = configure_logging("live_client")


class LiveConnectError(Exception):
    """Raised when a live session cannot be established."""


class LiveSessionError(Exception):
    """Raised when an established live session fails."""


def _decode_frame(raw: Union[str, bytes]) -> LiveServerMessage:
    """Decode one server frame. The Live API may deliver JSON as binary frames."""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    return LiveServerMessage.model_validate(json.loads(raw))


class LiveSession:
    """An open Gemini Live session over a WebSocket connection."""

    def __init__(self, websocket, model: Optional[str] = None):
        self._websocket = websocket
        self.model = model
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def _send(self, message: LiveModel) -> None:
        if self._closed:
            raise LiveSessionError("Live session is closed")
        await self._websocket.send(json.dumps(message.to_wire()))

    async def send_client_content(
        self, turns: List[Content], turn_complete: bool = True
    ) -> None:
        """Append conversation turns, optionally asking the model to respond."""
        await self._send(
            ClientContentMessage(
                clientContent=ClientContent(turns=turns, turnComplete=turn_complete)
            )
        )

    async def send_realtime_input(self, media: Blob) -> None:
        """Stream one chunk of realtime media (e.g. PCM audio) to the model."""
        await self._send(
            RealtimeInputMessage(realtimeInput=RealtimeInput(mediaChunks=[media]))
        )

    async def receive(self) -> AsyncIterator[LiveServerMessage]:
        """Yield server messages in arrival order until the session ends.

        Raises:
            LiveSessionError: If the connection drops abnormally or a frame is
                not a valid Live API message.
        """
        try:
            async for raw in self._websocket:
                try:
                    message = _decode_frame(raw)
                except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
                    raise LiveSessionError(f"Malformed live message: {e}") from e

                if message.goAway is not None:
                    logger.warning(
                        f"Live API requested disconnect (time left: {message.goAway.timeLeft})"
                    )
                yield message
        except ConnectionClosedOK:
            return
        except ConnectionClosedError as e:
            if self._closed:
                return
            raise LiveSessionError(f"Live connection closed unexpectedly: {e}") from e

    async def close(self) -> None:
        """Close the underlying connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self._websocket.close()


class LiveClient:
    """Factory for Gemini Live sessions.

    Args:
        gemini_config: API key, model and endpoint settings.
        websocket_config: Keepalive, timeout and frame-size settings.
    """

    def __init__(
        self,
        gemini_config: GeminiConfig,
        websocket_config: Optional[WebSocketConfig] = None,
    ):
        self.gemini_config = gemini_config
        self.websocket_config = websocket_config or WebSocketConfig()

    async def connect(self, setup: LiveSetup) -> LiveSession:
        """Open a live session configured by ``setup``.

        Raises:
            LiveConnectError: If the connection or the setup handshake fails.
        """
        try:
            url = self.gemini_config.get_websocket_url()
            model = setup.model or self.gemini_config.get_model_name()
        except ValueError as e:
            raise LiveConnectError(str(e)) from e

        setup = setup.model_copy(update={"model": model})
        ws_config = self.websocket_config

        try:
            websocket = await websockets.connect(
                url,
                ping_interval=ws_config.ping_interval,
                ping_timeout=ws_config.ping_timeout,
                close_timeout=ws_config.close_timeout,
                open_timeout=ws_config.open_timeout,
                max_size=ws_config.max_size,
            )
        except Exception as e:
            logger.error(f"Failed to connect to Gemini Live: {e}")
            raise LiveConnectError(f"Failed to connect to Gemini Live: {e}") from e

        try:
            await websocket.send(json.dumps(SetupMessage(setup=setup).to_wire()))
            raw = await asyncio.wait_for(
                websocket.recv(), timeout=ws_config.open_timeout
            )
            reply = _decode_frame(raw)
            if reply.setupComplete is None:
                raise LiveConnectError("Live API did not acknowledge setup")
        except (LiveConnectError, asyncio.CancelledError):
            await websocket.close()
            raise
        except Exception as e:
            await websocket.close()
            logger.error(f"Gemini Live setup failed: {e}")
            raise LiveConnectError(f"Gemini Live setup failed: {e}") from e

        logger.info(f"Gemini Live session established (model: {model})")
        return LiveSession(websocket, model=model)
