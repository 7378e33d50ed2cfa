"""
Client connection interface used by the session bridge.

The bridge only needs four capabilities from the client transport: send a
text frame, close with a code and reason, report whether the connection is
still usable, and deliver inbound frames in order. ``ClientConnection``
captures those; ``FastAPIClientConnection`` implements them on top of a
FastAPI/Starlette ``WebSocket``.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, Union

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from callbridge.config.constants import NORMAL_CLOSURE


class ClientConnection(ABC):
    """Abstract duplex connection to a calling client."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True while frames can still be sent."""

    @abstractmethod
    async def send_text(self, data: str) -> None:
        """Send one text frame."""

    @abstractmethod
    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """Close the connection."""

    @abstractmethod
    def iter_messages(self) -> AsyncIterator[Union[str, bytes]]:
        """Yield inbound frames until the client disconnects.

        Transport failures are raised from the iterator.
        """


class FastAPIClientConnection(ClientConnection):
    """``ClientConnection`` backed by an accepted FastAPI WebSocket."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, data: str) -> None:
        await self.websocket.send_text(data)

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        await self.websocket.close(code=code, reason=reason)

    async def iter_messages(self) -> AsyncIterator[Union[str, bytes]]:
        while self.websocket.client_state == WebSocketState.CONNECTED:
            message = await self.websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
            if message.get("text") is not None:
                yield message["text"]
            elif message.get("bytes") is not None:
                yield message["bytes"]
