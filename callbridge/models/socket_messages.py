"""
Pydantic models for the client-facing call socket protocol.

Every frame exchanged over ``/ws`` is a JSON object of the form::

    {"type": "<MESSAGE_TYPE>", "payload": {...}, "timestamp": 1718000000000, "seq": 7}

``timestamp`` is epoch milliseconds and ``seq`` is only present on audio frames
sent to the client. Payload models below describe the ``payload`` object for
each message type.
"""

import enum
import json
import time
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator


class SocketMessageType(str, enum.Enum):
    """Enumeration of all message types on the call socket."""

    # Client -> server
    CLIENT_HELLO = "CLIENT_HELLO"
    CLIENT_AUDIO_CHUNK = "CLIENT_AUDIO_CHUNK"
    CLIENT_END = "CLIENT_END"

    # Server -> client
    SERVER_READY = "SERVER_READY"
    SERVER_STATUS = "SERVER_STATUS"
    SERVER_ERROR = "SERVER_ERROR"
    SERVER_AUDIO_CHUNK = "SERVER_AUDIO_CHUNK"
    SERVER_AUDIO_FLUSH = "SERVER_AUDIO_FLUSH"
    SERVER_TRANSCRIPT = "SERVER_TRANSCRIPT"

    # Both directions
    HEARTBEAT = "HEARTBEAT"


class ConnectionState(str, enum.Enum):
    """Lifecycle state of a bridged call connection."""

    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"


class ErrorCode(str, enum.Enum):
    """Error codes reported to the client in SERVER_ERROR payloads."""

    BAD_PAYLOAD = "bad_payload"
    UNSUPPORTED_MESSAGE = "unsupported_message"
    SESSION_NOT_READY = "session_not_ready"
    FORWARD_FAILED = "forward_failed"
    MODEL_CONNECT_FAILED = "model_connect_failed"
    MODEL_ERROR = "model_error"
    SOCKET_ERROR = "socket_error"


class MessageParseError(Exception):
    """Raised when an inbound frame cannot be parsed into a socket message."""


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class SocketMessage(BaseModel):
    """Envelope for every frame on the call socket."""

    type: str = Field(..., description="Message type identifier")
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: int = Field(default_factory=now_ms, description="Epoch milliseconds")
    seq: Optional[int] = Field(None, description="Sequence number for audio frames")

    @field_validator("type")
    def validate_type(cls, v):
        """Reject blank message types."""
        if not v or not v.strip():
            raise ValueError("Message type cannot be empty")
        return v

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


# Client payloads
class ClientHelloPayload(BaseModel):
    """Payload of CLIENT_HELLO. ``appRoute`` selects the conversation profile."""

    appRoute: Optional[str] = None


class ClientAudioChunkPayload(BaseModel):
    """Payload of CLIENT_AUDIO_CHUNK: base64 PCM16 audio at ``sampleRate``."""

    chunk: str = Field(..., description="Base64-encoded PCM16 audio")
    sampleRate: int = Field(..., description="Sample rate of the chunk in Hz")

    @field_validator("sampleRate")
    def validate_sample_rate(cls, v):
        if v <= 0:
            raise ValueError("sampleRate must be positive")
        return v


class HeartbeatPayload(BaseModel):
    """Payload of HEARTBEAT. Anything other than ``"ping"`` is answered with a ping."""

    kind: Any = None


# Server payloads
class ServerReadyPayload(BaseModel):
    sessionId: str
    recordingToken: str


class ServerStatusPayload(BaseModel):
    state: ConnectionState
    detail: Optional[str] = None


class ServerErrorPayload(BaseModel):
    code: ErrorCode
    message: str


class ServerAudioChunkPayload(BaseModel):
    chunk: str
    sampleRate: int
    isLastChunk: bool = False


class ServerAudioFlushPayload(BaseModel):
    reason: str = "interrupted"


class ServerTranscriptPayload(BaseModel):
    role: str = Field(..., description="'user' or 'model'")
    text: str
    final: bool = False

    @field_validator("role")
    def validate_role(cls, v):
        if v not in ("user", "model"):
            raise ValueError("role must be 'user' or 'model'")
        return v


def parse_client_message(raw: Union[str, bytes]) -> SocketMessage:
    """Parse a raw inbound frame into a SocketMessage envelope.

    Raises:
        MessageParseError: If the frame is not a JSON object with a non-empty
            string ``type`` field.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MessageParseError(f"Frame is not valid UTF-8: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MessageParseError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MessageParseError("Message must be a JSON object")

    msg_type = data.get("type")
    if not isinstance(msg_type, str) or not msg_type.strip():
        raise MessageParseError("Message is missing a type")

    payload = data.get("payload")
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise MessageParseError("Message payload must be an object")

    timestamp = data.get("timestamp")
    if not isinstance(timestamp, int) or isinstance(timestamp, bool):
        timestamp = now_ms()

    try:
        return SocketMessage(
            type=msg_type,
            payload=payload,
            timestamp=timestamp,
            seq=data.get("seq"),
        )
    except ValidationError as e:
        raise MessageParseError(f"Invalid message envelope: {e}") from e


def build_message(
    message_type: SocketMessageType,
    payload: Optional[BaseModel] = None,
    seq: Optional[int] = None,
) -> SocketMessage:
    """Build an outbound envelope from a payload model."""
    return SocketMessage(
        type=message_type.value,
        payload=payload.model_dump(mode="json", exclude_none=True) if payload else {},
        seq=seq,
    )
