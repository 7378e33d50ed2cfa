"""Session bridge between a calling client and a Gemini Live session.

One ``SessionBridge`` owns one client connection for its whole lifetime. It
translates the client socket protocol (see ``callbridge.models.socket_messages``)
into Live API calls and back, opens at most one live session per connection,
and guarantees a single, ordered teardown whichever side ends the call.

Lifecycle::

    CONNECTING --(live session open)--> CONNECTED --(any termination)--> DISCONNECTED
    CONNECTING --(live session failed)-----------------------------------> DISCONNECTED

Client frames, live-session setup and live-session events are all handled
under one per-bridge ``asyncio.Lock``. ``teardown`` never takes the lock and is
guarded by ``_cleaned_up``; it stops the connect and reader tasks before it
sends the final status, so no live event is handled alongside it.
"""

import asyncio
import enum
import uuid
from typing import List, Optional, Union

from pydantic import ValidationError

from callbridge.bridges.connection import ClientConnection
from callbridge.config.constants import (
    NORMAL_CLOSURE,
    OPENING_TURN_TEXT,
    PCM_MIME_TEMPLATE,
)
from callbridge.config.logging_config import configure_logging
from callbridge.config.models import LiveSessionConfig
from callbridge.live.client import LiveClient, LiveSession, LiveSessionError
from callbridge.models.live_api import (
    AudioTranscriptionConfig,
    AutomaticActivityDetection,
    Blob,
    Content,
    GenerationConfig,
    LiveServerMessage,
    LiveSetup,
    Modality,
    Part,
    PrebuiltVoiceConfig,
    ProactivityConfig,
    RealtimeInputConfig,
    SpeechConfig,
    ThinkingConfig,
    VoiceConfig,
)
from callbridge.models.socket_messages import (
    ClientAudioChunkPayload,
    ClientHelloPayload,
    ConnectionState,
    ErrorCode,
    HeartbeatPayload,
    MessageParseError,
    ServerAudioChunkPayload,
    ServerAudioFlushPayload,
    ServerErrorPayload,
    ServerReadyPayload,
    ServerStatusPayload,
    ServerTranscriptPayload,
    SocketMessage,
    SocketMessageType,
    build_message,
    parse_client_message,
)
from callbridge.profiles import ConversationProfile, get_profile
from callbridge.services.token_store import TokenStore

logger = configure_logging("session_bridge")


class InitState(str, enum.Enum):
    """Progress of the bridge's one live session."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class SessionBridge:
    """Bridges one client connection to one Gemini Live session.

    Attributes:
        session_id (str): Unique identifier for this call
        state (ConnectionState): Client-visible lifecycle state
        active (bool): True while the live session is open and accepting input
        seq_counter (int): Last sequence number assigned to an outbound audio frame
        init_state (InitState): Claim-once progress of live session setup
        live_session (Optional[LiveSession]): The open live session, if any
        profile (Optional[ConversationProfile]): Profile chosen by the first hello
        recording_token (str): One-time upload token minted for this call
    """

    def __init__(
        self,
        connection: ClientConnection,
        live_client: LiveClient,
        token_store: TokenStore,
        live_config: Optional[LiveSessionConfig] = None,
    ):
        self.connection = connection
        self.live_client = live_client
        self.token_store = token_store
        self.live_config = live_config or LiveSessionConfig()

        self.session_id = str(uuid.uuid4())
        self.state = ConnectionState.CONNECTING
        self.active = False
        self.seq_counter = 0
        self.init_state = InitState.UNINITIALIZED
        self.live_session: Optional[LiveSession] = None
        self.profile: Optional[ConversationProfile] = None
        self.recording_token = token_store.generate_token(self.session_id)

        self._pending_audio: List[ClientAudioChunkPayload] = []
        self._cleaned_up = False
        self._listening = False
        self._lock = asyncio.Lock()
        self._connect_task: Optional[asyncio.Task] = None
        self._reader_task: Optional[asyncio.Task] = None

    @property
    def cleaned_up(self) -> bool:
        return self._cleaned_up

    # ------------------------------------------------------------------
    # Client side
    # ------------------------------------------------------------------

    async def bind(self) -> None:
        """Attach to the client connection and announce the bridge."""
        self._listening = True
        logger.info(f"Client connected: session {self.session_id}")
        await self.send_status(ConnectionState.CONNECTING, "Awaiting client hello")

    async def run(self) -> None:
        """Process client frames until the connection or the bridge ends."""
        await self.bind()
        try:
            async for raw in self.connection.iter_messages():
                if not self._listening:
                    break
                await self.on_client_message(raw)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Client socket error for session {self.session_id}: {e}")
            if not self._cleaned_up:
                await self.send_error(ErrorCode.SOCKET_ERROR, str(e))
            await self.teardown("socket_error")
            return

        await self.teardown("socket_closed")

    async def on_client_message(self, raw: Union[str, bytes]) -> None:
        """Handle one raw frame received from the client."""
        async with self._lock:
            if self._cleaned_up:
                return

            try:
                message = parse_client_message(raw)
            except MessageParseError as e:
                logger.warning(f"Bad client payload on session {self.session_id}: {e}")
                await self.send_error(ErrorCode.BAD_PAYLOAD, str(e))
                return

            await self._dispatch(message)

    async def _dispatch(self, message: SocketMessage) -> None:
        try:
            msg_type = SocketMessageType(message.type)
        except ValueError:
            msg_type = None

        try:
            if msg_type == SocketMessageType.CLIENT_HELLO:
                await self.handle_hello(ClientHelloPayload.model_validate(message.payload))
            elif msg_type == SocketMessageType.CLIENT_AUDIO_CHUNK:
                await self.handle_audio_chunk(
                    ClientAudioChunkPayload.model_validate(message.payload)
                )
            elif msg_type == SocketMessageType.CLIENT_END:
                logger.info(f"Client ended session {self.session_id}")
                await self.teardown("client_end")
            elif msg_type == SocketMessageType.HEARTBEAT:
                await self.handle_heartbeat(HeartbeatPayload.model_validate(message.payload))
            else:
                logger.warning(f"Unsupported message type: {message.type}")
                await self.send_error(
                    ErrorCode.UNSUPPORTED_MESSAGE,
                    f"Unsupported message type: {message.type}",
                )
        except ValidationError as e:
            logger.warning(f"Invalid {message.type} payload on session {self.session_id}: {e}")
            await self.send_error(ErrorCode.BAD_PAYLOAD, f"Invalid {message.type} payload")

    async def handle_hello(self, payload: ClientHelloPayload) -> None:
        """Open the live session for the first hello; later hellos are ignored."""
        if self.init_state != InitState.UNINITIALIZED:
            logger.debug(f"Ignoring repeated hello on session {self.session_id}")
            return
        self.init_state = InitState.INITIALIZING

        self.profile = get_profile(payload.appRoute)
        logger.info(
            f"Session {self.session_id} hello (route: {payload.appRoute}, profile: {self.profile.name})"
        )

        try:
            setup = self.build_setup(self.profile)
        except ValueError as e:
            logger.error(f"Invalid live session setup: {e}")
            self.init_state = InitState.FAILED
            await self.send_error(ErrorCode.MODEL_CONNECT_FAILED, "Invalid live session setup")
            await self.teardown("model_connect_failed")
            return

        self._connect_task = asyncio.create_task(self._open_live_session(setup))

    async def handle_audio_chunk(self, payload: ClientAudioChunkPayload) -> None:
        if self.init_state == InitState.UNINITIALIZED:
            await self.send_error(ErrorCode.SESSION_NOT_READY, "Session not yet initialized")
            return

        if self.init_state == InitState.INITIALIZING:
            self._pending_audio.append(payload)
            return

        await self._forward_audio(payload)

    async def handle_heartbeat(self, payload: HeartbeatPayload) -> None:
        kind = "pong" if payload.kind == "ping" else "ping"
        await self._send(
            build_message(SocketMessageType.HEARTBEAT, HeartbeatPayload(kind=kind))
        )

    async def _forward_audio(self, payload: ClientAudioChunkPayload) -> None:
        if not self.active or self.live_session is None:
            return
        try:
            await self.live_session.send_realtime_input(
                Blob(
                    mimeType=PCM_MIME_TEMPLATE.format(sample_rate=payload.sampleRate),
                    data=payload.chunk,
                )
            )
        except Exception as e:
            logger.error(f"Failed to forward audio for session {self.session_id}: {e}")
            await self.send_error(ErrorCode.FORWARD_FAILED, "Failed to forward audio")

    # ------------------------------------------------------------------
    # Live session side
    # ------------------------------------------------------------------

    def build_setup(self, profile: ConversationProfile) -> LiveSetup:
        """Build the live session setup for ``profile``."""
        config = self.live_config
        transcription = AudioTranscriptionConfig() if profile.transcripts_enabled else None
        return LiveSetup(
            generationConfig=GenerationConfig(
                responseModalities=[Modality.AUDIO],
                speechConfig=SpeechConfig(
                    voiceConfig=VoiceConfig(
                        prebuiltVoiceConfig=PrebuiltVoiceConfig(
                            voiceName=profile.voice or config.voice
                        )
                    )
                ),
                thinkingConfig=ThinkingConfig(
                    includeThoughts=config.include_thoughts,
                    thinkingLevel=config.thinking_level,
                ),
            ),
            systemInstruction=Content(parts=[Part(text=profile.system_instruction)]),
            realtimeInputConfig=RealtimeInputConfig(
                automaticActivityDetection=AutomaticActivityDetection(
                    startOfSpeechSensitivity=config.start_sensitivity,
                    endOfSpeechSensitivity=config.end_sensitivity,
                    prefixPaddingMs=config.prefix_padding_ms,
                    silenceDurationMs=config.silence_duration_ms,
                )
            ),
            proactivity=ProactivityConfig(proactiveAudio=config.proactive_audio),
            inputAudioTranscription=transcription,
            outputAudioTranscription=transcription,
        )

    async def _open_live_session(self, setup: LiveSetup) -> None:
        try:
            session = await self.live_client.connect(setup)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            async with self._lock:
                if self._cleaned_up:
                    return
                logger.error(f"Live session connect failed for {self.session_id}: {e}")
                self.init_state = InitState.FAILED
                await self.send_error(
                    ErrorCode.MODEL_CONNECT_FAILED, "Failed to connect to the model"
                )
                await self.teardown("model_connect_failed")
            return

        # Teardown closes the session from here on, even if this task is
        # cancelled while waiting for the lock.
        self.live_session = session

        async with self._lock:
            if self._cleaned_up:
                await self._close_live_session(session)
                return
            await self._on_live_open()
            self._reader_task = asyncio.create_task(self._consume_live_events(session))

    async def _on_live_open(self) -> None:
        self.active = True
        self.state = ConnectionState.CONNECTED
        self.init_state = InitState.READY
        logger.info(f"Live session ready for {self.session_id}")

        await self._send(
            build_message(
                SocketMessageType.SERVER_READY,
                ServerReadyPayload(
                    sessionId=self.session_id, recordingToken=self.recording_token
                ),
            )
        )
        await self.send_status(ConnectionState.CONNECTED, "Live session ready")

        try:
            await self.live_session.send_client_content(
                [Content(role="user", parts=[Part(text=OPENING_TURN_TEXT)])],
                turn_complete=True,
            )
        except Exception as e:
            logger.error(f"Failed to send opening turn for {self.session_id}: {e}")

        pending, self._pending_audio = self._pending_audio, []
        for payload in pending:
            await self._forward_audio(payload)

    async def _consume_live_events(self, session: LiveSession) -> None:
        try:
            async for message in session.receive():
                async with self._lock:
                    if self._cleaned_up:
                        return
                    await self.on_remote_event(message)
        except asyncio.CancelledError:
            raise
        except LiveSessionError as e:
            await self._fail_live_session(e)
            return
        except Exception as e:
            logger.exception(f"Unexpected error handling live events for {self.session_id}")
            await self._fail_live_session(e)
            return

        async with self._lock:
            if self._cleaned_up:
                return
            logger.info(f"Model closed session {self.session_id}")
            await self.send_status(ConnectionState.DISCONNECTED, "Model closed session")
            await self.teardown("model_closed")

    async def _fail_live_session(self, error: Exception) -> None:
        async with self._lock:
            if self._cleaned_up:
                return
            logger.error(f"Live session error for {self.session_id}: {error}")
            await self.send_error(ErrorCode.MODEL_ERROR, "Model session error")
            await self.teardown("model_error")

    async def on_remote_event(self, message: LiveServerMessage) -> None:
        """Translate one live server message into client frames."""
        content = message.serverContent
        if content is None:
            return

        audio = content.inline_audio()
        if audio:
            self.seq_counter += 1
            await self._send(
                build_message(
                    SocketMessageType.SERVER_AUDIO_CHUNK,
                    ServerAudioChunkPayload(
                        chunk=audio,
                        sampleRate=self.live_config.output_sample_rate,
                        isLastChunk=bool(content.turnComplete),
                    ),
                    seq=self.seq_counter,
                )
            )

        if content.interrupted:
            await self._send(
                build_message(
                    SocketMessageType.SERVER_AUDIO_FLUSH,
                    ServerAudioFlushPayload(reason="interrupted"),
                )
            )
            logger.info(f"Model response interrupted on {self.session_id}, sent audio flush")

        if self.profile is not None and self.profile.transcripts_enabled:
            for role, transcription in (
                ("user", content.inputTranscription),
                ("model", content.outputTranscription),
            ):
                if transcription is None or not transcription.text:
                    continue
                await self._send(
                    build_message(
                        SocketMessageType.SERVER_TRANSCRIPT,
                        ServerTranscriptPayload(
                            role=role,
                            text=transcription.text,
                            final=bool(transcription.finished or content.turnComplete),
                        ),
                    )
                )

    # ------------------------------------------------------------------
    # Outbound helpers and teardown
    # ------------------------------------------------------------------

    async def _send(self, message: SocketMessage) -> None:
        if not self.connection.is_open:
            return
        try:
            await self.connection.send_text(message.to_json())
        except Exception as e:
            logger.warning(f"Failed to send {message.type} to client {self.session_id}: {e}")

    async def send_status(self, state: ConnectionState, detail: Optional[str] = None) -> None:
        await self._send(
            build_message(
                SocketMessageType.SERVER_STATUS,
                ServerStatusPayload(state=state, detail=detail),
            )
        )

    async def send_error(self, code: ErrorCode, message: str) -> None:
        await self._send(
            build_message(
                SocketMessageType.SERVER_ERROR,
                ServerErrorPayload(code=code, message=message),
            )
        )

    async def _close_live_session(self, session: LiveSession) -> None:
        try:
            await session.close()
        except Exception as e:
            logger.warning(f"Error closing live session for {self.session_id}: {e}")

    async def _stop_background_tasks(self) -> None:
        """Cancel the connect and reader tasks and wait for them to finish.

        The task calling teardown is skipped; it is already past any event it
        was handling.
        """
        current = asyncio.current_task()
        tasks = [
            task
            for task in (self._connect_task, self._reader_task)
            if task is not None and task is not current and not task.done()
        ]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)

    async def teardown(self, reason: str) -> None:
        """Release everything this bridge owns. Runs at most once."""
        if self._cleaned_up:
            return
        self._cleaned_up = True
        self.active = False
        self.state = ConnectionState.DISCONNECTED
        self._listening = False
        self._pending_audio.clear()
        logger.info(f"Tearing down session {self.session_id}: {reason}")

        await self._stop_background_tasks()

        await self.send_status(ConnectionState.DISCONNECTED, reason)
        self.token_store.mark_connection_closed(self.session_id)

        if self.live_session is not None:
            await self._close_live_session(self.live_session)

        if self.connection.is_open:
            try:
                await self.connection.close(NORMAL_CLOSURE, reason)
            except Exception as e:
                logger.warning(f"Error closing client connection {self.session_id}: {e}")
