"""
Pydantic models for the Gemini Live (BidiGenerateContent) WebSocket protocol.

The Live API speaks JSON over a single WebSocket. The client opens the stream
with a ``setup`` message and waits for ``setupComplete``; afterwards it sends
``clientContent`` (conversation turns) and ``realtimeInput`` (streamed media)
messages, and receives ``serverContent`` messages carrying model audio,
transcriptions and turn/interruption flags.

Field names follow the wire format (camelCase) so models can be dumped and
validated directly, mirroring the other protocol models in this package.
"""

import enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Modality(str, enum.Enum):
    """Response modalities supported by the Live API."""

    TEXT = "TEXT"
    AUDIO = "AUDIO"


class StartSensitivity(str, enum.Enum):
    START_SENSITIVITY_HIGH = "START_SENSITIVITY_HIGH"
    START_SENSITIVITY_LOW = "START_SENSITIVITY_LOW"


class EndSensitivity(str, enum.Enum):
    END_SENSITIVITY_HIGH = "END_SENSITIVITY_HIGH"
    END_SENSITIVITY_LOW = "END_SENSITIVITY_LOW"


class LiveModel(BaseModel):
    """Base for Live API models; unknown server fields are ignored."""

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


# Content
class Blob(LiveModel):
    """Inline binary payload (base64 encoded) with its MIME type."""

    mimeType: str
    data: str


class Part(LiveModel):
    text: Optional[str] = None
    inlineData: Optional[Blob] = None
    thought: Optional[bool] = None


class Content(LiveModel):
    role: Optional[str] = None
    parts: List[Part] = Field(default_factory=list)


# Setup
class PrebuiltVoiceConfig(LiveModel):
    voiceName: str


class VoiceConfig(LiveModel):
    prebuiltVoiceConfig: PrebuiltVoiceConfig


class SpeechConfig(LiveModel):
    voiceConfig: VoiceConfig
    languageCode: Optional[str] = None


class ThinkingConfig(LiveModel):
    includeThoughts: Optional[bool] = None
    thinkingLevel: Optional[str] = None
    thinkingBudget: Optional[int] = None


class GenerationConfig(LiveModel):
    responseModalities: List[Modality] = Field(default_factory=lambda: [Modality.AUDIO])
    speechConfig: Optional[SpeechConfig] = None
    thinkingConfig: Optional[ThinkingConfig] = None
    temperature: Optional[float] = None


class AutomaticActivityDetection(LiveModel):
    disabled: Optional[bool] = None
    startOfSpeechSensitivity: Optional[StartSensitivity] = None
    endOfSpeechSensitivity: Optional[EndSensitivity] = None
    prefixPaddingMs: Optional[int] = None
    silenceDurationMs: Optional[int] = None


class RealtimeInputConfig(LiveModel):
    automaticActivityDetection: Optional[AutomaticActivityDetection] = None


class ProactivityConfig(LiveModel):
    proactiveAudio: Optional[bool] = None


class AudioTranscriptionConfig(LiveModel):
    """Empty object enabling transcription of one audio direction."""


class LiveSetup(LiveModel):
    """Body of the opening ``setup`` message.

    ``model`` may be left unset; the live client fills in the configured model
    name before sending.
    """

    model: Optional[str] = None
    generationConfig: GenerationConfig = Field(default_factory=GenerationConfig)
    systemInstruction: Optional[Content] = None
    realtimeInputConfig: Optional[RealtimeInputConfig] = None
    proactivity: Optional[ProactivityConfig] = None
    inputAudioTranscription: Optional[AudioTranscriptionConfig] = None
    outputAudioTranscription: Optional[AudioTranscriptionConfig] = None


class SetupMessage(LiveModel):
    setup: LiveSetup


# Client messages
class ClientContent(LiveModel):
    turns: List[Content] = Field(default_factory=list)
    turnComplete: bool = True


class ClientContentMessage(LiveModel):
    clientContent: ClientContent


class RealtimeInput(LiveModel):
    mediaChunks: List[Blob] = Field(default_factory=list)


class RealtimeInputMessage(LiveModel):
    realtimeInput: RealtimeInput


# Server messages
class Transcription(LiveModel):
    text: Optional[str] = None
    finished: Optional[bool] = None


class ServerContent(LiveModel):
    """Incremental model output for the current turn."""

    modelTurn: Optional[Content] = None
    turnComplete: Optional[bool] = None
    generationComplete: Optional[bool] = None
    interrupted: Optional[bool] = None
    inputTranscription: Optional[Transcription] = None
    outputTranscription: Optional[Transcription] = None

    def inline_audio(self) -> Optional[str]:
        """Return the base64 audio carried by the first part of the model turn."""
        if not self.modelTurn or not self.modelTurn.parts:
            return None
        inline = self.modelTurn.parts[0].inlineData
        if inline is None or not inline.data:
            return None
        return inline.data


class GoAway(LiveModel):
    timeLeft: Optional[str] = None


class LiveServerMessage(LiveModel):
    """Any message received from the Live API after setup."""

    setupComplete: Optional[Dict[str, Any]] = None
    serverContent: Optional[ServerContent] = None
    toolCall: Optional[Dict[str, Any]] = None
    goAway: Optional[GoAway] = None
    usageMetadata: Optional[Dict[str, Any]] = None
