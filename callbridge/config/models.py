"""
Configuration models for the callbridge application.

This module defines dataclasses for different configuration domains,
providing type safety and validation for all application settings.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from callbridge.config.constants import (
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_PREFIX_PADDING_MS,
    DEFAULT_SILENCE_DURATION_MS,
    DEFAULT_TOKEN_CLEANUP_INTERVAL,
    DEFAULT_TOKEN_EXPIRY_SECONDS,
    OUTPUT_SAMPLE_RATE,
    VOICE,
)


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ServerConfig:
    """Server configuration settings."""

    host: str = "0.0.0.0"
    port: int = 4000
    environment: Environment = Environment.PRODUCTION
    timeout_keep_alive: int = 30


@dataclass
class GeminiConfig:
    """Gemini Live API configuration."""

    api_key: Optional[str] = None
    model: Optional[str] = None
    base_url: str = "wss://generativelanguage.googleapis.com"
    api_version: str = "v1beta"

    def get_websocket_url(self) -> str:
        """Get the Gemini Live BidiGenerateContent WebSocket URL."""
        if not self.api_key:
            raise ValueError("Gemini API key is required")
        return (
            f"{self.base_url}/ws/google.ai.generativelanguage."
            f"{self.api_version}.GenerativeService.BidiGenerateContent"
            f"?key={self.api_key}"
        )

    def get_model_name(self) -> str:
        """Get the fully qualified model resource name."""
        if not self.model:
            raise ValueError("Gemini model is required")
        if self.model.startswith("models/"):
            return self.model
        return f"models/{self.model}"


@dataclass
class LiveSessionConfig:
    """Defaults applied to every live session the bridge opens."""

    voice: str = VOICE
    start_sensitivity: str = "START_SENSITIVITY_LOW"
    end_sensitivity: str = "END_SENSITIVITY_LOW"
    prefix_padding_ms: int = DEFAULT_PREFIX_PADDING_MS
    silence_duration_ms: int = DEFAULT_SILENCE_DURATION_MS
    proactive_audio: bool = True
    include_thoughts: bool = True
    thinking_level: str = "HIGH"
    output_sample_rate: int = OUTPUT_SAMPLE_RATE


@dataclass
class WebSocketConfig:
    """Settings for the outbound Gemini Live WebSocket connection."""

    ping_interval: Optional[float] = 20.0
    ping_timeout: Optional[float] = 20.0
    close_timeout: float = 10.0
    open_timeout: Optional[float] = 10.0
    max_size: int = 16 * 1024 * 1024  # 16MB


@dataclass
class TokenConfig:
    """Recording upload token settings."""

    expiry_seconds: float = DEFAULT_TOKEN_EXPIRY_SECONDS
    cleanup_interval: float = DEFAULT_TOKEN_CLEANUP_INTERVAL


@dataclass
class RecordingConfig:
    """Recording upload storage settings."""

    recordings_dir: Path = field(default_factory=lambda: Path("recordings"))
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES


@dataclass
class LoggingConfig:
    """Logging configuration settings."""

    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_dir: Path = field(default_factory=lambda: Path("logs"))
    log_filename: str = "callbridge.log"
    max_log_size: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    console_output: bool = True
    file_output: bool = True


@dataclass
class SecurityConfig:
    """Security-related configuration."""

    allowed_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class ApplicationConfig:
    """Master application configuration containing all domain configs."""

    server: ServerConfig = field(default_factory=ServerConfig)
    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    live: LiveSessionConfig = field(default_factory=LiveSessionConfig)
    websocket: WebSocketConfig = field(default_factory=WebSocketConfig)
    tokens: TokenConfig = field(default_factory=TokenConfig)
    recordings: RecordingConfig = field(default_factory=RecordingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.gemini.api_key:
            errors.append(
                "GEMINI_API_KEY is not set. Please set it in the environment variables."
            )

        if not self.gemini.model:
            errors.append(
                "GENAI_MODEL is not set. Please set it in the environment variables."
            )

        if self.server.port <= 0 or self.server.port > 65535:
            errors.append("Server port must be between 1 and 65535")

        if self.tokens.expiry_seconds <= 0:
            errors.append("Recording token expiry must be positive")

        if self.tokens.cleanup_interval <= 0:
            errors.append("Recording token cleanup interval must be positive")

        if self.recordings.max_upload_bytes <= 0:
            errors.append("Recording upload size limit must be positive")

        return errors

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.server.environment == Environment.DEVELOPMENT

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.server.environment == Environment.PRODUCTION
