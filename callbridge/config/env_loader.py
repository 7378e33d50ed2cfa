"""
Environment variable loader for callbridge configuration.

This module handles loading configuration from environment variables,
with type conversion and fallback to defaults.

Environment variables must be explicitly loaded using load_env_file() before
accessing any configuration functions.
"""

import os
from pathlib import Path
from typing import List, Optional, Type, TypeVar, cast, get_origin

from dotenv import load_dotenv

from .constants import (
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_PREFIX_PADDING_MS,
    DEFAULT_SILENCE_DURATION_MS,
    DEFAULT_TOKEN_CLEANUP_INTERVAL,
    DEFAULT_TOKEN_EXPIRY_SECONDS,
    OUTPUT_SAMPLE_RATE,
    VOICE,
)
from .models import (
    ApplicationConfig,
    Environment,
    GeminiConfig,
    LiveSessionConfig,
    LoggingConfig,
    LogLevel,
    RecordingConfig,
    SecurityConfig,
    ServerConfig,
    TokenConfig,
    WebSocketConfig,
)

# Track if environment variables have been loaded
_env_loaded = False


def load_env_file(env_file: Optional[str] = None) -> None:
    """Load environment variables from a .env file.

    This function must be called before accessing any configuration functions.

    Args:
        env_file: Path to the .env file. If None, uses default behavior.
    """
    global _env_loaded
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()
    _env_loaded = True


def _check_env_loaded() -> None:
    """Check if environment variables have been loaded, raise error if not."""
    if not _env_loaded:
        raise RuntimeError(
            "Environment variables not loaded. Call load_env_file() before accessing configuration."
        )


T = TypeVar("T")


def safe_convert(value: Optional[str], target_type: Type[T], default: T) -> T:
    """Safely convert environment variable string to target type."""
    if value is None:
        return default

    try:
        if target_type == bool:
            return cast(T, value.strip().lower() in ("true", "1", "yes"))
        elif target_type == int:
            return cast(T, int(value))
        elif target_type == float:
            return cast(T, float(value))
        elif target_type == str:
            return cast(T, value)
        elif target_type == Path:
            return cast(T, Path(value))
        elif get_origin(target_type) == list:
            items = [item.strip() for item in value.split(",") if item.strip()]
            return cast(T, items or default)
        else:
            return default
    except (ValueError, TypeError):
        return default


def safe_string_or_none(value: Optional[str]) -> Optional[str]:
    """Convert environment variable to string or None if empty."""
    if value is None or value.strip() == "":
        return None
    return value.strip()


def load_server_config() -> ServerConfig:
    """Load server configuration from environment variables."""
    _check_env_loaded()

    env_str = os.getenv("ENV", "production").lower()
    environment = (
        Environment.DEVELOPMENT if env_str == "development" else Environment.PRODUCTION
    )
    if env_str == "testing":
        environment = Environment.TESTING

    return ServerConfig(
        host=os.getenv("HOST", "0.0.0.0"),
        port=safe_convert(os.getenv("PORT"), int, 4000),
        environment=environment,
        timeout_keep_alive=safe_convert(os.getenv("TIMEOUT_KEEP_ALIVE"), int, 30),
    )


def load_gemini_config() -> GeminiConfig:
    """Load Gemini Live configuration from environment variables."""
    _check_env_loaded()

    return GeminiConfig(
        api_key=safe_string_or_none(os.getenv("GEMINI_API_KEY")),
        model=safe_string_or_none(os.getenv("GENAI_MODEL")),
        base_url=os.getenv("GENAI_BASE_URL", "wss://generativelanguage.googleapis.com"),
        api_version=os.getenv("GENAI_API_VERSION", "v1beta"),
    )


def load_live_session_config() -> LiveSessionConfig:
    """Load live session defaults from environment variables."""
    _check_env_loaded()

    return LiveSessionConfig(
        voice=os.getenv("LIVE_VOICE", VOICE),
        start_sensitivity=os.getenv("LIVE_START_SENSITIVITY", "START_SENSITIVITY_LOW"),
        end_sensitivity=os.getenv("LIVE_END_SENSITIVITY", "END_SENSITIVITY_LOW"),
        prefix_padding_ms=safe_convert(
            os.getenv("LIVE_PREFIX_PADDING_MS"), int, DEFAULT_PREFIX_PADDING_MS
        ),
        silence_duration_ms=safe_convert(
            os.getenv("LIVE_SILENCE_DURATION_MS"), int, DEFAULT_SILENCE_DURATION_MS
        ),
        proactive_audio=safe_convert(os.getenv("LIVE_PROACTIVE_AUDIO"), bool, True),
        include_thoughts=safe_convert(os.getenv("LIVE_INCLUDE_THOUGHTS"), bool, True),
        thinking_level=os.getenv("LIVE_THINKING_LEVEL", "HIGH"),
        output_sample_rate=safe_convert(
            os.getenv("LIVE_OUTPUT_SAMPLE_RATE"), int, OUTPUT_SAMPLE_RATE
        ),
    )


def load_websocket_config() -> WebSocketConfig:
    """Load live WebSocket connection settings from environment variables."""
    _check_env_loaded()

    return WebSocketConfig(
        ping_interval=safe_convert(os.getenv("WEBSOCKET_PING_INTERVAL"), float, 20.0),
        ping_timeout=safe_convert(os.getenv("WEBSOCKET_PING_TIMEOUT"), float, 20.0),
        close_timeout=safe_convert(os.getenv("WEBSOCKET_CLOSE_TIMEOUT"), float, 10.0),
        open_timeout=safe_convert(os.getenv("WEBSOCKET_OPEN_TIMEOUT"), float, 10.0),
        max_size=safe_convert(os.getenv("WEBSOCKET_MAX_SIZE"), int, 16 * 1024 * 1024),
    )


def load_token_config() -> TokenConfig:
    """Load recording token settings from environment variables."""
    _check_env_loaded()

    return TokenConfig(
        expiry_seconds=safe_convert(
            os.getenv("RECORDING_TOKEN_TTL"), float, DEFAULT_TOKEN_EXPIRY_SECONDS
        ),
        cleanup_interval=safe_convert(
            os.getenv("RECORDING_TOKEN_CLEANUP_INTERVAL"),
            float,
            DEFAULT_TOKEN_CLEANUP_INTERVAL,
        ),
    )


def load_recording_config() -> RecordingConfig:
    """Load recording upload settings from environment variables."""
    _check_env_loaded()

    return RecordingConfig(
        recordings_dir=Path(os.getenv("RECORDINGS_DIR", "recordings")),
        max_upload_bytes=safe_convert(
            os.getenv("RECORDING_MAX_BYTES"), int, DEFAULT_MAX_UPLOAD_BYTES
        ),
    )


def load_logging_config() -> LoggingConfig:
    """Load logging configuration from environment variables.

    Loggers are created when modules are imported, which can be before
    load_env_file() runs, so this reads the process environment as it is.
    """

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = LogLevel.INFO
    try:
        log_level = LogLevel(log_level_str)
    except ValueError:
        pass

    return LoggingConfig(
        level=log_level,
        format=os.getenv(
            "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ),
        log_dir=Path(os.getenv("LOG_DIR", "logs")),
        log_filename=os.getenv("LOG_FILENAME", "callbridge.log"),
        max_log_size=safe_convert(os.getenv("LOG_MAX_SIZE"), int, 10 * 1024 * 1024),
        backup_count=safe_convert(os.getenv("LOG_BACKUP_COUNT"), int, 5),
        console_output=safe_convert(os.getenv("LOG_CONSOLE_OUTPUT"), bool, True),
        file_output=safe_convert(os.getenv("LOG_FILE_OUTPUT"), bool, True),
    )


def load_security_config() -> SecurityConfig:
    """Load security configuration from environment variables."""
    _check_env_loaded()

    return SecurityConfig(
        allowed_origins=safe_convert(os.getenv("ALLOWED_ORIGINS"), List[str], ["*"]),
    )


def load_application_config() -> ApplicationConfig:
    """Load complete application configuration from environment variables.

    Validation is left to the caller (see ``ApplicationConfig.validate``) so the
    application can be imported without credentials; the server refuses to
    start when validation fails.
    """
    _check_env_loaded()

    return ApplicationConfig(
        server=load_server_config(),
        gemini=load_gemini_config(),
        live=load_live_session_config(),
        websocket=load_websocket_config(),
        tokens=load_token_config(),
        recordings=load_recording_config(),
        logging=load_logging_config(),
        security=load_security_config(),
    )
