"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol values and defaults.
"""

# Logger name used throughout the application
LOGGER_NAME = "callbridge"

# Prebuilt Gemini voice used for the model's spoken replies
VOICE = "Charon"

# Audio constants
OUTPUT_SAMPLE_RATE = 24000  # Gemini Live emits 24kHz 16-bit PCM
PCM_MIME_TEMPLATE = "audio/pcm;rate={sample_rate}"

# Turn detection tuning (server-side automatic activity detection)
DEFAULT_PREFIX_PADDING_MS = 100
DEFAULT_SILENCE_DURATION_MS = 1000

# Synthetic opening turn so the model speaks first
OPENING_TURN_TEXT = "[Call connected. Begin the conversation.]"

# Recording token constants
TOKEN_BYTES = 32  # 256 bits of randomness
DEFAULT_TOKEN_EXPIRY_SECONDS = 10 * 60
DEFAULT_TOKEN_CLEANUP_INTERVAL = 10 * 60

# Recording upload constants
DEFAULT_MAX_UPLOAD_BYTES = 100 * 1024 * 1024  # 100 MiB
DEFAULT_RECORDING_EXTENSION = ".webm"
UPLOAD_CHUNK_SIZE = 1024 * 1024
RECORDING_TOKEN_HEADER = "x-recording-token"

# WebSocket close code for a normal closure
NORMAL_CLOSURE = 1000
