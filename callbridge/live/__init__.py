"""Gemini Live streaming session client."""

from callbridge.live.client import (
    LiveClient,
    LiveConnectError,
    LiveSession,
    LiveSessionError,
)

__all__ = ["LiveClient", "LiveConnectError", "LiveSession", "LiveSessionError"]
