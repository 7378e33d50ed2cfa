"""Bridges between calling clients and live speech sessions."""

from callbridge.bridges.connection import ClientConnection, FastAPIClientConnection
from callbridge.bridges.session_bridge import InitState, SessionBridge

__all__ = ["ClientConnection", "FastAPIClientConnection", "InitState", "SessionBridge"]
