"""
FastAPI server bridging calling clients to Gemini Live.

This module builds the FastAPI application that clients connect to. Each
WebSocket connection on ``/ws`` gets its own ``SessionBridge``, which opens a
Gemini Live session on the client's hello and relays audio both ways. When a
call starts the client receives a one-time recording token, which it later
presents to ``/upload-recording`` to store its recording of the call.
"""

import asyncio
import sys
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from callbridge import __version__
from callbridge.bridges.connection import FastAPIClientConnection
from callbridge.bridges.session_bridge import SessionBridge
from callbridge.config.constants import RECORDING_TOKEN_HEADER
from callbridge.config.env_loader import load_env_file
from callbridge.config.logging_config import configure_logging
from callbridge.config.models import ApplicationConfig
from callbridge.config.settings import get_config
from callbridge.live.client import LiveClient
from callbridge.services.recording_storage import (
    RecordingStorage,
    RecordingTooLargeError,
)
from callbridge.services.token_store import TokenStore

# Load environment variables before accessing configuration
load_env_file()

logger = configure_logging("main")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    config: Optional[ApplicationConfig] = None,
    live_client: Optional[LiveClient] = None,
    token_store: Optional[TokenStore] = None,
    recording_storage: Optional[RecordingStorage] = None,
) -> FastAPI:
    """Create the FastAPI application.

    Collaborators default to instances built from ``config``; tests inject
    their own.
    """
    config = config or get_config()

    app = FastAPI(
        title="callbridge",
        description="Bridges client call audio to Gemini Live",
        version=__version__,
    )
    app.state.config = config
    app.state.live_client = live_client or LiveClient(config.gemini, config.websocket)
    app.state.token_store = token_store or TokenStore(
        expiry_seconds=config.tokens.expiry_seconds,
        cleanup_interval=config.tokens.cleanup_interval,
    )
    app.state.recording_storage = recording_storage or RecordingStorage(
        base_dir=config.recordings.recordings_dir,
        max_upload_bytes=config.recordings.max_upload_bytes,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def startup_event():
        errors = config.validate()
        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            raise RuntimeError("Invalid configuration: " + "; ".join(errors))

        await app.state.token_store.start_cleanup_task()
        logger.info(
            f"callbridge started (model: {config.gemini.model}, "
            f"recordings: {app.state.recording_storage.run_dir})"
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        """Stop background tasks on application shutdown."""
        logger.info("Application shutting down")
        try:
            await app.state.token_store.stop_cleanup_task()
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """WebSocket endpoint for calling clients.

        Args:
            websocket (WebSocket): The WebSocket connection from the client
        """
        bridge = None
        await websocket.accept()
        logger.info("Client WebSocket connection accepted")

        try:
            bridge = SessionBridge(
                FastAPIClientConnection(websocket),
                app.state.live_client,
                app.state.token_store,
                live_config=config.live,
            )
            await bridge.run()
        except WebSocketDisconnect:
            logger.info("Client disconnected")
        except asyncio.CancelledError:
            logger.info("WebSocket operation was cancelled")
            raise
        except Exception as e:
            logger.error(f"Unexpected error in websocket_endpoint: {e}")
            logger.exception("Full traceback:")
        finally:
            if bridge is not None:
                try:
                    await bridge.teardown("socket_closed")
                except Exception as e:
                    logger.error(f"Error tearing down bridge: {e}")

    @app.post("/upload-recording")
    async def upload_recording(request: Request):
        """Store a call recording, authorized by a one-time recording token.

        The token is checked before the multipart body is read.
        """
        token = request.headers.get(RECORDING_TOKEN_HEADER)
        if not token:
            return _error(401, "Missing recording token")

        validation = app.state.token_store.validate_and_use_token(token)
        if not validation.valid:
            return _error(403, "Invalid, expired, or already used recording token")

        try:
            async with request.form() as form:
                upload = form.get("file")
                if not isinstance(upload, UploadFile):
                    return _error(400, "No recording file provided")

                timestamp = form.get("timestamp")
                if not isinstance(timestamp, str) or not timestamp.strip():
                    timestamp = None

                saved = await app.state.recording_storage.save_upload(upload, timestamp)
        except RecordingTooLargeError as e:
            logger.warning(f"Rejected recording for session {validation.session_id}: {e}")
            return _error(413, "Recording exceeds maximum upload size")
        except Exception as e:
            logger.error(f"Failed to save recording for session {validation.session_id}: {e}")
            logger.exception("Full traceback:")
            return _error(500, "Failed to save recording")

        logger.info(
            f"Recording uploaded for session {validation.session_id}: "
            f"{saved.filename} ({saved.size} bytes)"
        )
        return {"success": True, "filename": saved.filename, "size": saved.size}

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring service health."""
        return {"status": "ok", "time": datetime.now(timezone.utc).isoformat()}

    @app.get("/")
    async def root():
        """Basic information about the service and its configuration."""
        return {
            "name": "callbridge",
            "description": "Bridges client call audio to Gemini Live",
            "version": __version__,
            "configuration": {
                "environment": config.server.environment.value,
                "genai_model": config.gemini.model,
                "voice": config.live.voice,
                "output_sample_rate": config.live.output_sample_rate,
                "recording_token_ttl": config.tokens.expiry_seconds,
                "max_upload_bytes": config.recordings.max_upload_bytes,
            },
            "endpoints": {
                "/ws": "WebSocket endpoint for calling clients",
                "/upload-recording": "Upload a call recording (requires x-recording-token)",
                "/health": "Health check endpoint for service monitoring",
            },
        }

    return app


app = create_app()


def main():
    """Console entry point: validate configuration and run the server."""
    import uvicorn

    config = get_config()
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        sys.exit(1)

    logger.info(f"Starting server on http://{config.server.host}:{config.server.port}")
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        http="h11",
        loop="asyncio",
        timeout_keep_alive=config.server.timeout_keep_alive,
    )


if __name__ == "__main__":
    main()
