from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from callbridge.config.models import ApplicationConfig
from callbridge.main import create_app
from callbridge.services.recording_storage import RecordingStorage


@pytest.fixture
def recording_storage(tmp_path):
    return RecordingStorage(base_dir=tmp_path / "recordings", max_upload_bytes=1024, run_id="run-1")


@pytest.fixture
def app(app_config, live_client, token_store, recording_storage):
    return create_app(
        config=app_config,
        live_client=live_client,
        token_store=token_store,
        recording_storage=recording_storage,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def upload(client, token=None, content=b"recording-bytes", timestamp="2024-06-01T10:15:30.000Z"):
    headers = {"x-recording-token": token} if token is not None else {}
    data = {"timestamp": timestamp} if timestamp else {}
    return client.post(
        "/upload-recording",
        headers=headers,
        files={"file": ("call.webm", content, "audio/webm")},
        data=data,
    )


class TestHttpEndpoints:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert datetime.fromisoformat(body["time"]).tzinfo is not None

    def test_root_describes_service(self, client):
        body = client.get("/").json()

        assert body["name"] == "callbridge"
        assert "/ws" in body["endpoints"]
        assert "/upload-recording" in body["endpoints"]
        assert body["configuration"]["genai_model"] == "test-model"
        assert "test-key" not in str(body)

    def test_cors_headers(self, client):
        response = client.get("/health", headers={"Origin": "https://example.com"})

        assert response.headers.get("access-control-allow-origin") in ("*", "https://example.com")

    def test_startup_refuses_invalid_configuration(self, live_client, token_store, recording_storage):
        app = create_app(
            config=ApplicationConfig(),
            live_client=live_client,
            token_store=token_store,
            recording_storage=recording_storage,
        )

        with pytest.raises(RuntimeError):
            with TestClient(app):
                pass

    def test_startup_starts_token_cleanup(self, client, token_store):
        assert token_store.get_stats()["cleanup_task_running"] is True


class TestUploadRecording:
    def test_missing_token_is_401(self, client):
        response = upload(client)

        assert response.status_code == 401
        assert response.json() == {"error": "Missing recording token"}

    def test_unknown_token_is_403(self, client):
        response = upload(client, token="not-a-token")

        assert response.status_code == 403
        assert response.json() == {"error": "Invalid, expired, or already used recording token"}

    def test_valid_token_saves_recording(self, client, token_store, recording_storage):
        token = token_store.generate_token("session-1")

        response = upload(client, token=token)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "filename": "recording_2024-06-01T10-15-30-000Z.webm",
            "size": len(b"recording-bytes"),
        }
        saved = recording_storage.run_dir / "recording_2024-06-01T10-15-30-000Z.webm"
        assert saved.read_bytes() == b"recording-bytes"

    def test_token_is_single_use(self, client, token_store):
        token = token_store.generate_token("session-1")

        assert upload(client, token=token).status_code == 200
        assert upload(client, token=token).status_code == 403

    def test_token_rejected_after_connection_closed(self, client, token_store):
        token = token_store.generate_token("session-1")
        token_store.mark_connection_closed("session-1")

        assert upload(client, token=token).status_code == 403

    def test_missing_timestamp_defaults_to_now(self, client, token_store):
        token = token_store.generate_token("session-1")

        response = upload(client, token=token, timestamp=None)

        assert response.status_code == 200
        assert response.json()["filename"].endswith("Z.webm")

    def test_missing_file_is_400(self, client, token_store):
        token = token_store.generate_token("session-1")

        response = client.post(
            "/upload-recording",
            headers={"x-recording-token": token},
            data={"timestamp": "t"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "No recording file provided"}

    def test_oversized_file_is_413(self, client, token_store, recording_storage):
        token = token_store.generate_token("session-1")

        response = upload(client, token=token, content=b"x" * 4096, timestamp="big")

        assert response.status_code == 413
        assert response.json() == {"error": "Recording exceeds maximum upload size"}
        assert not (recording_storage.run_dir / "recording_big.webm").exists()

    def test_storage_failure_is_500_without_details(self, client, token_store, recording_storage):
        token = token_store.generate_token("session-1")

        with patch.object(
            recording_storage,
            "save_upload",
            new=AsyncMock(side_effect=OSError("disk full at /secret/path")),
        ):
            response = upload(client, token=token)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save recording"}


class TestWebSocket:
    def test_connect_announces_status(self, client):
        with client.websocket_connect("/ws") as ws:
            message = ws.receive_json()

        assert message["type"] == "SERVER_STATUS"
        assert message["payload"] == {"state": "CONNECTING", "detail": "Awaiting client hello"}

    def test_heartbeat(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "HEARTBEAT", "payload": {"kind": "ping"}, "timestamp": 0})
            reply = ws.receive_json()

        assert reply["type"] == "HEARTBEAT"
        assert reply["payload"] == {"kind": "pong"}

    def test_audio_before_hello(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json(
                {"type": "CLIENT_AUDIO_CHUNK", "payload": {"chunk": "AAAA", "sampleRate": 16000}, "timestamp": 0}
            )
            error = ws.receive_json()

        assert error["type"] == "SERVER_ERROR"
        assert error["payload"]["code"] == "session_not_ready"

    def test_bad_payload_keeps_connection_open(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("{broken")
            error = ws.receive_json()
            ws.send_json({"type": "HEARTBEAT", "payload": {"kind": "pong"}, "timestamp": 0})
            reply = ws.receive_json()

        assert error["payload"]["code"] == "bad_payload"
        assert reply["payload"] == {"kind": "ping"}

    def test_hello_then_upload_with_issued_token(self, client, live_client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "CLIENT_HELLO", "payload": {"appRoute": "/outbound"}, "timestamp": 0})
            ready = ws.receive_json()
            status = ws.receive_json()

            assert ready["type"] == "SERVER_READY"
            assert status["payload"] == {"state": "CONNECTED", "detail": "Live session ready"}

            token = ready["payload"]["recordingToken"]
            assert upload(client, token=token).status_code == 200
            assert upload(client, token=token).status_code == 403

        assert len(live_client.setups) == 1

    def test_token_invalid_after_client_end(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "CLIENT_HELLO", "payload": {}, "timestamp": 0})
            token = ws.receive_json()["payload"]["recordingToken"]
            ws.receive_json()
            ws.send_json({"type": "CLIENT_END", "payload": {}, "timestamp": 0})
            final = ws.receive_json()

        assert final["payload"] == {"state": "DISCONNECTED", "detail": "client_end"}
        assert upload(client, token=token).status_code == 403
