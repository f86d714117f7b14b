"""Tests for the realtime websocket handler."""

from __future__ import annotations

import asyncio
import base64
import json
from typing import Any, Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient

from main import create_app
from routes.realtime_ws import build_handler
from services.realtime.ws_session import RealtimeSessionHandler
from tests.conftest import PLANT_URL, THERMAL_URL, ScriptedClassifiers, init_app_state, stub_openai


class FakeWebSocket:
    def __init__(self, app) -> None:
        self.app = app
        self.sent: List[Dict[str, Any]] = []

    async def send_text(self, text: str) -> None:
        self.sent.append(json.loads(text))


@pytest.fixture()
def service() -> ScriptedClassifiers:
    return ScriptedClassifiers(
        {
            PLANT_URL: [httpx.Response(200, json={"disease": "rust", "confidence": 0.5})],
            THERMAL_URL: [httpx.Response(500)],
        }
    )


@pytest.fixture()
async def app(tmp_path, service):
    application = create_app()
    init_app_state(application, tmp_path, service)
    yield application
    await application.state.http_client.aclose()


def _b64(data: bytes) -> str:
    return "data:image/jpeg;base64," + base64.b64encode(data).decode()


def _handler(app, socket: FakeWebSocket) -> RealtimeSessionHandler:
    return build_handler(socket, app.state.session_store)


class TestRealtimeSessionHandler:
    async def test_upload_and_submit(self, app, jpeg_bytes: bytes) -> None:
        session = app.state.session_store.create()
        socket = FakeWebSocket(app)
        handler = _handler(app, socket)

        await handler.handle(socket, session.session_id, {"type": "scan.upload", "request_id": 1, "image_b64": _b64(jpeg_bytes)})
        await handler.handle(socket, session.session_id, {"type": "scan.submit", "request_id": 2})
        await handler.wait_pending()

        assert [message["type"] for message in socket.sent] == ["scan.image_ready", "scan.accepted", "scan.result"]
        result = socket.sent[-1]
        assert result["request_id"] == 2
        assert result["turn"]["analysis"]["kind"] == "plant_only"
        assert result["scan"]["state"] == "idle"

    async def test_camera_frames_and_capture(self, app, jpeg_bytes: bytes) -> None:
        session = app.state.session_store.create()
        socket = FakeWebSocket(app)
        handler = _handler(app, socket)

        await handler.handle(socket, session.session_id, {"type": "scan.open_camera"})
        await handler.handle(socket, session.session_id, {"type": "scan.frame", "image_b64": _b64(jpeg_bytes)})
        await handler.handle(socket, session.session_id, {"type": "scan.capture"})

        assert [message["type"] for message in socket.sent] == ["scan.camera_opened", "scan.image_ready"]
        assert socket.sent[-1]["scan"]["image"]["source"] == "camera"
        assert app.state.media_source.open_streams == 0

    async def test_errors_are_reported_per_request(self, app) -> None:
        session = app.state.session_store.create()
        socket = FakeWebSocket(app)
        handler = _handler(app, socket)

        await handler.handle(socket, session.session_id, {"type": "scan.upload", "request_id": "a", "image_b64": "%%%"})
        await handler.handle(socket, session.session_id, {"type": "scan.capture", "request_id": "b"})
        await handler.handle(socket, session.session_id, {"type": "bogus", "request_id": "c"})

        assert [(message["type"], message["request_id"]) for message in socket.sent] == [
            ("error", "a"),
            ("error", "b"),
            ("error", "c"),
        ]

    async def test_analysis_unavailable_is_retryable(self, app, service, jpeg_bytes: bytes) -> None:
        service.scripts[PLANT_URL] = ["connect_error"]
        session = app.state.session_store.create()
        socket = FakeWebSocket(app)
        handler = _handler(app, socket)

        await handler.handle(socket, session.session_id, {"type": "scan.upload", "image_b64": _b64(jpeg_bytes)})
        await handler.handle(socket, session.session_id, {"type": "scan.submit", "request_id": 7})
        await handler.wait_pending()

        error = socket.sent[-1]
        assert error["type"] == "error"
        assert error["retryable"] is True
        assert session.scan.state.value == "image_ready"

    async def test_disconnect_during_analysis_discards_result(self, app, service, jpeg_bytes: bytes) -> None:
        service.gate = asyncio.Event()
        session = app.state.session_store.create()
        turns_before = len(session.turns)
        socket = FakeWebSocket(app)
        handler = _handler(app, socket)

        await handler.handle(socket, session.session_id, {"type": "scan.upload", "image_b64": _b64(jpeg_bytes)})
        await handler.handle(socket, session.session_id, {"type": "scan.submit"})
        while service.in_flight < 2:
            await asyncio.sleep(0)
        handler.close(session.session_id)
        service.gate.set()
        await handler.wait_pending()

        assert [message["type"] for message in socket.sent] == ["scan.image_ready", "scan.accepted"]
        assert len(session.turns) == turns_before
        assert not app.state.session_store.is_open(session.session_id)

    async def test_chat_question(self, app) -> None:
        session = app.state.session_store.create()
        socket = FakeWebSocket(app)
        handler = _handler(app, socket)

        await handler.handle(socket, session.session_id, {"type": "chat.ask", "question": "Is it going to rain?"})

        assert socket.sent[-1]["type"] == "chat.answer"
        assert socket.sent[-1]["answer"]["text"] == "Irrigate tomorrow."

    async def test_chat_failure_removes_question(self, app) -> None:
        app.state.openai_client = stub_openai(error=RuntimeError("boom"))
        session = app.state.session_store.create()
        socket = FakeWebSocket(app)
        handler = _handler(app, socket)

        await handler.handle(socket, session.session_id, {"type": "chat.ask", "question": "Hello?"})

        assert socket.sent[-1]["detail"] == "Could not get a response from the assistant."
        assert len(session.turns) == 1


class TestRealtimeEndpoint:
    def test_unknown_session(self, tmp_path, service) -> None:
        application = create_app()
        init_app_state(application, tmp_path, service)
        client = TestClient(application)
        with client.websocket_connect("/ws/missing") as ws:
            assert ws.receive_json() == {"type": "error", "detail": "Session not found"}

    def test_round_trip_and_close_on_disconnect(self, tmp_path, service) -> None:
        application = create_app()
        init_app_state(application, tmp_path, service)
        store = application.state.session_store
        session = store.create()
        client = TestClient(application)

        with client.websocket_connect(f"/ws/{session.session_id}") as ws:
            ws.send_text("not json")
            assert ws.receive_json()["detail"] == "Payload must be JSON"
            ws.send_json({"type": "scan.open_camera", "request_id": 1})
            reply = ws.receive_json()
            assert reply["type"] == "scan.camera_opened"
            assert reply["request_id"] == 1

        assert not store.is_open(session.session_id)
        assert application.state.media_source.open_streams == 0
