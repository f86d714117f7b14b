"""WebSocket endpoint for the realtime chat widget."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from services.realtime.ws_chat import ChatMessageHandler
from services.realtime.ws_scan import ScanMessageHandler
from services.realtime.ws_session import RealtimeSessionHandler
from services.session_store import SessionStore

router = APIRouter()


def _require_session_store(websocket: WebSocket) -> SessionStore:
	store = getattr(websocket.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


def build_handler(websocket: WebSocket, store: SessionStore) -> RealtimeSessionHandler:
	state = websocket.app.state
	chat = ChatMessageHandler(store, state.openai_client, state.config.openai_model)
	scan = ScanMessageHandler(store, state.media_source, state.orchestrator, state.config.max_image_bytes)
	return RealtimeSessionHandler(store, chat, scan)


@router.websocket("/ws/{session_id}")
async def realtime_socket(websocket: WebSocket, session_id: str, store: SessionStore = Depends(_require_session_store)):
	"""Handle chat questions and the scan workflow over one websocket."""
	await websocket.accept()
	try:
		store.get(session_id)
	except KeyError:
		await websocket.send_text(json.dumps({"type": "error", "detail": "Session not found"}))
		await websocket.close()
		return

	handler = build_handler(websocket, store)
	while True:
		try:
			raw = await websocket.receive_text()
		except WebSocketDisconnect:
			break
		try:
			payload = json.loads(raw)
		except ValueError:
			await websocket.send_text(json.dumps({"type": "error", "detail": "Payload must be JSON"}))
			continue
		if not isinstance(payload, dict):
			await websocket.send_text(json.dumps({"type": "error", "detail": "Payload must be a JSON object"}))
			continue
		await handler.handle(websocket, session_id, payload)
	handler.close(session_id)
