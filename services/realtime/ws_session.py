"""Dispatch realtime websocket events to the appropriate handlers."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Dict, Optional, Set

from fastapi import WebSocket

from services.realtime.ws_chat import ChatMessageHandler
from services.realtime.ws_scan import ScanMessageHandler
from services.scan.errors import AnalysisUnavailable
from services.session_store import SessionStore

LOGGER = logging.getLogger(__name__)


class RealtimeSessionHandler:
	"""Route websocket messages for a single chat widget session.

	Analyses run as background tasks so the socket keeps receiving camera
	frames and questions meanwhile. When the socket goes away the session
	is closed; running analyses finish and their results are dropped.
	"""

	def __init__(self, store: SessionStore, chat: ChatMessageHandler, scan: ScanMessageHandler) -> None:
		self.store = store
		self.chat_handler = chat
		self.scan_handler = scan
		self.closed = False
		self._tasks: Set[asyncio.Task] = set()

	async def handle(self, websocket: WebSocket, session_id: str, payload: Dict[str, Any]) -> None:
		"""Process a single inbound websocket payload."""
		request_id = payload.get("request_id")
		message_type = payload.get("type")
		try:
			if message_type == "chat.ask":
				result = await self.chat_handler.ask(session_id, payload)
			elif message_type == "scan.open_camera":
				result = self.scan_handler.open_camera(session_id, payload)
			elif message_type == "scan.frame":
				result = self.scan_handler.push_frame(session_id, payload)
			elif message_type == "scan.capture":
				result = self.scan_handler.capture(session_id)
			elif message_type == "scan.upload":
				result = self.scan_handler.upload(session_id, payload)
			elif message_type == "scan.retake":
				result = self.scan_handler.retake(session_id, payload)
			elif message_type == "scan.cancel":
				result = self.scan_handler.cancel(session_id)
			elif message_type == "scan.submit":
				self._spawn(websocket, request_id, self.scan_handler.submit(session_id))
				result = {"type": "scan.accepted"}
			else:
				raise ValueError("Unsupported message type.")
			if result is not None:
				result["request_id"] = request_id
				await self._send(websocket, result)
		except Exception as exc:
			await self._send_error(websocket, request_id, exc)

	def _spawn(self, websocket: WebSocket, request_id: Any, work: Awaitable[Optional[Dict[str, Any]]]) -> None:
		task = asyncio.create_task(self._run(websocket, request_id, work))
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)

	async def _run(self, websocket: WebSocket, request_id: Any, work: Awaitable[Optional[Dict[str, Any]]]) -> None:
		try:
			result = await work
		except Exception as exc:
			if not self.closed:
				await self._send_error(websocket, request_id, exc)
			return
		if result is None or self.closed:
			return
		result["request_id"] = request_id
		await self._send(websocket, result)

	async def wait_pending(self) -> None:
		"""Wait for background analyses to finish."""
		if self._tasks:
			await asyncio.gather(*list(self._tasks), return_exceptions=True)

	def close(self, session_id: str) -> None:
		"""Close the session behind a disconnected socket."""
		self.closed = True
		if self.store.is_open(session_id):
			self.store.close(session_id)
		if self._tasks:
			LOGGER.info("Socket for session %s closed with %d analyses running", session_id, len(self._tasks))

	async def _send_error(self, websocket: WebSocket, request_id: Any, exc: Exception) -> None:
		payload = {"type": "error", "request_id": request_id, "detail": str(exc).strip("'\"")}
		if isinstance(exc, AnalysisUnavailable):
			payload["retryable"] = True
		await self._send(websocket, payload)

	async def _send(self, websocket: WebSocket, payload: Dict[str, Any]) -> None:
		await websocket.send_text(json.dumps(payload))
