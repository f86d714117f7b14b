"""Answer farm assistant questions delivered over the realtime websocket."""
from __future__ import annotations

import logging
from typing import Any, Dict

from controllers.payloads import turn_payload
from models.farm_records import AnalyticsRecord, TaskRecord
from models.session_models import Role
from services.flows.farm_assistant import FarmAssistantFlow
from services.session_store import SessionStore

LOGGER = logging.getLogger(__name__)


class ChatMessageHandler:
	"""Append a question, ask the assistant, and append its answer."""

	def __init__(self, store: SessionStore, client, model: str) -> None:
		self.store = store
		self.flow = FarmAssistantFlow(client, model=model)

	async def ask(self, session_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
		question = (payload.get("question") or "").strip()
		if not question:
			raise ValueError("A question is required.")
		tasks = [TaskRecord.model_validate(item) for item in payload.get("tasks") or []]
		analytics = [AnalyticsRecord.model_validate(item) for item in payload.get("analyticsData") or []]
		user_turn = self.store.add_turn(session_id, Role.USER, question)
		try:
			result = await self.flow.ask(question, tasks, analytics)
		except Exception as exc:
			LOGGER.error("Error with farm assistant for session %s: %s", session_id, exc)
			if self.store.is_open(session_id):
				self.store.pop_last_turn(session_id, expected=user_turn)
			raise RuntimeError("Could not get a response from the assistant.") from exc
		answer_turn = self.store.add_turn(session_id, Role.ASSISTANT, result.answer)
		return {"type": "chat.answer", "question": turn_payload(user_turn), "answer": turn_payload(answer_turn)}
