"""Chat widget session lifecycle and assistant questions."""

from __future__ import annotations

import logging
from typing import Any, Dict, Sequence

from fastapi import HTTPException, Request

from controllers.payloads import session_payload, turn_payload
from models.farm_records import AnalyticsRecord, TaskRecord
from models.session_models import Role
from services.flows.farm_assistant import FarmAssistantFlow
from services.session_store import SessionStore

LOGGER = logging.getLogger(__name__)


def _store(request: Request) -> SessionStore:
	return request.app.state.session_store


async def start_session(request: Request) -> Dict[str, Any]:
	"""Create a new chat session and return it with its greeting."""
	state = _store(request).create()
	return session_payload(state)


async def get_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Return the transcript and scan state of a session."""
	try:
		state = _store(request).get(session_id)
	except KeyError as exc:  # pragma: no cover - translated to HTTP
		raise HTTPException(status_code=404, detail=f"Session {session_id} not found") from exc
	return session_payload(state)


async def ask_assistant(
	request: Request,
	session_id: str,
	question: str,
	tasks: Sequence[TaskRecord],
	analytics: Sequence[AnalyticsRecord],
) -> Dict[str, Any]:
	"""Append the question, ask the farm assistant, and append its answer.

	If the assistant call fails the question is removed again so the
	transcript only holds answered questions.
	"""
	store = _store(request)
	question = (question or "").strip()
	if not question:
		raise HTTPException(status_code=400, detail="A question is required.")
	try:
		user_turn = store.add_turn(session_id, Role.USER, question)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=f"Session {session_id} not found") from exc

	config = request.app.state.config
	flow = FarmAssistantFlow(request.app.state.openai_client, model=config.openai_model)
	try:
		result = await flow.ask(question, tasks, analytics)
	except Exception as exc:
		LOGGER.error("Error with farm assistant for session %s: %s", session_id, exc)
		if not store.is_open(session_id):
			raise HTTPException(status_code=409, detail="Session was closed before the answer arrived.") from exc
		store.pop_last_turn(session_id, expected=user_turn)
		raise HTTPException(status_code=502, detail="Could not get a response from the assistant.") from exc

	try:
		answer_turn = store.add_turn(session_id, Role.ASSISTANT, result.answer)
	except KeyError as exc:
		raise HTTPException(status_code=409, detail="Session was closed before the answer arrived.") from exc
	return {"session_id": session_id, "question": turn_payload(user_turn), "answer": turn_payload(answer_turn)}


async def close_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Close the widget, releasing its camera stream and any held image."""
	try:
		state = _store(request).close(session_id)
	except KeyError as exc:  # pragma: no cover - translated to HTTP
		raise HTTPException(status_code=404, detail=f"Session {session_id} not found") from exc
	return {"session_id": session_id, "closed": True, "turn_count": len(state.turns)}
