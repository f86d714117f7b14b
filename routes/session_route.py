"""FastAPI routes for chat widget sessions."""

from typing import List

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from controllers.session_controller import ask_assistant, close_session, get_session, start_session
from models.farm_records import AnalyticsRecord, TaskRecord

router = APIRouter(prefix="/sessions")


class QuestionPayload(BaseModel):
	question: str
	tasks: List[TaskRecord] = []
	analytics_data: List[AnalyticsRecord] = Field(default_factory=list, alias="analyticsData")

	model_config = {"populate_by_name": True}


@router.post("")
async def start_session_route(request: Request):
	try:
		return await start_session(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{session_id}")
async def get_session_route(request: Request, session_id: str):
	try:
		return await get_session(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/messages")
async def post_message_route(request: Request, session_id: str, payload: QuestionPayload):
	try:
		return await ask_assistant(request, session_id, payload.question, payload.tasks, payload.analytics_data)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/close")
async def close_session_route(request: Request, session_id: str):
	try:
		return await close_session(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
