"""Farm assistant chat flow: answer a farmer's question from their data."""

from __future__ import annotations

from typing import Sequence

from openai import AsyncOpenAI
from pydantic import BaseModel

from models.farm_records import AnalyticsRecord, TaskRecord
from services.flows.prompts import assistant_system_prompt, assistant_user_prompt, records_json
from services.flows.schemas import ANSWER_DEFINITION
from services.flows.structured_call import call_function_tool


class FarmAnswer(BaseModel):
    answer: str


class FarmAssistantFlow:
    """Answer questions about the user's tasks and analytics."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-5") -> None:
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model

    async def ask(
        self,
        question: str,
        tasks: Sequence[TaskRecord] = (),
        analytics: Sequence[AnalyticsRecord] = (),
    ) -> FarmAnswer:
        """Return the assistant's answer to `question`.

        Raises:
            ValueError: If the question is blank.
        """
        question = (question or "").strip()
        if not question:
            raise ValueError("A question is required.")

        arguments = await call_function_tool(
            self.client,
            model=self.model,
            system_prompt=assistant_system_prompt(),
            user_prompt=assistant_user_prompt(question, records_json(tasks), records_json(analytics)),
            definition=ANSWER_DEFINITION,
        )
        return FarmAnswer(answer=str(arguments.get("answer", "")).strip())
