"""Analytics flows: farm health analysis and yield prediction."""

from __future__ import annotations

from typing import Sequence

from openai import AsyncOpenAI

from models.farm_records import AnalyticsRecord, FarmAnalysis, YieldPrediction
from services.flows.prompts import (
    analysis_system_prompt,
    analysis_user_prompt,
    records_json,
    yield_system_prompt,
    yield_user_prompt,
)
from services.flows.schemas import ANALYSIS_DEFINITION, YIELD_DEFINITION
from services.flows.structured_call import call_function_tool


def _require_client(client: AsyncOpenAI) -> AsyncOpenAI:
    if client is None:
        raise ValueError("OpenAI client must be provided.")
    return client


class FarmDataAnalysisFlow:
    """Find problems in analytics data and recommend actions."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-5") -> None:
        self.client = _require_client(client)
        self.model = model

    async def analyze(self, analytics: Sequence[AnalyticsRecord]) -> FarmAnalysis:
        arguments = await call_function_tool(
            self.client,
            model=self.model,
            system_prompt=analysis_system_prompt(),
            user_prompt=analysis_user_prompt(records_json(analytics)),
            definition=ANALYSIS_DEFINITION,
        )
        return FarmAnalysis.model_validate(arguments)


class YieldPredictionFlow:
    """Predict this season's yield and next month's growth."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-5") -> None:
        self.client = _require_client(client)
        self.model = model

    async def predict(self, analytics: Sequence[AnalyticsRecord]) -> YieldPrediction:
        if not analytics:
            raise ValueError("Analytics data is required for a yield prediction.")
        arguments = await call_function_tool(
            self.client,
            model=self.model,
            system_prompt=yield_system_prompt(),
            user_prompt=yield_user_prompt(records_json(analytics)),
            definition=YIELD_DEFINITION,
        )
        return YieldPrediction.model_validate(arguments)
