"""Farm records passed to the assistant flows."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class TaskRecord(BaseModel):
    id: int
    task_name: str
    field: str
    is_done: bool


class AnalyticsRecord(BaseModel):
    field_name: str
    crop_type: str
    season: str
    soil_temp: float
    soil_moisture: float
    growth_stage: str
    sunlight: float
    canopy_cover: float
    recorded_at: str


class FarmInsight(BaseModel):
    problem: str = Field(description="The potential problem identified from the data.")
    recommendation: str = Field(description="The recommended solution or action to take.")


class FarmAnalysis(BaseModel):
    insights: List[FarmInsight] = []
    summary: str = ""


class YieldPrediction(BaseModel):
    predicted_yield: str
    yield_confidence: str
    next_month_growth_prediction: str
    prediction_summary: str
