"""FastAPI routes for farm data insights."""

from typing import List

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from controllers.insights_controller import analyze_farm_data, predict_yield
from models.farm_records import AnalyticsRecord

router = APIRouter(prefix="/insights", tags=["insights"])


class AnalyticsPayload(BaseModel):
    analytics_data: List[AnalyticsRecord] = Field(default_factory=list, alias="analyticsData")

    model_config = {"populate_by_name": True}


@router.post("/analysis", summary="Identify problems and recommendations in field analytics")
async def farm_analysis_route(request: Request, payload: AnalyticsPayload):
    try:
        return await analyze_farm_data(request, payload.analytics_data)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/yield", summary="Predict the upcoming yield from field analytics")
async def yield_prediction_route(request: Request, payload: AnalyticsPayload):
    try:
        return await predict_yield(request, payload.analytics_data)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
