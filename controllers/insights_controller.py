from typing import Any, Dict, List

from fastapi import HTTPException, Request

from models.farm_records import AnalyticsRecord
from services.flows.farm_insights import FarmDataAnalysisFlow, YieldPredictionFlow


async def analyze_farm_data(request: Request, analytics: List[AnalyticsRecord]) -> Dict[str, Any]:
    """Run the farm data analysis flow over the provided analytics records.

    Args:
        request: FastAPI Request (used to access the shared OpenAI client and config).
        analytics: Time series of field analytics records.

    Returns:
        A dict with `insights` (problem/recommendation pairs) and `summary`.
    """
    flow = FarmDataAnalysisFlow(request.app.state.openai_client, model=request.app.state.config.openai_model)
    analysis = await flow.analyze(analytics)
    return analysis.model_dump()


async def predict_yield(request: Request, analytics: List[AnalyticsRecord]) -> Dict[str, Any]:
    """Run the yield prediction flow.

    Raises:
        HTTPException(400) if no analytics records are provided.
    """
    flow = YieldPredictionFlow(request.app.state.openai_client, model=request.app.state.config.openai_model)
    try:
        prediction = await flow.predict(analytics)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return prediction.model_dump()
