"""Function tool schemas that force structured output from the flows."""

from typing import Any, Dict

ANSWER_FUNCTION = "answer_farm_question"
ANALYSIS_FUNCTION = "report_farm_analysis"
YIELD_FUNCTION = "report_yield_prediction"


def _function(name: str, description: str, properties: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "description": description,
        "parameters": {
            "type": "object",
            "properties": properties,
            "required": list(properties),
            "additionalProperties": False,
        },
        "strict": True,
    }


ANSWER_DEFINITION: Dict[str, Any] = _function(
    ANSWER_FUNCTION,
    "Return the helpful answer from the farm assistant.",
    {"answer": {"type": "string", "description": "The helpful answer from the farm assistant."}},
)

ANALYSIS_DEFINITION: Dict[str, Any] = _function(
    ANALYSIS_FUNCTION,
    "Return the problems found in the farm data with recommendations and a summary.",
    {
        "insights": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "problem": {"type": "string", "description": "The potential problem identified from the data."},
                    "recommendation": {
                        "type": "string",
                        "description": "The recommended solution or action to take.",
                    },
                },
                "required": ["problem", "recommendation"],
                "additionalProperties": False,
            },
        },
        "summary": {
            "type": "string",
            "description": "A general summary of the farm's health based on the data.",
        },
    },
)

YIELD_DEFINITION: Dict[str, Any] = _function(
    YIELD_FUNCTION,
    "Return the yield prediction for the current season.",
    {
        "predicted_yield": {
            "type": "string",
            "description": "The predicted yield for the current season, including units (e.g., tons/acre).",
        },
        "yield_confidence": {
            "type": "string",
            "description": "The confidence level of the prediction (e.g., High, Medium, Low).",
        },
        "next_month_growth_prediction": {
            "type": "string",
            "description": "A prediction for crop growth over the next month.",
        },
        "prediction_summary": {
            "type": "string",
            "description": "A summary explaining the basis for the predictions.",
        },
    },
)
