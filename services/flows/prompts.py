"""Prompt builders for the farm assistant flows."""

from __future__ import annotations

import json
from typing import Sequence

from pydantic import BaseModel


def records_json(records: Sequence[BaseModel]) -> str:
    """Serialize farm records the way they are shown to the model."""
    return json.dumps([record.model_dump() for record in records], indent=2)


def assistant_system_prompt() -> str:
    """Return the farm assistant system prompt."""
    return (
        "You are a helpful AI farm assistant. Your role is to answer questions from farmers about their farm's data. "
        "Use the provided tasks and analytics data to give an accurate and helpful answer. "
        "Keep your answers concise and easy to understand for a non-technical audience."
    )


def assistant_user_prompt(question: str, tasks_json: str, analytics_json: str) -> str:
    """Return the user prompt carrying the farmer's data and question."""
    return (
        "Here is the user's data:\n"
        f"Tasks:\n{tasks_json}\n\n"
        f"Analytics Data:\n{analytics_json}\n\n"
        "Here is the user's question:\n"
        f'"{question}"'
    )


def analysis_system_prompt() -> str:
    return (
        "You are an expert agronomist providing analysis of farm data. "
        "Identify potential problems, give actionable recommendations, and summarize the overall farm health."
    )


def analysis_user_prompt(analytics_json: str) -> str:
    return f"Analyze the following farm analytics data.\n\nData:\n{analytics_json}"


def yield_system_prompt() -> str:
    return (
        "You are an expert agricultural data scientist specializing in yield prediction. "
        "Base your prediction on trends in the data (soil moisture, temperature, canopy cover) and the current parameters, "
        "and explain your reasoning."
    )


def yield_user_prompt(analytics_json: str) -> str:
    return (
        "Predict the likely crop yield for this season, including units (e.g., tons/acre), "
        "and forecast crop growth over the next month.\n\n"
        f"Data:\n{analytics_json}"
    )
