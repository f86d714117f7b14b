"""Presentation of scan analysis results for the chat transcript.

`render_result` is pure: the same AnalysisResult always renders to an
equal RenderedResult.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import singledispatch
from numbers import Integral, Real
from typing import Any, Dict, List, Tuple

from models.scan_models import AnalysisKind, AnalysisResult, OpaquePayload, ScalarPayload

PLANT_TITLE = "Plant Disease Analysis"
THERMAL_TITLE = "Thermal Analysis"

_SUMMARIES = {
    AnalysisKind.BOTH: "Plant disease and thermal analysis complete.",
    AnalysisKind.PLANT_ONLY: "Plant disease analysis complete. Thermal analysis is unavailable.",
    AnalysisKind.THERMAL_ONLY: "Thermal analysis complete. Plant disease analysis is unavailable.",
}


@dataclass(frozen=True)
class RenderedRow:
    label: str
    value: str

    def as_text(self) -> str:
        return f"{self.label}: {self.value}"


@dataclass(frozen=True)
class RenderedSection:
    title: str
    rows: Tuple[RenderedRow, ...]


@dataclass(frozen=True)
class RenderedResult:
    kind: AnalysisKind
    sections: Tuple[RenderedSection, ...]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "sections": [
                {
                    "title": section.title,
                    "rows": [{"label": row.label, "value": row.value} for row in section.rows],
                }
                for section in self.sections
            ],
        }


def format_label(key: str) -> str:
    """`soil_moisture` -> `Soil Moisture`."""
    return str(key).replace("_", " ").title()


def format_value(value: Any) -> str:
    """Numbers get two decimals, strings pass through, anything else is JSON."""
    if isinstance(value, bool):
        return json.dumps(value)
    if isinstance(value, Integral):
        # exact, JSON integers can exceed the float range
        return f"{int(value)}.00"
    if isinstance(value, Real):
        return f"{float(value):.2f}"
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, default=str)


@singledispatch
def payload_rows(payload: Any) -> List[RenderedRow]:
    raise TypeError(f"Unsupported classifier payload: {type(payload).__name__}")


@payload_rows.register
def _(payload: OpaquePayload) -> List[RenderedRow]:
    return [RenderedRow(format_label(key), format_value(value)) for key, value in payload.values.items()]


@payload_rows.register
def _(payload: ScalarPayload) -> List[RenderedRow]:
    return [RenderedRow("Result", format_value(payload.value))]


def render_result(result: AnalysisResult) -> RenderedResult:
    """Build display rows for every payload present in `result`."""
    sections: List[RenderedSection] = []
    if result.plant is not None:
        sections.append(RenderedSection(PLANT_TITLE, tuple(payload_rows(result.plant))))
    if result.thermal is not None:
        sections.append(RenderedSection(THERMAL_TITLE, tuple(payload_rows(result.thermal))))
    return RenderedResult(kind=result.kind, sections=tuple(sections))


def summarize(result: AnalysisResult) -> str:
    """One-line assistant message announcing which analyses are included."""
    return _SUMMARIES.get(result.kind, "No analysis is available.")
