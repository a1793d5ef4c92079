"""
Pydantic models for the JSON payloads served by the upstream ESG backend
and accepted by the dashboard routes.

Numeric leaves are typed loosely (Any) on purpose: a non-numeric value in a
single field must degrade that field to "unknown" inside the engine rather
than reject the whole payload.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, model_validator


PILLARS = ("environmental", "social", "governance")


def _dict_or_empty(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _text_list(value: Any) -> List[str]:
    """Keeps the string entries of a list; anything else becomes []."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


# ── Snapshot (/api/esg-data) ────────────────────────────────────────────

class SnapshotPayload(BaseModel):
    summary: Dict[str, Dict[str, Any]] = {}
    metrics: Dict[str, Any] = {}
    insights: List[str] = []

    @model_validator(mode="before")
    @classmethod
    def _unwrap_mock_data(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        # Upstream nests summary/metrics under "mockData" with insights at top level
        if isinstance(data.get("mockData"), dict):
            inner = data["mockData"]
            data = {
                "summary": inner.get("summary"),
                "metrics": inner.get("metrics"),
                "insights": data.get("insights") or inner.get("insights"),
            }
        # each part degrades to its default on its own
        summary = _dict_or_empty(data.get("summary"))
        return {
            "summary": {k: v for k, v in summary.items() if isinstance(v, dict)},
            "metrics": _dict_or_empty(data.get("metrics")),
            "insights": _text_list(data.get("insights")),
        }


# ── Narrative mini report (/api/esg-mini-report) ────────────────────────

class NarrativePayload(BaseModel):
    baseline: Optional[str] = ""
    benchmark: Optional[str] = ""
    performance_vs_benchmark: Optional[str] = ""
    ai_recommendations: Optional[List[str]] = []

    @model_validator(mode="before")
    @classmethod
    def _drop_malformed_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in ("baseline", "benchmark", "performance_vs_benchmark"):
            if key in data and data[key] is not None and not isinstance(data[key], str):
                data[key] = ""
        if "ai_recommendations" in data:
            data["ai_recommendations"] = _text_list(data["ai_recommendations"])
        return data


# ── Invoices (/api/invoices) ────────────────────────────────────────────

class InvoicePayload(BaseModel):
    date: Optional[str] = None
    energy_kwh: Any = None
    carbon_tonnes: Any = None
    emission_factor: Any = None


# ── Pillar insights (/api/<pillar>-insights) ───────────────────────────

class PillarInsightsPayload(BaseModel):
    insights: Optional[List[str]] = []


# ── Context aggregate (/api/environmental-metrics or uploads) ──────────

class BenchmarksPayload(BaseModel):
    energyIntensity: Any = None


class ContextAggregatePayload(BaseModel):
    uploadedRows: Optional[List[Any]] = None
    energyUsage: Optional[List[Any]] = None
    energyUse: Optional[List[Any]] = None
    production: Optional[List[Any]] = None
    benchmarks: Optional[BenchmarksPayload] = None


# ── Route request bodies ────────────────────────────────────────────────

class ResolveRequest(BaseModel):
    """All sources for a one-shot resolution; any subset may be omitted."""
    snapshot: Optional[SnapshotPayload] = None
    narrative: Optional[NarrativePayload] = None
    invoices: Optional[List[Any]] = None
    context: Optional[ContextAggregatePayload] = None
    pillar_insights: Optional[Dict[str, PillarInsightsPayload]] = None


class IntensityRequest(BaseModel):
    energyUse: List[Any] = []
    production: List[Any] = []
    benchmark: Optional[float] = None


class TrendRequest(BaseModel):
    current: float
    previous: Optional[float] = None
