"""
Metric resolver: merges the settled sources into one ResolvedSnapshot.

Metrics with several candidate sources are resolved through an ordered list
of CandidateProvider objects; the first provider returning a value wins.
Everything else on the pillars comes from the backend summary only.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from app.engine.invoices import aggregate_invoices
from app.engine.numbers import parse_number
from app.engine.types import (
    METRIC_FIELDS,
    InvoiceTotals,
    MetricSet,
    NarrativeReport,
    PillarSummary,
    ResolvedSnapshot,
    SourceBundle,
)
from app.models import PILLARS

logger = logging.getLogger(__name__)

# Column names recognised as the energy column of an uploaded ESG dataset,
# in priority order. The snake-case forms are what app.parsers produces.
ENERGY_COLUMN_CANDIDATES = [
    "Electricity (kWh)",
    "Energy (kWh)",
    "electricity_kwh",
    "energy_kwh",
]


@dataclass
class ResolutionInputs:
    sources: SourceBundle
    invoices: InvoiceTotals


@dataclass
class CandidateProvider:
    name: str
    fetch: Callable[[ResolutionInputs], Optional[float]]


# ── Energy candidates ───────────────────────────────────────────────────

def _invoice_energy(inputs: ResolutionInputs) -> Optional[float]:
    return inputs.invoices.total_energy_kwh


def _uploaded_rows_energy(inputs: ResolutionInputs) -> Optional[float]:
    context = inputs.sources.context
    rows = context.uploadedRows if context else None
    if not rows or not isinstance(rows[0], dict):
        return None
    sample = rows[0]
    column = next((c for c in ENERGY_COLUMN_CANDIDATES if c in sample), None)
    if column is None:
        return None
    total = 0.0
    for row in rows:
        if not isinstance(row, dict):
            continue
        value = parse_number(row.get(column))
        if value is not None:
            total += value
    return total


def _context_energy_usage(inputs: ResolutionInputs) -> Optional[float]:
    context = inputs.sources.context
    if context is None or not isinstance(context.energyUsage, list):
        return None
    return sum(parse_number(v) or 0.0 for v in context.energyUsage)


def _summary_field(pillar: str, key: str) -> Callable[[ResolutionInputs], Optional[float]]:
    def fetch(inputs: ResolutionInputs) -> Optional[float]:
        snapshot = inputs.sources.snapshot
        if snapshot is None:
            return None
        return parse_number(snapshot.summary.get(pillar, {}).get(key))
    return fetch


# ── Carbon candidates ───────────────────────────────────────────────────

def _invoice_carbon(inputs: ResolutionInputs) -> Optional[float]:
    return inputs.invoices.total_carbon_tonnes


ENERGY_PROVIDERS: List[CandidateProvider] = [
    CandidateProvider("invoices", _invoice_energy),
    CandidateProvider("uploaded_rows", _uploaded_rows_energy),
    CandidateProvider("context_energy_usage", _context_energy_usage),
    CandidateProvider("summary", _summary_field("environmental", "totalEnergyConsumption")),
]

CARBON_PROVIDERS: List[CandidateProvider] = [
    CandidateProvider("invoices", _invoice_carbon),
    CandidateProvider("summary", _summary_field("environmental", "carbonEmissions")),
]


def first_match(providers: List[CandidateProvider], inputs: ResolutionInputs) -> tuple[Optional[float], Optional[str]]:
    """Returns (value, provider name) of the first provider yielding a value."""
    for provider in providers:
        try:
            value = provider.fetch(inputs)
        except (AttributeError, TypeError, ValueError) as e:
            # malformed source: treat as absent for this metric
            logger.warning(f"Candidate '{provider.name}' failed: {e}")
            continue
        if value is not None:
            return value, provider.name
    return None, None


class MetricResolver:
    """Builds a fresh ResolvedSnapshot from a SourceBundle on every call."""

    def __init__(
        self,
        energy_providers: Optional[List[CandidateProvider]] = None,
        carbon_providers: Optional[List[CandidateProvider]] = None,
    ):
        self.energy_providers = energy_providers or ENERGY_PROVIDERS
        self.carbon_providers = carbon_providers or CARBON_PROVIDERS

    def resolve(self, sources: SourceBundle) -> ResolvedSnapshot:
        invoices = aggregate_invoices(sources.invoices or [])
        inputs = ResolutionInputs(sources=sources, invoices=invoices)

        pillars = {name: PillarSummary(name, self._summary_values(sources, name)) for name in PILLARS}

        energy, energy_source = first_match(self.energy_providers, inputs)
        carbon, carbon_source = first_match(self.carbon_providers, inputs)
        pillars["environmental"].values["totalEnergyConsumption"] = energy
        pillars["environmental"].values["carbonEmissions"] = carbon
        logger.debug(f"Energy resolved from {energy_source or 'nothing'}, carbon from {carbon_source or 'nothing'}")

        return ResolvedSnapshot(
            environmental=pillars["environmental"],
            social=pillars["social"],
            governance=pillars["governance"],
            metrics=self._metric_set(sources),
            insights=self._insights(sources),
            narrative=self._narrative(sources),
            invoice_totals=invoices,
        )

    def _summary_values(self, sources: SourceBundle, pillar: str) -> Dict[str, Optional[float]]:
        if sources.snapshot is None:
            return {}
        raw = sources.snapshot.summary.get(pillar) or {}
        values: Dict[str, Optional[float]] = {}
        for key, value in raw.items():
            number = parse_number(value)
            if number is not None:
                values[key] = number
        return values

    def _metric_set(self, sources: SourceBundle) -> MetricSet:
        raw: Dict[str, Any] = sources.snapshot.metrics if sources.snapshot else {}
        return MetricSet(**{attr: parse_number(raw.get(key)) or 0.0 for key, attr in METRIC_FIELDS.items()})

    def _insights(self, sources: SourceBundle) -> List[str]:
        combined: List[str] = []
        if sources.pillar_insights:
            for pillar in PILLARS:
                combined.extend(sources.pillar_insights.get(pillar) or [])
        if combined:
            return combined
        return list(sources.snapshot.insights) if sources.snapshot else []

    def _narrative(self, sources: SourceBundle) -> NarrativeReport:
        narrative = sources.narrative
        if narrative is None:
            return NarrativeReport()
        return NarrativeReport(
            baseline=narrative.baseline or "",
            benchmark=narrative.benchmark or "",
            performance_vs_benchmark=narrative.performance_vs_benchmark or "",
            ai_recommendations=list(narrative.ai_recommendations or []),
        )
