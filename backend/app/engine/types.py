"""
Engine data types (dataclasses) shared by the resolver, calculators and the
dashboard state. Unknown values are None throughout; display placeholders
are applied only in app.formatting.
"""

import hashlib
import json
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.models import (
    ContextAggregatePayload,
    NarrativePayload,
    SnapshotPayload,
)

# Camel-case keys are the stable JSON contract with the presentation layer
METRIC_FIELDS = {
    "carbonTax": "carbon_tax",
    "taxAllowances": "tax_allowances",
    "carbonCredits": "carbon_credits",
    "energySavings": "energy_savings",
}


@dataclass
class PillarSummary:
    """Named metric values for one ESG pillar. Missing keys mean unknown, not zero."""
    pillar: str
    values: Dict[str, Optional[float]] = field(default_factory=dict)

    def get(self, key: str) -> Optional[float]:
        return self.values.get(key)

    def to_dict(self) -> Dict[str, Optional[float]]:
        return dict(self.values)


@dataclass
class MetricSet:
    """Financial / physical KPIs; always numeric, 0 when unknown."""
    carbon_tax: float = 0.0
    tax_allowances: float = 0.0
    carbon_credits: float = 0.0
    energy_savings: float = 0.0

    def get(self, key: str) -> float:
        return getattr(self, METRIC_FIELDS.get(key, key))

    def to_dict(self) -> Dict[str, float]:
        return {key: getattr(self, attr) for key, attr in METRIC_FIELDS.items()}


@dataclass
class InvoiceRecord:
    """One billing period as read from the invoice source."""
    position: int  # index in the input list, breaks date ties
    date: Optional[datetime]
    energy_kwh: Optional[float]
    carbon_tonnes: Optional[float] = None
    emission_factor: Optional[float] = None


@dataclass
class InvoiceTotals:
    total_energy_kwh: Optional[float]
    total_carbon_tonnes: Optional[float]
    window: List[InvoiceRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalEnergyKwh": self.total_energy_kwh,
            "totalCarbonTonnes": self.total_carbon_tonnes,
            "windowSize": len(self.window),
        }


@dataclass
class TrendResult:
    direction: str  # "up" | "down" | "flat" | "unknown"
    percent: Optional[float] = None
    formatted: Optional[str] = None


@dataclass
class DerivedIntensity:
    labels: List[str]
    energy_use: List[float]
    production: List[float]
    intensity: List[float]
    baseline: Optional[float]
    current: Optional[float]
    benchmark: Optional[float]
    delta: Optional[float]
    percent: Optional[float]
    latest_energy_use: float = 0.0
    latest_production: float = 0.0
    latest_intensity: float = 0.0
    is_empty: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class NarrativeReport:
    baseline: str = ""
    benchmark: str = ""
    performance_vs_benchmark: str = ""
    ai_recommendations: List[str] = field(default_factory=list)


@dataclass
class ResolvedSnapshot:
    """Canonical merged view of every settled source."""
    environmental: PillarSummary
    social: PillarSummary
    governance: PillarSummary
    metrics: MetricSet
    insights: List[str] = field(default_factory=list)
    narrative: NarrativeReport = field(default_factory=NarrativeReport)
    invoice_totals: Optional[InvoiceTotals] = None

    def pillar(self, name: str) -> PillarSummary:
        return getattr(self, name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": {
                "environmental": self.environmental.to_dict(),
                "social": self.social.to_dict(),
                "governance": self.governance.to_dict(),
            },
            "metrics": self.metrics.to_dict(),
            "insights": list(self.insights),
            "narrative": asdict(self.narrative),
            "invoices": self.invoice_totals.to_dict() if self.invoice_totals else None,
        }

    def fingerprint(self) -> str:
        txt = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(txt.encode("utf-8")).hexdigest()


@dataclass
class SourceBundle:
    """Validated payloads of the sources that have settled; None means absent."""
    snapshot: Optional[SnapshotPayload] = None
    narrative: Optional[NarrativePayload] = None
    invoices: Optional[List[Any]] = None
    context: Optional[ContextAggregatePayload] = None
    pillar_insights: Optional[Dict[str, List[str]]] = None
