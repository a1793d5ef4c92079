"""
ESG metric engine: invoice aggregation, source reconciliation, derived KPIs,
trend indicators and red-flag rules. Pure, synchronous code; I/O lives in
app.sources and app.dashboard_service.
"""

from app.engine.types import (
    PillarSummary,
    MetricSet,
    InvoiceRecord,
    InvoiceTotals,
    TrendResult,
    DerivedIntensity,
    NarrativeReport,
    ResolvedSnapshot,
    SourceBundle,
)
from app.engine.invoices import aggregate_invoices, select_invoice_window
from app.engine.resolver import MetricResolver
from app.engine.derived import compute_intensity
from app.engine.trends import trend_indicator
from app.engine.red_flags import RedFlagRule, load_red_flag_rules, evaluate_red_flags

__all__ = [
    "PillarSummary",
    "MetricSet",
    "InvoiceRecord",
    "InvoiceTotals",
    "TrendResult",
    "DerivedIntensity",
    "NarrativeReport",
    "ResolvedSnapshot",
    "SourceBundle",
    "aggregate_invoices",
    "select_invoice_window",
    "MetricResolver",
    "compute_intensity",
    "trend_indicator",
    "RedFlagRule",
    "load_red_flag_rules",
    "evaluate_red_flags",
]
