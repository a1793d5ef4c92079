"""
Dashboard state: owns the canonical ResolvedSnapshot and everything derived
from it (intensity bundle, trend badges, red flags).

Sources settle independently; each settled (or failed) source triggers a
fresh resolution pass over whatever has settled so far. Passes carry a
monotonically increasing sequence number and a pass is only applied when its
number is higher than the one currently applied, so a slow pass can never
overwrite a newer one.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from app import settings
from app.engine.derived import compute_intensity
from app.engine.red_flags import RedFlagRule, evaluate_red_flags
from app.engine.resolver import MetricResolver
from app.engine.trends import trend_indicator
from app.engine.types import (
    METRIC_FIELDS,
    DerivedIntensity,
    MetricSet,
    ResolvedSnapshot,
    SourceBundle,
    TrendResult,
)
from app.formatting import summary_lines
from app.models import ContextAggregatePayload
from app.sources import (
    CONTEXT,
    INVOICES,
    NARRATIVE,
    PILLAR_INSIGHTS,
    SNAPSHOT,
    SourceResult,
)

logger = logging.getLogger(__name__)


def bundle_from_results(results: Iterable[SourceResult]) -> SourceBundle:
    """Builds a SourceBundle from settled results; failed ones count as absent."""
    settled = {r.name: r.payload for r in results if r.ok}
    return SourceBundle(
        snapshot=settled.get(SNAPSHOT),
        narrative=settled.get(NARRATIVE),
        invoices=settled.get(INVOICES),
        context=settled.get(CONTEXT),
        pillar_insights=settled.get(PILLAR_INSIGHTS),
    )


def derive_intensity(context: Optional[ContextAggregatePayload]) -> DerivedIntensity:
    if context is None:
        return compute_intensity([], [])
    benchmark = context.benchmarks.energyIntensity if context.benchmarks else None
    return compute_intensity(context.energyUse, context.production, benchmark)


def snapshot_outputs(
    snapshot: ResolvedSnapshot,
    derived: DerivedIntensity,
    red_flags: List[str],
) -> Dict[str, Any]:
    """Plain-data bundle consumed by the presentation and export layers."""
    return {
        "snapshot": snapshot.to_dict(),
        "summaryLines": summary_lines(snapshot),
        "derived": derived.to_dict(),
        "topInsights": snapshot.insights[: settings.INSIGHT_LIMIT],
        "redFlags": list(red_flags),
        "attentionNeeded": len(red_flags) > 0,
    }


class DashboardState:
    """Single-writer holder of the canonical snapshot for one dashboard session."""

    def __init__(
        self,
        resolver: Optional[MetricResolver] = None,
        rules: Optional[List[RedFlagRule]] = None,
    ):
        self.resolver = resolver or MetricResolver()
        self.rules = rules
        self.sources: Dict[str, SourceResult] = {}
        self.errors: Dict[str, str] = {}
        self.snapshot: Optional[ResolvedSnapshot] = None
        self.derived: DerivedIntensity = compute_intensity([], [])
        self.red_flags: List[str] = []
        self.trends: Dict[str, Dict[str, Any]] = {}
        self._previous_metrics: Optional[MetricSet] = None
        self._current_metrics: Optional[MetricSet] = None
        self.applied_sequence = 0
        self._next_sequence = 0

    # ── Passes ──────────────────────────────────────────────────────────

    def begin_pass(self) -> int:
        self._next_sequence += 1
        return self._next_sequence

    def bundle(self) -> SourceBundle:
        return bundle_from_results(self.sources.values())

    def resolve_pass(self, bundle: Optional[SourceBundle] = None) -> Tuple[int, ResolvedSnapshot]:
        """Resolves over the currently settled sources; does not apply."""
        seq = self.begin_pass()
        snapshot = self.resolver.resolve(bundle or self.bundle())
        logger.info(f"Resolution pass {seq} over sources {sorted(n for n, r in self.sources.items() if r.ok)}")
        return seq, snapshot

    def apply(
        self,
        seq: int,
        snapshot: ResolvedSnapshot,
        *,
        metrics_replaced: bool = False,
        bundle: Optional[SourceBundle] = None,
    ) -> bool:
        """
        Replaces the canonical snapshot if `seq` is newer than the applied pass.

        When the pass carries a newly arrived backend snapshot
        (`metrics_replaced`), the outgoing MetricSet values become the previous
        values of the trend badges. Derived metrics and red flags are always
        recomputed from scratch.
        """
        if seq <= self.applied_sequence:
            logger.info(f"Discarding stale pass {seq} (applied: {self.applied_sequence})")
            return False

        bundle = bundle or self.bundle()
        previous = self._previous_metrics
        current_metrics = self._current_metrics
        if metrics_replaced:
            previous = current_metrics
            current_metrics = snapshot.metrics if bundle.snapshot is not None else None

        trends: Dict[str, Dict[str, Any]] = {}
        for key in METRIC_FIELDS:
            current = snapshot.metrics.get(key)
            prev = previous.get(key) if previous else None
            result: TrendResult = trend_indicator(current, prev)
            trends[key] = {"current": current, "previous": prev, **asdict(result)}

        derived = derive_intensity(bundle.context)
        red_flags = evaluate_red_flags(snapshot, self.rules)

        # wholesale replacement; no field is patched in place
        self.snapshot = snapshot
        self.trends = trends
        self.derived = derived
        self.red_flags = red_flags
        self._previous_metrics = previous
        self._current_metrics = current_metrics
        self.applied_sequence = seq
        return True

    def run_pass(self, *, metrics_replaced: bool = False) -> bool:
        bundle = self.bundle()
        seq, snapshot = self.resolve_pass(bundle)
        return self.apply(seq, snapshot, metrics_replaced=metrics_replaced, bundle=bundle)

    # ── Source arrival ──────────────────────────────────────────────────

    def record_source(self, result: SourceResult) -> bool:
        """Stores a settled or failed source and triggers a fresh pass."""
        self.sources[result.name] = result
        if result.ok:
            self.errors.pop(result.name, None)
        else:
            self.errors[result.name] = result.error or f"Failed to load {result.name}"
        return self.run_pass(metrics_replaced=result.ok and result.name == SNAPSHOT)

    async def load_all(self, fetchers: Iterable[Callable[[], Awaitable[SourceResult]]]) -> int:
        """
        Runs all fetches concurrently and records each one as it settles.

        Returns:
            number of passes applied
        """
        tasks = [asyncio.ensure_future(fetch()) for fetch in fetchers]
        applied = 0
        for next_done in asyncio.as_completed(tasks):
            result = await next_done
            if self.record_source(result):
                applied += 1
        return applied

    # ── Output ──────────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        if self.snapshot is None:
            self.run_pass()
        out = snapshot_outputs(self.snapshot, self.derived, self.red_flags)
        out.update({
            "sequence": self.applied_sequence,
            "trends": self.trends,
            "errors": dict(self.errors),
            "sources": {name: r.status for name, r in self.sources.items()},
        })
        return out
