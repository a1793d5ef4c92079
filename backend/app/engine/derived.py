"""
Derived energy KPIs: monthly intensity, baseline/current intensity and the
comparison against a benchmark.
"""

from typing import Any, List, Optional, Sequence

import numpy as np

from app.engine.numbers import finite_or_none
from app.engine.types import DerivedIntensity

PERIOD_LABELS = [
    "Jan-24", "Feb-24", "Mar-24", "Apr-24", "May-24", "Jun-24",
    "Jul-24", "Aug-24", "Sep-24", "Oct-24", "Nov-24", "Dec-24",
]
PERIODS = len(PERIOD_LABELS)
BASELINE_PERIODS = 3


def to_twelve(values: Optional[Sequence[Any]]) -> List[float]:
    """Pads or truncates to 12 periods; anything non-numeric becomes 0."""
    values = values if isinstance(values, (list, tuple)) else []
    out: List[float] = []
    for i in range(PERIODS):
        v = finite_or_none(values[i]) if i < len(values) else None
        out.append(v if v is not None else 0.0)
    return out


def compute_intensity(
    energy_use: Optional[Sequence[Any]],
    production: Optional[Sequence[Any]],
    benchmark: Optional[float] = None,
) -> DerivedIntensity:
    """
    Computes the intensity bundle for a 12-period series.

    intensity[i] = energy_use[i] / max(production[i], 1), rounded to 4 dp.
    Baseline is the mean of the first three non-zero intensities, current is
    the last non-zero one. Without an external benchmark the baseline is used.
    """
    energy = to_twelve(energy_use)
    prod = to_twelve(production)

    energy_arr = np.array(energy, dtype=float)
    prod_arr = np.maximum(np.array(prod, dtype=float), 1.0)
    intensity = [round(float(v), 4) for v in energy_arr / prod_arr]

    non_zero = [v for v in intensity if v > 0]
    baseline = float(np.mean(non_zero[:BASELINE_PERIODS])) if non_zero else None
    current = non_zero[-1] if non_zero else None

    benchmark = finite_or_none(benchmark)
    if benchmark is None:
        benchmark = baseline

    delta = None
    percent = None
    if current is not None and benchmark is not None:
        delta = current - benchmark
        if benchmark != 0:
            percent = (delta / benchmark) * 100

    return DerivedIntensity(
        labels=list(PERIOD_LABELS),
        energy_use=energy,
        production=prod,
        intensity=intensity,
        baseline=baseline,
        current=current,
        benchmark=benchmark,
        delta=delta,
        percent=percent,
        latest_energy_use=energy[-1],
        latest_production=prod[-1],
        latest_intensity=intensity[-1],
        is_empty=all(v == 0 for v in energy) and all(v == 0 for v in prod),
    )
