"""Trend badge computation for scalar KPIs (current vs previous value)."""

from typing import Optional

from app.engine.types import TrendResult


def format_percent(percent: float) -> str:
    sign = "+" if percent > 0 else ""
    return f"{sign}{percent:.1f}%"


def trend_indicator(current: float, previous: Optional[float]) -> TrendResult:
    """
    Classifies the change from previous to current.

    No previous value yields direction "unknown" with no percent, which is
    distinct from a flat trend. A previous value of 0 gives 0% when current
    is also 0 and 100% otherwise.
    """
    if previous is None:
        return TrendResult(direction="unknown")

    diff = current - previous
    if previous == 0:
        percent = 0.0 if current == 0 else 100.0
    else:
        percent = (diff / previous) * 100

    if diff > 0:
        direction = "up"
    elif diff < 0:
        direction = "down"
    else:
        direction = "flat"

    return TrendResult(direction=direction, percent=percent, formatted=format_percent(percent))
