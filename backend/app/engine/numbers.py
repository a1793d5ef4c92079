"""Lenient numeric coercion for values arriving from uploads and upstream JSON."""

import math
import re
from typing import Any, Optional

import numpy as np

# thousands separators; \s also covers NBSP and narrow NBSP
_SEPARATORS = re.compile(r"[,\s]")


def finite_or_none(value: Any) -> Optional[float]:
    """Return value as a finite float, or None for NaN/inf/non-numbers."""
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a number from a JSON scalar or a display string like "1,234.5".

    Returns None when the value cannot be read as a finite number.
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (int, float, np.number)):
        return finite_or_none(value)
    if isinstance(value, str):
        text = _SEPARATORS.sub("", value)
        if not text:
            return None
        try:
            return finite_or_none(float(text))
        except ValueError:
            return None
    return None
