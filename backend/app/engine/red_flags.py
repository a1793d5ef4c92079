"""
Red-flag evaluation: a declarative rule table (red_flags.yaml) applied to the
resolved snapshot. Every rule is tested on every pass; the output is the
ordered list of messages for the rules that fired.
"""

import logging
import operator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml

from app import settings
from app.engine.numbers import finite_or_none
from app.engine.types import ResolvedSnapshot

logger = logging.getLogger(__name__)

COMPARATORS: Dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}

VALUE_FORMATS = ("plain", "thousands", "fixed1")


def format_value(value: float, value_format: str) -> str:
    if value_format == "thousands":
        return f"{value:,.0f}" if float(value).is_integer() else f"{value:,.2f}"
    if value_format == "fixed1":
        return f"{value:.1f}"
    # plain: at most two decimals, integers without a trailing .0
    value = round(float(value), 2)
    return str(int(value)) if value.is_integer() else str(value)


@dataclass
class RedFlagRule:
    """One row of the rule table."""
    rule_id: str
    field: str
    comparator: str
    threshold: float
    message: str
    value_format: str = "plain"

    def evaluate(self, context: Dict[str, Any], currency: Optional[str] = None) -> Optional[str]:
        value = finite_or_none(get_nested_value(context, self.field))
        if value is None:
            logger.debug(f"Rule '{self.rule_id}' skipped: {self.field} unknown")
            return None
        if not COMPARATORS[self.comparator](value, self.threshold):
            return None
        return self.message.format(
            value=format_value(value, self.value_format),
            threshold=format_value(self.threshold, "plain"),
            currency=settings.CURRENCY_SYMBOL if currency is None else currency,
        )


def get_nested_value(obj: Dict[str, Any], path: str) -> Any:
    """Gets nested value from dict using dot notation."""
    value: Any = obj
    for key in path.split("."):
        if isinstance(value, dict):
            value = value.get(key)
        else:
            return None
    return value


def _rule_from_dict(rule_id: str, data: Dict[str, Any]) -> RedFlagRule:
    for key in ("field", "comparator", "threshold", "message"):
        if data.get(key) is None:
            raise ValueError(f"red flag rule '{rule_id}': '{key}' is required")
    if data["comparator"] not in COMPARATORS:
        raise ValueError(f"red flag rule '{rule_id}': unknown comparator '{data['comparator']}'")
    value_format = data.get("value_format", "plain")
    if value_format not in VALUE_FORMATS:
        raise ValueError(f"red flag rule '{rule_id}': unknown value_format '{value_format}'")
    threshold = finite_or_none(data["threshold"])
    if threshold is None:
        raise ValueError(f"red flag rule '{rule_id}': threshold must be a number")
    return RedFlagRule(
        rule_id=rule_id,
        field=data["field"],
        comparator=data["comparator"],
        threshold=threshold,
        message=data["message"],
        value_format=value_format,
    )


def load_red_flag_rules(path: Optional[Path] = None) -> List[RedFlagRule]:
    """Loads and validates the rule table; raises ValueError on a bad table."""
    path = Path(path or settings.RED_FLAG_RULES_PATH)
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    rules = data.get("rules") or {}
    if not isinstance(rules, dict):
        raise ValueError(f"{path}: 'rules' must be a mapping")
    loaded = [_rule_from_dict(rule_id, rule_data or {}) for rule_id, rule_data in rules.items()]
    logger.info(f"Loaded {len(loaded)} red flag rules from {path}")
    return loaded


_DEFAULT_RULES: Optional[List[RedFlagRule]] = None


def default_rules() -> List[RedFlagRule]:
    global _DEFAULT_RULES
    if _DEFAULT_RULES is None:
        _DEFAULT_RULES = load_red_flag_rules()
    return _DEFAULT_RULES


def build_context(snapshot: ResolvedSnapshot) -> Dict[str, Any]:
    """Flattens the snapshot into the dict the rule paths address."""
    env = snapshot.environmental
    total_energy = env.get("totalEnergyConsumption")
    savings_pct = None
    if total_energy is not None and total_energy > 0:
        savings_pct = (snapshot.metrics.energy_savings / total_energy) * 100
    return {
        "environmental": env.to_dict(),
        "social": snapshot.social.to_dict(),
        "governance": snapshot.governance.to_dict(),
        "metrics": snapshot.metrics.to_dict(),
        "derived": {"energySavingsPercent": savings_pct},
    }


def evaluate_red_flags(
    snapshot: ResolvedSnapshot,
    rules: Optional[List[RedFlagRule]] = None,
    currency: Optional[str] = None,
) -> List[str]:
    rules = default_rules() if rules is None else rules
    context = build_context(snapshot)
    flags: List[str] = []
    for rule in rules:
        message = rule.evaluate(context, currency)
        if message:
            flags.append(message)
    return flags
