"""
Presentation boundary: turns resolved values into the dashboard's display
strings. Unknown values render as "--" here and nowhere else.
"""

from typing import Dict, Optional

from app.engine.types import ResolvedSnapshot

PLACEHOLDER = "--"


def format_number(value: Optional[float]) -> str:
    if value is None:
        return PLACEHOLDER
    if float(value).is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}".rstrip("0").rstrip(".")


def format_quantity(value: Optional[float], unit: str) -> str:
    return f"{format_number(value)} {unit}"


def format_percent(value: Optional[float]) -> str:
    return f"{format_number(value)}%"


def summary_lines(snapshot: ResolvedSnapshot) -> Dict[str, str]:
    env = snapshot.environmental
    soc = snapshot.social
    gov = snapshot.governance
    return {
        "environmental": " · ".join([
            "Energy: " + format_quantity(env.get("totalEnergyConsumption"), "kWh"),
            "Renewables: " + format_percent(env.get("renewableEnergyShare")),
            "Carbon: " + format_quantity(env.get("carbonEmissions"), "tCO₂e"),
        ]),
        "social": " · ".join([
            "Supplier diversity: " + format_percent(soc.get("supplierDiversity")),
            "Customer satisfaction: " + format_percent(soc.get("customerSatisfaction")),
            "Human capital: " + format_percent(soc.get("humanCapital")),
        ]),
        "governance": " · ".join([
            "Corporate governance: " + format_number(gov.get("corporateGovernance")),
            "ISO 9001: " + format_number(gov.get("iso9001Compliance")),
            "Ethics: " + format_number(gov.get("businessEthics")),
        ]),
    }
