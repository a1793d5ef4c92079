"""
Invoice aggregation: picks the most recent billing periods and sums them into
baseline energy (kWh) and carbon (tCO2e) totals.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional

import pandas as pd
from pydantic import BaseModel

from app import settings
from app.engine.numbers import parse_number
from app.engine.types import InvoiceRecord, InvoiceTotals

logger = logging.getLogger(__name__)


def _parse_date(value: Any):
    if value is None or value == "":
        return None
    try:
        ts = pd.to_datetime(value, errors="coerce", utc=True)
    except (TypeError, ValueError):
        return None
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def to_invoice_records(raw: Iterable[Any]) -> List[InvoiceRecord]:
    """Convert raw invoice payloads (dicts or InvoicePayload models) to records."""
    records: List[InvoiceRecord] = []
    for position, item in enumerate(raw or []):
        if isinstance(item, BaseModel):
            item = item.model_dump()
        if not isinstance(item, Mapping):
            logger.debug(f"Ignoring non-object invoice entry at position {position}")
            continue
        records.append(
            InvoiceRecord(
                position=position,
                date=_parse_date(item.get("date")),
                energy_kwh=parse_number(item.get("energy_kwh")),
                carbon_tonnes=parse_number(item.get("carbon_tonnes")),
                emission_factor=parse_number(item.get("emission_factor")),
            )
        )
    return records


def select_invoice_window(records: List[InvoiceRecord], size: Optional[int] = None) -> List[InvoiceRecord]:
    """
    Returns the `size` most recent records, newest first.

    Ties on date keep input order; undated records rank after every dated one.
    """
    size = settings.INVOICE_WINDOW if size is None else size
    dated = [r for r in records if r.date is not None]
    undated = [r for r in records if r.date is None]
    ordered = sorted(dated, key=lambda r: (-r.date.timestamp(), r.position))
    return (ordered + undated)[:size]


def record_carbon(record: InvoiceRecord, default_factor: Optional[float] = None) -> float:
    if record.carbon_tonnes is not None:
        return record.carbon_tonnes
    factor = record.emission_factor
    if factor is None:
        factor = settings.DEFAULT_EMISSION_FACTOR if default_factor is None else default_factor
    return (record.energy_kwh or 0.0) * factor


def aggregate_invoices(
    raw: Iterable[Any],
    *,
    window: Optional[int] = None,
    default_factor: Optional[float] = None,
) -> InvoiceTotals:
    """
    Sums energy and carbon over the recent invoice window.

    Args:
        raw: unordered invoice payloads
        window: number of records to keep (defaults to ESG_INVOICE_WINDOW)
        default_factor: tCO2e/kWh for records with neither tonnage nor own factor

    Returns:
        InvoiceTotals; both totals are None when there are no records.
    """
    records = to_invoice_records(raw)
    selected = select_invoice_window(records, window)
    if not selected:
        return InvoiceTotals(total_energy_kwh=None, total_carbon_tonnes=None, window=[])

    malformed = sum(1 for r in selected if r.energy_kwh is None)
    if malformed:
        logger.debug(f"{malformed} invoice(s) in window have no readable energy value; counted as 0")

    total_energy = sum(r.energy_kwh or 0.0 for r in selected)
    total_carbon = sum(record_carbon(r, default_factor) for r in selected)
    return InvoiceTotals(
        total_energy_kwh=total_energy,
        total_carbon_tonnes=total_carbon,
        window=selected,
    )
