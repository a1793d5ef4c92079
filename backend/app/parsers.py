"""
Uploaded ESG dataset parser: dispatches by extension, returns a pandas
DataFrame and flattens it into the JSON-safe rows the context aggregate
carries as `uploadedRows`.
Supported formats: CSV/TSV, Excel (.xlsx/.xls), JSON, JSONL.
"""
from __future__ import annotations

import io
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

# Extension → reader
_EXT_MAP = {
    ".csv": "csv",
    ".tsv": "csv",
    ".xlsx": "excel",
    ".xls": "excel",
    ".json": "json",
    ".jsonl": "jsonl",
    ".ndjson": "jsonl",
}

SUPPORTED_EXTENSIONS = set(_EXT_MAP.keys())


def normalise_column(name: Any) -> str:
    """'Electricity (kWh)' -> 'electricity_kwh'."""
    return re.sub(r"[^a-z0-9]+", "_", str(name).strip().lower()).strip("_")


def _normalise_columns(df: pd.DataFrame) -> pd.DataFrame:
    counts: dict[str, int] = {}
    columns = []
    for col in map(normalise_column, df.columns):
        if col in counts:
            counts[col] += 1
            columns.append(f"{col}_{counts[col]}")
        else:
            counts[col] = 0
            columns.append(col)
    df.columns = columns
    return df


def _read_csv(buf: io.BytesIO, filename: str, **kwargs) -> pd.DataFrame:
    sample = buf.read(4096).decode("utf-8", errors="replace")
    buf.seek(0)
    sep = "\t" if filename.lower().endswith(".tsv") or ("\t" in sample and "," not in sample) else ","
    # keep cells as text; "1,234" style values are parsed later by the engine
    return pd.read_csv(buf, sep=sep, dtype=str)


def _read_excel(buf: io.BytesIO, filename: str, **kwargs) -> pd.DataFrame:
    return pd.read_excel(buf, sheet_name=kwargs.get("sheet_name", 0), engine="openpyxl")


def _read_json(buf: io.BytesIO, filename: str, **kwargs) -> pd.DataFrame:
    obj = json.loads(buf.read().decode("utf-8"))
    if isinstance(obj, dict):
        # {"rows": [...]} or any wrapper whose first list value holds the records
        obj = next((v for v in obj.values() if isinstance(v, list)), [obj])
    if not isinstance(obj, list):
        raise ValueError("JSON upload must contain a list of records")
    return pd.json_normalize(obj)


def _read_jsonl(buf: io.BytesIO, filename: str, **kwargs) -> pd.DataFrame:
    return pd.read_json(buf, lines=True)


_READERS = {
    "csv": _read_csv,
    "excel": _read_excel,
    "json": _read_json,
    "jsonl": _read_jsonl,
}


def parse_file(
    content: bytes,
    filename: str,
    *,
    sheet_name: Optional[str | int] = None,
    normalise: bool = True,
) -> pd.DataFrame:
    """
    Parse an uploaded ESG dataset into a DataFrame.

    Raises ValueError if the file type is unsupported, parsing fails or the
    file holds no rows.
    """
    ext = Path(filename).suffix.lower()
    fmt = _EXT_MAP.get(ext)
    if not fmt:
        raise ValueError(
            f"Unsupported file type '{ext}'. "
            f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
        )

    kwargs = {"sheet_name": sheet_name} if sheet_name is not None and fmt == "excel" else {}
    try:
        df = _READERS[fmt](io.BytesIO(content), filename, **kwargs)
    except Exception as e:
        raise ValueError(f"Failed to parse {filename}: {e}") from e

    if df.empty:
        raise ValueError(f"File {filename} contains no rows")

    if normalise:
        df = _normalise_columns(df)
    logger.info(f"Parsed {filename}: {len(df)} rows × {len(df.columns)} cols")
    return df


def dataframe_to_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Rows as plain dicts; NaN/NaT become None, timestamps ISO dates."""
    out = df.copy()
    for col in out.columns:
        if str(out[col].dtype).startswith("datetime"):
            out[col] = out[col].dt.strftime("%Y-%m-%d")
    out = out.astype(object).where(pd.notna(out), None)
    rows = out.to_dict(orient="records")
    for row in rows:
        for key, value in row.items():
            # numpy scalars -> python
            if hasattr(value, "item"):
                row[key] = value.item()
    return rows
