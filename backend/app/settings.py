"""
Runtime configuration read from the environment.

NOTE: load_dotenv() must be called BEFORE this module is imported
(done in main.py at startup).
"""

import os
from pathlib import Path

ESG_API_BASE_URL = os.getenv("ESG_API_BASE_URL", "http://localhost:8000").rstrip("/")
ESG_SOURCE_TIMEOUT_SECONDS = float(os.getenv("ESG_SOURCE_TIMEOUT_SECONDS", "30"))

INVOICE_WINDOW = int(os.getenv("ESG_INVOICE_WINDOW", "6"))
# tCO2e per kWh of grid electricity
DEFAULT_EMISSION_FACTOR = float(os.getenv("ESG_DEFAULT_EMISSION_FACTOR", "0.00095"))

_ENGINE_DIR = Path(__file__).resolve().parent / "engine"
RED_FLAG_RULES_PATH = Path(os.getenv("ESG_RED_FLAG_RULES") or (_ENGINE_DIR / "red_flags.yaml"))
CURRENCY_SYMBOL = os.getenv("ESG_CURRENCY_SYMBOL", "R")

INSIGHT_LIMIT = int(os.getenv("ESG_INSIGHT_LIMIT", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
