"""
Source fetchers for the upstream ESG backend.

Every fetch returns a SourceResult; transport errors, non-2xx responses and
payloads failing validation become status "failed" with the error attached.
Nothing raises past this module.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError

from app import settings
from app.models import (
    PILLARS,
    ContextAggregatePayload,
    NarrativePayload,
    PillarInsightsPayload,
    SnapshotPayload,
)

logger = logging.getLogger(__name__)

SNAPSHOT = "snapshot"
NARRATIVE = "narrative"
INVOICES = "invoices"
CONTEXT = "context"
PILLAR_INSIGHTS = "pillar_insights"

SOURCE_NAMES = (SNAPSHOT, NARRATIVE, INVOICES, CONTEXT, PILLAR_INSIGHTS)

ENDPOINTS = {
    SNAPSHOT: "/api/esg-data",
    NARRATIVE: "/api/esg-mini-report",
    INVOICES: "/api/invoices",
    CONTEXT: "/api/environmental-metrics",
}
PILLAR_ENDPOINTS = {pillar: f"/api/{pillar}-insights" for pillar in PILLARS}

ERROR_MESSAGES = {
    SNAPSHOT: "Failed to load ESG metrics and AI insights snapshot.",
    NARRATIVE: "Failed to load the ESG mini report.",
    INVOICES: "Failed to load invoice summaries.",
    CONTEXT: "Failed to load environmental metrics.",
    PILLAR_INSIGHTS: "Failed to load live ESG AI insights across Environmental, Social and Governance pillars.",
}


@dataclass
class SourceResult:
    name: str
    status: str  # "settled" | "failed"
    payload: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "settled"


def _validate_invoices(raw: Any) -> List[Any]:
    if not isinstance(raw, list):
        raise ValueError("invoice payload must be a JSON array")
    return raw


def _validate_pillar_insights(raw: Any) -> Dict[str, List[str]]:
    if not isinstance(raw, dict):
        raise ValueError("pillar insights payload must be an object keyed by pillar")
    out: Dict[str, List[str]] = {}
    for pillar in PILLARS:
        data = raw.get(pillar)
        if isinstance(data, PillarInsightsPayload):
            out[pillar] = list(data.insights or [])
        elif data is not None:
            out[pillar] = list(PillarInsightsPayload.model_validate(data).insights or [])
    return out


VALIDATORS: Dict[str, Callable[[Any], Any]] = {
    SNAPSHOT: SnapshotPayload.model_validate,
    NARRATIVE: NarrativePayload.model_validate,
    INVOICES: _validate_invoices,
    CONTEXT: ContextAggregatePayload.model_validate,
    PILLAR_INSIGHTS: _validate_pillar_insights,
}


def validate_source(name: str, raw: Any) -> SourceResult:
    """Validates a raw JSON payload for the named source."""
    if name not in VALIDATORS:
        raise ValueError(f"Unknown source '{name}'. Available: {list(SOURCE_NAMES)}")
    try:
        payload = VALIDATORS[name](raw)
    except (ValidationError, ValueError, TypeError) as e:
        logger.warning(f"Source '{name}' payload rejected: {e}")
        return SourceResult(name=name, status="failed", error=f"{ERROR_MESSAGES[name]} ({e})")
    return SourceResult(name=name, status="settled", payload=payload)


class SourceClient:
    """Async client for the upstream ESG endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.ESG_API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.ESG_SOURCE_TIMEOUT_SECONDS
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def _get_json(self, client: httpx.AsyncClient, path: str, params: Optional[dict] = None) -> Any:
        resp = await client.get(path, params=params)
        if resp.status_code >= 400:
            raise httpx.HTTPStatusError(
                f"{path} error: {resp.status_code} {resp.text}",
                request=resp.request,
                response=resp,
            )
        return resp.json()

    async def fetch(self, name: str) -> SourceResult:
        """Fetches and validates one source; never raises."""
        try:
            async with self._client() as client:
                if name == PILLAR_INSIGHTS:
                    raw = await self._fetch_pillars(client)
                elif name == INVOICES:
                    raw = await self._get_json(
                        client, ENDPOINTS[INVOICES], params={"last_months": settings.INVOICE_WINDOW}
                    )
                elif name in ENDPOINTS:
                    raw = await self._get_json(client, ENDPOINTS[name])
                else:
                    raise ValueError(f"Unknown source '{name}'")
        except (httpx.HTTPError, ValueError) as e:
            # ValueError also covers JSONDecodeError
            logger.error(f"Source '{name}' fetch failed: {e}")
            message = ERROR_MESSAGES.get(name, f"Failed to load source '{name}'.")
            return SourceResult(name=name, status="failed", error=f"{message} ({e})")
        return validate_source(name, raw)

    async def _fetch_pillars(self, client: httpx.AsyncClient) -> Dict[str, Any]:
        # any failing pillar fails the whole source
        tasks = [asyncio.ensure_future(self._get_json(client, path)) for path in PILLAR_ENDPOINTS.values()]
        try:
            results = await asyncio.gather(*tasks)
        finally:
            # settle the siblings before the client closes
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        return dict(zip(PILLAR_ENDPOINTS.keys(), results))

    def fetchers(self, names=SOURCE_NAMES) -> List[Callable[[], Awaitable[SourceResult]]]:
        return [lambda n=name: self.fetch(n) for name in names]
