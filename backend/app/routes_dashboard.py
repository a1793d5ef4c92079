"""
Dashboard routes: one-shot resolution, the session-wide dashboard state,
source push/refresh, dataset upload and the red-flag rule table.
"""
from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, UploadFile

from app.dashboard_service import DashboardState, derive_intensity, snapshot_outputs
from app.engine.derived import compute_intensity
from app.engine.red_flags import default_rules, evaluate_red_flags
from app.engine.resolver import MetricResolver
from app.engine.trends import trend_indicator
from app.engine.types import SourceBundle
from app.models import (
    ContextAggregatePayload,
    IntensityRequest,
    ResolveRequest,
    TrendRequest,
)
from app.parsers import dataframe_to_rows, parse_file
from app.sources import CONTEXT, SOURCE_NAMES, SourceClient, SourceResult, validate_source

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard")

# Session-wide state; sources recorded here feed every subsequent pass
DASHBOARD_STATE = DashboardState()


def get_state() -> DashboardState:
    return DASHBOARD_STATE


def get_source_client() -> SourceClient:
    return SourceClient()


def _bundle_from_request(req: ResolveRequest) -> SourceBundle:
    pillar_insights = None
    if req.pillar_insights is not None:
        pillar_insights = {k: list(v.insights or []) for k, v in req.pillar_insights.items()}
    return SourceBundle(
        snapshot=req.snapshot,
        narrative=req.narrative,
        invoices=req.invoices,
        context=req.context,
        pillar_insights=pillar_insights,
    )


# ── Stateless computations ──────────────────────────────────────────────

@router.post("/resolve")
def resolve_sources(req: ResolveRequest):
    bundle = _bundle_from_request(req)
    snapshot = MetricResolver().resolve(bundle)
    derived = derive_intensity(bundle.context)
    return snapshot_outputs(snapshot, derived, evaluate_red_flags(snapshot))


@router.post("/intensity")
def intensity(req: IntensityRequest):
    return compute_intensity(req.energyUse, req.production, req.benchmark).to_dict()


@router.post("/trend")
def trend(req: TrendRequest):
    return asdict(trend_indicator(req.current, req.previous))


@router.get("/red-flag-rules")
def red_flag_rules():
    return [asdict(rule) for rule in default_rules()]


# ── Session state ───────────────────────────────────────────────────────

@router.get("/state")
def dashboard_state(state: DashboardState = Depends(get_state)):
    return state.to_dict()


@router.post("/sources/{name}")
def push_source(name: str, payload: Any = Body(None), state: DashboardState = Depends(get_state)):
    """Records a raw source payload as if it had just been fetched."""
    if name not in SOURCE_NAMES:
        raise HTTPException(status_code=404, detail=f"Unknown source '{name}'")
    state.record_source(validate_source(name, payload))
    return state.to_dict()


@router.post("/refresh")
async def refresh_sources(
    sources: Optional[List[str]] = Query(None),
    state: DashboardState = Depends(get_state),
    client: SourceClient = Depends(get_source_client),
):
    names = sources or list(SOURCE_NAMES)
    unknown = [n for n in names if n not in SOURCE_NAMES]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown sources: {unknown}")
    applied = await state.load_all(client.fetchers(names))
    logger.info(f"Refresh of {names} applied {applied} pass(es)")
    return state.to_dict()


@router.post("/upload")
async def upload_dataset(file: UploadFile = File(...), state: DashboardState = Depends(get_state)):
    filename = file.filename or "upload"
    content = await file.read()
    try:
        df = parse_file(content, filename)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # keep series/benchmarks from an already-settled context aggregate
    current = state.sources.get(CONTEXT)
    base = current.payload.model_dump() if current and current.ok else {}
    context = ContextAggregatePayload.model_validate({**base, "uploadedRows": dataframe_to_rows(df)})
    state.record_source(SourceResult(name=CONTEXT, status="settled", payload=context))
    logger.info(f"Uploaded dataset {filename}: {len(df)} rows")
    return state.to_dict()
