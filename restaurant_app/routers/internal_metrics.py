from __future__ import annotations

from fastapi import APIRouter

from restaurant_app.core.metrics import metrics

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("")
def engine_metrics():
    return {"engine": metrics.snapshot_engine(), "requests": metrics.snapshot()}
