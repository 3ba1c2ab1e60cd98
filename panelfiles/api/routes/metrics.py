"""Metrics endpoint for operational visibility."""
from fastapi import APIRouter, Query

from panelfiles.core.metrics import metrics

router = APIRouter()


@router.get("/metrics", summary="Return rolling API and panel call metrics")
async def read_metrics(
    prefix: str = Query("", description="Only names starting with this, e.g. 'remote.'"),
) -> dict:
    return {
        "metrics": metrics.snapshot(prefix),
    }
