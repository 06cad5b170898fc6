from __future__ import annotations

from typing import Callable

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.models.schemas import SystemMetrics
from app.observability.system_metrics import (
    SnapshotCache,
    cache_control_header,
    get_sampler,
    get_snapshot_cache,
    get_system_metrics,
)

router = APIRouter(prefix="/api", tags=["metrics"])

logger = structlog.get_logger(__name__)


@router.get("/system-metrics")
def system_metrics(
    cache: SnapshotCache = Depends(get_snapshot_cache),
    sampler: Callable[[], SystemMetrics] = Depends(get_sampler),
) -> JSONResponse:
    try:
        snapshot, seconds_fresh, hit = get_system_metrics(cache, sampler)
    except Exception:  # noqa: BLE001
        logger.exception("system_metrics.sample_failed")
        return JSONResponse(status_code=500, content={"detail": "Failed to get system metrics"})

    return JSONResponse(
        content=snapshot.model_dump(mode="json", by_alias=True),
        headers={
            "Cache-Control": cache_control_header(seconds_fresh),
            "X-Cache": "HIT" if hit else "MISS",
        },
    )
