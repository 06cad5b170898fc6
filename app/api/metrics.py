from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.db.data_service import DataServiceClient
from app.services.auth_dependencies import get_service_client
from app.services.status_service import performance_report

router = APIRouter(prefix="/api", tags=["metrics"])


@router.get("/performance-metrics")
async def performance_metrics(client: DataServiceClient = Depends(get_service_client)) -> Any:
    report, ok = await performance_report(client)
    if not ok:
        return JSONResponse(status_code=503, content=report)
    return report
