from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from app.db.data_service import DataServiceClient
from app.models.schemas import ActivityLogCreate
from app.services.activity_service import create_activity_log, list_activity_logs
from app.services.auth_dependencies import get_user_client

router = APIRouter(prefix="/api", tags=["activity-logs"])


@router.get("/activity-logs")
async def get_activity_logs(
    limit: int = Query(default=50, ge=1, le=500),
    client: DataServiceClient = Depends(get_user_client),
) -> dict[str, Any]:
    return {"data": await list_activity_logs(client, limit=limit)}


@router.post("/activity-logs")
async def post_activity_log(
    payload: ActivityLogCreate,
    client: DataServiceClient = Depends(get_user_client),
) -> dict[str, Any]:
    return {"data": await create_activity_log(client, payload)}
