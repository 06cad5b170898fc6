from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog

from app.db.data_service import DataServiceClient, DataServiceError, DataServiceUnavailable
from app.models.schemas import ActivityLogCreate

ACTIVITY_LOGS = "activity_logs"

logger = structlog.get_logger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def list_activity_logs(client: DataServiceClient, limit: int = 50) -> list[dict[str, Any]]:
    return await client.select(ACTIVITY_LOGS, order="created_at desc", limit=limit)


async def create_activity_log(client: DataServiceClient, payload: ActivityLogCreate) -> dict[str, Any]:
    row = payload.model_dump(exclude_none=True)
    row.setdefault("created_at", utc_now_iso())
    return await client.insert(ACTIVITY_LOGS, row, single=True)


async def log_activity(
    client: DataServiceClient,
    action: str,
    user_id: str,
    metadata: dict[str, Any] | None = None,
) -> bool:
    """Best-effort audit entry; returns False instead of raising."""
    row = {
        "action": action,
        "user_id": user_id,
        "metadata": metadata or {},
        "created_at": utc_now_iso(),
    }
    try:
        await client.insert(ACTIVITY_LOGS, row)
    except (DataServiceError, DataServiceUnavailable):
        logger.exception("activity_log.write_failed", action=action)
        return False
    return True
