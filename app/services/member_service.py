from __future__ import annotations

from typing import Any

import structlog

from app.db.data_service import DataServiceClient, DataServiceError, eq
from app.models.schemas import MemberCreate

MEMBERS = "members"

logger = structlog.get_logger(__name__)


async def list_members(client: DataServiceClient) -> list[dict[str, Any]]:
    """Members directory; a backend rejection degrades to an empty list."""
    try:
        return await client.select(MEMBERS, order="created_at desc")
    except DataServiceError:
        logger.exception("members.fetch_failed")
        return []


async def create_member(client: DataServiceClient, payload: MemberCreate) -> dict[str, Any]:
    return await client.insert(MEMBERS, payload.model_dump(exclude_none=True), single=True)


async def delete_member(client: DataServiceClient, member_id: str) -> None:
    await client.delete(MEMBERS, filters=[eq("id", member_id)])
