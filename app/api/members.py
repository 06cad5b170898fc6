from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from app.db.data_service import DataServiceClient
from app.models.schemas import MemberCreate
from app.services.auth_dependencies import get_relay_client, get_user_client
from app.services.member_service import create_member, delete_member, list_members

router = APIRouter(prefix="/api", tags=["members"])


@router.get("/members")
async def get_members(client: DataServiceClient = Depends(get_relay_client)) -> dict[str, Any]:
    return {"data": await list_members(client)}


@router.post("/members")
async def post_member(
    payload: MemberCreate,
    client: DataServiceClient = Depends(get_user_client),
) -> dict[str, Any]:
    return {"data": await create_member(client, payload)}


@router.delete("/members/{member_id}")
async def delete_member_by_id(
    member_id: str,
    client: DataServiceClient = Depends(get_user_client),
) -> dict[str, bool]:
    await delete_member(client, member_id)
    return {"success": True}
