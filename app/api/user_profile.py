from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from app.db.data_service import DataServiceClient
from app.models.schemas import CurrentUser
from app.services.auth_dependencies import get_user_client, require_user
from app.services.profile_service import get_user_profile

router = APIRouter(prefix="/api", tags=["profile"])


@router.get("/user-profile")
async def user_profile(
    user: CurrentUser = Depends(require_user),
    client: DataServiceClient = Depends(get_user_client),
) -> dict[str, Any]:
    profile = await get_user_profile(client, user)
    return profile.model_dump(by_alias=True)
