from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from app.db.data_service import DataServiceClient
from app.models.schemas import OrganizationUpdate
from app.services.auth_dependencies import get_service_client
from app.services.organization_service import get_organization, save_organization

router = APIRouter(prefix="/api", tags=["organization"])


@router.get("/organization")
async def read_organization(client: DataServiceClient = Depends(get_service_client)) -> dict[str, Any]:
    return await get_organization(client)


@router.put("/organization")
async def update_organization(
    payload: OrganizationUpdate,
    client: DataServiceClient = Depends(get_service_client),
) -> dict[str, Any]:
    return await save_organization(client, payload)
