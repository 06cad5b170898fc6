from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from app.db.data_service import DataServiceClient
from app.models.schemas import BulkDeleteResponse, BulkUpdateResponse, CurrentUser, VBAProjectCreate
from app.services.auth_dependencies import get_relay_client, get_service_client, require_user
from app.services.vba_service import (
    bulk_delete_vba_projects,
    bulk_update_vba_projects,
    create_vba_project,
    delete_vba_project,
    get_vba_project,
    list_vba_projects,
)

router = APIRouter(prefix="/api", tags=["vba-projects"])


def _require_ids(payload: dict[str, Any]) -> list[str]:
    ids = payload.get("ids")
    if not isinstance(ids, list) or not ids:
        raise HTTPException(status_code=400, detail="Invalid or empty IDs array")
    return [str(item) for item in ids]


@router.get("/vba-projects")
async def get_vba_projects(client: DataServiceClient = Depends(get_relay_client)) -> dict[str, Any]:
    return {"data": await list_vba_projects(client)}


@router.post("/vba-projects")
async def post_vba_project(
    payload: VBAProjectCreate,
    client: DataServiceClient = Depends(get_relay_client),
) -> dict[str, Any]:
    return {"data": await create_vba_project(client, payload)}


# Registered before the "/{project_id}" routes so "bulk-*" never matches an id.
@router.post("/vba-projects/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete(
    payload: dict[str, Any] = Body(...),
    user: CurrentUser = Depends(require_user),
    client: DataServiceClient = Depends(get_service_client),
) -> BulkDeleteResponse:
    ids = _require_ids(payload)
    deleted = await bulk_delete_vba_projects(client, ids, user)
    return BulkDeleteResponse(deleted=deleted)


@router.post("/vba-projects/bulk-update", response_model=BulkUpdateResponse)
async def bulk_update(
    payload: dict[str, Any] = Body(...),
    user: CurrentUser = Depends(require_user),
    client: DataServiceClient = Depends(get_service_client),
) -> BulkUpdateResponse:
    ids = _require_ids(payload)
    updates = payload.get("updates")
    if not isinstance(updates, dict):
        raise HTTPException(status_code=400, detail="Invalid updates object")
    rows = await bulk_update_vba_projects(client, ids, updates, user)
    return BulkUpdateResponse(updated=len(rows), data=rows)


@router.get("/vba-projects/{project_id}")
async def get_vba_project_by_id(
    project_id: str,
    client: DataServiceClient = Depends(get_relay_client),
) -> dict[str, Any]:
    project = await get_vba_project(client, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return {"data": project}


@router.delete("/vba-projects/{project_id}")
async def delete_vba_project_by_id(
    project_id: str,
    client: DataServiceClient = Depends(get_service_client),
) -> dict[str, bool]:
    await delete_vba_project(client, project_id)
    return {"success": True}
