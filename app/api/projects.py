from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from app.db.data_service import DataServiceClient
from app.services.auth_dependencies import get_relay_client
from app.services.project_service import create_project, list_projects

router = APIRouter(prefix="/api", tags=["projects"])


@router.get("/projects")
async def get_projects(client: DataServiceClient = Depends(get_relay_client)) -> dict[str, Any]:
    return {"data": await list_projects(client)}


@router.post("/projects")
async def post_project(
    payload: dict[str, Any] = Body(...),
    client: DataServiceClient = Depends(get_relay_client),
) -> dict[str, Any]:
    project = await create_project(client, payload)
    return {"data": project, "message": "Project created"}
