from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from app.db.data_service import DataServiceClient
from app.models.schemas import FieldReportCreate
from app.services.auth_dependencies import get_relay_client, get_user_client
from app.services.field_report_service import (
    create_field_report,
    delete_field_report,
    get_field_report,
    list_field_reports,
)

router = APIRouter(prefix="/api", tags=["field-reports"])


@router.get("/field-reports")
async def get_field_reports(client: DataServiceClient = Depends(get_relay_client)) -> dict[str, Any]:
    return {"data": await list_field_reports(client)}


@router.post("/field-reports")
async def post_field_report(
    payload: FieldReportCreate,
    client: DataServiceClient = Depends(get_relay_client),
) -> dict[str, Any]:
    return {"data": await create_field_report(client, payload)}


@router.get("/field-reports/{report_id}")
async def get_field_report_by_id(
    report_id: str,
    client: DataServiceClient = Depends(get_relay_client),
) -> dict[str, Any]:
    report = await get_field_report(client, report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return {"data": report}


@router.delete("/field-reports/{report_id}")
async def delete_field_report_by_id(
    report_id: str,
    client: DataServiceClient = Depends(get_user_client),
) -> dict[str, bool]:
    await delete_field_report(client, report_id)
    return {"success": True}
