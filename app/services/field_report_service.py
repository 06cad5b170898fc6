from __future__ import annotations

from typing import Any

from app.config import get_settings
from app.db.data_service import DataServiceClient, DataServiceError, eq
from app.models.schemas import FieldReportCreate

FIELD_REPORTS = "field_reports"


async def list_field_reports(client: DataServiceClient) -> list[dict[str, Any]]:
    return await client.select(FIELD_REPORTS, order="created_at desc")


async def create_field_report(client: DataServiceClient, payload: FieldReportCreate) -> dict[str, Any]:
    row = payload.model_dump(exclude_none=True)
    if not row.get("organization_id"):
        row["organization_id"] = get_settings().default_organization_id
    return await client.insert(FIELD_REPORTS, row, single=True)


async def get_field_report(client: DataServiceClient, report_id: str) -> dict[str, Any] | None:
    try:
        return await client.select_single(FIELD_REPORTS, filters=[eq("id", report_id)])
    except DataServiceError as exc:
        if exc.is_not_found:
            return None
        raise


async def delete_field_report(client: DataServiceClient, report_id: str) -> None:
    await client.delete(FIELD_REPORTS, filters=[eq("id", report_id)])
