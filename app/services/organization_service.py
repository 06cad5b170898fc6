from __future__ import annotations

from typing import Any

import structlog

from app.db.data_service import DataServiceClient, eq
from app.models.schemas import OrganizationUpdate

ORGANIZATIONS = "organizations"

logger = structlog.get_logger(__name__)


async def get_organization(client: DataServiceClient) -> dict[str, Any]:
    """The single organization row, or ``{}`` before one has been saved."""
    rows = await client.select(ORGANIZATIONS, order="created_at asc", limit=1)
    return rows[0] if rows else {}


async def save_organization(client: DataServiceClient, payload: OrganizationUpdate) -> dict[str, Any]:
    """Update the existing organization in place, or create it on first save."""
    values = payload.model_dump(exclude_unset=True)
    existing = await client.select(ORGANIZATIONS, columns="id", order="created_at asc", limit=1)

    if existing:
        org_id = existing[0]["id"]
        rows = await client.update(ORGANIZATIONS, values, filters=[eq("id", org_id)])
        logger.info("organization.updated", organization_id=org_id, fields=sorted(values))
        return rows[0] if rows else {"id": org_id, **values}

    created = await client.insert(ORGANIZATIONS, values, single=True)
    logger.info("organization.created", organization_id=created.get("id"))
    return created
