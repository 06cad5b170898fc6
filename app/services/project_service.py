from __future__ import annotations

from typing import Any

from app.db.data_service import DataServiceClient
from app.services.encryption_service import decrypt_budget, encrypt_sensitive_fields

PROJECTS = "projects"


async def list_projects(client: DataServiceClient) -> list[dict[str, Any]]:
    rows = await client.select(PROJECTS, order="created_at desc")
    return [decrypt_budget(row) for row in rows]


async def create_project(client: DataServiceClient, payload: dict[str, Any]) -> dict[str, Any]:
    row = encrypt_sensitive_fields(payload)
    created = await client.insert(PROJECTS, row, single=True)
    return decrypt_budget(created)
