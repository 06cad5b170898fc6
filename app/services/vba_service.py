from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog

from app.config import get_settings
from app.db.data_service import (
    DataServiceClient,
    DataServiceError,
    DataServiceUnavailable,
    eq,
    in_,
)
from app.models.schemas import CurrentUser, VBAProjectCreate
from app.services.activity_service import log_activity, utc_now_iso
from app.services.project_service import PROJECTS

VBA_PROJECTS = "vba_projects"

_MIRRORED_FIELDS = (
    "id",
    "project_name",
    "project_number",
    "address",
    "city",
    "state",
    "organization_id",
    "created_at",
    "updated_at",
)

logger = structlog.get_logger(__name__)


class CascadeDeleteError(DataServiceError):
    """Mirror delete was rejected; ``restored`` tells whether the VBA rows came back."""

    def __init__(self, cause: DataServiceError, restored: bool) -> None:
        super().__init__(cause.message, code=cause.code, status_code=cause.status_code, details=cause.details)
        self.restored = restored


class CascadeDeleteUnavailable(DataServiceUnavailable):
    """Mirror delete never reached the data service; ``restored`` as above."""

    def __init__(self, cause: DataServiceUnavailable, restored: bool) -> None:
        super().__init__(str(cause))
        self.restored = restored


def mirror_row(vba_project: dict[str, Any]) -> dict[str, Any]:
    """General ``projects`` row sharing the VBA project's id."""
    row = {name: vba_project.get(name) for name in _MIRRORED_FIELDS}
    row["permit_number"] = vba_project.get("permit_number") or vba_project.get("project_number")
    status = vba_project.get("status")
    row["status"] = "active" if status == "scheduled" else status
    return row


async def list_vba_projects(client: DataServiceClient) -> list[dict[str, Any]]:
    return await client.select(VBA_PROJECTS, order="created_at desc")


async def get_vba_project(client: DataServiceClient, project_id: str) -> dict[str, Any] | None:
    try:
        return await client.select_single(VBA_PROJECTS, filters=[eq("id", project_id)])
    except DataServiceError as exc:
        if exc.is_not_found:
            return None
        raise


async def create_vba_project(client: DataServiceClient, payload: VBAProjectCreate) -> dict[str, Any]:
    row = payload.model_dump(exclude_none=True)
    if not row.get("organization_id"):
        row["organization_id"] = get_settings().default_organization_id

    vba_project = await client.insert(VBA_PROJECTS, row, single=True)

    try:
        await client.insert(PROJECTS, mirror_row(vba_project))
    except DataServiceError as exc:
        if not exc.is_unique_violation:
            logger.error("vba.mirror_insert_failed", project_id=vba_project.get("id"), code=exc.code, error=exc.message)
    return vba_project


async def cascade_delete(client: DataServiceClient, project_ids: Sequence[str]) -> list[dict[str, Any]]:
    """Delete VBA projects and their mirrored ``projects`` rows.

    Phase one removes the VBA rows, phase two the mirrors. A missing mirror is
    fine. Any other phase-two failure re-inserts the phase-one rows and raises
    ``CascadeDeleteError``, or ``CascadeDeleteUnavailable`` when the service
    could not be reached.
    """
    ids = list(project_ids)
    deleted = await client.delete(VBA_PROJECTS, filters=[in_("id", ids)])

    try:
        await client.delete(PROJECTS, filters=[in_("id", ids)])
    except DataServiceError as exc:
        if exc.is_not_found:
            return deleted
        raise CascadeDeleteError(exc, restored=await _restore(client, deleted)) from exc
    except DataServiceUnavailable as exc:
        raise CascadeDeleteUnavailable(exc, restored=await _restore(client, deleted)) from exc

    return deleted


async def _restore(client: DataServiceClient, rows: list[dict[str, Any]]) -> bool:
    if not rows:
        return True
    try:
        await client.insert(VBA_PROJECTS, rows)
    except (DataServiceError, DataServiceUnavailable):
        logger.exception("vba.cascade_restore_failed", orphaned_ids=[row.get("id") for row in rows])
        return False
    logger.warning("vba.cascade_rolled_back", project_ids=[row.get("id") for row in rows])
    return True


async def delete_vba_project(client: DataServiceClient, project_id: str) -> None:
    await cascade_delete(client, [project_id])


async def bulk_delete_vba_projects(client: DataServiceClient, ids: list[str], user: CurrentUser) -> int:
    to_delete = await client.select(
        VBA_PROJECTS,
        columns="id,project_name,project_number",
        filters=[in_("id", ids)],
    )
    await cascade_delete(client, ids)
    await log_activity(
        client,
        "bulk_delete_vba_projects",
        user.id,
        {"deleted_projects": to_delete, "count": len(ids)},
    )
    return len(ids)


async def bulk_update_vba_projects(
    client: DataServiceClient,
    ids: list[str],
    updates: dict[str, Any],
    user: CurrentUser,
) -> list[dict[str, Any]]:
    final_updates = {**updates, "updated_at": utc_now_iso()}
    rows = await client.update(VBA_PROJECTS, final_updates, filters=[in_("id", ids)])
    await log_activity(
        client,
        "bulk_update_vba_projects",
        user.id,
        {"project_ids": ids, "updates": final_updates, "count": len(ids)},
    )
    return rows
