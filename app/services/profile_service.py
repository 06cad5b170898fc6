from __future__ import annotations

from typing import Any

import structlog

from app.config import get_settings
from app.db.data_service import DataServiceClient, DataServiceError, eq
from app.models.schemas import CurrentUser, UserProfile

PROFILES = "profiles"

logger = structlog.get_logger(__name__)


def _is_admin_email(email: str | None) -> bool:
    return bool(email) and email.lower() in get_settings().admin_emails


def build_profile(user: CurrentUser, profile: dict[str, Any] | None) -> UserProfile:
    profile = profile or {}
    email = profile.get("email") or user.email or ""
    admin_email = _is_admin_email(user.email)
    default_role = "admin" if admin_email else "inspector"
    default_title = "Administrator" if admin_email else "Inspector"
    fallback_name = user.email.split("@")[0] if user.email else "User"

    role = profile.get("role") or default_role
    return UserProfile(
        name=profile.get("name") or fallback_name or "User",
        email=email,
        phone=profile.get("phone") or "",
        title=profile.get("title") or profile.get("role") or default_title,
        company=profile.get("company") or "",
        address=profile.get("address") or "",
        role=role,
        is_admin=profile.get("role") == "admin" or admin_email,
    )


async def get_user_profile(client: DataServiceClient, user: CurrentUser) -> UserProfile:
    try:
        profile = await client.select_single(PROFILES, filters=[eq("user_id", user.id)])
    except DataServiceError as exc:
        logger.info("profile.missing", code=exc.code)
        profile = None
    return build_profile(user, profile)
