"""
Credential relay for data-service calls.

Precedence is ``Authorization: Bearer`` header, then the access-token cookie,
then anonymous. Resolution never raises; routes that need a caller identity
depend on ``require_user`` explicitly.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, replace
from typing import Literal

import jwt
import structlog
from fastapi import Depends, HTTPException, Request, status

from app.config import get_settings
from app.db.data_service import DataServiceClient
from app.models.schemas import CurrentUser
from app.services.auth_service import AuthError, AuthServiceClient, decode_access_token

CredentialSource = Literal["header", "cookie", "anonymous"]


@dataclass(frozen=True)
class Credential:
    token: str | None
    source: CredentialSource
    subject: str | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.token is None


def _extract_bearer_token(authorization: str | None) -> str | None:
    parts = (authorization or "").strip().split(" ", 1)
    if len(parts) != 2:
        return None
    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        return None
    return token


def _verified_subject(token: str) -> str | None:
    if not get_settings().supabase_jwt_secret:
        return None
    try:
        subject = decode_access_token(token).get("sub")
    except jwt.PyJWTError:
        return None
    return str(subject) if subject else None


def peek_credential(request: Request) -> Credential:
    """Locate the caller's token without verifying it."""
    token = _extract_bearer_token(request.headers.get("authorization"))
    if token:
        return Credential(token=token, source="header")

    token = request.cookies.get(get_settings().access_token_cookie)
    if token:
        return Credential(token=token, source="cookie")

    return Credential(token=None, source="anonymous")


def resolve_credential(request: Request) -> Credential:
    credential = peek_credential(request)
    if credential.token is None:
        return credential
    return replace(credential, subject=_verified_subject(credential.token))


async def get_relay_client(request: Request) -> AsyncIterator[DataServiceClient]:
    """Data-service client evaluated as the caller (anonymous when no credential)."""
    credential = resolve_credential(request)
    client = DataServiceClient(api_key=get_settings().supabase_anon_key, bearer=credential.token)
    try:
        yield client
    finally:
        await client.aclose()


async def get_anon_client() -> AsyncIterator[DataServiceClient]:
    """Anonymous client that ignores any caller credential."""
    client = DataServiceClient(api_key=get_settings().supabase_anon_key)
    try:
        yield client
    finally:
        await client.aclose()


async def require_user(request: Request) -> CurrentUser:
    credential = resolve_credential(request)
    if credential.token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    settings = get_settings()
    if settings.supabase_jwt_secret:
        try:
            claims = decode_access_token(credential.token)
        except jwt.PyJWTError as exc:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session") from exc
        user_id = claims.get("sub")
        if not user_id:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
        user = CurrentUser(id=str(user_id), email=claims.get("email"), token=credential.token)
    else:
        async with AuthServiceClient() as auth:
            try:
                identity = await auth.get_user(credential.token)
            except AuthError as exc:
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session") from exc
        user = CurrentUser(id=str(identity["id"]), email=identity.get("email"), token=credential.token)

    structlog.contextvars.bind_contextvars(user_id=user.id)
    return user


async def get_user_client(user: CurrentUser = Depends(require_user)) -> AsyncIterator[DataServiceClient]:
    """Relay client for routes that refuse anonymous callers."""
    client = DataServiceClient(api_key=get_settings().supabase_anon_key, bearer=user.token)
    try:
        yield client
    finally:
        await client.aclose()


async def get_service_client(user: CurrentUser = Depends(require_user)) -> AsyncIterator[DataServiceClient]:
    """Privileged client that bypasses row-level security; authenticated callers only."""
    client = DataServiceClient(api_key=get_settings().service_key)
    try:
        yield client
    finally:
        await client.aclose()
