from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
import jwt

from app.config import get_settings
from app.db.data_service import (
    DataServiceError,
    DataServiceUnavailable,
    build_http_client,
    error_from_response,
)
from app.observability.data_calls import instrument_data_call


class AuthError(Exception):
    """The auth service refused the credentials or token."""


@dataclass
class Session:
    access_token: str
    refresh_token: str | None = None
    user: dict[str, Any] = field(default_factory=dict)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify an access token locally with the shared JWT secret."""
    settings = get_settings()
    return jwt.decode(
        token,
        settings.supabase_jwt_secret,
        algorithms=["HS256"],
        audience=settings.supabase_jwt_audience,
    )


def _session_from_payload(payload: dict[str, Any]) -> Session:
    access_token = payload.get("access_token")
    if not access_token:
        raise AuthError("No session created")
    return Session(
        access_token=access_token,
        refresh_token=payload.get("refresh_token"),
        user=payload.get("user") or {},
    )


class AuthServiceClient:
    def __init__(self) -> None:
        settings = get_settings()
        self._http = build_http_client(settings.auth_url, {"apikey": settings.supabase_anon_key})

    async def __aenter__(self) -> "AuthServiceClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self._http.aclose()

    async def _post(self, operation: str, path: str, **kwargs: Any) -> httpx.Response:
        async def call() -> httpx.Response:
            try:
                return await self._http.post(path, **kwargs)
            except httpx.HTTPError as exc:
                raise DataServiceUnavailable(str(exc)) from exc

        return await instrument_data_call(operation=operation, target="auth", fn=call)

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        response = await self._post(
            "sign_in",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if response.status_code >= 400:
            raise AuthError(error_from_response(response).message)
        return _session_from_payload(response.json())

    async def exchange_code_for_session(self, code: str, code_verifier: str | None = None) -> Session:
        body: dict[str, Any] = {"auth_code": code}
        if code_verifier:
            body["code_verifier"] = code_verifier
        response = await self._post("exchange_code", "/token", params={"grant_type": "pkce"}, json=body)
        if response.status_code >= 400:
            raise AuthError(error_from_response(response).message)
        return _session_from_payload(response.json())

    async def get_user(self, access_token: str) -> dict[str, Any]:
        async def call() -> httpx.Response:
            try:
                return await self._http.get("/user", headers={"Authorization": f"Bearer {access_token}"})
            except httpx.HTTPError as exc:
                raise DataServiceUnavailable(str(exc)) from exc

        response = await instrument_data_call(operation="get_user", target="auth", fn=call)
        if response.status_code in (401, 403):
            raise AuthError(error_from_response(response).message)
        if response.status_code >= 400:
            raise error_from_response(response)
        payload = response.json()
        if not isinstance(payload, dict) or not payload.get("id"):
            raise AuthError("User not found")
        return payload

    async def sign_out(self, access_token: str) -> None:
        response = await self._post("sign_out", "/logout", headers={"Authorization": f"Bearer {access_token}"})
        if response.status_code >= 400 and response.status_code not in (401, 403, 404):
            raise DataServiceError(error_from_response(response).message, status_code=response.status_code)
