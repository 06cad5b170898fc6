from __future__ import annotations

from urllib.parse import quote

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import RedirectResponse

from app.config import get_settings
from app.db.data_service import DataServiceError, DataServiceUnavailable
from app.models.schemas import CurrentUser, LoginRequest
from app.services.auth_dependencies import require_user, resolve_credential
from app.services.auth_service import AuthError, AuthServiceClient, Session

router = APIRouter(tags=["auth"])

logger = structlog.get_logger(__name__)


def set_session_cookies(response: Response, session: Session) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.access_token_cookie,
        value=session.access_token,
        max_age=settings.access_token_max_age,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    if session.refresh_token:
        response.set_cookie(
            key=settings.refresh_token_cookie,
            value=session.refresh_token,
            max_age=settings.refresh_token_max_age,
            path="/",
            httponly=True,
            secure=settings.cookie_secure,
            samesite="lax",
        )


def clear_session_cookies(response: Response) -> None:
    settings = get_settings()
    response.delete_cookie(settings.access_token_cookie, path="/")
    response.delete_cookie(settings.refresh_token_cookie, path="/")


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or (request.client.host if request.client else "unknown")


@router.post("/api/auth/login")
async def login(payload: LoginRequest, request: Request, response: Response) -> dict:
    ip = _client_ip(request)
    user_agent = request.headers.get("user-agent", "unknown")

    async with AuthServiceClient() as auth:
        try:
            session = await auth.sign_in_with_password(payload.email, payload.password)
        except AuthError as exc:
            logger.warning("auth.login_failed", email=payload.email, ip=ip, user_agent=user_agent)
            raise HTTPException(status_code=401, detail=str(exc)) from exc

    logger.info("auth.login_succeeded", email=payload.email, ip=ip, user_agent=user_agent)
    set_session_cookies(response, session)
    return {"success": True, "user": session.user}


@router.post("/api/auth/logout")
async def logout(request: Request, response: Response) -> dict[str, bool]:
    credential = resolve_credential(request)
    if credential.token:
        async with AuthServiceClient() as auth:
            try:
                await auth.sign_out(credential.token)
            except (DataServiceError, DataServiceUnavailable):
                logger.warning("auth.remote_sign_out_failed", exc_info=True)
    clear_session_cookies(response)
    return {"success": True}


@router.get("/api/auth/me")
async def me(user: CurrentUser = Depends(require_user)) -> dict[str, str | None]:
    return {"id": user.id, "email": user.email}


@router.get("/auth/callback")
async def auth_callback(
    code: str | None = None,
    type_: str | None = Query(default=None, alias="type"),
    error: str | None = None,
    error_description: str | None = None,
) -> RedirectResponse:
    if error:
        logger.warning("auth.callback_error", error=error, error_description=error_description)
        return RedirectResponse(url=f"/login?error={quote(error_description or error)}", status_code=307)

    if not code:
        return RedirectResponse(url="/login", status_code=307)

    async with AuthServiceClient() as auth:
        try:
            session = await auth.exchange_code_for_session(code)
        except AuthError as exc:
            logger.warning("auth.code_exchange_failed", error=str(exc))
            return RedirectResponse(url=f"/login?error={quote(str(exc))}", status_code=307)
        except DataServiceUnavailable:
            logger.exception("auth.callback_unavailable")
            return RedirectResponse(url=f"/login?error={quote('Authentication failed')}", status_code=307)

    target = "/reset-password" if type_ == "recovery" else "/"
    redirect = RedirectResponse(url=target, status_code=307)
    set_session_cookies(redirect, session)
    return redirect
