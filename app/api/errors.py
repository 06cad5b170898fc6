from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.db.data_service import DataServiceError, DataServiceUnavailable
from app.services.vba_service import CascadeDeleteError, CascadeDeleteUnavailable

logger = structlog.get_logger("errors")


async def _data_service_error(request: Request, exc: DataServiceError) -> JSONResponse:
    logger.error("data_service.rejected", code=exc.code, error=exc.message, details=exc.details)
    content = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, CascadeDeleteError):
        content["restored"] = exc.restored
    return JSONResponse(status_code=400, content=content)


async def _data_service_unavailable(request: Request, exc: Exception) -> JSONResponse:
    logger.error("data_service.unavailable", error=str(exc))
    content: dict[str, object] = {"detail": "Data service unavailable"}
    if isinstance(exc, CascadeDeleteUnavailable):
        content["restored"] = exc.restored
    return JSONResponse(status_code=503, content=content)


async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DataServiceError, _data_service_error)
    app.add_exception_handler(DataServiceUnavailable, _data_service_unavailable)
    app.add_exception_handler(Exception, _unexpected)
