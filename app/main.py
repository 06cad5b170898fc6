from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from app.api.activity_logs import router as activity_logs_router
from app.api.auth import router as auth_router
from app.api.errors import register_exception_handlers
from app.api.field_reports import router as field_reports_router
from app.api.members import router as members_router
from app.api.metrics import router as metrics_router
from app.api.organization import router as organization_router
from app.api.projects import router as projects_router
from app.api.system_metrics import router as system_metrics_router
from app.api.user_profile import router as user_profile_router
from app.api.vba_projects import router as vba_projects_router
from app.config import get_settings
from app.db.data_service import DataServiceClient
from app.observability.logging import configure_logging
from app.observability.middleware import RequestContextMiddleware
from app.services.auth_dependencies import get_anon_client
from app.services.status_service import health_report


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(get_settings().log_level)
    yield


app = FastAPI(title="Field Inspection API", version="2.0.0", lifespan=lifespan)
app.add_middleware(RequestContextMiddleware)
register_exception_handlers(app)

app.include_router(auth_router)
app.include_router(projects_router)
app.include_router(vba_projects_router)
app.include_router(field_reports_router)
app.include_router(activity_logs_router)
app.include_router(members_router)
app.include_router(organization_router)
app.include_router(user_profile_router)
app.include_router(system_metrics_router)
app.include_router(metrics_router)


@app.get("/health")
async def health(client: DataServiceClient = Depends(get_anon_client)) -> JSONResponse:
    report, healthy = await health_report(client)
    return JSONResponse(status_code=200 if healthy else 503, content=report)
