from __future__ import annotations

from datetime import datetime, timedelta, timezone
from time import perf_counter
from typing import Any

import structlog

from app.config import get_settings
from app.db.data_service import DataServiceClient, DataServiceError, DataServiceUnavailable, gte
from app.observability.metrics import get_metrics

APP_VERSION = "2.0.0"
TRACKED_TABLES = ("vba_projects", "projects", "field_reports", "activity_logs")

logger = structlog.get_logger(__name__)


async def health_report(client: DataServiceClient) -> tuple[dict[str, Any], bool]:
    """Return ``(report, healthy)`` after probing the data service."""
    settings = get_settings()
    start = perf_counter()
    connected = True
    try:
        await client.select("profiles", columns="id", limit=1)
    except (DataServiceError, DataServiceUnavailable):
        logger.warning("health.database_unreachable", exc_info=True)
        connected = False
    latency_ms = round((perf_counter() - start) * 1000.0, 2)

    if not connected:
        db_status = "down"
    elif latency_ms > 1000:
        db_status = "degraded"
    else:
        db_status = "operational"

    def configured(value: str) -> str:
        return "configured" if value else "missing"

    report = {
        "status": "healthy" if connected else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": {"connected": connected, "latency": latency_ms, "status": db_status},
        "services": {
            "supabase": configured(settings.supabase_anon_key),
            "service_role": configured(settings.supabase_service_role_key),
            "encryption": configured(settings.field_encryption_key),
        },
        "metrics": {
            "responseTime": round((perf_counter() - start) * 1000.0, 2),
            "version": APP_VERSION,
            "environment": settings.environment,
        },
    }
    return report, connected


async def _table_stats(client: DataServiceClient, table: str) -> dict[str, Any]:
    return {"tableName": table, "recordCount": await client.count(table)}


async def performance_report(client: DataServiceClient) -> tuple[dict[str, Any], bool]:
    """Collection sizes, recent activity and process-local counters."""
    process = get_metrics().snapshot()
    now = datetime.now(timezone.utc)
    try:
        table_stats = [await _table_stats(client, table) for table in TRACKED_TABLES]
        last_24h = await client.count("activity_logs", filters=[gte("created_at", (now - timedelta(hours=24)).isoformat())])
        last_7d = await client.count("activity_logs", filters=[gte("created_at", (now - timedelta(days=7)).isoformat())])
    except (DataServiceError, DataServiceUnavailable):
        logger.exception("performance.stats_failed")
        return (
            {
                "databaseStats": [{"tableName": table, "recordCount": 0} for table in TRACKED_TABLES],
                "activity": {"last24h": 0, "last7d": 0},
                "process": process,
                "timestamp": now.isoformat(),
                "systemStatus": "offline",
            },
            False,
        )

    return (
        {
            "databaseStats": table_stats,
            "activity": {"last24h": last_24h, "last7d": last_7d},
            "process": process,
            "timestamp": now.isoformat(),
            "systemStatus": "healthy",
        },
        True,
    )
