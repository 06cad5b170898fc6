from __future__ import annotations

import re
import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.requests import Request

from app.observability.metrics import get_metrics
from app.services.auth_dependencies import peek_credential

# Inbound request ids are reused only when they look like an opaque token.
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{8,64}$")


def credential_source(scope: dict[str, Any]) -> str:
    """Where the caller's credential comes from, as the data-service relay sees it."""
    return peek_credential(Request(scope)).source


class RequestContextMiddleware:
    """Binds request context, writes the access log and feeds HTTP metrics."""

    def __init__(self, app: Callable[..., Any]) -> None:
        self.app = app
        self._excluded_metric_paths = {"/api/performance-metrics", "/api/system-metrics"}

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        inbound_id = headers.get("x-request-id", "")
        request_id = inbound_id if _REQUEST_ID_RE.match(inbound_id) else str(uuid.uuid4())
        path = scope.get("path")

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=path,
            method=scope.get("method"),
            credential=credential_source(scope),
        )

        start = perf_counter()
        status_code: int = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
                MutableHeaders(scope=message)["X-Request-ID"] = request_id

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = (perf_counter() - start) * 1000.0

            if path not in self._excluded_metric_paths:
                get_metrics().observe_http_request(elapsed_ms=elapsed_ms, status_code=status_code)

            log = structlog.get_logger("access")
            log_method = log.warning if status_code >= 500 else log.info
            log_method("http_request", status_code=status_code, elapsed_ms=round(elapsed_ms, 2))

            structlog.contextvars.clear_contextvars()
