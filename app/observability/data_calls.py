from __future__ import annotations

from time import perf_counter
from typing import Awaitable, Callable, TypeVar

import structlog

from app.observability.metrics import get_metrics


T = TypeVar("T")


async def instrument_data_call(*, operation: str, target: str, fn: Callable[[], Awaitable[T]]) -> T:
    """Time a data/auth service call, update metrics, and emit a structured log event."""

    log = structlog.get_logger("data_service")
    start = perf_counter()
    try:
        result = await fn()
    except Exception:
        elapsed_ms = (perf_counter() - start) * 1000.0
        get_metrics().observe_data_call(elapsed_ms=elapsed_ms, failed=True)
        log.warning(
            "data_call_failed",
            operation=operation,
            target=target,
            elapsed_ms=round(elapsed_ms, 2),
            exc_info=True,
        )
        raise

    elapsed_ms = (perf_counter() - start) * 1000.0
    get_metrics().observe_data_call(elapsed_ms=elapsed_ms)
    log.info(
        "data_call",
        operation=operation,
        target=target,
        elapsed_ms=round(elapsed_ms, 2),
    )
    return result
