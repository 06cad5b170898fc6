from __future__ import annotations

from dataclasses import asdict, dataclass
from threading import Lock
from typing import Any


@dataclass
class _LatencyAgg:
    count: int = 0
    sum_ms: float = 0.0
    max_ms: float = 0.0

    def observe(self, elapsed_ms: float) -> None:
        self.count += 1
        self.sum_ms += float(elapsed_ms)
        if elapsed_ms > self.max_ms:
            self.max_ms = float(elapsed_ms)

    @property
    def avg_ms(self) -> float:
        return self.sum_ms / self.count if self.count else 0.0


class InMemoryMetrics:
    """Thread-safe, process-local metrics (resets on restart)."""

    def __init__(self) -> None:
        self._lock = Lock()
        self.http_requests_total: int = 0
        self.http_errors_total: int = 0
        self.data_calls_total: int = 0
        self.data_errors_total: int = 0
        self.http_request_ms = _LatencyAgg()
        self.data_call_ms = _LatencyAgg()

    def observe_http_request(self, elapsed_ms: float, status_code: int = 200) -> None:
        with self._lock:
            self.http_requests_total += 1
            if status_code >= 500:
                self.http_errors_total += 1
            self.http_request_ms.observe(elapsed_ms)

    def observe_data_call(self, elapsed_ms: float, failed: bool = False) -> None:
        with self._lock:
            self.data_calls_total += 1
            if failed:
                self.data_errors_total += 1
            self.data_call_ms.observe(elapsed_ms)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": {
                    "http_requests_total": self.http_requests_total,
                    "http_errors_total": self.http_errors_total,
                    "data_calls_total": self.data_calls_total,
                    "data_errors_total": self.data_errors_total,
                },
                "latency_ms": {
                    "http_request_ms": {**asdict(self.http_request_ms), "avg_ms": round(self.http_request_ms.avg_ms, 2)},
                    "data_call_ms": {**asdict(self.data_call_ms), "avg_ms": round(self.data_call_ms.avg_ms, 2)},
                },
            }

    def reset(self) -> None:
        with self._lock:
            self.http_requests_total = 0
            self.http_errors_total = 0
            self.data_calls_total = 0
            self.data_errors_total = 0
            self.http_request_ms = _LatencyAgg()
            self.data_call_ms = _LatencyAgg()


_METRICS: InMemoryMetrics | None = None


def get_metrics() -> InMemoryMetrics:
    global _METRICS
    if _METRICS is None:
        _METRICS = InMemoryMetrics()
    return _METRICS


def reset_metrics() -> None:
    """Reset metrics counters/aggregates (used by tests)."""

    get_metrics().reset()
