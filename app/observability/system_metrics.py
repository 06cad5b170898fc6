from __future__ import annotations

import math
import platform
import socket
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable

import psutil
import structlog

from app.config import get_settings
from app.models.schemas import SystemInfo, SystemMetrics

SYSTEM_METRICS_KEY = "system-metrics"

# Fields summed into the per-core tick total; absent fields count as zero.
_TICK_FIELDS = ("user", "nice", "system", "idle", "irq")

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float


class SnapshotCache:
    """Keyed TTL cache with an injectable clock.

    An entry is fresh while its age is strictly below ``ttl_seconds``. Stale
    entries are never returned; the caller recomputes and calls ``set``.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be greater than zero")
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._lock = Lock()
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return entry

    def set(self, key: str, value: Any) -> CacheEntry:
        entry = CacheEntry(value=value, stored_at=self._clock())
        with self._lock:
            self._entries[key] = entry
        return entry

    def expire(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def remaining(self, entry: CacheEntry) -> float:
        return max(0.0, self.ttl_seconds - (self._clock() - entry.stored_at))


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(high, max(low, value))


def cpu_usage_from_times(per_cpu_times: list[Any]) -> float:
    """CPU busy percentage from cumulative per-core tick counters."""
    if not per_cpu_times:
        return 0.0

    total_idle = 0.0
    total_tick = 0.0
    for times in per_cpu_times:
        total_tick += sum(float(getattr(times, name, 0.0) or 0.0) for name in _TICK_FIELDS)
        total_idle += float(getattr(times, "idle", 0.0) or 0.0)

    count = len(per_cpu_times)
    idle = total_idle / count
    total = total_tick / count
    if total <= 0:
        return 0.0
    return _clamp(100.0 - (idle / total) * 100.0)


def compute_health_score(cpu_usage: float, memory_usage: float, disk_usage: float) -> int:
    return round(
        (max(0.0, 100.0 - cpu_usage) + max(0.0, 100.0 - memory_usage) + max(0.0, 100.0 - disk_usage)) / 3
    )


def sample_system_metrics() -> SystemMetrics:
    per_cpu = psutil.cpu_times(percpu=True)
    memory = psutil.virtual_memory()

    cpu_usage = cpu_usage_from_times(per_cpu)
    total_memory = int(memory.total)
    free_memory = int(memory.available)
    used_memory = total_memory - free_memory
    memory_usage = _clamp((used_memory / total_memory) * 100.0) if total_memory else 0.0

    # Disk and network are not instrumented yet.
    disk_usage = 0.0
    network_activity = 0.0

    system_info = SystemInfo(
        platform=platform.system().lower(),
        architecture=platform.machine(),
        hostname=socket.gethostname(),
        uptime=max(0.0, time.time() - psutil.boot_time()),
        load_average=list(psutil.getloadavg()),
        cpu_count=len(per_cpu),
        cpu_model=platform.processor() or "Unknown",
    )

    return SystemMetrics(
        timestamp=datetime.now(timezone.utc),
        cpu_usage=cpu_usage,
        memory_usage=memory_usage,
        disk_usage=disk_usage,
        network_activity=network_activity,
        health_score=compute_health_score(cpu_usage, memory_usage, disk_usage),
        total_memory=total_memory,
        free_memory=free_memory,
        used_memory=used_memory,
        system_info=system_info,
    )


def get_system_metrics(
    cache: SnapshotCache,
    sampler: Callable[[], SystemMetrics] = sample_system_metrics,
) -> tuple[SystemMetrics, float, bool]:
    """Return ``(snapshot, seconds_fresh, cache_hit)``, sampling on a miss."""
    entry = cache.get(SYSTEM_METRICS_KEY)
    if entry is not None:
        return entry.value, cache.remaining(entry), True

    snapshot = sampler()
    entry = cache.set(SYSTEM_METRICS_KEY, snapshot)
    logger.debug("system_metrics.sampled", cpu_usage=round(snapshot.cpu_usage, 2), health_score=snapshot.health_score)
    return snapshot, cache.ttl_seconds, False


def cache_control_header(seconds_fresh: float) -> str:
    settings = get_settings()
    max_age = max(0, math.ceil(seconds_fresh))
    return f"public, max-age={max_age}, stale-while-revalidate={settings.metrics_stale_while_revalidate_seconds}"


_CACHE: SnapshotCache | None = None


def get_snapshot_cache() -> SnapshotCache:
    global _CACHE
    if _CACHE is None:
        _CACHE = SnapshotCache(ttl_seconds=get_settings().metrics_cache_ttl_seconds)
    return _CACHE


def set_snapshot_cache(cache: SnapshotCache | None) -> None:
    global _CACHE
    _CACHE = cache


def get_sampler() -> Callable[[], SystemMetrics]:
    return sample_system_metrics
