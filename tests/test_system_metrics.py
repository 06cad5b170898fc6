from __future__ import annotations

from collections import namedtuple
from datetime import datetime, timedelta, timezone

import pytest

from app.models.schemas import SystemInfo, SystemMetrics
from app.observability.system_metrics import (
    SnapshotCache,
    cache_control_header,
    compute_health_score,
    cpu_usage_from_times,
    get_sampler,
    get_snapshot_cache,
    get_system_metrics,
    sample_system_metrics,
)
from tests.supabase_fake import FakeClock

CpuTimes = namedtuple("CpuTimes", ["user", "nice", "system", "idle", "irq"])
DarwinCpuTimes = namedtuple("DarwinCpuTimes", ["user", "nice", "system", "idle"])


class CountingSampler:
    """Returns a new snapshot, with a distinct timestamp, on every call."""

    def __init__(self) -> None:
        self.calls = 0
        self._start = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> SystemMetrics:
        self.calls += 1
        return SystemMetrics(
            timestamp=self._start + timedelta(seconds=self.calls),
            cpu_usage=12.5,
            memory_usage=40.0,
            health_score=compute_health_score(12.5, 40.0, 0.0),
            total_memory=8_000,
            free_memory=4_800,
            used_memory=3_200,
            system_info=SystemInfo(
                platform="linux",
                architecture="x86_64",
                hostname="inspector-01",
                uptime=3600.0,
                load_average=[0.5, 0.4, 0.3],
                cpu_count=4,
                cpu_model="Unknown",
            ),
        )


def test_snapshot_cache_serves_fresh_entries_until_ttl() -> None:
    clock = FakeClock()
    cache = SnapshotCache(ttl_seconds=15, clock=clock)
    cache.set("k", "v1")

    clock.advance(14.9)
    entry = cache.get("k")
    assert entry is not None and entry.value == "v1"
    assert cache.remaining(entry) == pytest.approx(0.1)

    clock.advance(0.1)
    assert cache.get("k") is None


def test_snapshot_cache_expire_drops_entry() -> None:
    cache = SnapshotCache(ttl_seconds=15, clock=FakeClock())
    cache.set("k", "v1")
    cache.expire("k")
    cache.expire("missing")
    assert cache.get("k") is None


@pytest.mark.parametrize("ttl", [0, -1])
def test_snapshot_cache_rejects_non_positive_ttl(ttl) -> None:
    with pytest.raises(ValueError):
        SnapshotCache(ttl_seconds=ttl)


def test_cpu_usage_from_times_averages_across_cores() -> None:
    times = [CpuTimes(60, 0, 20, 20, 0), CpuTimes(20, 0, 20, 60, 0)]
    # average idle 40 of average total 100
    assert cpu_usage_from_times(times) == pytest.approx(60.0)


def test_cpu_usage_from_times_treats_missing_fields_as_zero() -> None:
    assert cpu_usage_from_times([DarwinCpuTimes(25, 0, 25, 50)]) == pytest.approx(50.0)


def test_cpu_usage_from_times_degenerate_inputs() -> None:
    assert cpu_usage_from_times([]) == 0.0
    assert cpu_usage_from_times([CpuTimes(0, 0, 0, 0, 0)]) == 0.0
    assert cpu_usage_from_times([CpuTimes(0, 0, 0, 100, 0)]) == 0.0


def test_compute_health_score() -> None:
    assert compute_health_score(0, 0, 0) == 100
    assert compute_health_score(30, 60, 0) == 70
    assert compute_health_score(100, 100, 100) == 0


def test_sample_system_metrics_stays_in_bounds() -> None:
    snapshot = sample_system_metrics()
    assert 0 <= snapshot.cpu_usage <= 100
    assert 0 <= snapshot.memory_usage <= 100
    assert 0 <= snapshot.health_score <= 100
    assert snapshot.used_memory + snapshot.free_memory == snapshot.total_memory
    assert snapshot.system_info.cpu_count >= 1
    assert snapshot.disk_usage == 0
    assert snapshot.network_activity == 0


def test_get_system_metrics_samples_once_per_window() -> None:
    clock = FakeClock()
    cache = SnapshotCache(ttl_seconds=15, clock=clock)
    sampler = CountingSampler()

    first, fresh, hit = get_system_metrics(cache, sampler)
    assert (fresh, hit) == (15, False)

    clock.advance(5)
    second, fresh, hit = get_system_metrics(cache, sampler)
    assert second is first
    assert hit is True
    assert fresh == pytest.approx(10)
    assert sampler.calls == 1


def test_cache_control_header_rounds_up() -> None:
    assert cache_control_header(15) == "public, max-age=15, stale-while-revalidate=30"
    assert cache_control_header(9.2) == "public, max-age=10, stale-while-revalidate=30"
    assert cache_control_header(-1) == "public, max-age=0, stale-while-revalidate=30"


def _override(app, clock: FakeClock, sampler) -> None:
    cache = SnapshotCache(ttl_seconds=15, clock=clock)
    app.dependency_overrides[get_snapshot_cache] = lambda: cache
    app.dependency_overrides[get_sampler] = lambda: sampler


async def test_system_metrics_endpoint_caches_for_fifteen_seconds(api_client) -> None:
    from app.main import app

    clock = FakeClock()
    sampler = CountingSampler()
    _override(app, clock, sampler)

    r1 = await api_client.get("/api/system-metrics")
    assert r1.status_code == 200
    assert r1.headers["cache-control"] == "public, max-age=15, stale-while-revalidate=30"
    assert r1.headers["x-cache"] == "MISS"

    clock.advance(5)
    r2 = await api_client.get("/api/system-metrics")
    assert r2.headers["x-cache"] == "HIT"
    assert r2.headers["cache-control"] == "public, max-age=10, stale-while-revalidate=30"
    assert r2.json()["timestamp"] == r1.json()["timestamp"]

    clock.advance(11)
    r3 = await api_client.get("/api/system-metrics")
    assert r3.headers["x-cache"] == "MISS"
    assert r3.json()["timestamp"] != r1.json()["timestamp"]
    assert sampler.calls == 2


async def test_system_metrics_endpoint_uses_camel_case_payload(api_client) -> None:
    from app.main import app

    _override(app, FakeClock(), CountingSampler())

    resp = await api_client.get("/api/system-metrics")
    payload = resp.json()
    assert payload["timestamp"].endswith("Z")
    for key in ("cpuUsage", "memoryUsage", "diskUsage", "networkActivity", "healthScore", "systemInfo"):
        assert key in payload
    assert payload["systemInfo"]["loadAverage"] == [0.5, 0.4, 0.3]
    assert payload["securityAlerts"] == 0
    assert payload["activeConnections"] == 0
    assert payload["blockedThreats"] == 0


async def test_system_metrics_endpoint_reports_sampling_failure(api_client) -> None:
    from app.main import app

    def broken_sampler() -> SystemMetrics:
        raise OSError("proc unavailable")

    _override(app, FakeClock(), broken_sampler)

    resp = await api_client.get("/api/system-metrics")
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Failed to get system metrics"}
    assert "cache-control" not in resp.headers
