import asyncio

import pytest
from fastapi.testclient import TestClient

from videoworker import metrics
from videoworker.main import app
from videoworker.provider_limiter import ProviderLimiter


def test_health_and_metrics():
    with TestClient(app) as api:
        health = api.get("/health").json()
        assert health["status"] == "ok"
        assert health["models"] == 16

        snapshot = api.get("/metrics").json()
        assert snapshot["gauges"]["models.loaded"] == 16
        assert snapshot["uptime_seconds"] >= 0


# ── Metrics ──────────────────────────────────────────────────────────────────

def test_failure_rate():
    metrics.inc_counter("generations.submitted", 4)
    metrics.inc_counter("generations.failed")
    assert metrics.get_snapshot()["failure_rate_5m"] == 25.0


def test_latency_and_errors():
    for ms in (100, 200, 300):
        metrics.record_latency("generation.seedance-1.0-pro", ms)
    metrics.record_error("orchestrator", "provider", "boom", "job-1")

    snapshot = metrics.get_snapshot()
    assert snapshot["latency"]["generation.seedance-1.0-pro"]["p50"] == 200
    assert snapshot["error_patterns"] == {"orchestrator:provider": 1}
    assert snapshot["recent_errors"][0]["job_id"] == "job-1"


def test_reset_keeps_start_time():
    metrics.set_gauge("start_time", 123.0)
    metrics.inc_counter("x")
    metrics.reset()
    assert metrics.get_counter("x") == 0
    assert metrics.get_snapshot()["gauges"] == {"start_time": 123.0}


# ── Provider limiter ─────────────────────────────────────────────────────────

def test_limiter_caps_per_tag():
    limiter = ProviderLimiter(max_per_provider=2)

    async def work(tag):
        async with limiter.slot(tag):
            await asyncio.sleep(0.01)

    async def go():
        await asyncio.gather(*(work("bytedance") for _ in range(5)), *(work("google") for _ in range(3)))

    asyncio.run(go())
    assert limiter.peak("bytedance") == 2
    assert limiter.peak("google") == 2
    assert limiter.active() == 0
    assert metrics.get_snapshot()["gauges"]["provider.bytedance.in_flight"] == 0


def test_limiter_rejects_zero():
    with pytest.raises(ValueError):
        ProviderLimiter(max_per_provider=0)
