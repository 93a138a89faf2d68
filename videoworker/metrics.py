"""
Thread-safe in-memory metrics collector for the video worker.

Tracks the Four Golden Signals for generation traffic:
  - Latency: end-to-end generation duration per model
  - Traffic: generations submitted / completed / retried
  - Errors: failures by error type, plus the last few for RCA
  - Saturation: in-flight batches and per-provider slots

All data is ephemeral (resets on restart).
"""

import time
import threading
from typing import Dict, List
from collections import defaultdict

_lock = threading.Lock()

# ── Counters ──────────────────────────────────────────────────────────────────
_counters: Dict[str, int] = defaultdict(int)

# ── Latency samples (last 100 per key) ───────────────────────────────────────
_latency_samples: Dict[str, List[float]] = defaultdict(list)
MAX_SAMPLES = 100

# ── Per-minute buckets, last 60 minutes ───────────────────────────────────────
_timeseries: Dict[str, Dict[int, int]] = defaultdict(lambda: defaultdict(int))
MAX_MINUTES = 60

# ── Gauges ────────────────────────────────────────────────────────────────────
_gauges: Dict[str, float] = defaultdict(float)

# ── Error log (last 50 errors) ────────────────────────────────────────────────
_recent_errors: List[dict] = []
MAX_ERRORS = 50


def _minute_bucket() -> int:
    return int(time.time()) // 60 * 60


# ── Public API ────────────────────────────────────────────────────────────────

def inc_counter(name: str, amount: int = 1):
    """Increment a counter (e.g. 'generations.submitted', 'generations.retried')."""
    with _lock:
        _counters[name] += amount
        _timeseries[name][_minute_bucket()] += amount


def get_counter(name: str) -> int:
    with _lock:
        return _counters.get(name, 0)


def record_latency(key: str, duration_ms: float):
    with _lock:
        samples = _latency_samples[key]
        samples.append(duration_ms)
        if len(samples) > MAX_SAMPLES:
            _latency_samples[key] = samples[-MAX_SAMPLES:]


def set_gauge(name: str, value: float):
    """Set a gauge value (e.g. 'batch.in_flight')."""
    with _lock:
        _gauges[name] = value


def add_gauge(name: str, delta: float):
    with _lock:
        _gauges[name] += delta


def record_error(source: str, error_type: str, message: str, job_id: str = ""):
    """Keep a failure for root-cause analysis."""
    with _lock:
        _recent_errors.append({
            "timestamp": time.time(),
            "source": source,
            "error_type": error_type,
            "message": message[:300],
            "job_id": job_id,
        })
        if len(_recent_errors) > MAX_ERRORS:
            _recent_errors.pop(0)


def reset():
    """Drop everything except the start time. Tests only."""
    with _lock:
        start = _gauges.get("start_time")
        _counters.clear()
        _latency_samples.clear()
        _timeseries.clear()
        _gauges.clear()
        _recent_errors.clear()
        if start is not None:
            _gauges["start_time"] = start


def get_snapshot() -> dict:
    """Complete snapshot for the /metrics endpoint."""
    now = time.time()
    minute_now = int(now) // 60 * 60

    with _lock:
        latency_stats = {}
        for key, samples in _latency_samples.items():
            if not samples:
                continue
            sorted_s = sorted(samples)
            n = len(sorted_s)
            latency_stats[key] = {
                "p50": sorted_s[n // 2],
                "p95": sorted_s[int(n * 0.95)] if n >= 20 else sorted_s[-1],
                "avg": sum(sorted_s) / n,
                "count": n,
            }

        timeseries_out = {}
        for metric_name, buckets in _timeseries.items():
            timeseries_out[metric_name] = [
                {"t": minute_now - (MAX_MINUTES - 1 - i) * 60,
                 "v": buckets.get(minute_now - (MAX_MINUTES - 1 - i) * 60, 0)}
                for i in range(MAX_MINUTES)
            ]
            cutoff = minute_now - MAX_MINUTES * 60
            for k in [k for k in buckets if k < cutoff]:
                del buckets[k]

        errors_by_type: Dict[str, int] = defaultdict(int)
        for err in _recent_errors:
            errors_by_type[f"{err['source']}:{err['error_type']}"] += 1

        # Failure rate over the last 5 minutes
        recent_cutoff = minute_now - 5 * 60
        submitted = sum(
            v for t, v in _timeseries.get("generations.submitted", {}).items() if t >= recent_cutoff
        )
        failed = sum(
            v for t, v in _timeseries.get("generations.failed", {}).items() if t >= recent_cutoff
        )
        failure_rate = (failed / submitted * 100) if submitted > 0 else 0

        return {
            "timestamp": now,
            "counters": dict(_counters),
            "gauges": dict(_gauges),
            "latency": latency_stats,
            "timeseries": timeseries_out,
            "failure_rate_5m": round(failure_rate, 2),
            "recent_errors": list(_recent_errors[-10:]),
            "error_patterns": dict(errors_by_type),
            "uptime_seconds": now - _gauges.get("start_time", now),
        }
