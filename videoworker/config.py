"""
Worker configuration, read once from the environment (.env supported).
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw not in (None, "") else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw in (None, ""):
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ── Provider ─────────────────────────────────────────────────────────────────

RUNWARE_API_KEY = os.environ.get("RUNWARE_API_KEY", "")
RUNWARE_API_BASE = os.environ.get("RUNWARE_API_BASE", "https://api.runware.ai/v1")

# ── Generation timing ────────────────────────────────────────────────────────

GENERATION_TIMEOUT_SECONDS = _env_float("GENERATION_TIMEOUT_SECONDS", 300.0)  # 5 min, video gen is slow
POLL_INTERVAL_SECONDS = _env_float("POLL_INTERVAL_SECONDS", 5.0)

# ── Retry / batch pacing ─────────────────────────────────────────────────────

MAX_RETRIES = _env_int("MAX_RETRIES", 1)
RETRY_BASE_DELAY = _env_float("RETRY_BASE_DELAY", 10.0)  # doubles per attempt: 10, 20, ...
ITEM_DELAY = _env_float("ITEM_DELAY", 1.0)               # between distinct batch items
MAX_PER_PROVIDER = _env_int("MAX_PER_PROVIDER", 2)       # pooled batches only

# ── Dimensions ───────────────────────────────────────────────────────────────

DIMENSIONS_STRICT = _env_bool("DIMENSIONS_STRICT", False)

# ── Service ──────────────────────────────────────────────────────────────────

WORKER_SHARED_SECRET = os.environ.get("WORKER_SHARED_SECRET", "")
ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
