import logging
import os
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from . import config
from . import metrics
from .auth_middleware import WorkerAuthMiddleware
from .generation.registry import get_registry
from .generation.routes import videos_router

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Video worker starting up...")
    metrics.set_gauge("start_time", time.time())

    # Fail fast on a broken catalog rather than on the first request
    registry = get_registry()
    metrics.set_gauge("models.loaded", len(registry))

    if not config.RUNWARE_API_KEY:
        logger.warning("RUNWARE_API_KEY is not set; generation requests will be rejected upstream")
    yield
    logger.info("Video worker shutting down...")


app = FastAPI(lifespan=lifespan)
app.add_middleware(WorkerAuthMiddleware)
app.include_router(videos_router)


@app.get("/health")
def health_check():
    """Verify worker is running and env vars are configured."""
    key = config.RUNWARE_API_KEY
    return {
        "status": "ok",
        "environment": config.ENVIRONMENT,
        "runware_api_key_set": bool(key),
        "runware_key_prefix": key[:6] + "..." if key else "MISSING",
        "models": len(get_registry()),
    }


@app.get("/metrics")
def metrics_endpoint():
    """Return a snapshot of all worker metrics."""
    return metrics.get_snapshot()


def run():
    port = int(os.environ.get("PORT", 8080))
    uvicorn.run("videoworker.main:app", host="0.0.0.0", port=port)


if __name__ == "__main__":
    run()
