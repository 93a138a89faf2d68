"""
Shared-secret authentication middleware for the video worker.

Mutating /videos/* requests (anything but GET/HEAD/OPTIONS) require an
X-Worker-Secret header matching WORKER_SHARED_SECRET. The API server
attaches it when forwarding generation requests.
"""

import logging
import secrets
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from . import config

logger = logging.getLogger(__name__)

SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}


class WorkerAuthMiddleware(BaseHTTPMiddleware):
    """Reject unauthenticated writes to /videos/* endpoints."""

    PROTECTED_PREFIX = "/videos"

    def __init__(self, app, secret: Optional[str] = None, environment: Optional[str] = None):
        super().__init__(app)
        self.secret = config.WORKER_SHARED_SECRET if secret is None else secret
        self.environment = config.ENVIRONMENT if environment is None else environment

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        # Reads (catalog, job status) and non-video paths are public
        if request.method in SAFE_METHODS or not path.startswith(self.PROTECTED_PREFIX):
            return await call_next(request)

        if not self.secret:
            # In development without the secret set, allow all traffic
            if self.environment == "development":
                return await call_next(request)
            logger.error("[auth] WORKER_SHARED_SECRET not configured, refusing write")
            return JSONResponse(status_code=500, content={"detail": "WORKER_SHARED_SECRET not configured"})

        # Constant-time compare avoids timing attacks
        provided = request.headers.get("X-Worker-Secret", "")
        if not secrets.compare_digest(provided, self.secret):
            return JSONResponse(status_code=401, content={"detail": "Invalid or missing worker secret"})

        return await call_next(request)
