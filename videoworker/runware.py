"""
Runware REST client for video inference.

Every call is a POST of a task array to the single Runware endpoint:
  submit   [{"taskType": "videoInference", ...}]
  poll     [{"taskType": "getResponse", "taskUUID": ...}]

Status polls retry 429 / 5xx with exponential backoff + jitter. Submits are
sent once: a duplicated submit is a duplicated charge.
"""

import asyncio
import logging
import random
from typing import Optional

import httpx

from . import config
from .errors import ProviderError

logger = logging.getLogger(__name__)

# ── Retry configuration (status polls only) ──────────────────────────────────
POLL_MAX_RETRIES = 3
BASE_DELAY = 2.0        # seconds, doubles each retry: 2, 4, 8
JITTER_MAX = 1.0        # random jitter 0-1s added to each delay
RETRYABLE_STATUS_CODES = {429, 502, 503, 504}
NON_RETRYABLE_AUTH_CODES = {401, 403}

REQUEST_TIMEOUT = 30.0


def _error_message(errors: list, status_code: int) -> str:
    if errors:
        first = errors[0] or {}
        return first.get("message") or first.get("code") or str(first)
    return f"Runware HTTP {status_code}"


class RunwareClient:
    """
    Thin async wrapper over the Runware task API.

    `transport` lets tests plug in httpx.MockTransport; `sleep` lets them
    skip the backoff delays.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_retries: int = POLL_MAX_RETRIES,
        sleep=asyncio.sleep,
    ):
        self.api_key = config.RUNWARE_API_KEY if api_key is None else api_key
        self.base_url = base_url or config.RUNWARE_API_BASE
        self.timeout = timeout
        self.max_retries = max_retries
        self._transport = transport
        self._sleep = sleep

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _backoff(attempt: int, retry_after: Optional[str] = None) -> float:
        if retry_after and retry_after.isdigit():
            return float(retry_after)
        return BASE_DELAY * (2 ** attempt) + random.uniform(0, JITTER_MAX)

    async def _post(self, tasks: list, retry: bool) -> tuple[int, dict]:
        """POST a task array. Returns (status_code, parsed body)."""
        attempts = self.max_retries + 1 if retry else 1

        for attempt in range(attempts):
            last = attempt + 1 >= attempts
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.post(self.base_url, json=tasks, headers=self._headers())
            except httpx.TransportError as e:
                if last:
                    raise ProviderError(f"Runware request failed: {e}") from e
                delay = self._backoff(attempt)
                logger.warning(
                    f"[runware] request error on attempt {attempt + 1}/{attempts}: {e}, "
                    f"retrying in {delay:.1f}s"
                )
                await self._sleep(delay)
                continue

            if response.status_code in RETRYABLE_STATUS_CODES and not last:
                delay = self._backoff(attempt, response.headers.get("Retry-After"))
                logger.warning(
                    f"[runware] {response.status_code} on attempt {attempt + 1}/{attempts}, "
                    f"retrying in {delay:.1f}s"
                )
                await self._sleep(delay)
                continue

            try:
                payload = response.json()
            except ValueError:
                if response.status_code < 400:
                    raise ProviderError(
                        f"Runware returned a non-JSON body (HTTP {response.status_code})"
                    )
                payload = {}

            if not isinstance(payload, dict):
                raise ProviderError(f"Runware returned unexpected payload: {payload!r:.200}")
            return response.status_code, payload

        raise ProviderError(f"Runware request failed after {attempts} attempts")

    # ── Public API ───────────────────────────────────────────────────────

    async def submit_task(self, body: dict) -> dict:
        """Start a videoInference task. Returns the acknowledged task record."""
        logger.info(
            f"[runware] submit model={body.get('model')} task={body.get('taskUUID')} "
            f"duration={body.get('duration')}"
        )
        status, payload = await self._post([body], retry=False)

        errors = payload.get("errors")
        if errors or status >= 400:
            raise ProviderError(
                _error_message(errors, status),
                retryable=status not in NON_RETRYABLE_AUTH_CODES,
            )

        data = payload.get("data") or []
        return data[0] if data else {"taskUUID": body.get("taskUUID")}

    async def get_response(self, task_uuid: str) -> Optional[dict]:
        """
        Latest record for one task, or None when Runware has nothing yet.

        A task-level error comes back as {"status": "error", "error": msg}.
        """
        status, payload = await self._post(
            [{"taskType": "getResponse", "taskUUID": task_uuid}],
            retry=True,
        )

        for err in payload.get("errors") or []:
            if err.get("taskUUID") in (None, task_uuid):
                return {
                    "taskUUID": task_uuid,
                    "status": "error",
                    "error": err.get("message") or err.get("code") or "Unknown Runware error",
                    "cost": err.get("cost"),
                }

        if status >= 400:
            raise ProviderError(
                f"Runware HTTP {status} while polling {task_uuid}",
                retryable=status not in NON_RETRYABLE_AUTH_CODES,
            )

        for item in payload.get("data") or []:
            if item.get("taskUUID") == task_uuid:
                return item
        return None
