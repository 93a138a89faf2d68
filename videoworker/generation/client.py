"""
Generation Client: submit one task, then poll it to a terminal state.

    submitted → polling → completed | failed | timed_out

The provider is anything with
    async submit_task(body: dict) -> dict
    async get_response(task_id: str) -> dict | None
RunwareClient in production, a fake in tests.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from pydantic import BaseModel

from .. import config
from ..errors import GenerationCancelled, GenerationTimeoutError, ProviderError
from .models import ProviderOutcome

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = {"success", "completed", "succeeded"}
FAILURE_STATUSES = {"error", "failed", "failure"}
PENDING_STATUSES = {"processing", "pending", "queued", "running", "submitted"}


class JobHandle(BaseModel):
    task_id: str
    model: str = ""
    submitted_at: float


class GenerationClient:
    def __init__(
        self,
        provider,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.poll_interval = config.POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.timeout = config.GENERATION_TIMEOUT_SECONDS if timeout is None else timeout
        self._clock = clock

    async def submit(self, body: dict) -> JobHandle:
        """Exactly one provider call. Raises ProviderError on rejection."""
        ack = await self.provider.submit_task(body)
        if not isinstance(ack, dict):
            raise ProviderError(f"Malformed submit response: {ack!r:.200}")

        if (ack.get("status") or "").lower() in FAILURE_STATUSES:
            raise ProviderError(
                ack.get("error") or "Provider rejected the task",
                cost_usd=ack.get("cost"),
            )

        task_id = ack.get("taskUUID") or body.get("taskUUID")
        if not task_id:
            raise ProviderError(f"Submit returned no task id: {ack!r:.200}")

        logger.info(f"[client] submitted task {task_id} model={body.get('model')}")
        return JobHandle(task_id=task_id, model=body.get("model", ""), submitted_at=self._clock())

    async def await_result(
        self,
        handle: JobHandle,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ProviderOutcome:
        """
        Poll until the provider reports success or failure.

        Raises:
            ProviderError:          provider reported failure or sent junk
            GenerationTimeoutError: deadline passed first
            GenerationCancelled:    cancel_event was set
        """
        timeout = self.timeout if timeout is None else timeout
        deadline = handle.submitted_at + timeout
        last_cost = None
        polls = 0

        while True:
            self._raise_if_cancelled(handle, cancel_event)

            remaining = deadline - self._clock()
            if remaining > 0:
                await self._wait(min(self.poll_interval, remaining), cancel_event)
                self._raise_if_cancelled(handle, cancel_event)
                remaining = deadline - self._clock()

            # a status call that hangs or retries internally only gets what is left
            try:
                if remaining <= 0:
                    raise asyncio.TimeoutError
                item = await self._poll(handle, remaining, cancel_event)
            except asyncio.TimeoutError:
                raise GenerationTimeoutError(
                    f"Task {handle.task_id} timed out after {timeout:.0f}s ({polls} polls)",
                    cost_usd=last_cost,
                ) from None
            polls += 1
            if item is None:
                continue
            if not isinstance(item, dict):
                raise ProviderError(f"Malformed poll response: {item!r:.200}")

            if item.get("cost") is not None:
                last_cost = item["cost"]

            outcome = self._classify(handle, item)
            if outcome is not None:
                return outcome

    # ── Internals ────────────────────────────────────────────────────────

    def _classify(self, handle: JobHandle, item: dict) -> Optional[ProviderOutcome]:
        status = str(item.get("status") or "").lower()

        if status in SUCCESS_STATUSES:
            url = item.get("videoURL") or item.get("mediaURL") or item.get("outputUrl")
            if not url:
                raise ProviderError(
                    f"Task {handle.task_id} completed without a video URL",
                    cost_usd=item.get("cost"),
                )
            logger.info(f"[client] task {handle.task_id} completed: {url}")
            return ProviderOutcome(
                task_id=handle.task_id,
                output_url=url,
                cost_usd=item.get("cost"),
                duration=item.get("duration"),
            )

        if status in FAILURE_STATUSES:
            raise ProviderError(
                item.get("error") or item.get("message") or f"Task {handle.task_id} failed",
                cost_usd=item.get("cost"),
            )

        if status in PENDING_STATUSES or not status:
            return None

        raise ProviderError(f"Unknown task status {status!r} for {handle.task_id}")

    async def _poll(self, handle: JobHandle, budget: float, cancel_event: Optional[asyncio.Event]):
        """One status call, bounded by `budget` seconds and abandoned on cancel."""
        poll = asyncio.ensure_future(self.provider.get_response(handle.task_id))
        if cancel_event is None:
            return await asyncio.wait_for(poll, timeout=budget)

        cancelled = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {poll, cancelled}, timeout=budget, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (poll, cancelled):
                if not task.done():
                    task.cancel()

        if poll in done:
            return poll.result()
        if cancelled in done:
            logger.info(f"[client] task {handle.task_id} cancelled during a status call")
            raise GenerationCancelled(f"Task {handle.task_id} cancelled")
        raise asyncio.TimeoutError

    @staticmethod
    def _raise_if_cancelled(handle: JobHandle, cancel_event: Optional[asyncio.Event]):
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"[client] task {handle.task_id} cancelled by caller")
            raise GenerationCancelled(f"Task {handle.task_id} cancelled")

    @staticmethod
    async def _wait(delay: float, cancel_event: Optional[asyncio.Event]):
        """Sleep between polls; returns early when cancel_event fires."""
        if cancel_event is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
