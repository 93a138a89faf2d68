"""
VideoGenerationService: runs one generation request end to end.

    lookup → preflight → credit check → dimensions → payload → submit → poll

Refusals (unknown model, invalid settings, credit veto) raise before any
network call. Once a task has been submitted the outcome is always a
GenerationResult, failed or not.
"""

import asyncio
import logging
import time
import uuid
from typing import Awaitable, Callable, Optional

from .. import config
from .. import metrics
from ..errors import (
    CreditCheckDenied,
    GenerationCancelled,
    GenerationError,
    GenerationTimeoutError,
    ProviderError,
)
from .client import GenerationClient
from .dimensions import DimensionResolver
from .models import GenerationRequest, GenerationResult, GenerationStatus
from .payload import PayloadBuilder
from .registry import CapabilityRegistry
from .validator import RequestValidator

logger = logging.getLogger(__name__)

CreditCheck = Callable[[GenerationRequest], Awaitable[bool]]
UpdateCallback = Callable[[GenerationResult], None]


def failed_result(request: GenerationRequest, error: GenerationError) -> GenerationResult:
    """Terminal result for a request refused before submission."""
    return GenerationResult(
        job_id=request.job_id,
        status=GenerationStatus.FAILED,
        error_message=str(error),
        error_type=error.error_type,
        attempts=0,
    )


class VideoGenerationService:
    """
    Single-job orchestrator.

    Usage:
        service = VideoGenerationService(registry, GenerationClient(RunwareClient()))
        result = await service.generate(request)
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        client: GenerationClient,
        credit_check: Optional[CreditCheck] = None,
        max_retries: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        strict_dimensions: Optional[bool] = None,
        sleep=asyncio.sleep,
    ):
        self.registry = registry
        self.client = client
        self.credit_check = credit_check
        self.max_retries = config.MAX_RETRIES if max_retries is None else max_retries
        self.retry_base_delay = (
            config.RETRY_BASE_DELAY if retry_base_delay is None else retry_base_delay
        )
        self.validator = RequestValidator(registry)
        self.resolver = DimensionResolver(registry, strict=strict_dimensions)
        self.builder = PayloadBuilder(registry)
        self._sleep = sleep

    async def generate(
        self,
        request: GenerationRequest,
        cancel_event: Optional[asyncio.Event] = None,
        on_update: Optional[UpdateCallback] = None,
    ) -> GenerationResult:
        """
        Raises ConfigurationError, ValidationError or CreditCheckDenied before
        submitting anything. Provider failures, timeouts and cancellation come
        back as a failed / timed_out result.
        """
        cap = self.registry.lookup(request.model_id)
        duration = self.validator.preflight(request)
        await self._check_credit(request)

        dims = self.resolver.resolve(cap.id, request.aspect_ratio, request.resolution)
        payload = self.builder.build(request, cap, dims)

        result = GenerationResult(job_id=request.job_id, warnings=list(payload.warnings))
        started = time.monotonic()
        last_error: Optional[GenerationError] = None

        for attempt in range(self.max_retries + 1):
            if cancel_event is not None and cancel_event.is_set():
                last_error = GenerationCancelled(f"Job {request.job_id} cancelled before submission")
                break

            result.attempts = attempt + 1
            body = payload.body
            if attempt > 0:
                # fresh task id per attempt; Runware rejects reused UUIDs
                body = {**body, "taskUUID": str(uuid.uuid4())}

            try:
                self._transition(result, GenerationStatus.SUBMITTED, on_update)
                metrics.inc_counter("generations.submitted")
                handle = await self.client.submit(body)

                result.provider_task_id = handle.task_id
                self._transition(result, GenerationStatus.POLLING, on_update)
                outcome = await self.client.await_result(handle, cancel_event=cancel_event)

            except GenerationCancelled as e:
                last_error = e
                break

            except ProviderError as e:
                last_error = e
                if e.cost_usd is not None:
                    result.cost_usd = e.cost_usd
                logger.warning(
                    f"[orchestrator] {request.job_id} attempt {attempt + 1}/{self.max_retries + 1} "
                    f"failed ({e.error_type}): {e}"
                )
                if not e.retryable or attempt >= self.max_retries:
                    break

                delay = self.retry_base_delay * (2 ** attempt)
                metrics.inc_counter("generations.retried")
                logger.info(f"[orchestrator] {request.job_id} retrying in {delay:.0f}s")
                try:
                    await self._backoff(delay, cancel_event)
                except GenerationCancelled as cancelled:
                    last_error = cancelled
                    break
                continue

            result.output_url = outcome.output_url
            result.cost_usd = outcome.cost_usd
            result.actual_duration = outcome.duration or float(duration)
            result.error_message = None
            result.error_type = None
            self._transition(result, GenerationStatus.COMPLETED, on_update)

            metrics.inc_counter("generations.completed")
            metrics.record_latency(f"generate.{cap.id}", (time.monotonic() - started) * 1000)
            logger.info(
                f"[orchestrator] {request.job_id} completed in {result.attempts} attempt(s): "
                f"{result.output_url} (cost={result.cost_usd})"
            )
            return result

        result.error_message = str(last_error)
        result.error_type = last_error.error_type
        status = (
            GenerationStatus.TIMED_OUT
            if isinstance(last_error, GenerationTimeoutError)
            else GenerationStatus.FAILED
        )
        self._transition(result, status, on_update)

        metrics.inc_counter("generations.failed")
        metrics.record_error("generate", last_error.error_type, str(last_error), request.job_id)
        logger.error(
            f"[orchestrator] {request.job_id} {status.value} after {result.attempts} attempt(s): "
            f"{last_error}"
        )
        return result

    # ── Helpers ──────────────────────────────────────────────────────────

    async def _check_credit(self, request: GenerationRequest):
        if self.credit_check is None or request.skip_credit_check:
            return
        if not await self.credit_check(request):
            raise CreditCheckDenied(f"Credit check refused job {request.job_id}")

    async def _backoff(self, delay: float, cancel_event: Optional[asyncio.Event]):
        if cancel_event is None:
            await self._sleep(delay)
            return
        sleeper = asyncio.ensure_future(self._sleep(delay))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, waiter):
                if not task.done():
                    task.cancel()
        if waiter in done:
            raise GenerationCancelled("Cancelled while waiting to retry")

    @staticmethod
    def _transition(
        result: GenerationResult,
        status: GenerationStatus,
        on_update: Optional[UpdateCallback],
    ):
        result.status = status
        logger.debug(f"[orchestrator] {result.job_id} → {status.value}")
        if on_update is not None:
            on_update(result)
