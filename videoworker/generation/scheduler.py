"""
BatchScheduler: runs an ordered list of generation requests.

run()         one job in flight at a time, ITEM_DELAY between items
run_pooled()  concurrent, capped per provider by ProviderLimiter

Both return the batch with exactly one result per request, in request
order. Aggregates are kept current while the batch runs; once it returns:
    success_count + failure_count == len(requests)
    total_cost_usd == sum of costs of succeeded items
"""

import asyncio
import logging
from typing import Optional

from .. import config
from .. import metrics
from ..errors import ConfigurationError, GenerationCancelled, GenerationError
from ..provider_limiter import ProviderLimiter
from .models import BatchJob, GenerationRequest, GenerationResult, GenerationStatus
from .orchestrator import UpdateCallback, VideoGenerationService, failed_result

logger = logging.getLogger(__name__)


class BatchScheduler:
    def __init__(
        self,
        service: VideoGenerationService,
        item_delay: Optional[float] = None,
        max_per_provider: Optional[int] = None,
        sleep=asyncio.sleep,
    ):
        self.service = service
        self.item_delay = config.ITEM_DELAY if item_delay is None else item_delay
        self.max_per_provider = (
            config.MAX_PER_PROVIDER if max_per_provider is None else max_per_provider
        )
        self._sleep = sleep
        self._retry_locks: dict[str, asyncio.Lock] = {}

    # ── Sequential ───────────────────────────────────────────────────────

    async def run(
        self,
        batch: BatchJob,
        cancel_event: Optional[asyncio.Event] = None,
        on_update: Optional[UpdateCallback] = None,
    ) -> BatchJob:
        total = len(batch.requests)
        logger.info(f"[scheduler] batch {batch.batch_id}: {total} item(s), sequential")
        batch.results = []
        self.aggregate(batch)
        metrics.add_gauge("batch.in_flight", 1)

        try:
            for index, request in enumerate(batch.requests):
                if index > 0 and self.item_delay > 0 and not _is_set(cancel_event):
                    await self._sleep(self.item_delay)

                if _is_set(cancel_event):
                    result = _cancelled_result(request)
                else:
                    logger.info(f"[scheduler] batch {batch.batch_id}: item {index + 1}/{total} ({request.job_id})")
                    result = await self._run_one(request, cancel_event, on_update)

                batch.results.append(result)
                self.aggregate(batch)
        finally:
            metrics.add_gauge("batch.in_flight", -1)

        return self._finish(batch, cancel_event)

    # ── Pooled ───────────────────────────────────────────────────────────

    async def run_pooled(
        self,
        batch: BatchJob,
        cancel_event: Optional[asyncio.Event] = None,
        on_update: Optional[UpdateCallback] = None,
        max_per_provider: Optional[int] = None,
    ) -> BatchJob:
        limiter = ProviderLimiter(max_per_provider or self.max_per_provider)
        # placeholders keep positions stable while items finish out of order
        batch.results = [GenerationResult(job_id=r.job_id) for r in batch.requests]
        self.aggregate(batch)
        logger.info(
            f"[scheduler] batch {batch.batch_id}: {len(batch.results)} item(s), "
            f"pooled (max {limiter.max_per_provider}/provider)"
        )

        def record(index: int, result: GenerationResult):
            batch.results[index] = result
            self.aggregate(batch)

        async def worker(index: int, request: GenerationRequest):
            try:
                tag = self.service.registry.lookup(request.model_id).provider_tag
            except ConfigurationError as e:
                record(index, failed_result(request, e))
                if on_update is not None:
                    on_update(batch.results[index])
                return
            async with limiter.slot(tag):
                if _is_set(cancel_event):
                    record(index, _cancelled_result(request))
                    return
                record(index, await self._run_one(request, cancel_event, on_update))

        metrics.add_gauge("batch.in_flight", 1)
        try:
            await asyncio.gather(*(worker(i, r) for i, r in enumerate(batch.requests)))
        finally:
            metrics.add_gauge("batch.in_flight", -1)

        return self._finish(batch, cancel_event)

    # ── Retry one item ───────────────────────────────────────────────────

    async def retry_failed(
        self,
        batch: BatchJob,
        index: int,
        cancel_event: Optional[asyncio.Event] = None,
        on_update: Optional[UpdateCallback] = None,
    ) -> GenerationResult:
        """
        Re-run one failed item in place. A succeeded item is returned unchanged.

        Retries within one batch run one at a time; a caller that waited on
        the lock sees the other caller's result and does not resubmit.
        """
        if not 0 <= index < len(batch.results):
            raise IndexError(f"Batch {batch.batch_id} has no item {index}")

        async with self._retry_lock(batch.batch_id):
            current = batch.results[index]
            if current.succeeded:
                return current

            result = await self._run_one(batch.requests[index], cancel_event, on_update)
            batch.results[index] = result
            self.aggregate(batch)

        logger.info(
            f"[scheduler] batch {batch.batch_id}: item {index} retried → {result.status.value}"
        )
        return result

    def _retry_lock(self, batch_id: str) -> asyncio.Lock:
        lock = self._retry_locks.get(batch_id)
        if lock is None:
            lock = asyncio.Lock()
            self._retry_locks[batch_id] = lock
        return lock

    # ── Internals ────────────────────────────────────────────────────────

    async def _run_one(
        self,
        request: GenerationRequest,
        cancel_event: Optional[asyncio.Event],
        on_update: Optional[UpdateCallback],
    ) -> GenerationResult:
        try:
            return await self.service.generate(request, cancel_event=cancel_event, on_update=on_update)
        except GenerationError as e:
            # refused before submission: no network call was made
            logger.info(f"[scheduler] {request.job_id} refused ({e.error_type}): {e}")
            metrics.inc_counter(f"generations.refused.{e.error_type}")
            result = failed_result(request, e)
        except Exception as e:
            logger.error(f"[scheduler] {request.job_id} crashed: {e}", exc_info=True)
            metrics.record_error("scheduler", "internal", str(e), request.job_id)
            result = GenerationResult(
                job_id=request.job_id,
                status=GenerationStatus.FAILED,
                error_message=str(e),
                error_type="internal",
            )
        # generate() never reached a status transition
        if on_update is not None:
            on_update(result)
        return result

    def _finish(self, batch: BatchJob, cancel_event: Optional[asyncio.Event]) -> BatchJob:
        batch.cancelled = _is_set(cancel_event)
        self.aggregate(batch)
        logger.info(
            f"[scheduler] batch {batch.batch_id} done: {batch.success_count} ok, "
            f"{batch.failure_count} failed, ${batch.total_cost_usd:.4f}"
            + (" (cancelled)" if batch.cancelled else "")
        )
        return batch

    @staticmethod
    def aggregate(batch: BatchJob) -> BatchJob:
        succeeded = [r for r in batch.results if r.succeeded]
        batch.success_count = len(succeeded)
        batch.failure_count = sum(1 for r in batch.results if r.finished and not r.succeeded)
        batch.total_cost_usd = round(sum(r.cost_usd or 0.0 for r in succeeded), 6)
        return batch


def _is_set(event: Optional[asyncio.Event]) -> bool:
    return event is not None and event.is_set()


def _cancelled_result(request: GenerationRequest) -> GenerationResult:
    return failed_result(request, GenerationCancelled("Batch cancelled before this item ran"))
