"""
FastAPI routes for video generation.

Catalog Endpoints:
  GET  /videos/models                    List every model and its constraints
  GET  /videos/models/{id}               One model
  GET  /videos/models/{id}/dimensions    Pixel size for an aspect ratio / resolution
  POST /videos/validate                  Check settings without generating

Job Endpoints:
  POST /videos/generate                  Start one generation (202)
  GET  /videos/jobs/{job_id}             Job status / result
  POST /videos/jobs/{job_id}/cancel      Stop polling a running job

Batch Endpoints:
  POST /videos/batches                         Start a batch (202)
  GET  /videos/batches/{batch_id}              Batch status, per-item results
  POST /videos/batches/{batch_id}/cancel       Stop the batch after the current item
  POST /videos/batches/{batch_id}/items/{i}/retry   Re-run one failed item
"""

import asyncio
import logging
import uuid
from collections import OrderedDict
from typing import Callable, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query

from .. import metrics
from ..errors import ConfigurationError, GenerationError, ValidationError
from ..runware import RunwareClient
from .client import GenerationClient
from .models import (
    BatchJob,
    BatchSubmitRequest,
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
    ValidateSettingsRequest,
)
from .orchestrator import VideoGenerationService, failed_result
from .registry import get_registry
from .scheduler import BatchScheduler

logger = logging.getLogger(__name__)

videos_router = APIRouter(prefix="/videos", tags=["videos"])


# ── Wiring (overridden in tests via app.dependency_overrides) ────────────────

_service: Optional[VideoGenerationService] = None
_scheduler: Optional[BatchScheduler] = None


def get_service() -> VideoGenerationService:
    global _service
    if _service is None:
        _service = VideoGenerationService(get_registry(), GenerationClient(RunwareClient()))
    return _service


def get_scheduler(service: VideoGenerationService = Depends(get_service)) -> BatchScheduler:
    global _scheduler
    if _scheduler is None or _scheduler.service is not service:
        _scheduler = BatchScheduler(service)
    return _scheduler


# ── In-memory state (finished entries evicted oldest first) ──────────────────

MAX_JOBS = 1000
MAX_BATCHES = 100

_jobs: "OrderedDict[str, GenerationResult]" = OrderedDict()
_batches: "OrderedDict[str, BatchJob]" = OrderedDict()
_cancel_events: dict[str, asyncio.Event] = {}


def reset_state():
    _jobs.clear()
    _batches.clear()
    _cancel_events.clear()


def _evict(store: OrderedDict, limit: int, finished: Callable[[str, object], bool]):
    """Drop the oldest finished entries while `store` holds more than `limit`."""
    if len(store) <= limit:
        return
    for key in [k for k, v in store.items() if finished(k, v)]:
        if len(store) <= limit:
            break
        del store[key]


def _store_job(result: GenerationResult):
    _jobs[result.job_id] = result
    _jobs.move_to_end(result.job_id)
    _evict(_jobs, MAX_JOBS, lambda key, job: job.finished and key != result.job_id)


def _preflight_or_raise(service: VideoGenerationService, request: GenerationRequest):
    try:
        service.validator.preflight(request)
    except ConfigurationError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())


# ═════════════════════════════════════════════════════════════════════════════
# Catalog
# ═════════════════════════════════════════════════════════════════════════════

@videos_router.get("/models")
async def list_models(service: VideoGenerationService = Depends(get_service)):
    registry = service.registry
    return {
        "default": registry.get_default().id,
        "models": [registry.constraints(cap.id) for cap in registry.list_all()],
    }


@videos_router.get("/models/{model_id}")
async def get_model(model_id: str, service: VideoGenerationService = Depends(get_service)):
    registry = service.registry
    try:
        cap = registry.lookup(model_id)
    except ConfigurationError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {
        **registry.constraints(model_id),
        "provider_model_id": cap.provider_model_id,
        "resolutions": list(cap.resolutions),
        "supports_start_frame": registry.supports_first_frame(model_id),
        "supports_start_end_frame": registry.supports_start_end_frame(model_id),
        "requires_start_frame": cap.requires_start_frame,
        "workflows": list(cap.workflows),
        "fps": cap.fps,
        "max_prompt_length": cap.max_prompt_length,
    }


@videos_router.get("/models/{model_id}/dimensions")
async def get_dimensions(
    model_id: str,
    aspect_ratio: str = Query(...),
    resolution: str = Query(...),
    service: VideoGenerationService = Depends(get_service),
):
    try:
        dims = service.resolver.resolve(model_id, aspect_ratio, resolution)
    except ConfigurationError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {
        "model_id": model_id,
        "aspect_ratio": aspect_ratio,
        "resolution": resolution,
        "width": dims.width,
        "height": dims.height,
    }


@videos_router.post("/validate")
async def validate_settings(
    request: ValidateSettingsRequest,
    service: VideoGenerationService = Depends(get_service),
):
    """Always 200 for a known model; `error` names the field and its legal values."""
    try:
        outcome = service.validator.validate(
            request.model_id, request.duration, request.aspect_ratio, request.resolution
        )
        clamped = service.validator.clamp_duration(request.model_id, request.duration)
    except ConfigurationError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {
        "ok": outcome.ok,
        "clamped_duration": clamped,
        "error": outcome.error.to_dict() if outcome.error else None,
    }


# ═════════════════════════════════════════════════════════════════════════════
# Single jobs
# ═════════════════════════════════════════════════════════════════════════════

async def _run_job(service: VideoGenerationService, request: GenerationRequest, cancel: asyncio.Event):
    try:
        result = await service.generate(request, cancel_event=cancel, on_update=_store_job)
    except GenerationError as e:
        logger.info(f"[routes] job {request.job_id} refused ({e.error_type}): {e}")
        result = failed_result(request, e)
    except Exception as e:
        logger.error(f"[routes] job {request.job_id} crashed: {e}", exc_info=True)
        metrics.record_error("routes.generate", "internal", str(e), request.job_id)
        result = GenerationResult(
            job_id=request.job_id,
            status=GenerationStatus.FAILED,
            error_message=str(e),
            error_type="internal",
        )
    finally:
        _cancel_events.pop(request.job_id, None)
    _store_job(result)


@videos_router.post("/generate", status_code=202)
async def generate_video(
    request: GenerationRequest,
    background_tasks: BackgroundTasks,
    service: VideoGenerationService = Depends(get_service),
):
    """Validate now, generate in the background. Poll /videos/jobs/{job_id}."""
    metrics.inc_counter("requests.generate")
    existing = _jobs.get(request.job_id)
    if existing is not None and existing.status in (GenerationStatus.SUBMITTED, GenerationStatus.POLLING):
        raise HTTPException(status_code=409, detail=f"Job {request.job_id} is already running")

    _preflight_or_raise(service, request)

    _store_job(GenerationResult(job_id=request.job_id))
    cancel = asyncio.Event()
    _cancel_events[request.job_id] = cancel
    background_tasks.add_task(_run_job, service, request, cancel)

    return {"message": "Job received", "job_id": request.job_id, "status": GenerationStatus.SUBMITTED.value}


@videos_router.get("/jobs/{job_id}", response_model=GenerationResult)
async def get_job(job_id: str):
    result = _jobs.get(job_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return result


@videos_router.post("/jobs/{job_id}/cancel")
async def cancel_job(job_id: str):
    if job_id not in _jobs:
        raise HTTPException(status_code=404, detail="Job not found")
    event = _cancel_events.get(job_id)
    if event is None:
        return {"job_id": job_id, "cancelled": False, "status": _jobs[job_id].status.value}
    event.set()
    return {"job_id": job_id, "cancelled": True}


# ═════════════════════════════════════════════════════════════════════════════
# Batches
# ═════════════════════════════════════════════════════════════════════════════

def _batch_view(batch: BatchJob) -> dict:
    running = batch.batch_id in _cancel_events
    return {
        "batch_id": batch.batch_id,
        "running": running,
        "cancelled": batch.cancelled,
        "total": len(batch.requests),
        "success_count": batch.success_count,
        "failure_count": batch.failure_count,
        "total_cost_usd": batch.total_cost_usd,
        "results": [r.model_dump(mode="json") for r in batch.results],
    }


async def _run_batch(scheduler: BatchScheduler, batch: BatchJob, pooled: bool, cancel: asyncio.Event):
    try:
        if pooled:
            await scheduler.run_pooled(batch, cancel_event=cancel, on_update=_store_job)
        else:
            await scheduler.run(batch, cancel_event=cancel, on_update=_store_job)
    except Exception as e:
        logger.error(f"[routes] batch {batch.batch_id} crashed: {e}", exc_info=True)
        metrics.record_error("routes.batch", "internal", str(e), batch.batch_id)
    finally:
        _cancel_events.pop(batch.batch_id, None)


async def _run_retry(scheduler: BatchScheduler, batch: BatchJob, index: int, cancel: asyncio.Event):
    try:
        await scheduler.retry_failed(batch, index, cancel_event=cancel, on_update=_store_job)
    except Exception as e:
        logger.error(f"[routes] batch {batch.batch_id} item {index} retry crashed: {e}", exc_info=True)
        metrics.record_error("routes.retry", "internal", str(e), batch.batch_id)
    finally:
        _cancel_events.pop(batch.batch_id, None)


@videos_router.post("/batches", status_code=202)
async def submit_batch(
    request: BatchSubmitRequest,
    background_tasks: BackgroundTasks,
    scheduler: BatchScheduler = Depends(get_scheduler),
):
    """Items failing pre-flight are recorded as failed results, not rejected."""
    metrics.inc_counter("requests.batch")
    if not request.requests:
        raise HTTPException(status_code=400, detail="Batch has no requests")

    batch_id = request.batch_id or str(uuid.uuid4())
    if batch_id in _cancel_events:
        raise HTTPException(status_code=409, detail=f"Batch {batch_id} is already running")

    batch = BatchJob(batch_id=batch_id, requests=request.requests)
    _batches[batch_id] = batch
    _batches.move_to_end(batch_id)
    cancel = asyncio.Event()
    _cancel_events[batch_id] = cancel
    _evict(_batches, MAX_BATCHES, lambda key, _: key not in _cancel_events)
    background_tasks.add_task(_run_batch, scheduler, batch, request.pooled, cancel)

    return {
        "message": "Batch received",
        "batch_id": batch_id,
        "total": len(batch.requests),
        "pooled": request.pooled,
    }


@videos_router.get("/batches/{batch_id}")
async def get_batch(batch_id: str):
    batch = _batches.get(batch_id)
    if batch is None:
        raise HTTPException(status_code=404, detail="Batch not found")
    return _batch_view(batch)


@videos_router.post("/batches/{batch_id}/cancel")
async def cancel_batch(batch_id: str):
    if batch_id not in _batches:
        raise HTTPException(status_code=404, detail="Batch not found")
    event = _cancel_events.get(batch_id)
    if event is None:
        return {"batch_id": batch_id, "cancelled": False, "running": False}
    event.set()
    logger.info(f"[routes] batch {batch_id} cancellation requested")
    return {"batch_id": batch_id, "cancelled": True}


@videos_router.post("/batches/{batch_id}/items/{index}/retry", status_code=202)
async def retry_batch_item(
    batch_id: str,
    index: int,
    background_tasks: BackgroundTasks,
    scheduler: BatchScheduler = Depends(get_scheduler),
):
    batch = _batches.get(batch_id)
    if batch is None:
        raise HTTPException(status_code=404, detail="Batch not found")
    if batch_id in _cancel_events:
        raise HTTPException(status_code=409, detail=f"Batch {batch_id} is still running")
    if not 0 <= index < len(batch.results):
        raise HTTPException(status_code=404, detail=f"Batch {batch_id} has no item {index}")
    if batch.results[index].succeeded:
        raise HTTPException(status_code=400, detail=f"Item {index} already succeeded")

    cancel = asyncio.Event()
    _cancel_events[batch_id] = cancel
    background_tasks.add_task(_run_retry, scheduler, batch, index, cancel)
    return {"message": "Retry started", "batch_id": batch_id, "index": index}
