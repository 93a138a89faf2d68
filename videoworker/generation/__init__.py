"""
Video Generation Orchestration

Provider-agnostic layer over the Runware video models:
  Registry   - what each model accepts (durations, ratios, sizes, frames, audio)
  Validator  - pre-flight checks and duration clamping
  Payload    - one request → the exact task body for its provider
  Client     - submit, poll, timeout, cancel
  Scheduler  - sequential (or per-provider pooled) batches with retry
"""

from .models import BatchJob, GenerationRequest, GenerationResult, GenerationStatus
from .orchestrator import VideoGenerationService
from .registry import CapabilityRegistry, get_registry, load_default_registry
from .routes import videos_router
from .scheduler import BatchScheduler

__all__ = [
    "BatchJob",
    "BatchScheduler",
    "CapabilityRegistry",
    "GenerationRequest",
    "GenerationResult",
    "GenerationStatus",
    "VideoGenerationService",
    "get_registry",
    "load_default_registry",
    "videos_router",
]
