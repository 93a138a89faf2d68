"""
Payload Builder: GenerationRequest → Runware `videoInference` task body.

Provider differences live in two tables:
  AUDIO_FIELDS     provider tag → name of its native-audio flag
  FRAME_BUILDERS   PayloadFormat → frame-image block shape

Both are looked up once per build through resolve_strategy().
"""

import logging
import uuid
from typing import Callable, Mapping, NamedTuple, Optional

from .capabilities import AUDIO_FIELDS
from .models import (
    Dimensions,
    GenerationRequest,
    ModelCapability,
    PayloadFormat,
    WirePayload,
)
from .registry import CapabilityRegistry
from .validator import nearest_duration

logger = logging.getLogger(__name__)


# ── Frame blocks ─────────────────────────────────────────────────────────────

def _standard_frames(frames: list[tuple[str, str]]) -> dict:
    """{"frameImages": [{"inputImage": url, "frame": "first"}]}"""
    return {
        "frameImages": [{"inputImage": url, "frame": tag} for tag, url in frames],
    }


def _wrapped_frames(frames: list[tuple[str, str]]) -> dict:
    """{"inputs": {"frameImages": [{"image": url, "frame": "first"}]}}"""
    return {
        "inputs": {
            "frameImages": [{"image": url, "frame": tag} for tag, url in frames],
        },
    }


FRAME_BUILDERS: dict[PayloadFormat, Callable[[list], dict]] = {
    PayloadFormat.STANDARD: _standard_frames,
    PayloadFormat.WRAPPED: _wrapped_frames,
}


# ── Strategy ─────────────────────────────────────────────────────────────────

class ProviderStrategy(NamedTuple):
    tag: str
    build_audio_block: Callable[[], Optional[dict]]
    build_frame_block: Callable[[list], dict]


def _audio_builder(tag: str) -> Callable[[], Optional[dict]]:
    field = AUDIO_FIELDS.get(tag)

    def build() -> Optional[dict]:
        return {field: True} if field else None

    return build


def resolve_strategy(capability: ModelCapability) -> ProviderStrategy:
    tag = capability.provider_tag
    return ProviderStrategy(
        tag=tag,
        build_audio_block=_audio_builder(tag),
        build_frame_block=FRAME_BUILDERS[capability.payload_format],
    )


def _thaw(value):
    """Writable copy of a read-only capability table."""
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


# ── Builder ──────────────────────────────────────────────────────────────────

class PayloadBuilder:
    def __init__(self, registry: CapabilityRegistry):
        self.registry = registry

    def build(
        self,
        request: GenerationRequest,
        capability: Optional[ModelCapability] = None,
        dimensions: Optional[Dimensions] = None,
    ) -> WirePayload:
        cap = capability or self.registry.lookup(request.model_id)
        strategy = resolve_strategy(cap)
        warnings: list[str] = []

        body = {
            "taskType": "videoInference",
            "taskUUID": str(uuid.uuid4()),
            "model": cap.provider_model_id,
            "duration": nearest_duration(cap.durations, request.duration),
            "deliveryMethod": "async",
            "includeCost": True,
        }

        prompt = self._prompt(request, cap, warnings)
        if prompt is not None:
            body["positivePrompt"] = prompt

        # Kling O1 sizes the clip from the frame image
        if not cap.omit_dimensions and dimensions is not None:
            body["width"] = dimensions.width
            body["height"] = dimensions.height

        frames = self._frames(request, cap, warnings)
        if frames:
            body.update(strategy.build_frame_block(frames))

        settings = self._provider_settings(request, cap, strategy, bool(frames), warnings)
        if settings:
            body["providerSettings"] = settings

        for w in warnings:
            logger.warning(f"[payload] {request.job_id}: {w}")

        return WirePayload(body=body, warnings=warnings)

    # ── Sections ─────────────────────────────────────────────────────────

    @staticmethod
    def _prompt(request: GenerationRequest, cap: ModelCapability, warnings: list) -> Optional[str]:
        prompt = request.prompt.strip()
        if not cap.accepts_prompt:
            if prompt:
                warnings.append(f"{cap.id} is image-only; prompt was not sent")
            return None
        if cap.max_prompt_length is not None and len(prompt) > cap.max_prompt_length:
            warnings.append(
                f"Prompt truncated from {len(prompt)} to {cap.max_prompt_length} characters"
            )
            prompt = prompt[: cap.max_prompt_length]
        return prompt

    @staticmethod
    def _frames(request: GenerationRequest, cap: ModelCapability, warnings: list) -> list:
        frames = []
        start, end = request.start_frame_url, request.end_frame_url

        if start:
            if cap.frame_support.first:
                frames.append(("first", start))
            else:
                warnings.append(f"{cap.id} does not accept a start frame; it was dropped")
                start = None

        if end:
            if not start:
                warnings.append("End frame given without a start frame; it was dropped")
            elif not cap.frame_support.last:
                warnings.append(
                    f"{cap.id} does not support an end frame; using the start frame only"
                )
            else:
                frames.append(("last", end))

        return frames

    @staticmethod
    def _provider_settings(
        request: GenerationRequest,
        cap: ModelCapability,
        strategy: ProviderStrategy,
        has_frames: bool,
        warnings: list,
    ) -> dict:
        settings = _thaw(cap.provider_defaults)
        tag = strategy.tag

        # Keep the frame's look instead of letting the model restyle it
        if has_frames:
            if tag == "google":
                settings.setdefault("google", {})["enhancePrompt"] = False
            elif tag == "bytedance":
                settings.setdefault("bytedance", {})["cameraFixed"] = True

        if request.camera_fixed is not None:
            if tag == "bytedance":
                settings.setdefault("bytedance", {})["cameraFixed"] = request.camera_fixed
            else:
                logger.debug(f"[payload] camera_fixed ignored for provider {tag}")

        if request.audio_requested:
            if not cap.has_audio:
                warnings.append(f"{cap.id} has no native audio; audio request ignored")
            else:
                block = strategy.build_audio_block()
                if block:
                    settings.setdefault(tag, {}).update(block)

        return {k: v for k, v in settings.items() if v}
