"""
Request Validator: checks requested settings against a model's declared sets.

Everything here runs before any network call. Failures name the offending
field and the values the model accepts.
"""

import logging

from ..errors import ValidationError
from .models import GenerationRequest, ValidationOutcome
from .registry import CapabilityRegistry

logger = logging.getLogger(__name__)


def nearest_duration(durations, requested: float) -> int:
    """Closest value in `durations`; exact ties keep the one declared first."""
    best = durations[0]
    best_diff = abs(best - requested)
    for value in durations[1:]:
        diff = abs(value - requested)
        if diff < best_diff:
            best, best_diff = value, diff
    return best


def _fmt_duration(value):
    """7.0 → 7 so messages read naturally."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class RequestValidator:
    def __init__(self, registry: CapabilityRegistry):
        self.registry = registry

    def validate(
        self,
        model_id: str,
        duration: float,
        aspect_ratio: str,
        resolution: str,
    ) -> ValidationOutcome:
        """
        Check duration, aspect ratio, resolution (in that order), then the
        aspect/resolution pairing. Unknown model raises ConfigurationError.
        """
        cap = self.registry.lookup(model_id)

        if duration not in cap.durations:
            return self._fail("duration", _fmt_duration(duration), cap.durations, model_id)
        if aspect_ratio not in cap.aspect_ratios:
            return self._fail("aspect_ratio", aspect_ratio, cap.aspect_ratios, model_id)
        if resolution not in cap.resolutions:
            return self._fail("resolution", resolution, cap.resolutions, model_id)

        # e.g. runway only does 21:9 at 672p
        paired = cap.supported_resolutions(aspect_ratio)
        if resolution not in paired:
            return self._fail("resolution", resolution, paired, model_id)

        return ValidationOutcome(ok=True)

    def check(self, model_id: str, duration: float, aspect_ratio: str, resolution: str):
        self.validate(model_id, duration, aspect_ratio, resolution).raise_for_error()

    def preflight(self, request: GenerationRequest) -> int:
        """
        Full pre-submit check for one request. Returns the clamped duration.

        The duration is snapped first, so a 7s request on a [5, 10] model
        passes as 5s.
        """
        cap = self.registry.lookup(request.model_id)
        duration = self.clamp_duration(request.model_id, request.duration)

        self.check(request.model_id, duration, request.aspect_ratio, request.resolution)

        if cap.requires_start_frame and not request.start_frame_url:
            raise ValidationError(
                "start_frame_url", None, ["<image url>"], model_id=cap.id
            )

        prompt_len = len(request.prompt.strip())
        if cap.accepts_prompt and prompt_len < cap.min_prompt_length:
            raise ValidationError(
                "prompt",
                request.prompt,
                [f">= {cap.min_prompt_length} characters"],
                model_id=cap.id,
            )

        return duration

    def clamp_duration(self, model_id: str, requested: float) -> int:
        """
        Snap to the supported duration closest to `requested`.
        Exact ties keep the value declared first.
        """
        cap = self.registry.lookup(model_id)
        best = nearest_duration(cap.durations, requested)
        if best != requested:
            logger.debug(f"[validator] {model_id}: duration {requested} clamped to {best}")
        return best

    @staticmethod
    def _fail(field, value, allowed, model_id) -> ValidationOutcome:
        error = ValidationError(field, value, allowed, model_id=model_id)
        logger.info(f"[validator] {error}")
        return ValidationOutcome(ok=False, error=error)
