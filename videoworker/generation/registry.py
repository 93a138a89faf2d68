"""
CapabilityRegistry: read-only catalog of video models.

Built once from capabilities.VIDEO_MODEL_CATALOG at process start and passed
to every component that needs it. Nothing mutates it after load.
"""

import logging
from typing import Iterable, Optional

from ..errors import ConfigurationError
from .capabilities import AUDIO_FIELDS, GENERIC_DIMENSIONS, VIDEO_MODEL_CATALOG
from .models import ModelCapability

logger = logging.getLogger(__name__)


class CapabilityRegistry:
    """Immutable lookup of ModelCapability by id, checked on construction."""

    def __init__(
        self,
        capabilities: Iterable[ModelCapability],
        generic_dimensions: Optional[dict] = None,
    ):
        self._generic = GENERIC_DIMENSIONS if generic_dimensions is None else generic_dimensions
        self._by_id: dict[str, ModelCapability] = {}
        for cap in capabilities:
            if cap.id in self._by_id:
                raise ConfigurationError(f"Duplicate model id in catalog: {cap.id}")
            self._check(cap)
            self._by_id[cap.id] = cap

        defaults = [cap.id for cap in self._by_id.values() if cap.is_default]
        if len(defaults) != 1:
            raise ConfigurationError(
                f"Exactly one default video model required, found {len(defaults)}: {defaults}"
            )
        self._default_id = defaults[0]

        logger.info(f"[registry] Loaded {len(self._by_id)} video models (default={self._default_id})")

    # ── Load-time checks ─────────────────────────────────────────────────

    def _check(self, cap: ModelCapability):
        if not cap.provider_model_id:
            raise ConfigurationError(f"Model {cap.id} has no provider model id")
        if not cap.durations:
            raise ConfigurationError(f"Model {cap.id} declares no durations")
        if not cap.aspect_ratios or not cap.resolutions:
            raise ConfigurationError(f"Model {cap.id} declares no aspect ratios or resolutions")

        for ar, res in cap.declared_pairs():
            if res not in cap.resolutions:
                raise ConfigurationError(
                    f"Model {cap.id}: dimension table lists {ar}@{res} "
                    f"but {res} is not a declared resolution"
                )
            in_model = res in cap.dimension_table.get(ar, {})
            in_generic = res in self._generic.get(ar, {})
            if not (in_model or in_generic):
                raise ConfigurationError(
                    f"Model {cap.id}: declared pair {ar}@{res} has no dimensions"
                )

        audio_field = AUDIO_FIELDS.get(cap.provider_tag)
        if audio_field and audio_field in cap.provider_defaults.get(cap.provider_tag, {}):
            raise ConfigurationError(
                f"Model {cap.id}: provider defaults must not set audio flag '{audio_field}'"
            )

    # ── Lookup ───────────────────────────────────────────────────────────

    @property
    def generic_dimensions(self) -> dict:
        return self._generic

    def lookup(self, model_id: str) -> ModelCapability:
        cap = self._by_id.get(model_id)
        if cap is None:
            raise ConfigurationError(f"Unknown video model: {model_id}")
        return cap

    def __contains__(self, model_id: str) -> bool:
        return model_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def list_all(self) -> list[ModelCapability]:
        return list(self._by_id.values())

    def get_default(self) -> ModelCapability:
        return self._by_id[self._default_id]

    # ── Convenience views ────────────────────────────────────────────────

    def constraints(self, model_id: str) -> dict:
        """Summary used by UIs to render duration / ratio pickers."""
        cap = self.lookup(model_id)
        lo, hi = cap.duration_range()
        return {
            "id": cap.id,
            "label": cap.label,
            "supported_durations": list(cap.durations),
            "min_duration": lo,
            "max_duration": hi,
            "has_audio": cap.has_audio,
            "aspect_ratios": list(cap.aspect_ratios),
        }

    def supports_start_end_frame(self, model_id: str) -> bool:
        support = self.lookup(model_id).frame_support
        return support.first and support.last

    def supports_first_frame(self, model_id: str) -> bool:
        return self.lookup(model_id).frame_support.first


def capability_from_entry(entry: dict) -> ModelCapability:
    """Catalog dict → ModelCapability. Pydantic errors become ConfigurationError."""
    try:
        return ModelCapability.model_validate(entry)
    except ValueError as e:
        raise ConfigurationError(f"Malformed catalog entry {entry.get('id', '?')}: {e}") from e


def load_default_registry() -> CapabilityRegistry:
    return CapabilityRegistry(capability_from_entry(entry) for entry in VIDEO_MODEL_CATALOG)


_registry: Optional[CapabilityRegistry] = None


def get_registry() -> CapabilityRegistry:
    """Process-wide registry, built on first use. App wiring only."""
    global _registry
    if _registry is None:
        _registry = load_default_registry()
    return _registry
