"""
Dimension Resolver: (model, aspect ratio, resolution) → pixel width/height.

Precedence: model table, then the generic table, then FALLBACK_DIMENSIONS.
"""

import logging
from typing import Optional

from .. import config
from ..errors import ConfigurationError
from .capabilities import FALLBACK_DIMENSIONS
from .models import Dimensions
from .registry import CapabilityRegistry

logger = logging.getLogger(__name__)


class DimensionResolver:
    def __init__(self, registry: CapabilityRegistry, strict: Optional[bool] = None):
        self.registry = registry
        self.strict = config.DIMENSIONS_STRICT if strict is None else strict

    def resolve(self, model_id: str, aspect_ratio: str, resolution: str) -> Dimensions:
        cap = self.registry.lookup(model_id)

        dims = cap.dimension_table.get(aspect_ratio, {}).get(resolution)
        if dims is not None:
            return dims

        generic = self.registry.generic_dimensions.get(aspect_ratio, {}).get(resolution)
        if generic is not None:
            return Dimensions(**generic)

        if self.strict:
            raise ConfigurationError(
                f"No dimensions for {model_id} at {aspect_ratio}@{resolution}"
            )

        logger.warning(
            f"[dimensions] No table entry for {model_id} {aspect_ratio}@{resolution}, "
            f"using fallback {FALLBACK_DIMENSIONS['width']}x{FALLBACK_DIMENSIONS['height']}"
        )
        return Dimensions(**FALLBACK_DIMENSIONS)

    def supported_resolutions(self, model_id: str, aspect_ratio: str) -> list[str]:
        return list(self.registry.lookup(model_id).supported_resolutions(aspect_ratio))
