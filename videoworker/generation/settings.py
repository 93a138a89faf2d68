"""
Storyboard settings hierarchy: shot → scene → video → default.

Shots and scenes may override the video-level model and resolution; the
aspect ratio is fixed for the whole video.
"""

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from .registry import CapabilityRegistry

DEFAULT_RESOLUTION = "720p"
DEFAULT_ASPECT_RATIO = "16:9"


class ResolvedVideoSettings(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    resolution: str
    aspect_ratio: str


def _model_id(value: Any) -> Optional[str]:
    """Model values come as 'veo-3.1' or {'id': 'veo-3.1'} / {'name': ...}."""
    if not value:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return value.get("id") or value.get("name") or None
    return None


def resolve_video_settings(
    shot: Optional[Mapping],
    scene: Optional[Mapping],
    video: Optional[Mapping],
    registry: CapabilityRegistry,
    default_model: Optional[str] = None,
    default_resolution: str = DEFAULT_RESOLUTION,
    default_aspect_ratio: str = DEFAULT_ASPECT_RATIO,
) -> ResolvedVideoSettings:
    levels = [shot or {}, scene or {}, video or {}]

    model_id = next(
        (m for m in (_model_id(level.get("video_model")) for level in levels) if m),
        default_model or registry.get_default().id,
    )
    resolution = next(
        (r for r in (level.get("video_resolution") for level in levels) if r),
        default_resolution,
    )
    aspect_ratio = (video or {}).get("aspect_ratio") or default_aspect_ratio

    return ResolvedVideoSettings(
        model_id=model_id,
        resolution=resolution,
        aspect_ratio=aspect_ratio,
    )
