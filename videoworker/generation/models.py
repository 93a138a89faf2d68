"""
Pydantic models and enums for video generation orchestration.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import ValidationError


# ── Enums ────────────────────────────────────────────────────────────────────

class PayloadFormat(str, Enum):
    """Wire shape used for frame images."""
    STANDARD = "standard"  # top-level frameImages[].inputImage
    WRAPPED = "wrapped"    # inputs.frameImages[].image


class GenerationStatus(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


TERMINAL_STATUSES = {
    GenerationStatus.COMPLETED,
    GenerationStatus.FAILED,
    GenerationStatus.TIMED_OUT,
}

TEXT_TO_VIDEO = "text-to-video"
IMAGE_TO_VIDEO = "image-to-video"


def _freeze(value):
    """Nested dicts and lists become read-only mappings and tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


# ── Capability ───────────────────────────────────────────────────────────────

class Dimensions(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int


class FrameSupport(BaseModel):
    model_config = ConfigDict(frozen=True)

    first: bool = False
    last: bool = False


class ModelCapability(BaseModel):
    """Static description of what one video model accepts."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    provider_model_id: str = Field("", description="Runware AIR id, e.g. 'bytedance:2@1'")
    durations: tuple[int, ...]
    aspect_ratios: tuple[str, ...]
    resolutions: tuple[str, ...]
    frame_support: FrameSupport = Field(default_factory=FrameSupport)
    has_audio: bool = False
    payload_format: PayloadFormat = PayloadFormat.STANDARD
    omit_dimensions: bool = False
    dimension_table: Mapping[str, Mapping[str, Dimensions]] = Field(default_factory=dict, validate_default=True)
    provider_defaults: Mapping[str, Mapping[str, Any]] = Field(default_factory=dict, validate_default=True)
    workflows: tuple[str, ...] = (TEXT_TO_VIDEO, IMAGE_TO_VIDEO)
    fps: int = 24
    min_prompt_length: int = 0
    max_prompt_length: Optional[int] = Field(None, description="None = no limit, 0 = image-only, prompt never sent")
    is_default: bool = False

    @field_validator("dimension_table", "provider_defaults")
    @classmethod
    def _read_only(cls, value):
        return _freeze(value)

    @property
    def provider_tag(self) -> str:
        """'google:3@1' -> 'google'."""
        return self.provider_model_id.split(":", 1)[0]

    @property
    def requires_start_frame(self) -> bool:
        return TEXT_TO_VIDEO not in self.workflows

    @property
    def accepts_prompt(self) -> bool:
        return self.max_prompt_length != 0

    def supported_resolutions(self, aspect_ratio: str) -> tuple[str, ...]:
        """Resolutions valid for one aspect ratio (model table wins when it lists the ratio)."""
        by_ratio = self.dimension_table.get(aspect_ratio)
        if by_ratio:
            return tuple(by_ratio.keys())
        return self.resolutions

    def declared_pairs(self) -> list[tuple[str, str]]:
        return [
            (ar, res)
            for ar in self.aspect_ratios
            for res in self.supported_resolutions(ar)
        ]

    def duration_range(self) -> tuple[int, int]:
        return min(self.durations), max(self.durations)


# ── Requests / Results ───────────────────────────────────────────────────────

class GenerationRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    job_id: str
    model_id: str
    prompt: str = ""
    duration: float = Field(..., gt=0, description="Requested seconds, clamped before submit")
    aspect_ratio: str
    resolution: str
    start_frame_url: Optional[str] = None
    end_frame_url: Optional[str] = None
    audio_requested: bool = False
    camera_fixed: Optional[bool] = None
    skip_credit_check: bool = False


class GenerationResult(BaseModel):
    job_id: str
    status: GenerationStatus = GenerationStatus.SUBMITTED
    output_url: Optional[str] = None
    actual_duration: Optional[float] = None
    cost_usd: Optional[float] = None
    error_message: Optional[str] = None
    error_type: Optional[str] = None
    provider_task_id: Optional[str] = None
    attempts: int = 0
    warnings: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == GenerationStatus.COMPLETED

    @property
    def finished(self) -> bool:
        return self.status in TERMINAL_STATUSES


class BatchJob(BaseModel):
    batch_id: str
    requests: list[GenerationRequest] = Field(default_factory=list)
    results: list[GenerationResult] = Field(default_factory=list)
    success_count: int = 0
    failure_count: int = 0
    total_cost_usd: float = 0.0
    cancelled: bool = False


# ── Validation / Wire ────────────────────────────────────────────────────────

class ValidationOutcome(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool = True
    error: Optional[ValidationError] = None

    def raise_for_error(self):
        if self.error is not None:
            raise self.error


class WirePayload(BaseModel):
    """The exact task body sent to the provider plus non-fatal build warnings."""

    body: dict[str, Any]
    warnings: list[str] = Field(default_factory=list)


class ProviderOutcome(BaseModel):
    """Terminal success reported by the provider."""

    task_id: str
    output_url: str
    cost_usd: Optional[float] = None
    duration: Optional[float] = None


# ── API Request Models ───────────────────────────────────────────────────────

class ValidateSettingsRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    duration: float
    aspect_ratio: str
    resolution: str


class BatchSubmitRequest(BaseModel):
    batch_id: Optional[str] = None
    requests: list[GenerationRequest]
    pooled: bool = False
