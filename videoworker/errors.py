"""
Error taxonomy for video generation.

  ConfigurationError: unknown model id / broken catalog entry. Fatal.
  ValidationError: request outside the model's declared sets. Pre-network.
  ProviderError: remote call failed or reported failure. Retried.
  GenerationTimeoutError: polling deadline passed. Retried like ProviderError.
  GenerationCancelled: caller abandoned the job. Not retried.
  CreditCheckDenied: billing veto before submission. Not retried.
"""

from typing import Optional, Sequence


class GenerationError(Exception):
    """Base class for everything the orchestration layer raises."""

    error_type = "generation"


class ConfigurationError(GenerationError):
    error_type = "configuration"


class ValidationError(GenerationError):
    """A requested setting is not in the model's declared set."""

    error_type = "validation"

    def __init__(self, field: str, value, allowed: Sequence, model_id: str = ""):
        self.field = field
        self.value = value
        self.allowed = list(allowed)
        self.model_id = model_id
        allowed_str = ", ".join(str(a) for a in self.allowed) or "none"
        prefix = f"Model {model_id}: " if model_id else ""
        super().__init__(
            f"{prefix}unsupported {field} {value!r}. Supported: {allowed_str}"
        )

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "value": self.value,
            "allowed": self.allowed,
            "message": str(self),
        }


class ProviderError(GenerationError):
    """The provider failed the job; may carry cost it already charged."""

    error_type = "provider"

    def __init__(self, message: str, cost_usd: Optional[float] = None, retryable: bool = True):
        super().__init__(message)
        self.cost_usd = cost_usd
        self.retryable = retryable


class GenerationTimeoutError(ProviderError):
    error_type = "timeout"


class GenerationCancelled(GenerationError):
    error_type = "cancelled"


class CreditCheckDenied(GenerationError):
    error_type = "credit"
