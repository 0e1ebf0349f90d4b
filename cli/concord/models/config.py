"""Configuration Models - Pydantic schemas for per-tenant engine policy."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


ModelTier = Literal["fast", "default"]


class EnginePolicy(BaseModel):
    """Per-tenant consensus configuration.

    Frozen: an engine holds a snapshot of the policy that was current when it
    was built, and later store updates never reach it.
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    enabled: bool = Field(default=True, description="Whether consensus mode is available to the tenant")
    model_count: int = Field(default=3, ge=1, description="Number of models queried per request")
    tier: ModelTier = Field(default="fast", description="Model tier used when no explicit models are set")
    agreement_threshold: float = Field(
        default=0.6, ge=0, le=1, description="Leader agreement needed to flag a result as meeting threshold"
    )
    timeout_ms: int = Field(default=30000, ge=1, description="Per-model call deadline in milliseconds")
    models: Optional[list[str]] = Field(
        default=None, description="Explicit model override (None = use tier defaults)"
    )

    def merged(self, update: "PolicyUpdate") -> "EnginePolicy":
        """Return a new validated policy with the update's set fields applied."""
        data = self.model_dump()
        data.update(update.model_dump(exclude_unset=True))
        return EnginePolicy.model_validate(data)


class PolicyUpdate(BaseModel):
    """Partial policy update. Only fields explicitly set are merged."""

    model_config = ConfigDict(protected_namespaces=())

    enabled: Optional[bool] = None
    model_count: Optional[int] = Field(default=None, ge=1)
    tier: Optional[ModelTier] = None
    agreement_threshold: Optional[float] = Field(default=None, ge=0, le=1)
    timeout_ms: Optional[int] = Field(default=None, ge=1)
    models: Optional[list[str]] = None
