"""
Provider-facing data models for the request/response cycle.

These models are the contract between the engine and any provider adapter
(Ollama, hosted APIs, test fakes). They are deliberately small: adapters
translate to and from their vendor API, the engine only sees these.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenUsage(BaseModel):
    """Token accounting for one or more provider calls."""

    model_config = ConfigDict(frozen=True)

    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class ProviderPromptOptions(BaseModel):
    """
    Options passed to ``ProviderAdapter.send_prompt``.

    Unknown keys from caller-supplied provider options are kept as extras so
    adapters can read vendor-specific settings.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    model: Optional[str] = Field(default=None, description="Model name/identifier")
    max_tokens: Optional[int] = Field(default=None, ge=1, description="Maximum tokens to generate")
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0, description="Sampling temperature")
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    top_k: Optional[int] = Field(default=None, ge=1)


class ProviderSessionOptions(BaseModel):
    """Options passed to ``ProviderAdapter.create_session``."""

    model_config = ConfigDict(frozen=True, extra="allow")

    model: Optional[str] = None
    temperature: Optional[float] = None


class ProviderResponse(BaseModel):
    """
    Raw provider output for one call.

    Validation of ``content`` happens in the validation layer, never here.
    """

    model_config = ConfigDict(frozen=True)

    content: str = Field(..., description="Generated text (expected to be JSON)")
    token_usage: Optional[TokenUsage] = None
    stop_reason: Optional[str] = Field(
        default=None,
        description="Why generation stopped: 'end_turn', 'max_tokens', 'stop_sequence', ...",
    )
    truncated: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class ProviderHealth(BaseModel):
    """Result of ``ProviderAdapter.get_health``."""

    healthy: bool
    response_time_ms: float = Field(..., ge=0)
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
