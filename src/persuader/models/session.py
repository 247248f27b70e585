"""
Session records kept in a ``SessionStore``.

Records are immutable: writers read a record, derive a new one with
``model_copy(update=...)`` and store it back.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from persuader.models.llm_models import TokenUsage


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionMetrics(BaseModel):
    """
    Cumulative attempt counters for one session.

    Only the session metrics recorder writes these. Derived fields
    (success_rate and the averages) are recomputed on every update.
    """

    model_config = ConfigDict(frozen=True)

    total_attempts: int = Field(default=0, ge=0)
    successful_validations: int = Field(default=0, ge=0)
    total_execution_time_ms: float = Field(default=0.0, ge=0)
    total_token_usage: TokenUsage = Field(default_factory=TokenUsage)
    operations_with_retries: int = Field(default=0, ge=0)
    max_attempts_for_operation: int = Field(default=0, ge=0)
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    avg_attempts_to_success: float = Field(default=0.0, ge=0.0)
    avg_execution_time_ms: float = Field(default=0.0, ge=0.0)
    last_success_at: Optional[datetime] = None


class SuccessFeedback(BaseModel):
    """A success message recorded after a validated attempt."""

    model_config = ConfigDict(frozen=True)

    message: str
    attempt_number: int = Field(..., ge=1)
    validated_output: Any = None
    timestamp: datetime = Field(default_factory=_utcnow)


class Session(BaseModel):
    """A session as seen by the engine."""

    model_config = ConfigDict(frozen=True)

    id: str
    provider: Optional[str] = None
    context: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    metrics: SessionMetrics = Field(default_factory=SessionMetrics)
    success_feedback: tuple[SuccessFeedback, ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)
