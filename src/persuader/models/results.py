"""
Pipeline outcome types.

``ExecutionResult`` is what the retry controller returns; ``Result`` (a
``Success | Failure`` union) is what the caller of ``persuade`` receives.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional, TypeAlias

from persuader.models.errors import PipelineError, ProviderError, ValidationError
from persuader.models.llm_models import TokenUsage


@dataclass(frozen=True)
class ExecutionResult:
    """
    Outcome of one retry-controller run.

    Attributes:
        success: Whether an attempt validated
        attempts: Attempts consumed, enhancement rounds included
        value: Validated value, present iff success
        error: Last error seen, present iff not success
        all_errors: Every error seen, in attempt order
        token_usage: Token usage summed over all provider calls
        enhancement_attempts: Enhancement rounds that reached the provider
    """

    success: bool
    attempts: int
    value: Any = None
    error: Optional[ValidationError | ProviderError] = None
    all_errors: tuple[ValidationError | ProviderError, ...] = ()
    token_usage: Optional[TokenUsage] = None
    enhancement_attempts: int = 0

    def __post_init__(self) -> None:
        """Validate result invariants."""
        if self.attempts < 0:
            raise ValueError("attempts must be >= 0")
        if self.success and self.error is not None:
            raise ValueError("a successful result cannot carry an error")
        if not self.success and self.value is not None:
            raise ValueError("a failed result cannot carry a value")
        if not self.success and self.error is None:
            raise ValueError("a failed result must carry an error")


@dataclass(frozen=True)
class ExecutionMetadata:
    """Timing and provenance attached to every ``Result``."""

    execution_time_ms: float
    started_at: datetime
    completed_at: datetime
    provider: str
    model: Optional[str] = None
    token_usage: Optional[TokenUsage] = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Success:
    """Validated output."""

    value: Any
    attempts: int
    metadata: ExecutionMetadata
    session_id: Optional[str] = None
    ok: Literal[True] = True


@dataclass(frozen=True)
class Failure:
    """Terminal failure carrying the last error seen."""

    error: PipelineError
    attempts: int
    metadata: ExecutionMetadata
    session_id: Optional[str] = None
    all_errors: tuple[PipelineError, ...] = ()
    ok: Literal[False] = False


Result: TypeAlias = Success | Failure
