"""
Generic retry primitive with exponential backoff.

delay(n) = min(base_delay * multiplier ** n, max_delay), where n is the
zero-based index of the attempt that just failed.

Nothing here knows about prompts or schemas: operations report failures as
pipeline error values and this module decides whether and when to try
again. The LLM retry controller is built on ``retry_with_feedback``.
"""

import asyncio
import dataclasses
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

import structlog

from persuader.config import settings
from persuader.models.errors import (
    ConfigurationError,
    PipelineError,
    ProviderError,
    SessionError,
    ValidationError,
    is_retryable_provider_failure,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters in milliseconds."""

    base_delay_ms: float = 1000
    multiplier: float = 1.5
    max_delay_ms: float = 10000

    def __post_init__(self) -> None:
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("delays must be >= 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            base_delay_ms=settings.RETRY_BASE_DELAY_MS,
            multiplier=settings.RETRY_DELAY_MULTIPLIER,
            max_delay_ms=settings.RETRY_MAX_DELAY_MS,
        )

    def calculate_delay(self, retry_index: int) -> float:
        """Delay in ms after the failure of attempt ``retry_index + 1``."""
        return min(self.base_delay_ms * self.multiplier**retry_index, self.max_delay_ms)

    async def wait(self, retry_index: int) -> float:
        delay_ms = self.calculate_delay(retry_index)
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)
        return delay_ms


@dataclass(frozen=True)
class AttemptOutcome(Generic[T]):
    """What an operation reports for one attempt: a value or an error."""

    value: Optional[T] = None
    error: Optional[PipelineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def succeeded(cls, value: T) -> "AttemptOutcome[T]":
        return cls(value=value)

    @classmethod
    def failed(cls, error: PipelineError) -> "AttemptOutcome[T]":
        return cls(error=error)


@dataclass(frozen=True)
class RetryResult(Generic[T]):
    """
    Outcome of a retried operation.

    Attributes:
        success: Whether any attempt succeeded
        attempts: Attempts made
        value: Successful value
        error: Last error when unsuccessful
        all_errors: Every error seen, in attempt order
        total_retry_time_ms: Wall time including backoff sleeps
    """

    success: bool
    attempts: int
    value: Optional[T] = None
    error: Optional[PipelineError] = None
    all_errors: tuple[PipelineError, ...] = ()
    total_retry_time_ms: float = 0.0


@dataclass(frozen=True)
class RetryStats:
    total_attempts: int
    total_time_ms: float
    average_time_per_attempt_ms: float
    error_types: dict[str, int] = field(default_factory=dict)


def is_error_retryable(error: PipelineError) -> bool:
    """
    Retryability by error variant.

    Validation errors always retry. Provider errors retry when flagged
    retryable and the status/message heuristics agree. Session and
    configuration errors never retry.
    """
    match error:
        case ValidationError():
            return True
        case ProviderError(retryable=False):
            return False
        case ProviderError(status_code=status_code, message=message):
            return is_retryable_provider_failure(status_code, message)
        case SessionError() | ConfigurationError():
            return False
    return False


def _elapsed_ms(started: float) -> float:
    return (time.monotonic() - started) * 1000


async def retry_with_feedback(
    operation: Callable[[int, Optional[PipelineError]], Awaitable[AttemptOutcome[T]]],
    max_attempts: int,
    policy: Optional[RetryPolicy] = None,
    is_retryable: Callable[[PipelineError], bool] = is_error_retryable,
) -> RetryResult[T]:
    """
    Run ``operation`` until it succeeds, fails permanently or runs out of attempts.

    The operation receives the 1-based attempt number and the previous
    attempt's error (None on the first attempt). An exception escaping the
    operation ends the loop with a non-retryable ``unexpected_error``.

    Args:
        operation: Async callable producing an AttemptOutcome
        max_attempts: Attempts allowed, at least 1
        policy: Backoff parameters (defaults from settings)
        is_retryable: Decides whether a failed attempt may be retried

    Returns:
        RetryResult; attempts equals max_attempts on exhaustion, or the
        failing attempt on a non-retryable error
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    policy = policy or RetryPolicy.from_settings()
    started = time.monotonic()
    errors: list[PipelineError] = []
    last_error: Optional[PipelineError] = None

    for attempt in range(1, max_attempts + 1):
        try:
            outcome = await operation(attempt, last_error)
        except Exception as e:
            logger.error("Unexpected error during retry attempt", attempt=attempt, error=str(e), exc_info=True)
            wrapped = ProviderError(
                code="unexpected_error",
                message=f"Unexpected error during retry attempt {attempt}: {e}",
                provider="unknown",
                retryable=False,
                details={"error_type": type(e).__name__},
            )
            errors.append(wrapped)
            return RetryResult(
                success=False,
                attempts=attempt,
                error=wrapped,
                all_errors=tuple(errors),
                total_retry_time_ms=_elapsed_ms(started),
            )

        if outcome.ok:
            return RetryResult(
                success=True,
                attempts=attempt,
                value=outcome.value,
                all_errors=tuple(errors),
                total_retry_time_ms=_elapsed_ms(started),
            )

        last_error = outcome.error
        errors.append(last_error)

        if attempt == max_attempts or not is_retryable(last_error):
            logger.info(
                "Retry loop stopped",
                attempts=attempt,
                max_attempts=max_attempts,
                error_code=last_error.code,
                exhausted=attempt == max_attempts,
            )
            break

        delay_ms = await policy.wait(attempt - 1)
        logger.debug("Retrying after backoff", attempt=attempt, next_attempt=attempt + 1, delay_ms=delay_ms)

    return RetryResult(
        success=False,
        attempts=attempt,
        error=last_error,
        all_errors=tuple(errors),
        total_retry_time_ms=_elapsed_ms(started),
    )


def _wrap_exception(exc: Exception, attempt: int, provider: str) -> ProviderError:
    return ProviderError.from_exception(
        exc,
        provider,
        code="wrapped_error",
        message=f"Error on attempt {attempt}: {exc}",
    )


async def retry_operation(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    policy: Optional[RetryPolicy] = None,
    is_retryable: Callable[[PipelineError], bool] = is_error_retryable,
    provider: str = "unknown",
) -> RetryResult[T]:
    """
    Retry an arbitrary coroutine function on exceptions.

    Exceptions are wrapped as ``ProviderError`` (code ``wrapped_error``) with
    retryability inferred from their status code and message.

    Example:
        result = await retry_operation(lambda: client.get_health(), max_attempts=5)
        if not result.success:
            logger.warning(format_retry_error(result))
    """

    async def attempt_once(attempt: int, _previous: Optional[PipelineError]) -> AttemptOutcome[T]:
        try:
            return AttemptOutcome.succeeded(await operation())
        except Exception as e:
            return AttemptOutcome.failed(_wrap_exception(e, attempt, provider))

    if is_retryable is is_error_retryable:
        return await retry_with_feedback(attempt_once, max_attempts, policy)

    # Custom predicate: fold it into the error's retryable flag.
    async def attempt_with_predicate(attempt: int, previous: Optional[PipelineError]) -> AttemptOutcome[T]:
        outcome = await attempt_once(attempt, previous)
        if outcome.error is not None and not is_retryable(outcome.error):
            return AttemptOutcome.failed(_non_retryable(outcome.error))
        return outcome

    return await retry_with_feedback(attempt_with_predicate, max_attempts, policy)


def _non_retryable(error: PipelineError) -> PipelineError:
    if isinstance(error, ProviderError):
        return dataclasses.replace(error, retryable=False)
    return error


def format_retry_error(result: RetryResult[Any]) -> str:
    """Human-readable summary of a retry result."""
    if result.success:
        return f"Operation succeeded after {result.attempts} attempt(s)"

    lines = [f"  Attempt {index}: {error.message}" for index, error in enumerate(result.all_errors, start=1)]
    header = (
        f"Operation failed after {result.attempts} attempt(s) "
        f"({result.total_retry_time_ms:.0f}ms total):"
    )
    return "\n".join([header, *lines])


def get_retry_stats(result: RetryResult[Any]) -> RetryStats:
    """Attempt count, timing and error-type histogram for a retry result."""
    error_types = Counter(error.type.value for error in result.all_errors)
    return RetryStats(
        total_attempts=result.attempts,
        total_time_ms=result.total_retry_time_ms,
        average_time_per_attempt_ms=result.total_retry_time_ms / result.attempts if result.attempts else 0.0,
        error_types=dict(error_types),
    )
