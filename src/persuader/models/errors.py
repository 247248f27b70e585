"""
Pipeline error variants.

Errors produced by a pipeline run are values, not exceptions: each attempt's
failure seeds the next attempt's feedback and only the last one reaches the
caller. The four variants form a closed union (``PipelineError``); consume
them with ``match`` on the class:

    match error:
        case ValidationError(): ...
        case ProviderError(): ...
        case SessionError(): ...
        case ConfigurationError(): ...
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, TypeAlias

from persuader.models.enums import ErrorType, FailureMode, RetryStrategyHint

JSON_PARSE_CODE = "json_parse"
SCHEMA_VALIDATION_CODE = "schema_validation"

RETRYABLE_STATUS_CODES = frozenset({408, 429})

_TRANSIENT_MESSAGE = re.compile(
    r"time(d)?\s?out|network|connection|econnreset|econnrefused|socket hang up|"
    r"rate.?limit|too many requests|overloaded|temporarily unavailable|"
    r"service unavailable|bad gateway",
    re.IGNORECASE,
)
_PERMANENT_MESSAGE = re.compile(
    r"unauthori[sz]ed|authentication|invalid api key|forbidden|permission denied|"
    r"model not found|no such model",
    re.IGNORECASE,
)

# Schema-stage modes; JSON_PARSE_FAILURE is reserved for the parse stage.
SCHEMA_FAILURE_MODES = frozenset(FailureMode) - {
    FailureMode.JSON_PARSE_FAILURE,
    FailureMode.PROVIDER_REFUSAL,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_retryable_status(status_code: int) -> bool:
    """True for 408, 429 and any 5xx status."""
    return status_code in RETRYABLE_STATUS_CODES or 500 <= status_code <= 599


def is_retryable_provider_failure(status_code: int | None, message: str) -> bool:
    """
    Decide whether a provider failure is transient.

    A known HTTP status wins. Without one, transient wording (timeouts,
    network, rate limits) is retryable and credential/model wording is not;
    anything else is treated as transient.
    """
    if status_code is not None:
        return is_retryable_status(status_code)
    if _TRANSIENT_MESSAGE.search(message):
        return True
    if _PERMANENT_MESSAGE.search(message):
        return False
    return True


@dataclass(frozen=True)
class SchemaIssue:
    """
    One normalized schema violation.

    ``code`` is one of: missing, invalid_type, too_small, too_big,
    invalid_enum, unrecognized_keys, invalid_union, invalid_string, or the
    validator's own code when it has no normalized equivalent.
    """

    code: str
    path: tuple[str | int, ...]
    message: str
    expected: str | None = None
    received: str | None = None
    kind: str | None = None  # string | number | array for size bounds
    minimum: float | None = None
    maximum: float | None = None
    options: tuple[Any, ...] = ()
    keys: tuple[str, ...] = ()
    validation: str | None = None  # email | url | uuid | regex | ...
    received_value: Any = None

    @property
    def path_str(self) -> str:
        return ".".join(str(part) for part in self.path) or "root"


@dataclass(frozen=True)
class StructuredFeedback:
    """Model-directed explanation of a validation failure."""

    problem_summary: str
    specific_issues: tuple[str, ...] = ()
    correction_instructions: tuple[str, ...] = ()
    example_correction: str | None = None


@dataclass(frozen=True, kw_only=True)
class _PipelineErrorBase:
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True, kw_only=True)
class ValidationError(_PipelineErrorBase):
    """
    Model output failed JSON parsing or schema validation. Always retryable.

    Attributes:
        issues: Normalized schema issues (empty for parse failures)
        raw_value: The text or parsed value that failed
        failure_mode: Classification of the failure
        retry_strategy: Suggested approach for the next attempt
        structured_feedback: Problem summary plus itemized corrections
        suggestions: Flat list of corrective suggestions
        schema_description: Short description of the expected shape
    """

    type: ClassVar[ErrorType] = ErrorType.VALIDATION
    retryable: ClassVar[bool] = True

    failure_mode: FailureMode
    retry_strategy: RetryStrategyHint
    issues: tuple[SchemaIssue, ...] = ()
    raw_value: Any = None
    structured_feedback: StructuredFeedback | None = None
    suggestions: tuple[str, ...] = ()
    schema_description: str | None = None

    def __post_init__(self) -> None:
        """Keep failure_mode consistent with code."""
        if self.code == JSON_PARSE_CODE and self.failure_mode is not FailureMode.JSON_PARSE_FAILURE:
            raise ValueError("json_parse errors must use failure mode json_parse_failure")
        if self.code == SCHEMA_VALIDATION_CODE and self.failure_mode not in SCHEMA_FAILURE_MODES:
            raise ValueError(
                f"schema_validation errors cannot use failure mode {self.failure_mode.value}"
            )


@dataclass(frozen=True, kw_only=True)
class ProviderError(_PipelineErrorBase):
    """
    Provider call or orchestration failure.

    ``retryable`` is computed from the status code and message heuristics
    when built through ``from_exception``, unless the caller fixes it.
    ``status_code`` is kept either way.
    """

    type: ClassVar[ErrorType] = ErrorType.PROVIDER

    provider: str
    status_code: int | None = None
    retryable: bool = True

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        provider: str,
        code: str = "provider_call_failed",
        message: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool | None = None,
    ) -> "ProviderError":
        """Wrap an exception raised by a provider adapter."""
        status_code = _extract_status_code(exc)
        text = str(exc) or type(exc).__name__
        return cls(
            code=code,
            message=message or text,
            provider=provider,
            status_code=status_code,
            retryable=(
                retryable if retryable is not None else is_retryable_provider_failure(status_code, text)
            ),
            details={"error_type": type(exc).__name__, **(details or {})},
        )


@dataclass(frozen=True, kw_only=True)
class SessionError(_PipelineErrorBase):
    """Session lifecycle failure. Never retryable."""

    type: ClassVar[ErrorType] = ErrorType.SESSION
    retryable: ClassVar[bool] = False

    session_id: str | None = None


@dataclass(frozen=True, kw_only=True)
class ConfigurationError(_PipelineErrorBase):
    """Caller misuse detected before any attempt. Never retryable."""

    type: ClassVar[ErrorType] = ErrorType.CONFIGURATION
    retryable: ClassVar[bool] = False

    field_name: str | None = None


PipelineError: TypeAlias = ValidationError | ProviderError | SessionError | ConfigurationError


def _extract_status_code(exc: BaseException) -> int | None:
    status = getattr(exc, "status_code", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    if status is None:
        details = getattr(exc, "details", None)
        if isinstance(details, dict):
            status = details.get("status")
    return status if isinstance(status, int) else None
