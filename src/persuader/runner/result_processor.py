"""
Result processing: ExecutionResult + timing -> public Result.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from persuader.llm.base_client import ProviderAdapter
from persuader.models.errors import PipelineError
from persuader.models.llm_models import TokenUsage
from persuader.models.results import ExecutionMetadata, ExecutionResult, Failure, Result, Success

logger = structlog.get_logger(__name__)


def build_metadata(
    started_at: datetime,
    provider: ProviderAdapter,
    model: Optional[str] = None,
    token_usage: Optional[TokenUsage] = None,
    **extra: Any,
) -> ExecutionMetadata:
    """Metadata for a run that started at ``started_at`` and ends now."""
    completed_at = datetime.now(timezone.utc)
    return ExecutionMetadata(
        execution_time_ms=(completed_at - started_at).total_seconds() * 1000,
        started_at=started_at,
        completed_at=completed_at,
        provider=provider.name,
        model=model,
        token_usage=token_usage,
        extra=extra,
    )


def process_result(
    execution_result: ExecutionResult,
    session_id: Optional[str],
    started_at: datetime,
    provider: ProviderAdapter,
    model: Optional[str] = None,
) -> Result:
    """
    Map a retry-controller outcome to the caller-facing result.

    Args:
        execution_result: Outcome of the retry controller
        session_id: Session the run used, if any
        started_at: When the pipeline started (UTC)
        provider: Provider adapter used
        model: Model requested
    """
    extra = {}
    if execution_result.enhancement_attempts:
        extra["enhancement_attempts"] = execution_result.enhancement_attempts
    metadata = build_metadata(started_at, provider, model, execution_result.token_usage, **extra)

    if execution_result.success:
        logger.info(
            "Pipeline completed successfully",
            attempts=execution_result.attempts,
            execution_time_ms=round(metadata.execution_time_ms, 1),
            provider=metadata.provider,
            model=model,
            session_id=session_id,
        )
        return Success(
            value=execution_result.value,
            attempts=execution_result.attempts,
            metadata=metadata,
            session_id=session_id,
        )

    error = execution_result.error
    logger.error(
        "Pipeline failed after all attempts",
        attempts=execution_result.attempts,
        execution_time_ms=round(metadata.execution_time_ms, 1),
        error_type=error.type.value,
        error_code=error.code,
        error_message=error.message,
    )
    return Failure(
        error=error,
        attempts=execution_result.attempts,
        metadata=metadata,
        session_id=session_id,
        all_errors=execution_result.all_errors,
    )


def error_result(
    error: PipelineError,
    started_at: datetime,
    provider: ProviderAdapter,
    model: Optional[str] = None,
    attempts: int = 0,
) -> Failure:
    """Failure for a run that stopped before or outside the retry loop."""
    return Failure(
        error=error,
        attempts=attempts,
        metadata=build_metadata(started_at, provider, model),
        all_errors=(error,),
    )


def get_execution_stats(result: Result) -> dict[str, Any]:
    """Flat summary of a result for logs and dashboards."""
    stats: dict[str, Any] = {
        "successful": result.ok,
        "attempts": result.attempts,
        "execution_time_ms": result.metadata.execution_time_ms,
        "provider": result.metadata.provider,
        "has_session": result.session_id is not None,
    }
    if result.metadata.model:
        stats["model"] = result.metadata.model
    if isinstance(result, Failure):
        stats["error_type"] = result.error.type.value
    return stats


def format_result_metadata(result: Result) -> dict[str, Any]:
    formatted: dict[str, Any] = {
        "duration": f"{result.metadata.execution_time_ms:.0f}ms",
        "attempts": result.attempts,
        "provider": result.metadata.provider,
        "status": "success" if result.ok else "error",
    }
    if isinstance(result, Failure):
        error = result.error
        formatted["error_summary"] = f"{error.type.value}:{error.code} - {error.message}"
    return formatted
