"""
Retry layer: generic backoff primitive, LLM retry controller and
post-success enhancement rounds.
"""

from persuader.retry.engine import RetryEngine, execute_with_retry
from persuader.retry.enhancement import (
    EnhancementController,
    EnhancementOutcome,
    ResultInfo,
    analyze_result,
    build_enhancement_request,
    evaluate_improvement,
)
from persuader.retry.policy import (
    AttemptOutcome,
    RetryPolicy,
    RetryResult,
    RetryStats,
    format_retry_error,
    get_retry_stats,
    is_error_retryable,
    retry_operation,
    retry_with_feedback,
)

__all__ = [
    "RetryEngine",
    "execute_with_retry",
    "EnhancementController",
    "EnhancementOutcome",
    "ResultInfo",
    "analyze_result",
    "build_enhancement_request",
    "evaluate_improvement",
    "AttemptOutcome",
    "RetryPolicy",
    "RetryResult",
    "RetryStats",
    "format_retry_error",
    "get_retry_stats",
    "is_error_retryable",
    "retry_operation",
    "retry_with_feedback",
]
