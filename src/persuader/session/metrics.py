"""
Session metrics recorder.

The only writer of ``SessionMetrics``. Every attempt (success or failure,
provider exceptions included) is recorded through the injected store using
read-copy-write. Recording failures are logged and never propagate into the
retry loop.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from persuader.models.llm_models import TokenUsage
from persuader.models.session import Session, SessionMetrics, SuccessFeedback
from persuader.session.store import SessionStore

logger = structlog.get_logger(__name__)


def updated_metrics(
    metrics: SessionMetrics,
    attempt_number: int,
    success: bool,
    execution_time_ms: float,
    token_usage: Optional[TokenUsage] = None,
    now: Optional[datetime] = None,
    enhancement: bool = False,
) -> SessionMetrics:
    """
    Fold one attempt into ``metrics`` and return the new value.

    Args:
        metrics: Current metrics
        attempt_number: 1-based attempt number within its operation
        success: Whether the attempt validated
        execution_time_ms: Time spent on the attempt
        token_usage: Tokens reported by the provider, if any
        now: Timestamp for last_success_at (defaults to current UTC time)
        enhancement: The attempt is an enhancement round; it counts towards
            totals but not towards operations_with_retries or
            max_attempts_for_operation
    """
    total_attempts = metrics.total_attempts + 1
    successful = metrics.successful_validations + (1 if success else 0)
    total_time = metrics.total_execution_time_ms + execution_time_ms
    retried = not enhancement and success and attempt_number > 1
    max_attempts = metrics.max_attempts_for_operation if enhancement else max(
        metrics.max_attempts_for_operation, attempt_number
    )

    return SessionMetrics(
        total_attempts=total_attempts,
        successful_validations=successful,
        total_execution_time_ms=total_time,
        total_token_usage=metrics.total_token_usage + token_usage if token_usage else metrics.total_token_usage,
        operations_with_retries=metrics.operations_with_retries + (1 if retried else 0),
        max_attempts_for_operation=max_attempts,
        success_rate=successful / total_attempts,
        avg_attempts_to_success=total_attempts / successful if successful else 0.0,
        avg_execution_time_ms=total_time / total_attempts,
        last_success_at=(now or datetime.now(timezone.utc)) if success else metrics.last_success_at,
    )


class SessionMetricsRecorder:
    """
    Accumulates per-session counters through a ``SessionStore``.

    A record is created on first use when the store has none for the id.
    """

    def __init__(self, store: SessionStore):
        self.store = store

    async def _load(self, session_id: str) -> Session:
        return await self.store.get(session_id) or Session(id=session_id)

    async def record_attempt(
        self,
        session_id: str,
        attempt_number: int,
        success: bool,
        execution_time_ms: float,
        token_usage: Optional[TokenUsage] = None,
        enhancement: bool = False,
    ) -> None:
        """Record one attempt. Never raises."""
        try:
            session = await self._load(session_id)
            metrics = updated_metrics(
                session.metrics,
                attempt_number,
                success,
                execution_time_ms,
                token_usage,
                enhancement=enhancement,
            )
            await self.store.set(
                session.model_copy(
                    update={"metrics": metrics, "updated_at": datetime.now(timezone.utc)}
                )
            )
        except Exception:
            logger.warning(
                "Failed to record session metrics",
                session_id=session_id,
                attempt=attempt_number,
                exc_info=True,
            )
            return

        logger.debug(
            "Session metrics updated",
            session_id=session_id,
            attempt=attempt_number,
            success=success,
            total_attempts=metrics.total_attempts,
            success_rate=round(metrics.success_rate, 3),
        )

    async def record_success_feedback(
        self, session_id: str, message: str, attempt_number: int, validated_output: Any = None
    ) -> None:
        """Append a success message to the session history. Never raises."""
        try:
            session = await self._load(session_id)
            feedback = SuccessFeedback(
                message=message,
                attempt_number=attempt_number,
                validated_output=validated_output,
            )
            await self.store.set(
                session.model_copy(
                    update={
                        "success_feedback": (*session.success_feedback, feedback),
                        "updated_at": datetime.now(timezone.utc),
                    }
                )
            )
        except Exception:
            logger.warning("Failed to store success feedback", session_id=session_id, exc_info=True)

    async def get_metrics(self, session_id: str) -> Optional[SessionMetrics]:
        session = await self.store.get(session_id)
        return session.metrics if session else None
