"""
Unit tests for session metrics accumulation.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from persuader.models.llm_models import TokenUsage
from persuader.models.session import Session, SessionMetrics
from persuader.session.metrics import SessionMetricsRecorder, updated_metrics


class TestUpdatedMetrics:
    """Test folding one attempt into metrics."""

    def test_first_failed_attempt(self):
        """Test counters after a single failure."""
        metrics = updated_metrics(SessionMetrics(), 1, False, 120.0)

        assert metrics.total_attempts == 1
        assert metrics.successful_validations == 0
        assert metrics.success_rate == 0.0
        assert metrics.avg_attempts_to_success == 0.0
        assert metrics.avg_execution_time_ms == 120.0
        assert metrics.last_success_at is None

    def test_success_after_retries(self):
        """Test derived fields over a failure, failure, success sequence."""
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        metrics = SessionMetrics()
        metrics = updated_metrics(metrics, 1, False, 100.0)
        metrics = updated_metrics(metrics, 2, False, 200.0)
        metrics = updated_metrics(metrics, 3, True, 300.0, TokenUsage(total_tokens=50), now=now)

        assert metrics.total_attempts == 3
        assert metrics.successful_validations == 1
        assert metrics.success_rate == pytest.approx(1 / 3)
        assert metrics.avg_attempts_to_success == 3.0
        assert metrics.avg_execution_time_ms == 200.0
        assert metrics.operations_with_retries == 1
        assert metrics.max_attempts_for_operation == 3
        assert metrics.total_token_usage.total_tokens == 50
        assert metrics.last_success_at == now

    def test_first_attempt_success_is_not_a_retry(self):
        metrics = updated_metrics(SessionMetrics(), 1, True, 10.0)

        assert metrics.operations_with_retries == 0
        assert metrics.success_rate == 1.0

    def test_enhancement_round_is_not_a_retry(self):
        """Test that enhancement rounds count as attempts but not as retries."""
        metrics = updated_metrics(SessionMetrics(), 1, True, 10.0)

        metrics = updated_metrics(metrics, 2, True, 10.0, enhancement=True)
        metrics = updated_metrics(metrics, 3, True, 10.0, enhancement=True)

        assert metrics.total_attempts == 3
        assert metrics.successful_validations == 3
        assert metrics.operations_with_retries == 0
        assert metrics.max_attempts_for_operation == 1

    def test_input_is_not_mutated(self):
        """Test that metrics are derived, never modified in place."""
        original = SessionMetrics()

        updated_metrics(original, 1, True, 10.0)

        assert original.total_attempts == 0


class TestSessionMetricsRecorder:
    """Test recording through a store."""

    @pytest.mark.asyncio
    async def test_record_creates_session(self, session_store):
        """Test that a missing session record is created on first use."""
        recorder = SessionMetricsRecorder(session_store)

        await recorder.record_attempt("s1", 1, True, 15.0)

        metrics = await recorder.get_metrics("s1")
        assert metrics.total_attempts == 1
        assert metrics.successful_validations == 1

    @pytest.mark.asyncio
    async def test_record_keeps_existing_fields(self, session_store):
        """Test that recording preserves the rest of the session record."""
        await session_store.set(Session(id="s1", provider="fake", context="ctx"))
        recorder = SessionMetricsRecorder(session_store)

        await recorder.record_attempt("s1", 1, False, 15.0)

        session = await session_store.get("s1")
        assert session.context == "ctx"
        assert session.provider == "fake"
        assert session.metrics.total_attempts == 1

    @pytest.mark.asyncio
    async def test_store_failure_is_swallowed(self):
        """Test that a broken store never propagates into the retry loop."""
        store = AsyncMock()
        store.get = AsyncMock(side_effect=RuntimeError("store down"))
        recorder = SessionMetricsRecorder(store)

        await recorder.record_attempt("s1", 1, True, 10.0)
        await recorder.record_success_feedback("s1", "thanks", 1)

        store.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_success_feedback_is_appended(self, session_store):
        """Test that success messages accumulate in order."""
        recorder = SessionMetricsRecorder(session_store)

        await recorder.record_success_feedback("s1", "first", 1, {"a": 1})
        await recorder.record_success_feedback("s1", "second", 2)

        entries = (await session_store.get("s1")).success_feedback
        assert [e.message for e in entries] == ["first", "second"]
        assert entries[0].validated_output == {"a": 1}

    @pytest.mark.asyncio
    async def test_get_metrics_unknown_session(self, session_store):
        assert await SessionMetricsRecorder(session_store).get_metrics("missing") is None
