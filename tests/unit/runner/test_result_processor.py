"""
Unit tests for result processing.
"""

from datetime import datetime, timedelta, timezone

import pytest

from persuader.models.enums import FailureMode, RetryStrategyHint
from persuader.models.errors import ConfigurationError, ProviderError, ValidationError
from persuader.models.llm_models import TokenUsage
from persuader.models.results import ExecutionResult, Failure, Success
from persuader.runner.result_processor import (
    error_result,
    format_result_metadata,
    get_execution_stats,
    process_result,
)
from tests.fakes import FakeProvider


def create_parse_error() -> ValidationError:
    return ValidationError(
        code="json_parse",
        message="Invalid JSON format",
        failure_mode=FailureMode.JSON_PARSE_FAILURE,
        retry_strategy=RetryStrategyHint.DEMAND_JSON_FORMAT,
    )


class TestProcessResult:
    """Test mapping controller outcomes to results."""

    def setup_method(self):
        self.provider = FakeProvider([])
        self.started_at = datetime.now(timezone.utc) - timedelta(milliseconds=250)

    def test_success(self):
        """Test that a successful run carries value, session and metadata."""
        usage = TokenUsage(input_tokens=5, output_tokens=7, total_tokens=12)
        execution = ExecutionResult(success=True, attempts=2, value={"a": 1}, token_usage=usage)

        result = process_result(execution, "s1", self.started_at, self.provider, "m1")

        assert isinstance(result, Success)
        assert result.value == {"a": 1}
        assert result.attempts == 2
        assert result.session_id == "s1"
        assert result.metadata.provider == "fake"
        assert result.metadata.model == "m1"
        assert result.metadata.token_usage == usage
        assert result.metadata.execution_time_ms >= 250
        assert result.metadata.extra == {}

    def test_failure_keeps_every_error(self):
        """Test that a failed run keeps the last error and the history."""
        first = create_parse_error()
        last = ProviderError(code="provider_call_failed", message="down", provider="fake")
        execution = ExecutionResult(success=False, attempts=2, error=last, all_errors=(first, last))

        result = process_result(execution, None, self.started_at, self.provider)

        assert isinstance(result, Failure)
        assert result.error is last
        assert result.all_errors == (first, last)
        assert result.session_id is None

    def test_enhancement_attempts_in_metadata(self):
        execution = ExecutionResult(success=True, attempts=3, value=[1], enhancement_attempts=2)

        result = process_result(execution, None, self.started_at, self.provider)

        assert result.metadata.extra == {"enhancement_attempts": 2}


class TestErrorResult:
    """Test failures produced outside the retry loop."""

    def test_zero_attempts(self):
        error = ConfigurationError(code="invalid_options", message="bad", field_name="retries")

        result = error_result(error, datetime.now(timezone.utc), FakeProvider([]), "m1")

        assert result.attempts == 0
        assert result.all_errors == (error,)
        assert result.metadata.model == "m1"
        assert result.metadata.token_usage is None


class TestReporting:
    """Test flat statistics and formatted metadata."""

    def setup_method(self):
        started_at = datetime.now(timezone.utc)
        provider = FakeProvider([])
        self.success = process_result(
            ExecutionResult(success=True, attempts=1, value=1), "s1", started_at, provider, "m1"
        )
        self.failure = error_result(create_parse_error(), started_at, provider)

    def test_success_stats(self):
        stats = get_execution_stats(self.success)

        assert stats["successful"] is True
        assert stats["attempts"] == 1
        assert stats["provider"] == "fake"
        assert stats["has_session"] is True
        assert stats["model"] == "m1"
        assert "error_type" not in stats

    def test_failure_stats(self):
        stats = get_execution_stats(self.failure)

        assert stats["successful"] is False
        assert stats["has_session"] is False
        assert stats["error_type"] == "validation"
        assert "model" not in stats

    @pytest.mark.parametrize(
        "attr,status",
        [("success", "success"), ("failure", "error")],
    )
    def test_formatted_status(self, attr, status):
        formatted = format_result_metadata(getattr(self, attr))

        assert formatted["status"] == status
        assert formatted["duration"].endswith("ms")

    def test_error_summary(self):
        formatted = format_result_metadata(self.failure)

        assert formatted["error_summary"] == "validation:json_parse - Invalid JSON format"
