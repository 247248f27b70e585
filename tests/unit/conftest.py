"""Unit test fixtures (mocks and stubs).

Provides mock objects and configuration factories for testing without a
running model server.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from persuader.llm.base_client import ProviderAdapter
from persuader.models.llm_models import ProviderResponse, TokenUsage
from persuader.models.options import Options
from persuader.runner.configuration import process_configuration
from persuader.session.metrics import SessionMetricsRecorder
from tests.fakes import Person


@pytest.fixture
def mock_provider():
    """Mock ProviderAdapter returning one valid Person response."""
    mock = AsyncMock(spec=ProviderAdapter)
    mock.name = "mock"
    mock.supports_session = False
    mock.default_model = "mock-model"
    mock.send_prompt = AsyncMock(return_value=ProviderResponse(
        content='{"name": "Al", "age": 30}',
        token_usage=TokenUsage(input_tokens=12, output_tokens=8, total_tokens=20),
        stop_reason="end_turn",
    ))
    return mock


@pytest.fixture
def mock_metrics_recorder():
    """Mock SessionMetricsRecorder for unit tests."""
    mock = AsyncMock(spec=SessionMetricsRecorder)
    mock.record_attempt = AsyncMock(return_value=None)
    mock.record_success_feedback = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def mock_prompt_builder():
    """Mock PromptBuilder for unit tests."""
    mock = Mock()
    mock.build_enhancement_prompt = Mock(return_value="Enhancement prompt")
    return mock


@pytest.fixture
def create_config():
    """Factory fixture to create a ProcessedConfiguration.

    Usage:
        def test_something(create_config):
            config = create_config(retries=0)
    """
    def _create(schema=Person, input="Al is thirty years old", provider=None, **kwargs):
        return process_configuration(Options(schema=schema, input=input, **kwargs), provider)

    return _create
