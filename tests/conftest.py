"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration
tests. The scripted providers themselves live in ``tests/fakes.py``.
"""

import pytest

from persuader.config import Settings
from persuader.retry.policy import RetryPolicy
from persuader.session.store import InMemorySessionStore
from tests.fakes import FakeProvider, FakeSessionProvider, ScriptedReply


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.DEFAULT_RETRIES = 1
    """
    return Settings(
        APP_NAME="persuader-test",
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",
        DEFAULT_RETRIES=3,
        RETRY_BASE_DELAY_MS=0,
        OLLAMA_BASE_URL="http://ollama.test",
        OLLAMA_MODEL="llama3.2",
        OLLAMA_TIMEOUT=5,
    )


@pytest.fixture
def no_delay_policy() -> RetryPolicy:
    """Retry policy without backoff sleeps."""
    return RetryPolicy(base_delay_ms=0, multiplier=1, max_delay_ms=0)


@pytest.fixture
def session_store() -> InMemorySessionStore:
    """Fresh in-memory session store."""
    return InMemorySessionStore()


@pytest.fixture
def create_fake_provider():
    """Factory fixture to create a scripted provider.

    Usage:
        def test_something(create_fake_provider):
            provider = create_fake_provider(['{"name": "Al", "age": 30}'])
    """
    def _create(replies: list[ScriptedReply], sessions: bool = False, **kwargs) -> FakeProvider:
        if sessions:
            return FakeSessionProvider(replies, **kwargs)
        return FakeProvider(replies, **kwargs)

    return _create
