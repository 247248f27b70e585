"""Integration test fixtures (service checks and prerequisites).

Tests against a real Ollama server are skipped when it is not reachable.
"""

import httpx
import pytest

from persuader.config import settings


@pytest.fixture(scope="session")
def check_ollama():
    """Check if Ollama is available at the configured URL.

    Skips tests if Ollama is not reachable.
    """
    try:
        response = httpx.get(f"{settings.OLLAMA_BASE_URL}/api/tags", timeout=5)
        if response.status_code != 200:
            pytest.skip("Ollama not available (non-200 status)")
    except httpx.HTTPError as e:
        pytest.skip(f"Ollama not available: {e}")
