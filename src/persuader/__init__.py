"""
Persuader: schema-validated structured output from LLMs.

Sends a prompt to a provider, validates the reply against a caller-supplied
schema and, on failure, retries with targeted feedback describing what was
wrong. Optional enhancement rounds refine a validated result.

Architecture: provider adapter (Ollama or custom) + two-stage validation
(JSON parse, schema) + feedback-driven retry loop
"""

from persuader.llm.base_client import ProviderAdapter
from persuader.llm.ollama_client import OllamaProvider
from persuader.models import (
    ConfigurationError,
    EnhancementConfig,
    EnhancementStrategy,
    Failure,
    FailureMode,
    Options,
    ProviderError,
    Result,
    SessionError,
    Success,
    ValidationError,
)
from persuader.retry.policy import RetryPolicy
from persuader.runner.orchestrator import PipelineOrchestrator, persuade
from persuader.session.store import InMemorySessionStore, SessionStore
from persuader.validation.pipeline import validate_json

__version__ = "0.1.0"

__all__ = [
    "ProviderAdapter",
    "OllamaProvider",
    "ConfigurationError",
    "EnhancementConfig",
    "EnhancementStrategy",
    "Failure",
    "FailureMode",
    "Options",
    "ProviderError",
    "Result",
    "SessionError",
    "Success",
    "ValidationError",
    "RetryPolicy",
    "PipelineOrchestrator",
    "persuade",
    "InMemorySessionStore",
    "SessionStore",
    "validate_json",
]
