"""
Data models for Persuader.

Includes:
- Enums (FailureMode, RetryStrategyHint, UrgencyLevel, EnhancementStrategy)
- Error variants (ValidationError, ProviderError, SessionError, ConfigurationError)
- Provider payloads (ProviderResponse, TokenUsage, ProviderHealth)
- Caller options (Options, EnhancementConfig)
- Session records (Session, SessionMetrics)
- Outcomes (ExecutionResult, Success, Failure)
"""

from persuader.models.enums import (
    EnhancementStrategy,
    ErrorType,
    FailureMode,
    RetryStrategyHint,
    UrgencyLevel,
)
from persuader.models.errors import (
    ConfigurationError,
    PipelineError,
    ProviderError,
    SchemaIssue,
    SessionError,
    StructuredFeedback,
    ValidationError,
)
from persuader.models.llm_models import (
    ProviderHealth,
    ProviderPromptOptions,
    ProviderResponse,
    ProviderSessionOptions,
    TokenUsage,
)
from persuader.models.options import EnhancementConfig, Options
from persuader.models.results import (
    ExecutionMetadata,
    ExecutionResult,
    Failure,
    Result,
    Success,
)
from persuader.models.session import Session, SessionMetrics, SuccessFeedback

__all__ = [
    "EnhancementStrategy",
    "ErrorType",
    "FailureMode",
    "RetryStrategyHint",
    "UrgencyLevel",
    "ConfigurationError",
    "PipelineError",
    "ProviderError",
    "SchemaIssue",
    "SessionError",
    "StructuredFeedback",
    "ValidationError",
    "ProviderHealth",
    "ProviderPromptOptions",
    "ProviderResponse",
    "ProviderSessionOptions",
    "TokenUsage",
    "EnhancementConfig",
    "Options",
    "ExecutionMetadata",
    "ExecutionResult",
    "Failure",
    "Result",
    "Success",
    "Session",
    "SessionMetrics",
    "SuccessFeedback",
]
