"""
Custom exceptions for provider adapters.

Adapters raise these from ``send_prompt``; the retry controller wraps them
into ``ProviderError`` values and decides retryability from ``status_code``
and the message, so adapters never declare retryability themselves.
"""


class LLMClientError(Exception):
    """
    Base exception for all provider adapter errors.
    """
    def __init__(self, message: str, details: dict | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.status_code = status_code if status_code is not None else self.details.get("status")


class LLMConnectionError(LLMClientError):
    """
    Raised when unable to reach the provider.

    Includes network errors, DNS failures, refused connections, etc.
    """
    pass


class LLMTimeoutError(LLMConnectionError):
    """
    Raised when the provider call exceeds the timeout threshold.
    """
    pass


class LLMGenerationError(LLMClientError):
    """
    Raised when the provider returns an error during generation.

    Examples:
    - Server error (5xx)
    - Invalid parameters (4xx)
    - Empty or undecodable response body
    """
    pass


class LLMRateLimitError(LLMGenerationError):
    """
    Raised when the provider rate-limits the request (HTTP 429).
    """
    pass


class LLMModelNotAvailableError(LLMGenerationError):
    """
    Raised when the requested model is not available on the server.
    """
    pass


class LLMSessionError(LLMClientError):
    """
    Raised when a session id is unknown to the adapter or cannot be created.
    """
    pass
