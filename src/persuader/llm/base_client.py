"""
Abstract base for provider adapters.

Defines the interface every provider adapter (Ollama, hosted APIs, test
fakes) implements. The engine only talks to providers through this class,
so backends can be swapped without touching the retry or validation code.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog

from persuader.models.llm_models import (
    ProviderHealth,
    ProviderPromptOptions,
    ProviderResponse,
    ProviderSessionOptions,
)

logger = structlog.get_logger(__name__)


class ProviderAdapter(ABC):
    """
    Abstract base class for provider adapters.

    Responsibilities:
    - Send a prompt to the model and return its raw text
    - Optionally keep a conversational session (``supports_session``)
    - Report health

    Does NOT handle:
    - Prompt construction (that's the prompt builder's job)
    - Response validation (that's the validation pipeline's job)
    - Retrying failed attempts (that's the retry controller's job)

    ``send_prompt`` must raise on failure. Retryability is inferred by the
    caller from the exception's status code and message.
    """

    name: str = "provider"
    supports_session: bool = False

    @abstractmethod
    async def send_prompt(
        self,
        session_id: Optional[str],
        prompt: str,
        options: ProviderPromptOptions,
    ) -> ProviderResponse:
        """
        Send a prompt and return the model's raw response.

        Args:
            session_id: Session to continue, or None for a stateless call
            prompt: Complete prompt text
            options: Model, max tokens, temperature and extras

        Returns:
            ProviderResponse with the generated text

        Raises:
            LLMClientError: Any provider failure (subclass indicates the kind)
        """

    async def create_session(
        self, context: str, options: Optional[ProviderSessionOptions] = None
    ) -> str:
        """
        Create a provider-side session primed with ``context``.

        Only meaningful when ``supports_session`` is True.

        Returns:
            New session id
        """
        raise NotImplementedError(f"{self.name} does not implement create_session")

    async def destroy_session(self, session_id: str) -> None:
        """Best-effort session cleanup. Default does nothing."""
        logger.debug("destroy_session not implemented", provider=self.name, session_id=session_id)

    async def send_success_feedback(
        self, session_id: str, message: str, validated_output: Any = None
    ) -> None:
        """
        Tell a session that an output validated.

        Default does nothing; session-keeping adapters may append the message
        to their history.
        """
        logger.debug("send_success_feedback not implemented", provider=self.name)

    async def get_health(self) -> ProviderHealth:
        """
        Check whether the provider is reachable.

        Used outside the retry loop (startup checks, diagnostics).
        """
        raise NotImplementedError(f"{self.name} does not implement get_health")

    async def close(self) -> None:
        """
        Close connections and cleanup resources. Default does nothing.
        """
        logger.debug("Closing provider adapter", provider=self.name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name}, supports_session={self.supports_session})"
