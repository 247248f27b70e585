"""
Pipeline Orchestrator.

Flow for one ``persuade`` call:
    1. Validate options and apply defaults (configuration errors: 0 attempts)
    2. Resolve or create a session (session errors: 0 attempts)
    3. Run the retry controller
    4. Map the outcome plus timing into a ``Success`` or ``Failure``

Nothing escapes as an exception: anything unexpected is reported as a
``ProviderError`` with code ``orchestration_failed`` and zero attempts.

Concurrency: independent runs may execute concurrently. Runs sharing a
``session_id`` must not overlap (see ``persuader.session.store``).
"""

from datetime import datetime, timezone
from typing import Optional

import structlog

from persuader.config import settings
from persuader.llm.base_client import ProviderAdapter
from persuader.llm.ollama_client import OllamaProvider
from persuader.llm.prompt_builder import PromptBuilder
from persuader.logging_config import configure_logging
from persuader.models.errors import ConfigurationError, ProviderError
from persuader.models.options import Options
from persuader.models.results import Result
from persuader.retry.engine import RetryEngine
from persuader.retry.policy import RetryPolicy
from persuader.runner.configuration import InvalidOptionsError, process_configuration
from persuader.runner.result_processor import error_result, process_result
from persuader.session.coordinator import SessionCoordinationError, coordinate_session
from persuader.session.metrics import SessionMetricsRecorder
from persuader.session.store import InMemorySessionStore, SessionStore

logger = structlog.get_logger(__name__)


class PipelineOrchestrator:
    """
    Runs pipelines against one provider with shared collaborators.

    Attributes:
        provider: Provider adapter
        session_store: Store for session records and metrics
        retry_policy: Backoff parameters
        prompt_builder: Prompt builder (templates loaded once)
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        session_store: Optional[SessionStore] = None,
        retry_policy: Optional[RetryPolicy] = None,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        self.provider = provider
        self.session_store = session_store if session_store is not None else InMemorySessionStore()
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.engine = RetryEngine(
            provider,
            prompt_builder=self.prompt_builder,
            retry_policy=self.retry_policy,
            metrics_recorder=SessionMetricsRecorder(self.session_store),
        )

    async def run(self, options: Options) -> Result:
        """
        Execute one pipeline run.

        Args:
            options: Caller options

        Returns:
            Success with the validated value, or Failure with the last error
        """
        started_at = datetime.now(timezone.utc)
        model = getattr(options, "model", None)

        try:
            try:
                config = process_configuration(options, self.provider)
            except InvalidOptionsError as e:
                return error_result(
                    ConfigurationError(
                        code="invalid_options",
                        message=str(e),
                        field_name=e.field_name,
                        details={"errors": [message for _, message in e.errors]},
                    ),
                    started_at,
                    self.provider,
                    model,
                )

            if config.log_level:
                configure_logging(config.log_level, settings.ENVIRONMENT)
            model = config.model
            try:
                session_id = await coordinate_session(
                    self.provider,
                    self.session_store,
                    session_id=config.session_id,
                    context=config.context,
                    model=config.model,
                    temperature=config.prompt_options.temperature,
                )
            except SessionCoordinationError as e:
                return error_result(e.error, started_at, self.provider, model)

            with structlog.contextvars.bound_contextvars(
                provider=self.provider.name, session_id=session_id
            ):
                logger.info("Starting pipeline execution", max_attempts=config.max_attempts)
                execution_result = await self.engine.execute_with_retry(config, session_id)
            return process_result(execution_result, session_id, started_at, self.provider, model)

        except Exception as e:
            logger.error(
                "Pipeline orchestration failed",
                provider=self.provider.name,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return error_result(
                ProviderError(
                    code="orchestration_failed",
                    message=f"Pipeline orchestration failed: {e}",
                    provider=self.provider.name,
                    retryable=False,
                    details={"error_type": type(e).__name__},
                ),
                started_at,
                self.provider,
                model,
            )


async def persuade(
    options: Options,
    provider: Optional[ProviderAdapter] = None,
    *,
    session_store: Optional[SessionStore] = None,
    retry_policy: Optional[RetryPolicy] = None,
    prompt_builder: Optional[PromptBuilder] = None,
) -> Result:
    """
    Run the retry-validate-feedback pipeline once.

    Args:
        options: Caller options
        provider: Provider adapter (an Ollama adapter from settings when omitted)
        session_store: Store for session records (a fresh in-memory store when omitted)
        retry_policy: Backoff parameters (from settings when omitted)
        prompt_builder: Prompt builder (package templates when omitted)

    Example:
        result = await persuade(Options(schema=Person, input="Al is thirty"), provider)
        match result:
            case Success(value=person): ...
            case Failure(error=error): ...
    """
    owns_provider = provider is None
    provider = provider or OllamaProvider()
    try:
        orchestrator = PipelineOrchestrator(
            provider,
            session_store=session_store,
            retry_policy=retry_policy,
            prompt_builder=prompt_builder,
        )
        return await orchestrator.run(options)
    finally:
        if owns_provider:
            await provider.close()
