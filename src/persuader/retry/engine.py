"""
Retry Controller: prompt -> provider -> validation, repeated with feedback.

Attempt loop (max_attempts = retries + 1):
    1. Attempt 1 uses the base prompt; later attempts rebuild it with the
       attempt number (escalated wording) and append the previous failure's
       feedback
    2. Provider exceptions become retryable ProviderError values for that
       attempt; they never end the loop early
    3. The response is validated; success ends the loop immediately
    4. Every attempt is recorded in session metrics before the next starts

Backoff and stop rules come from ``retry_with_feedback``. After a success,
success feedback is sent to the session and enhancement rounds run when
configured.

Usage:
    engine = RetryEngine(provider, metrics_recorder=SessionMetricsRecorder(store))
    result = await engine.execute_with_retry(config, session_id)
"""

import time
from typing import TYPE_CHECKING, Any, Optional

import structlog

from persuader.llm.base_client import ProviderAdapter
from persuader.llm.prompt_builder import (
    PromptBuilder,
    PromptParts,
    augment_prompt_with_errors,
    combine_prompt_parts,
)
from persuader.models.errors import PipelineError, ProviderError
from persuader.models.llm_models import TokenUsage
from persuader.models.results import ExecutionResult
from persuader.monitoring.metrics import attempts_total, provider_errors_total
from persuader.retry.enhancement import EnhancementController
from persuader.retry.policy import AttemptOutcome, RetryPolicy, retry_with_feedback
from persuader.session.metrics import SessionMetricsRecorder
from persuader.validation.feedback import format_error_feedback
from persuader.validation.pipeline import ValidationFailure, ValidationPipeline

if TYPE_CHECKING:
    from persuader.runner.configuration import ProcessedConfiguration

logger = structlog.get_logger(__name__)


def is_attempt_retryable(error: PipelineError) -> bool:
    """
    Stop rule for controller attempts: the error's own ``retryable`` flag.

    Provider-call failures are wrapped with ``retryable=True`` whatever their
    status code, so only errors raised outside the attempt (``unexpected_error``)
    end the loop before ``max_attempts``.
    """
    return error.retryable


class RetryEngine:
    """
    Retry controller for one provider.

    Attributes:
        provider: Provider adapter for every call
        prompt_builder: Prompt builder
        retry_policy: Backoff parameters
        metrics_recorder: Session metrics writer (None disables recording)
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        prompt_builder: Optional[PromptBuilder] = None,
        retry_policy: Optional[RetryPolicy] = None,
        metrics_recorder: Optional[SessionMetricsRecorder] = None,
    ):
        self.provider = provider
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.metrics_recorder = metrics_recorder

    def build_attempt_prompt(
        self,
        config: "ProcessedConfiguration",
        base_parts: PromptParts,
        attempt: int,
        previous_error: Optional[PipelineError],
    ) -> PromptParts:
        """
        Prompt parts for ``attempt``.

        The previous error is rendered as feedback: full corrections for a
        validation failure, a one-line note for a failed provider call.
        """
        if attempt == 1:
            return base_parts

        parts = self.prompt_builder.build_prompt(
            config.schema,
            config.input,
            context=config.context,
            lens=config.lens,
            example_output=config.example_output,
            attempt=attempt,
        )
        feedback = format_error_feedback(previous_error, attempt) if previous_error else None
        if feedback is None:
            return parts

        logger.debug(
            "Appending failure feedback to prompt",
            attempt=attempt,
            error_code=previous_error.code,
            feedback_length=len(feedback),
        )
        return augment_prompt_with_errors(parts, feedback)

    async def _record_attempt(
        self,
        session_id: Optional[str],
        attempt: int,
        success: bool,
        started: float,
        token_usage: Optional[TokenUsage],
    ) -> None:
        if session_id and self.metrics_recorder is not None:
            await self.metrics_recorder.record_attempt(
                session_id, attempt, success, (time.monotonic() - started) * 1000, token_usage
            )

    async def _send_success_feedback(
        self, config: "ProcessedConfiguration", session_id: Optional[str], attempt: int, value: Any
    ) -> None:
        if not config.success_message or not session_id:
            return

        if self.metrics_recorder is not None:
            await self.metrics_recorder.record_success_feedback(
                session_id,
                config.success_message,
                attempt,
                config.schema.to_jsonable(value),
            )
        try:
            await self.provider.send_success_feedback(session_id, config.success_message, value)
        except Exception as e:
            logger.warning(
                "Failed to send success feedback to provider",
                provider=self.provider.name,
                session_id=session_id,
                error=str(e),
            )
            return
        logger.debug("Success feedback sent", session_id=session_id, attempt=attempt)

    async def execute_with_retry(
        self, config: "ProcessedConfiguration", session_id: Optional[str] = None
    ) -> ExecutionResult:
        """
        Run the attempt loop for ``config``.

        Args:
            config: Processed configuration
            session_id: Session to run in, or None for stateless calls

        Returns:
            ExecutionResult; attempts include enhancement rounds that reached
            the provider
        """
        validator = ValidationPipeline(config.schema)
        base_parts = self.prompt_builder.build_prompt(
            config.schema,
            config.input,
            context=config.context,
            lens=config.lens,
            example_output=config.example_output,
        )
        usages: list[TokenUsage] = []

        logger.info(
            "Starting retry loop",
            provider=self.provider.name,
            model=config.model,
            max_attempts=config.max_attempts,
            session_id=session_id,
        )

        async def attempt_once(attempt: int, previous_error: Optional[PipelineError]) -> AttemptOutcome:
            prompt = combine_prompt_parts(
                self.build_attempt_prompt(config, base_parts, attempt, previous_error)
            )
            started = time.monotonic()

            try:
                response = await self.provider.send_prompt(session_id, prompt, config.prompt_options)
            except Exception as e:
                error = ProviderError.from_exception(
                    e,
                    self.provider.name,
                    message=f"Provider call failed on attempt {attempt}: {e}",
                    details={"attempt": attempt},
                    retryable=True,
                )
                logger.warning(
                    "Provider call failed",
                    attempt=attempt,
                    provider=self.provider.name,
                    error=str(e),
                    status_code=error.status_code,
                    retryable=error.retryable,
                )
                attempts_total.labels(outcome="provider_error").inc()
                provider_errors_total.labels(
                    provider=self.provider.name, retryable=str(error.retryable).lower()
                ).inc()
                await self._record_attempt(session_id, attempt, False, started, None)
                return AttemptOutcome.failed(error)

            if response.token_usage is not None:
                usages.append(response.token_usage)
            if response.truncated:
                logger.warning("Provider response was truncated", attempt=attempt, stop_reason=response.stop_reason)

            result = validator.validate(response.content)
            await self._record_attempt(
                session_id, attempt, result.ok, started, response.token_usage
            )

            if isinstance(result, ValidationFailure):
                logger.warning(
                    "Attempt failed validation",
                    attempt=attempt,
                    error_code=result.error.code,
                    failure_mode=result.error.failure_mode.value,
                    issues=len(result.error.issues),
                )
                attempts_total.labels(outcome="validation_failure").inc()
                return AttemptOutcome.failed(result.error)

            logger.info("Attempt succeeded", attempt=attempt, provider=self.provider.name)
            attempts_total.labels(outcome="success").inc()
            await self._send_success_feedback(config, session_id, attempt, result.value)
            return AttemptOutcome.succeeded(result.value)

        retry_result = await retry_with_feedback(
            attempt_once, config.max_attempts, self.retry_policy, is_retryable=is_attempt_retryable
        )

        if not retry_result.success:
            logger.error(
                "Retry loop failed",
                attempts=retry_result.attempts,
                error_code=retry_result.error.code,
                errors=len(retry_result.all_errors),
                total_retry_time_ms=round(retry_result.total_retry_time_ms, 1),
            )
            return ExecutionResult(
                success=False,
                attempts=retry_result.attempts,
                error=retry_result.error,
                all_errors=retry_result.all_errors,
                token_usage=_total(usages),
            )

        value = retry_result.value
        enhancement_attempts = 0
        if config.enhancement is not None and config.enhancement.rounds > 0:
            controller = EnhancementController(
                self.provider,
                validator,
                self.prompt_builder,
                config.enhancement,
                metrics_recorder=self.metrics_recorder,
            )
            outcome = await controller.run(
                value,
                config.prompt_options,
                session_id=session_id,
                context=config.context,
                lens=config.lens,
                base_attempts=retry_result.attempts,
            )
            value = outcome.value
            enhancement_attempts = outcome.attempts
            if outcome.token_usage is not None:
                usages.append(outcome.token_usage)

        return ExecutionResult(
            success=True,
            attempts=retry_result.attempts + enhancement_attempts,
            value=value,
            all_errors=retry_result.all_errors,
            token_usage=_total(usages),
            enhancement_attempts=enhancement_attempts,
        )


def _total(usages: list[TokenUsage]) -> Optional[TokenUsage]:
    return sum(usages, TokenUsage()) if usages else None


async def execute_with_retry(
    config: "ProcessedConfiguration",
    provider: ProviderAdapter,
    session_id: Optional[str] = None,
    *,
    prompt_builder: Optional[PromptBuilder] = None,
    retry_policy: Optional[RetryPolicy] = None,
    metrics_recorder: Optional[SessionMetricsRecorder] = None,
) -> ExecutionResult:
    """Functional entry point for a one-off ``RetryEngine`` run."""
    engine = RetryEngine(
        provider,
        prompt_builder=prompt_builder,
        retry_policy=retry_policy,
        metrics_recorder=metrics_recorder,
    )
    return await engine.execute_with_retry(config, session_id)
