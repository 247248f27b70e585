"""
Enhancement Controller: optional refinement rounds after a validated result.

Each round asks the model to improve the current best value, validates the
answer and scores it against the current best. A candidate replaces the
current best only when its score reaches ``min_improvement``; failed,
invalid or low-scoring rounds leave it untouched.

Strategies:
- expand-array: more items, diversity kept (score: item increase 0.7 + diversity 0.3)
- expand-detail: longer text, deeper structure (score: length increase 0.8 + 0.2 if deeper)
- expand-variety: more distinct values (score: unique increase 0.6 + diversity 0.4)
- custom: caller-supplied prompt builder (and optionally evaluator)
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Optional

import structlog

from persuader.llm.base_client import ProviderAdapter
from persuader.llm.prompt_builder import PromptBuilder
from persuader.models.enums import EnhancementStrategy
from persuader.models.llm_models import ProviderPromptOptions, TokenUsage
from persuader.models.options import EnhancementConfig
from persuader.monitoring.metrics import enhancement_rounds_total
from persuader.session.metrics import SessionMetricsRecorder
from persuader.validation.pipeline import ValidationFailure, ValidationPipeline

logger = structlog.get_logger(__name__)

ARRAY_ENCOURAGEMENTS = (
    "Great start! Could you expand this with more comprehensive examples?",
    "Excellent foundation! Let's add more diverse items to make this even better.",
    "Good work! Can you provide additional entries to create a more complete set?",
)
DETAIL_ENCOURAGEMENTS = (
    "Good response! Let's enhance it with more detailed information.",
    "Nice work! Could you elaborate further with additional depth?",
    "Great foundation! Please add more comprehensive details.",
)
VARIETY_ENCOURAGEMENTS = (
    "Good variety! Let's add more diverse perspectives.",
    "Nice range! Could you include additional unique variations?",
    "Great diversity! Please add more distinct examples.",
)

MIN_SUGGESTED_ITEMS = 5
DETAIL_LIGHT_AVG_LENGTH = 50
LOW_VARIETY_RATIO = 0.8


@dataclass(frozen=True)
class ResultInfo:
    """Structural statistics of a JSON value."""

    array_count: int = 0
    total_items: int = 0
    total_string_length: int = 0
    unique_values: int = 0
    depth: int = 0
    has_arrays: bool = False
    has_strings: bool = False
    has_objects: bool = False


def analyze_result(result: Any) -> ResultInfo:
    """
    Walk a JSON value and collect counts.

    Array elements and object values both count as items; strings and array
    elements (by their JSON text) feed the unique-value set.
    """
    stats = {
        "array_count": 0,
        "total_items": 0,
        "total_string_length": 0,
        "depth": 0,
        "has_arrays": False,
        "has_strings": False,
        "has_objects": False,
    }
    unique: set[str] = set()

    def traverse(value: Any, depth: int) -> None:
        stats["depth"] = max(stats["depth"], depth)
        if isinstance(value, list):
            stats["has_arrays"] = True
            stats["array_count"] += 1
            stats["total_items"] += len(value)
            for item in value:
                unique.add(json.dumps(item, sort_keys=True, default=str))
                traverse(item, depth + 1)
        elif isinstance(value, dict):
            stats["has_objects"] = True
            stats["total_items"] += len(value)
            for item in value.values():
                traverse(item, depth + 1)
        elif isinstance(value, str):
            stats["has_strings"] = True
            stats["total_string_length"] += len(value)
            unique.add(value)

    traverse(result, 0)
    return ResultInfo(unique_values=len(unique), **stats)


def _encouragement(options: tuple[str, ...], round_number: int) -> str:
    return options[min(max(round_number, 1) - 1, len(options) - 1)]


def _array_request(info: ResultInfo, round_number: int) -> str:
    encouragement = _encouragement(ARRAY_ENCOURAGEMENTS, round_number)
    if not info.has_arrays:
        return (
            f"{encouragement}\n\n"
            "Could you expand your response with more items or examples? "
            "Aim for a comprehensive collection that thoroughly covers the topic."
        )

    suggested_more = max(MIN_SUGGESTED_ITEMS, int(info.total_items * 0.5))
    return (
        f"{encouragement}\n\n"
        f"You provided {info.total_items} items, which is good. Could you add approximately "
        f"{suggested_more} more items to create a more comprehensive collection?\n\n"
        "Focus on:\n"
        "- Adding diverse and unique examples\n"
        "- Maintaining the same quality and structure\n"
        "- Avoiding repetition or redundancy\n\n"
        "Please provide the complete enhanced result including both the original items and the new additions."
    )


def _detail_request(info: ResultInfo, round_number: int) -> str:
    encouragement = _encouragement(DETAIL_ENCOURAGEMENTS, round_number)
    avg_length = info.total_string_length / max(1, info.total_items)
    assessment = (
        "The current descriptions are quite brief."
        if avg_length < DETAIL_LIGHT_AVG_LENGTH
        else "Good level of detail so far."
    )
    return (
        f"{encouragement}\n\n"
        f"{assessment} Please enhance the result by:\n\n"
        "- Adding more descriptive information to each item\n"
        "- Including relevant context and explanations\n"
        "- Providing specific examples where applicable\n"
        "- Expanding on key points with additional insights\n\n"
        "Maintain the same structure while enriching the content quality."
    )


def _variety_request(info: ResultInfo, round_number: int) -> str:
    encouragement = _encouragement(VARIETY_ENCOURAGEMENTS, round_number)
    ratio = info.unique_values / max(1, info.total_items)
    assessment = "Some items appear similar." if ratio < LOW_VARIETY_RATIO else "Good variety so far."
    return (
        f"{encouragement}\n\n"
        f"{assessment} Please enhance the result by:\n\n"
        "- Adding more unique and distinctive items\n"
        "- Exploring different angles or perspectives\n"
        "- Avoiding repetition or similar patterns\n"
        "- Including edge cases or less common examples\n\n"
        "Focus on maximizing diversity while maintaining quality and relevance."
    )


def build_enhancement_request(config: EnhancementConfig, current: Any, round_number: int) -> str:
    """
    Strategy-specific request text for one round.

    Args:
        config: Processed enhancement settings
        current: Current best value as plain JSON data
        round_number: 1-based round number
    """
    if config.custom_prompt is not None:
        return config.custom_prompt(current, round_number)

    info = analyze_result(current)
    match config.strategy:
        case EnhancementStrategy.EXPAND_DETAIL:
            return _detail_request(info, round_number)
        case EnhancementStrategy.EXPAND_VARIETY:
            return _variety_request(info, round_number)
        case EnhancementStrategy.CUSTOM:
            raise ValueError("custom enhancement strategy requires custom_prompt")
        case _:
            return _array_request(info, round_number)


def _clamp(score: float) -> float:
    return min(1.0, max(0.0, score))


def score_array_expansion(baseline: ResultInfo, enhanced: ResultInfo) -> float:
    if baseline.total_items == 0:
        return 1.0 if enhanced.total_items > 0 else 0.0
    item_increase = (enhanced.total_items - baseline.total_items) / baseline.total_items
    diversity = enhanced.unique_values / max(1, enhanced.total_items)
    return _clamp(item_increase * 0.7 + diversity * 0.3)


def score_detail_expansion(baseline: ResultInfo, enhanced: ResultInfo) -> float:
    baseline_avg = baseline.total_string_length / max(1, baseline.total_items)
    enhanced_avg = enhanced.total_string_length / max(1, enhanced.total_items)
    if baseline_avg == 0:
        return 1.0 if enhanced_avg > 0 else 0.0
    length_increase = (enhanced_avg - baseline_avg) / baseline_avg
    depth_bonus = 0.2 if enhanced.depth > baseline.depth else 0.0
    return _clamp(length_increase * 0.8 + depth_bonus)


def score_variety_expansion(baseline: ResultInfo, enhanced: ResultInfo) -> float:
    if baseline.unique_values == 0:
        return 1.0 if enhanced.unique_values > 0 else 0.0
    unique_increase = (enhanced.unique_values - baseline.unique_values) / baseline.unique_values
    diversity = enhanced.unique_values / max(1, enhanced.total_items)
    return _clamp(unique_increase * 0.6 + diversity * 0.4)


_SCORERS = {
    EnhancementStrategy.EXPAND_ARRAY: score_array_expansion,
    EnhancementStrategy.EXPAND_DETAIL: score_detail_expansion,
    EnhancementStrategy.EXPAND_VARIETY: score_variety_expansion,
}


def evaluate_improvement(config: EnhancementConfig, baseline: Any, enhanced: Any) -> float:
    """
    Score ``enhanced`` against ``baseline``.

    A custom evaluator receives the values as given; built-in strategies
    compare structural statistics and return a score in [0, 1].
    """
    if config.evaluate_improvement is not None:
        return float(config.evaluate_improvement(baseline, enhanced))

    scorer = _SCORERS.get(config.strategy, score_array_expansion)
    return scorer(analyze_result(baseline), analyze_result(enhanced))


@dataclass(frozen=True)
class EnhancementOutcome:
    """
    Attributes:
        value: Best value after all rounds
        attempts: Rounds that reached the provider
        accepted_rounds: Rounds whose candidate replaced the current best
        token_usage: Tokens used by enhancement rounds
    """

    value: Any
    attempts: int = 0
    accepted_rounds: int = 0
    token_usage: Optional[TokenUsage] = None


class EnhancementController:
    """
    Runs enhancement rounds against one provider.

    Errors inside a round are logged and the round skipped; they never fail
    the pipeline.
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        validator: ValidationPipeline,
        prompt_builder: PromptBuilder,
        config: EnhancementConfig,
        metrics_recorder: Optional[SessionMetricsRecorder] = None,
    ):
        self.provider = provider
        self.validator = validator
        self.prompt_builder = prompt_builder
        self.config = config
        self.metrics_recorder = metrics_recorder

    def _round_prompt(self, current: Any, round_number: int, context: Optional[str], lens: Optional[str]) -> str:
        schema = self.validator.schema
        request = build_enhancement_request(self.config, schema.to_jsonable(current), round_number)
        return self.prompt_builder.build_enhancement_prompt(schema, current, request, context, lens)

    def _score(self, baseline: Any, candidate: Any) -> float:
        if self.config.evaluate_improvement is not None:
            return evaluate_improvement(self.config, baseline, candidate)
        schema = self.validator.schema
        return evaluate_improvement(self.config, schema.to_jsonable(baseline), schema.to_jsonable(candidate))

    async def _record(self, session_id: Optional[str], attempt_number: int, success: bool, started: float, usage: Optional[TokenUsage]) -> None:
        if session_id and self.metrics_recorder is not None:
            await self.metrics_recorder.record_attempt(
                session_id,
                attempt_number,
                success,
                (time.monotonic() - started) * 1000,
                usage,
                enhancement=True,
            )

    async def run(
        self,
        baseline: Any,
        prompt_options: ProviderPromptOptions,
        session_id: Optional[str] = None,
        context: Optional[str] = None,
        lens: Optional[str] = None,
        base_attempts: int = 0,
    ) -> EnhancementOutcome:
        """
        Run the configured rounds starting from ``baseline``.

        Args:
            baseline: Validated value from the retry loop
            prompt_options: Provider options used for every round
            session_id: Session the rounds run in
            context: Original context
            lens: Original lens
            base_attempts: Attempts consumed before enhancement (numbers session metrics)
        """
        rounds = self.config.rounds
        min_improvement = self.config.min_improvement or 0.0
        current = baseline
        attempts = 0
        accepted = 0
        usages: list[TokenUsage] = []

        logger.info(
            "Starting enhancement rounds",
            rounds=rounds,
            strategy=str(self.config.strategy),
            min_improvement=min_improvement,
            session_id=session_id,
        )

        for round_number in range(1, rounds + 1):
            try:
                prompt = self._round_prompt(current, round_number, context, lens)
            except Exception as e:
                logger.warning("Failed to build enhancement prompt", round=round_number, error=str(e))
                enhancement_rounds_total.labels(outcome="error").inc()
                continue

            # A round counts once the provider is called, even if the call raises.
            attempts += 1
            attempt_number = base_attempts + attempts
            started = time.monotonic()
            try:
                response = await self.provider.send_prompt(session_id, prompt, prompt_options)
            except Exception as e:
                logger.warning("Enhancement round failed", round=round_number, provider=self.provider.name, error=str(e))
                enhancement_rounds_total.labels(outcome="error").inc()
                await self._record(session_id, attempt_number, False, started, None)
                continue

            if response.token_usage is not None:
                usages.append(response.token_usage)

            result = self.validator.validate(response.content)
            if isinstance(result, ValidationFailure):
                logger.warning(
                    "Enhancement round failed validation",
                    round=round_number,
                    error_code=result.error.code,
                    failure_mode=result.error.failure_mode.value,
                )
                enhancement_rounds_total.labels(outcome="invalid").inc()
                await self._record(session_id, attempt_number, False, started, response.token_usage)
                continue

            candidate = result.value

            await self._record(session_id, attempt_number, True, started, response.token_usage)

            try:
                score = self._score(current, candidate)
            except Exception as e:
                logger.warning("Improvement evaluation failed", round=round_number, error=str(e))
                enhancement_rounds_total.labels(outcome="error").inc()
                continue

            if score >= min_improvement:
                current = candidate
                accepted += 1
                enhancement_rounds_total.labels(outcome="accepted").inc()
                logger.info("Enhancement accepted", round=round_number, score=round(score, 3), threshold=min_improvement)
            else:
                enhancement_rounds_total.labels(outcome="rejected").inc()
                logger.debug("Enhancement rejected", round=round_number, score=round(score, 3), threshold=min_improvement)

        logger.info(
            "Enhancement rounds completed",
            rounds=rounds,
            attempts=attempts,
            accepted_rounds=accepted,
        )
        return EnhancementOutcome(
            value=current,
            attempts=attempts,
            accepted_rounds=accepted,
            token_usage=sum(usages, TokenUsage()) if usages else None,
        )
