"""
Caller-facing pipeline options.

``Options`` is accepted as-is; the configuration processor validates it and
produces a ``ProcessedConfiguration`` with defaults applied.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from persuader.models.enums import EnhancementStrategy

# (current_best, round_number) -> enhancement request text
EnhancementPromptBuilder = Callable[[Any, int], str]
# (baseline, candidate) -> improvement score in [0, 1]
ImprovementEvaluator = Callable[[Any, Any], float]


@dataclass(frozen=True, kw_only=True)
class EnhancementConfig:
    """
    Post-success refinement settings.

    Attributes:
        rounds: Number of enhancement rounds to attempt (0-5)
        strategy: Built-in strategy or CUSTOM
        min_improvement: Score a candidate must reach to replace the current best
        custom_prompt: Prompt builder, required for the CUSTOM strategy
        evaluate_improvement: Optional scorer overriding the strategy's own
    """

    rounds: int = 0
    strategy: EnhancementStrategy | str | None = None
    min_improvement: Optional[float] = None
    custom_prompt: Optional[EnhancementPromptBuilder] = None
    evaluate_improvement: Optional[ImprovementEvaluator] = None


@dataclass(frozen=True, kw_only=True)
class Options:
    """
    Options for a single pipeline invocation.

    Attributes:
        schema: Pydantic model class, TypeAdapter, type annotation or JSON Schema dict
        input: Data to process (strings are embedded verbatim, anything else as JSON)
        context: Background guidance for the model
        lens: Perspective the model should process the input from
        retries: Extra attempts after the first (0-10, default from settings)
        model: Model identifier passed to the provider
        provider_options: Extra provider-specific options
        max_tokens: Generation limit passed to the provider
        temperature: Sampling temperature passed to the provider (0-2)
        example_output: Concrete example of a valid output
        success_message: Message recorded in the session after a validated attempt
        enhancement: Round count or full EnhancementConfig
        session_id: Existing session to reuse
        log_level: When set, logging is (re)configured at this level
    """

    schema: Any
    input: Any
    context: Optional[str] = None
    lens: Optional[str] = None
    retries: Optional[int] = None
    model: Optional[str] = None
    provider_options: dict[str, Any] = field(default_factory=dict)
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    example_output: Any = None
    success_message: Optional[str] = None
    enhancement: int | EnhancementConfig | None = None
    session_id: Optional[str] = None
    log_level: Optional[str] = None
