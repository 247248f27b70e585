"""
Configuration Processor.

Validates caller ``Options`` and applies defaults from settings, producing
the ``ProcessedConfiguration`` the retry controller runs on. Every problem
found is collected before ``InvalidOptionsError`` is raised, so a caller
sees all of them at once.
"""

from dataclasses import dataclass
from typing import Any, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from persuader.config import settings
from persuader.llm.base_client import ProviderAdapter
from persuader.models.enums import EnhancementStrategy
from persuader.models.llm_models import ProviderPromptOptions
from persuader.models.options import EnhancementConfig, Options
from persuader.validation.exceptions import UnsupportedSchemaError
from persuader.validation.schema import SchemaAdapter, resolve_schema

logger = structlog.get_logger(__name__)

VALID_LOG_LEVELS = ("debug", "info", "warning", "error", "critical")
MAX_TEMPERATURE = 2.0


class InvalidOptionsError(ValueError):
    """
    Raised when caller options fail validation.

    Attributes:
        errors: (field, message) pairs in the order they were found
    """

    def __init__(self, errors: list[tuple[str, str]]):
        self.errors = errors
        self.field_name = errors[0][0] if errors else None
        super().__init__("Options validation failed: " + " | ".join(message for _, message in errors))


@dataclass(frozen=True, kw_only=True)
class ProcessedConfiguration:
    """
    Options with defaults applied and the schema resolved.

    Attributes:
        schema: Resolved schema adapter
        input: Data to process
        retries: Extra attempts after the first
        model: Model passed to the provider (None lets the adapter choose)
        prompt_options: Provider options for every call
        context: Background guidance
        lens: Perspective for processing
        example_output: Validated caller example, if any
        success_message: Session message sent after a validated attempt
        enhancement: Enhancement settings when rounds > 0
        session_id: Existing session to reuse
        log_level: Logging level requested for this run
    """

    schema: SchemaAdapter
    input: Any
    retries: int
    model: Optional[str]
    prompt_options: ProviderPromptOptions
    context: Optional[str] = None
    lens: Optional[str] = None
    example_output: Any = None
    success_message: Optional[str] = None
    enhancement: Optional[EnhancementConfig] = None
    session_id: Optional[str] = None
    log_level: Optional[str] = None

    @property
    def max_attempts(self) -> int:
        return self.retries + 1


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_provider(provider: Any) -> list[str]:
    """Check a provider adapter exposes what the engine calls."""
    errors = []
    if not isinstance(getattr(provider, "name", None), str) or not provider.name:
        errors.append("Provider must have a valid name")
    if not callable(getattr(provider, "send_prompt", None)):
        errors.append("Provider must implement send_prompt")
    if not isinstance(getattr(provider, "supports_session", None), bool):
        errors.append("Provider must specify supports_session as a boolean")
    elif provider.supports_session and not callable(getattr(provider, "create_session", None)):
        errors.append("Provider that supports sessions must implement create_session")
    return errors


def _process_enhancement(
    enhancement: int | EnhancementConfig | None, errors: list[tuple[str, str]]
) -> Optional[EnhancementConfig]:
    if enhancement is None:
        return None

    if _is_int(enhancement):
        enhancement = EnhancementConfig(rounds=enhancement)
    elif not isinstance(enhancement, EnhancementConfig):
        errors.append(("enhancement", "enhancement must be an integer or an EnhancementConfig"))
        return None

    rounds = enhancement.rounds
    if not _is_int(rounds) or rounds < 0:
        errors.append(("enhancement", "enhancement rounds must be a non-negative integer"))
    elif rounds > settings.MAX_ENHANCEMENT_ROUNDS:
        errors.append(
            (
                "enhancement",
                f"enhancement rounds should not exceed {settings.MAX_ENHANCEMENT_ROUNDS}",
            )
        )

    strategy: Optional[EnhancementStrategy] = None
    try:
        strategy = EnhancementStrategy(enhancement.strategy or settings.DEFAULT_ENHANCEMENT_STRATEGY)
    except ValueError:
        allowed = ", ".join(s.value for s in EnhancementStrategy)
        errors.append(("enhancement", f"enhancement.strategy must be one of: {allowed}"))

    if strategy is EnhancementStrategy.CUSTOM and enhancement.custom_prompt is None:
        errors.append(("enhancement", "custom enhancement strategy requires custom_prompt"))
    if enhancement.custom_prompt is not None and not callable(enhancement.custom_prompt):
        errors.append(("enhancement", "enhancement.custom_prompt must be callable"))
    if enhancement.evaluate_improvement is not None and not callable(enhancement.evaluate_improvement):
        errors.append(("enhancement", "enhancement.evaluate_improvement must be callable"))

    min_improvement = enhancement.min_improvement
    if min_improvement is None:
        min_improvement = settings.DEFAULT_MIN_IMPROVEMENT
    elif not _is_number(min_improvement) or not 0 <= min_improvement <= 1:
        errors.append(("enhancement", "enhancement.min_improvement must be between 0 and 1"))

    if not _is_int(rounds) or rounds <= 0 or strategy is None:
        return None

    return EnhancementConfig(
        rounds=rounds,
        strategy=strategy,
        min_improvement=float(min_improvement),
        custom_prompt=enhancement.custom_prompt,
        evaluate_improvement=enhancement.evaluate_improvement,
    )


def process_configuration(
    options: Options, provider: Optional[ProviderAdapter] = None
) -> ProcessedConfiguration:
    """
    Validate ``options`` and apply defaults.

    Args:
        options: Caller options
        provider: Adapter the run will use; checked, and its ``default_model``
            is preferred over the global default when no model is given

    Returns:
        ProcessedConfiguration

    Raises:
        InvalidOptionsError: One or more options are invalid
    """
    if not isinstance(options, Options):
        raise InvalidOptionsError([("options", "options must be an Options instance")])

    errors: list[tuple[str, str]] = []

    if provider is not None:
        errors.extend(("provider", message) for message in validate_provider(provider))

    schema: Optional[SchemaAdapter] = None
    if options.schema is None:
        errors.append(("schema", "schema is required"))
    else:
        try:
            schema = resolve_schema(options.schema)
        except UnsupportedSchemaError as e:
            errors.append(("schema", str(e)))

    if options.input is None:
        errors.append(("input", "input is required"))

    retries = options.retries if options.retries is not None else settings.DEFAULT_RETRIES
    if not _is_int(retries):
        errors.append(("retries", "retries must be an integer"))
    elif retries < 0:
        errors.append(("retries", "retries must be non-negative"))
    elif retries > settings.MAX_RETRIES:
        errors.append(("retries", f"retries should not exceed {settings.MAX_RETRIES}"))

    for name in ("model", "context", "lens", "session_id", "success_message"):
        value = getattr(options, name)
        if value is not None and not isinstance(value, str):
            errors.append((name, f"{name} must be a string"))

    if options.temperature is not None and (
        not _is_number(options.temperature) or not 0 <= options.temperature <= MAX_TEMPERATURE
    ):
        errors.append(("temperature", f"temperature must be a number between 0 and {MAX_TEMPERATURE:g}"))

    if options.max_tokens is not None and (not _is_int(options.max_tokens) or options.max_tokens < 1):
        errors.append(("max_tokens", "max_tokens must be a positive integer"))

    if not isinstance(options.provider_options, dict):
        errors.append(("provider_options", "provider_options must be a dict"))

    if options.log_level is not None and (
        not isinstance(options.log_level, str) or options.log_level.lower() not in VALID_LOG_LEVELS
    ):
        errors.append(("log_level", f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"))

    enhancement = _process_enhancement(options.enhancement, errors)

    if schema is not None and options.example_output is not None:
        issues = schema.check(options.example_output)
        if issues:
            detail = ". ".join(f"{issue.path_str}: {issue.message}" for issue in issues)
            errors.append(
                (
                    "example_output",
                    f"Invalid example_output provided: {detail}. The example must validate against the schema.",
                )
            )

    provider_model = getattr(provider, "default_model", None)
    model = options.model or (provider_model if isinstance(provider_model, str) else None) or settings.DEFAULT_MODEL
    prompt_options: Optional[ProviderPromptOptions] = None
    if not errors:
        provider_options = dict(options.provider_options)
        provider_options.setdefault("max_tokens", settings.DEFAULT_MAX_TOKENS)
        provider_options.setdefault("temperature", settings.DEFAULT_TEMPERATURE)
        if options.max_tokens is not None:
            provider_options["max_tokens"] = options.max_tokens
        if options.temperature is not None:
            provider_options["temperature"] = options.temperature
        provider_options["model"] = model
        try:
            prompt_options = ProviderPromptOptions(**provider_options)
        except PydanticValidationError as e:
            for err in e.errors():
                location = ".".join(str(part) for part in err["loc"])
                errors.append(("provider_options", f"provider_options.{location}: {err['msg']}"))

    if errors:
        logger.warning("Invalid pipeline options", errors=[message for _, message in errors])
        raise InvalidOptionsError(errors)

    config = ProcessedConfiguration(
        schema=schema,
        input=options.input,
        retries=retries,
        model=model,
        prompt_options=prompt_options,
        context=options.context,
        lens=options.lens,
        example_output=options.example_output,
        success_message=options.success_message,
        enhancement=enhancement,
        session_id=options.session_id,
        log_level=options.log_level,
    )

    logger.info(
        "Pipeline configuration processed",
        retries=config.retries,
        model=config.model,
        max_tokens=prompt_options.max_tokens,
        temperature=prompt_options.temperature,
        has_context=config.context is not None,
        has_lens=config.lens is not None,
        has_example_output=config.example_output is not None,
        enhancement_rounds=enhancement.rounds if enhancement else 0,
    )
    return config
