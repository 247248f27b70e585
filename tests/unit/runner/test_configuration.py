"""
Unit tests for the configuration processor.
"""

import pytest

from persuader.config import settings
from persuader.models.enums import EnhancementStrategy
from persuader.models.options import EnhancementConfig, Options
from persuader.runner.configuration import (
    InvalidOptionsError,
    process_configuration,
    validate_provider,
)
from persuader.validation.schema import PydanticSchemaAdapter
from tests.fakes import FakeProvider, Person


def create_options(**kwargs) -> Options:
    """Helper to create Options with a valid schema and input."""
    kwargs.setdefault("schema", Person)
    kwargs.setdefault("input", "Al is thirty")
    return Options(**kwargs)


def error_messages(exc_info) -> list[str]:
    return [message for _, message in exc_info.value.errors]


# ============================================================================
# Defaults
# ============================================================================


class TestDefaults:
    """Test defaults applied to minimal options."""

    def test_minimal_options(self):
        """Test that only schema and input are required."""
        config = process_configuration(create_options())

        assert isinstance(config.schema, PydanticSchemaAdapter)
        assert config.retries == settings.DEFAULT_RETRIES
        assert config.max_attempts == settings.DEFAULT_RETRIES + 1
        assert config.model == settings.DEFAULT_MODEL
        assert config.prompt_options.max_tokens == settings.DEFAULT_MAX_TOKENS
        assert config.prompt_options.temperature == settings.DEFAULT_TEMPERATURE
        assert config.enhancement is None

    def test_provider_default_model_is_preferred(self):
        """Test that a provider's own default model beats the global default."""
        provider = FakeProvider([])
        provider.default_model = "llama3.2"

        config = process_configuration(create_options(), provider)

        assert config.model == "llama3.2"
        assert config.prompt_options.model == "llama3.2"

    def test_explicit_values_win(self):
        """Test that explicit options override provider_options and defaults."""
        config = process_configuration(create_options(
            model="m1",
            retries=0,
            temperature=0.9,
            max_tokens=128,
            provider_options={"temperature": 0.1, "top_p": 0.5, "seed": 7},
        ))

        options = config.prompt_options
        assert config.max_attempts == 1
        assert (options.model, options.temperature, options.max_tokens) == ("m1", 0.9, 128)
        assert options.top_p == 0.5
        assert options.model_extra == {"seed": 7}

    def test_valid_example_output_is_kept(self):
        config = process_configuration(create_options(example_output={"name": "Bea", "age": 41}))

        assert config.example_output == {"name": "Bea", "age": 41}

    def test_enhancement_from_integer(self):
        """Test that an integer becomes a default enhancement config."""
        config = process_configuration(create_options(enhancement=2))

        assert config.enhancement.rounds == 2
        assert config.enhancement.strategy is EnhancementStrategy.EXPAND_ARRAY
        assert config.enhancement.min_improvement == settings.DEFAULT_MIN_IMPROVEMENT

    def test_zero_enhancement_rounds_disable_enhancement(self):
        assert process_configuration(create_options(enhancement=0)).enhancement is None

    def test_enhancement_strategy_from_string(self):
        config = process_configuration(create_options(
            enhancement=EnhancementConfig(rounds=1, strategy="expand-detail", min_improvement=0.5)
        ))

        assert config.enhancement.strategy is EnhancementStrategy.EXPAND_DETAIL
        assert config.enhancement.min_improvement == 0.5


# ============================================================================
# Rejections
# ============================================================================


class TestInvalidOptions:
    """Test that invalid options are rejected with every problem listed."""

    @pytest.mark.parametrize(
        "kwargs,message",
        [
            ({"schema": None}, "schema is required"),
            ({"input": None}, "input is required"),
            ({"retries": -1}, "retries must be non-negative"),
            ({"retries": 11}, "retries should not exceed 10"),
            ({"retries": 1.5}, "retries must be an integer"),
            ({"temperature": 2.5}, "temperature must be a number between 0 and 2"),
            ({"max_tokens": 0}, "max_tokens must be a positive integer"),
            ({"context": 42}, "context must be a string"),
            ({"log_level": "verbose"}, "log_level must be one of: debug, info, warning, error, critical"),
            ({"enhancement": 6}, "enhancement rounds should not exceed 5"),
            ({"enhancement": -1}, "enhancement rounds must be a non-negative integer"),
        ],
    )
    def test_single_problem(self, kwargs, message):
        with pytest.raises(InvalidOptionsError) as exc_info:
            process_configuration(create_options(**kwargs))

        assert message in error_messages(exc_info)

    def test_all_problems_are_collected(self):
        """Test that several problems are reported together."""
        with pytest.raises(InvalidOptionsError) as exc_info:
            process_configuration(create_options(schema=None, input=None, retries=-1))

        assert exc_info.value.field_name == "schema"
        assert len(exc_info.value.errors) == 3
        assert str(exc_info.value).startswith("Options validation failed: schema is required | ")

    def test_invalid_example_output(self):
        """Test that an example violating the schema is rejected."""
        with pytest.raises(InvalidOptionsError) as exc_info:
            process_configuration(create_options(example_output={"name": "Bea"}))

        [message] = error_messages(exc_info)
        assert message.startswith("Invalid example_output provided: age:")
        assert message.endswith("The example must validate against the schema.")

    def test_unsupported_schema(self):
        with pytest.raises(InvalidOptionsError) as exc_info:
            process_configuration(create_options(schema={"type": 5}))

        assert exc_info.value.field_name == "schema"

    def test_enhancement_errors(self):
        """Test strategy, custom prompt and threshold checks."""
        with pytest.raises(InvalidOptionsError) as exc_info:
            process_configuration(create_options(
                enhancement=EnhancementConfig(rounds=1, strategy="expand-everything", min_improvement=2)
            ))

        messages = error_messages(exc_info)
        assert any(m.startswith("enhancement.strategy must be one of:") for m in messages)
        assert "enhancement.min_improvement must be between 0 and 1" in messages

    def test_custom_strategy_requires_prompt(self):
        with pytest.raises(InvalidOptionsError) as exc_info:
            process_configuration(create_options(
                enhancement=EnhancementConfig(rounds=1, strategy=EnhancementStrategy.CUSTOM)
            ))

        assert "custom enhancement strategy requires custom_prompt" in error_messages(exc_info)

    def test_invalid_provider_options(self):
        """Test that provider option values are validated."""
        with pytest.raises(InvalidOptionsError) as exc_info:
            process_configuration(create_options(provider_options={"top_p": 3}))

        assert error_messages(exc_info)[0].startswith("provider_options.top_p:")

    def test_not_an_options_instance(self):
        with pytest.raises(InvalidOptionsError):
            process_configuration({"schema": Person, "input": "x"})


class TestValidateProvider:
    """Test provider adapter checks."""

    def test_valid_provider(self):
        assert validate_provider(FakeProvider([])) == []

    def test_missing_methods(self):
        """Test that an object lacking the adapter surface is rejected."""
        class NotAProvider:
            name = ""
            supports_session = "yes"

        errors = validate_provider(NotAProvider())

        assert "Provider must have a valid name" in errors
        assert "Provider must implement send_prompt" in errors
        assert "Provider must specify supports_session as a boolean" in errors
