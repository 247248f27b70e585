"""
Unit tests for the validation pipeline (Stage 1 + Stage 2).
"""

from persuader.models.enums import FailureMode, RetryStrategyHint
from persuader.validation.pipeline import (
    ValidationFailure,
    ValidationPipeline,
    ValidationSuccess,
    validate_json,
)
from tests.fakes import Person


class TestValidationPipeline:
    """Test suite for the two-stage pipeline."""

    def setup_method(self):
        """Setup test fixtures."""
        self.pipeline = ValidationPipeline(Person)

    def test_valid_response(self):
        """Test that valid JSON matching the schema succeeds."""
        result = self.pipeline.validate('{"name": "Al", "age": 30}')

        assert isinstance(result, ValidationSuccess)
        assert result.ok is True
        assert result.value == Person(name="Al", age=30)

    def test_parse_failure(self):
        """Test that malformed JSON is a json_parse failure."""
        result = self.pipeline.validate('{"name": "Al"')

        assert isinstance(result, ValidationFailure)
        error = result.error
        assert error.code == "json_parse"
        assert error.message == "Invalid JSON format"
        assert error.failure_mode is FailureMode.JSON_PARSE_FAILURE
        assert error.retry_strategy is RetryStrategyHint.DEMAND_JSON_FORMAT
        assert error.raw_value == '{"name": "Al"'
        assert error.suggestions[0].startswith("The output is not valid JSON. Error:")
        assert error.retryable is True

    def test_empty_response_is_parse_failure(self):
        """Test that empty text never reaches schema validation."""
        result = self.pipeline.validate("   ")

        assert isinstance(result, ValidationFailure)
        assert result.error.failure_mode is FailureMode.JSON_PARSE_FAILURE
        assert result.error.issues == ()

    def test_schema_failure_type_mismatch(self):
        """Test that "30" for an int field is a field type mismatch."""
        result = self.pipeline.validate('{"name": "Al", "age": "30"}')

        assert isinstance(result, ValidationFailure)
        error = result.error
        assert error.code == "schema_validation"
        assert error.message == "Schema validation failed"
        assert error.failure_mode is FailureMode.FIELD_TYPE_MISMATCH
        assert error.retry_strategy is RetryStrategyHint.PROVIDE_FIELD_GUIDANCE
        assert error.raw_value == {"name": "Al", "age": "30"}
        assert error.details["field_corrections"] == {"age": "Change from string to integer"}
        assert error.structured_feedback.correction_instructions == (
            'Field "age": Change from string to integer',
        )

    def test_schema_failure_missing_field(self):
        """Test that a missing field is classified as missing_required_fields."""
        result = self.pipeline.validate('{"name": "Al"}')

        assert result.error.failure_mode is FailureMode.MISSING_REQUIRED_FIELDS
        assert any('"age" is required' in s for s in result.error.suggestions)

    def test_wrong_root_type(self):
        """Test that an array where an object is expected is wrong_format."""
        result = self.pipeline.validate("[1, 2]")

        assert result.error.failure_mode is FailureMode.WRONG_FORMAT
        assert result.error.retry_strategy is RetryStrategyHint.DEMAND_JSON_FORMAT

    def test_validation_is_idempotent(self):
        """Test that the same text always yields the same verdict."""
        first = self.pipeline.validate('{"name": "Al", "age": "30"}')
        second = self.pipeline.validate('{"name": "Al", "age": "30"}')

        assert first.error.failure_mode == second.error.failure_mode
        assert first.error.issues == second.error.issues
        assert first.error.suggestions == second.error.suggestions

    def test_schema_description_is_attached(self):
        """Test that failures describe the expected shape."""
        result = self.pipeline.validate('{"name": "Al"}')

        assert result.error.schema_description


def test_validate_json_with_json_schema():
    """Test the one-call helper against a JSON Schema document."""
    schema = {
        "type": "object",
        "properties": {"name": {"type": "string"}, "age": {"type": "number"}},
        "required": ["name", "age"],
    }

    assert validate_json(schema, '{"name": "Al", "age": 30}').value == {"name": "Al", "age": 30}
    assert validate_json(schema, '{"name": "Al"}').ok is False
