"""
Unit tests for Stage 1: JSON Parse.
"""

import pytest

from persuader.validation.stage1_json_parse import Stage1JSONParse
from persuader.validation.exceptions import JSONParseError


class TestStage1JSONParse:
    """Test suite for Stage 1 JSON parsing."""

    def setup_method(self):
        """Setup test fixtures."""
        self.stage1 = Stage1JSONParse()

    def test_valid_json_object(self):
        """Test parsing valid JSON object."""
        result = self.stage1.validate('{"name": "Al", "age": 30}')

        assert result == {"name": "Al", "age": 30}

    def test_valid_json_with_nested_structure(self):
        """Test parsing complex nested JSON."""
        content = '''
        {
            "team": "core",
            "members": [
                {"name": "Al", "skills": ["python", "sql"]}
            ]
        }
        '''
        result = self.stage1.validate(content)

        assert result["members"][0]["skills"] == ["python", "sql"]

    def test_top_level_array_and_scalars(self):
        """Test that any JSON value parses, not only objects."""
        assert self.stage1.validate("[1, 2, 3]") == [1, 2, 3]
        assert self.stage1.validate("42") == 42
        assert self.stage1.validate('"text"') == "text"

    def test_surrounding_whitespace_is_trimmed(self):
        """Test that leading/trailing whitespace does not break parsing."""
        assert self.stage1.validate('\n\n  {"a": 1}  \n') == {"a": 1}

    def test_empty_string_raises_error(self):
        """Test that empty string raises JSONParseError."""
        with pytest.raises(JSONParseError) as exc_info:
            self.stage1.validate("")

        assert "empty or whitespace-only" in str(exc_info.value)

    def test_whitespace_only_raises_error(self):
        """Test that whitespace-only string raises JSONParseError."""
        with pytest.raises(JSONParseError) as exc_info:
            self.stage1.validate("   \n\t  ")

        assert exc_info.value.message == "Response content is empty or whitespace-only"

    def test_malformed_json_raises_error(self):
        """Test that a missing closing brace is reported with the parser message."""
        with pytest.raises(JSONParseError) as exc_info:
            self.stage1.validate('{"name": "Al"')

        error = exc_info.value
        assert error.message.startswith("Failed to parse response as JSON:")
        assert error.parse_error is not None
        assert "line 1" in error.parse_error

    def test_prose_around_json_is_rejected(self):
        """Test that explanatory text around the JSON is not stripped."""
        with pytest.raises(JSONParseError):
            self.stage1.validate('Here is the answer: {"name": "Al", "age": 30}')

    def test_code_fence_is_rejected(self):
        """Test that markdown code fences are not stripped."""
        with pytest.raises(JSONParseError):
            self.stage1.validate('```json\n{"name": "Al"}\n```')

    def test_nan_constant_is_rejected(self):
        """Test that NaN (accepted by the json module) is not treated as JSON."""
        with pytest.raises(JSONParseError) as exc_info:
            self.stage1.validate('{"score": NaN}')

        assert "NaN" in exc_info.value.message

    def test_deeply_nested_input_is_a_parse_error(self):
        """Test that nesting beyond the recursion limit fails as a parse error."""
        depth = 100_000
        with pytest.raises(JSONParseError) as exc_info:
            self.stage1.validate("[" * depth + "]" * depth)

        assert exc_info.value.message == "Failed to parse response as JSON: nesting too deep"
        assert exc_info.value.parse_error == "Maximum nesting depth exceeded"

    def test_error_details_keep_snippet(self):
        """Test that the raw content snippet is kept in error details."""
        content = "not json " * 100
        with pytest.raises(JSONParseError) as exc_info:
            self.stage1.validate(content)

        assert len(exc_info.value.details["content_snippet"]) == 500
        assert "parse_error" in exc_info.value.details
