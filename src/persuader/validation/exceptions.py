"""
Exceptions raised inside the validation stages.

Stages raise; ``validate_json`` catches these and turns them into
``ValidationError`` values that the retry controller feeds back to the model.
``UnsupportedSchemaError`` is the exception that escapes: it signals caller
misuse and is reported as a configuration error.
"""

from typing import Any

from persuader.models.errors import SchemaIssue


class ValidationStageError(Exception):
    """
    Base exception for validation stage failures.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """
        Initialize validation stage error.

        Args:
            message: Human-readable error description
            details: Structured error data for logging/metrics
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class JSONParseError(ValidationStageError):
    """
    Stage 1: JSON parsing failed.
    """

    def __init__(self, message: str, raw_content: str | None = None, parse_error: str | None = None):
        """
        Initialize JSON parse error.

        Args:
            message: Error description
            raw_content: Malformed content (first 500 chars kept in details)
            parse_error: Original json.JSONDecodeError message
        """
        details = {}
        if raw_content:
            details["content_snippet"] = raw_content[:500]
        if parse_error:
            details["parse_error"] = parse_error

        super().__init__(message, details)
        self.raw_content = raw_content
        self.parse_error = parse_error


class SchemaValidationError(ValidationStageError):
    """
    Stage 2: parsed JSON does not conform to the schema.
    """

    def __init__(self, message: str, issues: list[SchemaIssue], parsed: Any = None):
        """
        Initialize schema validation error.

        Args:
            message: Error description
            issues: Normalized schema issues
            parsed: The parsed JSON value that failed
        """
        super().__init__(
            message,
            {"validation_errors": [f"{issue.path_str}: {issue.message}" for issue in issues[:10]]},
        )
        self.issues = issues
        self.parsed = parsed


class UnsupportedSchemaError(TypeError):
    """The object passed as a schema cannot be used for validation."""
