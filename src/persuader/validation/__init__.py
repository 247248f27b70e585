"""
Validation of model output against a caller-supplied schema.

Stages:
- Stage 1: JSON parse (empty or malformed text fails here)
- Stage 2: schema (pydantic strict JSON mode, or JSON Schema Draft 7)

Failures come back as classified ``ValidationError`` values with
suggestions, field corrections and structured feedback; the feedback
formatter renders them for the next attempt's prompt.
"""

from .exceptions import JSONParseError, SchemaValidationError, UnsupportedSchemaError
from .feedback import format_error_feedback, format_validation_error_feedback
from .pipeline import (
    ValidationFailure,
    ValidationPipeline,
    ValidationResult,
    ValidationSuccess,
    validate_json,
)
from .schema import JsonSchemaAdapter, PydanticSchemaAdapter, SchemaAdapter, resolve_schema

__all__ = [
    "JSONParseError",
    "SchemaValidationError",
    "UnsupportedSchemaError",
    "format_error_feedback",
    "format_validation_error_feedback",
    "ValidationFailure",
    "ValidationPipeline",
    "ValidationResult",
    "ValidationSuccess",
    "validate_json",
    "JsonSchemaAdapter",
    "PydanticSchemaAdapter",
    "SchemaAdapter",
    "resolve_schema",
]
