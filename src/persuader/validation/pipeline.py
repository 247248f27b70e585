"""
Validation Pipeline: raw model text -> validated value or ValidationError.

Coordinates the two stages:
- Stage 1: JSON Parse
- Stage 2: Schema

Stage exceptions never escape; every failure is returned as a
``ValidationFailure`` carrying a classified ``ValidationError`` with
suggestions and structured feedback.
"""

import logging
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from persuader.models.enums import FailureMode, RetryStrategyHint
from persuader.models.errors import (
    JSON_PARSE_CODE,
    SCHEMA_VALIDATION_CODE,
    StructuredFeedback,
    ValidationError,
)
from persuader.monitoring.metrics import validation_failures_total
from .exceptions import JSONParseError, SchemaValidationError
from .failure_analysis import build_structured_feedback, classify_schema_failure, retry_strategy_for
from .schema import SchemaAdapter, resolve_schema
from .stage1_json_parse import Stage1JSONParse
from .stage2_schema import Stage2SchemaValidation
from .suggestions import generate_field_corrections, generate_validation_suggestions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationSuccess:
    value: Any
    ok: Literal[True] = True


@dataclass(frozen=True)
class ValidationFailure:
    error: ValidationError
    ok: Literal[False] = False


ValidationResult: TypeAlias = ValidationSuccess | ValidationFailure


class ValidationPipeline:
    """
    Two-stage validation against one schema.

    Build once per pipeline run and reuse across attempts.
    """

    def __init__(self, schema: Any):
        """
        Initialize validation pipeline.

        Args:
            schema: Schema object or an already resolved SchemaAdapter

        Raises:
            UnsupportedSchemaError: If the schema cannot be used
        """
        self.schema: SchemaAdapter = resolve_schema(schema)
        self.stage1 = Stage1JSONParse()
        self.stage2 = Stage2SchemaValidation(self.schema)

    def validate(self, raw_text: str) -> ValidationResult:
        """
        Validate raw model text.

        Args:
            raw_text: Text returned by the provider

        Returns:
            ValidationSuccess with the validated value, or ValidationFailure
        """
        try:
            parsed = self.stage1.validate(raw_text)
        except JSONParseError as e:
            logger.info(f"JSON parse failed: {e.message}")
            return ValidationFailure(self._parse_error(e, raw_text))

        try:
            value = self.stage2.validate(raw_text.strip(), parsed)
        except SchemaValidationError as e:
            error = self._schema_error(e)
            validation_failures_total.labels(
                stage="schema", failure_mode=error.failure_mode.value
            ).inc()
            logger.info(
                f"Schema validation failed with {len(e.issues)} issue(s)",
                extra={"failure_mode": error.failure_mode.value},
            )
            return ValidationFailure(error)

        return ValidationSuccess(value)

    def _parse_error(self, e: JSONParseError, raw_text: str) -> ValidationError:
        instruction = "Return a single valid JSON value with no text or code fences around it."
        return ValidationError(
            code=JSON_PARSE_CODE,
            message="Invalid JSON format",
            failure_mode=FailureMode.JSON_PARSE_FAILURE,
            retry_strategy=RetryStrategyHint.DEMAND_JSON_FORMAT,
            raw_value=raw_text,
            suggestions=(
                f"The output is not valid JSON. Error: {e.parse_error or e.message}",
                instruction,
            ),
            structured_feedback=StructuredFeedback(
                problem_summary="The response was not valid JSON.",
                specific_issues=(e.message,),
                correction_instructions=(instruction,),
            ),
            schema_description=self.schema.describe(),
            details=e.details,
        )

    def _schema_error(self, e: SchemaValidationError) -> ValidationError:
        mode = classify_schema_failure(e.issues, e.parsed)
        corrections = generate_field_corrections(e.issues)
        return ValidationError(
            code=SCHEMA_VALIDATION_CODE,
            message="Schema validation failed",
            failure_mode=mode,
            retry_strategy=retry_strategy_for(mode),
            issues=tuple(e.issues),
            raw_value=e.parsed,
            suggestions=tuple(generate_validation_suggestions(e.issues)),
            structured_feedback=build_structured_feedback(mode, e.issues, corrections),
            schema_description=self.schema.describe(),
            details={**e.details, "field_corrections": corrections},
        )


def validate_json(schema: Any, raw_text: str) -> ValidationResult:
    """
    Validate ``raw_text`` against ``schema`` in one call.

    Returns:
        ValidationSuccess or ValidationFailure, never both
    """
    return ValidationPipeline(schema).validate(raw_text)
