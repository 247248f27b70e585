"""
Stage 1: JSON Parse Validation.

Parse raw model text into a JSON value. Empty or whitespace-only content
fails here rather than reaching the schema stage, which gives the model a
cleaner signal ("not JSON" instead of "missing every field").
"""

import json
from typing import Any

import structlog

from persuader.monitoring.metrics import validation_failures_total
from .exceptions import JSONParseError

logger = structlog.get_logger(__name__)


def _reject_constant(name: str) -> Any:
    # NaN / Infinity are not JSON even though the json module accepts them
    raise ValueError(f"Invalid JSON constant: {name}")


class Stage1JSONParse:
    """
    Stage 1 validator: parse text as JSON.

    Raises JSONParseError on malformed or empty content.
    """

    def validate(self, content: str) -> Any:
        """
        Parse JSON content from a model response.

        Args:
            content: Raw model text (trimmed before parsing)

        Returns:
            Parsed JSON value

        Raises:
            JSONParseError: If content is not valid JSON
        """
        if not content or not content.strip():
            validation_failures_total.labels(
                stage="json_parse", failure_mode="json_parse_failure"
            ).inc()
            raise JSONParseError(
                "Response content is empty or whitespace-only",
                raw_content=content,
                parse_error="Empty content",
            )

        try:
            parsed = json.loads(content.strip(), parse_constant=_reject_constant)
        except json.JSONDecodeError as e:
            validation_failures_total.labels(
                stage="json_parse", failure_mode="json_parse_failure"
            ).inc()
            raise JSONParseError(
                f"Failed to parse response as JSON: {e.msg}",
                raw_content=content,
                parse_error=f"{e.msg} at line {e.lineno} col {e.colno}",
            ) from e
        except ValueError as e:
            validation_failures_total.labels(
                stage="json_parse", failure_mode="json_parse_failure"
            ).inc()
            raise JSONParseError(
                f"Failed to parse response as JSON: {e}",
                raw_content=content,
                parse_error=str(e),
            ) from e
        except RecursionError as e:
            validation_failures_total.labels(
                stage="json_parse", failure_mode="json_parse_failure"
            ).inc()
            raise JSONParseError(
                "Failed to parse response as JSON: nesting too deep",
                raw_content=content,
                parse_error="Maximum nesting depth exceeded",
            ) from e

        logger.debug("Stage 1: parsed JSON", value_type=type(parsed).__name__)
        return parsed
