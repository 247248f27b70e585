"""
Stage 2: Schema Validation.

Validate parsed JSON against the caller's schema. Success returns the value
produced by the schema (a model instance for pydantic schemas, the parsed
data for JSON Schema documents) with no coercion beyond the schema's own
rules.
"""

import logging
from typing import Any

from .exceptions import SchemaValidationError
from .schema import SchemaAdapter

logger = logging.getLogger(__name__)


class Stage2SchemaValidation:
    """
    Stage 2 validator: validate against the schema.

    Raises SchemaValidationError on schema violations.
    """

    def __init__(self, schema: SchemaAdapter):
        """
        Initialize schema validator.

        Args:
            schema: Resolved schema adapter
        """
        self.schema = schema

    def validate(self, content: str, parsed: Any) -> Any:
        """
        Validate parsed JSON against the schema.

        Args:
            content: Trimmed JSON text the value was parsed from
            parsed: Parsed JSON value from stage 1

        Returns:
            Validated value

        Raises:
            SchemaValidationError: If the value doesn't conform to the schema
        """
        try:
            value = self.schema.validate_json(content, parsed)
        except SchemaValidationError as e:
            logger.debug(
                f"Stage 2: {len(e.issues)} schema issue(s) against {self.schema.name}",
                extra={"validation_errors": e.details.get("validation_errors", [])},
            )
            raise

        logger.debug(f"Stage 2: Successfully validated against {self.schema.name}")
        return value
