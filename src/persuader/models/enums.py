"""
Enumerations for Persuader data models.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum, IntEnum


class ErrorType(str, Enum):
    """Tag of every pipeline error variant."""

    VALIDATION = "validation"
    PROVIDER = "provider"
    SESSION = "session"
    CONFIGURATION = "configuration"


class FailureMode(str, Enum):
    """
    Why a model response failed validation.

    Drives which correction strategy the feedback leans on.
    JSON_PARSE_FAILURE is used for every parse-stage failure; all other
    values describe schema-stage failures.
    """

    JSON_PARSE_FAILURE = "json_parse_failure"
    SCHEMA_VALIDATION = "schema_validation"
    INCOMPLETE_RESPONSE = "incomplete_response"
    WRONG_FORMAT = "wrong_format"
    HALLUCINATED_STRUCTURE = "hallucinated_structure"
    FIELD_TYPE_MISMATCH = "field_type_mismatch"
    MISSING_REQUIRED_FIELDS = "missing_required_fields"
    EXTRA_UNKNOWN_FIELDS = "extra_unknown_fields"
    CONSTRAINT_VIOLATION = "constraint_violation"
    NESTED_VALIDATION = "nested_validation"
    PROVIDER_REFUSAL = "provider_refusal"
    CONTEXT_CONFUSION = "context_confusion"


class RetryStrategyHint(str, Enum):
    """Suggested correction approach for the next attempt."""

    DEMAND_JSON_FORMAT = "demand_json_format"
    PROVIDE_FIELD_GUIDANCE = "provide_field_guidance"
    FIX_STRUCTURE = "fix_structure"
    CLARIFY_CONSTRAINTS = "clarify_constraints"
    SIMPLIFY_REQUEST = "simplify_request"
    ADD_EXAMPLES = "add_examples"
    REINFORCE_CONTEXT = "reinforce_context"
    PROGRESSIVE_REFINEMENT = "progressive_refinement"
    SESSION_RESET = "session_reset"


class UrgencyLevel(IntEnum):
    """
    Ordered wording intensity shared by the prompt builder and feedback formatter.

    Ordering matters: a higher level never produces softer wording.
    """

    STANDARD = 1
    IMPORTANT = 2
    CRITICAL = 3


class EnhancementStrategy(str, Enum):
    """Post-success refinement strategy."""

    EXPAND_ARRAY = "expand-array"
    EXPAND_DETAIL = "expand-detail"
    EXPAND_VARIETY = "expand-variety"
    CUSTOM = "custom"


IMPORTANT_ATTEMPT_THRESHOLD = 2
CRITICAL_ATTEMPT_THRESHOLD = 3


def urgency_for(attempt: int) -> UrgencyLevel:
    """Urgency level for a 1-based attempt number."""
    if attempt >= CRITICAL_ATTEMPT_THRESHOLD:
        return UrgencyLevel.CRITICAL
    if attempt >= IMPORTANT_ATTEMPT_THRESHOLD:
        return UrgencyLevel.IMPORTANT
    return UrgencyLevel.STANDARD
