"""
Failure classification for schema-stage failures.

Picks a ``FailureMode`` from the set of normalized issues, maps it to a
``RetryStrategyHint``, and assembles the ``StructuredFeedback`` that the
feedback formatter renders.
"""

from typing import Any

from persuader.models.enums import FailureMode, RetryStrategyHint
from persuader.models.errors import SchemaIssue, StructuredFeedback

_ISSUE_CATEGORY = {
    "missing": FailureMode.MISSING_REQUIRED_FIELDS,
    "invalid_type": FailureMode.FIELD_TYPE_MISMATCH,
    "invalid_union": FailureMode.FIELD_TYPE_MISMATCH,
    "unrecognized_keys": FailureMode.EXTRA_UNKNOWN_FIELDS,
    "too_small": FailureMode.CONSTRAINT_VIOLATION,
    "too_big": FailureMode.CONSTRAINT_VIOLATION,
    "invalid_enum": FailureMode.CONSTRAINT_VIOLATION,
    "invalid_string": FailureMode.CONSTRAINT_VIOLATION,
}

_STRATEGY = {
    FailureMode.JSON_PARSE_FAILURE: RetryStrategyHint.DEMAND_JSON_FORMAT,
    FailureMode.WRONG_FORMAT: RetryStrategyHint.DEMAND_JSON_FORMAT,
    FailureMode.HALLUCINATED_STRUCTURE: RetryStrategyHint.FIX_STRUCTURE,
    FailureMode.NESTED_VALIDATION: RetryStrategyHint.FIX_STRUCTURE,
    FailureMode.MISSING_REQUIRED_FIELDS: RetryStrategyHint.PROVIDE_FIELD_GUIDANCE,
    FailureMode.FIELD_TYPE_MISMATCH: RetryStrategyHint.PROVIDE_FIELD_GUIDANCE,
    FailureMode.EXTRA_UNKNOWN_FIELDS: RetryStrategyHint.PROVIDE_FIELD_GUIDANCE,
    FailureMode.CONSTRAINT_VIOLATION: RetryStrategyHint.CLARIFY_CONSTRAINTS,
    FailureMode.INCOMPLETE_RESPONSE: RetryStrategyHint.SIMPLIFY_REQUEST,
    FailureMode.CONTEXT_CONFUSION: RetryStrategyHint.REINFORCE_CONTEXT,
    FailureMode.PROVIDER_REFUSAL: RetryStrategyHint.REINFORCE_CONTEXT,
    FailureMode.SCHEMA_VALIDATION: RetryStrategyHint.PROGRESSIVE_REFINEMENT,
}

_PROBLEM_SUMMARY = {
    FailureMode.JSON_PARSE_FAILURE: "The response was not valid JSON.",
    FailureMode.WRONG_FORMAT: "The response is valid JSON but not the expected kind of value.",
    FailureMode.HALLUCINATED_STRUCTURE: (
        "The response uses its own structure: required fields are missing "
        "and fields the schema does not define were added."
    ),
    FailureMode.MISSING_REQUIRED_FIELDS: "Required fields are missing.",
    FailureMode.FIELD_TYPE_MISMATCH: "Some fields have the wrong data type.",
    FailureMode.EXTRA_UNKNOWN_FIELDS: "The response contains fields the schema does not allow.",
    FailureMode.CONSTRAINT_VIOLATION: "Some values violate the schema's constraints.",
    FailureMode.NESTED_VALIDATION: "Nested objects or arrays do not match the schema.",
}


def classify_schema_failure(issues: list[SchemaIssue], parsed: Any = None) -> FailureMode:
    """
    Classify a schema failure.

    Order of precedence:
    1. wrong type at the root (e.g. an array where an object is expected)
    2. missing required fields together with unknown fields
    3. every issue sits below the top level
    4. a single issue category
    5. generic schema_validation for mixed categories
    """
    if not issues:
        return FailureMode.SCHEMA_VALIDATION

    if any(issue.code == "invalid_type" and not issue.path for issue in issues):
        return FailureMode.WRONG_FORMAT

    codes = {issue.code for issue in issues}
    if "missing" in codes and "unrecognized_keys" in codes:
        return FailureMode.HALLUCINATED_STRUCTURE

    if all(len(issue.path) > 1 for issue in issues):
        return FailureMode.NESTED_VALIDATION

    categories = {_ISSUE_CATEGORY.get(issue.code, FailureMode.SCHEMA_VALIDATION) for issue in issues}
    if len(categories) == 1:
        return categories.pop()
    return FailureMode.SCHEMA_VALIDATION


def retry_strategy_for(mode: FailureMode) -> RetryStrategyHint:
    return _STRATEGY[mode]


def build_structured_feedback(
    mode: FailureMode,
    issues: list[SchemaIssue],
    corrections: dict[str, str],
) -> StructuredFeedback:
    """Problem summary plus itemized issues and corrections."""
    summary = _PROBLEM_SUMMARY.get(mode, "The response does not match the schema.")
    if issues:
        summary = f"{summary} ({len(issues)} issue{'s' if len(issues) != 1 else ''})"
    return StructuredFeedback(
        problem_summary=summary,
        specific_issues=tuple(f"{issue.path_str}: {issue.message}" for issue in issues),
        correction_instructions=tuple(
            f'Field "{path}": {correction}' for path, correction in corrections.items()
        ),
    )
