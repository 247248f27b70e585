"""
Feedback formatter: ValidationError -> correction message for the model.

The text produced here is the only channel through which the model learns
what went wrong, so it must stand on its own. Wording escalates with the
attempt number using the same urgency levels as the prompt builder.
"""

from persuader.models.enums import UrgencyLevel, urgency_for
from persuader.models.errors import (
    JSON_PARSE_CODE,
    SCHEMA_VALIDATION_CODE,
    ConfigurationError,
    PipelineError,
    ProviderError,
    SessionError,
    ValidationError,
)

SEPARATOR = "-" * 60

_PARSE_PREFIX = {
    UrgencyLevel.STANDARD: "",
    UrgencyLevel.IMPORTANT: "IMPORTANT: ",
    UrgencyLevel.CRITICAL: "CRITICAL: ",
}

_PARSE_INSTRUCTION = {
    UrgencyLevel.STANDARD: (
        "The response must be valid JSON. Please ensure proper syntax with "
        "matching brackets, quotes, and commas."
    ),
    UrgencyLevel.IMPORTANT: (
        "The response must be valid JSON with no explanatory text. Please ensure "
        "proper syntax with matching brackets, quotes, and commas."
    ),
    UrgencyLevel.CRITICAL: (
        'Your response MUST start with "{" and end with "}". '
        "No explanatory text before or after the JSON object."
    ),
}

PROVIDER_FAILURE_NOTE = (
    "The previous request failed before any output was received ({message}). "
    "Respond with the JSON output only."
)

FINAL_ATTEMPT_NOTICE = "CRITICAL: This is your final attempt. Please follow the corrections exactly."


def format_validation_error_feedback(error: ValidationError, attempt: int) -> str:
    """
    Render a ValidationError for the next prompt.

    Args:
        error: Failure from the previous attempt
        attempt: Attempt number the feedback will be shown on (1-based)
    """
    if error.code == JSON_PARSE_CODE:
        return _format_parse_feedback(error, attempt)
    if error.code == SCHEMA_VALIDATION_CODE:
        return _format_schema_feedback(error, attempt)
    return f"Validation Error: {error.message}"


def format_error_feedback(error: PipelineError, attempt: int) -> str | None:
    """
    Feedback for any pipeline error.

    A provider failure gets a one-line note, since the model produced nothing
    to correct. Session and configuration errors never reach a retry and
    give None.
    """
    match error:
        case ValidationError():
            return format_validation_error_feedback(error, attempt)
        case ProviderError():
            return PROVIDER_FAILURE_NOTE.format(message=error.message)
        case SessionError() | ConfigurationError():
            return None


def _format_parse_feedback(error: ValidationError, attempt: int) -> str:
    level = urgency_for(attempt)
    lines = [f"{_PARSE_PREFIX[level]}JSON Parsing Error: {error.message}"]
    if error.suggestions:
        lines.append(error.suggestions[0])
    lines.append("")
    lines.append(_PARSE_INSTRUCTION[level])
    return "\n".join(lines)


def _format_schema_feedback(error: ValidationError, attempt: int) -> str:
    level = urgency_for(attempt)
    lines = [f"Schema Validation Failed (Attempt {attempt}):"]
    if level >= UrgencyLevel.IMPORTANT:
        lines.append(SEPARATOR)

    for issue in error.issues:
        lines.append(f"  - {issue.path_str}: {issue.message}")

    feedback = error.structured_feedback
    if feedback and feedback.correction_instructions:
        lines.append("")
        lines.append("Specific Corrections Needed:")
        lines.extend(f"  - {item}" for item in feedback.correction_instructions)

    if error.suggestions:
        lines.append("")
        lines.append("General Suggestions:")
        lines.extend(f"  - {item}" for item in error.suggestions)

    if level >= UrgencyLevel.IMPORTANT and feedback:
        lines.append("")
        lines.append("STRUCTURED GUIDANCE:")
        lines.append(f"Problem: {feedback.problem_summary}")
        if feedback.specific_issues:
            lines.append("Specific Issues:")
            lines.extend(f"  - {item}" for item in feedback.specific_issues)
        if feedback.correction_instructions:
            lines.append("Required Corrections:")
            lines.extend(
                f"  {index}. {item}"
                for index, item in enumerate(feedback.correction_instructions, start=1)
            )

    if level is UrgencyLevel.CRITICAL:
        lines.append("")
        lines.append(FINAL_ATTEMPT_NOTICE)

    return "\n".join(lines)
