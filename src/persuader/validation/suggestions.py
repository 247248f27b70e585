"""
Corrective suggestions for schema issues.

Turns normalized ``SchemaIssue`` objects into plain-language guidance:
- one suggestion per issue (type, missing, size bound, enum, extra keys,
  union, string format; unknown codes fall back to the raw message)
- a path -> correction map ("Change from string to integer")
- three general suggestions appended whenever any issue exists
"""

from typing import Any, Iterable

from persuader.models.errors import SchemaIssue

GENERAL_SUGGESTIONS = (
    "Ensure all required fields are present and have the correct data types.",
    "Double-check field names for typos or incorrect casing.",
    "Verify that the JSON structure matches the expected schema exactly.",
)

ENUM_SIMILARITY_THRESHOLD = 0.3
MAX_ENUM_MATCHES = 3

_SIZE_NOUNS = {
    "string": ("String is too short. Minimum length is {n}.", "String is too long. Maximum length is {n}."),
    "number": ("Number is too small. Minimum value is {n}.", "Number is too large. Maximum value is {n}."),
    "array": ("Array has too few items. Minimum length is {n}.", "Array has too many items. Maximum length is {n}."),
    "object": ("Object has too few properties. Minimum is {n}.", "Object has too many properties. Maximum is {n}."),
}

_FORMAT_HINTS = {
    "email": "Must be a valid email address.",
    "url": "Must be a valid URL.",
    "uuid": "Must be a valid UUID.",
    "regex": "Must match the required pattern.",
}


def _fmt(number: Any) -> str:
    if isinstance(number, float) and number.is_integer():
        return str(int(number))
    return str(number)


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance between two strings."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        previous = current
    return previous[-1]


def find_closest_matches(
    value: str,
    options: Iterable[Any],
    threshold: float = ENUM_SIMILARITY_THRESHOLD,
    limit: int = MAX_ENUM_MATCHES,
) -> list[str]:
    """
    Options most similar to ``value`` (case-insensitive).

    Similarity is ``1 - distance / longest_length``; only options above
    ``threshold`` are returned, best first, at most ``limit``.
    """
    scored = []
    needle = value.lower()
    for option in options:
        candidate = str(option)
        longest = max(len(needle), len(candidate)) or 1
        similarity = 1 - levenshtein_distance(needle, candidate.lower()) / longest
        if similarity > threshold:
            scored.append((similarity, candidate))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [candidate for _, candidate in scored[:limit]]


def suggestion_for_issue(issue: SchemaIssue) -> str:
    """One human-readable suggestion for a single issue."""
    path = issue.path_str

    match issue.code:
        case "invalid_type":
            return (
                f'Field "{path}": Expected {issue.expected}, but got {issue.received}. '
                "Please ensure this field contains the correct data type."
            )
        case "missing":
            return f'Field "{path}" is required but missing. Please include it with a valid value.'
        case "too_small" | "too_big" if issue.kind in _SIZE_NOUNS:
            low, high = _SIZE_NOUNS[issue.kind]
            if issue.code == "too_small":
                return f'Field "{path}": ' + low.format(n=_fmt(issue.minimum))
            return f'Field "{path}": ' + high.format(n=_fmt(issue.maximum))
        case "invalid_enum":
            options = ", ".join(f'"{o}"' for o in issue.options)
            if isinstance(issue.received_value, str):
                matches = find_closest_matches(issue.received_value, issue.options)
                if matches:
                    did_you_mean = ", ".join(f'"{m}"' for m in matches)
                    return (
                        f'Field "{path}": Invalid value "{issue.received_value}". '
                        f"Did you mean: {did_you_mean}? Valid options: {options}."
                    )
            return f'Field "{path}": Must be one of: {options}.'
        case "unrecognized_keys":
            keys = ", ".join(issue.keys)
            return (
                f"Unexpected fields found: {keys}. "
                "Please remove these fields or check if they're misspelled."
            )
        case "invalid_union":
            return f"Field \"{path}\": Value doesn't match any of the expected types in the union."
        case "invalid_string":
            return f'Field "{path}": ' + _FORMAT_HINTS.get(issue.validation or "", "String format is invalid.")
        case _:
            return f'Field "{path}": {issue.message}'


def generate_validation_suggestions(issues: list[SchemaIssue]) -> list[str]:
    """Per-issue suggestions followed by the general ones (if any issue exists)."""
    if not issues:
        return []
    suggestions: list[str] = []
    for issue in issues:
        suggestion = suggestion_for_issue(issue)
        if suggestion not in suggestions:
            suggestions.append(suggestion)
    suggestions.extend(GENERAL_SUGGESTIONS)
    return suggestions


def correction_for_issue(issue: SchemaIssue) -> str:
    """Imperative correction for a single issue."""
    match issue.code:
        case "invalid_type":
            return f"Change from {issue.received} to {issue.expected}"
        case "missing":
            return f'Add the required field "{issue.path[-1] if issue.path else "root"}"'
        case "too_small" if issue.kind == "string":
            return f"Increase text length to at least {_fmt(issue.minimum)} characters"
        case "too_small" if issue.kind == "array":
            return f"Add at least {_fmt(issue.minimum)} items to the array"
        case "too_small":
            return f"Increase value to at least {_fmt(issue.minimum)}"
        case "too_big" if issue.kind == "string":
            return f"Reduce text length to at most {_fmt(issue.maximum)} characters"
        case "too_big" if issue.kind == "array":
            return f"Reduce the array to at most {_fmt(issue.maximum)} items"
        case "too_big":
            return f"Decrease value to at most {_fmt(issue.maximum)}"
        case "unrecognized_keys":
            return f"Remove unexpected fields: {', '.join(issue.keys)}"
        case "invalid_enum":
            if isinstance(issue.received_value, str):
                matches = find_closest_matches(issue.received_value, issue.options, limit=1)
                if matches:
                    return f'Replace "{issue.received_value}" with "{matches[0]}"'
            return "Use one of: " + ", ".join(f'"{o}"' for o in issue.options)
        case _:
            return issue.message


def generate_field_corrections(issues: list[SchemaIssue]) -> dict[str, str]:
    """
    Map each failing path to the correction it needs.

    Several issues on the same path are joined with "; ".
    """
    corrections: dict[str, str] = {}
    for issue in issues:
        correction = correction_for_issue(issue)
        path = issue.path_str
        if path in corrections:
            if correction not in corrections[path]:
                corrections[path] = f"{corrections[path]}; {correction}"
        else:
            corrections[path] = correction
    return corrections
