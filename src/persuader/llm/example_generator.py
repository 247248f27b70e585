"""
Example output synthesis.

Builds a concrete example value from the schema's JSON Schema so the prompt
can show the model what a valid answer looks like. Synthesis is best-effort:
``synthesize_example`` returns None instead of raising, and discards any
example that does not validate against the schema.
"""

from typing import Any, Optional

import structlog

from persuader.validation.schema import SchemaAdapter

logger = structlog.get_logger(__name__)

MAX_EXAMPLE_DEPTH = 8

_FORMAT_EXAMPLES = {
    "email": "user@example.com",
    "uri": "https://example.com",
    "url": "https://example.com",
    "uuid": "123e4567-e89b-12d3-a456-426614174000",
    "date-time": "2024-01-01T00:00:00Z",
    "date": "2024-01-01",
    "time": "12:00:00",
    "ipv4": "192.0.2.1",
}


class _CannotSynthesize(Exception):
    pass


def synthesize_example(schema: SchemaAdapter) -> Optional[Any]:
    """
    Synthesize an example value for ``schema``.

    Returns:
        JSON-compatible example, or None when no valid example could be built
    """
    try:
        document = schema.json_schema()
        definitions = {**document.get("definitions", {}), **document.get("$defs", {})}
        example = _example_for(document, definitions, depth=0)
    except Exception as e:  # never fatal: the prompt simply omits the example
        logger.debug("Example synthesis failed", schema=schema.name, error=str(e))
        return None

    issues = schema.check(example)
    if issues:
        logger.debug(
            "Synthesized example does not validate, omitting it",
            schema=schema.name,
            issues=[f"{issue.path_str}: {issue.message}" for issue in issues[:5]],
        )
        return None
    return example


def _example_for(node: dict[str, Any], definitions: dict[str, Any], depth: int) -> Any:
    if depth > MAX_EXAMPLE_DEPTH:
        raise _CannotSynthesize("schema nesting too deep")

    if "$ref" in node:
        name = node["$ref"].rsplit("/", 1)[-1]
        if name not in definitions:
            raise _CannotSynthesize(f"unresolved reference {node['$ref']}")
        return _example_for(definitions[name], definitions, depth + 1)

    if node.get("examples"):
        return node["examples"][0]
    if "const" in node:
        return node["const"]
    if node.get("enum"):
        return node["enum"][0]
    if "default" in node and node["default"] is not None:
        return node["default"]

    for combinator in ("anyOf", "oneOf", "allOf"):
        if node.get(combinator):
            options = [o for o in node[combinator] if o.get("type") != "null"] or node[combinator]
            return _example_for(options[0], definitions, depth + 1)

    node_type = node.get("type")
    if isinstance(node_type, list):
        node_type = next((t for t in node_type if t != "null"), "null")
    if node_type is None and "properties" in node:
        node_type = "object"

    match node_type:
        case "object":
            return {
                key: _example_for(child, definitions, depth + 1)
                for key, child in node.get("properties", {}).items()
            }
        case "array":
            items = node.get("items") or {}
            count = max(node.get("minItems", 1), 1)
            if isinstance(items, list):
                return [_example_for(item, definitions, depth + 1) for item in items]
            return [_example_for(items, definitions, depth + 1) for _ in range(count)]
        case "string":
            return _string_example(node)
        case "integer":
            return int(_number_example(node, step=1))
        case "number":
            return _number_example(node, step=0.5)
        case "boolean":
            return True
        case "null":
            return None
        case _:
            raise _CannotSynthesize(f"unsupported schema node: {node}")


def _string_example(node: dict[str, Any]) -> str:
    value = _FORMAT_EXAMPLES.get(node.get("format", ""), "example")
    min_length = node.get("minLength", 0)
    if len(value) < min_length:
        value = value + "x" * (min_length - len(value))
    max_length = node.get("maxLength")
    if max_length is not None:
        value = value[:max_length]
    return value


def _number_example(node: dict[str, Any], step: float) -> float:
    if "minimum" in node:
        return node["minimum"]
    if "exclusiveMinimum" in node:
        return node["exclusiveMinimum"] + step
    if "maximum" in node and node["maximum"] < 1:
        return node["maximum"]
    if "exclusiveMaximum" in node and node["exclusiveMaximum"] <= 1:
        return node["exclusiveMaximum"] - step
    return 1
