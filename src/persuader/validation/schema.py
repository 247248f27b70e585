"""
Schema adapters.

A caller may describe the expected output as:
- a pydantic model class, a ``TypeAdapter`` or any type annotation
  (validated with pydantic in strict JSON mode, so "30" is not an int)
- a JSON Schema document (validated with jsonschema, Draft 7 + formats)

Both adapters report failures as normalized ``SchemaIssue`` objects so the
suggestion generator and failure analysis never see validator internals.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

import structlog
from jsonschema import Draft7Validator, FormatChecker
from jsonschema import ValidationError as JsonSchemaValidationError
from jsonschema.exceptions import SchemaError
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.errors import PydanticUserError

from persuader.models.errors import SchemaIssue
from .exceptions import SchemaValidationError, UnsupportedSchemaError

logger = structlog.get_logger(__name__)

MAX_DESCRIBED_FIELDS = 5

# pydantic "<prefix>_type" / "<prefix>_parsing" prefixes -> JSON type names
_PYDANTIC_TYPE_NAMES = {
    "int": "integer",
    "float": "number",
    "decimal": "number",
    "string": "string",
    "str": "string",
    "bool": "boolean",
    "dict": "object",
    "model": "object",
    "model_attributes": "object",
    "dataclass": "object",
    "typed_dict": "object",
    "list": "array",
    "tuple": "array",
    "set": "array",
    "frozen_set": "array",
    "none": "null",
    "date": "date string",
    "datetime": "datetime string",
    "time": "time string",
}

_JSONSCHEMA_FORMATS = {"uri": "url", "uri-reference": "url", "email": "email", "uuid": "uuid"}

_QUOTED = re.compile(r"'((?:[^'\\]|\\.)*)'")
_REQUIRED_PROPERTY = re.compile(r"^(['\"])(.*)\1 is a required property$")


def json_type_name(value: Any) -> str:
    """JSON type name of a decoded JSON value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


class SchemaAdapter(ABC):
    """Uniform interface over the supported schema flavours."""

    name: str = "schema"
    include_description: bool = True

    @abstractmethod
    def validate_json(self, text: str, parsed: Any) -> Any:
        """
        Validate JSON text (already known to parse as ``parsed``).

        Returns:
            The validated value

        Raises:
            SchemaValidationError: With normalized issues
        """

    @abstractmethod
    def check(self, value: Any) -> list[SchemaIssue]:
        """Validate an in-memory value; empty list means valid."""

    @abstractmethod
    def json_schema(self) -> dict[str, Any]:
        """JSON Schema document describing the expected output."""

    @abstractmethod
    def to_jsonable(self, value: Any) -> Any:
        """Convert a validated value to plain JSON data."""

    def dump_json(self, value: Any, indent: int | None = None) -> str:
        return json.dumps(self.to_jsonable(value), indent=indent, ensure_ascii=False)

    def describe(self) -> str:
        """Short human-readable description of the expected shape."""
        try:
            return describe_json_schema(self.json_schema(), self.include_description)
        except Exception as e:  # some annotations have no JSON Schema
            logger.debug("Could not derive JSON Schema for description", schema=self.name, error=str(e))
            return f"A JSON value matching {self.name}"


class PydanticSchemaAdapter(SchemaAdapter):
    """Schema backed by a pydantic ``TypeAdapter``."""

    # model docstrings describe the class to developers, not to the model
    include_description = False

    def __init__(self, schema: Any):
        if isinstance(schema, TypeAdapter):
            self._adapter = schema
            self.name = getattr(getattr(schema, "_type", None), "__name__", None) or "schema"
        else:
            self._adapter = TypeAdapter(schema)
            self.name = getattr(schema, "__name__", None) or str(schema)

    def validate_json(self, text: str, parsed: Any) -> Any:
        try:
            return self._adapter.validate_json(text, strict=True)
        except PydanticValidationError as e:
            issues = [issue_from_pydantic(err) for err in e.errors()]
            raise SchemaValidationError(
                f"Schema validation failed with {len(issues)} error(s)",
                issues=issues,
                parsed=parsed,
            ) from e

    def check(self, value: Any) -> list[SchemaIssue]:
        try:
            self._adapter.validate_python(value)
        except PydanticValidationError as e:
            return [issue_from_pydantic(err) for err in e.errors()]
        return []

    def json_schema(self) -> dict[str, Any]:
        return self._adapter.json_schema()

    def to_jsonable(self, value: Any) -> Any:
        return self._adapter.dump_python(value, mode="json")

    def dump_json(self, value: Any, indent: int | None = None) -> str:
        return self._adapter.dump_json(value, indent=indent).decode("utf-8")


class JsonSchemaAdapter(SchemaAdapter):
    """Schema backed by a JSON Schema document (Draft 7)."""

    def __init__(self, schema: dict[str, Any]):
        try:
            Draft7Validator.check_schema(schema)
        except SchemaError as e:
            raise UnsupportedSchemaError(f"Invalid JSON Schema: {e.message}") from e
        self._schema = schema
        self._validator = Draft7Validator(schema, format_checker=FormatChecker())
        self.name = schema.get("title", "schema")

    def validate_json(self, text: str, parsed: Any) -> Any:
        issues = self.check(parsed)
        if issues:
            raise SchemaValidationError(
                f"Schema validation failed with {len(issues)} error(s)",
                issues=issues,
                parsed=parsed,
            )
        return parsed

    def check(self, value: Any) -> list[SchemaIssue]:
        return [issue_from_jsonschema(error) for error in self._validator.iter_errors(value)]

    def json_schema(self) -> dict[str, Any]:
        return self._schema

    def to_jsonable(self, value: Any) -> Any:
        return value


def resolve_schema(schema: Any) -> SchemaAdapter:
    """
    Wrap a caller-supplied schema in the matching adapter.

    Raises:
        UnsupportedSchemaError: If the object cannot be used as a schema
    """
    if isinstance(schema, SchemaAdapter):
        return schema
    if schema is None:
        raise UnsupportedSchemaError("schema is required")
    if isinstance(schema, dict):
        return JsonSchemaAdapter(schema)
    try:
        return PydanticSchemaAdapter(schema)
    except (PydanticUserError, TypeError) as e:
        raise UnsupportedSchemaError(f"Unsupported schema object: {schema!r} ({e})") from e


def describe_json_schema(schema: dict[str, Any], include_description: bool = True) -> str:
    """
    Describe a JSON Schema in one line.

    Objects list up to five field names, then "and N more field(s)". A
    ``description`` follows the field list, or stands alone for schemas
    without properties, unless ``include_description`` is False.
    """
    description = schema.get("description") if include_description else None

    properties = schema.get("properties")
    if isinstance(properties, dict) and properties:
        names = list(properties)
        listed = ", ".join(f'"{name}"' for name in names[:MAX_DESCRIBED_FIELDS])
        remaining = len(names) - MAX_DESCRIBED_FIELDS
        if remaining > 0:
            listed += f", and {remaining} more field{'s' if remaining > 1 else ''}"
        if description:
            return f"A JSON object with fields: {listed}. {description}"
        return f"A JSON object with fields: {listed}"

    if description:
        return str(description)

    schema_type = schema.get("type")
    if schema_type == "array":
        return "A JSON array"
    if schema_type:
        return f"A JSON value of type {schema_type}"
    return "A JSON value matching the provided schema"


def issue_from_pydantic(err: dict[str, Any]) -> SchemaIssue:
    """Normalize one entry of ``pydantic.ValidationError.errors()``."""
    etype: str = err["type"]
    loc = tuple(err.get("loc", ()))
    msg: str = err.get("msg", etype)
    ctx: dict[str, Any] = err.get("ctx") or {}
    value = err.get("input")

    if etype == "missing":
        return SchemaIssue("missing", loc, "Field required", received="undefined")

    if etype.startswith("url_"):
        return SchemaIssue("invalid_string", loc, msg, validation="url", received_value=value)
    if etype.startswith("uuid_"):
        return SchemaIssue("invalid_string", loc, msg, validation="uuid", received_value=value)
    if etype == "string_pattern_mismatch":
        return SchemaIssue("invalid_string", loc, msg, validation="regex", received_value=value)
    if etype == "value_error" and "email" in msg.lower():
        return SchemaIssue("invalid_string", loc, msg, validation="email", received_value=value)

    if etype == "int_from_float":
        return SchemaIssue(
            "invalid_type", loc, msg, expected="integer", received="number", received_value=value
        )
    for suffix in ("_type", "_parsing"):
        if etype.endswith(suffix):
            prefix = etype[: -len(suffix)]
            return SchemaIssue(
                "invalid_type",
                loc,
                msg,
                expected=_PYDANTIC_TYPE_NAMES.get(prefix, prefix),
                received=json_type_name(value),
                received_value=value,
            )

    if etype == "string_too_short":
        return SchemaIssue("too_small", loc, msg, kind="string", minimum=ctx.get("min_length"))
    if etype == "too_short":
        return SchemaIssue("too_small", loc, msg, kind="array", minimum=ctx.get("min_length"))
    if etype == "string_too_long":
        return SchemaIssue("too_big", loc, msg, kind="string", maximum=ctx.get("max_length"))
    if etype == "too_long":
        return SchemaIssue("too_big", loc, msg, kind="array", maximum=ctx.get("max_length"))
    if etype in ("greater_than", "greater_than_equal"):
        return SchemaIssue(
            "too_small", loc, msg, kind="number", minimum=ctx.get("gt", ctx.get("ge")), received_value=value
        )
    if etype in ("less_than", "less_than_equal"):
        return SchemaIssue(
            "too_big", loc, msg, kind="number", maximum=ctx.get("lt", ctx.get("le")), received_value=value
        )

    if etype in ("enum", "literal_error"):
        return SchemaIssue(
            "invalid_enum",
            loc,
            msg,
            options=_parse_expected_options(str(ctx.get("expected", ""))),
            received_value=value,
        )
    if etype == "extra_forbidden":
        return SchemaIssue(
            "unrecognized_keys", loc[:-1], msg, keys=(str(loc[-1]),) if loc else ()
        )
    if etype in ("union_tag_invalid", "union_tag_not_found"):
        return SchemaIssue("invalid_union", loc, msg, received_value=value)

    return SchemaIssue(etype, loc, msg, received_value=value)


def issue_from_jsonschema(error: JsonSchemaValidationError) -> SchemaIssue:
    """Normalize one jsonschema ``ValidationError``."""
    path = tuple(error.absolute_path)
    validator = error.validator
    expected_value = error.validator_value
    instance = error.instance
    msg = error.message

    if validator == "required":
        match = _REQUIRED_PROPERTY.match(msg)
        if match:
            name = match.group(2)
        else:
            name = next((n for n in expected_value if n not in instance), "")
        return SchemaIssue("missing", path + (name,), "Field required", received="undefined")

    if validator == "type":
        expected = expected_value if isinstance(expected_value, str) else " or ".join(expected_value)
        return SchemaIssue(
            "invalid_type", path, msg, expected=expected, received=json_type_name(instance),
            received_value=instance,
        )

    if validator in ("minLength", "minItems", "minimum", "exclusiveMinimum", "minProperties"):
        return SchemaIssue(
            "too_small", path, msg, kind=_bound_kind(validator), minimum=expected_value,
            received_value=instance,
        )
    if validator in ("maxLength", "maxItems", "maximum", "exclusiveMaximum", "maxProperties"):
        return SchemaIssue(
            "too_big", path, msg, kind=_bound_kind(validator), maximum=expected_value,
            received_value=instance,
        )

    if validator == "enum":
        return SchemaIssue("invalid_enum", path, msg, options=tuple(expected_value), received_value=instance)
    if validator == "const":
        return SchemaIssue("invalid_enum", path, msg, options=(expected_value,), received_value=instance)

    if validator == "additionalProperties" and isinstance(instance, dict):
        known = set((error.schema or {}).get("properties", {}))
        patterns = [re.compile(p) for p in (error.schema or {}).get("patternProperties", {})]
        extra = tuple(
            key for key in instance
            if key not in known and not any(p.search(key) for p in patterns)
        )
        return SchemaIssue("unrecognized_keys", path, msg, keys=extra)

    if validator in ("anyOf", "oneOf"):
        return SchemaIssue("invalid_union", path, msg, received_value=instance)
    if validator == "format":
        return SchemaIssue(
            "invalid_string", path, msg,
            validation=_JSONSCHEMA_FORMATS.get(expected_value, expected_value),
            received_value=instance,
        )
    if validator == "pattern":
        return SchemaIssue("invalid_string", path, msg, validation="regex", received_value=instance)

    return SchemaIssue(str(validator), path, msg, received_value=instance)


def _bound_kind(validator: str) -> str:
    if validator.endswith("Length"):
        return "string"
    if validator.endswith("Items"):
        return "array"
    if validator.endswith("Properties"):
        return "object"
    return "number"


def _parse_expected_options(expected: str) -> tuple[str, ...]:
    quoted = _QUOTED.findall(expected)
    if quoted:
        return tuple(quoted)
    return tuple(part for part in re.split(r",\s*|\s+or\s+", expected) if part)
