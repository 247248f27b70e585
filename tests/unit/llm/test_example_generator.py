"""
Unit tests for example output synthesis.
"""

from typing import Literal, Optional

from pydantic import BaseModel

from persuader.llm.example_generator import synthesize_example
from persuader.validation.schema import resolve_schema
from tests.fakes import Catalog, Person


class Address(BaseModel):
    city: str
    zip_code: Optional[str] = None


class Customer(BaseModel):
    name: str
    tier: Literal["gold", "silver"]
    address: Address
    tags: list[str]


class TestSynthesizeExample:
    """Test example synthesis from JSON Schema documents."""

    def test_flat_model(self):
        """Test placeholder values per primitive type."""
        assert synthesize_example(resolve_schema(Person)) == {"name": "example", "age": 1}

    def test_nested_model_with_refs(self):
        """Test $defs references, enums, optional fields and arrays."""
        example = synthesize_example(resolve_schema(Customer))

        assert example == {
            "name": "example",
            "tier": "gold",
            "address": {"city": "example", "zip_code": "example"},
            "tags": ["example"],
        }

    def test_array_item_count(self):
        schema = {"type": "array", "items": {"type": "integer"}, "minItems": 3}

        assert synthesize_example(resolve_schema(schema)) == [1, 1, 1]

    def test_constraints_and_formats(self):
        """Test that bounds, lengths and formats are respected."""
        schema = {
            "type": "object",
            "properties": {
                "email": {"type": "string", "format": "email"},
                "code": {"type": "string", "minLength": 10},
                "age": {"type": "integer", "minimum": 18},
                "ratio": {"type": "number", "exclusiveMaximum": 1},
                "active": {"type": "boolean"},
            },
            "required": ["email", "code", "age", "ratio", "active"],
        }

        example = synthesize_example(resolve_schema(schema))

        assert example["email"] == "user@example.com"
        assert len(example["code"]) == 10
        assert example["age"] == 18
        assert example["ratio"] == 0.5
        assert example["active"] is True

    def test_declared_examples_win(self):
        schema = {"type": "string", "examples": ["Ada Lovelace"]}

        assert synthesize_example(resolve_schema(schema)) == "Ada Lovelace"

    def test_unsupported_node_gives_none(self):
        """Test that an untyped property makes synthesis give up."""
        schema = {"type": "object", "properties": {"anything": {}}}

        assert synthesize_example(resolve_schema(schema)) is None

    def test_invalid_example_is_discarded(self):
        """Test that an example violating the schema is not returned."""
        schema = {"type": "string", "pattern": "^[0-9]+$"}

        assert synthesize_example(resolve_schema(schema)) is None

    def test_array_model(self):
        assert synthesize_example(resolve_schema(Catalog)) == {"items": ["example"]}
