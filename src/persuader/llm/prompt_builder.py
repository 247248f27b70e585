"""
Prompt builder for provider calls.

Responsible for:
- Rendering Jinja2 templates (system, user and enhancement prompts)
- Escalating requirement wording with the attempt number
- Embedding the schema description, JSON Schema and an example output
- Merging previous-attempt feedback into a new ``PromptParts`` value
"""

import dataclasses
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import structlog
from jinja2 import Environment, FileSystemLoader, StrictUndefined
from pydantic import BaseModel

from persuader.llm.example_generator import synthesize_example
from persuader.models.enums import UrgencyLevel, urgency_for
from persuader.validation.schema import SchemaAdapter

logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"

_JSON_RULE = {
    UrgencyLevel.STANDARD: "Output MUST be valid JSON that parses correctly",
    UrgencyLevel.IMPORTANT: (
        "Output MUST be valid JSON that parses correctly. "
        "No explanatory text, only the JSON response."
    ),
    UrgencyLevel.CRITICAL: (
        'Your response must START with "{" and END with "}". '
        "No text before or after the JSON object."
    ),
}

_URGENCY_PREFIX = {
    UrgencyLevel.STANDARD: "",
    UrgencyLevel.IMPORTANT: "IMPORTANT ",
    UrgencyLevel.CRITICAL: "CRITICAL ",
}

FEEDBACK_HEADER = "PREVIOUS ATTEMPT FAILED VALIDATION:"
FEEDBACK_FOOTER = "Please correct these issues and provide valid JSON matching the schema."


@dataclass(frozen=True)
class PromptParts:
    """
    Structured prompt for one attempt.

    Never mutated: each attempt derives a new value.
    """

    system_prompt: str
    user_prompt: str
    examples: tuple[str, ...] = ()
    error_context: Optional[str] = None
    additional_context: Optional[str] = None


def format_input(input_data: Any) -> str:
    """Strings verbatim, anything else as indented JSON."""
    if isinstance(input_data, str):
        return input_data
    if isinstance(input_data, BaseModel):
        input_data = input_data.model_dump(mode="json")
    return json.dumps(input_data, indent=2, ensure_ascii=False, default=str)


def augment_prompt_with_errors(parts: PromptParts, feedback: str) -> PromptParts:
    """Return new prompt parts whose user prompt ends with the failure feedback."""
    return dataclasses.replace(
        parts,
        user_prompt=f"{parts.user_prompt}\n\n{FEEDBACK_HEADER}\n{feedback}\n\n{FEEDBACK_FOOTER}",
        error_context=feedback,
    )


def combine_prompt_parts(parts: PromptParts) -> str:
    """Flatten prompt parts into the single string sent to the provider."""
    sections = [parts.system_prompt]
    if parts.examples:
        sections.append("EXAMPLES:\n" + "\n\n".join(parts.examples))
    if parts.additional_context:
        sections.append(f"ADDITIONAL CONTEXT:\n{parts.additional_context}")
    sections.append(parts.user_prompt)
    return "\n\n".join(section for section in sections if section)


class PromptBuilder:
    """
    Build prompts from a schema, input data and optional guidance.
    """

    def __init__(self, templates_dir: Optional[Path] = None):
        """
        Initialize prompt builder.

        Args:
            templates_dir: Directory containing prompt templates
                (defaults to the templates shipped with the package)
        """
        self.templates_dir = Path(templates_dir or DEFAULT_TEMPLATES_DIR)

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False,  # We're generating prompts, not HTML
            undefined=StrictUndefined,
        )

        try:
            self.system_template = self.jinja_env.get_template("system_prompt.txt")
            self.user_template = self.jinja_env.get_template("user_prompt_template.txt")
            self.enhancement_template = self.jinja_env.get_template("enhancement_prompt.txt")
        except Exception as e:
            logger.error("Failed to load prompt templates", error=str(e), templates_dir=str(self.templates_dir))
            raise

    def build_prompt(
        self,
        schema: SchemaAdapter,
        input_data: Any,
        context: Optional[str] = None,
        lens: Optional[str] = None,
        example_output: Any = None,
        attempt: int = 1,
    ) -> PromptParts:
        """
        Build prompt parts for one attempt.

        Args:
            schema: Resolved schema adapter
            input_data: Data to process
            context: Background guidance
            lens: Perspective to process the input from
            example_output: Concrete example; synthesized from the schema when None
            attempt: 1-based attempt number, drives wording intensity

        Returns:
            PromptParts for the attempt
        """
        if example_output is None:
            example_output = synthesize_example(schema)

        examples: tuple[str, ...] = ()
        if example_output is not None:
            examples = (f"EXAMPLE OUTPUT FORMAT:\n{format_input(example_output)}",)

        return PromptParts(
            system_prompt=self.build_system_prompt(schema, context, lens, attempt),
            user_prompt=self.build_user_prompt(input_data),
            examples=examples,
        )

    def build_system_prompt(
        self,
        schema: SchemaAdapter,
        context: Optional[str] = None,
        lens: Optional[str] = None,
        attempt: int = 1,
    ) -> str:
        level = urgency_for(attempt)
        return self.system_template.render(
            urgency_prefix=_URGENCY_PREFIX[level],
            rules=requirement_rules(level),
            schema_description=schema.describe(),
            json_schema=_json_schema_text(schema),
            context=context,
            lens=lens,
        ).strip()

    def build_user_prompt(self, input_data: Any) -> str:
        return self.user_template.render(input_data=format_input(input_data)).strip()

    def build_enhancement_prompt(
        self,
        schema: SchemaAdapter,
        current_result: Any,
        request: str,
        context: Optional[str] = None,
        lens: Optional[str] = None,
    ) -> str:
        """
        Render an enhancement-round prompt around the current best result.

        Args:
            schema: Resolved schema adapter
            current_result: Validated value to improve
            request: Strategy-specific enhancement request
            context: Original context
            lens: Original lens
        """
        return self.enhancement_template.render(
            context=context,
            schema_description=schema.describe(),
            json_schema=_json_schema_text(schema),
            current_result=schema.dump_json(current_result, indent=2),
            request=request,
            lens=lens,
        ).strip()


def requirement_rules(level: UrgencyLevel) -> list[str]:
    """Numbered requirement rules for the system prompt, strictest last."""
    rules = [
        _JSON_RULE[level],
        "Follow the exact schema structure provided",
        "Include all required fields with correct data types",
        "Use the exact field names and casing shown in the schema",
    ]
    if level >= UrgencyLevel.IMPORTANT:
        rules.append("Do not include any explanatory text, markdown formatting, or code blocks")
    if level is UrgencyLevel.CRITICAL:
        rules.append("This is your final attempt - follow the schema exactly")
    return rules


def _json_schema_text(schema: SchemaAdapter) -> Optional[str]:
    try:
        return json.dumps(schema.json_schema(), indent=2)
    except Exception as e:  # some annotations have no JSON Schema
        logger.debug("Omitting JSON Schema from prompt", schema=schema.name, error=str(e))
        return None
