"""Scripted provider adapters and schemas shared by the test suite."""

import json
from typing import Any, Optional, Union

from pydantic import BaseModel

from persuader.llm.base_client import ProviderAdapter
from persuader.models.llm_models import (
    ProviderPromptOptions,
    ProviderResponse,
    ProviderSessionOptions,
    TokenUsage,
)


class Person(BaseModel):
    """Minimal schema used by most pipeline tests."""

    name: str
    age: int


class Catalog(BaseModel):
    """Schema with an array, used by enhancement tests."""

    items: list[str]


ScriptedReply = Union[str, Exception, ProviderResponse]


class FakeProvider(ProviderAdapter):
    """Provider adapter that replays scripted replies.

    Each call to ``send_prompt`` consumes the next reply: strings become
    response content, exceptions are raised, ProviderResponse objects are
    returned as-is. The last reply is repeated once the script runs out.

    Usage:
        provider = FakeProvider(['{"oops"', '{"name": "Al", "age": 30}'])
    """

    name = "fake"
    supports_session = False

    def __init__(self, replies: list[ScriptedReply], tokens_per_call: int = 10):
        self.replies = list(replies)
        self.tokens_per_call = tokens_per_call
        self.prompts: list[str] = []
        self.session_ids: list[Optional[str]] = []
        self.options: list[ProviderPromptOptions] = []
        self.success_feedback: list[tuple[str, str, Any]] = []
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def send_prompt(
        self,
        session_id: Optional[str],
        prompt: str,
        options: ProviderPromptOptions,
    ) -> ProviderResponse:
        self.prompts.append(prompt)
        self.session_ids.append(session_id)
        self.options.append(options)

        reply = self.replies[min(len(self.prompts), len(self.replies)) - 1]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, ProviderResponse):
            return reply
        return ProviderResponse(
            content=reply,
            token_usage=TokenUsage(
                input_tokens=self.tokens_per_call,
                output_tokens=self.tokens_per_call,
                total_tokens=2 * self.tokens_per_call,
            ),
            stop_reason="end_turn",
        )

    async def send_success_feedback(
        self, session_id: str, message: str, validated_output: Any = None
    ) -> None:
        self.success_feedback.append((session_id, message, validated_output))

    async def close(self) -> None:
        self.closed = True


class FakeSessionProvider(FakeProvider):
    """Scripted provider that also creates sessions."""

    name = "fake-session"
    supports_session = True

    def __init__(
        self,
        replies: list[ScriptedReply],
        session_error: Optional[Exception] = None,
        tokens_per_call: int = 10,
    ):
        super().__init__(replies, tokens_per_call=tokens_per_call)
        self.session_error = session_error
        self.created_sessions: list[tuple[str, Optional[ProviderSessionOptions]]] = []

    async def create_session(
        self, context: str, options: Optional[ProviderSessionOptions] = None
    ) -> str:
        if self.session_error is not None:
            raise self.session_error
        self.created_sessions.append((context, options))
        return f"session-{len(self.created_sessions)}"


def person_json(name: str = "Al", age: Any = 30) -> str:
    """JSON text for a Person reply."""
    return json.dumps({"name": name, "age": age})
