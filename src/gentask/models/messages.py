"""Conversation and completion models.

ChatMessage is the unit stored in a history store. CompletionResult is
one turn's output from a completion service; FunctionCall is a tool call
requested by the model, either read natively from the service response
or synthesized from the ``functionName``/``functionArguments`` fields.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel

Role = Literal["system", "user", "assistant", "function"]


@dataclass(frozen=True)
class FunctionCall:
    """A function (tool) invocation requested by the model."""

    name: str
    arguments: str | dict | None = None
    id: str | None = None

    def parsed_arguments(self) -> dict:
        """Return arguments as a dict, decoding a JSON string if needed.

        Raises:
            ValueError: If the arguments are a string that is not a JSON object.
        """
        if self.arguments is None or self.arguments == "":
            return {}
        if isinstance(self.arguments, dict):
            return dict(self.arguments)
        decoded = json.loads(self.arguments)
        if not isinstance(decoded, dict):
            raise ValueError(f"Arguments must be a JSON object, got {type(decoded).__name__}")
        return decoded

    def arguments_text(self) -> str:
        if isinstance(self.arguments, dict):
            return json.dumps(self.arguments)
        return self.arguments or ""


class ChatMessage(BaseModel):
    """A single message in a conversation history."""

    role: Role
    content: str = ""
    name: str | None = None
    function_id: str | None = None
    function_calls: list[dict] | None = None

    def to_openai(self, *, native_functions: bool = True) -> dict:
        """Convert to an OpenAI chat-completions message dict.

        The ``function`` role maps to OpenAI's ``tool`` role. Models without
        native function calling have no tool role, so the result is sent
        back as a user message instead.
        """
        if self.role == "function":
            if not native_functions:
                label = f"Function {self.name} returned" if self.name else "Function returned"
                return {"role": "user", "content": f"{label}:\n{self.content}"}
            return {
                "role": "tool",
                "content": self.content,
                "tool_call_id": self.function_id,
            }
        msg: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.name:
            msg["name"] = self.name
        if self.function_calls:
            msg["tool_calls"] = [
                {
                    "id": fc.get("id"),
                    "type": "function",
                    "function": {
                        "name": fc["name"],
                        "arguments": fc.get("arguments") or "",
                    },
                }
                for fc in self.function_calls
            ]
        return msg


@dataclass(frozen=True)
class CompletionResult:
    """One result of a completion call.

    Attributes:
        content: Generated text, or None (e.g. a pure tool-call turn).
        finish_reason: Why generation stopped. ``"length"`` means the
            output was truncated and another call should continue it.
        function_calls: Tool calls requested natively by the model.
        id: Provider-side result id, if any.
    """

    content: str | None = None
    finish_reason: str | None = None
    function_calls: list[FunctionCall] | None = None
    id: str | None = None

    def to_message(self) -> ChatMessage:
        """Render as the assistant message appended to history."""
        calls = None
        if self.function_calls:
            calls = [
                {"id": fc.id, "name": fc.name, "arguments": fc.arguments_text()}
                for fc in self.function_calls
            ]
        return ChatMessage(
            role="assistant",
            content=self.content or "",
            function_calls=calls,
        )


@dataclass(frozen=True)
class CompletionResponse:
    """Response of a completion service call."""

    results: list[CompletionResult] = field(default_factory=list)
    usage: dict | None = None
    model: str | None = None
