"""Completion service protocol.

Defines the pluggable interface the generation driver talks to, plus the
request and capability types that cross it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from gentask.models.config import ModelConfig
    from gentask.models.messages import ChatMessage, CompletionResponse
    from gentask.toolkit.models import FunctionDefinition


@dataclass(frozen=True)
class Features:
    """Capabilities of a completion service.

    Attributes:
        functions: True if the service supports native function calling.
            When False, tasks with functions simulate calling through
            two extra output fields.
    """

    functions: bool = False


@dataclass(frozen=True)
class ChatRequest:
    """One chat completion request."""

    messages: list[ChatMessage]
    functions: list[FunctionDefinition] | None = None
    function_call: str | dict | None = None
    model_config: ModelConfig | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class CompletionService(Protocol):
    """Protocol for pluggable completion services.

    Any object with matching features() and async chat() methods works.
    The built-in OpenAIClient implements this protocol.
    """

    def features(self) -> Features:
        """Report service capabilities."""
        ...

    async def chat(
        self,
        request: ChatRequest,
        *,
        session_id: str | None = None,
        trace_id: str | None = None,
    ) -> CompletionResponse:
        """Run one completion call."""
        ...
