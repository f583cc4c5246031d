"""Shared test fixtures for gentask.

Provides a scripted completion service, result builders, and a prompt
template factory that records the guidance fields of every render.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from gentask.llm.protocols import ChatRequest, Features
from gentask.memory import Memory
from gentask.models.messages import CompletionResponse, CompletionResult, FunctionCall
from gentask.prompt import PromptTemplate


def run(coro):
    """Run a coroutine to completion (tests are plain sync functions)."""
    return asyncio.run(coro)


def result(
    content: str | None = "Answer: ok",
    finish_reason: str = "stop",
    calls: list[FunctionCall] | None = None,
) -> CompletionResult:
    return CompletionResult(content=content, finish_reason=finish_reason, function_calls=calls)


class ScriptedService:
    """A completion service that replays a script of responses.

    Script items: a CompletionResult, a CompletionResponse, None (a
    response with no results), or an exception to raise. The last item
    repeats once the script runs out.
    """

    def __init__(self, script: list[Any], *, native_functions: bool = False) -> None:
        self.script = list(script)
        self.native_functions = native_functions
        self.requests: list[ChatRequest] = []
        self.ids: list[tuple[str | None, str | None]] = []

    def features(self) -> Features:
        return Features(functions=self.native_functions)

    async def chat(
        self,
        request: ChatRequest,
        *,
        session_id: str | None = None,
        trace_id: str | None = None,
    ) -> CompletionResponse:
        self.requests.append(request)
        self.ids.append((session_id, trace_id))
        item = self.script[min(len(self.requests), len(self.script)) - 1]
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, CompletionResponse):
            return item
        if item is None:
            return CompletionResponse(results=[])
        return CompletionResponse(results=[item])

    @property
    def calls(self) -> int:
        return len(self.requests)


class RecordingTemplate(PromptTemplate):
    """PromptTemplate that records the guidance fields of each render."""

    def __init__(self, signature, log: list) -> None:
        super().__init__(signature)
        self._log = log

    def render(self, values, *, extra_fields=None, examples=None, demos=None) -> str:
        self._log.append(list(extra_fields or []))
        return super().render(
            values, extra_fields=extra_fields, examples=examples, demos=demos
        )


@pytest.fixture
def memory() -> Memory:
    return Memory()


@pytest.fixture
def render_log() -> list:
    """Guidance fields seen by each prompt render, in order."""
    return []


@pytest.fixture
def recording_template(render_log):
    """Prompt template factory bound to render_log."""
    return lambda signature: RecordingTemplate(signature, render_log)
