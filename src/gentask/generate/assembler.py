"""Completion assembler.

Runs one logical completion turn. While the service reports a
length-truncated finish, the turn is continued with further calls and the
content is concatenated, up to a ceiling of calls.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

from gentask.exceptions import GenerationError, NoResultError
from gentask.llm.protocols import ChatRequest
from gentask.models.config import ModelConfig
from gentask.models.messages import ChatMessage, CompletionResult

if TYPE_CHECKING:
    from gentask.llm.protocols import CompletionService
    from gentask.models.signature import Signature
    from gentask.toolkit.models import FunctionDefinition

logger = logging.getLogger(__name__)

TRUNCATED = "length"


def wants_json(signature: Signature) -> bool:
    """True if any output field is JSON or array typed."""
    return any(f.type_name == "json" or f.is_array for f in signature.output_fields)


def effective_model_config(
    signature: Signature, model_config: ModelConfig | None
) -> ModelConfig | None:
    """Apply output-format hinting to the caller's model config."""
    if not wants_json(signature):
        return model_config
    hint = ModelConfig(response_format="json_object")
    return model_config.merged(hint) if model_config is not None else hint


async def assemble_completion(
    service: CompletionService,
    history: list[ChatMessage],
    *,
    functions: list[FunctionDefinition] | None = None,
    function_call: str | dict | None = None,
    model_config: ModelConfig | None = None,
    session_id: str | None = None,
    trace_id: str | None = None,
    max_completions: int = 10,
) -> CompletionResult:
    """Run one completion turn, continuing truncated output.

    The history is not written; the caller records the returned result.
    Continuation calls see the partial answer as a trailing assistant
    message.

    Args:
        service: Completion service to call.
        history: Conversation so far. Must not be empty.
        max_completions: Ceiling on calls for this turn. Reaching it while
            still truncated returns the accumulated result.

    Raises:
        GenerationError: If the history is empty.
        NoResultError: If a call returns no result.
    """
    if not history:
        raise GenerationError("No chat prompt found")

    result: CompletionResult | None = None

    for i in range(max_completions):
        messages = list(history)
        if result is not None and result.content:
            messages.append(ChatMessage(role="assistant", content=result.content))

        response = await service.chat(
            ChatRequest(
                messages=messages,
                functions=functions,
                function_call=function_call,
                model_config=model_config,
            ),
            session_id=session_id,
            trace_id=trace_id,
        )
        res = response.results[0] if response.results else None
        if res is None:
            raise NoResultError()

        logger.debug(
            "Completion %d/%d finished: %s", i + 1, max_completions, res.finish_reason
        )

        if result is None:
            result = res
        elif result.content:
            result = dataclasses.replace(
                result,
                content=result.content + (res.content or ""),
                finish_reason=res.finish_reason,
            )
        else:
            result = dataclasses.replace(result, finish_reason=res.finish_reason)

        if res.finish_reason != TRUNCATED:
            break
    else:
        logger.warning(
            "Output still truncated after %d completions; using partial result",
            max_completions,
        )

    if result is None:
        raise NoResultError()
    return result
