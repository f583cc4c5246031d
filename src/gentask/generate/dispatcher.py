"""Function-call dispatcher for the tool-use loop.

Executes the calls requested in a turn, in order, and records each
result in the conversation history. A call whose name contains the
terminal token ends the task.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from gentask.models.messages import ChatMessage

if TYPE_CHECKING:
    from gentask.memory import HistoryStore
    from gentask.models.messages import FunctionCall
    from gentask.toolkit.executor import FunctionProcessor

logger = logging.getLogger(__name__)

TASK_DONE = "task_done"


async def dispatch_function_calls(
    retval: dict[str, Any],
    processor: FunctionProcessor | None,
    memory: HistoryStore,
    *,
    session_id: str | None = None,
    trace_id: str | None = None,
    terminal: str = TASK_DONE,
) -> dict[str, Any] | None:
    """Run the requested calls of one turn.

    Args:
        retval: Resolved values with an optional ``functions`` list.
        processor: Executes non-terminal calls. With no processor,
            non-terminal calls are skipped.
        memory: History store receiving function results.
        terminal: Token whose presence in a call name ends the task.

    Returns:
        The retval without ``functions`` if the turn is terminal, or
        None if another completion turn is needed.
    """
    if "functions" not in retval:
        return retval

    calls: list[FunctionCall] = retval["functions"]
    if not calls:
        return _strip(retval)

    for call in calls:
        if terminal in call.name:
            logger.debug("Terminal call %s ends the task", call.name)
            return _strip(retval)

        if processor is None:
            logger.warning("No functions configured; skipping call %s", call.name)
            continue

        res = await processor.execute(call, session_id=session_id, trace_id=trace_id)
        if res.id:
            memory.add(
                [ChatMessage(
                    role="function",
                    content=res.result or "",
                    name=call.name,
                    function_id=res.id,
                )],
                session_id,
            )
    return None


def _strip(retval: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in retval.items() if k != "functions"}
