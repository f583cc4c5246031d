"""FunctionProcessor: executes function calls requested by the model.

Looks the function up by name, decodes the call's arguments, invokes the
handler (awaiting it if it is a coroutine function), and returns a
FunctionResult tied to the call id.
"""

from __future__ import annotations

import inspect
import json
import logging
import uuid
from typing import TYPE_CHECKING

from gentask.exceptions import FunctionError
from gentask.toolkit.models import FunctionResult

if TYPE_CHECKING:
    from gentask.models.messages import FunctionCall
    from gentask.toolkit.models import FunctionDefinition

logger = logging.getLogger(__name__)


class FunctionProcessor:
    """Dispatches function calls to their handlers.

    Usage::

        processor = FunctionProcessor([FunctionDefinition("search", "Search the web", search)])
        res = await processor.execute(FunctionCall(name="search", arguments='{"q": "x"}'))
        print(res.result)
    """

    def __init__(self, functions: list[FunctionDefinition]) -> None:
        self._functions: dict[str, FunctionDefinition] = {}
        for fn in functions:
            if fn.name in self._functions:
                raise ValueError(f"Duplicate function name: {fn.name}")
            self._functions[fn.name] = fn

    def available_functions(self) -> list[str]:
        return list(self._functions.keys())

    async def execute(
        self,
        call: FunctionCall,
        *,
        session_id: str | None = None,
        trace_id: str | None = None,
    ) -> FunctionResult:
        """Execute a function call.

        Args:
            call: The requested call.
            session_id: Session the call belongs to (logged only).
            trace_id: Trace the call belongs to (logged only).

        Returns:
            FunctionResult with the call id (or a generated one when the
            call has none) and the handler output as text.

        Raises:
            FunctionError: Unknown function, malformed arguments, or a
                handler that raised.
        """
        fn = self._functions.get(call.name)
        if fn is None:
            raise FunctionError(call.name, "unknown function")

        try:
            arguments = call.parsed_arguments()
        except (ValueError, TypeError) as exc:
            raise FunctionError(call.name, f"invalid arguments: {exc}") from exc

        logger.debug(
            "Executing function %s (session=%s, trace=%s)",
            call.name, session_id, trace_id,
        )
        try:
            output = fn.handler(**arguments)
            if inspect.isawaitable(output):
                output = await output
        except Exception as exc:
            logger.debug("Function %s failed: %s", call.name, exc, exc_info=True)
            raise FunctionError(call.name, f"{type(exc).__name__}: {exc}") from exc

        return FunctionResult(
            id=call.id or f"call_{uuid.uuid4().hex[:8]}",
            result=_to_text(output),
        )


def _to_text(output: object) -> str:
    if output is None:
        return ""
    if isinstance(output, str):
        return output
    try:
        return json.dumps(output)
    except (TypeError, ValueError):
        return str(output)
