"""Output resolver.

Turns a consolidated completion result into a retval: extracts field
values, runs the registered assertions, and collects requested function
calls through the strategy chosen for the task (native or simulated
function calling).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Protocol

from gentask.exceptions import AssertionFailure
from gentask.extract import extract_values
from gentask.models.messages import FunctionCall
from gentask.models.signature import Field

if TYPE_CHECKING:
    from gentask.models.messages import CompletionResult
    from gentask.models.signature import Signature

logger = logging.getLogger(__name__)

FUNCTION_NAME_FIELD = "functionName"
FUNCTION_ARGUMENTS_FIELD = "functionArguments"

Extractor = Callable[["Signature", str], dict[str, Any]]


@dataclass(frozen=True)
class Assertion:
    """A predicate over the extracted values.

    Attributes:
        fn: Predicate receiving the retval.
        message: Shown to the model on retry. A falsy predicate without
            a message does not fail.
        optional: Persistent failure degrades to returning the last
            values instead of raising.
    """

    fn: Callable[[dict[str, Any]], bool]
    message: str | None = None
    optional: bool = False

    def check(self, values: dict[str, Any]) -> None:
        """Raise AssertionFailure if the predicate rejects *values*."""
        try:
            passed = self.fn(values)
        except Exception as exc:
            raise AssertionFailure(values, str(exc), self.optional) from exc
        if not passed and self.message:
            raise AssertionFailure(values, self.message, self.optional)


class FunctionCallStrategy(Protocol):
    """How requested function calls are read from a turn."""

    def prepare(self, signature: Signature) -> None:
        """Adjust the signature once, at task construction."""
        ...

    def collect(
        self, result: CompletionResult, values: dict[str, Any]
    ) -> tuple[dict[str, Any], list[FunctionCall]]:
        """Return (values without function fields, requested calls)."""
        ...


class NativeFunctionCalls:
    """The service returns function calls alongside the content."""

    def prepare(self, signature: Signature) -> None:
        pass

    def collect(
        self, result: CompletionResult, values: dict[str, Any]
    ) -> tuple[dict[str, Any], list[FunctionCall]]:
        return values, list(result.function_calls or [])


class SimulatedFunctionCalls:
    """The model names one function call through two output fields."""

    def prepare(self, signature: Signature) -> None:
        if not signature.has_output_field(FUNCTION_NAME_FIELD):
            signature.add_output_field(Field(
                name=FUNCTION_NAME_FIELD,
                description="Name of function to call",
                is_optional=True,
            ))
        if not signature.has_output_field(FUNCTION_ARGUMENTS_FIELD):
            signature.add_output_field(Field(
                name=FUNCTION_ARGUMENTS_FIELD,
                description="Arguments of function to call",
                is_optional=True,
            ))

    def collect(
        self, result: CompletionResult, values: dict[str, Any]
    ) -> tuple[dict[str, Any], list[FunctionCall]]:
        values, name, arguments = strip_function_fields(values)
        if not name:
            return values, []
        return values, [FunctionCall(name=str(name).strip(), arguments=arguments)]


def strip_function_fields(values: dict[str, Any]) -> tuple[dict[str, Any], Any, Any]:
    """Return (values without the pseudo-fields, functionName, functionArguments)."""
    values = dict(values)
    name = values.pop(FUNCTION_NAME_FIELD, None)
    arguments = values.pop(FUNCTION_ARGUMENTS_FIELD, None)
    return values, name, arguments


class OutputResolver:
    """Resolves one completion result into a retval.

    The returned mapping holds the output values plus a ``functions``
    list of the calls requested in the turn.
    """

    def __init__(
        self,
        signature: Signature,
        assertions: list[Assertion],
        strategy: FunctionCallStrategy,
        extractor: Extractor = extract_values,
    ) -> None:
        self._signature = signature
        self._assertions = assertions
        self._strategy = strategy
        self._extract = extractor

    def resolve(self, result: CompletionResult) -> dict[str, Any]:
        """Extract, check, and collect calls.

        Raises:
            ValidationFailure: From the extractor.
            AssertionFailure: From the first failing assertion.
        """
        values: dict[str, Any] = {}
        if result.content:
            values = self._extract(self._signature, result.content)
            for assertion in self._assertions:
                assertion.check(values)

        values, calls = self._strategy.collect(result, values)
        if calls:
            logger.debug("Turn requested %d function call(s)", len(calls))
        return {**values, "functions": calls}
