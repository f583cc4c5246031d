"""gentask exception hierarchy.

All gentask-specific exceptions inherit from GentaskError.

Only ValidationFailure and AssertionFailure are recoverable: the
generation driver catches them at its retry boundary and turns them into
guidance for the next attempt. Everything else is fatal.
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from gentask.models.signature import Field


class GentaskError(Exception):
    """Base exception for all gentask errors."""


class SignatureError(GentaskError):
    """Raised when a signature is malformed or input values do not match it."""


class ValidationFailure(GentaskError):
    """Extracted output did not satisfy the signature.

    Named ValidationFailure (not ValidationError) to avoid
    collision with pydantic.ValidationError.

    Attributes:
        field: The offending output field.
        value: The raw value that failed (empty string when missing).
    """

    def __init__(self, field: Field, value: str, message: str) -> None:
        self.field = field
        self.value = value
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self)


class AssertionFailure(GentaskError):
    """A registered assertion rejected the extracted values.

    Attributes:
        value: The full retval at the time of failure.
        optional: If True, persistent failure degrades to returning
            ``value`` instead of raising.
    """

    def __init__(
        self,
        value: dict[str, Any],
        message: str,
        optional: bool = False,
    ) -> None:
        self.value = value
        self.optional = optional
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self)


class ExhaustionError(GentaskError):
    """A hard ceiling was reached. Never retried."""


class StepsExhaustedError(ExhaustionError):
    """The tool-use step loop ran out of steps before the task was done."""

    def __init__(self, max_steps: int) -> None:
        self.max_steps = max_steps
        super().__init__("Could not complete task within maximum allowed steps")


class NoResultError(ExhaustionError):
    """The completion service returned no result."""

    def __init__(self) -> None:
        super().__init__("No result found")


class GenerationError(GentaskError):
    """Raised when a generation task cannot produce a result."""


class FunctionError(GentaskError):
    """Raised when a function (tool) call cannot be executed."""

    def __init__(self, function_name: str, message: str) -> None:
        self.function_name = function_name
        super().__init__(f"Function '{function_name}' failed: {message}")
