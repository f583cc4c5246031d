"""Toolkit data models for function (tool) definitions and results.

Frozen dataclasses for function definitions and execution results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(frozen=True)
class FunctionDefinition:
    """A single function definition for LLM consumption.

    Attributes:
        name: Function name (e.g. "search").
        description: Human-readable description of when/why to use it.
        parameters: JSON Schema dict describing the parameters.
        handler: Callable (sync or async) that executes the function.
            Called with the decoded arguments as keyword arguments.
    """

    name: str
    description: str
    handler: Callable[..., object]
    parameters: dict = field(default_factory=lambda: {"type": "object", "properties": {}})

    def to_openai(self) -> dict:
        """Convert to OpenAI function-calling format.

        Returns:
            Dict with "type": "function" and nested "function" object.
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass(frozen=True)
class FunctionResult:
    """Result of executing a function call.

    Attributes:
        id: Call id the result answers. The dispatcher only records
            results that carry an id.
        result: Textual output of the function.
    """

    id: str | None = None
    result: str | None = None
