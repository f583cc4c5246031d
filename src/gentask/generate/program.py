"""Base class for signature-driven programs."""

from __future__ import annotations

from typing import Any

from gentask.models.signature import Signature


class Program:
    """Holds a signature, few-shot examples and demos, and the last trace.

    Examples are complete input/output mappings supplied by the user.
    Demos are traces of earlier successful runs. Both are rendered into
    every prompt by the prompt template.
    """

    def __init__(self, signature: Signature | str) -> None:
        self.signature = (
            Signature.parse(signature) if isinstance(signature, str) else signature
        )
        self.examples: list[dict[str, Any]] = []
        self.demos: list[dict[str, Any]] = []
        self._trace: dict[str, Any] | None = None

    def set_examples(self, examples: list[dict[str, Any]]) -> None:
        self.examples = [dict(e) for e in examples]

    def set_demos(self, demos: list[dict[str, Any]]) -> None:
        self.demos = [dict(d) for d in demos]

    def set_trace(self, trace: dict[str, Any]) -> None:
        self._trace = dict(trace)

    def get_trace(self) -> dict[str, Any] | None:
        """Inputs and outputs of the last successful run, or None."""
        return dict(self._trace) if self._trace is not None else None
