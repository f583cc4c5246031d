"""Configuration models for gentask.

ModelConfig holds typed generation parameters, used both as a
per-invocation override and as the request payload source.
ForwardOptions holds per-invocation settings of a generation task.
"""

from __future__ import annotations

import types
from dataclasses import dataclass, fields as dc_fields
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from gentask.llm.protocols import CompletionService
    from gentask.memory import HistoryStore

# Wire-level parameter names accepted as synonyms
_SYNONYMS: dict[str, str] = {
    "stop": "stop_sequences",
    "max_completion_tokens": "max_tokens",
}

# Request plumbing owned by the driver and client, never generation params
_RESERVED: frozenset[str] = frozenset({
    "messages", "tools", "tool_choice", "functions", "function_call",
    "stream", "n",
})


def _normalize(params: dict[str, Any]) -> dict[str, Any]:
    """Apply synonyms (the canonical name wins) and drop reserved keys."""
    out = {k: v for k, v in params.items() if k not in _RESERVED and k not in _SYNONYMS}
    for synonym, canonical in _SYNONYMS.items():
        if synonym in params:
            out.setdefault(canonical, params[synonym])
    return out


@dataclass(frozen=True)
class ModelConfig:
    """Generation parameters sent with each completion request.

    Every field defaults to None, meaning the service default applies.
    Provider-specific parameters go in ``extra`` and are sent as-is.

    Example::

        config = ModelConfig(model="gpt-4o", temperature=0.2)
        await task.forward(values, model_config=config)
    """

    model: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    stop_sequences: tuple[str, ...] | None = None
    seed: int | None = None
    response_format: str | None = None
    extra: dict | None = None

    def __post_init__(self) -> None:
        if self.stop_sequences is not None:
            object.__setattr__(self, "stop_sequences", tuple(self.stop_sequences))
        if self.extra is not None:
            object.__setattr__(self, "extra", types.MappingProxyType(dict(self.extra)))

    def __hash__(self) -> int:
        return hash(tuple(sorted(
            (k, tuple(v) if isinstance(v, list) else v)
            for k, v in self.to_dict().items()
        )))

    @classmethod
    def from_dict(cls, d: dict | None) -> ModelConfig | None:
        """Build from a flat parameter dict; unknown keys land in ``extra``.

        Returns None if d is None.
        """
        if d is None:
            return None
        params = _normalize(d)
        typed = {f.name for f in dc_fields(cls) if f.name != "extra"}
        extra = {k: v for k, v in params.items() if k not in typed}
        return cls(
            **{k: v for k, v in params.items() if k in typed},
            extra=extra or None,
        )

    def to_dict(self) -> dict:
        """Flat dict of the set parameters, ``extra`` merged in, tuples as lists."""
        result: dict = {}
        for f in dc_fields(self):
            value = getattr(self, f.name)
            if f.name == "extra" or value is None:
                continue
            result[f.name] = list(value) if isinstance(value, tuple) else value
        if self.extra:
            result.update(self.extra)
        return result

    def merged(self, other: ModelConfig | None) -> ModelConfig:
        """Return a copy with the set fields of *other* layered on top."""
        if other is None:
            return self
        return ModelConfig.from_dict({**self.to_dict(), **other.to_dict()})  # type: ignore[return-value]


@dataclass(frozen=True)
class ForwardOptions:
    """Per-invocation options of a generation task.

    Frozen for safety -- use dataclasses.replace() to create modified copies.

    Attributes:
        max_retries: Total attempts for validation/assertion failures.
        max_steps: Completion turns per attempt in the tool-use loop.
        max_completions: Calls per turn while the output is truncated.
        session_id: History-store key; also forwarded to the service
            and the function processor.
        trace_id: Caller-supplied id forwarded to the service and the
            function processor.
        model_config: Generation parameter overrides.
        memory: History store. A fresh in-memory store is used if None.
        service: Completion service override for this invocation.
    """

    max_retries: int = 3
    max_steps: int = 10
    max_completions: int = 10
    session_id: str | None = None
    trace_id: str | None = None
    model_config: ModelConfig | None = None
    memory: HistoryStore | None = None
    service: CompletionService | None = None

    def __post_init__(self) -> None:
        for name in ("max_retries", "max_steps", "max_completions"):
            value: Any = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
