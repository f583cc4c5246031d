"""Default prompt template.

Renders a signature, its input values, retry guidance fields, examples
and demos into a single user prompt. The layout mirrors what
gentask.extract expects back: one ``Title: value`` section per field.
"""

from __future__ import annotations

import json
from typing import Any

from gentask.exceptions import SignatureError
from gentask.models.signature import Field, Signature

_SEPARATOR = "\n\n---\n\n"

_TYPE_HINTS: dict[str, str] = {
    "number": "a number",
    "boolean": "true or false",
    "json": "valid JSON",
}


class PromptTemplate:
    """Turns a signature plus values into prompt text.

    Bound to one signature at construction; the generation driver builds
    a new template whenever the signature hash changes.
    """

    def __init__(self, signature: Signature) -> None:
        self.signature = signature

    def render(
        self,
        values: dict[str, Any],
        *,
        extra_fields: list[Field] | None = None,
        examples: list[dict[str, Any]] | None = None,
        demos: list[dict[str, Any]] | None = None,
    ) -> str:
        """Render the prompt.

        Args:
            values: Input field values.
            extra_fields: Guidance fields; their descriptions carry the
                past values and the corrective instructions.
            examples: Complete input/output examples.
            demos: Demonstration traces (same shape as examples).

        Raises:
            SignatureError: If a required input value is missing.
        """
        extra_fields = extra_fields or []
        parts: list[str] = []

        if self.signature.description:
            parts.append(self.signature.description)

        parts.append(self._render_format(extra_fields))

        for group in (examples, demos):
            rendered = [self._render_example(ex) for ex in group or []]
            rendered = [r for r in rendered if r]
            if rendered:
                parts.append(_SEPARATOR.join(rendered))

        parts.append(self._render_current(values, extra_fields))
        return _SEPARATOR.join(parts)

    def _render_format(self, extra_fields: list[Field]) -> str:
        lines = ["Follow the following format."]
        for f in self.signature.input_fields:
            lines.append(f"{f.title}: {_describe(f)}")
        for f in extra_fields:
            lines.append(f"{f.title}: {f.title.lower()}")
        for f in self.signature.output_fields:
            lines.append(f"{f.title}: {_describe(f)}")
        return "\n".join(lines)

    def _render_example(self, example: dict[str, Any]) -> str:
        lines = []
        for f in self.signature.input_fields + self.signature.output_fields:
            if f.name in example:
                lines.append(f"{f.title}: {_format_value(example[f.name])}")
        return "\n".join(lines)

    def _render_current(self, values: dict[str, Any], extra_fields: list[Field]) -> str:
        lines = []
        for f in self.signature.input_fields:
            if f.name not in values:
                if f.is_optional:
                    continue
                raise SignatureError(f"Missing value for input field: {f.name}")
            lines.append(f"{f.title}: {_format_value(values[f.name])}")
        for f in extra_fields:
            lines.append(f"{f.title}: {f.description or ''}")
        return "\n".join(lines)


def _describe(field: Field) -> str:
    desc = field.description or f"${{{field.name}}}"
    hint = _TYPE_HINTS.get(field.type_name)
    if field.is_array:
        hint = "a JSON array" + (f" of {hint}" if hint else "")
    suffix = []
    if hint:
        suffix.append(hint)
    if field.is_optional:
        suffix.append("optional")
    return f"{desc} ({', '.join(suffix)})" if suffix else desc


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)
