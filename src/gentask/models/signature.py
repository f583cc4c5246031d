"""Signature (input/output contract) for generation tasks.

A Signature is an ordered list of named input fields and named output
fields. Fields are Pydantic models; the Signature itself is a small
mutable container, because the generation driver may append the
synthetic function-call fields to it after construction.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Literal

from pydantic import BaseModel, model_validator

from gentask.exceptions import SignatureError

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_CAMEL_SPLIT_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

TypeName = Literal["string", "number", "boolean", "json"]


def title_from_name(name: str) -> str:
    """Derive a display title from a field name.

    ``functionName`` -> ``Function Name``, ``past_answer`` -> ``Past Answer``.
    """
    words = _CAMEL_SPLIT_RE.sub(" ", name).replace("_", " ").split()
    return " ".join(w[:1].upper() + w[1:] for w in words)


class FieldType(BaseModel):
    """Value type of a field."""

    model_config = {"frozen": True}

    name: TypeName = "string"
    is_array: bool = False

    def __str__(self) -> str:
        return f"{self.name}[]" if self.is_array else self.name


class Field(BaseModel):
    """A named signature field.

    Also used for the guidance fields injected on retry, where
    ``description`` carries the past value or the instructions.
    """

    model_config = {"frozen": True}

    name: str
    title: str = ""
    description: str | None = None
    type: FieldType | None = None
    is_optional: bool = False

    @model_validator(mode="before")
    @classmethod
    def _fill_title(cls, data: object) -> object:
        if isinstance(data, dict) and not data.get("title") and data.get("name"):
            data = {**data, "title": title_from_name(data["name"])}
        return data

    @property
    def type_name(self) -> str:
        return self.type.name if self.type is not None else "string"

    @property
    def is_array(self) -> bool:
        return self.type is not None and self.type.is_array


class Signature:
    """Ordered input/output field contract with a change-detection hash.

    Usage::

        sig = Signature.parse('"Answer the question" question -> answer, score:number')
        sig.add_output_field(Field(name="sources", type=FieldType(is_array=True)))
    """

    def __init__(
        self,
        input_fields: list[Field] | None = None,
        output_fields: list[Field] | None = None,
        description: str | None = None,
    ) -> None:
        self.description = description
        self._input_fields: list[Field] = []
        self._output_fields: list[Field] = []
        for f in input_fields or []:
            self.add_input_field(f)
        for f in output_fields or []:
            self.add_output_field(f)

    @classmethod
    def parse(cls, text: str) -> Signature:
        """Parse a compact signature string.

        Format: ``["description"] in1, in2? -> out1:type, out2:type[]``.
        A ``?`` suffix on the name marks a field optional, a ``[]`` suffix
        on the type marks it an array.

        Raises:
            SignatureError: If the string is malformed.
        """
        text = text.strip()
        description = None
        m = re.match(r'^"([^"]*)"\s*(.*)$', text, re.DOTALL)
        if m:
            description, text = m.group(1).strip() or None, m.group(2)

        if text.count("->") != 1:
            raise SignatureError(
                f"Signature must contain exactly one '->': {text!r}"
            )
        left, right = (part.strip() for part in text.split("->"))
        inputs = [_parse_field(p) for p in _split_fields(left)]
        outputs = [_parse_field(p) for p in _split_fields(right)]
        if not outputs:
            raise SignatureError("Signature must declare at least one output field")
        return cls(inputs, outputs, description=description)

    @property
    def input_fields(self) -> list[Field]:
        return list(self._input_fields)

    @property
    def output_fields(self) -> list[Field]:
        return list(self._output_fields)

    def add_input_field(self, field: Field) -> None:
        self._check_new(field)
        self._input_fields.append(field)

    def add_output_field(self, field: Field) -> None:
        self._check_new(field)
        self._output_fields.append(field)

    def has_output_field(self, name: str) -> bool:
        return any(f.name == name for f in self._output_fields)

    def _check_new(self, field: Field) -> None:
        if not _NAME_RE.match(field.name):
            raise SignatureError(f"Invalid field name: {field.name!r}")
        names = {f.name for f in self._input_fields + self._output_fields}
        if field.name in names:
            raise SignatureError(f"Duplicate field name: {field.name!r}")

    def hash(self) -> str:
        """SHA-256 fingerprint over description and both field lists.

        Changes whenever a field is added, so a cached prompt template
        can tell it was built for an older shape.
        """
        shape = {
            "description": self.description,
            "inputs": [f.model_dump(mode="json") for f in self._input_fields],
            "outputs": [f.model_dump(mode="json") for f in self._output_fields],
        }
        return hashlib.sha256(json.dumps(shape, sort_keys=True).encode()).hexdigest()

    def __repr__(self) -> str:
        ins = ", ".join(f.name for f in self._input_fields)
        outs = ", ".join(f.name for f in self._output_fields)
        return f"Signature({ins} -> {outs})"


def _split_fields(text: str) -> list[str]:
    return [p.strip() for p in text.split(",") if p.strip()]


def _parse_field(spec: str) -> Field:
    name, _, type_spec = (s.strip() for s in spec.partition(":"))
    is_optional = name.endswith("?")
    name = name.rstrip("?")
    is_array = type_spec.endswith("[]")
    type_name = type_spec[:-2] if is_array else type_spec
    if type_name and type_name not in ("string", "number", "boolean", "json"):
        raise SignatureError(f"Unknown field type {type_name!r} for {name!r}")
    field_type = None
    if type_name or is_array:
        field_type = FieldType(name=type_name or "string", is_array=is_array)
    return Field(name=name, type=field_type, is_optional=is_optional)
