"""Guidance fields for retry attempts.

Turns the most recent failure into the extra prompt fields shown on the
next attempt: the past value(s) and the corrective instructions. A
validation failure targets one field, so only that field's past value is
shown; an assertion is judged against the whole output, so every output
field's past value is shown.
"""

from __future__ import annotations

import json

from gentask.exceptions import AssertionFailure, ValidationFailure
from gentask.models.signature import Field, Signature


def _instructions(message: str) -> Field:
    return Field(name="instructions", title="Instructions", description=message)


def validation_guidance(failure: ValidationFailure) -> list[Field]:
    f = failure.field
    return [
        Field(name=f"past_{f.name}", title=f"Past {f.title}", description=failure.value),
        _instructions(failure.message),
    ]


def assertion_guidance(failure: AssertionFailure, signature: Signature) -> list[Field]:
    fields = [
        Field(
            name=f"past_{f.name}",
            title=f"Past {f.title}",
            description=json.dumps(failure.value.get(f.name), default=str),
        )
        for f in signature.output_fields
    ]
    fields.append(_instructions(failure.message))
    return fields


def guidance_for(
    failure: ValidationFailure | AssertionFailure,
    signature: Signature,
) -> list[Field]:
    """Build a fresh guidance set from a single failure."""
    if isinstance(failure, ValidationFailure):
        return validation_guidance(failure)
    return assertion_guidance(failure, signature)
