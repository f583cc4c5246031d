"""Default extractor: pulls output field values out of raw model text.

The model is prompted to answer with one ``Title: value`` section per
output field (see gentask.prompt). extract_values() locates those
sections, coerces each value to its field type, and raises
ValidationFailure naming the first field that is missing or malformed.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from gentask.exceptions import ValidationFailure
from gentask.models.signature import Field, Signature

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")
_TRUE = {"true", "yes", "y", "1"}
_FALSE = {"false", "no", "n", "0"}


def extract_values(signature: Signature, text: str) -> dict[str, Any]:
    """Extract and coerce the output field values found in *text*.

    Args:
        signature: The signature whose output fields to extract.
        text: Raw completion content.

    Returns:
        Mapping of field name to coerced value. Missing optional
        fields are omitted.

    Raises:
        ValidationFailure: If a required field is missing or a value
            cannot be coerced to its field type.
    """
    fields = signature.output_fields
    raw = _split_sections(fields, text)

    if not raw:
        raw = _fallback_sections(fields, text)

    values: dict[str, Any] = {}
    for f in fields:
        value = raw.get(f.name)
        if value is None or value == "":
            if f.is_optional:
                continue
            raise ValidationFailure(
                f, value or "", f"Missing required field: {f.title}"
            )
        values[f.name] = _coerce(f, value)
    return values


def _split_sections(fields: list[Field], text: str) -> dict[str, Any]:
    """Locate ``Title:`` prefixes at line starts and slice the text between them."""
    starts: list[tuple[int, int, Field]] = []
    for f in fields:
        m = re.search(
            rf"^[ \t]*{re.escape(f.title)}[ \t]*:", text, re.MULTILINE | re.IGNORECASE
        )
        if m:
            starts.append((m.start(), m.end(), f))
    starts.sort(key=lambda s: s[0])

    sections: dict[str, Any] = {}
    for i, (_, end, f) in enumerate(starts):
        stop = starts[i + 1][0] if i + 1 < len(starts) else len(text)
        sections[f.name] = text[end:stop].strip()
    return sections


def _fallback_sections(fields: list[Field], text: str) -> dict[str, Any]:
    """Handle output without any ``Title:`` prefix.

    A JSON object keyed by field name (the json_object response format)
    maps directly; otherwise a single required output field takes the
    whole text.
    """
    stripped = _strip_fence(text.strip())
    if stripped.startswith("{"):
        try:
            decoded = json.loads(stripped)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, dict) and any(f.name in decoded for f in fields):
            return {k: v for k, v in decoded.items() if v is not None}

    required = [f for f in fields if not f.is_optional]
    if len(required) == 1 and stripped:
        return {required[0].name: stripped}
    return {}


def _strip_fence(value: str) -> str:
    m = _FENCE_RE.match(value.strip())
    return m.group(1).strip() if m else value


def _coerce(field: Field, value: Any) -> Any:
    if not isinstance(value, str):
        # Already decoded (JSON object fallback)
        if not field.is_array:
            return _coerce_scalar(field, value)
        if not isinstance(value, list):
            raise ValidationFailure(
                field, json.dumps(value), f"Expected a list for field: {field.title}"
            )
        return [_coerce_scalar(field, item) for item in value]

    if field.is_array:
        items = _parse_list(field, value)
        return [_coerce_scalar(field, item) for item in items]
    return _coerce_scalar(field, value)


def _parse_list(field: Field, value: str) -> list[Any]:
    text = _strip_fence(value)
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValidationFailure(
                field, value, f"Invalid JSON array for field {field.title}: {exc}"
            ) from exc
        if not isinstance(decoded, list):
            raise ValidationFailure(
                field, value, f"Expected a list for field: {field.title}"
            )
        return decoded
    if text.startswith("{"):
        raise ValidationFailure(
            field, value, f"Expected a list for field: {field.title}"
        )
    lines = [_BULLET_RE.sub("", line).strip() for line in text.splitlines()]
    return [line for line in lines if line]


def _check_decoded(field: Field, value: Any) -> Any:
    """Type-check a value that arrived already JSON-decoded."""
    type_name = field.type_name
    if type_name == "json":
        return value
    if type_name == "number":
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    elif type_name == "boolean":
        ok = isinstance(value, bool)
    else:
        ok = isinstance(value, str)
    if not ok:
        raise ValidationFailure(
            field, json.dumps(value, default=str),
            f"Expected a {type_name} for field: {field.title}",
        )
    return value


def _coerce_scalar(field: Field, value: Any) -> Any:
    if not isinstance(value, str):
        return _check_decoded(field, value)
    type_name = field.type_name
    if type_name == "string":
        return value
    if type_name == "number":
        try:
            return int(value)
        except ValueError:
            pass
        try:
            return float(value)
        except ValueError:
            raise ValidationFailure(
                field, value, f"Invalid number for field: {field.title}"
            ) from None
    if type_name == "boolean":
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValidationFailure(
            field, value, f"Invalid boolean for field: {field.title}"
        )
    # json
    try:
        return json.loads(_strip_fence(value))
    except json.JSONDecodeError as exc:
        logger.debug("JSON decode failed for %s: %s", field.name, exc)
        raise ValidationFailure(
            field, value, f"Invalid JSON for field {field.title}: {exc}"
        ) from exc
