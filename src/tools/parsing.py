"""Defensive parsing of JSON-shaped completion text."""

import json
import re
import typing as typ
from dataclasses import dataclass

import pydantic

T = typ.TypeVar("T", bound=pydantic.BaseModel)

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_TRAILING_COMMA_PATTERN = re.compile(r",\s*([}\]])")
_CLOSERS = {"{": "}", "[": "]"}


@dataclass(frozen=True)
class ParsedOk(typ.Generic[T]):
    """Completion text that parsed and validated against the expected schema."""

    value: T


@dataclass(frozen=True)
class ParsedMalformed:
    """Completion text (or a failed call) that could not be used."""

    raw_text: str
    reason: str


Parsed: typ.TypeAlias = ParsedOk[T] | ParsedMalformed


def _strip_fences(text: str) -> str:
    match = _FENCE_PATTERN.search(text)
    if match:
        return match.group(1)
    return text


def _outermost(text: str) -> str:
    starts = [idx for idx in (text.find("{"), text.find("[")) if idx >= 0]
    if not starts:
        raise ValueError("No JSON object or array found")
    start = min(starts)
    end = text.rfind(_CLOSERS[text[start]])
    if end <= start:
        raise ValueError("Unbalanced JSON payload")
    return text[start : end + 1]


def extract_json(text: str | None) -> typ.Any:
    """Locate and decode the JSON payload inside `text`.

    Handles code-fence wrappers, surrounding prose and trailing commas.
    Raises `ValueError` when nothing usable is found.
    """
    if text is None or not text.strip():
        raise ValueError("Empty completion")
    candidate = _outermost(_strip_fences(text).strip())
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass
    try:
        return json.loads(_TRAILING_COMMA_PATTERN.sub(r"\1", candidate))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON: {exc.msg}") from exc


def parse_output(text: str | None, schema: type[T]) -> "Parsed[T]":
    """Parse `text` into `schema`, never raising."""
    raw = text or ""
    try:
        data = extract_json(raw)
    except ValueError as exc:
        return ParsedMalformed(raw_text=raw, reason=str(exc))
    try:
        return ParsedOk(schema.model_validate(data))
    except pydantic.ValidationError as exc:
        return ParsedMalformed(raw_text=raw, reason=f"Schema mismatch: {exc.error_count()} error(s)")
