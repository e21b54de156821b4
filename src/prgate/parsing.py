"""Fallible extraction of structured payloads from free-form advisor text."""

from __future__ import annotations

import ast
import json
import re
from functools import lru_cache
from typing import Any, Iterator, Type, TypeVar

from pydantic import ValidationError
from pydantic.type_adapter import TypeAdapter

from .errors import PrgateError

T = TypeVar("T")

_FENCED_BLOCK_RE = re.compile(r"```(?:json|JSON)?[ \t]*\r?\n?(.*?)```", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_TYPOGRAPHIC = str.maketrans(
    {
        "\u201c": '"',
        "\u201d": '"',
        "\u2018": "'",
        "\u2019": "'",
        "\u00a0": " ",
        "\ufeff": "",
    }
)
_CLOSERS = {"{": "}", "[": "]"}


class StructuredParseError(PrgateError):
    """Raised when advisor text cannot be turned into the expected structure."""


def parse_structured(text: str | None, model: Type[T]) -> T:
    """Extract JSON from ``text`` and validate it into ``model``.

    Fenced code blocks are tried first, then the whole text, then the first
    balanced object embedded in the text.
    """
    payload = extract_json(text)
    try:
        return _adapter(model).validate_python(payload)
    except ValidationError as error:
        name = getattr(model, "__name__", str(model))
        raise StructuredParseError(f"Advisor payload did not match {name}: {error}") from error


def extract_json(text: str | None) -> Any:
    """Return the first JSON value found in ``text`` or raise ``StructuredParseError``."""
    if text is None or not text.strip():
        raise StructuredParseError("Advisor returned an empty response.")

    cleaned = text.strip().translate(_TYPOGRAPHIC)
    tried: set[str] = set()
    for candidate in _candidates(cleaned):
        if candidate in tried:
            continue
        tried.add(candidate)
        for variant in (candidate, _TRAILING_COMMA_RE.sub(r"\1", candidate)):
            try:
                return json.loads(variant)
            except (json.JSONDecodeError, RecursionError):
                pass
        literal = _python_literal(candidate)
        if literal is not None:
            return literal

    raise StructuredParseError(f"Advisor returned invalid JSON: {cleaned[:200]}")


def _candidates(text: str) -> Iterator[str]:
    for match in _FENCED_BLOCK_RE.finditer(text):
        block = match.group(1).strip()
        if block:
            yield block
    yield text
    embedded = _embedded_value(text)
    if embedded:
        yield embedded


def _embedded_value(text: str) -> str | None:
    """Return the first balanced ``{...}`` or ``[...]`` span, ignoring brackets inside strings."""
    start: int | None = None
    stack: list[str] = []
    quoted = False
    escape = False
    for position, char in enumerate(text):
        if quoted:
            if escape:
                escape = False
            elif char == "\\":
                escape = True
            elif char == '"':
                quoted = False
        elif char == '"' and stack:
            quoted = True
        elif char in _CLOSERS:
            if start is None:
                start = position
            stack.append(_CLOSERS[char])
        elif stack and char == stack[-1]:
            stack.pop()
            if not stack and start is not None:
                return text[start : position + 1]
    return None


def _python_literal(candidate: str) -> Any | None:
    """Accept dict/list reprs (single quotes, ``True``/``None``) as a last resort."""
    try:
        value = ast.literal_eval(candidate)
    except (SyntaxError, ValueError, TypeError, MemoryError, RecursionError):
        return None
    if not isinstance(value, (dict, list, tuple)):
        return None
    # Round-trip through json so tuples and non-string keys become JSON shapes.
    try:
        return json.loads(json.dumps(value, default=str))
    except (TypeError, ValueError):
        return None


@lru_cache(maxsize=None)
def _adapter(annotation: Any) -> TypeAdapter:
    return TypeAdapter(annotation)


__all__ = ["StructuredParseError", "extract_json", "parse_structured"]
