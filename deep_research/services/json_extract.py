"""Best-effort JSON object extraction from free-text model output."""
from __future__ import annotations

import json
import re
from typing import Any, Iterator

FENCED_JSON_PATTERN = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")


def _balanced_objects(text: str) -> Iterator[str]:
    """Yield each balanced {...} span, trying every opening brace in order."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    yield text[start : index + 1]
                    break
        start = text.find("{", start + 1)


def _as_object(candidate: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_json(text: str) -> str | None:
    """Return the JSON object substring of text, or None when there is none.

    A fenced ```json block wins and is returned verbatim. Otherwise the first
    balanced brace span that parses as a non-empty object is returned, so stray
    braces and empty `{}` in surrounding prose are skipped.
    """
    if not text:
        return None

    fenced = FENCED_JSON_PATTERN.search(text)
    if fenced:
        return fenced.group(1)

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None

    first_balanced: str | None = None
    first_empty: str | None = None
    for candidate in _balanced_objects(text):
        if first_balanced is None:
            first_balanced = candidate
        parsed = _as_object(candidate)
        if parsed:
            return candidate
        if parsed is not None and first_empty is None:
            first_empty = candidate

    return first_empty or first_balanced or text[start : end + 1]


def parse_json_object(text: str) -> dict[str, Any]:
    extracted = extract_json(text)
    if extracted is None:
        raise json.JSONDecodeError("object not found", text or "", 0)
    parsed = json.loads(extracted)
    if not isinstance(parsed, dict):
        raise json.JSONDecodeError("not an object", extracted, 0)
    return parsed
