"""Pull a JSON object out of a model completion.

Models wrap JSON in prose or half-closed markdown fences often enough that
every caller goes through here. Nothing in this module raises.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

_LEADING_FENCE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\s*```\s*$")


def strip_code_fences(text: str) -> str:
    cleaned = (text or "").strip()
    cleaned = _LEADING_FENCE.sub("", cleaned)
    cleaned = _TRAILING_FENCE.sub("", cleaned)
    return cleaned.strip()


def _balanced_object(text: str, start: int) -> Optional[str]:
    """Return the {...} starting at text[start], honouring JSON strings."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _loads_object(candidate: Optional[str]) -> Optional[dict[str, Any]]:
    if not candidate:
        return None
    try:
        value = json.loads(candidate)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def extract_json_object(text: Optional[str]) -> Optional[dict[str, Any]]:
    """Best-effort parse of the JSON object inside a completion.

    Tries, in order: the first balanced object, the first-'{'..last-'}' slice,
    then the whole cleaned text. Returns None when nothing parses to an object.
    """
    cleaned = strip_code_fences(text or "")
    first = cleaned.find("{")
    last = cleaned.rfind("}")

    if first != -1:
        parsed = _loads_object(_balanced_object(cleaned, first))
        if parsed is not None:
            return parsed
        if last > first:
            parsed = _loads_object(cleaned[first : last + 1])
            if parsed is not None:
                return parsed

    return _loads_object(cleaned)
