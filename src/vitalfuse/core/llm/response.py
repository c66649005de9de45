"""Response parsing for inference output and document sanitization.

The inference collaborator answers in free text that is expected to contain
one JSON object. ``extract_first_json_object`` finds it by brace matching
(string-literal aware) instead of a greedy regex, so prose before or after
the object, or a stray brace in the prose, does not break parsing.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any

logger = logging.getLogger(__name__)


class _Missing:
    """Marker for "no value at all", as opposed to an explicit ``None``."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def _candidate_end(text: str, start: int) -> int | None:
    """Return the index of the brace closing the object opened at ``start``."""
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
                return i
    return None


def extract_first_json_object(text: str) -> dict[str, Any] | None:
    """Return the first well-formed JSON object embedded in ``text``.

    Scans each ``{`` in order, matches it to its closing brace, and tries to
    parse the span. Spans that do not parse (or parse to something other
    than an object) are skipped and scanning resumes at the next ``{``.

    Returns:
        The parsed dict, or None if the text holds no parseable object.
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        end = _candidate_end(text, start)
        if end is None:
            # Unbalanced from here on; a later "{" may still open a complete object.
            start = text.find("{", start + 1)
            continue
        try:
            parsed = json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict):
            return parsed
        start = text.find("{", start + 1)

    logger.debug("No JSON object found in %d chars of response text", len(text))
    return None


def sanitize_document(obj: Any) -> Any:
    """Make a value safe for the document store.

    * keys whose value is ``MISSING`` are dropped (``None`` is preserved)
    * tuples become lists, mapping keys become strings
    * NaN and infinities become ``None`` (JSON cannot represent them)
    """
    if obj is MISSING:
        return None
    if isinstance(obj, dict):
        return {
            str(k): sanitize_document(v) for k, v in obj.items() if v is not MISSING
        }
    if isinstance(obj, (list, tuple)):
        return [sanitize_document(v) for v in obj if v is not MISSING]
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    return obj
