"""
app/json_extraction.py
-----------------------------------------------------------------------------
Best-effort recovery of a JSON object from free-form model output.

Even when asked for ``response_format: json_object`` many free models wrap
their answer in Markdown fences or add a sentence of preamble.  This module
tries progressively looser strategies and stops at the first one that yields
a JSON object:

1. Parse the whole content.
2. Parse the interior of a fenced block (```` ```json ```` preferred over a
   bare ```` ``` ````).
3. Parse the span from the first ``{`` to the last ``}``.

If none succeed, :func:`parse_model_content` returns ``{"raw": content}`` so
the frontend can still show the model's text.

No schema validation is done here – whatever object the model produced is
passed through as-is.
"""

from __future__ import annotations

import json
import re
from typing import Any

_JSON_FENCE = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)
_ANY_FENCE = re.compile(r"```\s*([\s\S]*?)```")


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON; treat output containing them as unparsed.
    raise ValueError(f"Non-JSON constant: {name}")


def _loads_object(text: str) -> dict[str, Any] | None:
    """Parse *text* and return it only if it is a JSON object."""
    try:
        value = json.loads(text, parse_constant=_reject_constant)
    except (json.JSONDecodeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def try_extract_json(text: Any) -> dict[str, Any] | None:
    """
    Look for a JSON object embedded in *text*.

    Only the fenced-block and brace-span strategies are applied here; the
    caller is expected to have tried a strict parse of the whole text first.

    Parameters
    ----------
    text : Model output.  Non-string input returns None.

    Returns
    -------
    dict | None : The recovered object, or None if nothing parses.
    """
    if not isinstance(text, str):
        return None

    fence = _JSON_FENCE.search(text) or _ANY_FENCE.search(text)
    if fence:
        parsed = _loads_object(fence.group(1))
        if parsed is not None:
            return parsed

    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last > first:
        parsed = _loads_object(text[first : last + 1])
        if parsed is not None:
            return parsed

    return None


def parse_model_content(content: str) -> dict[str, Any]:
    """
    Turn a completion's message content into the response document.

    Returns the strictly parsed object, else the extracted object, else
    ``{"raw": content}``.
    """
    parsed = _loads_object(content)
    if parsed is not None:
        return parsed

    extracted = try_extract_json(content)
    if extracted is not None:
        return extracted

    return {"raw": content}
