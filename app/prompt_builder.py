"""
app/prompt_builder.py
-----------------------------------------------------------------------------
Timeframe resolution and prompt rendering for POST /api/roadmap.

The user prompt template contains a literal JSON skeleton, so it uses
``string.Template`` (``$topic``) placeholders instead of ``str.format``
braces.
"""

from __future__ import annotations

import math
from string import Template
from typing import Any

from app.file_loaders import load_prompt

SYSTEM_PROMPT_NAME = "roadmap_system"
USER_PROMPT_NAME = "roadmap_user"

MIN_WEEKS = 1
MAX_WEEKS = 52
DEFAULT_WEEKS = 12
WEEKS_PER_MONTH = 4


def _as_number(value: Any) -> float | None:
    """Coerce *value* to a finite float, or None if it isn't numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _clamp_weeks(weeks: float) -> int:
    return int(max(MIN_WEEKS, min(MAX_WEEKS, weeks)))


def resolve_weeks(timeframe_weeks: Any = None, timeframe_months: Any = None) -> int:
    """
    Decide how many weekly milestones to ask for.

    ``timeframe_weeks`` wins when numeric; otherwise ``timeframe_months`` is
    converted at four weeks per month.  Either way the result is clamped to
    [1, 52] and truncated to a whole number.  With neither given the
    default is 12 weeks.

    >>> resolve_weeks(8)
    8
    >>> resolve_weeks(None, 3)
    12
    >>> resolve_weeks("100")
    52
    """
    weeks = _as_number(timeframe_weeks)
    if weeks is not None:
        return _clamp_weeks(weeks)
    months = _as_number(timeframe_months)
    if months is not None:
        return _clamp_weeks(months * WEEKS_PER_MONTH)
    return DEFAULT_WEEKS


def build_system_prompt() -> str:
    return load_prompt(SYSTEM_PROMPT_NAME)


def build_user_prompt(topic: str, level: str, weeks: int) -> str:
    """Render the user prompt template for one generation request."""
    template = Template(load_prompt(USER_PROMPT_NAME))
    return template.safe_substitute(topic=topic, level=level, weeks=weeks)
