"""
app/model_fallback.py
-----------------------------------------------------------------------------
Sequential model fallback for roadmap generation.

Free OpenRouter models are frequently rate-limited, retired, or simply
overloaded.  Rather than failing on the first error, the generator walks an
ordered list of candidate models:

    requested model (if any)  →  MODELS[0]  →  MODELS[1]  →  ...

Each candidate gets up to ``min(MAX_RETRIES, len(RETRY_DELAYS))`` attempts.
Attempt ``n`` (for ``n > 0``) is preceded by a sleep of ``RETRY_DELAYS[n]``
seconds.  The status code of a failed attempt decides what happens next:

- ``429`` (rate limited) or ``404`` (unknown model) – give up on this
  candidate immediately and move to the next one.
- anything else non-2xx, or a transport failure – retry the same candidate
  until its attempts are used up.

The first successful response is parsed by
:func:`app.json_extraction.parse_model_content` and returned.  When every
candidate is exhausted :class:`UpstreamError` carries the last error body.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Iterable

import httpx

from app.json_extraction import parse_model_content
from app.openrouter_client import (
    DEFAULT_REFERER,
    chat_completion,
    extract_message_content,
)

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

MAX_RETRIES: int = 3

# Seconds to wait before attempt n.  Index 0 is never used because the first
# attempt is sent immediately.
RETRY_DELAYS: tuple[float, ...] = (1.0, 3.0, 5.0)

# Preference order when the caller does not name a model, or after the
# requested model has failed.
MODELS: tuple[str, ...] = (
    "deepseek/deepseek-chat-v3-0324:free",
    "meta-llama/llama-4-maverick:free",
    "deepseek/deepseek-r1:free",
    "qwen/qwen3-235b-a22b:free",
)

# Used when availability filtering removes every candidate.
FALLBACK_MODEL: str = "deepseek/deepseek-r1:free"

# Status codes that skip straight to the next candidate.
_SKIP_STATUSES: frozenset[int] = frozenset({404, 429})

NO_CANDIDATE_SUCCEEDED = "No candidate models succeeded"


class UpstreamError(Exception):
    """Every candidate model failed; ``details`` holds the last error body."""

    def __init__(self, details: str) -> None:
        super().__init__(details)
        self.details = details


@dataclass
class FallbackResult:
    """Outcome of a successful fallback run."""

    model: str
    content: str
    document: dict[str, Any]
    attempts: list[dict[str, Any]] = field(default_factory=list)


# -----------------------------------------------------------------------------
# Candidate ordering
# -----------------------------------------------------------------------------


def build_candidates(
    requested: str | None,
    available: Iterable[str] | None = None,
    preferred: Iterable[str] = MODELS,
) -> list[str]:
    """
    Return the ordered, de-duplicated list of models to try.

    Parameters
    ----------
    requested : Model the user asked for, tried first.  Blank means none.
    available : Model ids the provider currently offers.  When non-empty,
                candidates outside this set are dropped.  When the
                filter removes everything, ``[FALLBACK_MODEL]`` is returned.
    preferred : The fixed preference list appended after ``requested``.
    """
    ordered: list[str] = []
    if requested and requested.strip():
        ordered.append(requested.strip())
    for model in preferred:
        if model not in ordered:
            ordered.append(model)

    available_set = set(available or ())
    if available_set:
        ordered = [m for m in ordered if m in available_set]
    if not ordered:
        ordered = [FALLBACK_MODEL]
    return ordered


def attempts_per_candidate() -> int:
    return min(MAX_RETRIES, len(RETRY_DELAYS))


# -----------------------------------------------------------------------------
# Fallback loop
# -----------------------------------------------------------------------------


def generate_with_fallback(
    candidates: list[str],
    *,
    system_prompt: str,
    user_prompt: str,
    referer: str = DEFAULT_REFERER,
) -> FallbackResult:
    """
    Try each candidate in order until one returns a 2xx completion.

    Parameters
    ----------
    candidates    : Ordered model ids, usually from :func:`build_candidates`.
    system_prompt : System-role text.
    user_prompt   : Rendered user turn.
    referer       : Attribution header forwarded to the provider.

    Returns
    -------
    FallbackResult with the winning model, the raw content and the parsed
    document (or ``{"raw": content}`` if nothing could be parsed).

    Raises
    ------
    UpstreamError : If every candidate exhausted its attempts.
    """
    last_error = ""
    trail: list[dict[str, Any]] = []
    max_attempts = attempts_per_candidate()

    for candidate in candidates:
        for attempt in range(max_attempts):
            if attempt > 0:
                time.sleep(RETRY_DELAYS[attempt])

            try:
                response = chat_completion(
                    model=candidate,
                    system_prompt=system_prompt,
                    user_prompt=user_prompt,
                    referer=referer,
                )
            except httpx.TransportError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                trail.append({"model": candidate, "attempt": attempt, "status": None})
                logger.warning(
                    "Model %s attempt %d failed: %s", candidate, attempt + 1, last_error
                )
                continue

            trail.append(
                {"model": candidate, "attempt": attempt, "status": response.status_code}
            )

            if response.is_success:
                try:
                    data = response.json()
                except ValueError:
                    data = None
                content = extract_message_content(data)
                return FallbackResult(
                    model=candidate,
                    content=content,
                    document=parse_model_content(content),
                    attempts=trail,
                )

            last_error = response.text
            logger.warning(
                "Model %s attempt %d returned HTTP %d",
                candidate,
                attempt + 1,
                response.status_code,
            )
            if response.status_code in _SKIP_STATUSES:
                break

    logger.error("All %d candidate models failed", len(candidates))
    raise UpstreamError(last_error or NO_CANDIDATE_SUCCEEDED)
