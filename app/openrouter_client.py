"""
app/openrouter_client.py
-----------------------------------------------------------------------------
Thin synchronous wrapper around the OpenRouter HTTP API.

Why synchronous?
----------------
FastAPI runs sync route handlers in a thread-pool executor automatically
(via `def` rather than `async def`), which avoids blocking the event loop
while we wait for the LLM to respond.  The generator serves one outstanding
request at a time, so this is perfectly adequate and keeps the code simple.

OpenRouter chat-completions reference
-------------------------------------
POST {base}/chat/completions
{
    "model":    "<model-id>",
    "messages": [{"role": "system", ...}, {"role": "user", ...}],
    "temperature": 0.7,
    "response_format": {"type": "json_object"}
}

Response (success):
{
    "choices": [{"message": {"role": "assistant", "content": "<text>"}}],
    ...
}

Unlike the model-listing helpers, ``chat_completion`` does **not** raise on a
non-2xx status.  The fallback loop needs the status code to decide whether
to retry the same model or move on to the next one, so the raw
``httpx.Response`` is handed back unchanged.

Environment variables
---------------------
OPENROUTER_API_KEY  – Bearer token sent with every request.
OPENROUTER_BASE_URL – API base URL (default: https://openrouter.ai/api/v1).
APP_URL             – Public URL of this app, sent as ``HTTP-Referer``.

All three are read once at import time so the values are consistent for the
lifetime of the process.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping

import httpx
from dotenv import load_dotenv

# Load .env if present (no-op if the file doesn't exist)
load_dotenv()

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

OPENROUTER_BASE_URL: str = os.getenv(
    "OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1"
).rstrip("/")

OPENROUTER_API_KEY: str | None = os.getenv("OPENROUTER_API_KEY") or None

APP_URL: str | None = os.getenv("APP_URL") or None

APP_TITLE = "AI Roadmap Generator"

DEFAULT_REFERER = "http://localhost:3000"

# Sampling temperature for roadmap generation.
TEMPERATURE: float = 0.7

# Free-tier models are often slow to start; allow a long read window.
_CONNECT_TIMEOUT: float = 10.0
_READ_TIMEOUT: float = 120.0


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def resolve_referer(headers: Mapping[str, str] | None = None) -> str:
    """
    Work out the ``HTTP-Referer`` value OpenRouter uses for app attribution.

    Precedence: the ``APP_URL`` setting, then the proxy-forwarded host (with
    ``x-forwarded-proto``, defaulting to https), then the request's
    ``Origin`` header, then ``http://localhost:3000``.
    """
    if APP_URL:
        return APP_URL
    if headers:
        forwarded_host = headers.get("x-forwarded-host")
        if forwarded_host:
            proto = headers.get("x-forwarded-proto") or "https"
            return f"{proto}://{forwarded_host}"
        origin = headers.get("origin")
        if origin:
            return origin
    return DEFAULT_REFERER


def _headers(referer: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {OPENROUTER_API_KEY or ''}",
        "Content-Type": "application/json",
        "HTTP-Referer": referer,
        "X-Title": APP_TITLE,
    }


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------


def chat_completion(
    *,
    model: str,
    system_prompt: str,
    user_prompt: str,
    referer: str = DEFAULT_REFERER,
) -> httpx.Response:
    """
    Send one chat-completion request and return the raw HTTP response.

    Parameters
    ----------
    model         : OpenRouter model identifier, e.g.
                    "deepseek/deepseek-chat-v3-0324:free".
    system_prompt : The system-role text describing the roadmap contract.
    user_prompt   : The rendered user turn (topic, level, weeks, structure).
    referer       : Value for the ``HTTP-Referer`` attribution header.

    Returns
    -------
    httpx.Response : The response, whatever its status code.

    Raises
    ------
    httpx.TransportError : If the provider cannot be reached or times out.
    """
    url = f"{OPENROUTER_BASE_URL}/chat/completions"

    body: dict[str, Any] = {
        "model": model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "temperature": TEMPERATURE,
        "response_format": {"type": "json_object"},
    }

    timeout = httpx.Timeout(connect=_CONNECT_TIMEOUT, read=_READ_TIMEOUT, write=5.0, pool=5.0)

    with httpx.Client(timeout=timeout) as client:
        return client.post(url, json=body, headers=_headers(referer))


def extract_message_content(data: Any) -> str:
    """
    Pull ``choices[0].message.content`` out of a completion body.

    Returns an empty string when any level of the path is missing or has the
    wrong type, so a malformed success body degrades into the ``raw``
    fallback rather than a 500.
    """
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""


def fetch_models(referer: str = DEFAULT_REFERER) -> list[dict[str, Any]]:
    """
    Return the provider's model catalogue, normalised for the frontend.

    Each entry is reduced to ``{"id", "name", "pricing", "context_length"}``.
    Entries without an ``id`` are dropped; ``name`` falls back to the id and
    ``pricing`` to an empty dict.

    Raises
    ------
    httpx.HTTPStatusError : If OpenRouter returns a non-2xx response.
    httpx.TransportError  : If the request fails before a response arrives.
    """
    url = f"{OPENROUTER_BASE_URL}/models"
    timeout = httpx.Timeout(connect=5.0, read=15.0, write=5.0, pool=5.0)

    with httpx.Client(timeout=timeout) as client:
        response = client.get(url, headers=_headers(referer))
        response.raise_for_status()

    data = response.json()
    entries = data.get("data") if isinstance(data, dict) else None

    models: list[dict[str, Any]] = []
    for entry in entries or []:
        if not isinstance(entry, dict) or not entry.get("id"):
            continue
        models.append(
            {
                "id": entry["id"],
                "name": entry.get("name") or entry["id"],
                "pricing": entry.get("pricing") or {},
                "context_length": entry.get("context_length"),
            }
        )
    return models


def list_available_model_ids(referer: str = DEFAULT_REFERER) -> list[str]:
    """
    Return the ids of every model OpenRouter currently offers.

    Used to drop unavailable candidates before the fallback loop.  If the
    catalogue cannot be fetched an empty list is returned, which callers
    treat as "no filtering".
    """
    try:
        return [m["id"] for m in fetch_models(referer)]
    except Exception as exc:
        # Generation must not fail just because the catalogue is down.
        logger.warning("Failed to list OpenRouter models: %s: %s", type(exc).__name__, exc)
        return []
