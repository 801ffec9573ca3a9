"""
app/file_loaders.py
-----------------------------------------------------------------------------
Prompt-template loading for the roadmap generator.

Prompt text lives in ``app/prompts/*.txt`` rather than in Python string
literals so it can be edited and diffed without touching code.  All path
resolution is relative to this file's parent directory (``app/``), so the
loaders work regardless of the working directory from which uvicorn is
launched.

Exports
-------
load_prompt(name) -> str
    Load a named prompt text file.

Dependencies
------------
Uses ``fastapi.HTTPException`` for error signalling so that route handlers
in ``main.py`` get properly formatted HTTP error responses without extra
try/except boilerplate.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import HTTPException

_HERE = Path(__file__).parent
PROMPTS_DIR = _HERE / "prompts"


def load_prompt(name: str) -> str:
    """
    Load a named prompt text file from ``app/prompts/``.

    Parameters
    ----------
    name : Bare filename without extension (e.g. ``"roadmap_system"``).

    Returns
    -------
    str : The prompt text, stripped of surrounding whitespace.

    Raises
    ------
    HTTPException(500)
        If the file doesn't exist.  Prompts ship with the app, so a missing
        one means a broken deployment rather than a bad request.
    """
    path = PROMPTS_DIR / f"{name}.txt"
    if not path.exists():
        raise HTTPException(status_code=500, detail=f"Prompt '{name}' not found at {path}")
    return path.read_text(encoding="utf-8").strip()
