"""
app/roadmap_store.py
-----------------------------------------------------------------------------
Flat JSON-file persistence for saved roadmaps.

All records live in one file, ``roadmaps.json``, as a pretty-printed JSON
array in insertion order:

    [
      {
        "id": "1718000000000k3j9x0a1b",
        "roadmap": {...},          # document returned by the model
        "metadata": {...},         # topic / level / timeframe from the form
        "createdAt": "2024-06-10T06:13:20.000Z",
        "updatedAt": "2024-06-10T06:13:20.000Z"
      },
      ...
    ]

Every mutation reads the whole file, changes the list in memory and writes
it back.  There is no locking; with a single local user the last write wins.

Storage location
----------------
ROADMAP_STORAGE_DIR – explicit directory, if set.
VERCEL              – when set (serverless deploy), ``/tmp`` is used because
                      it is the only writable path.
otherwise           – ``data/`` next to the ``app`` package.

Functions accept an optional ``path`` so tests can point them at a
``tmp_path`` file; when omitted the module-level ``ROADMAPS_FILE`` is read at
call time.
"""

from __future__ import annotations

import json
import logging
import os
import secrets
import string
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

_HERE = Path(__file__).parent


def _default_storage_dir() -> Path:
    explicit = os.getenv("ROADMAP_STORAGE_DIR")
    if explicit:
        return Path(explicit)
    if os.getenv("VERCEL"):
        return Path("/tmp")
    return _HERE.parent / "data"


STORAGE_DIR: Path = _default_storage_dir()
ROADMAPS_FILE: Path = STORAGE_DIR / "roadmaps.json"

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LENGTH = 9

UNTITLED = "Untitled Roadmap"
DEFAULT_TIMEFRAME_MONTHS = 3


# -----------------------------------------------------------------------------
# Ids and timestamps
# -----------------------------------------------------------------------------


def utc_timestamp(now: datetime | None = None) -> str:
    """
    Format *now* (default: current UTC time) as ISO-8601 with millisecond
    precision and a ``Z`` suffix, e.g. ``2024-06-10T06:13:20.000Z``.
    """
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def generate_id(now: datetime | None = None) -> str:
    """
    Build a record id: epoch milliseconds followed by nine random base-36
    characters.

    The timestamp prefix keeps ids roughly time-ordered; the suffix makes
    collisions within the same millisecond practically impossible.
    """
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"{millis}{suffix}"


# -----------------------------------------------------------------------------
# File I/O
# -----------------------------------------------------------------------------


def _resolve(path: Path | None) -> Path:
    return path if path is not None else ROADMAPS_FILE


def load_roadmaps(path: Path | None = None) -> list[dict[str, Any]]:
    """
    Read every stored record.

    A missing file is an empty store.  Any other failure (unreadable file,
    invalid JSON) propagates so the caller can report it.

    Raises
    ------
    ValueError : If the file is valid JSON but not an array of objects.
    """
    target = _resolve(path)
    try:
        text = target.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    roadmaps = json.loads(text)
    if not isinstance(roadmaps, list) or not all(isinstance(r, dict) for r in roadmaps):
        raise ValueError(f"{target} does not hold an array of roadmap records")
    return roadmaps


def save_roadmaps(roadmaps: list[dict[str, Any]], path: Path | None = None) -> None:
    """Overwrite the store with *roadmaps*, creating its directory if needed."""
    target = _resolve(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(roadmaps, indent=2, ensure_ascii=False), encoding="utf-8")


# -----------------------------------------------------------------------------
# Record operations
# -----------------------------------------------------------------------------


def add_roadmap(
    roadmap: Any,
    metadata: dict[str, Any] | None = None,
    path: Path | None = None,
) -> dict[str, Any]:
    """
    Append a new record and return it.

    Parameters
    ----------
    roadmap  : The roadmap document (usually the generator's JSON output).
    metadata : Form values that produced it; stored as ``{}`` when omitted.
    path     : Optional store file override.
    """
    roadmaps = load_roadmaps(path)
    now = datetime.now(timezone.utc)
    stamp = utc_timestamp(now)
    record = {
        "id": generate_id(now),
        "roadmap": roadmap,
        "metadata": metadata or {},
        "createdAt": stamp,
        "updatedAt": stamp,
    }
    roadmaps.append(record)
    save_roadmaps(roadmaps, path)
    logger.info("Saved roadmap %s (%d stored)", record["id"], len(roadmaps))
    return record


def find_roadmap(roadmap_id: str, path: Path | None = None) -> dict[str, Any] | None:
    """Return the record with *roadmap_id*, or None."""
    for record in load_roadmaps(path):
        if record.get("id") == roadmap_id:
            return record
    return None


def delete_roadmap(roadmap_id: str, path: Path | None = None) -> bool:
    """
    Remove the record with *roadmap_id*.

    Returns False (and leaves the file untouched) when no record matched.
    """
    roadmaps = load_roadmaps(path)
    remaining = [r for r in roadmaps if r.get("id") != roadmap_id]
    if len(remaining) == len(roadmaps):
        return False
    save_roadmaps(remaining, path)
    logger.info("Deleted roadmap %s", roadmap_id)
    return True


def summarise(record: dict[str, Any]) -> dict[str, Any]:
    """
    Reduce a record to the fields the sidebar lists.

    The title comes from the roadmap itself, then the requested topic, then
    ``"Untitled Roadmap"``.
    """
    roadmap = record.get("roadmap")
    metadata = record.get("metadata") or {}
    roadmap_title = roadmap.get("title") if isinstance(roadmap, dict) else None
    topic = metadata.get("topic")
    level = metadata.get("level")
    return {
        "id": record.get("id"),
        "title": str(roadmap_title or topic or UNTITLED),
        "topic": str(topic) if topic else "",
        "level": str(level) if level else "",
        "timeframeMonths": metadata.get("timeframeMonths") or DEFAULT_TIMEFRAME_MONTHS,
        "createdAt": record.get("createdAt"),
        "updatedAt": record.get("updatedAt"),
    }


def list_summaries(path: Path | None = None) -> list[dict[str, Any]]:
    """Return summaries of every record, newest first."""
    return [summarise(r) for r in reversed(load_roadmaps(path))]
