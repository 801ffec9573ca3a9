"""
app/main.py
-----------------------------------------------------------------------------
FastAPI application entrypoint for the AI Roadmap Generator.

This module is a **thin routing layer** – each route handler orchestrates
calls to domain modules and returns the result.  All business logic lives
in dedicated modules:

Domain modules
~~~~~~~~~~~~~~
- ``app.schema``            – Pydantic v2 request / response models.
- ``app.openrouter_client`` – Synchronous HTTP wrapper around OpenRouter.
- ``app.model_fallback``    – Candidate ordering and the retry/backoff loop.
- ``app.json_extraction``   – Best-effort JSON recovery from model output.
- ``app.prompt_builder``    – Timeframe resolution and prompt rendering.
- ``app.file_loaders``      – Prompt template loading.
- ``app.roadmap_store``     – Flat JSON-file persistence.
- ``app.throttle``          – Minimum spacing between generations.

Run with:
    uvicorn app.main:app --reload --host 127.0.0.1 --port 3000

Endpoints
---------
GET    /                      → serves index.html
GET    /api/health            → liveness + configuration check
GET    /api/models            → OpenRouter model catalogue
POST   /api/roadmap           → generate a roadmap via model fallback
POST   /api/roadmap/save      → persist a roadmap to data/roadmaps.json
GET    /api/roadmaps          → saved roadmap summaries, newest first
GET    /api/roadmap/{id}      → one saved roadmap
DELETE /api/roadmap/{id}      → remove a saved roadmap

Architecture notes
------------------
- All blocking I/O (file reads, OpenRouter HTTP calls, retry sleeps) lives in
  regular ``def`` route handlers.  FastAPI runs those in a threadpool so the
  async event loop is never blocked.
- Static files are served by Starlette's StaticFiles middleware.
- Upstream failures are reported as 502 with a ``{"error", "details"}``
  object in ``detail`` so the frontend can show the provider's message.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.requests import Request

from app import roadmap_store
from app.model_fallback import (
    MODELS,
    UpstreamError,
    build_candidates,
    generate_with_fallback,
)
from app.openrouter_client import (
    OPENROUTER_API_KEY,
    fetch_models,
    list_available_model_ids,
    resolve_referer,
)
from app.prompt_builder import build_system_prompt, build_user_prompt, resolve_weeks
from app.schema import (
    DeleteResponse,
    HealthResponse,
    ModelInfo,
    ModelListResponse,
    RoadmapListResponse,
    RoadmapRequest,
    RoadmapSummary,
    SaveRoadmapRequest,
    SaveRoadmapResponse,
    StoredRoadmap,
)
from app.throttle import generation_throttle

# -----------------------------------------------------------------------------
# Bootstrap
# -----------------------------------------------------------------------------

load_dotenv()

logger = logging.getLogger(__name__)

# Resolve paths relative to this file so the app works regardless of the
# working directory from which uvicorn is launched.
_HERE = Path(__file__).parent
_TEMPLATES_DIR = _HERE / "templates"
_STATIC_DIR = _HERE / "static"

# Read version from pyproject.toml (single source of truth).
_PYPROJECT = _HERE.parent / "pyproject.toml"
with open(_PYPROJECT, "rb") as _f:
    _APP_VERSION: str = tomllib.load(_f)["project"]["version"]

if not OPENROUTER_API_KEY:
    logger.warning("OPENROUTER_API_KEY is not set; roadmap generation will fail. Set it in .env")

DEFAULT_LEVEL = "beginner"

# -----------------------------------------------------------------------------
# FastAPI app + middleware
# -----------------------------------------------------------------------------

app = FastAPI(
    title="AI Roadmap Generator",
    description=(
        "Generates week-by-week learning roadmaps with free OpenRouter models "
        "and keeps saved roadmaps in a local JSON file."
    ),
    version=_APP_VERSION,
)

app.mount("/static", StaticFiles(directory=str(_STATIC_DIR)), name="static")

templates = Jinja2Templates(directory=str(_TEMPLATES_DIR))


def _upstream_error(details: str) -> HTTPException:
    return HTTPException(
        status_code=502,
        detail={"error": "Upstream error", "details": details},
    )


# -----------------------------------------------------------------------------
# Page + health
# -----------------------------------------------------------------------------


@app.get("/", response_class=HTMLResponse, include_in_schema=False)
def index(request: Request) -> HTMLResponse:
    """Serve the single-page application shell."""
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "app_version": _APP_VERSION,
            "default_models": list(MODELS),
            "default_level": DEFAULT_LEVEL,
        },
    )


@app.get("/api/health", response_model=HealthResponse, summary="Liveness check")
def health() -> HealthResponse:
    return HealthResponse(version=_APP_VERSION, api_key_configured=bool(OPENROUTER_API_KEY))


# -----------------------------------------------------------------------------
# GET /api/models
# -----------------------------------------------------------------------------


@app.get(
    "/api/models",
    response_model=ModelListResponse,
    summary="List models offered by OpenRouter",
)
def get_models(request: Request) -> ModelListResponse:
    """
    Proxy the OpenRouter model catalogue for the frontend's model picker.

    Raises
    ------
    HTTPException(502) if OpenRouter returns an error or cannot be reached.
    """
    try:
        models = fetch_models(resolve_referer(request.headers))
    except httpx.HTTPStatusError as exc:
        raise _upstream_error(exc.response.text) from exc
    except httpx.TransportError as exc:
        raise _upstream_error(f"{type(exc).__name__}: {exc}") from exc

    return ModelListResponse(models=[ModelInfo(**m) for m in models])


# -----------------------------------------------------------------------------
# POST /api/roadmap
# -----------------------------------------------------------------------------


@app.post("/api/roadmap", summary="Generate a learning roadmap")
def generate_roadmap(req: RoadmapRequest, request: Request) -> dict[str, Any]:
    """
    Core endpoint: build the prompts, walk the model candidates and return
    the parsed roadmap document.

    The response body is whatever JSON object the model produced, or
    ``{"raw": "<text>"}`` when no JSON could be recovered from its output.

    Raises
    ------
    HTTPException(400) if ``topic`` is missing or blank.
    HTTPException(502) if every candidate model failed.
    """
    topic = (req.topic or "").strip()
    if not topic:
        raise HTTPException(status_code=400, detail="Missing required field: topic")

    level = req.level or DEFAULT_LEVEL
    weeks = resolve_weeks(req.timeframe_weeks, req.timeframe_months)
    system_prompt = build_system_prompt()
    user_prompt = build_user_prompt(topic, level, weeks)
    referer = resolve_referer(request.headers)

    generation_throttle.wait()

    candidates = build_candidates(req.model, list_available_model_ids(referer))
    logger.info(
        "Generating %d-week roadmap for %r (%s); candidates: %s",
        weeks,
        topic,
        level,
        ", ".join(candidates),
    )

    try:
        result = generate_with_fallback(
            candidates,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            referer=referer,
        )
    except UpstreamError as exc:
        raise _upstream_error(exc.details) from exc

    logger.info("Roadmap generated by %s after %d attempt(s)", result.model, len(result.attempts))
    return result.document


# -----------------------------------------------------------------------------
# Saved roadmaps
# -----------------------------------------------------------------------------


@app.post(
    "/api/roadmap/save",
    response_model=SaveRoadmapResponse,
    summary="Save a roadmap to the local store",
)
def save_roadmap(req: SaveRoadmapRequest) -> SaveRoadmapResponse:
    """
    Append a roadmap (plus the form metadata that produced it) to
    ``roadmaps.json``.

    Raises
    ------
    HTTPException(400) if ``roadmap`` is missing or a falsy scalar
    (null, ``""``, ``false``, ``0``).  Empty objects and arrays are kept.
    HTTPException(500) if the store cannot be read or written.
    """
    if not isinstance(req.roadmap, (dict, list)) and not req.roadmap:
        raise HTTPException(status_code=400, detail="Missing roadmap data")

    try:
        record = roadmap_store.add_roadmap(req.roadmap, req.metadata)
    except (OSError, ValueError) as exc:
        logger.error("Error saving roadmap: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to save roadmap") from exc

    return SaveRoadmapResponse(id=record["id"], roadmap=StoredRoadmap(**record))


@app.get(
    "/api/roadmaps",
    response_model=RoadmapListResponse,
    summary="List saved roadmaps, newest first",
)
def list_roadmaps() -> RoadmapListResponse:
    try:
        summaries = roadmap_store.list_summaries()
    except (OSError, ValueError) as exc:
        logger.error("Error loading roadmaps: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to load roadmaps") from exc

    return RoadmapListResponse(roadmaps=[RoadmapSummary(**s) for s in summaries])


@app.get(
    "/api/roadmap/{roadmap_id}",
    response_model=StoredRoadmap,
    summary="Get a saved roadmap",
)
def get_roadmap(roadmap_id: str) -> StoredRoadmap:
    """
    Raises
    ------
    HTTPException(404) if no roadmap has this id.
    HTTPException(500) if the store cannot be read.
    """
    try:
        record = roadmap_store.find_roadmap(roadmap_id)
    except (OSError, ValueError) as exc:
        logger.error("Error processing roadmap %s: %s", roadmap_id, exc)
        raise HTTPException(status_code=500, detail="Failed to process roadmap") from exc

    if record is None:
        raise HTTPException(status_code=404, detail="Roadmap not found")
    return StoredRoadmap(**record)


@app.delete(
    "/api/roadmap/{roadmap_id}",
    response_model=DeleteResponse,
    summary="Delete a saved roadmap",
)
def delete_roadmap(roadmap_id: str) -> DeleteResponse:
    """
    Raises
    ------
    HTTPException(404) if no roadmap has this id.
    HTTPException(500) if the store cannot be read or written.
    """
    try:
        deleted = roadmap_store.delete_roadmap(roadmap_id)
    except (OSError, ValueError) as exc:
        logger.error("Error processing roadmap %s: %s", roadmap_id, exc)
        raise HTTPException(status_code=500, detail="Failed to process roadmap") from exc

    if not deleted:
        raise HTTPException(status_code=404, detail="Roadmap not found")
    return DeleteResponse(success=True)
