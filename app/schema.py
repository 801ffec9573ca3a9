"""
app/schema.py
-----------------------------------------------------------------------------
Pydantic v2 models for every request / response object in the roadmap
generator API.

Design principles
-----------------
• Keep models thin – no business logic here.
• Wire names are camelCase (``timeframeWeeks``, ``createdAt``) because the
  browser script and the stored JSON file already use them.  Python code
  uses snake_case attributes with ``alias`` mapping between the two.
• The roadmap document itself is *not* modelled: whatever JSON object the
  LLM produced is stored and returned verbatim.
• ``topic`` and ``roadmap`` are optional at the schema level so the route
  handlers can answer a missing value with the 400 message the frontend
  expects instead of a generic 422.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# -----------------------------------------------------------------------------
# POST /api/roadmap
# -----------------------------------------------------------------------------


class RoadmapRequest(BaseModel):
    """
    Request body for POST /api/roadmap.

    Either ``timeframeWeeks`` or ``timeframeMonths`` may be given; weeks take
    precedence.  Numeric strings are accepted because HTML form values
    arrive as text.
    """

    model_config = ConfigDict(populate_by_name=True)

    topic: str | None = Field(
        default=None,
        description="What the learner wants to study.",
        examples=["Rust", "Machine learning"],
    )
    level: str | None = Field(
        default="beginner",
        description="Starting level of the learner.",
        examples=["beginner", "intermediate", "advanced"],
    )
    timeframe_weeks: float | str | None = Field(
        default=None,
        alias="timeframeWeeks",
        description="Roadmap length in weeks, clamped to [1, 52].",
    )
    timeframe_months: float | str | None = Field(
        default=None,
        alias="timeframeMonths",
        description="Roadmap length in months; used only when weeks are absent.",
    )
    model: str | None = Field(
        default=None,
        description="OpenRouter model id to try before the built-in preference list.",
        examples=["deepseek/deepseek-chat-v3-0324:free"],
    )


# -----------------------------------------------------------------------------
# Stored records
# -----------------------------------------------------------------------------


class StoredRoadmap(BaseModel):
    """One record of ``roadmaps.json``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Epoch milliseconds plus a random base-36 suffix.")
    roadmap: Any = Field(..., description="The roadmap document as generated.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Form values that produced the roadmap (topic, level, timeframe).",
    )
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")


class SaveRoadmapRequest(BaseModel):
    """Request body for POST /api/roadmap/save."""

    roadmap: Any = Field(default=None, description="Roadmap document to store.")
    metadata: dict[str, Any] | None = Field(
        default=None,
        description="Optional form values stored alongside the roadmap.",
    )


class SaveRoadmapResponse(BaseModel):
    success: bool = True
    id: str
    roadmap: StoredRoadmap


class RoadmapSummary(BaseModel):
    """Sidebar entry for GET /api/roadmaps."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    title: str
    topic: str = ""
    level: str = ""
    timeframe_months: Any = Field(default=3, alias="timeframeMonths")
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")


class RoadmapListResponse(BaseModel):
    roadmaps: list[RoadmapSummary]


class DeleteResponse(BaseModel):
    success: bool


# -----------------------------------------------------------------------------
# GET /api/models, GET /api/health
# -----------------------------------------------------------------------------


class ModelInfo(BaseModel):
    """
    A provider model, reduced to what the model picker needs.

    Values are passed through as OpenRouter sent them; the catalogue is not
    ours to validate.
    """

    id: Any
    name: Any
    pricing: Any = Field(default_factory=dict)
    context_length: Any = None


class ModelListResponse(BaseModel):
    models: list[ModelInfo]


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    api_key_configured: bool = Field(
        ...,
        description="Whether OPENROUTER_API_KEY is set.  Generation fails without it.",
    )
