"""Shared fixtures for the AI Roadmap Generator test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.throttle import generation_throttle


@pytest.fixture(autouse=True)
def store_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the roadmap store at a per-test file so nothing touches data/."""
    path = tmp_path / "roadmaps.json"
    monkeypatch.setattr("app.roadmap_store.ROADMAPS_FILE", path)
    return path


@pytest.fixture(autouse=True)
def no_throttle(monkeypatch: pytest.MonkeyPatch) -> None:
    """Disable the inter-request spacing so route tests don't sleep."""
    monkeypatch.setattr(generation_throttle, "interval", 0.0)


@pytest.fixture()
def client() -> TestClient:
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture()
def sample_roadmap() -> dict[str, Any]:
    """A minimal roadmap document in the shape the prompt asks for."""
    return {
        "title": "Rust in 2 weeks",
        "summary": "From zero to a small CLI.",
        "total_estimated_hours": 20,
        "milestones": [
            {
                "name": "Week 1: Basics",
                "goal": "Ownership and borrowing",
                "estimated_hours": 10,
                "prerequisites": [],
                "steps": [
                    {
                        "title": "Read the book",
                        "description": "Chapters 1-4",
                        "resources": [{"name": "The Book", "url": "https://doc.rust-lang.org/book/"}],
                        "deliverable": "Guessing game",
                    }
                ],
            },
            {
                "name": "Week 2: Tooling",
                "goal": "Cargo and crates",
                "estimated_hours": 10,
                "prerequisites": ["Week 1"],
                "steps": [],
            },
        ],
    }
