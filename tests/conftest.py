from __future__ import annotations

import os

import pytest

HORIZON_VARS = ("HORIZON_BASE_PATH", "HORIZON_CANVAS_NAME", "HORIZON_OUTPUT_DIR", "HORIZON_LOG_LEVEL")


@pytest.fixture(autouse=True)
def clean_horizon_env(monkeypatch):
    """Keep HORIZON_* settings (including ones loaded from .env files) out of other tests."""
    for name in HORIZON_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    for name in HORIZON_VARS:
        os.environ.pop(name, None)


@pytest.fixture
def story_payload() -> dict:
    """A small two-phase classifier answer with one cross-phase relation."""
    return {
        "main_topic": "Rust web service",
        "summary": "Building and deploying an HTTP API",
        "phases": [
            {"id": "p1", "title": "Setup", "summary": "Toolchain"},
            {"id": "p2", "title": "Deploy", "summary": "Shipping"},
        ],
        "nodes": [
            {"id": "n1", "label": "Toolchain", "emoji": "🦀", "body": "Install rustup", "phase_id": "p1", "source_indices": [0, 1]},
            {"id": "n2", "label": "Cargo", "body": "Create the crate", "phase_id": "p1", "source_indices": [2]},
            {"id": "n3", "label": "Docker", "body": "Multi-stage build", "phase_id": "p2", "source_indices": [3], "hub": True},
            {"id": "n4", "label": "CI", "body": "GitHub Actions", "phase_id": "p2", "source_indices": [4]},
            {"id": "n5", "label": "Thanks", "body": "Chit-chat", "type": "noise", "source_indices": [5]},
        ],
        "edges": [{"from": "n2", "to": "n4", "label": "ships"}],
    }


@pytest.fixture
def story_mapping() -> list[dict]:
    return [{"index": i + 1, "fileName": f"{i + 1:03d}-note.md"} for i in range(6)]
