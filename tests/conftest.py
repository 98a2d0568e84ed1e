"""Shared test fixtures for study calendar tests."""

from __future__ import annotations

import json
import os
from datetime import date
from pathlib import Path

import pytest
import yaml

from studycal.storage import STORAGE_KEY, MemoryBackend, StudyDataStorage
from studycal.store import StudyStore

T0 = 1_748_736_000_000  # 2025-06-01T00:00:00Z


class FakeClock:
    """Controllable epoch-millisecond clock."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(backend: MemoryBackend, clock: FakeClock) -> StudyStore:
    """Fresh, unseeded store over memory storage, 'today' pinned to 2025-06-15."""
    return StudyStore(
        StudyDataStorage(backend),
        clock=clock,
        seed=False,
        today=lambda: date(2025, 6, 15),
    )


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with settings and some stored data."""
    root = tmp_path / "workspace"
    (root / "storage").mkdir(parents=True)

    settings = {
        "timezone": "UTC",
        "seed_demo_data": False,
    }
    (root / "settings.yaml").write_text(
        yaml.dump(settings, default_flow_style=False), encoding="utf-8"
    )

    data = {
        "2025-06-01": {"crossed": True, "note": "Graph algorithms", "minutes": 30, "isTimerRunning": False},
        "2025-06-02": {"crossed": False, "note": "", "minutes": 45, "isTimerRunning": False},
        "2025-05-30": {"crossed": False, "note": "Linear algebra review", "minutes": 60, "isTimerRunning": False},
    }
    (root / "storage" / f"{STORAGE_KEY}.json").write_text(
        json.dumps(data, indent=2), encoding="utf-8"
    )

    # Set env var
    os.environ["STUDYCAL_ROOT"] = str(root)
    yield root
    # Cleanup
    if "STUDYCAL_ROOT" in os.environ:
        del os.environ["STUDYCAL_ROOT"]
