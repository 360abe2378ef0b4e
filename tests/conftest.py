"""Shared fixtures for the catrat test-suite."""

from __future__ import annotations

import datetime as dt
import random
from pathlib import Path
from typing import Callable

import pytest
import yaml

from catrat.core.levels import LevelRepository
from catrat.core.progress import ProgressTracker


def sample_level(**overrides) -> dict:
    """Raw YAML mapping for a small, valid two-room level."""
    data = {
        "id": 1,
        "name": "Test House",
        "description": "Two rooms",
        "target_room": 2,
        "base_points": 100,
        "optimal_path_length": 1,
        "time_limit": 30,
        "agent_start": [0.3, 0.3],
        "rooms": [
            {"id": 1, "name": "LIVING", "position": [0.3, 0.3], "connected": [2]},
            {"id": 2, "name": "KITCHEN", "position": [0.7, 0.3], "connected": []},
        ],
    }
    data.update(overrides)
    return data


@pytest.fixture()
def levels_dir(tmp_path: Path) -> Path:
    d = tmp_path / "data" / "levels"
    d.mkdir(parents=True)
    return d


@pytest.fixture()
def write_level(levels_dir: Path) -> Callable[[str, dict], Path]:
    def _write(stem: str, data: dict) -> Path:
        path = levels_dir / f"{stem}.yaml"
        path.write_text(yaml.dump(data, default_flow_style=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture(scope="session")
def catalog() -> LevelRepository:
    """The shipped level catalog."""
    return LevelRepository()


@pytest.fixture()
def tracker() -> ProgressTracker:
    return ProgressTracker(today=dt.date(2024, 5, 1), rng=random.Random(7))


@pytest.fixture(scope="session")
def qapp():
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
