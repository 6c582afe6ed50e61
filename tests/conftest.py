from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    src = Path(__file__).resolve().parents[1] / "src"
    sys.path.insert(0, str(src))


ENV_KEYS = (
    "FRAMESTATS_VIDEO_PATH",
    "FRAMESTATS_OUTPUT_PATH",
    "FRAMESTATS_DECODER",
    "FRAMESTATS_CHANNELS",
    "FRAMESTATS_ERROR_POLICY",
    "FRAMESTATS_DELIVERY_THREADS",
    "FRAMESTATS_WIDTH",
    "FRAMESTATS_HEIGHT",
    "FRAMESTATS_LOG_DIR",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Unset FRAMESTATS_* and restore them (or their absence) afterwards."""
    for key in ENV_KEYS:
        # setenv first so teardown also removes values a .env file loads
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return monkeypatch
