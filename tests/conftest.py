"""Pytest configuration and fixtures."""

from datetime import UTC, datetime
from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

ENV_PREFIXES = ("GITHUB_", "EXPORT_", "STATE_", "APP_", "TRACING_")


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch):
    """Keep CI variables such as GITHUB_TOKEN out of settings under test."""
    import os

    for key in list(os.environ):
        if key.startswith(ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def github_settings():
    """GitHub settings for user alice with fast retries."""
    from health_export.config import GitHubSettings

    return GitHubSettings(
        token="secret",
        username="alice",
        repository="health",
        max_retries=3,
        retry_delay_seconds=0,
    )


@pytest.fixture
def fixed_now():
    """A fixed point in time: 2026-03-15 12:00 UTC."""
    return datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def clock(fixed_now):
    """Clock returning ``fixed_now``."""
    return lambda: fixed_now


@pytest.fixture
def sample_workout_data():
    """Sample workout in Health Auto Export format."""
    return {
        "uuid": "A1B2C3",
        "activityType": "HKWorkoutActivityTypeRunning",
        "start": "2024-01-15 07:00:00 +0000",
        "end": "2024-01-15 07:45:00 +0000",
        "totalDistance": 5200,
        "totalEnergyBurned": {"qty": 350.4, "units": "kcal"},
        "flightsClimbed": 3,
        "sourceName": "Apple Watch",
        "metadata": {"HKElevationAscended": "25 m"},
    }


@pytest.fixture
def sample_activity_data():
    """Sample daily activity summary."""
    return {
        "date": "2024-01-15",
        "activeEnergyBurned": 512.346,
        "activeEnergyBurnedGoal": 500,
        "exerciseTime": 34.6,
        "exerciseTimeGoal": 30,
        "standHours": 11,
        "standHoursGoal": 12,
    }


@pytest.fixture(autouse=True)
def structlog_to_stderr():
    """Send unconfigured structlog output to stderr so it never mixes with CLI stdout."""
    import structlog

    structlog.configure(logger_factory=lambda *args: structlog.PrintLogger(sys.stderr))
    yield
    structlog.reset_defaults()
