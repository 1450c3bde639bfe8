"""Record models for exported health data."""

import math
import re
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .activity_types import activity_key, activity_name

# Regex to normalize Health Auto Export date format:
# "2022-06-12 23:59:00 +0400" -> "2022-06-12T23:59:00+04:00"
_DATE_SPACE_TZ_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})\s(\d{2}:\d{2}:\d{2})\s([+-])(\d{2}):?(\d{2})$")
_QUANTITY_RE = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)")

ELEVATION_ASCENDED_KEY = "HKElevationAscended"


class RecordKind(str, Enum):
    """Record kinds; the value is the remote directory name."""

    WORKOUTS = "workouts"
    ACTIVITY = "activity"
    DISTANCES = "distances"


def _normalize_timestamp(value: Any) -> Any:
    """Normalize Health Auto Export timestamps to ISO 8601."""
    if not isinstance(value, str):
        return value
    m = _DATE_SPACE_TZ_RE.match(value.strip())
    if m:
        return f"{m[1]}T{m[2]}{m[3]}{m[4]}:{m[5]}"
    return value


def _normalize_day(value: Any) -> Any:
    """Accept full timestamps where a calendar day is expected."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10 and value[4] == "-" and value[7] == "-":
        return value[:10]
    return value


def _ensure_aware(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so rendering is deterministic."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def coerce_quantity(value: Any) -> float | None:
    """Read a quantity from a number, a ``{"qty": n}`` mapping or a ``"25 m"`` string.

    Returns None for anything that does not yield a finite number.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, dict):
        value = value.get("qty", value.get("value"))
    if isinstance(value, str):
        m = _QUANTITY_RE.match(value)
        value = m[1] if m else None
    if isinstance(value, int | float):
        number = float(value)
        return number if math.isfinite(number) else None
    return None


class Workout(BaseModel):
    """A single workout."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    uuid: str = Field(default="", description="Workout identifier")
    activity_type: str = Field(
        default="other",
        validation_alias="activityType",
        description="HealthKit activity type identifier or short key",
    )
    start: datetime = Field(description="Workout start time")
    end: datetime = Field(description="Workout end time")
    duration: float | None = Field(default=None, description="Duration in seconds")
    total_distance: float | None = Field(
        default=None, validation_alias="totalDistance", description="Distance in meters"
    )
    total_energy_burned: float | None = Field(
        default=None, validation_alias="totalEnergyBurned", description="Energy in kcal"
    )
    flights_climbed: float | None = Field(default=None, validation_alias="flightsClimbed")
    swim_strokes: float | None = Field(default=None, validation_alias="swimStrokes")
    source_name: str | None = Field(default=None, validation_alias="sourceName")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator(
        "duration",
        "total_distance",
        "total_energy_burned",
        "flights_climbed",
        "swim_strokes",
        mode="before",
    )
    @classmethod
    def coerce_quantities(cls, v: Any) -> float | None:
        return coerce_quantity(v)

    @field_validator("start", "end", mode="before")
    @classmethod
    def normalize_timestamp(cls, v: Any) -> Any:
        return _normalize_timestamp(v)

    @field_validator("start", "end")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return _ensure_aware(v)

    @model_validator(mode="after")
    def derive_duration(self) -> "Workout":
        if self.duration is None:
            self.duration = max(0.0, (self.end - self.start).total_seconds())
        return self

    @property
    def type_key(self) -> str:
        """Stable activity key, e.g. ``running``."""
        return activity_key(self.activity_type)

    @property
    def type_name(self) -> str:
        """Display name, e.g. ``Running``."""
        return activity_name(self.activity_type)

    @property
    def elevation_ascended(self) -> float | None:
        """Elevation gained in meters from workout metadata, if recorded."""
        return coerce_quantity(self.metadata.get(ELEVATION_ASCENDED_KEY))


class ActivitySummary(BaseModel):
    """Daily activity ring summary."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date: date
    active_energy_burned: float | None = Field(
        default=None, validation_alias="activeEnergyBurned", description="Move in kcal"
    )
    active_energy_burned_goal: float | None = Field(
        default=None, validation_alias="activeEnergyBurnedGoal"
    )
    exercise_time: float | None = Field(
        default=None, validation_alias="exerciseTime", description="Exercise in minutes"
    )
    exercise_time_goal: float | None = Field(default=None, validation_alias="exerciseTimeGoal")
    stand_hours: float | None = Field(default=None, validation_alias="standHours")
    stand_hours_goal: float | None = Field(default=None, validation_alias="standHoursGoal")

    @field_validator(
        "active_energy_burned",
        "active_energy_burned_goal",
        "exercise_time",
        "exercise_time_goal",
        "stand_hours",
        "stand_hours_goal",
        mode="before",
    )
    @classmethod
    def coerce_quantities(cls, v: Any) -> float | None:
        return coerce_quantity(v)

    @field_validator("date", mode="before")
    @classmethod
    def normalize_day(cls, v: Any) -> Any:
        return _normalize_day(v)


class DistanceDayEntry(BaseModel):
    """Distance, step and stroke totals for a single day."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date: date
    walking_running: float | None = Field(default=None, validation_alias="walkingDistance")
    steps: float | None = None
    swimming: float | None = Field(default=None, validation_alias="swimmingDistance")
    strokes: float | None = None
    cycling: float | None = Field(default=None, validation_alias="cyclingDistance")
    wheelchair: float | None = Field(default=None, validation_alias="wheelchairDistance")
    downhill: float | None = Field(default=None, validation_alias="downhillDistance")

    @field_validator(
        "walking_running", "steps", "swimming", "strokes", "cycling", "wheelchair", "downhill",
        mode="before",
    )
    @classmethod
    def coerce_quantities(cls, v: Any) -> float | None:
        return coerce_quantity(v)

    @field_validator("date", mode="before")
    @classmethod
    def normalize_day(cls, v: Any) -> Any:
        return _normalize_day(v)


@dataclass(frozen=True)
class PauseInterval:
    """A half-open range ``[start, end)`` during which tracking was paused."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class Sample:
    """A single quantity measurement over ``[start, end)``."""

    start: datetime
    end: datetime
    quantity: float = 0.0
