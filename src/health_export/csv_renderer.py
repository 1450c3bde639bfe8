"""Canonical CSV rendering of one year of records.

Output must stay byte-identical for identical input: repositories already
hold years of exported history and consumers parse the headers, so the
column sets below are fixed.
"""

import csv
import io
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime
from typing import Any

from .models import ActivitySummary, DistanceDayEntry, RecordKind, Workout, coerce_quantity

WORKOUT_HEADER = (
    "uuid",
    "start_date",
    "end_date",
    "type",
    "name",
    "duration",
    "distance",
    "elevation_ascended",
    "flights_climbed",
    "swim_strokes",
    "total_energy_burned",
    "source_name",
)

ACTIVITY_HEADER = (
    "Date",
    "Active Energy Burned",
    "Active Energy Burned Goal",
    "Exercise Time",
    "Exercise Time Goal",
    "Stand Hours",
    "Stand Hours Goal",
)

DISTANCE_HEADER = (
    "Date",
    "Distance Walking/Running",
    "Steps",
    "Distance Swimming",
    "Strokes",
    "Distance Cycling",
    "Distance Wheelchair",
    "Elevation Descended",
)

HEADERS: dict[RecordKind, tuple[str, ...]] = {
    RecordKind.WORKOUTS: WORKOUT_HEADER,
    RecordKind.ACTIVITY: ACTIVITY_HEADER,
    RecordKind.DISTANCES: DISTANCE_HEADER,
}


def quantity_to_string(value: Any, integer: bool = False) -> str:
    """Format a quantity with two decimals, or as a whole number.

    Missing or non-numeric values render as ``0.00`` (``0`` for integers).
    Whole numbers are rounded, so ``1234.567`` becomes ``1235``.
    """
    number = coerce_quantity(value)
    if number is None:
        number = 0.0
    text = f"{number:.0f}" if integer else f"{number:.2f}"
    # Negative zero
    if text.startswith("-") and not text.strip("-0."):
        text = text[1:]
    return text


def format_timestamp(value: Any) -> str:
    """Render a datetime as ``YYYY-MM-DD HH:MM:SS +HH:MM``; anything else as empty."""
    if not isinstance(value, datetime):
        return ""
    offset = value.strftime("%z") or "+0000"
    return f"{value.strftime('%Y-%m-%d %H:%M:%S')} {offset[:3]}:{offset[3:5]}"


def format_day(value: Any) -> str:
    """Render a calendar day as ``YYYY-MM-DD``."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return value[:10]
    return ""


def _get(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _chronological(records: Sequence[Any], attr: str) -> list[Any]:
    """Stable ascending sort; records without a usable date keep their order at the end."""

    def key(record: Any) -> tuple[int, float, str]:
        value = _get(record, attr)
        if isinstance(value, datetime):
            return (0, value.timestamp(), "")
        day = format_day(value)
        return (0, 0.0, day) if day else (1, 0.0, "")

    return sorted(records, key=key)


def _write(header: tuple[str, ...], rows: list[list[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def _workout_row(workout: Workout) -> list[str]:
    elevation = workout.elevation_ascended
    return [
        workout.uuid,
        format_timestamp(workout.start),
        format_timestamp(workout.end),
        workout.type_key,
        workout.type_name,
        quantity_to_string(workout.duration),
        quantity_to_string(workout.total_distance),
        quantity_to_string(elevation) if elevation is not None else "0",
        quantity_to_string(workout.flights_climbed, integer=True),
        quantity_to_string(workout.swim_strokes, integer=True),
        quantity_to_string(workout.total_energy_burned),
        workout.source_name or "",
    ]


def _activity_row(summary: ActivitySummary | Mapping[str, Any]) -> list[str]:
    return [
        format_day(_get(summary, "date")),
        quantity_to_string(_get(summary, "active_energy_burned")),
        quantity_to_string(_get(summary, "active_energy_burned_goal")),
        quantity_to_string(_get(summary, "exercise_time"), integer=True),
        quantity_to_string(_get(summary, "exercise_time_goal"), integer=True),
        quantity_to_string(_get(summary, "stand_hours"), integer=True),
        quantity_to_string(_get(summary, "stand_hours_goal"), integer=True),
    ]


def _distance_row(entry: DistanceDayEntry | Mapping[str, Any]) -> list[str]:
    return [
        format_day(_get(entry, "date")),
        quantity_to_string(_get(entry, "walking_running")),
        quantity_to_string(_get(entry, "steps")),
        quantity_to_string(_get(entry, "swimming")),
        quantity_to_string(_get(entry, "strokes")),
        quantity_to_string(_get(entry, "cycling")),
        quantity_to_string(_get(entry, "wheelchair")),
        quantity_to_string(_get(entry, "downhill")),
    ]


def render_workouts(workouts: Sequence[Workout]) -> str:
    """Render workouts ordered by start time."""
    rows = [_workout_row(w) for w in _chronological(workouts, "start")]
    return _write(WORKOUT_HEADER, rows)


def render_activity(summaries: Sequence[ActivitySummary]) -> str:
    """Render activity summaries ordered by day."""
    rows = [_activity_row(s) for s in _chronological(summaries, "date")]
    return _write(ACTIVITY_HEADER, rows)


def render_distances(entries: Sequence[DistanceDayEntry]) -> str:
    """Render daily distance totals ordered by day."""
    rows = [_distance_row(e) for e in _chronological(entries, "date")]
    return _write(DISTANCE_HEADER, rows)


RENDERERS: dict[RecordKind, Callable[[Sequence[Any]], str]] = {
    RecordKind.WORKOUTS: render_workouts,
    RecordKind.ACTIVITY: render_activity,
    RecordKind.DISTANCES: render_distances,
}


def render_csv(kind: RecordKind, records: Sequence[Any]) -> str:
    """Render one year's records of ``kind`` as CSV text.

    Args:
        kind: Record kind, selects the header and row layout.
        records: Records belonging to a single year.

    Returns:
        CSV text with the header first and one ``\\n``-terminated line per record.
    """
    return RENDERERS[kind](records)
