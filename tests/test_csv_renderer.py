"""Tests for yearly CSV rendering."""

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from health_export.csv_renderer import (
    ACTIVITY_HEADER,
    DISTANCE_HEADER,
    WORKOUT_HEADER,
    format_timestamp,
    quantity_to_string,
    render_activity,
    render_csv,
    render_distances,
    render_workouts,
)
from health_export.models import ActivitySummary, DistanceDayEntry, RecordKind, Workout


class TestQuantityToString:
    """Tests for quantity_to_string."""

    def test_two_decimals(self):
        assert quantity_to_string(1234.567) == "1234.57"

    def test_integer_rounds(self):
        assert quantity_to_string(1234.567, integer=True) == "1235"

    def test_missing_value_defaults_to_zero(self):
        assert quantity_to_string(None) == "0.00"
        assert quantity_to_string(None, integer=True) == "0"

    def test_non_numeric_defaults_to_zero(self):
        assert quantity_to_string("n/a") == "0.00"
        assert quantity_to_string(float("nan")) == "0.00"

    def test_negative_zero_is_unsigned(self):
        assert quantity_to_string(-0.001) == "0.00"
        assert quantity_to_string(-0.4, integer=True) == "0"

    def test_quantity_mapping(self):
        assert quantity_to_string({"qty": 12.5, "units": "km"}) == "12.50"


def test_format_timestamp_includes_offset():
    tz = timezone(timedelta(hours=4))
    assert format_timestamp(datetime(2022, 6, 12, 23, 59, tzinfo=tz)) == "2022-06-12 23:59:00 +04:00"
    assert format_timestamp(datetime(2022, 1, 1, tzinfo=UTC)) == "2022-01-01 00:00:00 +00:00"
    assert format_timestamp(None) == ""


class TestRenderDistances:
    """Tests for the distances layout."""

    def test_header_is_exact(self):
        assert render_distances([]) == (
            "Date,Distance Walking/Running,Steps,Distance Swimming,Strokes,"
            "Distance Cycling,Distance Wheelchair,Elevation Descended\n"
        )
        assert len(DISTANCE_HEADER) == 8

    def test_row_renders_all_values_with_two_decimals(self):
        entry = DistanceDayEntry(
            date=date(2026, 1, 1),
            walking_running=10,
            steps=20,
            swimming=30,
            strokes=40,
            cycling=50,
            wheelchair=60,
            downhill=70,
        )

        lines = render_distances([entry]).splitlines()

        assert lines[1] == "2026-01-01,10.00,20.00,30.00,40.00,50.00,60.00,70.00"

    def test_missing_values_render_as_zero(self):
        lines = render_distances([{"date": "2026-01-02"}]).splitlines()

        assert lines[1] == "2026-01-02,0.00,0.00,0.00,0.00,0.00,0.00,0.00"

    def test_rows_are_ordered_by_day(self):
        entries = [
            DistanceDayEntry(date=date(2026, 1, 3)),
            DistanceDayEntry(date=date(2026, 1, 1)),
            DistanceDayEntry(date=date(2026, 1, 2)),
        ]

        days = [line.split(",")[0] for line in render_distances(entries).splitlines()[1:]]

        assert days == ["2026-01-01", "2026-01-02", "2026-01-03"]


class TestRenderWorkouts:
    """Tests for the workouts layout."""

    def test_header(self):
        assert render_workouts([]).splitlines() == [",".join(WORKOUT_HEADER)]

    def test_row_with_elevation(self, sample_workout_data):
        workout = Workout.model_validate(sample_workout_data)

        row = render_workouts([workout]).splitlines()[1]

        assert row == (
            "A1B2C3,2024-01-15 07:00:00 +00:00,2024-01-15 07:45:00 +00:00,"
            "running,Running,2700.00,5200.00,25.00,3,0,350.40,Apple Watch"
        )

    def test_row_without_elevation(self, sample_workout_data):
        sample_workout_data["metadata"] = {}
        workout = Workout.model_validate(sample_workout_data)

        row = render_workouts([workout]).splitlines()[1]

        assert ",5200.00,0,3,0," in row

    def test_ordered_by_start_time(self):
        base = datetime(2024, 1, 1, tzinfo=UTC)
        workouts = [
            Workout(uuid="late", start=base + timedelta(days=2), end=base + timedelta(days=2)),
            Workout(uuid="early", start=base, end=base),
        ]

        uuids = [line.split(",")[0] for line in render_workouts(workouts).splitlines()[1:]]

        assert uuids == ["early", "late"]


class TestRenderActivity:
    """Tests for the activity layout."""

    def test_row(self, sample_activity_data):
        summary = ActivitySummary.model_validate(sample_activity_data)

        lines = render_activity([summary]).splitlines()

        assert lines[0] == ",".join(ACTIVITY_HEADER)
        assert lines[1] == "2024-01-15,512.35,500.00,35,30,11,12"


@pytest.mark.parametrize("kind", list(RecordKind))
def test_render_csv_is_deterministic(kind, sample_workout_data, sample_activity_data):
    records = {
        RecordKind.WORKOUTS: [Workout.model_validate(sample_workout_data)],
        RecordKind.ACTIVITY: [ActivitySummary.model_validate(sample_activity_data)],
        RecordKind.DISTANCES: [DistanceDayEntry(date=date(2024, 1, 15), steps=9500)],
    }[kind]

    first = render_csv(kind, records)
    second = render_csv(kind, list(records))

    assert first == second
    assert first.endswith("\n")
    assert "\r" not in first
