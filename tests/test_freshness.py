"""Tests for sync markers and freshness decisions."""

from datetime import UTC, date, datetime
from pathlib import Path

import pytest

from health_export.freshness import (
    LAST_ACTIVITY_SYNC_DATE,
    LAST_SYNC_DATE,
    LAST_WORKOUT,
    SETUP_FINISHED,
    FreshnessTracker,
    MemoryStateStore,
    SQLiteStateStore,
)
from health_export.models import ActivitySummary, RecordKind, Workout


def _workout(end: datetime) -> Workout:
    return Workout(start=end, end=end)


@pytest.fixture
def store():
    return MemoryStateStore()


@pytest.fixture
def tracker(store, clock):
    return FreshnessTracker(store, clock=clock)


class TestWorkoutFreshness:
    """Tests for the workout marker."""

    def test_fresh_when_nothing_stored(self, tracker):
        assert tracker.is_workout_data_fresh([]) is True

    def test_newer_workout_is_fresh(self, tracker):
        tracker.mark_last_workout([_workout(datetime(2024, 1, 1, tzinfo=UTC))])

        assert tracker.is_workout_data_fresh([_workout(datetime(2024, 1, 2, tzinfo=UTC))])

    def test_same_workout_is_not_fresh(self, tracker):
        workouts = [_workout(datetime(2024, 1, 1, 8, tzinfo=UTC))]
        tracker.mark_last_workout(workouts)

        assert tracker.is_workout_data_fresh(workouts) is False

    def test_no_workouts_is_not_fresh_once_marked(self, tracker):
        tracker.mark_last_workout([_workout(datetime(2024, 1, 1, tzinfo=UTC))])

        assert tracker.is_workout_data_fresh([]) is False

    def test_mark_uses_newest_end(self, tracker, store):
        tracker.mark_last_workout(
            [
                _workout(datetime(2024, 3, 1, tzinfo=UTC)),
                _workout(datetime(2024, 5, 1, tzinfo=UTC)),
                _workout(datetime(2024, 4, 1, tzinfo=UTC)),
            ]
        )

        assert store.get(LAST_WORKOUT) == "2024-05-01T00:00:00+00:00"

    def test_mark_last_workout_leaves_last_sync_date(self, tracker, store):
        tracker.mark_last_workout([_workout(datetime(2024, 1, 1, tzinfo=UTC))])

        assert store.get(LAST_SYNC_DATE) is None

    def test_empty_marker_for_empty_set(self, tracker, store):
        tracker.mark_last_workout([])

        assert store.get(LAST_WORKOUT) == ""
        assert tracker.is_workout_data_fresh([_workout(datetime(2024, 1, 1, tzinfo=UTC))])


class TestActivityFreshness:
    """Tests for the shared activity and distance marker."""

    def test_fresh_when_nothing_stored(self, tracker):
        assert tracker.is_activity_data_fresh() is True
        assert tracker.is_distance_data_fresh() is True

    def test_stale_date_is_fresh(self, store, clock):
        store.set(LAST_ACTIVITY_SYNC_DATE, "2026-03-10")

        assert FreshnessTracker(store, clock=clock).is_activity_data_fresh() is True

    def test_yesterday_is_not_fresh(self, store, clock):
        store.set(LAST_ACTIVITY_SYNC_DATE, "2026-03-14")

        assert FreshnessTracker(store, clock=clock).is_activity_data_fresh() is False

    def test_far_future_marker_is_not_fresh(self, store, clock):
        store.set(LAST_ACTIVITY_SYNC_DATE, "9999-12-31")

        assert FreshnessTracker(store, clock=clock).is_distance_data_fresh() is False

    def test_mark_last_activity_stores_newest_day_and_sync_time(self, tracker, store, fixed_now):
        tracker.mark_last_activity(
            [ActivitySummary(date=date(2026, 3, 13)), ActivitySummary(date=date(2026, 3, 14))]
        )

        assert store.get(LAST_ACTIVITY_SYNC_DATE) == "2026-03-14"
        assert store.get(LAST_SYNC_DATE) == fixed_now.isoformat()
        assert tracker.last_sync_date() == fixed_now

    def test_mark_last_distance_accepts_mappings(self, tracker, store):
        tracker.mark_last_distance([{"date": "2026-03-15"}, {"date": "2026-03-01"}])

        assert store.get(LAST_ACTIVITY_SYNC_DATE) == "2026-03-15"
        assert tracker.is_activity_data_fresh() is False

    def test_mark_with_no_days_keeps_marker(self, tracker, store):
        store.set(LAST_ACTIVITY_SYNC_DATE, "2026-01-01")

        tracker.mark_last_activity([])

        assert store.get(LAST_ACTIVITY_SYNC_DATE) == "2026-01-01"
        assert store.get(LAST_SYNC_DATE) is None


class TestSyncWindow:
    """Tests for sync_window_start."""

    def test_epoch_when_nothing_synced(self, tracker):
        assert tracker.sync_window_start(RecordKind.ACTIVITY, date(2014, 1, 1)) == date(2014, 1, 1)

    def test_start_of_marker_year(self, tracker):
        tracker.mark_synced(RecordKind.DISTANCES, date(2025, 7, 4))

        assert tracker.sync_window_start(RecordKind.DISTANCES, date(2014, 1, 1)) == date(
            2025, 1, 1
        )

    def test_workout_marker_year(self, tracker):
        tracker.mark_synced(RecordKind.WORKOUTS, datetime(2023, 12, 31, 22, tzinfo=UTC))

        assert tracker.sync_window_start(RecordKind.WORKOUTS, date(1000, 1, 1)) == date(
            2023, 1, 1
        )


def test_setup_finished_flag(tracker, store):
    assert tracker.is_setup_finished() is False

    tracker.mark_setup_finished()

    assert tracker.is_setup_finished() is True
    assert store.get(SETUP_FINISHED) == "1"
    assert tracker.status()["setup_finished"] is True


class TestSQLiteStateStore:
    """Tests for the SQLite-backed store."""

    def test_creates_database_and_parent_directory(self, tmp_path: Path):
        db_path = tmp_path / "state" / "sync_state.db"
        store = SQLiteStateStore(db_path)

        store.set("lastWorkout", "2024-01-01T00:00:00+00:00")

        assert db_path.exists()
        assert store.get("lastWorkout") == "2024-01-01T00:00:00+00:00"

    def test_values_survive_new_instance(self, tmp_path: Path):
        db_path = tmp_path / "sync_state.db"
        SQLiteStateStore(db_path).set(SETUP_FINISHED, "1")

        tracker = FreshnessTracker(SQLiteStateStore(db_path))

        assert tracker.is_setup_finished() is True

    def test_set_overwrites(self, tmp_path: Path):
        store = SQLiteStateStore(tmp_path / "sync_state.db")

        store.set("key", "a")
        store.set("key", "b")

        assert store.get("key") == "b"
        assert store.get("other") is None
