"""Persisted sync markers and freshness decisions."""

import sqlite3
import threading
from collections.abc import Callable, Iterable
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import Any, Protocol

import structlog

from .models import RecordKind
from .types import SyncStatus

logger = structlog.get_logger(__name__)

LAST_WORKOUT = "lastWorkout"
LAST_ACTIVITY_SYNC_DATE = "lastActivitySyncDate"
LAST_SYNC_DATE = "lastSyncDate"
SETUP_FINISHED = "setupFinished"


class StateStore(Protocol):
    """Minimal persistent key/value store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStateStore:
    """In-process state store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value


class SQLiteStateStore:
    """State store backed by a single SQLite table.

    Each operation opens its own connection so the store can be shared
    between the CLI and a scheduled job without holding the file open.
    """

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path)
        self._lock = threading.Lock()
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        if not self._initialized:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._db_path)
        if not self._initialized:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS sync_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            conn.commit()
            self._initialized = True
        return conn

    def get(self, key: str) -> str | None:
        with self._lock:
            conn = self._connect()
            try:
                row = conn.execute("SELECT value FROM sync_state WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            conn = self._connect()
            try:
                with conn:
                    conn.execute(
                        "INSERT INTO sync_state (key, value) VALUES (?, ?) "
                        "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                        (key, value),
                    )
            finally:
                conn.close()
        logger.debug("sync_state_updated", key=key)


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _parse_day(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _record_value(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


class FreshnessTracker:
    """Decides whether new data justifies a sync and records what was synced.

    Workouts are tracked by the newest workout end time. Activity and
    distances share one marker: the last day that was exported. Marking
    activity or distances also records when the last sync completed;
    marking workouts does not.
    """

    def __init__(
        self,
        store: StateStore,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        """Initialize the tracker.

        Args:
            store: Persistent key/value store.
            clock: Returns the current time; its date defines "today".
        """
        self._store = store
        self._clock = clock

    @property
    def today(self) -> date:
        return self._clock().date()

    @property
    def yesterday(self) -> date:
        return self.today - timedelta(days=1)

    # -- Workouts --

    @staticmethod
    def newest_workout_end(workouts: Iterable[Any]) -> datetime | None:
        """Latest end time among ``workouts``; unreadable entries are ignored."""
        newest: datetime | None = None
        for workout in workouts:
            end = _record_value(workout, "end")
            if not isinstance(end, datetime):
                continue
            if end.tzinfo is None:
                end = end.replace(tzinfo=UTC)
            if newest is None or end > newest:
                newest = end
        return newest

    def is_workout_data_fresh(self, workouts: Iterable[Any]) -> bool:
        """True when ``workouts`` contain a workout newer than the stored marker.

        Always true when no marker has been stored yet.
        """
        stored = self._store.get(LAST_WORKOUT)
        if stored is None:
            return True
        newest = self.newest_workout_end(workouts)
        if newest is None:
            return False
        stored_end = _parse_timestamp(stored)
        if stored_end is None:
            return True
        return newest > stored_end

    def mark_last_workout(self, workouts: Iterable[Any]) -> None:
        """Store the newest workout end time of ``workouts`` as the marker."""
        newest = self.newest_workout_end(workouts)
        marker = newest.astimezone(UTC).isoformat() if newest else ""
        self._store.set(LAST_WORKOUT, marker)
        logger.info("workout_marker_updated", marker=marker)

    # -- Activity and distances --

    def is_activity_data_fresh(self) -> bool:
        """True unless activity has already been exported through yesterday."""
        stored = _parse_day(self._store.get(LAST_ACTIVITY_SYNC_DATE))
        if stored is None:
            return True
        return stored < self.yesterday

    def is_distance_data_fresh(self) -> bool:
        """Distances share the activity marker."""
        return self.is_activity_data_fresh()

    def mark_last_activity(self, summaries: Iterable[Any]) -> None:
        """Record the newest exported activity day and the sync time."""
        self._mark_last_day(summaries, RecordKind.ACTIVITY)

    def mark_last_distance(self, distances: Iterable[Any]) -> None:
        """Record the newest exported distance day and the sync time."""
        self._mark_last_day(distances, RecordKind.DISTANCES)

    def _mark_last_day(self, records: Iterable[Any], kind: RecordKind) -> None:
        days = [d for d in (_parse_day(_record_value(r, "date")) for r in records) if d]
        if not days:
            logger.debug("day_marker_unchanged", kind=kind.value)
            return
        self.mark_synced(kind, max(days))

    # -- Generic --

    def mark_synced(self, kind: RecordKind, marker: datetime | date | str) -> None:
        """Persist ``marker`` for ``kind``.

        Activity and distance markers also update the last-sync timestamp.
        """
        if kind is RecordKind.WORKOUTS:
            value = marker.astimezone(UTC).isoformat() if isinstance(marker, datetime) else str(marker)
            self._store.set(LAST_WORKOUT, value)
            logger.info("workout_marker_updated", marker=value)
            return

        day = _parse_day(marker)
        value = day.isoformat() if day else str(marker)
        self._store.set(LAST_ACTIVITY_SYNC_DATE, value)
        self._store.set(LAST_SYNC_DATE, self._clock().isoformat())
        logger.info("day_marker_updated", kind=kind.value, marker=value)

    def sync_window_start(self, kind: RecordKind, epoch: date) -> date:
        """First day of the earliest year that may hold unsynced data.

        Returns ``epoch`` when nothing has been synced for ``kind``.
        """
        if kind is RecordKind.WORKOUTS:
            stored = _parse_timestamp(self._store.get(LAST_WORKOUT))
            day = stored.date() if stored else None
        else:
            day = _parse_day(self._store.get(LAST_ACTIVITY_SYNC_DATE))
        if day is None:
            return epoch
        return max(epoch, date(day.year, 1, 1))

    def last_sync_date(self) -> datetime | None:
        """When the last activity or distance sync completed."""
        return _parse_timestamp(self._store.get(LAST_SYNC_DATE))

    def mark_setup_finished(self) -> None:
        self._store.set(SETUP_FINISHED, "1")

    def is_setup_finished(self) -> bool:
        return self._store.get(SETUP_FINISHED) == "1"

    def status(self) -> SyncStatus:
        """Snapshot of the persisted markers."""
        return {
            "setup_finished": self.is_setup_finished(),
            "last_workout": self._store.get(LAST_WORKOUT),
            "last_activity_sync_date": self._store.get(LAST_ACTIVITY_SYNC_DATE),
            "last_sync_date": self._store.get(LAST_SYNC_DATE),
        }
