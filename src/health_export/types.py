"""Shared type aliases and typed dictionaries."""

from typing import TypeAlias, TypedDict

# Per-metric daily totals keyed by "YYYY-MM-DD"
DailyTotals: TypeAlias = dict[str, float]


class SyncStatus(TypedDict):
    """Persisted sync state snapshot used by the status command."""

    setup_finished: bool
    last_workout: str | None
    last_activity_sync_date: str | None
    last_sync_date: str | None


class StageSummary(TypedDict):
    """Serialisable summary of a single export stage."""

    kind: str
    written: list[str]
    failed: list[str]
    skipped_records: int
    stopped: bool
