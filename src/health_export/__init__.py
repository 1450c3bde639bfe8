"""Apple Health yearly CSV export.

Exports workouts, daily activity summaries and daily distance totals into
yearly CSV files kept in a private GitHub repository, rewriting only the
years that received new data since the previous sync.

Modules:
    config: Configuration management using pydantic-settings
    models: Workout, activity and distance record models
    readers: Record readers for Health Auto Export JSON files
    partition: Grouping of records into calendar-year buckets
    csv_renderer: Canonical CSV rendering per record kind
    distances: Daily distance entries from per-metric totals
    splits: Pause-adjusted split durations for workout samples
    freshness: Persisted sync markers and freshness decisions
    github: GitHub contents API client with optimistic concurrency
    exporter: Export orchestration across all record kinds
    cli: Command line entry point

Example:
    Run the first-time export::

        $ uv run health-export setup --data-dir ./export

    Refresh the repository with new data::

        $ uv run health-export sync --data-dir ./export
"""

__version__ = "0.1.0"

from .config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
