"""Grouping of health records into calendar-year buckets."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

MIN_YEAR = 1000
MAX_YEAR = 9999

# Errors a year extractor may raise on malformed records
_EXTRACTION_ERRORS = (ValueError, TypeError, AttributeError, KeyError, IndexError)


@dataclass
class Partition(Generic[T]):
    """Records grouped by year plus the number of records that were excluded."""

    buckets: dict[int, list[T]] = field(default_factory=dict)
    skipped: int = 0

    def years(self) -> list[int]:
        """Years in ascending numeric order."""
        return sorted(self.buckets)

    def items(self) -> list[tuple[int, list[T]]]:
        """``(year, records)`` pairs in ascending year order."""
        return [(year, self.buckets[year]) for year in self.years()]

    def since(self, first_year: int) -> "Partition[T]":
        """Return a partition restricted to years at or after ``first_year``."""
        return Partition(
            buckets={y: records for y, records in self.buckets.items() if y >= first_year},
            skipped=self.skipped,
        )

    @property
    def record_count(self) -> int:
        return sum(len(records) for records in self.buckets.values())

    def __len__(self) -> int:
        return len(self.buckets)


def partition_by_year(
    records: Iterable[T],
    year_of: Callable[[T], int | None],
) -> Partition[T]:
    """Group records by the year ``year_of`` extracts from each one.

    Relative order inside each year is preserved. Records whose year cannot be
    determined are excluded and counted in ``Partition.skipped``; they never
    affect any other bucket.

    Args:
        records: Records of a single kind.
        year_of: Extracts the calendar year of a record.

    Returns:
        Partition with one bucket per year.
    """
    partition: Partition[T] = Partition()
    for record in records:
        try:
            year = year_of(record)
        except _EXTRACTION_ERRORS as e:
            logger.debug("record_year_unreadable", error=str(e), error_type=type(e).__name__)
            year = None

        if not isinstance(year, int) or isinstance(year, bool) or not MIN_YEAR <= year <= MAX_YEAR:
            partition.skipped += 1
            continue

        partition.buckets.setdefault(year, []).append(record)

    if partition.skipped:
        logger.warning(
            "records_skipped",
            skipped=partition.skipped,
            kept=partition.record_count,
        )
    return partition


def _year_from_value(value: object) -> int | None:
    if isinstance(value, datetime | date):
        return value.year
    if isinstance(value, str):
        text = value.strip()
        if len(text) >= 4 and text[:4].isdigit() and (len(text) == 4 or text[4] == "-"):
            return int(text[:4])
    return None


def workout_year(workout) -> int | None:
    """Year of a workout's start time."""
    return _year_from_value(workout.start)


def activity_year(summary) -> int | None:
    """Year of an activity summary's date."""
    return _year_from_value(summary.date)


def distance_year(entry) -> int | None:
    """Year of a distance entry; also accepts raw ``{"date": "YYYY-MM-DD"}`` mappings."""
    if isinstance(entry, dict):
        return _year_from_value(entry["date"])
    return _year_from_value(entry.date)
