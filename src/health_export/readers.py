"""Record readers supplying raw health records for a date range."""

import asyncio
import json
from collections.abc import Callable
from datetime import UTC, date, datetime, time
from pathlib import Path
from typing import Any, Protocol, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from .distances import build_distance_days
from .models import ActivitySummary, DistanceDayEntry, Workout

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

WORKOUTS_FILE = "workouts.json"
ACTIVITY_FILE = "activity.json"
DISTANCES_FILE = "distances.json"


class RecordReader(Protocol):
    """Source of health records.

    Implementations return an empty list when data is missing or cannot be
    read; callers cannot tell "no data" from "read failed".
    """

    async def fetch_workouts(
        self, start: date | datetime | None, end: date | datetime | None
    ) -> list[Workout]: ...

    async def fetch_activity(self, start: date, end: date) -> list[ActivitySummary]: ...

    async def fetch_distances(self, start: date, end: date) -> list[DistanceDayEntry]: ...


def _as_datetime(value: date | datetime | None, end_of_day: bool = False) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    moment = datetime.combine(value, time.max if end_of_day else time.min)
    return moment.replace(tzinfo=UTC)


def _as_day(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


class JsonExportReader:
    """Reads records from JSON files in an export directory.

    Expected files:
        workouts.json: list of workouts, or ``{"data": [...]}``.
        activity.json: list of daily activity summaries.
        distances.json: list of day entries, or ``{"series": {metric: {day: qty}}}``
            with per-metric daily totals.
    """

    def __init__(
        self,
        data_dir: Path | str,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize the reader.

        Args:
            data_dir: Directory containing the JSON files.
            today: Returns the current day; decides which year counts as current.
        """
        self._data_dir = Path(data_dir)
        self._today = today

    async def _load(self, filename: str) -> Any:
        """Load a JSON file off the event loop; None when missing or unreadable."""
        path = self._data_dir / filename

        def read() -> Any:
            if not path.exists():
                logger.debug("export_file_missing", path=str(path))
                return None
            try:
                with open(path, encoding="utf-8") as f:
                    return json.load(f)
            except (OSError, ValueError) as e:
                logger.warning("export_file_unreadable", path=str(path), error=str(e))
                return None

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, read)

    @staticmethod
    def _items(data: Any, *keys: str) -> list[Any]:
        """Unwrap ``{"data": [...]}`` and ``{"data": {"workouts": [...]}}`` payloads."""
        if isinstance(data, dict):
            inner = data.get("data", data)
            if isinstance(inner, dict):
                for key in keys:
                    if isinstance(inner.get(key), list):
                        return inner[key]
                return []
            data = inner
        return data if isinstance(data, list) else []

    @staticmethod
    def _validate(model: type[M], items: list[Any], context: str) -> list[M]:
        records: list[M] = []
        for item in items:
            try:
                records.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    "record_invalid",
                    model=model.__name__,
                    context=context,
                    error_count=e.error_count(),
                    error=str(e).splitlines()[0],
                )
        return records

    async def fetch_workouts(
        self, start: date | datetime | None, end: date | datetime | None
    ) -> list[Workout]:
        """Workouts starting within ``[start, end]``; None bounds are open."""
        items = self._items(await self._load(WORKOUTS_FILE), "workouts")
        workouts = self._validate(Workout, items, "workouts")
        lower = _as_datetime(start)
        upper = _as_datetime(end, end_of_day=True)
        result = [
            w
            for w in workouts
            if (lower is None or w.start >= lower) and (upper is None or w.start <= upper)
        ]
        logger.debug("workouts_read", count=len(result), invalid=len(items) - len(workouts))
        return result

    async def fetch_activity(self, start: date, end: date) -> list[ActivitySummary]:
        """Activity summaries for days within ``[start, end]``."""
        items = self._items(await self._load(ACTIVITY_FILE), "activity", "summaries")
        summaries = self._validate(ActivitySummary, items, "activity")
        lower, upper = _as_day(start), _as_day(end)
        result = [s for s in summaries if lower <= s.date <= upper]
        logger.debug("activity_read", count=len(result))
        return result

    async def fetch_distances(self, start: date, end: date) -> list[DistanceDayEntry]:
        """Distance day entries for days within ``[start, end]``."""
        data = await self._load(DISTANCES_FILE)
        lower, upper = _as_day(start), _as_day(end)

        if isinstance(data, dict) and isinstance(data.get("series"), dict):
            series = {
                name: totals
                for name, totals in data["series"].items()
                if isinstance(totals, dict)
            }
            result = build_distance_days(series, lower, upper, self._today().year)
        else:
            entries = self._validate(DistanceDayEntry, self._items(data, "distances"), "distances")
            result = [e for e in entries if lower <= e.date <= upper]

        logger.debug("distances_read", count=len(result))
        return result
