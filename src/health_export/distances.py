"""Day-by-day distance entries from per-metric daily totals."""

from collections.abc import Mapping
from datetime import date, timedelta

import structlog

from .models import DistanceDayEntry, coerce_quantity
from .types import DailyTotals

logger = structlog.get_logger(__name__)

DISTANCE_METRICS = (
    "walking_running",
    "steps",
    "swimming",
    "strokes",
    "cycling",
    "wheelchair",
    "downhill",
)

# Health Auto Export metric names -> entry field
METRIC_ALIASES = {
    "walking_running_distance": "walking_running",
    "distance_walking_running": "walking_running",
    "step_count": "steps",
    "swimming_distance": "swimming",
    "distance_swimming": "swimming",
    "swimming_stroke_count": "strokes",
    "cycling_distance": "cycling",
    "distance_cycling": "cycling",
    "wheelchair_distance": "wheelchair",
    "distance_wheelchair": "wheelchair",
    "downhill_snow_sports_distance": "downhill",
    "distance_downhill_snow_sports": "downhill",
}


def normalize_series(series: Mapping[str, DailyTotals]) -> dict[str, DailyTotals]:
    """Map metric names onto entry fields, dropping unknown metrics."""
    normalized: dict[str, DailyTotals] = {}
    for name, totals in series.items():
        field = METRIC_ALIASES.get(name.lower(), name.lower())
        if field not in DISTANCE_METRICS:
            logger.debug("distance_metric_ignored", metric=name)
            continue
        daily = normalized.setdefault(field, {})
        for day, raw in totals.items():
            value = coerce_quantity(raw)
            if value is not None:
                daily[day] = value
    return normalized


def build_distance_days(
    series: Mapping[str, DailyTotals],
    start: date,
    end: date,
    current_year: int,
) -> list[DistanceDayEntry]:
    """Build one entry per day in ``[start, end]``.

    Days of past years before the first day with a non-zero step count are
    left out, so the history starts when the user started carrying a device.
    Days of ``current_year`` are always included.

    Args:
        series: Daily totals per metric, keyed by ``YYYY-MM-DD``.
        start: First day to consider.
        end: Last day to consider (inclusive).
        current_year: Year whose days are kept even without steps.

    Returns:
        Entries in ascending date order.
    """
    totals = normalize_series(series)
    steps = totals.get("steps", {})

    entries: list[DistanceDayEntry] = []
    started = False
    day = start
    while day <= end:
        key = day.isoformat()
        if not started and (day.year >= current_year or (steps.get(key) or 0) > 0):
            started = True
        if started:
            values = {metric: totals[metric].get(key) for metric in totals}
            entries.append(DistanceDayEntry(date=day, **values))
        day += timedelta(days=1)

    return entries
