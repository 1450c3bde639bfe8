"""Pause-adjusted durations and distance splits for workout samples."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from .models import PauseInterval, Sample


@dataclass(frozen=True)
class Split:
    """One completed (or trailing partial) split."""

    index: int
    distance: float
    duration: float

    @property
    def formatted_duration(self) -> str:
        return format_duration(self.duration)


def adjusted_duration(
    pauses: Iterable[PauseInterval],
    sample: Sample,
    last_boundary: datetime,
) -> float:
    """Active seconds in ``[last_boundary, sample.end)`` after removing pauses.

    The window is anchored at the end of the previously processed sample
    rather than at the sample's own start, so consecutive calls cover a
    stream without gaps. Each pause is checked on its own; unsorted pauses
    are fine as long as they do not overlap each other.

    Args:
        pauses: Pause intervals recorded for the workout.
        sample: Sample whose end closes the window.
        last_boundary: End of the previous sample (or workout start).

    Returns:
        Net duration in seconds, never negative.
    """
    window_start = last_boundary
    window_end = sample.end
    duration = (window_end - window_start).total_seconds()

    for pause in pauses:
        if pause.start <= window_start and pause.end >= window_end:
            return 0.0
        if pause.start <= window_start <= pause.end < window_end:
            duration -= (pause.end - window_start).total_seconds()
        elif window_start <= pause.start < window_end <= pause.end:
            duration -= (window_end - pause.start).total_seconds()
        elif window_start <= pause.start and pause.end < window_end:
            duration -= (pause.end - pause.start).total_seconds()

    return max(0.0, duration)


def format_duration(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS.mmm``; ``3661.789`` gives ``01:01:01.789``."""
    total_ms = max(0, round(seconds * 1000))
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, millis = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


def build_splits(
    samples: Sequence[Sample],
    pauses: Sequence[PauseInterval],
    split_distance: float = 1000.0,
    include_partial: bool = True,
) -> list[Split]:
    """Accumulate distance samples into fixed-distance splits.

    Samples are processed in start order; each window runs from the previous
    sample's end to the current sample's end and loses any paused time. A
    split closes whenever the running distance reaches the next multiple of
    ``split_distance``.

    Args:
        samples: Distance samples of one workout (quantity in meters).
        pauses: Pause intervals of the same workout.
        split_distance: Split length in meters.
        include_partial: Emit the remaining distance as a final short split.

    Returns:
        Splits in order; durations are in seconds.
    """
    if split_distance <= 0:
        raise ValueError(f"split_distance must be positive, got {split_distance}")

    ordered = sorted(samples, key=lambda s: s.start)
    if not ordered:
        return []

    splits: list[Split] = []
    last_boundary = ordered[0].start
    distance = 0.0
    elapsed = 0.0
    split_start_distance = 0.0
    split_start_elapsed = 0.0

    for sample in ordered:
        elapsed += adjusted_duration(pauses, sample, last_boundary)
        distance += sample.quantity
        last_boundary = max(last_boundary, sample.end)

        while distance >= split_start_distance + split_distance:
            splits.append(
                Split(
                    index=len(splits) + 1,
                    distance=split_distance,
                    duration=elapsed - split_start_elapsed,
                )
            )
            split_start_distance += split_distance
            split_start_elapsed = elapsed

    remaining = distance - split_start_distance
    if include_partial and remaining > 0:
        splits.append(
            Split(
                index=len(splits) + 1,
                distance=remaining,
                duration=elapsed - split_start_elapsed,
            )
        )
    return splits
