"""Tests for pause-adjusted durations and distance splits."""

from datetime import UTC, datetime, timedelta

import pytest

from health_export.models import PauseInterval, Sample
from health_export.splits import adjusted_duration, build_splits, format_duration

T0 = datetime(2024, 5, 1, 7, 0, tzinfo=UTC)


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


PAUSE = [PauseInterval(start=at(10), end=at(20))]


class TestAdjustedDuration:
    """Tests for adjusted_duration."""

    def test_subtracts_pause_inside_window(self):
        sample = Sample(start=at(0), end=at(30), quantity=50)

        assert adjusted_duration(PAUSE, sample, at(0)) == pytest.approx(20)

    def test_zero_when_window_inside_pause(self):
        sample = Sample(start=at(12), end=at(18), quantity=50)

        assert adjusted_duration(PAUSE, sample, at(12)) == pytest.approx(0)

    def test_subtracts_tail_when_window_ends_during_pause(self):
        sample = Sample(start=at(0), end=at(15), quantity=50)

        assert adjusted_duration(PAUSE, sample, at(0)) == pytest.approx(10)

    def test_subtracts_head_when_window_starts_during_pause(self):
        sample = Sample(start=at(12), end=at(25), quantity=50)

        assert adjusted_duration(PAUSE, sample, at(12)) == pytest.approx(5)

    def test_window_starts_at_previous_boundary(self):
        # The sample itself starts at 40, but the window opens at 30.
        sample = Sample(start=at(40), end=at(50), quantity=50)

        assert adjusted_duration([], sample, at(30)) == pytest.approx(20)

    def test_never_negative(self):
        sample = Sample(start=at(0), end=at(5), quantity=50)

        assert adjusted_duration([], sample, at(10)) == 0.0

    def test_unsorted_pauses_each_subtract(self):
        pauses = [
            PauseInterval(start=at(50), end=at(70)),
            PauseInterval(start=at(-5), end=at(5)),
            PauseInterval(start=at(20), end=at(30)),
        ]
        sample = Sample(start=at(0), end=at(60), quantity=50)

        assert adjusted_duration(pauses, sample, at(0)) == pytest.approx(35)


def test_format_duration():
    assert format_duration(3661.789) == "01:01:01.789"
    assert format_duration(0) == "00:00:00.000"
    assert format_duration(59.9996) == "00:01:00.000"


class TestBuildSplits:
    """Tests for build_splits."""

    def test_full_and_partial_splits(self):
        samples = [
            Sample(start=at(i * 60), end=at((i + 1) * 60), quantity=250) for i in range(9)
        ]

        splits = build_splits(samples, [], split_distance=1000)

        assert [s.index for s in splits] == [1, 2, 3]
        assert [s.distance for s in splits] == [1000, 1000, 250]
        assert [s.duration for s in splits] == pytest.approx([240, 240, 60])
        assert splits[0].formatted_duration == "00:04:00.000"

    def test_pauses_reduce_split_duration(self):
        samples = [
            Sample(start=at(0), end=at(60), quantity=500),
            Sample(start=at(60), end=at(120), quantity=500),
        ]
        pauses = [PauseInterval(start=at(70), end=at(100))]

        splits = build_splits(samples, pauses, split_distance=1000)

        assert len(splits) == 1
        assert splits[0].duration == pytest.approx(90)

    def test_partial_split_can_be_omitted(self):
        samples = [Sample(start=at(0), end=at(60), quantity=400)]

        assert build_splits(samples, [], split_distance=1000, include_partial=False) == []

    def test_unsorted_samples_are_ordered(self):
        samples = [
            Sample(start=at(60), end=at(120), quantity=500),
            Sample(start=at(0), end=at(60), quantity=500),
        ]

        splits = build_splits(samples, [], split_distance=1000)

        assert splits[0].duration == pytest.approx(120)

    def test_empty_samples(self):
        assert build_splits([], []) == []

    def test_rejects_non_positive_split_distance(self):
        with pytest.raises(ValueError, match="split_distance must be positive"):
            build_splits([], [], split_distance=0)
