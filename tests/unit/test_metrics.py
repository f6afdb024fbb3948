"""
Unit tests for timing series reduction.
"""

import math

import pytest

from pingperf.exceptions import ConfigurationError
from pingperf.metrics import CombinedSummary, SummaryStats, summarize


@pytest.mark.unit
class TestSummarize:
    """summarize() reports max, mean and population stddev"""

    def test_known_series(self):
        stats = summarize([1.0, 2.0, 3.0, 4.0, 5.0])

        assert stats.max == 5.0
        assert stats.mean == 3.0
        assert stats.stddev == pytest.approx(math.sqrt(2))
        assert stats.samples == 5

    def test_population_not_sample_stddev(self):
        # Sample stddev of [2, 4] would be sqrt(2); population is 1
        stats = summarize([2.0, 4.0])
        assert stats.stddev == pytest.approx(1.0)

    def test_identical_timings_have_zero_stddev(self):
        stats = summarize([2.5, 2.5, 2.5, 2.5])

        assert stats.stddev == 0.0
        assert stats.mean == 2.5
        assert stats.max == 2.5

    def test_single_sample(self):
        stats = summarize([7.25])

        assert stats == SummaryStats(max=7.25, mean=7.25, stddev=0.0, samples=1)

    def test_max_is_true_maximum_regardless_of_position(self):
        assert summarize([9.0, 1.0, 3.0]).max == 9.0
        assert summarize([1.0, 3.0, 9.0]).max == 9.0
        assert summarize([1.0, 9.0, 3.0]).max == 9.0

    def test_mean_matches_arithmetic_mean(self):
        timings = [0.31, 1.7, 12.04, 0.98, 3.3, 2.2]
        stats = summarize(timings)

        assert stats.mean == pytest.approx(sum(timings) / len(timings))
        assert stats.stddev >= 0

    def test_accepts_any_sequence(self):
        assert summarize((1.0, 3.0)).mean == 2.0

    def test_empty_series_rejected(self):
        with pytest.raises(ConfigurationError):
            summarize([])

    def test_returns_plain_floats(self):
        stats = summarize([1.0, 2.0])
        assert type(stats.max) is float
        assert type(stats.mean) is float
        assert type(stats.stddev) is float


@pytest.mark.unit
class TestSummaryFormatting:

    def test_describe(self):
        stats = SummaryStats(max=5.0, mean=3.0, stddev=1.41421, samples=5)
        assert stats.describe() == "max: 5.00 ms mean: 3.00 ms stddev: 1.41"

    def test_combined_to_json(self):
        combined = CombinedSummary(
            opens=SummaryStats(max=11.0, mean=10.0, stddev=0.5, samples=3),
            queries=SummaryStats(max=2.0, mean=2.0, stddev=0.0, samples=3),
        )

        data = combined.to_json()

        assert data["opens"] == {
            "max_ms": 11.0, "mean_ms": 10.0, "stddev_ms": 0.5, "samples": 3,
        }
        assert data["queries"]["mean_ms"] == 2.0
