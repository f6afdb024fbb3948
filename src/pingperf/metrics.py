"""
Summary statistics for timing series.

Only first and second moments are reported: max, mean and the population
standard deviation. Samples are never filtered, including those whose
query returned an unexpected value.
"""

from dataclasses import dataclass
from typing import Dict, Sequence

import numpy as np

from pingperf.exceptions import ConfigurationError


@dataclass(frozen=True)
class SummaryStats:
    """Reduced view of one timing series (milliseconds)"""
    max: float
    mean: float
    stddev: float
    samples: int

    def to_json(self) -> Dict:
        return {
            "max_ms": self.max,
            "mean_ms": self.mean,
            "stddev_ms": self.stddev,
            "samples": self.samples,
        }

    def describe(self) -> str:
        return f"max: {self.max:.02f} ms mean: {self.mean:.02f} ms stddev: {self.stddev:.02f}"


@dataclass(frozen=True)
class CombinedSummary:
    """Cold-mode result: open and query phases reduced separately"""
    opens: SummaryStats
    queries: SummaryStats

    def to_json(self) -> Dict:
        return {
            "opens": self.opens.to_json(),
            "queries": self.queries.to_json(),
        }


def summarize(timings: Sequence[float]) -> SummaryStats:
    """
    Reduce a timing series to max/mean/stddev.

    Args:
        timings: Per-trial timings in milliseconds, in trial order

    Returns:
        SummaryStats over every sample

    Raises:
        ConfigurationError: If the series is empty

    Example:
        >>> stats = summarize([1.0, 2.0, 3.0, 4.0, 5.0])
        >>> stats.mean, stats.max
        (3.0, 5.0)
        >>> round(stats.stddev, 3)
        1.414
    """
    if len(timings) == 0:
        raise ConfigurationError("Cannot summarize an empty timing series")

    values = np.asarray(timings, dtype=float)
    mean = float(values.mean())

    # Second pass over the collected series; population, not sample, variance
    variance = float(np.sum((values - mean) ** 2) / len(values))

    return SummaryStats(
        max=float(values.max()),
        mean=mean,
        stddev=float(np.sqrt(variance)),
        samples=len(values),
    )
