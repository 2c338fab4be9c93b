"""
Latency Statistics.

Reduces a series of iteration durations to descriptive statistics.

Standard deviation is the population form (divide by N): the samples are the
full set of observed iterations, not an estimate of a larger population.
Percentiles use the nearest-rank method. Below ``RELIABLE_PERCENTILE_SAMPLES``
samples p95/p99 collapse onto the maximum; such results are flagged with
``percentiles_reliable=False``.
"""

import math
import statistics
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any

import structlog

from storebench.core.exceptions import EmptyInputError

logger = structlog.get_logger(__name__)

RELIABLE_PERCENTILE_SAMPLES = 20


@dataclass(frozen=True)
class LatencyStats:
    """Latency statistics over one store's duration series."""

    count: int
    min_ms: float
    max_ms: float
    mean_ms: float
    median_ms: float
    std_dev_ms: float
    p95_ms: float
    p99_ms: float
    coefficient_of_variation: float = 0.0
    percentiles_reliable: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        return {
            key: round(value, 2) if isinstance(value, float) and math.isfinite(value) else value
            for key, value in data.items()
        }


class StatisticsCollector:
    """Pure functions turning duration samples into ``LatencyStats``."""

    @staticmethod
    def percentile(sorted_samples: Sequence[float], p: float) -> float:
        """
        Nearest-rank percentile of an ascending sequence.

        Args:
            sorted_samples: Samples sorted ascending, non-empty
            p: Percentile in [0, 100]

        Returns:
            ``sorted_samples[ceil(p/100 * N) - 1]`` with the index clamped to the sequence
        """
        if not sorted_samples:
            raise EmptyInputError()
        n = len(sorted_samples)
        index = math.ceil(p / 100 * n) - 1
        index = min(max(index, 0), n - 1)
        return sorted_samples[index]

    @classmethod
    def summarize(cls, durations_ms: Sequence[float]) -> LatencyStats:
        """
        Calculate statistics from latency samples.

        Raises:
            EmptyInputError: if ``durations_ms`` is empty
        """
        if not durations_ms:
            raise EmptyInputError()

        sorted_samples = sorted(float(d) for d in durations_ms)
        n = len(sorted_samples)
        mean = statistics.mean(sorted_samples)
        std_dev = statistics.pstdev(sorted_samples)

        reliable = n >= RELIABLE_PERCENTILE_SAMPLES
        if not reliable:
            logger.debug(
                "Too few samples for meaningful tail percentiles",
                samples=n,
                required=RELIABLE_PERCENTILE_SAMPLES,
            )

        return LatencyStats(
            count=n,
            min_ms=sorted_samples[0],
            max_ms=sorted_samples[-1],
            mean_ms=mean,
            median_ms=statistics.median(sorted_samples),
            std_dev_ms=std_dev,
            p95_ms=cls.percentile(sorted_samples, 95),
            p99_ms=cls.percentile(sorted_samples, 99),
            coefficient_of_variation=std_dev / mean if mean > 0 else 0.0,
            percentiles_reliable=reliable,
        )
