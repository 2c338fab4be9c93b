"""
Pairwise store comparison.

The winner is the store with the strictly lower median (the median is more
stable than the mean under the occasional penalized iteration). The ratio is
always slower/faster, so it reads as "N times slower" and is never below 1.
"""

import math
from dataclasses import asdict, dataclass
from typing import Any

import structlog

from storebench.benchmark.statistics import LatencyStats
from storebench.core.exceptions import InvalidComparisonInputError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Comparison:
    """Verdict between two stores."""

    winner: str
    loser: str
    mean_diff_ms: float
    median_diff_ms: float
    median_ratio: float
    percentage_diff: float
    tie: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key in ("mean_diff_ms", "median_diff_ms", "median_ratio", "percentage_diff"):
            if math.isfinite(data[key]):
                data[key] = round(data[key], 4)
        return data


def _validate(store: str, stats: LatencyStats | None) -> LatencyStats:
    if stats is None:
        raise InvalidComparisonInputError(f"Missing statistics for '{store}'")
    if stats.count <= 0:
        raise InvalidComparisonInputError(f"Statistics for '{store}' contain no samples")
    for field_name in ("mean_ms", "median_ms"):
        value = getattr(stats, field_name, None)
        if value is None or not math.isfinite(value):
            raise InvalidComparisonInputError(f"Statistics for '{store}' have an invalid {field_name}")
    return stats


class ComparisonEngine:
    """
    Compares exactly two stores.

    Equal medians go to ``tie_breaker`` when it is one of the two stores,
    otherwise to the lexicographically smaller store id; argument order never
    decides the winner.
    """

    def __init__(self, tie_breaker: str = "mongodb"):
        self.tie_breaker = tie_breaker

    def _break_tie(self, a_store: str, b_store: str) -> str:
        if self.tie_breaker in (a_store, b_store):
            return self.tie_breaker
        return min(a_store, b_store)

    def compare(
        self,
        a_store: str,
        a_stats: LatencyStats | None,
        b_store: str,
        b_stats: LatencyStats | None,
    ) -> Comparison:
        """
        Compare two stores' statistics.

        Raises:
            InvalidComparisonInputError: if either side is missing or degenerate
        """
        if a_store == b_store:
            raise InvalidComparisonInputError(f"Cannot compare '{a_store}' with itself")
        a = _validate(a_store, a_stats)
        b = _validate(b_store, b_stats)

        tie = a.median_ms == b.median_ms
        if tie:
            winner = self._break_tie(a_store, b_store)
        else:
            winner = a_store if a.median_ms < b.median_ms else b_store

        loser = b_store if winner == a_store else a_store
        win, lose = (a, b) if winner == a_store else (b, a)

        if lose.median_ms == 0:
            percentage_diff = 0.0
        else:
            percentage_diff = (lose.median_ms - win.median_ms) / lose.median_ms * 100

        if win.median_ms == 0:
            median_ratio = 1.0 if lose.median_ms == 0 else math.inf
        else:
            median_ratio = lose.median_ms / win.median_ms

        comparison = Comparison(
            winner=winner,
            loser=loser,
            mean_diff_ms=lose.mean_ms - win.mean_ms,
            median_diff_ms=lose.median_ms - win.median_ms,
            median_ratio=median_ratio,
            percentage_diff=percentage_diff,
            tie=tie,
        )

        logger.debug(
            "Compared stores",
            winner=winner,
            loser=loser,
            median_ratio=median_ratio,
            percentage_diff=round(percentage_diff, 2),
        )
        return comparison
