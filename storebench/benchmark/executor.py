"""
Timed Executor.

Runs a workload once untimed (warm-up), then ``iterations`` times under a
monotonic clock. Iterations run strictly one after another; the next one
starts only after the previous duration has been recorded.

A failing iteration does not abort the run. It is recorded with a penalty
duration (``penalty_multiplier`` x the largest duration recorded so far, or
``fallback_penalty_ms`` when nothing has been recorded yet) so instability
shows up in the statistics instead of being silently excluded.
"""

import inspect
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from storebench.core.exceptions import IterationFailure

logger = structlog.get_logger(__name__)

Workload = Callable[[], Awaitable[Any] | Any]


@dataclass(frozen=True)
class ExecutorConfig:
    """Configuration for timed execution."""

    penalty_multiplier: float = 2.0
    fallback_penalty_ms: float = 10000.0
    warmup: bool = True

    # Only the first failures are kept verbatim on the TimedRun
    max_recorded_errors: int = 10

    # Log every iteration duration
    verbose: bool = False


@dataclass(frozen=True)
class TimedRun:
    """Durations of one workload against one store."""

    function_label: str
    iterations: int
    durations_ms: tuple[float, ...]
    failure_count: int = 0
    errors: tuple[str, ...] = field(default_factory=tuple)

    @property
    def successful_iterations(self) -> int:
        return self.iterations - self.failure_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "function_label": self.function_label,
            "iterations": self.iterations,
            "successful_iterations": self.successful_iterations,
            "failure_count": self.failure_count,
            "durations_ms": [round(d, 3) for d in self.durations_ms],
            "errors": list(self.errors),
        }


def _label_of(workload: Workload) -> str:
    return getattr(workload, "__qualname__", None) or getattr(workload, "__name__", None) or repr(workload)


class TimedExecutor:
    """
    Times repeated invocations of a workload.

    Features:
    - Untimed warm-up invocation
    - Sync or async workloads (awaited inside the timed section)
    - Penalized, counted failures
    - Progress callback
    """

    def __init__(self, config: ExecutorConfig | None = None):
        self.config = config or ExecutorConfig()

    def penalty_for(self, durations_ms: list[float]) -> float:
        """Duration recorded for a failed iteration given the durations so far."""
        if not durations_ms:
            return self.config.fallback_penalty_ms
        return max(durations_ms) * self.config.penalty_multiplier

    @staticmethod
    async def _invoke(workload: Workload) -> Any:
        outcome = workload()
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return outcome

    async def run(
        self,
        workload: Workload,
        iterations: int,
        label: str | None = None,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> TimedRun:
        """
        Run ``workload`` ``iterations`` times and collect durations.

        Args:
            workload: Zero-argument callable, sync or async
            iterations: Number of timed invocations (>= 1)
            label: Name recorded on the result (defaults to the callable's name)
            progress_callback: Optional callback receiving (completed, total)

        Returns:
            TimedRun with exactly ``iterations`` durations
        """
        if iterations < 1:
            raise ValueError(f"iterations must be >= 1, got {iterations}")

        label = label or _label_of(workload)
        logger.info("Running workload", workload=label, iterations=iterations)

        if self.config.warmup:
            try:
                await self._invoke(workload)
            except Exception as e:
                logger.warning("Warm-up iteration failed", workload=label, error=str(e))

        durations: list[float] = []
        errors: list[str] = []
        failures = 0

        for i in range(iterations):
            try:
                start = time.perf_counter()
                await self._invoke(workload)
                duration_ms = (time.perf_counter() - start) * 1000
                durations.append(duration_ms)

                if self.config.verbose:
                    logger.info(
                        "Iteration completed",
                        workload=label,
                        iteration=i + 1,
                        duration_ms=round(duration_ms, 2),
                    )

            except Exception as e:
                failure = IterationFailure(i + 1, e)
                penalty = self.penalty_for(durations)
                durations.append(penalty)
                failures += 1
                if len(errors) < self.config.max_recorded_errors:
                    errors.append(str(failure))
                logger.warning(
                    "Iteration failed, recording penalty",
                    workload=label,
                    iteration=i + 1,
                    penalty_ms=round(penalty, 2),
                    error=str(e),
                )

            if progress_callback:
                progress_callback(i + 1, iterations)

        return TimedRun(
            function_label=label,
            iterations=iterations,
            durations_ms=tuple(durations),
            failure_count=failures,
            errors=tuple(errors),
        )
