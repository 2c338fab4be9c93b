"""
Unit Tests for the Timed Executor.

Tests warm-up, iteration counts and failure penalties.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from storebench.benchmark.executor import ExecutorConfig, TimedExecutor, TimedRun


class TestTimedExecutor:
    """Test cases for TimedExecutor."""

    # =========================================================================
    # Iteration Counts
    # =========================================================================

    @pytest.mark.asyncio
    async def test_returns_exactly_n_durations(self) -> None:
        workload = AsyncMock(return_value="ok")
        executor = TimedExecutor()

        run = await executor.run(workload, 7, label="insert")

        assert isinstance(run, TimedRun)
        assert len(run.durations_ms) == 7
        assert run.failure_count == 0
        assert run.successful_iterations == 7
        assert run.function_label == "insert"

    @pytest.mark.asyncio
    async def test_warmup_is_untimed_extra_call(self) -> None:
        workload = AsyncMock()
        executor = TimedExecutor()

        run = await executor.run(workload, 3)

        assert workload.await_count == 4
        assert len(run.durations_ms) == 3

    @pytest.mark.asyncio
    async def test_warmup_can_be_disabled(self) -> None:
        workload = AsyncMock()
        executor = TimedExecutor(ExecutorConfig(warmup=False))

        await executor.run(workload, 3)

        assert workload.await_count == 3

    @pytest.mark.asyncio
    async def test_sync_workload(self) -> None:
        workload = MagicMock(return_value=1)
        executor = TimedExecutor()

        run = await executor.run(workload, 2, label="sync")

        assert workload.call_count == 3
        assert all(d >= 0 for d in run.durations_ms)

    @pytest.mark.asyncio
    async def test_durations_use_perf_counter(self) -> None:
        """Each duration is (end - start) in milliseconds."""
        executor = TimedExecutor(ExecutorConfig(warmup=False))
        ticks = iter([1.0, 1.25, 2.0, 2.5])

        with patch("storebench.benchmark.executor.time.perf_counter", side_effect=lambda: next(ticks)):
            run = await executor.run(lambda: None, 2)

        assert run.durations_ms == pytest.approx((250.0, 500.0))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("iterations", [0, -3])
    async def test_rejects_non_positive_iterations(self, iterations: int) -> None:
        with pytest.raises(ValueError):
            await TimedExecutor().run(AsyncMock(), iterations)

    @pytest.mark.asyncio
    async def test_progress_callback(self) -> None:
        progress = MagicMock()

        await TimedExecutor().run(AsyncMock(), 3, progress_callback=progress)

        assert [c.args for c in progress.call_args_list] == [(1, 3), (2, 3), (3, 3)]

    # =========================================================================
    # Failure Penalties
    # =========================================================================

    @pytest.mark.asyncio
    async def test_always_failing_workload(self) -> None:
        """Every iteration fails: n penalties, each at least twice the previous."""
        workload = AsyncMock(side_effect=RuntimeError("connection refused"))
        executor = TimedExecutor()

        run = await executor.run(workload, 5)

        assert len(run.durations_ms) == 5
        assert run.failure_count == 5
        assert run.successful_iterations == 0
        assert run.durations_ms[0] == 10000.0
        for previous, current in zip(run.durations_ms, run.durations_ms[1:]):
            assert current > previous
            assert current >= previous * 2
        assert run.durations_ms == (10000.0, 20000.0, 40000.0, 80000.0, 160000.0)

    @pytest.mark.asyncio
    async def test_failure_after_success_uses_max(self) -> None:
        executor = TimedExecutor(ExecutorConfig(warmup=False, penalty_multiplier=3.0))
        ticks = iter([0.0, 0.010, 1.0, 1.004, 2.0])
        calls = {"n": 0}

        def workload() -> None:
            calls["n"] += 1
            if calls["n"] == 3:
                raise ValueError("bad document")

        with patch("storebench.benchmark.executor.time.perf_counter", side_effect=lambda: next(ticks)):
            run = await executor.run(workload, 3)

        assert run.failure_count == 1
        assert run.durations_ms[2] == pytest.approx(30.0)

    @pytest.mark.asyncio
    async def test_configured_fallback(self) -> None:
        executor = TimedExecutor(ExecutorConfig(fallback_penalty_ms=500.0, penalty_multiplier=2.0))

        run = await executor.run(AsyncMock(side_effect=RuntimeError("boom")), 2)

        assert run.durations_ms == (500.0, 1000.0)

    @pytest.mark.asyncio
    async def test_errors_recorded_and_capped(self) -> None:
        executor = TimedExecutor(ExecutorConfig(max_recorded_errors=2))

        run = await executor.run(AsyncMock(side_effect=RuntimeError("boom")), 4)

        assert run.errors == ("Iteration 1 failed: boom", "Iteration 2 failed: boom")
        assert run.failure_count == 4

    @pytest.mark.asyncio
    async def test_warmup_failure_is_ignored(self) -> None:
        outcomes = [RuntimeError("cold start"), None, None]
        workload = AsyncMock(side_effect=outcomes)

        run = await TimedExecutor().run(workload, 2)

        assert run.failure_count == 0

    def test_penalty_for(self) -> None:
        executor = TimedExecutor()

        assert executor.penalty_for([]) == 10000.0
        assert executor.penalty_for([3.0, 7.0, 5.0]) == 14.0


class TestTimedRun:
    """Test cases for TimedRun serialization."""

    def test_to_dict(self) -> None:
        run = TimedRun("w", 2, (1.23456, 2.0), failure_count=1, errors=("Iteration 2 failed: x",))
        data = run.to_dict()

        assert data["durations_ms"] == [1.235, 2.0]
        assert data["successful_iterations"] == 1
        assert data["errors"] == ["Iteration 2 failed: x"]
