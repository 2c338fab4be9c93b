"""
Benchmark Orchestrator.

Runs registered benchmarks against every store they support and collects
per-store statistics and a pairwise comparison.

Per invocation:

    STARTED -> (CONNECTING -> SETUP -> EXECUTING -> CLEANUP) per store
            -> COMPARING -> PERSISTING -> COMPLETED

with FAILED reachable from any step. A store that fails is recorded on its
own StoreResult and excluded from comparison; sibling stores still run.
"""

import dataclasses
from collections.abc import Mapping
from typing import Any

import structlog

from storebench.benchmark.base import Benchmark
from storebench.benchmark.comparison import ComparisonEngine
from storebench.benchmark.executor import ExecutorConfig, TimedExecutor
from storebench.benchmark.options import BenchmarkOptions, resolve_options
from storebench.benchmark.persistence import JsonResultWriter, ResultWriter
from storebench.benchmark.result import BenchmarkResult, RunState, StoreResult, collect_environment
from storebench.benchmark.statistics import StatisticsCollector
from storebench.config.provider import DEFAULT_OPTIONS_KEY, ConfigProvider
from storebench.config.settings import Settings, get_settings
from storebench.core.events import EventEmitter
from storebench.core.exceptions import (
    AdapterNotFoundError,
    BenchmarkNotFoundError,
    DuplicateBenchmarkError,
    StoreSetupFailure,
)
from storebench.observability.logging import LogContext
from storebench.stores.base import StoreAdapter

logger = structlog.get_logger(__name__)

Overrides = BenchmarkOptions | Mapping[str, Any] | None


class BenchmarkOrchestrator:
    """
    Owns the benchmark and adapter registries and drives runs.

    Features:
    - Layered option resolution (service, benchmark, caller)
    - Per-store isolation of failures
    - Lifecycle events and structured logs per state transition
    - Result persistence through a pluggable writer

    Usage:
        async with BenchmarkOrchestrator() as orchestrator:
            await orchestrator.register_adapter(MongoDBAdapter())
            await orchestrator.register_adapter(PostgreSQLAdapter())
            await register_default_benchmarks(orchestrator)
            results = await orchestrator.run_all_benchmarks({"iterations": 10})
    """

    def __init__(
        self,
        config_provider: ConfigProvider | None = None,
        events: EventEmitter | None = None,
        executor: TimedExecutor | None = None,
        comparison_engine: ComparisonEngine | None = None,
        writer: ResultWriter | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        bench = settings.benchmark

        self.config_provider = config_provider or ConfigProvider.from_settings(settings)
        self.events = events or EventEmitter()
        self.executor = executor or TimedExecutor(
            ExecutorConfig(
                penalty_multiplier=bench.penalty_multiplier,
                fallback_penalty_ms=bench.fallback_penalty_ms,
            )
        )
        self.comparison_engine = comparison_engine or ComparisonEngine(tie_breaker=bench.tie_breaker)
        self.writer = writer or JsonResultWriter()

        self._adapters: dict[str, StoreAdapter] = {}
        self._benchmarks: dict[str, Benchmark] = {}

    async def __aenter__(self) -> "BenchmarkOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Registries
    # =========================================================================

    async def register_adapter(self, adapter: StoreAdapter) -> None:
        """Register ``adapter`` under its store type. Re-registration replaces the previous one."""
        store = adapter.store_type
        if store in self._adapters:
            logger.debug("Replacing store adapter", store=store)
        self._adapters[store] = adapter
        logger.info("Store adapter registered", store=store)
        await self.events.emit("store:registered", {"store": store})

    async def register_benchmark(self, benchmark: Benchmark, strict: bool = False) -> bool:
        """
        Register a benchmark under its name.

        Args:
            benchmark: The benchmark to register
            strict: Raise DuplicateBenchmarkError instead of returning False

        Returns:
            True if registered, False if the name was already taken
        """
        if benchmark.name in self._benchmarks:
            error = DuplicateBenchmarkError(benchmark.name)
            logger.warning("Benchmark registration rejected", benchmark=benchmark.name, error=str(error))
            await self.events.emit("benchmark:error", {"name": benchmark.name, "error": str(error)})
            if strict:
                raise error
            return False

        self._benchmarks[benchmark.name] = benchmark
        logger.info("Benchmark registered", benchmark=benchmark.name)
        await self.events.emit(
            "benchmark:registered",
            {"name": benchmark.name, "description": benchmark.description},
        )
        return True

    def get_benchmark(self, name: str) -> Benchmark:
        try:
            return self._benchmarks[name]
        except KeyError:
            raise BenchmarkNotFoundError(name) from None

    def get_adapter(self, store: str) -> StoreAdapter:
        try:
            return self._adapters[store]
        except KeyError:
            raise AdapterNotFoundError(store) from None

    def has_benchmark(self, name: str) -> bool:
        return name in self._benchmarks

    def list_benchmarks(self) -> list[str]:
        """Registered benchmark names in registration order."""
        return list(self._benchmarks)

    def describe_benchmarks(self) -> list[dict[str, Any]]:
        return [
            {
                "name": b.name,
                "description": b.description,
                "stores": sorted(b.supported_stores),
            }
            for b in self._benchmarks.values()
        ]

    @property
    def default_options(self) -> dict[str, Any]:
        """Service-wide default options (a copy)."""
        return self.config_provider.get(DEFAULT_OPTIONS_KEY, {}) or {}

    def resolve_options(self, benchmark: Benchmark | str, overrides: Overrides = None) -> BenchmarkOptions:
        """Effective options: service defaults, then benchmark defaults, then ``overrides``."""
        if isinstance(benchmark, str):
            benchmark = self.get_benchmark(benchmark)
        return resolve_options(self.default_options, benchmark.get_default_options(), overrides)

    # =========================================================================
    # Runs
    # =========================================================================

    async def _transition(self, name: str, state: RunState, store: str | None = None) -> None:
        logger.info("Benchmark state changed", state=state.value)
        await self.events.emit("benchmark:state", {"name": name, "state": state.value, "store": store})

    def _executor_for(self, options: BenchmarkOptions) -> TimedExecutor:
        if options.verbose == self.executor.config.verbose:
            return self.executor
        return TimedExecutor(dataclasses.replace(self.executor.config, verbose=options.verbose))

    async def run_benchmark(self, name: str, overrides: Overrides = None) -> BenchmarkResult:
        """
        Run one benchmark against every store it supports.

        Args:
            name: Registered benchmark name
            overrides: Caller option overrides (deepest layer)

        Returns:
            The completed result. Store failures are recorded on it, not raised.

        Raises:
            BenchmarkNotFoundError: if ``name`` is not registered
            AdapterNotFoundError: if a supported store has no adapter
        """
        benchmark = self.get_benchmark(name)
        stores = sorted(benchmark.supported_stores)
        adapters = {store: self.get_adapter(store) for store in stores}
        options = self.resolve_options(benchmark, overrides)

        with LogContext(benchmark=name):
            try:
                return await self._run(benchmark, adapters, options)
            except Exception as e:
                logger.error("Benchmark failed", error=str(e))
                await self._transition(name, RunState.FAILED)
                await self.events.emit("benchmark:error", {"name": name, "error": str(e)})
                raise

    async def _run(
        self,
        benchmark: Benchmark,
        adapters: dict[str, StoreAdapter],
        options: BenchmarkOptions,
    ) -> BenchmarkResult:
        name = benchmark.name
        await self._transition(name, RunState.STARTED)
        await self.events.emit("benchmark:started", {"name": name, "options": options.to_dict()})
        logger.info(
            "Starting benchmark",
            stores=list(adapters),
            iterations=options.iterations,
            data_size=options.data_size(),
        )

        executor = self._executor_for(options)
        store_results: dict[str, StoreResult] = {}
        for store, adapter in adapters.items():
            store_results[store] = await self._run_store(benchmark, adapter, options.with_target(store), executor)

        succeeded = [(store, r.statistics) for store, r in store_results.items() if r.succeeded]
        comparison = None
        if len(succeeded) == 2:
            await self._transition(name, RunState.COMPARING)
            (a_store, a_stats), (b_store, b_stats) = succeeded
            comparison = self.comparison_engine.compare(a_store, a_stats, b_store, b_stats)

        error = None
        if not succeeded:
            error = "All stores failed: " + "; ".join(r.error or "unknown error" for r in store_results.values())

        result = BenchmarkResult(
            name=name,
            description=benchmark.description,
            environment=collect_environment(),
            options=options.to_dict(),
            stores=store_results,
            comparison=comparison,
            error=error,
        )

        if options.save_results:
            result = await self._persist(result, options.output_dir)

        await self._transition(name, RunState.FAILED if error else RunState.COMPLETED)
        if comparison:
            logger.info(
                "Benchmark completed",
                winner=comparison.winner,
                median_ratio=round(comparison.median_ratio, 2),
                percentage_diff=f"{comparison.percentage_diff:.1f}%",
            )
        else:
            logger.info("Benchmark completed", failed_stores=result.failed_stores)
        await self.events.emit("benchmark:completed", result)
        return result

    async def _run_store(
        self,
        benchmark: Benchmark,
        adapter: StoreAdapter,
        options: BenchmarkOptions,
        executor: TimedExecutor,
    ) -> StoreResult:
        store = adapter.store_type
        name = benchmark.name
        state = RunState.CONNECTING

        with LogContext(store=store):
            await self.events.emit("benchmark:store:started", {"name": name, "store": store})
            try:
                await self._transition(name, state, store)
                if not adapter.is_connected():
                    await adapter.connect()

                if options.setup_environment:
                    state = RunState.SETUP
                    await self._transition(name, state, store)
                    await benchmark.setup(adapter, options)

                state = RunState.EXECUTING
                await self._transition(name, state, store)
                run = await benchmark.run(adapter, options, executor)
                statistics = StatisticsCollector.summarize(run.durations_ms)

            except Exception as e:
                failure = StoreSetupFailure(store, state.value, e)
                logger.error("Store run failed", stage=state.value, error=str(e))
                if state is not RunState.CONNECTING and options.cleanup_environment:
                    await self._cleanup(benchmark, adapter, options)
                await self._transition(name, RunState.FAILED, store)
                await self.events.emit(
                    "benchmark:store:error",
                    {"name": name, "store": store, "stage": state.value, "error": str(failure)},
                )
                return StoreResult(store=store, error=str(failure), state=RunState.FAILED)

            if options.cleanup_environment:
                await self._transition(name, RunState.CLEANUP, store)
                await self._cleanup(benchmark, adapter, options)

            result = StoreResult(store=store, run=run, statistics=statistics, state=RunState.COMPLETED)
            logger.info(
                "Store run completed",
                mean_ms=round(statistics.mean_ms, 2),
                median_ms=round(statistics.median_ms, 2),
                failures=run.failure_count,
            )
            await self.events.emit("benchmark:store:completed", {"name": name, "store": store, "result": result})
            return result

    async def _cleanup(self, benchmark: Benchmark, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        try:
            await benchmark.cleanup(adapter, options)
        except Exception as e:
            logger.warning("Cleanup failed", error=str(e))

    async def _persist(self, result: BenchmarkResult, output_dir: str) -> BenchmarkResult:
        await self._transition(result.name, RunState.PERSISTING)
        try:
            path = self.writer.write(result, output_dir)
        except Exception as e:
            logger.error("Failed to save benchmark result", output_dir=output_dir, error=str(e))
            await self.events.emit("benchmark:results:error", {"name": result.name, "error": str(e)})
            return dataclasses.replace(result, persistence_error=str(e))

        await self.events.emit("benchmark:results:saved", {"name": result.name, "path": str(path)})
        return dataclasses.replace(result, output_path=str(path))

    async def run_all_benchmarks(self, overrides: Overrides = None) -> dict[str, BenchmarkResult]:
        """
        Run every registered benchmark in registration order.

        A benchmark that raises gets a result carrying the error; the
        remaining benchmarks still run.
        """
        names = self.list_benchmarks()
        await self.events.emit("benchmark:all:started", {"benchmarks": names})
        logger.info("Running all benchmarks", count=len(names))

        results: dict[str, BenchmarkResult] = {}
        for name in names:
            try:
                results[name] = await self.run_benchmark(name, overrides)
            except Exception as e:
                logger.error("Benchmark aborted", benchmark=name, error=str(e))
                await self.events.emit("benchmark:all:error", {"name": name, "error": str(e)})
                results[name] = BenchmarkResult(
                    name=name,
                    description=self._benchmarks[name].description,
                    environment=collect_environment(),
                    error=str(e),
                )

        failed = [name for name, result in results.items() if not result.succeeded]
        logger.info("All benchmarks finished", total=len(results), failed=failed)
        await self.events.emit("benchmark:all:completed", results)
        return results

    async def close(self) -> None:
        """Disconnect every connected adapter."""
        for store, adapter in self._adapters.items():
            if not adapter.is_connected():
                continue
            try:
                await adapter.disconnect()
            except Exception as e:
                logger.warning("Failed to disconnect store adapter", store=store, error=str(e))
