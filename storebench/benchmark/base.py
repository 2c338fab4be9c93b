"""
Benchmark interface.

A benchmark is a named workload that runs against any store it declares
support for. ``BaseBenchmark`` covers the common case: implement
``execute`` (one iteration) and optionally ``setup``/``cleanup``; ``run``
times ``execute`` with the orchestrator's executor.
"""

import random
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

import structlog

from storebench.benchmark.executor import TimedExecutor, TimedRun
from storebench.benchmark.options import BenchmarkOptions
from storebench.stores.base import StoreAdapter, StoreType

logger = structlog.get_logger(__name__)


class Benchmark(ABC):
    """Abstract base class for benchmarks."""

    name: str = "benchmark"
    description: str = ""
    supported_stores: frozenset[str] = frozenset(store.value for store in StoreType)

    def get_default_options(self) -> dict[str, Any]:
        """Benchmark-declared option defaults (a partial options mapping)."""
        return {}

    def supports(self, store: str) -> bool:
        return store in self.supported_stores

    @abstractmethod
    async def setup(self, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        """Prepare the store before timing."""

    @abstractmethod
    async def run(self, adapter: StoreAdapter, options: BenchmarkOptions, executor: TimedExecutor) -> TimedRun:
        """Time the workload against ``adapter``."""

    @abstractmethod
    async def cleanup(self, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        """Remove whatever setup and the workload created."""


class BaseBenchmark(Benchmark):
    """
    Benchmark with a per-store collection and a single-iteration ``execute``.

    Subclasses set ``name``, ``description`` and ``collection`` and implement
    ``execute``. The default setup recreates the collection empty; the
    default cleanup drops it.

    Workload state derived from ``seed`` (generators, counters, samplers)
    is rebuilt in ``reset``, which runs at the start of every store's setup
    and timed run. Each store therefore sees the same generated data and the
    same operation sequence. Without an explicit seed one is drawn once per
    benchmark instance.
    """

    collection: str = "benchmark_data"
    index_fields: tuple[str, ...] = ()

    def __init__(self, seed: int | None = None, supported_stores: Iterable[str] | None = None):
        if supported_stores is not None:
            self.supported_stores = frozenset(supported_stores)
        self.seed = seed if seed is not None else random.SystemRandom().randrange(2**32)
        self.reset()

    def reset(self) -> None:
        """Rebuild seeded workload state."""

    async def setup(self, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        self.reset()
        await adapter.drop_collection(self.collection)
        await adapter.create_collection(self.collection, self.index_fields)

    async def run(self, adapter: StoreAdapter, options: BenchmarkOptions, executor: TimedExecutor) -> TimedRun:
        self.reset()

        async def workload() -> Any:
            return await self.execute(adapter, options)

        return await executor.run(
            workload,
            options.iterations,
            label=f"{self.name}:{adapter.store_type}",
        )

    @abstractmethod
    async def execute(self, adapter: StoreAdapter, options: BenchmarkOptions) -> Any:
        """One timed iteration."""

    async def cleanup(self, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        dropped = await adapter.drop_collection(self.collection)
        logger.debug("Benchmark collection dropped", collection=self.collection, existed=dropped)
