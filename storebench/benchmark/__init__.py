"""
Benchmark Execution and Comparison Engine.

Provides latency benchmarking of a document store against a relational store:
- Timed execution with warm-up and penalized failures
- Summary statistics and pairwise comparison
- Synthetic workload generators (hot/cold access patterns, cache entries)
- Built-in insert, query, join and caching workloads
- Orchestration of multi-store runs with result persistence
"""

from storebench.benchmark.base import BaseBenchmark, Benchmark
from storebench.benchmark.comparison import Comparison, ComparisonEngine
from storebench.benchmark.data_generator import (
    AccessPatternGenerator,
    CacheEntry,
    CacheEntryGenerator,
    ValueType,
)
from storebench.benchmark.executor import ExecutorConfig, TimedExecutor, TimedRun
from storebench.benchmark.options import DATA_SIZES, BenchmarkOptions, SizeClass, merge_options, resolve_options
from storebench.benchmark.persistence import JsonResultWriter, ResultWriter
from storebench.benchmark.result import BenchmarkResult, RunState, StoreResult, collect_environment
from storebench.benchmark.runner import BenchmarkOrchestrator
from storebench.benchmark.scenarios import (
    DEFAULT_BENCHMARKS,
    BatchInsertBenchmark,
    CacheBulkSetBenchmark,
    CacheHotKeysBenchmark,
    CacheSetGetBenchmark,
    CacheTTLBenchmark,
    FindByAttributeBenchmark,
    PopularPostsBenchmark,
    SingleDocumentQueryBenchmark,
    SingleInsertBenchmark,
    UserDocument,
    UserPostsJoinBenchmark,
    ValidatedInsertionBenchmark,
    register_default_benchmarks,
)
from storebench.benchmark.statistics import LatencyStats, StatisticsCollector

__all__ = [
    # Engine
    "BenchmarkOrchestrator",
    "RunState",
    "TimedExecutor",
    "ExecutorConfig",
    "TimedRun",
    "StatisticsCollector",
    "LatencyStats",
    "ComparisonEngine",
    "Comparison",
    # Options and results
    "BenchmarkOptions",
    "SizeClass",
    "DATA_SIZES",
    "merge_options",
    "resolve_options",
    "BenchmarkResult",
    "StoreResult",
    "collect_environment",
    "ResultWriter",
    "JsonResultWriter",
    # Workloads
    "Benchmark",
    "BaseBenchmark",
    "AccessPatternGenerator",
    "CacheEntryGenerator",
    "CacheEntry",
    "ValueType",
    "SingleInsertBenchmark",
    "BatchInsertBenchmark",
    "ValidatedInsertionBenchmark",
    "UserDocument",
    "SingleDocumentQueryBenchmark",
    "FindByAttributeBenchmark",
    "UserPostsJoinBenchmark",
    "PopularPostsBenchmark",
    "CacheSetGetBenchmark",
    "CacheHotKeysBenchmark",
    "CacheBulkSetBenchmark",
    "CacheTTLBenchmark",
    "DEFAULT_BENCHMARKS",
    "register_default_benchmarks",
]
