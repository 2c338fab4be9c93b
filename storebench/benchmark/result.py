"""
Benchmark results.

Results are immutable once built. The orchestrator derives updated copies
with ``dataclasses.replace`` (e.g. to attach the output path after saving).
"""

import os
import platform
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from storebench.benchmark.comparison import Comparison
from storebench.benchmark.executor import TimedRun
from storebench.benchmark.statistics import LatencyStats


class RunState(str, Enum):
    """Lifecycle states of one benchmark invocation."""

    REGISTERED = "registered"
    STARTED = "started"
    CONNECTING = "connecting"
    SETUP = "setup"
    EXECUTING = "executing"
    CLEANUP = "cleanup"
    COMPARING = "comparing"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class StoreResult:
    """Outcome of one store's participation in a run."""

    store: str
    run: TimedRun | None = None
    statistics: LatencyStats | None = None
    error: str | None = None
    state: RunState = RunState.COMPLETED

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.statistics is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "store": self.store,
            "state": self.state.value,
            "run": self.run.to_dict() if self.run else None,
            "statistics": self.statistics.to_dict() if self.statistics else None,
            "error": self.error,
        }


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def collect_environment() -> dict[str, Any]:
    """Snapshot of the host a run executed on."""
    return {
        "python_version": platform.python_version(),
        "implementation": platform.python_implementation(),
        "platform": platform.platform(),
        "machine": platform.machine(),
        "processor": platform.processor() or None,
        "cpu_count": os.cpu_count(),
        "hostname": platform.node(),
        "argv": list(sys.argv),
    }


@dataclass(frozen=True)
class BenchmarkResult:
    """Result of one benchmark across all of its stores."""

    name: str
    description: str = ""
    timestamp: str = field(default_factory=utc_timestamp)
    environment: dict[str, Any] = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)
    stores: dict[str, StoreResult] = field(default_factory=dict)
    comparison: Comparison | None = None
    error: str | None = None
    persistence_error: str | None = None
    output_path: str | None = None

    @property
    def succeeded(self) -> bool:
        """True when the run itself completed and every store produced statistics."""
        return self.error is None and bool(self.stores) and all(s.succeeded for s in self.stores.values())

    @property
    def failed_stores(self) -> list[str]:
        return [store for store, result in self.stores.items() if not result.succeeded]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "timestamp": self.timestamp,
            "environment": self.environment,
            "options": self.options,
            "stores": {store: result.to_dict() for store, result in self.stores.items()},
            "comparison": self.comparison.to_dict() if self.comparison else None,
            "error": self.error,
            "persistence_error": self.persistence_error,
            "output_path": self.output_path,
        }
