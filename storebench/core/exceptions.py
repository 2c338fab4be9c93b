"""
Benchmark Error Taxonomy.

Structural errors (bad input, registration conflicts, unknown names) propagate
to the caller. Iteration, store and persistence failures are absorbed by the
executor and orchestrator and recorded on the result instead.
"""

from typing import Any


class StoreBenchError(Exception):
    """Base class for all benchmark engine errors."""


class EmptyInputError(StoreBenchError, ValueError):
    """Raised when statistics are requested for an empty sample set."""

    def __init__(self, message: str = "Cannot summarize an empty duration sequence"):
        super().__init__(message)


class InvalidComparisonInputError(StoreBenchError, ValueError):
    """Raised when two statistics cannot be compared."""


class DuplicateBenchmarkError(StoreBenchError):
    """Raised when a benchmark name is registered twice."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Benchmark with name '{name}' already exists")


class BenchmarkNotFoundError(StoreBenchError, KeyError):
    """Raised when an unregistered benchmark is requested."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Benchmark with name '{name}' not found")

    def __str__(self) -> str:
        return self.args[0]


class AdapterNotFoundError(StoreBenchError, KeyError):
    """Raised when no adapter is registered for a store."""

    def __init__(self, store: str):
        self.store = store
        super().__init__(f"Store adapter for type '{store}' not found")

    def __str__(self) -> str:
        return self.args[0]


class StoreConnectionError(StoreBenchError):
    """Raised when a store adapter is used before it is connected."""


class IterationFailure(StoreBenchError):
    """A single timed iteration failed. Penalized and counted, never raised to callers."""

    def __init__(self, iteration: int, cause: BaseException):
        self.iteration = iteration
        self.cause = cause
        super().__init__(f"Iteration {iteration} failed: {cause}")


class StoreSetupFailure(StoreBenchError):
    """A store's connect/setup/execute stage failed; the store is excluded from comparison."""

    def __init__(self, store: str, stage: str, cause: BaseException):
        self.store = store
        self.stage = stage
        self.cause = cause
        super().__init__(f"{store} failed during {stage}: {cause}")


class PersistenceFailure(StoreBenchError):
    """Saving a result failed. The in-memory result remains valid."""

    def __init__(self, message: str, path: Any = None):
        self.path = path
        super().__init__(message)
