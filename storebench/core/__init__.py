"""
Core Infrastructure Module.

Provides foundational pieces shared by the benchmark engine:
- Error taxonomy
- Lifecycle event emitter
"""

from storebench.core.events import EventEmitter, EventHandler
from storebench.core.exceptions import (
    AdapterNotFoundError,
    BenchmarkNotFoundError,
    DuplicateBenchmarkError,
    EmptyInputError,
    InvalidComparisonInputError,
    IterationFailure,
    PersistenceFailure,
    StoreBenchError,
    StoreConnectionError,
    StoreSetupFailure,
)

__all__ = [
    # Events
    "EventEmitter",
    "EventHandler",
    # Errors
    "StoreBenchError",
    "EmptyInputError",
    "InvalidComparisonInputError",
    "DuplicateBenchmarkError",
    "BenchmarkNotFoundError",
    "AdapterNotFoundError",
    "StoreConnectionError",
    "IterationFailure",
    "StoreSetupFailure",
    "PersistenceFailure",
]
