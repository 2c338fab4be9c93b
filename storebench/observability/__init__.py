"""
Observability Module.

Structured logging for benchmark runs: JSON or console output with
benchmark/store context on every event.
"""

from storebench.observability.logging import (
    LogContext,
    configure_logging,
    current_log_context,
    get_logger,
)

__all__ = [
    "LogContext",
    "configure_logging",
    "current_log_context",
    "get_logger",
]
