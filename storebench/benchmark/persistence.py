"""
Result persistence.

Writers receive a completed, immutable result and a target directory and
decide the file format and naming.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import structlog

from storebench.benchmark.result import BenchmarkResult
from storebench.core.exceptions import PersistenceFailure

logger = structlog.get_logger(__name__)


class ResultWriter(Protocol):
    def write(self, result: BenchmarkResult, output_dir: str | Path) -> Path:
        """Persist ``result`` under ``output_dir`` and return the written path."""
        ...


class JsonResultWriter:
    """Writes ``<name>_<YYYYmmdd_HHMMSS>.json`` files with indented JSON."""

    def __init__(self, indent: int = 2):
        self.indent = indent

    def filename_for(self, result: BenchmarkResult) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        return f"{result.name}_{timestamp}.json"

    def write(self, result: BenchmarkResult, output_dir: str | Path) -> Path:
        output_dir = Path(output_dir)
        filepath = output_dir / self.filename_for(result)

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            with open(filepath, "w") as f:
                json.dump(result.to_dict(), f, indent=self.indent, default=str)
        except OSError as e:
            raise PersistenceFailure(f"Failed to save results to {filepath}: {e}", path=filepath) from e

        logger.info("Benchmark result saved", path=str(filepath))
        return filepath
