"""
Dotted-key configuration provider.

The orchestrator only reads ``benchmarks.default_options`` from here; the
provider exists so embedding hosts can inject configuration without going
through environment variables.
"""

from collections.abc import Mapping
from copy import deepcopy
from typing import Any

from storebench.config.settings import Settings, get_settings

DEFAULT_OPTIONS_KEY = "benchmarks.default_options"

_MISSING = object()


class ConfigProvider:
    """Read-mostly view over a nested mapping addressed with dotted keys."""

    def __init__(self, values: Mapping[str, Any] | None = None):
        self._values: dict[str, Any] = deepcopy(dict(values or {}))

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ConfigProvider":
        settings = settings or get_settings()
        return cls({"benchmarks": {"default_options": settings.benchmark.default_options()}})

    def _lookup(self, key: str) -> Any:
        node: Any = self._values
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value at ``key``, or ``default`` if any segment is missing."""
        value = self._lookup(key)
        if value is _MISSING:
            return default
        return deepcopy(value)

    def has(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def set(self, key: str, value: Any) -> "ConfigProvider":
        parts = key.split(".")
        node = self._values
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value
        return self

    def get_all(self) -> dict[str, Any]:
        return deepcopy(self._values)
