"""
Benchmark options and layered option merging.

Effective options are built from three layers, each overriding the previous:
service defaults, benchmark defaults, caller overrides. ``store_options`` is
merged store-by-store and key-by-key, so a deeper layer setting one key for a
store keeps the sibling keys contributed by shallower layers.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SizeClass(str, Enum):
    """Data set size classes."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    CUSTOM = "custom"


DATA_SIZES: dict[SizeClass, int] = {
    SizeClass.SMALL: 1000,
    SizeClass.MEDIUM: 10000,
    SizeClass.LARGE: 100000,
}


class BenchmarkOptions(BaseModel):
    """Effective configuration of one benchmark run."""

    model_config = ConfigDict(extra="allow", frozen=True)

    size: SizeClass = Field(default=SizeClass.SMALL, description="Data size class")
    custom_size: int | None = Field(default=None, gt=0, description="Record count when size=custom")
    iterations: int = Field(default=5, ge=1, description="Timed iterations per store")
    setup_environment: bool = Field(default=True, description="Run setup before timing")
    cleanup_environment: bool = Field(default=True, description="Run cleanup after timing")
    save_results: bool = Field(default=True, description="Persist the result")
    output_dir: str = Field(default="./benchmark-results", description="Directory for result files")
    verbose: bool = Field(default=False, description="Log every iteration")
    store_options: dict[str, dict[str, Any]] = Field(
        default_factory=dict, description="Free-form options per store id"
    )
    tags: list[str] = Field(default_factory=list, description="Custom tags for the run")
    target_store: str | None = Field(default=None, description="Store currently being benchmarked")

    @model_validator(mode="after")
    def _require_custom_size(self) -> "BenchmarkOptions":
        if self.size is SizeClass.CUSTOM and self.custom_size is None:
            raise ValueError("custom_size is required when size is 'custom'")
        return self

    def data_size(self) -> int:
        """Number of documents/records for the configured size class."""
        if self.size is SizeClass.CUSTOM:
            return self.custom_size  # type: ignore[return-value]
        return DATA_SIZES[self.size]

    def for_store(self, store: str | None = None) -> dict[str, Any]:
        """Options for ``store`` (defaults to the current target store)."""
        store = store or self.target_store
        if store is None:
            return {}
        return dict(self.store_options.get(store, {}))

    def store_option(self, key: str, default: Any = None, store: str | None = None) -> Any:
        return self.for_store(store).get(key, default)

    def with_target(self, store: str) -> "BenchmarkOptions":
        return self.model_copy(update={"target_store": store})

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def _as_layer(layer: "BenchmarkOptions | Mapping[str, Any] | None") -> dict[str, Any]:
    if layer is None:
        return {}
    if isinstance(layer, BenchmarkOptions):
        # Only what was explicitly set counts as an override
        return layer.model_dump(exclude_unset=True)
    return dict(layer)


def merge_options(*layers: "BenchmarkOptions | Mapping[str, Any] | None") -> dict[str, Any]:
    """
    Merge option layers, shallowest first.

    ``None`` values never override a value set by a shallower layer.
    ``store_options`` is merged per store and per key; every other key is
    replaced by the deepest layer that sets it.
    """
    merged: dict[str, Any] = {}
    store_options: dict[str, dict[str, Any]] = {}
    saw_store_options = False

    for layer in layers:
        for key, value in _as_layer(layer).items():
            if value is None:
                if key != "store_options":
                    merged.setdefault(key, None)
                continue
            if key == "store_options":
                saw_store_options = True
                for store, opts in value.items():
                    store_options.setdefault(store, {}).update(opts or {})
            else:
                merged[key] = value

    if saw_store_options:
        merged["store_options"] = store_options
    return merged


def resolve_options(*layers: "BenchmarkOptions | Mapping[str, Any] | None") -> BenchmarkOptions:
    """Merge ``layers`` and validate the result."""
    return BenchmarkOptions(**merge_options(*layers))
