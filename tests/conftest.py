"""
Pytest Configuration and Shared Fixtures.

This module provides shared fixtures for testing the storebench engine.
"""

from collections.abc import Generator, Mapping, Sequence
from itertools import count
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from storebench.benchmark.base import BaseBenchmark
from storebench.benchmark.options import BenchmarkOptions
from storebench.benchmark.persistence import ResultWriter
from storebench.benchmark.runner import BenchmarkOrchestrator
from storebench.config.settings import Settings, get_settings
from storebench.stores.base import Document, Query, StoreAdapter, set_fields


# =============================================================================
# In-Memory Store
# =============================================================================


class InMemoryStoreAdapter(StoreAdapter):
    """
    Dict-backed StoreAdapter.

    ``fail_on`` names adapter methods that raise RuntimeError when called,
    e.g. ``{"connect"}`` or ``{"insert_one"}``.
    """

    def __init__(self, store_type: str = "mongodb", fail_on: set[str] | None = None):
        self.store_type = store_type
        self.fail_on = set(fail_on or ())
        self.collections: dict[str, dict[int, Document]] = {}
        self.calls: list[str] = []
        self._connected = False
        self._ids = count(1)

    def _record(self, method: str) -> None:
        self.calls.append(method)
        if method in self.fail_on:
            raise RuntimeError(f"{self.store_type}.{method} failed")

    @staticmethod
    def _matches(doc: Document, query: Query | None) -> bool:
        return all(doc.get(k) == v for k, v in (query or {}).items())

    async def connect(self) -> None:
        self._record("connect")
        self._connected = True

    async def disconnect(self) -> None:
        self._record("disconnect")
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected

    async def server_version(self) -> str:
        return "in-memory"

    async def create_collection(self, name: str, index_fields: Sequence[str] = ()) -> None:
        self._record("create_collection")
        self.collections.setdefault(name, {})

    async def drop_collection(self, name: str) -> bool:
        self._record("drop_collection")
        return self.collections.pop(name, None) is not None

    async def collection_exists(self, name: str) -> bool:
        return name in self.collections

    async def insert_one(self, collection: str, document: Mapping[str, Any]) -> int:
        self._record("insert_one")
        doc_id = next(self._ids)
        self.collections.setdefault(collection, {})[doc_id] = {**document, "id": doc_id}
        return doc_id

    async def insert_many(self, collection: str, documents: Sequence[Mapping[str, Any]]) -> list[int]:
        self._record("insert_many")
        ids = []
        for document in documents:
            doc_id = next(self._ids)
            self.collections.setdefault(collection, {})[doc_id] = {**document, "id": doc_id}
            ids.append(doc_id)
        return ids

    async def find(self, collection: str, query: Query | None = None, limit: int | None = None) -> list[Document]:
        self._record("find")
        docs = [dict(d) for d in self.collections.get(collection, {}).values() if self._matches(d, query)]
        return docs[:limit] if limit else docs

    async def find_one(self, collection: str, query: Query) -> Document | None:
        self._record("find_one")
        for doc in self.collections.get(collection, {}).values():
            if self._matches(doc, query):
                return dict(doc)
        return None

    async def find_by_id(self, collection: str, document_id: Any) -> Document | None:
        self._record("find_by_id")
        doc = self.collections.get(collection, {}).get(document_id)
        return dict(doc) if doc else None

    async def update_one(self, collection: str, query: Query, update: Mapping[str, Any]) -> int:
        self._record("update_one")
        for doc in self.collections.get(collection, {}).values():
            if self._matches(doc, query):
                doc.update(set_fields(update))
                return 1
        return 0

    async def update_many(self, collection: str, query: Query, update: Mapping[str, Any]) -> int:
        self._record("update_many")
        modified = 0
        for doc in self.collections.get(collection, {}).values():
            if self._matches(doc, query):
                doc.update(set_fields(update))
                modified += 1
        return modified

    async def delete_one(self, collection: str, query: Query) -> bool:
        self._record("delete_one")
        docs = self.collections.get(collection, {})
        for doc_id, doc in list(docs.items()):
            if self._matches(doc, query):
                del docs[doc_id]
                return True
        return False

    async def delete_many(self, collection: str, query: Query | None = None) -> int:
        self._record("delete_many")
        docs = self.collections.get(collection, {})
        doomed = [doc_id for doc_id, doc in docs.items() if self._matches(doc, query)]
        for doc_id in doomed:
            del docs[doc_id]
        return len(doomed)

    async def count(self, collection: str, query: Query | None = None) -> int:
        return sum(1 for d in self.collections.get(collection, {}).values() if self._matches(d, query))

    async def join(
        self,
        collection: str,
        other: str,
        local_field: str,
        foreign_field: str,
        as_field: str,
        query: Query | None = None,
        sort: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        self._record("join")
        docs = [dict(d) for d in self.collections.get(collection, {}).values() if self._matches(d, query)]
        if sort:
            docs.sort(key=lambda d: d.get(sort), reverse=descending)
        if limit:
            docs = docs[:limit]
        others = list(self.collections.get(other, {}).values())
        for doc in docs:
            doc[as_field] = [dict(o) for o in others if o.get(foreign_field) == doc.get(local_field)]
        return docs

    async def execute_raw_query(self, query: Any, params: Any = None) -> Any:
        self._record("execute_raw_query")
        return {"query": query, "params": params}


class RecordingBenchmark(BaseBenchmark):
    """Benchmark inserting one document per iteration, with optional failing stages."""

    collection = "recording"

    def __init__(
        self,
        name: str = "recording",
        fail_setup: bool = False,
        fail_execute: bool = False,
        defaults: dict[str, Any] | None = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.name = name
        self.description = f"Recording benchmark {name}"
        self.fail_setup = fail_setup
        self.fail_execute = fail_execute
        self.defaults = defaults or {}
        self.setup_calls: list[str] = []
        self.cleanup_calls: list[str] = []
        self.seen_options: list[BenchmarkOptions] = []

    def get_default_options(self) -> dict[str, Any]:
        return dict(self.defaults)

    async def setup(self, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        self.setup_calls.append(adapter.store_type)
        if self.fail_setup:
            raise RuntimeError("setup exploded")
        await super().setup(adapter, options)

    async def execute(self, adapter: StoreAdapter, options: BenchmarkOptions) -> Any:
        self.seen_options.append(options)
        if self.fail_execute:
            raise RuntimeError("execute exploded")
        return await adapter.insert_one(self.collection, {"n": 1})

    async def cleanup(self, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        self.cleanup_calls.append(adapter.store_type)
        await super().cleanup(adapter, options)


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Never leak cached settings between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    """Provide test settings with deterministic benchmark defaults."""
    with patch.dict(
        "os.environ",
        {
            "BENCHMARK_SIZE": "small",
            "BENCHMARK_ITERATIONS": "3",
            "BENCHMARK_SAVE_RESULTS": "false",
            "BENCHMARK_SEED": "42",
            "MONGODB_URI": "mongodb://localhost:27017",
            "POSTGRES_HOST": "localhost",
            "POSTGRES_PASSWORD": "postgres123",
        },
    ):
        get_settings.cache_clear()
        return get_settings()


# =============================================================================
# Store and Orchestrator Fixtures
# =============================================================================


@pytest.fixture
def mongo_store() -> InMemoryStoreAdapter:
    return InMemoryStoreAdapter("mongodb")


@pytest.fixture
def postgres_store() -> InMemoryStoreAdapter:
    return InMemoryStoreAdapter("postgresql")


@pytest.fixture
def mock_writer() -> MagicMock:
    """Create a mock result writer."""
    writer = MagicMock(spec=ResultWriter)
    writer.write.return_value = "/tmp/results/recording.json"
    return writer


@pytest.fixture
async def orchestrator(
    test_settings: Settings,
    mongo_store: InMemoryStoreAdapter,
    postgres_store: InMemoryStoreAdapter,
    mock_writer: MagicMock,
) -> BenchmarkOrchestrator:
    """Orchestrator with both in-memory stores registered."""
    orchestrator = BenchmarkOrchestrator(settings=test_settings, writer=mock_writer)
    await orchestrator.register_adapter(mongo_store)
    await orchestrator.register_adapter(postgres_store)
    return orchestrator
