"""
Benchmark Scenarios.

Document workloads run unchanged against every store:
- Single, batch and schema-validated insertion
- Lookup by id and by attribute
- User/post joins: one user with their posts, the most liked posts with authors
- Cache access with a hot/cold key distribution
- Cache set/get, bulk writes and TTL expiration

Every benchmark rebuilds its generators from its seed at the start of each
store's setup and run, so all stores receive the same data and replay the
same operation sequence.
"""

import asyncio
import itertools
import random
import time
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from storebench.benchmark.base import BaseBenchmark
from storebench.benchmark.data_generator import (
    USER_COUNTRIES,
    AccessPatternGenerator,
    CacheEntry,
    CacheEntryGenerator,
)
from storebench.benchmark.options import BenchmarkOptions
from storebench.config.settings import get_settings
from storebench.stores.base import Document, StoreAdapter

logger = structlog.get_logger(__name__)

DEFAULT_INSERT_BATCH_SIZE = 1000


def _resolve_seed(seed: int | None) -> int | None:
    return seed if seed is not None else get_settings().benchmark.seed


def _insert_batch_size(options: BenchmarkOptions) -> int:
    return max(1, int(options.store_option("insert_batch_size", DEFAULT_INSERT_BATCH_SIZE)))


async def _insert_batched(
    adapter: StoreAdapter,
    collection: str,
    documents: Iterable[Mapping[str, Any]],
    batch_size: int,
) -> list[Any]:
    """Insert ``documents`` in chunks of ``batch_size``. Returns identifiers in order."""
    ids: list[Any] = []
    iterator = iter(documents)
    while True:
        chunk = list(itertools.islice(iterator, batch_size))
        if not chunk:
            return ids
        ids.extend(await adapter.insert_many(collection, chunk))


def _value_options(options: BenchmarkOptions) -> dict[str, Any]:
    return {
        "value_type": options.store_option("value_type", "json"),
        "value_size": int(options.store_option("value_size", 100)),
        "complexity": int(options.store_option("complexity", 3)),
    }


def _ttl_option(options: BenchmarkOptions, default: float | None = None) -> float | None:
    ttl = options.store_option("ttl", default)
    return None if ttl is None else float(ttl)


# =============================================================================
# Cache Entries
# =============================================================================


def _entry_document(entry: CacheEntry, ttl: float | None = None) -> dict[str, Any]:
    document = {"key": entry.key, "value": entry.value}
    if ttl is not None:
        document["expiresAt"] = time.time() + ttl
    return document


async def _cache_get(adapter: StoreAdapter, collection: str, key: str) -> Document | None:
    """
    Read a cache entry by key.

    Expiry is owned by the benchmark rather than the store: an entry whose
    ``expiresAt`` has passed is deleted on read and reported as a miss.
    """
    document = await adapter.find_one(collection, {"key": key})
    if document is None:
        return None

    expires_at = document.get("expiresAt")
    if expires_at is not None and expires_at <= time.time():
        await adapter.delete_one(collection, {"key": key})
        return None
    return document


# =============================================================================
# Insertion
# =============================================================================


class SingleInsertBenchmark(BaseBenchmark):
    """Insert one generated user document per iteration."""

    name = "single-document-insertion"
    description = "Insert a single user document per iteration"
    collection = "users_single_insert"

    def __init__(self, seed: int | None = None, **kwargs: Any):
        super().__init__(seed=_resolve_seed(seed), **kwargs)

    def reset(self) -> None:
        self._generator = CacheEntryGenerator(self.seed)
        self._counter = 0

    async def execute(self, adapter: StoreAdapter, options: BenchmarkOptions) -> Any:
        self._counter += 1
        return await adapter.insert_one(self.collection, self._generator.generate_user(self._counter))


class BatchInsertBenchmark(BaseBenchmark):
    """
    Insert ``batch_size`` user documents per iteration.

    ``batch_size`` is read from the store options so each store can be tuned
    separately.
    """

    name = "batch-insertion"
    description = "Insert a batch of user documents per iteration"
    collection = "users_batch_insert"
    default_batch_size = 100

    def __init__(self, seed: int | None = None, **kwargs: Any):
        super().__init__(seed=_resolve_seed(seed), **kwargs)

    def reset(self) -> None:
        self._generator = CacheEntryGenerator(self.seed)
        self._counter = 0

    def get_default_options(self) -> dict[str, Any]:
        return {
            "store_options": {
                store: {"batch_size": self.default_batch_size} for store in sorted(self.supported_stores)
            }
        }

    def batch_size(self, options: BenchmarkOptions) -> int:
        return int(options.store_option("batch_size", self.default_batch_size))

    async def execute(self, adapter: StoreAdapter, options: BenchmarkOptions) -> Any:
        size = self.batch_size(options)
        documents = [self._generator.generate_user(self._counter + i) for i in range(size)]
        self._counter += size
        return await adapter.insert_many(self.collection, documents)


class UserDocument(BaseModel):
    """Schema a user document must satisfy before a validated insert."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    username: str = Field(min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_]+$")
    email: str = Field(pattern=r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
    age: int = Field(ge=18, le=120)
    country: str = Field(min_length=1)
    is_active: bool = Field(alias="isActive")
    created_at: datetime = Field(alias="createdAt")
    metadata: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(min_length=1)


# Each pair breaks exactly one UserDocument constraint
_INVALID_FIELDS: tuple[tuple[str, Any], ...] = (
    ("username", "not valid!"),
    ("email", "not-an-email"),
    ("age", 12),
    ("tags", []),
)


class ValidatedInsertionBenchmark(BaseBenchmark):
    """
    Validate a batch of user documents and insert the ones that pass.

    A seeded share of every batch (``invalid_percentage``, default 20) is
    corrupted so the schema rejects it. Validation happens before the write,
    identically for every store; rejected counts are kept per store.
    """

    name = "validated-insertion"
    description = "Validate user documents against a schema and insert the valid ones"
    collection = "users_validated"
    default_batch_size = 100
    default_invalid_percentage = 20.0

    def __init__(self, seed: int | None = None, **kwargs: Any):
        self.rejected: dict[str, int] = {}
        super().__init__(seed=_resolve_seed(seed), **kwargs)

    def reset(self) -> None:
        self._generator = CacheEntryGenerator(self.seed)
        self._rng = random.Random(self.seed)
        self._counter = 0

    def candidate(self, index: int, invalid_percentage: float) -> dict[str, Any]:
        user = self._generator.generate_user(index)
        if self._rng.random() * 100 < invalid_percentage:
            field_name, value = self._rng.choice(_INVALID_FIELDS)
            user[field_name] = value
        return user

    async def setup(self, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        await super().setup(adapter, options)
        self.rejected[adapter.store_type] = 0

    async def execute(self, adapter: StoreAdapter, options: BenchmarkOptions) -> int:
        size = int(options.store_option("batch_size", self.default_batch_size))
        invalid_percentage = float(options.store_option("invalid_percentage", self.default_invalid_percentage))

        valid: list[dict[str, Any]] = []
        rejected = 0
        for i in range(size):
            try:
                user = UserDocument.model_validate(self.candidate(self._counter + i, invalid_percentage))
            except ValidationError:
                rejected += 1
                continue
            valid.append(user.model_dump(mode="json", by_alias=True))
        self._counter += size

        store = adapter.store_type
        self.rejected[store] = self.rejected.get(store, 0) + rejected
        await adapter.insert_many(self.collection, valid)
        return len(valid)


# =============================================================================
# Queries
# =============================================================================


class _SeededUsersBenchmark(BaseBenchmark):
    """Seeds ``data_size()`` user documents during setup."""

    def __init__(self, seed: int | None = None, **kwargs: Any):
        self._ids: dict[str, list[Any]] = {}
        super().__init__(seed=_resolve_seed(seed), **kwargs)

    def reset(self) -> None:
        self._generator = CacheEntryGenerator(self.seed)
        self._rng = random.Random(self.seed)

    async def setup(self, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        await super().setup(adapter, options)

        documents = (self._generator.generate_user(i) for i in range(options.data_size()))
        ids = await _insert_batched(adapter, self.collection, documents, _insert_batch_size(options))
        self._ids[adapter.store_type] = ids
        logger.info(
            "Seeded user documents",
            collection=self.collection,
            store=adapter.store_type,
            count=len(ids),
        )

    def seeded_ids(self, store: str) -> list[Any]:
        ids = self._ids.get(store)
        if not ids:
            raise RuntimeError(f"No documents seeded for {store}; run with setup enabled")
        return ids

    async def cleanup(self, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        self._ids.pop(adapter.store_type, None)
        await super().cleanup(adapter, options)


class SingleDocumentQueryBenchmark(_SeededUsersBenchmark):
    """
    Look up a sample of previously inserted users by id.

    Samples are drawn by insertion position, so every store looks up the
    same documents even though identifiers differ between stores.
    """

    name = "single-document-query"
    description = "Find single user documents by id"
    collection = "users_query"
    default_lookups = 10

    async def execute(self, adapter: StoreAdapter, options: BenchmarkOptions) -> int:
        ids = self.seeded_ids(adapter.store_type)
        lookups = int(options.store_option("lookups", self.default_lookups))

        found = 0
        for position in self._rng.sample(range(len(ids)), min(lookups, len(ids))):
            if await adapter.find_by_id(self.collection, ids[position]) is not None:
                found += 1
        return found


class FindByAttributeBenchmark(_SeededUsersBenchmark):
    """Find the users of a randomly chosen country."""

    name = "find-by-attribute"
    description = "Find user documents by country"
    collection = "users_find_attribute"
    index_fields = ("country",)
    default_limit = 100

    async def execute(self, adapter: StoreAdapter, options: BenchmarkOptions) -> int:
        self.seeded_ids(adapter.store_type)
        country = self._rng.choice(USER_COUNTRIES)
        limit = options.store_option("limit", self.default_limit)
        documents = await adapter.find(self.collection, {"country": country}, limit=limit)
        return len(documents)


class _UserPostsBenchmark(BaseBenchmark):
    """
    Users and posts in two collections, linked by ``uid`` and ``authorUid``.

    Setup writes ``data_size()`` posts spread over ``data_size() //
    posts_per_user`` users (store option, default 5 posts per user).
    """

    collection = "blog_users"
    posts_collection = "blog_posts"
    index_fields = ("uid",)
    post_index_fields = ("authorUid", "likes")
    default_posts_per_user = 5

    def __init__(self, seed: int | None = None, **kwargs: Any):
        self._user_counts: dict[str, int] = {}
        super().__init__(seed=_resolve_seed(seed), **kwargs)

    def reset(self) -> None:
        self._generator = CacheEntryGenerator(self.seed)
        self._rng = random.Random(self.seed)

    def _post(self, pid: int, user_count: int) -> dict[str, Any]:
        return {
            "pid": pid,
            "authorUid": self._rng.randrange(user_count),
            "title": self._generator.generate_string_value(48),
            "content": self._generator.generate_string_value(280),
            "likes": self._rng.randint(0, 1000),
        }

    async def setup(self, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        await super().setup(adapter, options)
        await adapter.drop_collection(self.posts_collection)
        await adapter.create_collection(self.posts_collection, self.post_index_fields)

        post_count = options.data_size()
        per_user = max(1, int(options.store_option("posts_per_user", self.default_posts_per_user)))
        user_count = max(1, post_count // per_user)
        batch_size = _insert_batch_size(options)

        users = ({**self._generator.generate_user(uid), "uid": uid} for uid in range(user_count))
        await _insert_batched(adapter, self.collection, users, batch_size)
        posts = (self._post(pid, user_count) for pid in range(post_count))
        await _insert_batched(adapter, self.posts_collection, posts, batch_size)

        self._user_counts[adapter.store_type] = user_count
        logger.info(
            "Seeded users and posts",
            store=adapter.store_type,
            users=user_count,
            posts=post_count,
        )

    def user_count(self, store: str) -> int:
        count = self._user_counts.get(store)
        if not count:
            raise RuntimeError(f"No users and posts seeded for {store}; run with setup enabled")
        return count

    async def cleanup(self, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        self._user_counts.pop(adapter.store_type, None)
        await adapter.drop_collection(self.posts_collection)
        await super().cleanup(adapter, options)


class UserPostsJoinBenchmark(_UserPostsBenchmark):
    """Fetch one random user joined with all of their posts."""

    name = "user-posts-join"
    description = "Fetch one user together with all of their posts"

    async def execute(self, adapter: StoreAdapter, options: BenchmarkOptions) -> int:
        uid = self._rng.randrange(self.user_count(adapter.store_type))
        users = await adapter.join(
            self.collection,
            self.posts_collection,
            local_field="uid",
            foreign_field="authorUid",
            as_field="posts",
            query={"uid": uid},
        )
        return len(users[0]["posts"]) if users else 0


class PopularPostsBenchmark(_UserPostsBenchmark):
    """Fetch the ``top`` most liked posts joined with their authors."""

    name = "popular-posts"
    description = "Fetch the most liked posts together with their authors"
    default_top = 10

    async def execute(self, adapter: StoreAdapter, options: BenchmarkOptions) -> int:
        self.user_count(adapter.store_type)
        posts = await adapter.join(
            self.posts_collection,
            self.collection,
            local_field="authorUid",
            foreign_field="uid",
            as_field="author",
            sort="likes",
            descending=True,
            limit=int(options.store_option("top", self.default_top)),
        )
        return len(posts)


# =============================================================================
# Caching
# =============================================================================


class CacheSetGetBenchmark(BaseBenchmark):
    """Write one cache entry and read it back per iteration."""

    name = "cache-set-get"
    description = "Write a single cache entry and read it back"
    collection = "cache_set_get"
    index_fields = ("key",)

    def __init__(self, seed: int | None = None, **kwargs: Any):
        super().__init__(seed=_resolve_seed(seed), **kwargs)

    def reset(self) -> None:
        self._entries = CacheEntryGenerator(self.seed)

    async def execute(self, adapter: StoreAdapter, options: BenchmarkOptions) -> bool:
        entry = self._entries.generate_entries(1, **_value_options(options))[0]
        await adapter.insert_one(self.collection, _entry_document(entry, _ttl_option(options)))
        return await _cache_get(adapter, self.collection, entry.key) is not None


class CacheHotKeysBenchmark(BaseBenchmark):
    """
    Replay a hot/cold access pattern against stored cache entries.

    Setup writes ``data_size()`` entries and draws the access pattern; every
    iteration replays the whole pattern. Hits and misses are counted per
    store.
    """

    name = "cache-hot-keys"
    description = "Read cache entries following a hot/cold key distribution"
    collection = "cache_entries"
    index_fields = ("key",)

    def __init__(
        self,
        seed: int | None = None,
        operations: int = 1000,
        hot_fraction: float = 20,
        hot_access_fraction: float = 80,
        **kwargs: Any,
    ):
        self.operations = operations
        self.hot_fraction = hot_fraction
        self.hot_access_fraction = hot_access_fraction
        self._pattern: dict[str, list[str]] = {}
        self.hits: dict[str, int] = {}
        self.misses: dict[str, int] = {}
        super().__init__(seed=_resolve_seed(seed), **kwargs)

    def reset(self) -> None:
        self._entries = CacheEntryGenerator(self.seed)
        self._patterns = AccessPatternGenerator(self.seed)

    def pattern(self, store: str) -> list[str]:
        return list(self._pattern.get(store, ()))

    async def setup(self, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        await super().setup(adapter, options)

        entries = self._entries.generate_entries(options.data_size(), **_value_options(options))
        await _insert_batched(
            adapter,
            self.collection,
            (_entry_document(e) for e in entries),
            _insert_batch_size(options),
        )

        self._pattern[adapter.store_type] = self._patterns.generate_pattern(
            [e.key for e in entries],
            int(options.store_option("operations", self.operations)),
            hot_fraction=self.hot_fraction,
            hot_access_fraction=self.hot_access_fraction,
        )
        self.hits[adapter.store_type] = 0
        self.misses[adapter.store_type] = 0

    async def execute(self, adapter: StoreAdapter, options: BenchmarkOptions) -> int:
        store = adapter.store_type
        pattern = self._pattern.get(store)
        if pattern is None:
            raise RuntimeError(f"No access pattern for {store}; run with setup enabled")

        hits = 0
        for key in pattern:
            if await _cache_get(adapter, self.collection, key) is not None:
                hits += 1
        self.hits[store] = self.hits.get(store, 0) + hits
        self.misses[store] = self.misses.get(store, 0) + len(pattern) - hits
        return hits

    async def cleanup(self, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        self._pattern.pop(adapter.store_type, None)
        await super().cleanup(adapter, options)


class CacheBulkSetBenchmark(BaseBenchmark):
    """Write a fresh batch of cache entries per iteration."""

    name = "cache-bulk-set"
    description = "Write batches of generated cache entries"
    collection = "cache_bulk_entries"

    def __init__(self, seed: int | None = None, batch_size: int = 100, **kwargs: Any):
        self.batch_size = batch_size
        super().__init__(seed=_resolve_seed(seed), **kwargs)

    def reset(self) -> None:
        self._entries = CacheEntryGenerator(self.seed)

    async def execute(self, adapter: StoreAdapter, options: BenchmarkOptions) -> Any:
        entries = self._entries.generate_entries(
            int(options.store_option("batch_size", self.batch_size)),
            **_value_options(options),
        )
        ttl = _ttl_option(options)
        return await adapter.insert_many(self.collection, [_entry_document(e, ttl) for e in entries])


class CacheTTLBenchmark(BaseBenchmark):
    """
    Write entries with a TTL, wait past it and read every entry back.

    The wait (``ttl`` plus ``grace`` seconds) is part of each timed
    iteration for every store. Reads evict expired entries; the number
    found expired is returned and accumulated per store.
    """

    name = "cache-ttl-expiration"
    description = "Write cache entries with a TTL and check they expire"
    collection = "cache_ttl_entries"
    index_fields = ("key",)
    default_grace = 0.5

    def __init__(self, seed: int | None = None, count: int = 100, ttl: float = 1.0, **kwargs: Any):
        self.count = count
        self.ttl = ttl
        self.expired: dict[str, int] = {}
        super().__init__(seed=_resolve_seed(seed), **kwargs)

    def reset(self) -> None:
        self._entries = CacheEntryGenerator(self.seed)

    async def setup(self, adapter: StoreAdapter, options: BenchmarkOptions) -> None:
        await super().setup(adapter, options)
        self.expired[adapter.store_type] = 0

    async def execute(self, adapter: StoreAdapter, options: BenchmarkOptions) -> int:
        count = int(options.store_option("count", self.count))
        ttl = _ttl_option(options, self.ttl)
        grace = float(options.store_option("grace", self.default_grace))

        entries = self._entries.generate_entries(count, value_type="string", value_size=10)
        await adapter.insert_many(self.collection, [_entry_document(e, ttl) for e in entries])
        if ttl > 0:
            await asyncio.sleep(ttl + grace)

        expired = 0
        for entry in entries:
            if await _cache_get(adapter, self.collection, entry.key) is None:
                expired += 1

        store = adapter.store_type
        self.expired[store] = self.expired.get(store, 0) + expired
        return expired


DEFAULT_BENCHMARKS = (
    SingleInsertBenchmark,
    BatchInsertBenchmark,
    ValidatedInsertionBenchmark,
    SingleDocumentQueryBenchmark,
    FindByAttributeBenchmark,
    UserPostsJoinBenchmark,
    PopularPostsBenchmark,
    CacheSetGetBenchmark,
    CacheHotKeysBenchmark,
    CacheBulkSetBenchmark,
    CacheTTLBenchmark,
)


async def register_default_benchmarks(orchestrator, seed: int | None = None) -> list[str]:
    """Register the built-in benchmarks. Returns the names that were registered."""
    registered = []
    for benchmark_cls in DEFAULT_BENCHMARKS:
        benchmark = benchmark_cls(seed=seed)
        if await orchestrator.register_benchmark(benchmark):
            registered.append(benchmark.name)
    return registered
