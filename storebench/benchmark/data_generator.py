"""
Synthetic Workload Generators.

Produces reproducible load shapes for the benchmarks:
- Cache keys and skewed hot/cold access patterns (cache locality)
- Cache entries whose values have tunable type, size and nesting
- User documents for insert/query benchmarks

Every generator owns a ``random.Random``; the same seed and inputs replay the
same output.
"""

import math
import random
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

_PARAGRAPHS = [
    "Document stores keep each record as a self-describing document, so reads that need the "
    "whole aggregate avoid joins entirely. Secondary indexes cover the fields queried most often.",
    "Relational stores normalise data into tables and rebuild aggregates with joins. A well chosen "
    "primary key turns single-record lookups into one index lookup and one heap fetch.",
    "Caches exploit locality: a small fraction of keys receives most of the traffic. Stores that "
    "keep hot pages in memory answer those requests without touching disk.",
    "Write-heavy workloads stress the write-ahead log and index maintenance. Batching inserts "
    "amortises round trips and commit overhead across many records.",
    "Latency distributions are rarely symmetric. The median describes the typical request while "
    "the tail percentiles reveal stalls caused by checkpoints, locks and garbage collection.",
]

_WORDS = [
    "alpha", "bravo", "cache", "delta", "index", "join", "kernel", "ledger", "merge",
    "node", "query", "record", "shard", "table", "tuple", "vector", "write", "yield",
]
_FIRST_NAMES = ["Ana", "Bruno", "Chen", "Dara", "Elif", "Farid", "Greta", "Hugo", "Ines", "Jonas"]
_LAST_NAMES = ["Almeida", "Berg", "Costa", "Duarte", "Eriksen", "Fischer", "Gomez", "Haddad"]
_CITIES = ["Lisbon", "Porto", "Berlin", "Madrid", "Oslo", "Recife", "Austin", "Lyon"]
_COUNTRIES = ["Portugal", "Germany", "Spain", "Norway", "Brazil", "United States", "France"]
USER_COUNTRIES = tuple(_COUNTRIES)
_DEPARTMENTS = ["Books", "Garden", "Music", "Outdoors", "Tools", "Toys", "Electronics"]
_STATUSES = ["active", "pending", "archived"]
_ACTIONS = ["created", "updated", "viewed", "shared"]
_ROLES = ["admin", "editor", "viewer", "guest"]
_CAPABILITIES = ["read", "write", "delete", "share", "export", "import"]
_LANGUAGES = ["en", "fr", "de", "es", "pt"]


class ValueType(str, Enum):
    """Cache value payload kinds."""

    STRING = "string"
    JSON = "json"
    BINARY = "binary"


@dataclass(frozen=True)
class CacheEntry:
    """A generated key/value pair. The consuming benchmark owns its store-side lifetime."""

    key: str
    value: str | dict[str, Any] | bytes


def _check_fraction(name: str, value: float) -> None:
    if not 0 <= value <= 100:
        raise ValueError(f"{name} must be within [0, 100], got {value}")


class AccessPatternGenerator:
    """
    Generates cache keys and hot/cold skewed access sequences.

    A fraction of the key universe is designated "hot" and receives a
    configurable share of all accesses, modelling the locality a cache
    benchmark needs. Uniform access would not separate cache-friendly from
    cache-hostile stores.
    """

    def __init__(self, seed: int | None = None):
        self.seed = seed
        self._rng = random.Random(seed)
        self.last_hot_keys: list[str] = []

    def generate_key(self, prefix: str = "cache:") -> str:
        return f"{prefix}{self._rng.getrandbits(64):016x}"

    def generate_keys(self, n: int, prefix: str = "cache:") -> list[str]:
        """Generate ``n`` distinct keys."""
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")

        keys: list[str] = []
        seen: set[str] = set()
        while len(keys) < n:
            key = self.generate_key(prefix)
            if key not in seen:
                seen.add(key)
                keys.append(key)
        return keys

    def split_hot_cold(
        self,
        keys: Sequence[str],
        hot_fraction: float = 20,
    ) -> tuple[list[str], list[str]]:
        """
        Partition ``keys`` into hot and cold sets by sampling without replacement.

        The hot set holds ``max(1, floor(len(keys) * hot_fraction / 100))`` keys.
        """
        _check_fraction("hot_fraction", hot_fraction)
        if not keys:
            return [], []

        hot_count = max(1, math.floor(len(keys) * hot_fraction / 100))
        hot_keys = self._rng.sample(list(keys), hot_count)
        hot_set = set(hot_keys)
        cold_keys = [k for k in keys if k not in hot_set]
        self.last_hot_keys = hot_keys
        return hot_keys, cold_keys

    def generate_pattern(
        self,
        keys: Sequence[str],
        operations: int,
        hot_fraction: float = 20,
        hot_access_fraction: float = 80,
    ) -> list[str]:
        """
        Generate an access sequence over ``keys``.

        Args:
            keys: Key universe
            operations: Number of accesses to generate
            hot_fraction: Percentage of keys designated hot (0-100)
            hot_access_fraction: Percentage of accesses directed at hot keys (0-100)

        Returns:
            List of ``operations`` keys; empty if ``keys`` is empty
        """
        _check_fraction("hot_fraction", hot_fraction)
        _check_fraction("hot_access_fraction", hot_access_fraction)
        if operations < 0:
            raise ValueError(f"operations must be non-negative, got {operations}")

        if not keys:
            return []

        hot_keys, cold_keys = self.split_hot_cold(keys, hot_fraction)
        hot_probability = hot_access_fraction / 100

        pattern: list[str] = []
        for _ in range(operations):
            if self._rng.random() < hot_probability or not cold_keys:
                pattern.append(self._rng.choice(hot_keys))
            else:
                pattern.append(self._rng.choice(cold_keys))

        logger.debug(
            "Generated access pattern",
            keys=len(keys),
            hot_keys=len(hot_keys),
            operations=operations,
        )
        return pattern


class CacheEntryGenerator:
    """Generates cache entries with string, JSON or binary payloads."""

    def __init__(self, seed: int | None = None):
        self.seed = seed
        self._rng = random.Random(seed)
        self._keys = AccessPatternGenerator(None if seed is None else seed + 1)

    def _uuid(self) -> str:
        return str(uuid.UUID(int=self._rng.getrandbits(128), version=4))

    def _name(self) -> str:
        return f"{self._rng.choice(_FIRST_NAMES)} {self._rng.choice(_LAST_NAMES)}"

    def _email(self) -> str:
        return f"{self._rng.choice(_FIRST_NAMES).lower()}.{self._rng.getrandbits(24):x}@example.com"

    def _past_date(self) -> str:
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        return (base - timedelta(seconds=self._rng.randint(0, 365 * 86400))).isoformat()

    def generate_string_value(self, size: int = 100) -> str:
        """Text of exactly ``size`` characters drawn from a fixed corpus."""
        size = max(0, int(size))
        parts: list[str] = []
        length = 0
        while length < size:
            paragraph = self._rng.choice(_PARAGRAPHS)
            parts.append(paragraph)
            length += len(paragraph) + 2
        return "\n\n".join(parts)[:size]

    def generate_binary_value(self, size: int = 100) -> bytes:
        return self._rng.randbytes(max(0, int(size)))

    def generate_json_value(self, complexity: int = 3, size: int = 100) -> dict[str, Any]:
        """
        Nested document whose shape grows with ``complexity`` (1-10).

        Levels add, cumulatively: metadata (2), address (3), stats (4),
        line items (5), change history (7), permissions (9).
        """
        complexity = min(max(int(complexity), 1), 10)
        rng = self._rng

        if complexity <= 1:
            return {
                "id": self._uuid(),
                "name": self._name(),
                "email": self._email(),
                "description": self.generate_string_value(size // 4),
                "createdAt": self._past_date(),
            }

        value: dict[str, Any] = {
            "id": self._uuid(),
            "name": self._name(),
            "email": self._email(),
            "description": self.generate_string_value(size // 10),
            "createdAt": self._past_date(),
            "metadata": {
                "tags": [rng.choice(_WORDS) for _ in range(3)],
                "category": rng.choice(_DEPARTMENTS),
                "priority": rng.randint(1, 5),
                "status": rng.choice(_STATUSES),
            },
        }

        if complexity >= 3:
            value["address"] = {
                "street": f"{rng.randint(1, 999)} {rng.choice(_WORDS).title()} Street",
                "city": rng.choice(_CITIES),
                "country": rng.choice(_COUNTRIES),
                "zipCode": f"{rng.randint(10000, 99999)}",
            }

        if complexity >= 4:
            value["stats"] = {
                "views": rng.randint(100, 10000),
                "likes": rng.randint(10, 1000),
                "shares": rng.randint(0, 500),
                "comments": rng.randint(0, 200),
            }

        if complexity >= 5:
            value["items"] = [
                {
                    "id": self._uuid(),
                    "name": f"{rng.choice(_WORDS).title()} {rng.choice(_DEPARTMENTS)}",
                    "price": round(rng.uniform(1, 500), 2),
                    "description": self.generate_string_value(max(1, size // 20)),
                }
                for _ in range(complexity)
            ]

        if complexity >= 7:
            value["history"] = [
                {
                    "timestamp": self._past_date(),
                    "action": rng.choice(_ACTIONS),
                    "user": {"id": self._uuid(), "name": self._name(), "role": rng.choice(_ROLES[:3])},
                    "changes": [
                        {
                            "field": rng.choice(["name", "description", "status", "category"]),
                            "oldValue": rng.choice(_WORDS),
                            "newValue": rng.choice(_WORDS),
                        }
                        for _ in range(2)
                    ],
                }
                for _ in range(min(5, complexity - 5))
            ]

        if complexity >= 9:
            value["permissions"] = {
                "roles": [
                    {
                        "name": rng.choice(_ROLES),
                        "capabilities": rng.sample(_CAPABILITIES, 4),
                        "restrictions": {
                            "timeLimit": rng.choice([None, 3600, 86400]),
                            "maxUsage": rng.randint(0, 1000),
                        },
                    }
                    for _ in range(3)
                ],
                "accessControl": {
                    "enabled": rng.random() < 0.5,
                    "strategy": rng.choice(["role-based", "attribute-based", "discretionary"]),
                    "defaultPolicy": rng.choice(["allow", "deny"]),
                },
            }

        return value

    def generate_value(
        self,
        value_type: ValueType | str = ValueType.JSON,
        size: int = 100,
        complexity: int = 3,
    ) -> str | dict[str, Any] | bytes:
        value_type = ValueType(value_type)
        if value_type is ValueType.STRING:
            return self.generate_string_value(size)
        if value_type is ValueType.BINARY:
            return self.generate_binary_value(size)
        return self.generate_json_value(complexity, size)

    def generate_entries(
        self,
        count: int = 100,
        value_type: ValueType | str = ValueType.JSON,
        value_size: int = 100,
        complexity: int = 3,
    ) -> list[CacheEntry]:
        """Generate ``count`` entries with batch-unique keys."""
        keys = self._keys.generate_keys(count)
        return [
            CacheEntry(key=key, value=self.generate_value(value_type, value_size, complexity))
            for key in keys
        ]

    def generate_user(self, index: int) -> dict[str, Any]:
        """User document for insert and lookup benchmarks."""
        rng = self._rng
        created = datetime(2024, 1, 1, tzinfo=timezone.utc) - timedelta(days=index % 3650)
        return {
            "username": f"user{index}",
            "email": f"user{index}@example.com",
            "age": 20 + (index % 50),
            "country": _COUNTRIES[index % len(_COUNTRIES)],
            "isActive": index % 5 != 0,
            "createdAt": created.isoformat(),
            "metadata": {
                "lastLogin": (created + timedelta(hours=rng.randint(1, 720))).isoformat(),
                "preferences": {
                    "theme": "light" if index % 2 == 0 else "dark",
                    "language": _LANGUAGES[index % len(_LANGUAGES)],
                    "notifications": index % 3 == 0,
                },
            },
            "tags": [f"tag{index % 10}", f"category{index % 5}", "premium" if index % 2 == 0 else "standard"],
        }
