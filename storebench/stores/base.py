"""
Store Adapter Interface.

Narrow, document-shaped CRUD surface shared by the document and relational
adapters. Benchmarks are written once against this interface. Each adapter
owns its connection handle; there is no process-wide client.

Documents come back as plain dicts carrying the store-assigned identifier
under ``"id"``.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any


class StoreType(str, Enum):
    """Supported stores."""

    MONGODB = "mongodb"
    POSTGRESQL = "postgresql"


Document = dict[str, Any]
Query = Mapping[str, Any]


class StoreAdapter(ABC):
    """Abstract base class for store adapters."""

    store_type: str

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection. Calling it on a connected adapter is a no-op."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection if open."""

    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    async def server_version(self) -> str:
        ...

    # =========================================================================
    # Collections / tables
    # =========================================================================

    @abstractmethod
    async def create_collection(self, name: str, index_fields: Sequence[str] = ()) -> None:
        ...

    @abstractmethod
    async def drop_collection(self, name: str) -> bool:
        """Drop ``name``. Returns True if it existed."""

    @abstractmethod
    async def collection_exists(self, name: str) -> bool:
        ...

    # =========================================================================
    # CRUD
    # =========================================================================

    @abstractmethod
    async def insert_one(self, collection: str, document: Mapping[str, Any]) -> Any:
        """Insert a document and return its identifier."""

    @abstractmethod
    async def insert_many(self, collection: str, documents: Sequence[Mapping[str, Any]]) -> list[Any]:
        """Insert documents and return their identifiers in order."""

    @abstractmethod
    async def find(self, collection: str, query: Query | None = None, limit: int | None = None) -> list[Document]:
        ...

    @abstractmethod
    async def find_one(self, collection: str, query: Query) -> Document | None:
        ...

    @abstractmethod
    async def find_by_id(self, collection: str, document_id: Any) -> Document | None:
        ...

    @abstractmethod
    async def update_one(self, collection: str, query: Query, update: Mapping[str, Any]) -> int:
        """Apply ``update`` (``{"$set": {...}}`` or a plain field dict). Returns modified count."""

    @abstractmethod
    async def update_many(self, collection: str, query: Query, update: Mapping[str, Any]) -> int:
        ...

    @abstractmethod
    async def delete_one(self, collection: str, query: Query) -> bool:
        ...

    @abstractmethod
    async def delete_many(self, collection: str, query: Query | None = None) -> int:
        ...

    @abstractmethod
    async def count(self, collection: str, query: Query | None = None) -> int:
        ...

    @abstractmethod
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
        """
        Left-join ``other`` onto ``collection``.

        Documents of ``collection`` matching ``query`` are ordered by ``sort``
        and capped at ``limit`` before the join. Each comes back with
        ``as_field`` holding the ``other`` documents whose ``foreign_field``
        equals its ``local_field``.
        """

    @abstractmethod
    async def execute_raw_query(self, query: Any, params: Any = None) -> Any:
        """Run a store-native command or SQL statement."""


def set_fields(update: Mapping[str, Any]) -> dict[str, Any]:
    """Fields assigned by an update document, accepting ``{"$set": {...}}`` or a plain dict."""
    if "$set" in update:
        return dict(update["$set"])
    if any(key.startswith("$") for key in update):
        raise ValueError(f"Unsupported update operators: {sorted(k for k in update if k.startswith('$'))}")
    return dict(update)
