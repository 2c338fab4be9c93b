"""
MongoDB Store Adapter.

Document-store side of the comparison, built on pymongo's native asyncio
client. The adapter owns a single client for its lifetime so connection
establishment is never part of a timed iteration.
"""

from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, AsyncMongoClient

from storebench.config.settings import MongoDBSettings, get_settings
from storebench.core.exceptions import StoreConnectionError
from storebench.stores.base import Document, Query, StoreAdapter, StoreType, set_fields

logger = structlog.get_logger(__name__)


def _to_object_id(value: Any) -> Any:
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def _to_filter(query: Query | None) -> dict[str, Any]:
    """Translate the adapter-level ``id`` field into Mongo's ``_id``."""
    if not query:
        return {}
    filter_ = dict(query)
    if "id" in filter_:
        filter_["_id"] = _to_object_id(filter_.pop("id"))
    return filter_


def _from_document(document: Mapping[str, Any] | None) -> Document | None:
    if document is None:
        return None
    doc = dict(document)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


class MongoDBAdapter(StoreAdapter):
    """
    MongoDB adapter.

    Collections map one-to-one to benchmark collections. Identifiers are
    returned as strings and converted back to ``ObjectId`` on lookup.
    """

    store_type = StoreType.MONGODB.value

    def __init__(self, settings: MongoDBSettings | None = None) -> None:
        self._settings = settings or get_settings().mongodb
        self._client: AsyncMongoClient | None = None
        self._db = None

    async def connect(self) -> None:
        """Establish connection to MongoDB."""
        if self._client is not None:
            return

        client = AsyncMongoClient(
            self._settings.uri,
            maxPoolSize=self._settings.max_pool_size,
            minPoolSize=self._settings.min_pool_size,
            connectTimeoutMS=self._settings.connect_timeout_ms,
            socketTimeoutMS=self._settings.socket_timeout_ms,
        )
        await client.admin.command("ping")
        self._client = client
        self._db = client[self._settings.database]
        logger.info("Connected to MongoDB", database=self._settings.database)

    async def disconnect(self) -> None:
        """Close the client."""
        if self._client is not None:
            await self._client.close()
            self._client = None
            self._db = None
            logger.info("Disconnected from MongoDB")

    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def db(self):
        if self._db is None:
            raise StoreConnectionError("MongoDB adapter is not connected")
        return self._db

    async def server_version(self) -> str:
        if self._client is None:
            raise StoreConnectionError("MongoDB adapter is not connected")
        info = await self._client.server_info()
        return str(info.get("version", "unknown"))

    # =========================================================================
    # Collections
    # =========================================================================

    async def create_collection(self, name: str, index_fields: Sequence[str] = ()) -> None:
        if not await self.collection_exists(name):
            await self.db.create_collection(name)
        for field_name in index_fields:
            await self.db[name].create_index([(field_name, ASCENDING)])

    async def drop_collection(self, name: str) -> bool:
        existed = await self.collection_exists(name)
        if existed:
            await self.db.drop_collection(name)
        return existed

    async def collection_exists(self, name: str) -> bool:
        names = await self.db.list_collection_names(filter={"name": name})
        return name in names

    # =========================================================================
    # CRUD
    # =========================================================================

    async def insert_one(self, collection: str, document: Mapping[str, Any]) -> str:
        # insert_one adds _id to the dict it is given
        result = await self.db[collection].insert_one(dict(document))
        return str(result.inserted_id)

    async def insert_many(self, collection: str, documents: Sequence[Mapping[str, Any]]) -> list[str]:
        if not documents:
            return []
        result = await self.db[collection].insert_many([dict(d) for d in documents])
        return [str(i) for i in result.inserted_ids]

    async def find(self, collection: str, query: Query | None = None, limit: int | None = None) -> list[Document]:
        cursor = self.db[collection].find(_to_filter(query))
        if limit:
            cursor = cursor.limit(limit)
        return [_from_document(doc) async for doc in cursor]

    async def find_one(self, collection: str, query: Query) -> Document | None:
        return _from_document(await self.db[collection].find_one(_to_filter(query)))

    async def find_by_id(self, collection: str, document_id: Any) -> Document | None:
        return _from_document(await self.db[collection].find_one({"_id": _to_object_id(document_id)}))

    async def update_one(self, collection: str, query: Query, update: Mapping[str, Any]) -> int:
        result = await self.db[collection].update_one(_to_filter(query), {"$set": set_fields(update)})
        return result.modified_count

    async def update_many(self, collection: str, query: Query, update: Mapping[str, Any]) -> int:
        result = await self.db[collection].update_many(_to_filter(query), {"$set": set_fields(update)})
        return result.modified_count

    async def delete_one(self, collection: str, query: Query) -> bool:
        result = await self.db[collection].delete_one(_to_filter(query))
        return result.deleted_count > 0

    async def delete_many(self, collection: str, query: Query | None = None) -> int:
        result = await self.db[collection].delete_many(_to_filter(query))
        return result.deleted_count

    async def count(self, collection: str, query: Query | None = None) -> int:
        return await self.db[collection].count_documents(_to_filter(query))

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
        """Aggregation pipeline: $match, $sort and $limit, then $lookup."""
        pipeline: list[dict[str, Any]] = []
        if query:
            pipeline.append({"$match": _to_filter(query)})
        if sort:
            pipeline.append({"$sort": {"_id" if sort == "id" else sort: DESCENDING if descending else ASCENDING}})
        if limit:
            pipeline.append({"$limit": int(limit)})
        pipeline.append(
            {"$lookup": {"from": other, "localField": local_field, "foreignField": foreign_field, "as": as_field}}
        )

        cursor = await self.db[collection].aggregate(pipeline)
        documents = []
        async for raw in cursor:
            document = _from_document(raw)
            document[as_field] = [_from_document(joined) for joined in document.get(as_field, [])]
            documents.append(document)
        return documents

    async def execute_raw_query(self, query: Any, params: Any = None) -> Any:
        """Run a database command, e.g. ``{"dbStats": 1}``."""
        return await self.db.command(query)
