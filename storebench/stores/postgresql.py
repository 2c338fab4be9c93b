"""
PostgreSQL Store Adapter.

Relational side of the comparison. Each benchmark "collection" is a table

    (id BIGSERIAL PRIMARY KEY, data JSONB NOT NULL)

so the same document workloads run unchanged against both stores. Equality
filters become JSONB containment (``data @> ...``), which a GIN
``jsonb_path_ops`` index serves when the collection is created with index
fields.

psycopg2 is blocking; every driver call runs in a worker thread so the event
loop is never stalled. Calls are still issued strictly one at a time.
"""

import asyncio
import base64
import json
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any

import psycopg2
import structlog
from psycopg2 import sql
from psycopg2.extras import Json, execute_values

from storebench.config.settings import PostgreSQLSettings, get_settings
from storebench.core.exceptions import StoreConnectionError
from storebench.stores.base import Document, Query, StoreAdapter, StoreType, set_fields

logger = structlog.get_logger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return {"$binary": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _dumps(value: Any) -> str:
    return json.dumps(value, default=_json_default)


def _jsonb(value: Mapping[str, Any]) -> Json:
    return Json(dict(value), dumps=_dumps)


def _where(query: Query | None) -> tuple[sql.Composable, list[Any]]:
    """Build a WHERE clause: ``id`` matches the primary key, other fields use containment."""
    filter_ = dict(query or {})
    clauses: list[sql.Composable] = []
    params: list[Any] = []

    if "id" in filter_:
        clauses.append(sql.SQL("id = %s"))
        params.append(filter_.pop("id"))
    if filter_:
        clauses.append(sql.SQL("data @> %s::jsonb"))
        params.append(_jsonb(filter_))

    if not clauses:
        return sql.SQL("TRUE"), params
    return sql.SQL(" AND ").join(clauses), params


def _order_by(field_name: str | None, alias: str | None = None) -> sql.Composable:
    """Sort key: the primary key for ``None``/``"id"``, else the JSONB field."""
    prefix = sql.SQL("{}.").format(sql.Identifier(alias)) if alias else sql.SQL("")
    if field_name in (None, "id"):
        return prefix + sql.SQL("id")
    return prefix + sql.SQL("data -> {}").format(sql.Literal(field_name))


def _to_document(row: Sequence[Any] | None) -> Document | None:
    if row is None:
        return None
    doc_id, data = row
    doc = dict(data or {})
    doc["id"] = doc_id
    return doc


class PostgreSQLAdapter(StoreAdapter):
    """PostgreSQL adapter storing documents in JSONB tables."""

    store_type = StoreType.POSTGRESQL.value

    def __init__(self, settings: PostgreSQLSettings | None = None) -> None:
        self._settings = settings or get_settings().postgresql
        self._conn = None

    async def connect(self) -> None:
        """Open the connection (autocommit, one statement per transaction)."""
        if self.is_connected():
            return

        conn = await asyncio.to_thread(
            psycopg2.connect,
            host=self._settings.host,
            port=self._settings.port,
            dbname=self._settings.database,
            user=self._settings.user,
            password=self._settings.password.get_secret_value(),
            connect_timeout=self._settings.connect_timeout,
        )
        conn.autocommit = True
        self._conn = conn
        logger.info("Connected to PostgreSQL", host=self._settings.host, database=self._settings.database)

    async def disconnect(self) -> None:
        if self._conn is not None:
            conn, self._conn = self._conn, None
            await asyncio.to_thread(conn.close)
            logger.info("Disconnected from PostgreSQL")

    def is_connected(self) -> bool:
        return self._conn is not None and not self._conn.closed

    def _execute(self, statement: Any, params: Sequence[Any] | None, fetch: str | None) -> Any:
        if self._conn is None:
            raise StoreConnectionError("PostgreSQL adapter is not connected")

        with self._conn.cursor() as cur:
            cur.execute(statement, params)
            if fetch == "all":
                return cur.fetchall()
            if fetch == "one":
                return cur.fetchone()
            if fetch == "auto":
                return cur.fetchall() if cur.description is not None else cur.rowcount
            return cur.rowcount

    async def _run(self, statement: Any, params: Sequence[Any] | None = None, fetch: str | None = None) -> Any:
        return await asyncio.to_thread(self._execute, statement, params, fetch)

    async def server_version(self) -> str:
        row = await self._run("SELECT version()", fetch="one")
        return str(row[0])

    # =========================================================================
    # Tables
    # =========================================================================

    async def create_collection(self, name: str, index_fields: Sequence[str] = ()) -> None:
        table = sql.Identifier(name)
        await self._run(
            sql.SQL(
                "CREATE TABLE IF NOT EXISTS {} (id BIGSERIAL PRIMARY KEY, data JSONB NOT NULL)"
            ).format(table)
        )
        if index_fields:
            await self._run(
                sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {} USING GIN (data jsonb_path_ops)").format(
                    sql.Identifier(f"{name}_data_gin"), table
                )
            )

    async def drop_collection(self, name: str) -> bool:
        existed = await self.collection_exists(name)
        if existed:
            await self._run(sql.SQL("DROP TABLE IF EXISTS {}").format(sql.Identifier(name)))
        return existed

    async def collection_exists(self, name: str) -> bool:
        row = await self._run("SELECT to_regclass(%s) IS NOT NULL", [name], fetch="one")
        return bool(row[0])

    # =========================================================================
    # CRUD
    # =========================================================================

    async def insert_one(self, collection: str, document: Mapping[str, Any]) -> int:
        row = await self._run(
            sql.SQL("INSERT INTO {} (data) VALUES (%s) RETURNING id").format(sql.Identifier(collection)),
            [_jsonb(document)],
            fetch="one",
        )
        return row[0]

    def _insert_many(self, collection: str, documents: Sequence[Mapping[str, Any]]) -> list[int]:
        if self._conn is None:
            raise StoreConnectionError("PostgreSQL adapter is not connected")
        statement = sql.SQL("INSERT INTO {} (data) VALUES %s RETURNING id").format(sql.Identifier(collection))
        with self._conn.cursor() as cur:
            rows = execute_values(
                cur,
                statement,
                [(_jsonb(doc),) for doc in documents],
                page_size=max(len(documents), 1),
                fetch=True,
            )
        return [row[0] for row in rows]

    async def insert_many(self, collection: str, documents: Sequence[Mapping[str, Any]]) -> list[int]:
        if not documents:
            return []
        return await asyncio.to_thread(self._insert_many, collection, documents)

    async def find(self, collection: str, query: Query | None = None, limit: int | None = None) -> list[Document]:
        where, params = _where(query)
        statement = sql.SQL("SELECT id, data FROM {} WHERE {}").format(sql.Identifier(collection), where)
        if limit:
            statement = statement + sql.SQL(" LIMIT {}").format(sql.Literal(int(limit)))
        rows = await self._run(statement, params, fetch="all")
        return [_to_document(row) for row in rows]

    async def find_one(self, collection: str, query: Query) -> Document | None:
        where, params = _where(query)
        statement = sql.SQL("SELECT id, data FROM {} WHERE {} LIMIT 1").format(sql.Identifier(collection), where)
        return _to_document(await self._run(statement, params, fetch="one"))

    async def find_by_id(self, collection: str, document_id: Any) -> Document | None:
        return await self.find_one(collection, {"id": document_id})

    async def update_one(self, collection: str, query: Query, update: Mapping[str, Any]) -> int:
        table = sql.Identifier(collection)
        where, params = _where(query)
        statement = sql.SQL(
            "UPDATE {table} SET data = data || %s::jsonb "
            "WHERE id = (SELECT id FROM {table} WHERE {where} LIMIT 1)"
        ).format(table=table, where=where)
        return await self._run(statement, [_jsonb(set_fields(update)), *params])

    async def update_many(self, collection: str, query: Query, update: Mapping[str, Any]) -> int:
        where, params = _where(query)
        statement = sql.SQL("UPDATE {} SET data = data || %s::jsonb WHERE {}").format(
            sql.Identifier(collection), where
        )
        return await self._run(statement, [_jsonb(set_fields(update)), *params])

    async def delete_one(self, collection: str, query: Query) -> bool:
        table = sql.Identifier(collection)
        where, params = _where(query)
        statement = sql.SQL(
            "DELETE FROM {table} WHERE id = (SELECT id FROM {table} WHERE {where} LIMIT 1)"
        ).format(table=table, where=where)
        return await self._run(statement, params) > 0

    async def delete_many(self, collection: str, query: Query | None = None) -> int:
        where, params = _where(query)
        statement = sql.SQL("DELETE FROM {} WHERE {}").format(sql.Identifier(collection), where)
        return await self._run(statement, params)

    async def count(self, collection: str, query: Query | None = None) -> int:
        where, params = _where(query)
        statement = sql.SQL("SELECT count(*) FROM {} WHERE {}").format(sql.Identifier(collection), where)
        row = await self._run(statement, params, fetch="one")
        return int(row[0])

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
        LEFT JOIN on JSONB fields with the joined rows folded into an array.

        Filtering, ordering and the limit apply to ``collection`` in a
        subquery so the join only touches the selected rows.
        """
        where, params = _where(query)
        direction = sql.SQL(" DESC" if descending else "")
        selected = sql.SQL("SELECT id, data FROM {table} WHERE {where} ORDER BY {order}{direction}").format(
            table=sql.Identifier(collection),
            where=where,
            order=_order_by(sort),
            direction=direction,
        )
        if limit:
            selected = selected + sql.SQL(" LIMIT {}").format(sql.Literal(int(limit)))

        statement = sql.SQL(
            "SELECT l.id, l.data, "
            "COALESCE(jsonb_agg(r.data || jsonb_build_object('id', r.id) ORDER BY r.id) "
            "FILTER (WHERE r.id IS NOT NULL), '[]'::jsonb) "
            "FROM ({selected}) AS l "
            "LEFT JOIN {other} AS r ON r.data -> {foreign} = l.data -> {local} "
            "GROUP BY l.id, l.data "
            "ORDER BY {outer_order}{direction}"
        ).format(
            selected=selected,
            other=sql.Identifier(other),
            foreign=sql.Literal(foreign_field),
            local=sql.Literal(local_field),
            outer_order=_order_by(sort, alias="l"),
            direction=direction,
        )
        rows = await self._run(statement, params, fetch="all")

        documents = []
        for doc_id, data, joined in rows:
            document = _to_document((doc_id, data))
            document[as_field] = list(joined or [])
            documents.append(document)
        return documents

    async def execute_raw_query(self, query: Any, params: Any = None) -> Any:
        """Run SQL. Returns rows for statements that produce them, else the affected row count."""
        return await self._run(query, params, fetch="auto")
