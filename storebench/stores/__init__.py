"""
Store Adapters.

Document-shaped CRUD over the two compared stores:
- MongoDB (document store)
- PostgreSQL (relational store, JSONB tables)
"""

from storebench.stores.base import StoreAdapter, StoreType
from storebench.stores.mongodb import MongoDBAdapter
from storebench.stores.postgresql import PostgreSQLAdapter

__all__ = [
    "StoreAdapter",
    "StoreType",
    "MongoDBAdapter",
    "PostgreSQLAdapter",
]
