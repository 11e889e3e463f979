"""MongoDB document store backend using pymongo's asyncio API."""

from __future__ import annotations

import logging
from typing import Any

from bson.errors import BSONError
from dataknobs_config import ConfigurableBase
from pymongo import AsyncMongoClient, UpdateOne
from pymongo.errors import PyMongoError

from ..exceptions import ConfigurationError, StoreIOError
from ..store import Document, DocumentStore, Filter, SortSpec, StoreCursor, WriteResult

logger = logging.getLogger(__name__)


class MongoCursor(StoreCursor):
    """Wraps a pymongo ``AsyncCursor``."""

    def __init__(self, cursor: Any, collection: str):
        self._cursor = cursor
        self._collection = collection
        self._closed = False

    async def next(self) -> Document | None:
        if self._closed:
            return None
        try:
            return await self._cursor.next()
        except StopAsyncIteration:
            return None
        except (PyMongoError, BSONError) as e:
            raise StoreIOError("cursor.next", str(e), self._collection) from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._cursor.close()
        except (PyMongoError, BSONError) as e:
            raise StoreIOError("cursor.close", str(e), self._collection) from e


class MongoDocumentStore(DocumentStore, ConfigurableBase):
    """Document store backed by a MongoDB database.

    The store keeps a non-owning reference to an ``AsyncDatabase`` supplied by
    the surrounding process. When built with :meth:`from_config` it creates
    and owns its client, which :meth:`close` then releases.

    Example:
        ```python
        from pymongo import AsyncMongoClient

        client = AsyncMongoClient("mongodb://localhost:27017")
        store = MongoDocumentStore(client["workspace"])
        ```
    """

    def __init__(self, db: Any, client: Any | None = None):
        self.db = db
        self._owned_client = client

    @classmethod
    def from_config(cls, config: dict) -> MongoDocumentStore:
        """Create from config dictionary.

        Config keys:
            uri: MongoDB connection string
            database: Database name
        """
        uri = config.get("uri")
        database = config.get("database")
        if not uri:
            raise ConfigurationError("uri", "MongoDB connection string is required")
        if not database:
            raise ConfigurationError("database", "database name is required")
        client: AsyncMongoClient = AsyncMongoClient(uri)
        logger.info(f"Connected Mongo document store to database: {database}")
        return cls(client[database], client=client)

    def _open(
        self, collection: str, filter: Filter, limit: int | None, sort: SortSpec | None
    ) -> Any:
        cursor = self.db[collection].find(filter)
        if limit is not None:
            cursor = cursor.limit(limit)
        if sort:
            cursor = cursor.sort(sort)
        return cursor

    async def find(
        self,
        collection: str,
        filter: Filter,
        *,
        limit: int | None = None,
        sort: SortSpec | None = None,
    ) -> list[Document]:
        try:
            return await self._open(collection, filter, limit, sort).to_list()
        except (PyMongoError, BSONError) as e:
            raise StoreIOError("find", str(e), collection) from e

    async def cursor(
        self,
        collection: str,
        filter: Filter,
        *,
        limit: int | None = None,
        sort: SortSpec | None = None,
    ) -> StoreCursor:
        try:
            return MongoCursor(self._open(collection, filter, limit, sort), collection)
        except (PyMongoError, BSONError) as e:
            raise StoreIOError("cursor", str(e), collection) from e

    async def update_many(self, collection: str, filter: Filter, update: Document) -> WriteResult:
        try:
            result = await self.db[collection].update_many(filter, update)
        except (PyMongoError, BSONError) as e:
            raise StoreIOError("update_many", str(e), collection) from e
        return WriteResult(matched=result.matched_count, modified=result.modified_count)

    async def bulk_write(
        self, collection: str, operations: list[tuple[Filter, Document]]
    ) -> WriteResult:
        if not operations:
            return WriteResult()
        requests = [UpdateOne(filter, update) for filter, update in operations]
        try:
            result = await self.db[collection].bulk_write(requests)
        except (PyMongoError, BSONError) as e:
            raise StoreIOError("bulk_write", str(e), collection) from e
        return WriteResult(matched=result.matched_count, modified=result.modified_count)

    async def insert_one(self, collection: str, doc: Document) -> None:
        try:
            await self.db[collection].insert_one(doc)
        except (PyMongoError, BSONError) as e:
            raise StoreIOError("insert_one", str(e), collection) from e

    async def insert_many(self, collection: str, docs: list[Document]) -> None:
        if not docs:
            return
        try:
            await self.db[collection].insert_many(docs)
        except (PyMongoError, BSONError) as e:
            raise StoreIOError("insert_many", str(e), collection) from e

    async def delete_one(self, collection: str, filter: Filter) -> int:
        try:
            result = await self.db[collection].delete_one(filter)
        except (PyMongoError, BSONError) as e:
            raise StoreIOError("delete_one", str(e), collection) from e
        return result.deleted_count

    async def delete_many(self, collection: str, filter: Filter) -> int:
        try:
            result = await self.db[collection].delete_many(filter)
        except (PyMongoError, BSONError) as e:
            raise StoreIOError("delete_many", str(e), collection) from e
        return result.deleted_count

    async def count(self, collection: str, filter: Filter | None = None) -> int:
        try:
            return await self.db[collection].count_documents(filter or {})
        except (PyMongoError, BSONError) as e:
            raise StoreIOError("count", str(e), collection) from e

    async def close(self) -> None:
        if self._owned_client is not None:
            await self._owned_client.close()
            self._owned_client = None
