"""Migration client for rewriting live document collections.

Every write performed through :class:`MigrateClient` clears the freshness
marker of the touched documents, so the indexer picks them up again.

Example:
    ```python
    from docmigrate import MigrateClient, Patch, create_store

    client = MigrateClient(create_store({"backend": "memory"}))

    await client.update("tasks", {"status": "open"}, {"status": "closed"})
    await client.update("tasks", {"title": {"$like": "Draft%"}}, Patch({"$unset": {"draft": ""}}))

    async with await client.traverse("tasks", {}) as it:
        while docs := await it.next(100):
            ...
    ```
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Union

from .config import MigrationSettings
from .exceptions import StoreIOError, UnsupportedUpdateError
from .freshness import FreshnessMarker
from .logger import LoggingModelLogger, ModelLogger
from .query import FindOptions, translate_query, translate_sort
from .store import Document, DocumentStore, StoreCursor
from .updates import MigrationUpdate, Patch, as_update

logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    """Aggregated counts of a migration write."""

    matched: int = 0
    updated: int = 0

    def __add__(self, other: MigrationResult) -> MigrationResult:
        return MigrationResult(self.matched + other.matched, self.updated + other.updated)


@dataclass
class BulkUpdate:
    """One item of a bulk write: a filter and its plain-value replacement."""

    filter: dict[str, Any]
    update: dict[str, Any]


BulkItem = Union[BulkUpdate, tuple, Mapping[str, Any]]


class MigrationIterator:
    """Forward-only, single-consumer iterator over a traversal.

    ``next(size)`` returns up to ``size`` documents, fewer at exhaustion and an
    empty list afterwards. Any fault while pulling is logged and turns
    into a terminal ``None``. ``close()`` is idempotent; using the iterator as
    an async context manager guarantees it runs on every exit path.
    """

    def __init__(self, cursor: StoreCursor, collection: str, batch_size: int = 100):
        self._cursor = cursor
        self.collection = collection
        self.batch_size = batch_size
        self._closed = False
        self._exhausted = False
        self._faulted = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def faulted(self) -> bool:
        """True once a read fault has terminated the traversal."""
        return self._faulted

    async def next(self, size: int) -> list[Document] | None:
        """Pull up to ``size`` documents.

        Args:
            size: Maximum number of documents to return; zero returns an
                empty list without reading

        Returns:
            List of documents, or None if the traversal faulted
        """
        if size < 0:
            raise ValueError("size must not be negative")
        if self._faulted:
            return None
        if self._closed or self._exhausted:
            return []

        docs: list[Document] = []
        while len(docs) < size:
            try:
                doc = await self._cursor.next()
            except Exception:
                logger.exception(f"Traversal of '{self.collection}' stopped by a read fault")
                self._faulted = True
                return None
            if doc is None:
                self._exhausted = True
                break
            docs.append(doc)
        return docs

    async def close(self) -> None:
        """Release the underlying cursor. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        await self._cursor.close()

    async def batches(self, size: int | None = None) -> AsyncIterator[list[Document]]:
        """Yield batches until exhaustion or fault, then close the iterator."""
        try:
            while True:
                batch = await self.next(size or self.batch_size)
                if not batch:
                    return
                yield batch
        finally:
            await self.close()

    async def __aenter__(self) -> MigrationIterator:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class MigrateClient:
    """Orchestrates migration operations against a document store.

    The client holds a non-owning reference to the store; closing the store
    is the responsibility of whoever created it.

    Args:
        store: Document store to migrate
        settings: Migration settings (defaults apply when omitted)
        model_logger: Sink for operational events such as slow updates
        clock: Monotonic clock used for timing, in seconds
    """

    def __init__(
        self,
        store: DocumentStore,
        settings: MigrationSettings | None = None,
        model_logger: ModelLogger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.settings = settings or MigrationSettings()
        self.marker = FreshnessMarker(self.settings.freshness_field)
        self.model_logger = model_logger or LoggingModelLogger()
        self._clock = clock

    async def find(
        self,
        collection: str,
        query: Mapping[str, Any],
        options: FindOptions | None = None,
    ) -> list[Document]:
        """Find all matching documents. Intended for small result sets."""
        options = options or FindOptions()
        return await self.store.find(
            collection,
            translate_query(query),
            limit=options.limit,
            sort=translate_sort(options.sort),
        )

    async def traverse(
        self,
        collection: str,
        query: Mapping[str, Any],
        options: FindOptions | None = None,
    ) -> MigrationIterator:
        """Open a lazy traversal over matching documents.

        The caller must close the returned iterator, preferably with
        ``async with``.
        """
        options = options or FindOptions()
        cursor = await self.store.cursor(
            collection,
            translate_query(query),
            limit=options.limit,
            sort=translate_sort(options.sort),
        )
        return MigrationIterator(cursor, collection, self.settings.traverse_batch_size)

    async def update(
        self,
        collection: str,
        query: Mapping[str, Any],
        update: MigrationUpdate | Mapping[str, Any],
    ) -> MigrationResult:
        """Update every matching document and clear its freshness marker.

        A bare mapping is treated as a :class:`~docmigrate.updates.Replace`.
        """
        started = self._clock()
        try:
            native = as_update(update).render(self.marker)
            result = await self.store.update_many(collection, translate_query(query), native)
            return MigrationResult(matched=result.matched, updated=result.modified)
        finally:
            self._record_timing("update", started, {"collection": collection, "query": dict(query)})

    async def bulk(self, collection: str, items: list[BulkItem]) -> MigrationResult:
        """Apply independent filter/replacement pairs as one batched write.

        Each update is a plain-value replacement with the freshness marker
        cleared. Operator documents are not accepted here.

        Raises:
            UnsupportedUpdateError: If an item carries a Patch
        """
        operations = [self._bulk_operation(item) for item in items]
        if not operations:
            return MigrationResult()
        result = await self.store.bulk_write(collection, operations)
        return MigrationResult(matched=result.matched, updated=result.modified)

    def _bulk_operation(self, item: BulkItem) -> tuple[dict[str, Any], dict[str, Any]]:
        if isinstance(item, BulkUpdate):
            filter, update = item.filter, item.update
        elif isinstance(item, Mapping):
            filter, update = item["filter"], item["update"]
        else:
            filter, update = item
        if isinstance(update, Patch):
            raise UnsupportedUpdateError("bulk", "patch")
        return translate_query(filter), as_update(update).render(self.marker)

    async def move(
        self,
        source: str,
        query: Mapping[str, Any],
        target: str,
        *,
        skip_existing: bool = False,
    ) -> MigrationResult:
        """Move matching documents from ``source`` to ``target``.

        Documents are copied one at a time without their freshness marker;
        the source matches are deleted only after the copy completes. The
        move is not atomic: a crash between copy and delete leaves copies in
        both collections. Pass ``skip_existing`` to make a re-run skip
        documents whose ``_id`` is already present in ``target``.
        """
        self.model_logger.log("move", {"source": source, "target": target, "query": dict(query)})
        filter = translate_query(query)
        result = MigrationResult()
        cursor = await self.store.cursor(source, filter)
        try:
            while True:
                doc = await cursor.next()
                if doc is None:
                    break
                self.marker.strip(doc)
                result.matched += 1
                if skip_existing and "_id" in doc:
                    if await self.store.count(target, {"_id": doc["_id"]}) > 0:
                        continue
                await self.store.insert_one(target, doc)
                result.updated += 1
        finally:
            try:
                await cursor.close()
            except StoreIOError:
                logger.exception(f"Failed to close cursor over '{source}' during move")
        await self.store.delete_many(source, filter)
        return result

    async def create(self, collection: str, doc: Document | list[Document]) -> None:
        """Insert one document or a list of documents."""
        if isinstance(doc, list):
            if doc:
                await self.store.insert_many(collection, doc)
        else:
            await self.store.insert_one(collection, doc)

    async def delete(self, collection: str, id: Any) -> None:
        """Delete the document with the given ``_id``."""
        await self.store.delete_one(collection, {"_id": id})

    async def delete_many(self, collection: str, query: Mapping[str, Any]) -> None:
        """Delete every matching document."""
        await self.store.delete_many(collection, translate_query(query))

    def _record_timing(self, operation: str, started: float, data: dict[str, Any]) -> None:
        elapsed = self._clock() - started
        if elapsed <= self.settings.slow_warn_seconds:
            return
        slow = elapsed > self.settings.slow_escalate_seconds
        self.model_logger.log(f"{operation}slow" if slow else operation, {**data, "time": elapsed})
