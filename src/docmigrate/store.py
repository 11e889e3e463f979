"""Document store abstraction used by the migration layer.

A document store is collection-oriented and schema-less. Filters and update
documents use the native operator syntax (``$set``, ``$regex``, ``$in``, ...)
produced by :mod:`docmigrate.query` and :mod:`docmigrate.updates`.

Implementations must wrap driver failures in
:class:`~docmigrate.exceptions.StoreIOError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

Document = dict[str, Any]
Filter = dict[str, Any]
SortSpec = list[tuple[str, int]]


@dataclass
class WriteResult:
    """Counts reported by a multi-document write."""

    matched: int = 0
    modified: int = 0


class StoreCursor(ABC):
    """Forward-only cursor over raw documents."""

    @abstractmethod
    async def next(self) -> Document | None:
        """Return the next document, or None when the cursor is exhausted."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Release the cursor. Safe to call more than once."""
        raise NotImplementedError


class DocumentStore(ABC):
    """Abstract base class for async document stores.

    Example:
        ```python
        from docmigrate.backends import create_store

        store = create_store({"backend": "memory"})
        await store.insert_one("tasks", {"_id": "t1", "status": "open"})
        docs = await store.find("tasks", {"status": "open"})
        ```
    """

    @abstractmethod
    async def find(
        self,
        collection: str,
        filter: Filter,
        *,
        limit: int | None = None,
        sort: SortSpec | None = None,
    ) -> list[Document]:
        """Return all documents matching ``filter``."""
        raise NotImplementedError

    @abstractmethod
    async def cursor(
        self,
        collection: str,
        filter: Filter,
        *,
        limit: int | None = None,
        sort: SortSpec | None = None,
    ) -> StoreCursor:
        """Open a cursor over documents matching ``filter``."""
        raise NotImplementedError

    @abstractmethod
    async def update_many(self, collection: str, filter: Filter, update: Document) -> WriteResult:
        """Apply ``update`` to every document matching ``filter``."""
        raise NotImplementedError

    @abstractmethod
    async def bulk_write(
        self, collection: str, operations: list[tuple[Filter, Document]]
    ) -> WriteResult:
        """Apply each ``(filter, update)`` pair to the first matching document."""
        raise NotImplementedError

    @abstractmethod
    async def insert_one(self, collection: str, doc: Document) -> None:
        """Insert a single document."""
        raise NotImplementedError

    @abstractmethod
    async def insert_many(self, collection: str, docs: list[Document]) -> None:
        """Insert several documents."""
        raise NotImplementedError

    @abstractmethod
    async def delete_one(self, collection: str, filter: Filter) -> int:
        """Delete the first document matching ``filter``; return the count deleted."""
        raise NotImplementedError

    @abstractmethod
    async def delete_many(self, collection: str, filter: Filter) -> int:
        """Delete all documents matching ``filter``; return the count deleted."""
        raise NotImplementedError

    async def count(self, collection: str, filter: Filter | None = None) -> int:
        """Count documents matching ``filter``."""
        return len(await self.find(collection, filter or {}))

    async def close(self) -> None:  # noqa: B027
        """Release resources owned by the store. Default is a no-op."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
