"""In-memory document store backend.

Evaluates the subset of the native filter and update syntax used by the
migration layer:

- filters: equality (with array containment), ``$eq``, ``$ne``, ``$gt``,
  ``$gte``, ``$lt``, ``$lte``, ``$in``, ``$nin``, ``$exists``, ``$regex`` with
  ``$options``, ``$not``, and top-level ``$and``/``$or``/``$nor``
- updates: ``$set``, ``$unset``, ``$inc``, ``$push``, ``$pull``, ``$rename``

Unknown operators raise :class:`~docmigrate.exceptions.StoreIOError`, the
same way a real store rejects a malformed query.
"""

from __future__ import annotations

import asyncio
import copy
import re
import uuid
from collections import OrderedDict
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from dataknobs_config import ConfigurableBase

from ..exceptions import StoreIOError
from ..store import Document, DocumentStore, Filter, SortSpec, StoreCursor, WriteResult

_MISSING = object()

_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}


def _get_path(doc: Any, path: str) -> Any:
    """Resolve a dotted path, returning _MISSING when absent."""
    current = doc
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return _MISSING
            current = current[part]
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return _MISSING
            current = current[index]
        else:
            return _MISSING
    return current


def _set_path(doc: dict, path: str, value: Any) -> None:
    parts = path.split(".")
    current = doc
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def _unset_path(doc: dict, path: str) -> None:
    parts = path.split(".")
    current: Any = doc
    for part in parts[:-1]:
        current = current.get(part) if isinstance(current, dict) else None
        if current is None:
            return
    if isinstance(current, dict):
        current.pop(parts[-1], None)


def _compare(value: Any, target: Any, op: str) -> bool:
    if value is _MISSING or value is None or target is None:
        return False
    try:
        if op == "$gt":
            return value > target
        if op == "$gte":
            return value >= target
        if op == "$lt":
            return value < target
        return value <= target
    except TypeError:
        return False


def _equals(value: Any, target: Any) -> bool:
    if target is None:
        return value is _MISSING or value is None
    if value is _MISSING:
        return False
    if isinstance(value, list) and not isinstance(target, list):
        return any(item == target for item in value)
    return value == target


def _regex_matches(value: Any, pattern: Any, options: str = "") -> bool:
    flags = 0
    for option in options:
        flags |= _REGEX_FLAGS.get(option, 0)
    if isinstance(pattern, re.Pattern):
        compiled = re.compile(pattern.pattern, pattern.flags | flags)
    else:
        compiled = re.compile(str(pattern), flags)
    values = value if isinstance(value, list) else [value]
    return any(isinstance(item, str) and compiled.search(item) is not None for item in values)


def _match_operators(value: Any, operators: Mapping[str, Any], collection: str) -> bool:
    for op, target in operators.items():
        if op == "$options":
            continue
        if op == "$eq":
            ok = _equals(value, target)
        elif op == "$ne":
            ok = not _equals(value, target)
        elif op in ("$gt", "$gte", "$lt", "$lte"):
            ok = _compare(value, target, op)
        elif op == "$in":
            ok = any(_equals(value, item) for item in target)
        elif op == "$nin":
            ok = not any(_equals(value, item) for item in target)
        elif op == "$exists":
            ok = (value is not _MISSING) == bool(target)
        elif op == "$regex":
            ok = value is not _MISSING and _regex_matches(
                value, target, operators.get("$options", "")
            )
        elif op == "$not":
            ok = not _match_condition(value, target, collection)
        else:
            raise StoreIOError("find", f"unknown operator: {op}", collection)
        if not ok:
            return False
    return True


def _is_operator_mapping(condition: Any) -> bool:
    return (
        isinstance(condition, Mapping)
        and len(condition) > 0
        and all(isinstance(key, str) and key.startswith("$") for key in condition)
    )


def _match_condition(value: Any, condition: Any, collection: str) -> bool:
    if _is_operator_mapping(condition):
        return _match_operators(value, condition, collection)
    if isinstance(condition, re.Pattern):
        return value is not _MISSING and _regex_matches(value, condition)
    return _equals(value, condition)


def matches(doc: Document, filter: Filter, collection: str = "") -> bool:
    """Check if a document matches a native filter."""
    for key, condition in filter.items():
        if key == "$and":
            if not all(matches(doc, sub, collection) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(doc, sub, collection) for sub in condition):
                return False
        elif key == "$nor":
            if any(matches(doc, sub, collection) for sub in condition):
                return False
        elif key.startswith("$"):
            raise StoreIOError("find", f"unknown top-level operator: {key}", collection)
        elif not _match_condition(_get_path(doc, key), condition, collection):
            return False
    return True


def apply_update(doc: Document, update: Document, collection: str = "") -> bool:
    """Apply a native update document in place.

    Returns:
        True if the document changed
    """
    if not update or not all(key.startswith("$") for key in update):
        raise StoreIOError("update", "update document must only contain operators", collection)
    before = copy.deepcopy(doc)
    for op, assignments in update.items():
        for path, value in assignments.items():
            if op == "$set":
                _set_path(doc, path, copy.deepcopy(value))
            elif op == "$unset":
                _unset_path(doc, path)
            elif op == "$inc":
                current = _get_path(doc, path)
                _set_path(doc, path, (0 if current is _MISSING else current) + value)
            elif op == "$push":
                current = _get_path(doc, path)
                items = [] if current is _MISSING else list(current)
                items.append(copy.deepcopy(value))
                _set_path(doc, path, items)
            elif op == "$pull":
                current = _get_path(doc, path)
                if isinstance(current, list):
                    _set_path(doc, path, [item for item in current if item != value])
            elif op == "$rename":
                current = _get_path(doc, path)
                if current is not _MISSING:
                    _unset_path(doc, path)
                    _set_path(doc, value, current)
            else:
                raise StoreIOError("update", f"unknown update operator: {op}", collection)
    return doc != before


def _sort_key(value: Any) -> tuple:
    if value is _MISSING or value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (5, value)
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, (datetime, date)):
        return (6, value.isoformat())
    return (3, repr(value))


def sort_documents(docs: list[Document], sort: SortSpec | None) -> list[Document]:
    """Sort documents by ``(field, direction)`` pairs, first pair most significant."""
    if not sort:
        return docs
    result = list(docs)
    for key, direction in reversed(sort):
        result.sort(key=lambda d, k=key: _sort_key(_get_path(d, k)), reverse=direction < 0)
    return result


class MemoryCursor(StoreCursor):
    """Cursor over a snapshot of matching documents."""

    def __init__(self, docs: list[Document]):
        self._docs = docs
        self._position = 0
        self.closed = False

    async def next(self) -> Document | None:
        if self.closed or self._position >= len(self._docs):
            return None
        doc = self._docs[self._position]
        self._position += 1
        return doc

    async def close(self) -> None:
        self.closed = True
        self._docs = []


class AsyncMemoryDocumentStore(DocumentStore, ConfigurableBase):
    """Async in-memory document store."""

    def __init__(self, config: dict[str, Any] | None = None):
        self.config = config or {}
        self._collections: dict[str, OrderedDict[Any, Document]] = {}
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: dict) -> AsyncMemoryDocumentStore:
        """Create from config dictionary."""
        return cls(config)

    def _collection(self, name: str) -> OrderedDict[Any, Document]:
        return self._collections.setdefault(name, OrderedDict())

    def _select(
        self,
        collection: str,
        filter: Filter,
        limit: int | None = None,
        sort: SortSpec | None = None,
    ) -> list[Document]:
        docs = [d for d in self._collection(collection).values() if matches(d, filter, collection)]
        docs = sort_documents(docs, sort)
        if limit:
            docs = docs[:limit]
        return [copy.deepcopy(d) for d in docs]

    def _insert(self, collection: str, doc: Document, operation: str) -> None:
        stored = copy.deepcopy(doc)
        if "_id" not in stored:
            stored["_id"] = uuid.uuid4().hex
        docs = self._collection(collection)
        if stored["_id"] in docs:
            raise StoreIOError(operation, f"duplicate key: {stored['_id']}", collection)
        docs[stored["_id"]] = stored

    async def find(
        self,
        collection: str,
        filter: Filter,
        *,
        limit: int | None = None,
        sort: SortSpec | None = None,
    ) -> list[Document]:
        async with self._lock:
            return self._select(collection, filter, limit, sort)

    async def cursor(
        self,
        collection: str,
        filter: Filter,
        *,
        limit: int | None = None,
        sort: SortSpec | None = None,
    ) -> StoreCursor:
        async with self._lock:
            return MemoryCursor(self._select(collection, filter, limit, sort))

    async def update_many(self, collection: str, filter: Filter, update: Document) -> WriteResult:
        async with self._lock:
            result = WriteResult()
            for doc in self._collection(collection).values():
                if matches(doc, filter, collection):
                    result.matched += 1
                    if apply_update(doc, update, collection):
                        result.modified += 1
            return result

    async def bulk_write(
        self, collection: str, operations: list[tuple[Filter, Document]]
    ) -> WriteResult:
        async with self._lock:
            result = WriteResult()
            docs = self._collection(collection)
            for filter, update in operations:
                for doc in docs.values():
                    if matches(doc, filter, collection):
                        result.matched += 1
                        if apply_update(doc, update, collection):
                            result.modified += 1
                        break
            return result

    async def insert_one(self, collection: str, doc: Document) -> None:
        async with self._lock:
            self._insert(collection, doc, "insert_one")

    async def insert_many(self, collection: str, docs: list[Document]) -> None:
        async with self._lock:
            for doc in docs:
                self._insert(collection, doc, "insert_many")

    async def delete_one(self, collection: str, filter: Filter) -> int:
        async with self._lock:
            docs = self._collection(collection)
            for key, doc in docs.items():
                if matches(doc, filter, collection):
                    del docs[key]
                    return 1
            return 0

    async def delete_many(self, collection: str, filter: Filter) -> int:
        async with self._lock:
            docs = self._collection(collection)
            doomed = [key for key, doc in docs.items() if matches(doc, filter, collection)]
            for key in doomed:
                del docs[key]
            return len(doomed)

    async def count(self, collection: str, filter: Filter | None = None) -> int:
        async with self._lock:
            return sum(1 for d in self._collection(collection).values() if matches(d, filter or {}))

    def collections(self) -> list[str]:
        """List collection names that have been touched."""
        return list(self._collections)
