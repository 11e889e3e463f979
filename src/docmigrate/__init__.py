"""docmigrate - migrations over schema-less document stores with staged reindexing.

The package has two halves:

- a migration layer (:class:`MigrateClient`) that rewrites live document
  collections (find, traverse, update, bulk, move, create, delete) and
  clears the freshness marker of every document it touches;
- a staged full-text invalidation tracker (:class:`StageStateStore` and the
  propagation functions) that decides which indexing stages must recompute.

Modules:
    client: MigrateClient, MigrationIterator and MigrationResult
    query: Translation of migration queries (``$like``) into native filters
    updates: Replace and Patch update shapes
    store: DocumentStore abstraction
    backends: In-memory and MongoDB stores, plus the store factory
    stages: Versioned index stage state
    propagation: Hierarchy-aware stage invalidation
    hierarchy: Class hierarchy interface and static implementation
    equality: Structural comparison of stored values
    config: MigrationSettings
    exceptions: Custom exceptions

Quick Example:

    ```python
    from docmigrate import MigrateClient, StageStateStore, create_store

    store = create_store({"backend": "memory"})
    client = MigrateClient(store)

    await client.create("tasks", [{"_id": "t1", "status": "open", "%hash%": "abc"}])
    result = await client.update("tasks", {"status": "open"}, {"status": "closed"})
    print(result)  # MigrationResult(matched=1, updated=1)

    stages = StageStateStore(store)
    version, state = await stages.load_index_stage_state("stage-1", "version", 5)
    print(version)  # '1'
    ```
"""

from .backends import AsyncMemoryDocumentStore, MongoDocumentStore, create_store
from .client import BulkUpdate, MigrateClient, MigrationIterator, MigrationResult
from .config import MigrationSettings
from .content import FullTextAttribute, create_state_doc, get_content
from .equality import deep_equal
from .exceptions import (
    BackendNotFoundError,
    ConfigurationError,
    DocMigrateError,
    StoreIOError,
    UnsupportedUpdateError,
    UpdateShapeError,
)
from .freshness import FreshnessMarker
from .hierarchy import (
    ClassDescriptor,
    ClassHierarchy,
    FullTextSearchContext,
    StaticClassHierarchy,
)
from .logger import LoggingModelLogger, ModelLogger, RecordingModelLogger
from .propagation import (
    collect_propagate,
    collect_propagate_classes,
    traverse_full_text_contexts,
)
from .query import FindOptions, SortOrder, translate_query
from .stages import IndexStageState, StageStateStore
from .store import DocumentStore, StoreCursor, WriteResult
from .updates import Patch, Replace

__version__ = "0.1.0"

__all__ = [
    "AsyncMemoryDocumentStore",
    "BackendNotFoundError",
    "BulkUpdate",
    "ClassDescriptor",
    "ClassHierarchy",
    "ConfigurationError",
    "DocMigrateError",
    "DocumentStore",
    "FindOptions",
    "FreshnessMarker",
    "FullTextAttribute",
    "FullTextSearchContext",
    "IndexStageState",
    "LoggingModelLogger",
    "MigrateClient",
    "MigrationIterator",
    "MigrationResult",
    "MigrationSettings",
    "ModelLogger",
    "MongoDocumentStore",
    "Patch",
    "RecordingModelLogger",
    "Replace",
    "SortOrder",
    "StageStateStore",
    "StaticClassHierarchy",
    "StoreCursor",
    "StoreIOError",
    "UnsupportedUpdateError",
    "UpdateShapeError",
    "WriteResult",
    "__version__",
    "collect_propagate",
    "collect_propagate_classes",
    "create_state_doc",
    "create_store",
    "deep_equal",
    "get_content",
    "traverse_full_text_contexts",
    "translate_query",
]
