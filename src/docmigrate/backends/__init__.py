"""Document store backend implementations."""

from __future__ import annotations

import logging
from typing import Any, Type

from dataknobs_common import NotFoundError, Registry
from dataknobs_config import FactoryBase

from ..exceptions import BackendNotFoundError
from ..store import DocumentStore
from .memory import AsyncMemoryDocumentStore
from .mongo import MongoDocumentStore

logger = logging.getLogger(__name__)


class BackendRegistry(Registry[Type[DocumentStore]]):
    """Registry of available document store backends.

    Backends are registered by lower-case name together with descriptive
    metadata.
    """

    def __init__(self) -> None:
        """Initialize the backend registry."""
        super().__init__("store_backends", enable_metrics=True)
        self._register_builtin_backends()

    def _register_builtin_backends(self) -> None:
        """Register the built-in backends."""
        self.register(
            "memory",
            AsyncMemoryDocumentStore,
            metadata={
                "description": "In-memory storage for tests and dry-run migrations",
                "persistent": False,
                "config_options": {},
            },
        )
        self.register("mem", AsyncMemoryDocumentStore)  # Alias
        self.register(
            "mongo",
            MongoDocumentStore,
            metadata={
                "description": "MongoDB via pymongo's asyncio client",
                "persistent": True,
                "config_options": {
                    "uri": "MongoDB connection string (required)",
                    "database": "Database name (required)",
                },
            },
        )
        self.register("mongodb", MongoDocumentStore)  # Alias


store_backends = BackendRegistry()


class DocumentStoreFactory(FactoryBase):
    """Factory for creating document stores from configuration.

    Configuration Options:
        backend (str): Backend type (memory, mongo); defaults to memory
        **kwargs: Backend-specific configuration options

    Example Configuration:
        stores:
          - name: workspace
            factory: document_store
            backend: mongo
            uri: mongodb://localhost:27017
            database: workspace
    """

    def create(self, **config: Any) -> DocumentStore:
        """Create a document store instance based on configuration.

        Args:
            **config: Configuration including 'backend' field and backend-specific options

        Returns:
            Instance of the selected backend

        Raises:
            BackendNotFoundError: If the backend type is not registered
        """
        backend_type = str(config.pop("backend", "memory")).lower()
        logger.info(f"Creating document store with backend: {backend_type}")

        try:
            backend_class = store_backends.get(backend_type)
        except NotFoundError as e:
            raise BackendNotFoundError(backend_type, sorted(store_backends.list_keys())) from e

        return backend_class.from_config(config)  # type: ignore[attr-defined]

    def get_backend_info(self, backend_type: str) -> dict[str, Any]:
        """Get the registered metadata of a backend.

        Args:
            backend_type: Name of the backend

        Returns:
            Metadata dictionary, empty for aliases and unknown backends
        """
        return store_backends.get_metrics(backend_type.lower()).get("metadata", {})


store_factory = DocumentStoreFactory()


def create_store(config: dict[str, Any] | None = None) -> DocumentStore:
    """Create a document store from a configuration dictionary.

    Args:
        config: Configuration including a 'backend' field (default: memory)
            and backend-specific options

    Returns:
        Instance of the selected backend
    """
    return store_factory.create(**(config or {}))


__all__ = [
    "AsyncMemoryDocumentStore",
    "BackendRegistry",
    "DocumentStoreFactory",
    "MongoDocumentStore",
    "create_store",
    "store_backends",
    "store_factory",
]
