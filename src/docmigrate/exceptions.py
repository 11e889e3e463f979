"""Custom exceptions for the docmigrate package.

This module defines exception types for the migration layer, built on the
common exception framework from dataknobs_common. Every error raised by this
package derives from :class:`DocMigrateError` and carries a context
dictionary with structured detail about the failure.

Example:
    ```python
    from docmigrate.exceptions import StoreIOError

    try:
        await client.update("tasks", {"status": "open"}, {"status": "closed"})
    except StoreIOError as e:
        logger.error(f"Store failure: {e}")
        logger.error(f"Context: {e.context}")
    ```
"""

from __future__ import annotations

from dataknobs_common import (
    ConfigurationError as BaseConfigurationError,
    DataknobsError,
    NotFoundError,
    OperationError,
    ValidationError,
)


class DocMigrateError(DataknobsError):
    """Base exception for all docmigrate errors."""

    pass


class StoreIOError(DocMigrateError, OperationError):
    """Raised when communication with the document store fails."""

    def __init__(self, operation: str, message: str, collection: str | None = None):
        self.operation = operation
        self.collection = collection
        context = {"operation": operation}
        if collection is not None:
            context["collection"] = collection
        super().__init__(f"Store operation '{operation}' failed: {message}", context=context)


class UpdateShapeError(DocMigrateError, ValidationError):
    """Raised when an update document does not match its declared shape."""

    def __init__(self, shape: str, message: str, keys: list[str] | None = None):
        self.shape = shape
        self.keys = keys or []
        super().__init__(
            f"Invalid {shape} update: {message}", context={"shape": shape, "keys": self.keys}
        )


class UnsupportedUpdateError(DocMigrateError, OperationError):
    """Raised when an operation is given an update shape it does not accept."""

    def __init__(self, operation: str, shape: str):
        self.operation = operation
        self.shape = shape
        super().__init__(
            f"Operation '{operation}' does not support {shape} updates",
            context={"operation": operation, "shape": shape},
        )


class BackendNotFoundError(DocMigrateError, NotFoundError):
    """Raised when a requested store backend is not available."""

    def __init__(self, backend: str, available: list | None = None):
        self.backend = backend
        self.available = available or []
        message = f"Backend '{backend}' not found"
        if self.available:
            message += f". Available backends: {', '.join(self.available)}"
        super().__init__(message, context={"backend": backend, "available": self.available})


class ConfigurationError(DocMigrateError, BaseConfigurationError):
    """Raised when configuration is invalid."""

    def __init__(self, parameter: str, message: str):
        self.parameter = parameter
        super().__init__(
            f"Configuration error for '{parameter}': {message}", context={"parameter": parameter}
        )
