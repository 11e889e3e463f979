"""Freshness marker handling.

Each document carries a marker field recording whether its indexed
representation is known to be fresh. A hashed/present value means fresh;
``None`` means the document must be reindexed. The field name is owned by a
:class:`FreshnessMarker` instance so that it can be configured away from any
name used by schema-less user data.
"""

from __future__ import annotations

from typing import Any

DEFAULT_FRESHNESS_FIELD = "%hash%"


class FreshnessMarker:
    """Reads and writes the freshness marker of documents."""

    def __init__(self, field: str = DEFAULT_FRESHNESS_FIELD):
        self.field = field

    def clear(self, set_ops: dict[str, Any] | None = None) -> dict[str, Any]:
        """Return a copy of ``set_ops`` that also nulls the marker.

        Args:
            set_ops: Field assignments for a ``$set`` operator

        Returns:
            New assignment dictionary with the marker set to None
        """
        cleared = dict(set_ops or {})
        cleared[self.field] = None
        return cleared

    def strip(self, doc: dict[str, Any]) -> dict[str, Any]:
        """Remove the marker from a document in place and return it."""
        doc.pop(self.field, None)
        return doc

    def is_fresh(self, doc: dict[str, Any]) -> bool:
        """Check if a document has a non-null marker."""
        return doc.get(self.field) is not None

    def needs_reindex(self, doc: dict[str, Any]) -> bool:
        """Check if a document must be reindexed."""
        return not self.is_fresh(doc)

    def __repr__(self) -> str:
        return f"FreshnessMarker({self.field!r})"
