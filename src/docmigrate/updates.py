"""Update shapes accepted by the migration client.

Callers pick the shape explicitly:

- :class:`Replace` assigns plain field values (``{"status": "closed"}``).
- :class:`Patch` carries a pre-shaped operator document
  (``{"$set": {...}, "$unset": {...}}``).

Both shapes are rendered into a native update that also clears the
freshness marker.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from .exceptions import UpdateShapeError
from .freshness import FreshnessMarker

SET = "$set"


@dataclass(frozen=True)
class Replace:
    """Plain field -> value replacement."""

    fields: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        bad = [key for key in self.fields if key.startswith("$")]
        if bad:
            raise UpdateShapeError(
                "replace", "field names must not start with '$'; use Patch for operators", bad
            )

    def render(self, marker: FreshnessMarker) -> dict[str, Any]:
        """Render as a native update document."""
        return {SET: marker.clear(self.fields)}


@dataclass(frozen=True)
class Patch:
    """Operator document such as ``{"$set": {...}, "$inc": {...}}``."""

    operators: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.operators:
            raise UpdateShapeError("patch", "operator document is empty")
        bad = [key for key in self.operators if not key.startswith("$")]
        if bad:
            raise UpdateShapeError("patch", "operator names must start with '$'", bad)

    def render(self, marker: FreshnessMarker) -> dict[str, Any]:
        """Render as a native update document.

        The marker clear is merged into a copy of the ``$set`` operator,
        which is created if absent.
        """
        rendered = dict(self.operators)
        rendered[SET] = marker.clear(self.operators.get(SET))
        return rendered


MigrationUpdate = Union[Replace, Patch]


def as_update(update: MigrationUpdate | Mapping[str, Any]) -> MigrationUpdate:
    """Coerce a bare mapping to :class:`Replace`; pass update shapes through."""
    if isinstance(update, (Replace, Patch)):
        return update
    return Replace(dict(update))
