"""Translation of migration queries to native store filters.

Migration queries are mappings of field name to either a scalar (equality),
a ``{"$like": pattern}`` operator, or any other operator mapping which is
forwarded to the store unchanged.

Example:
    ```python
    from docmigrate.query import translate_query

    translate_query({"title": {"$like": "Draft%"}, "space": "tasks"})
    # {'title': {'$regex': '^Draft.*$', '$options': 'i'}, 'space': 'tasks'}
    ```
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

LIKE = "$like"
WILDCARD = "%"


class SortOrder(Enum):
    """Sort order for query results."""

    ASC = 1
    DESC = -1


@dataclass
class FindOptions:
    """Options for ``find`` and ``traverse``.

    Attributes:
        limit: Maximum number of documents to return
        sort: Mapping of field name to SortOrder (or 1/-1), applied in order
    """

    limit: int | None = None
    sort: dict[str, SortOrder | int] | None = None

    def __post_init__(self):
        """Validate options."""
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must be non-negative")


def like_to_regex(pattern: str) -> str:
    """Convert a ``%`` wildcard pattern into an anchored regular expression.

    Literal segments are escaped so that only ``%`` acts as a wildcard.
    """
    return "^" + ".*".join(re.escape(part) for part in pattern.split(WILDCARD)) + "$"


def translate_query(query: Mapping[str, Any]) -> dict[str, Any]:
    """Translate a migration query into a native store filter.

    Args:
        query: Migration query

    Returns:
        New filter dictionary; the input is not modified
    """
    translated: dict[str, Any] = {}
    for key, value in query.items():
        if isinstance(value, Mapping) and value and next(iter(value)) == LIKE:
            translated[key] = {"$regex": like_to_regex(str(value[LIKE])), "$options": "i"}
            continue
        translated[key] = value
    return translated


def translate_sort(sort: Mapping[str, SortOrder | int] | None) -> list[tuple[str, int]] | None:
    """Translate a sort specification into ``(field, direction)`` pairs."""
    if not sort:
        return None
    result = []
    for key, order in sort.items():
        if isinstance(order, SortOrder):
            direction = order.value
        else:
            direction = 1 if order == 1 else -1
        result.append((key, direction))
    return result
