"""Structural equality over a canonical value model.

Stage states store the last value seen for each tracked field. Candidate
values are compared to stored ones with :func:`deep_equal`, which only
understands a fixed set of value shapes:

- scalars: ``None``, ``bool``, ``int``, ``float``, ``str``, ``bytes``,
  ``datetime``/``date``
- ordered sequences: ``list`` and ``tuple`` (interchangeable), compared
  element by element
- mappings with string keys: equal key sets, values compared recursively

``bool`` never equals a number. Values outside the model never compare
equal, not even to themselves, so an unknown value always forces the stage
to recompute.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

_SCALARS = (str, bytes, datetime, date)


def is_comparable(value: Any) -> bool:
    """Check if a value belongs to the canonical value model."""
    if value is None or isinstance(value, (bool, int, float) + _SCALARS):
        return True
    if isinstance(value, (list, tuple)):
        return all(is_comparable(item) for item in value)
    if isinstance(value, Mapping):
        return all(isinstance(k, str) and is_comparable(v) for k, v in value.items())
    return False


def deep_equal(a: Any, b: Any) -> bool:
    """Compare two values structurally.

    Args:
        a: First value
        b: Second value

    Returns:
        True if both values are in the value model and structurally equal
    """
    if a is None or b is None:
        return a is None and b is None

    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b

    if isinstance(a, (int, float)) or isinstance(b, (int, float)):
        return isinstance(a, (int, float)) and isinstance(b, (int, float)) and a == b

    if isinstance(a, _SCALARS) or isinstance(b, _SCALARS):
        return _same_scalar_kind(a, b) and a == b

    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(deep_equal(x, y) for x, y in zip(a, b))

    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if not all(isinstance(k, str) for k in a) or not all(isinstance(k, str) for k in b):
            return False
        if set(a) != set(b):
            return False
        return all(deep_equal(a[k], b[k]) for k in a)

    return False


def _same_scalar_kind(a: Any, b: Any) -> bool:
    for kind in (str, bytes, datetime):
        if isinstance(a, kind) or isinstance(b, kind):
            return isinstance(a, kind) and isinstance(b, kind)
    return isinstance(a, date) and isinstance(b, date)
