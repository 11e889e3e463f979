"""Helpers shared by full-text indexing stages."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from .hierarchy import ClassHierarchy

DOC_INDEX_STATE_CLASS = "core:class:DocIndexState"
DOC_INDEX_STATE_SPACE = "core:space:DocIndexState"
SYSTEM_ACCOUNT = "core:account:System"

CUSTOM_ATTR_KEY = "customAttributes"
CUSTOM_ATTR_UPDATE_KEY = "attributes.customAttributes"


@dataclass(frozen=True)
class FullTextAttribute:
    """An indexed attribute and the class (or mixin) declaring it."""

    name: str
    attribute_of: str


@dataclass(frozen=True)
class ContentValue:
    value: str
    attr: FullTextAttribute


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def get_content(
    hierarchy: ClassHierarchy,
    attributes: list[FullTextAttribute],
    doc: dict[str, Any],
) -> dict[str, ContentValue]:
    """Extract the textual value of each indexed attribute from a document.

    Mixin attributes are stored under the mixin id inside the document and
    are keyed as ``"<mixin>.<name>"``.
    """
    content: dict[str, ContentValue] = {}
    for attr in attributes:
        if hierarchy.is_mixin(attr.attribute_of):
            mixin_data = doc.get(attr.attribute_of)
            value = mixin_data.get(attr.name) if isinstance(mixin_data, dict) else None
            content[f"{attr.attribute_of}.{attr.name}"] = ContentValue(_as_text(value), attr)
        else:
            content[attr.name] = ContentValue(_as_text(doc.get(attr.name)), attr)
    return content


def create_state_doc(id: str, object_class: str, **data: Any) -> dict[str, Any]:
    """Build a document index state record for a document.

    Args:
        id: Id of the indexed document, reused as the state id
        object_class: Class of the indexed document
        **data: Remaining state fields; ``space`` overrides the default space

    Returns:
        State record ready to be inserted
    """
    space = data.pop("space", None) or DOC_INDEX_STATE_SPACE
    return {
        "_class": DOC_INDEX_STATE_CLASS,
        "_id": id,
        "space": space,
        "objectClass": object_class,
        "modifiedBy": SYSTEM_ACCOUNT,
        "modifiedOn": int(time.time() * 1000),
        **data,
    }


def get_custom_attr_keys() -> dict[str, str]:
    """Return the keys under which custom attributes are stored and updated."""
    return {"custom_attr_key": CUSTOM_ATTR_KEY, "custom_attr_update_key": CUSTOM_ATTR_UPDATE_KEY}


def is_custom_attr(attr: str) -> bool:
    return attr == CUSTOM_ATTR_KEY
