"""Versioned state of full-text indexing stages.

Each indexing stage keeps one persisted record holding the last value seen
for every tracked field plus a monotonically increasing ``index``. When a
field's candidate value differs from the stored one, the index is bumped
and the new value recorded; the stringified index then acts as the stage
version that documents are compared against.
"""

from __future__ import annotations

import copy
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Union

from .config import MigrationSettings
from .equality import deep_equal
from .store import Document, DocumentStore

logger = logging.getLogger(__name__)

INDEX_KEY = "index"

StageResult = Union[bool, str]


@dataclass
class IndexStageState:
    """Persisted state of one indexing stage."""

    id: str
    stage_id: str
    attributes: dict[str, Any] = field(default_factory=dict)
    modified_on: int = 0

    @property
    def index(self) -> int | None:
        return self.attributes.get(INDEX_KEY)

    def to_document(self) -> Document:
        return {
            "_id": self.id,
            "stageId": self.stage_id,
            "attributes": dict(self.attributes),
            "modifiedOn": self.modified_on,
        }

    @classmethod
    def from_document(cls, doc: Document) -> IndexStageState:
        return cls(
            id=doc["_id"],
            stage_id=doc["stageId"],
            attributes=dict(doc.get("attributes") or {}),
            modified_on=doc.get("modifiedOn", 0),
        )


class StageStateStore:
    """Loads and bumps index stage states kept in a document store.

    One writer per stage id is assumed; concurrent writers to the same stage
    and field overwrite each other.

    Args:
        store: Document store holding stage records
        collection: Collection name (defaults to the configured stage collection)
        clock: Returns the current time in milliseconds
    """

    def __init__(
        self,
        store: DocumentStore,
        collection: str | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self.store = store
        self.collection = collection or MigrationSettings().stage_collection
        self._clock = clock or (lambda: int(time.time() * 1000))

    async def find_state(self, stage_id: str) -> IndexStageState | None:
        """Look up the persisted state of a stage."""
        docs = await self.store.find(self.collection, {"stageId": stage_id}, limit=2)
        if not docs:
            return None
        if len(docs) > 1:
            logger.warning(f"Multiple state records found for stage '{stage_id}', using the first")
        return IndexStageState.from_document(docs[0])

    async def load_index_stage_state(
        self,
        stage_id: str,
        field: str,
        new_value: Any,
        state: IndexStageState | None = None,
    ) -> tuple[StageResult, IndexStageState | None]:
        """Decide whether a stage must recompute for a tracked field.

        Args:
            stage_id: Stage identifier
            field: Tracked attribute name
            new_value: Candidate value of the attribute
            state: Previously loaded state, to skip the lookup

        Returns:
            Tuple of the stage version (stringified index, or True when the
            stage has no version yet and nothing changed) and the current state
        """
        if state is None:
            state = await self.find_state(stage_id)
        attributes = state.attributes if state is not None else {}

        current = attributes.get(INDEX_KEY)
        result: StageResult = str(current) if current is not None else True

        if not deep_equal(attributes.get(field), new_value):
            next_index = (current or 0) + 1
            result = str(next_index)
            updated = {**attributes, field: copy.deepcopy(new_value), INDEX_KEY: next_index}
            now = self._clock()

            if state is None:
                state = IndexStageState(
                    id=uuid.uuid4().hex, stage_id=stage_id, attributes=updated, modified_on=now
                )
                await self.store.insert_one(self.collection, state.to_document())
            else:
                await self.store.update_many(
                    self.collection,
                    {"_id": state.id},
                    {"$set": {"stageId": stage_id, "attributes": updated, "modifiedOn": now}},
                )
                state = IndexStageState(
                    id=state.id, stage_id=stage_id, attributes=updated, modified_on=now
                )
            logger.debug(f"Stage '{stage_id}' field '{field}' changed, index now {next_index}")

        return result, state
