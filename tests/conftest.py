"""Pytest configuration for docmigrate tests."""

import sys
from pathlib import Path

import pytest

# Add the package source to path for testing
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from docmigrate.backends.memory import AsyncMemoryDocumentStore  # noqa: E402
from docmigrate.client import MigrateClient  # noqa: E402
from docmigrate.hierarchy import (  # noqa: E402
    ClassDescriptor,
    FullTextSearchContext,
    StaticClassHierarchy,
)
from docmigrate.logger import RecordingModelLogger  # noqa: E402

MARKER = "%hash%"


class FakeClock:
    """Manually advanced clock for timing tests."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.steps: list[float] = []

    def advance_on_next_call(self, seconds: float) -> None:
        self.steps.append(seconds)

    def __call__(self) -> float:
        if self.steps:
            self.now += self.steps.pop(0)
        return self.now


@pytest.fixture
def store():
    """Empty in-memory document store."""
    return AsyncMemoryDocumentStore()


@pytest.fixture
def model_logger():
    return RecordingModelLogger()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(store, model_logger, clock):
    """Migration client over the in-memory store."""
    return MigrateClient(store, model_logger=model_logger, clock=clock)


@pytest.fixture
def task_docs():
    """Task documents, all freshly indexed."""
    return [
        {"_id": "t1", "title": "Draft plan", "status": "open", "rank": 3, MARKER: "h1"},
        {"_id": "t2", "title": "Release notes", "status": "open", "rank": 1, MARKER: "h2"},
        {"_id": "t3", "title": "draft budget", "status": "open", "rank": 2, MARKER: "h3"},
        {"_id": "t4", "title": "Retro", "status": "done", "rank": 4, MARKER: "h4"},
    ]


@pytest.fixture
def hierarchy():
    """Hierarchy with an attached mixin on an ancestor and on a descendant.

    doc
    +-- task                      (context: propagate=[board])
    |   +-- issue                 (context: propagate=[tracker], propagate_classes=[comment])
    |   |   +-- issue:mixin:Sub   (mixin, context: propagate=[sub])
    |   +-- task:mixin:Estimate   (mixin, context: propagate=[estimate])
    +-- doc:mixin:Labels          (mixin, context: propagate_classes=[label])
    """
    return StaticClassHierarchy([
        ClassDescriptor("doc"),
        ClassDescriptor(
            "task", extends="doc", full_text=FullTextSearchContext.create(propagate=["board"])
        ),
        ClassDescriptor(
            "issue",
            extends="task",
            full_text=FullTextSearchContext.create(
                propagate=["tracker"], propagate_classes=["comment"]
            ),
        ),
        ClassDescriptor(
            "issue:mixin:Sub",
            extends="issue",
            mixin=True,
            full_text=FullTextSearchContext.create(propagate=["sub"]),
        ),
        ClassDescriptor(
            "task:mixin:Estimate",
            extends="task",
            mixin=True,
            full_text=FullTextSearchContext.create(propagate=["estimate"]),
        ),
        ClassDescriptor(
            "doc:mixin:Labels",
            extends="doc",
            mixin=True,
            full_text=FullTextSearchContext.create(propagate_classes=["label"]),
        ),
    ])
