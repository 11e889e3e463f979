"""Read-only view of the document class hierarchy.

The hierarchy is owned by the surrounding schema/model component. This
module defines the interface the stage pipeline needs and a static
implementation built from class declarations.

Mixins are modelled as classes that extend the class they attach to; they
are therefore descendants of that class.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field


@dataclass(frozen=True)
class FullTextSearchContext:
    """Full-text indexing declarations of a class.

    Attributes:
        propagate: Classes whose stage state is invalidated along with this class
        propagate_classes: Classes whose documents are reindexed along with this class
        full_text_summary: Whether documents of the class build a summary
        force_index: Whether documents are indexed even without searchable attributes
    """

    propagate: frozenset[str] = field(default_factory=frozenset)
    propagate_classes: frozenset[str] = field(default_factory=frozenset)
    full_text_summary: bool = False
    force_index: bool = False

    @classmethod
    def create(
        cls,
        propagate: list[str] | None = None,
        propagate_classes: list[str] | None = None,
        **kwargs,
    ) -> FullTextSearchContext:
        return cls(frozenset(propagate or ()), frozenset(propagate_classes or ()), **kwargs)


@dataclass(frozen=True)
class ClassDescriptor:
    """Declaration of one document class."""

    id: str
    extends: str | None = None
    mixin: bool = False
    full_text: FullTextSearchContext | None = None


class ClassHierarchy(ABC):
    """Interface over the class graph used by the stage pipeline."""

    @abstractmethod
    def ancestors_of(self, cls: str) -> list[str]:
        """Return ancestors of ``cls``, nearest first, excluding ``cls``."""
        raise NotImplementedError

    @abstractmethod
    def descendants_of(self, cls: str) -> list[str]:
        """Return all descendants of ``cls`` (including mixins), excluding ``cls``."""
        raise NotImplementedError

    @abstractmethod
    def is_mixin(self, cls: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_full_text_context(self, cls: str) -> FullTextSearchContext | None:
        """Return the full-text context declared directly on ``cls``, if any."""
        raise NotImplementedError


class StaticClassHierarchy(ClassHierarchy):
    """Class hierarchy built from a fixed list of declarations.

    Example:
        ```python
        hierarchy = StaticClassHierarchy([
            ClassDescriptor("doc"),
            ClassDescriptor("task", extends="doc"),
            ClassDescriptor("task:mixin:Estimate", extends="task", mixin=True),
        ])
        hierarchy.ancestors_of("task")  # ['doc']
        ```
    """

    def __init__(self, classes: list[ClassDescriptor] | None = None):
        self._classes: dict[str, ClassDescriptor] = {}
        self._children: dict[str, list[str]] = {}
        for descriptor in classes or []:
            self.add(descriptor)

    def add(self, descriptor: ClassDescriptor) -> None:
        """Declare a class. Its parent may be declared later."""
        if descriptor.id in self._classes:
            raise ValueError(f"Class '{descriptor.id}' is already declared")
        self._classes[descriptor.id] = descriptor
        if descriptor.extends is not None:
            self._children.setdefault(descriptor.extends, []).append(descriptor.id)

    def _get(self, cls: str) -> ClassDescriptor:
        try:
            return self._classes[cls]
        except KeyError:
            raise KeyError(f"Unknown class: {cls}") from None

    def ancestors_of(self, cls: str) -> list[str]:
        result = []
        current = self._get(cls).extends
        while current is not None:
            if current in result or current == cls:
                raise ValueError(f"Cycle in class hierarchy at '{current}'")
            result.append(current)
            current = self._get(current).extends
        return result

    def descendants_of(self, cls: str) -> list[str]:
        self._get(cls)
        result = []
        queue = deque(self._children.get(cls, []))
        while queue:
            child = queue.popleft()
            if child in result:
                continue
            result.append(child)
            queue.extend(self._children.get(child, []))
        return result

    def is_mixin(self, cls: str) -> bool:
        return self._get(cls).mixin

    def get_full_text_context(self, cls: str) -> FullTextSearchContext | None:
        return self._get(cls).full_text

    def __contains__(self, cls: str) -> bool:
        return cls in self._classes
