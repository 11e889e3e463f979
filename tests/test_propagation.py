"""Tests for hierarchy-aware stage propagation."""

import pytest

from docmigrate.hierarchy import ClassDescriptor, FullTextSearchContext, StaticClassHierarchy
from docmigrate.propagation import (
    collect_propagate,
    collect_propagate_classes,
    traverse_full_text_contexts,
)


def visited_classes(hierarchy, object_class):
    """Return the classes whose contexts were visited, in visit order."""
    by_context = {}
    for cls in ["doc", "task", "issue", "issue:mixin:Sub", "task:mixin:Estimate", "doc:mixin:Labels"]:
        context = hierarchy.get_full_text_context(cls)
        if context is not None:
            by_context[id(context)] = cls
    seen = []
    traverse_full_text_contexts(hierarchy, object_class, lambda c: seen.append(by_context[id(c)]))
    return seen


class TestTraverseFullTextContexts:
    """Test the visiting order and coverage of contexts."""

    def test_own_class_visited_first(self, hierarchy):
        """Test that the class's own context comes first."""
        assert visited_classes(hierarchy, "issue")[0] == "issue"

    def test_visits_ancestors_and_attached_mixins(self, hierarchy):
        """Test the full visiting order for a leaf class."""
        seen = visited_classes(hierarchy, "issue")

        assert seen == [
            "issue",
            "task",
            "issue:mixin:Sub",
            "task:mixin:Estimate",
            "doc:mixin:Labels",
        ]

    def test_non_mixin_descendants_not_visited(self, hierarchy):
        """Test that plain subclasses are not visited."""
        seen = visited_classes(hierarchy, "task")

        assert "issue" not in seen
        assert seen[0] == "task"
        assert set(seen) == {"task", "task:mixin:Estimate", "issue:mixin:Sub", "doc:mixin:Labels"}

    def test_class_without_context(self, hierarchy):
        """Test traversal from a class without its own context."""
        seen = visited_classes(hierarchy, "doc")

        assert set(seen) == {"task:mixin:Estimate", "issue:mixin:Sub", "doc:mixin:Labels"}

    def test_unknown_class_raises(self, hierarchy):
        """Test that an unknown class raises KeyError."""
        with pytest.raises(KeyError):
            traverse_full_text_contexts(hierarchy, "missing", lambda c: None)


class TestCollect:
    """Test reduction of visited contexts."""

    def test_collect_propagate(self, hierarchy):
        """Test collecting propagate classes."""
        assert collect_propagate(hierarchy, "issue") == ["tracker", "board", "sub", "estimate"]

    def test_collect_propagate_classes(self, hierarchy):
        """Test collecting propagate_classes."""
        assert collect_propagate_classes(hierarchy, "issue") == ["comment", "label"]

    def test_collect_from_mixin_only_ancestry(self, hierarchy):
        """Test collecting from a root reached only through mixins."""
        assert collect_propagate(hierarchy, "doc") == ["estimate", "sub"]
        assert collect_propagate_classes(hierarchy, "doc") == ["label"]

    def test_collect_deduplicates(self):
        """Test that collected classes are deduplicated."""
        shared = FullTextSearchContext.create(propagate=["board", "space"])
        hierarchy = StaticClassHierarchy([
            ClassDescriptor("doc", full_text=shared),
            ClassDescriptor("task", extends="doc", full_text=shared),
            ClassDescriptor(
                "task:mixin:X",
                extends="task",
                mixin=True,
                full_text=FullTextSearchContext.create(propagate=["space", "extra"]),
            ),
        ])

        assert collect_propagate(hierarchy, "task") == ["board", "space", "extra"]

    def test_nothing_declared(self):
        """Test collecting when no context is declared."""
        hierarchy = StaticClassHierarchy([
            ClassDescriptor("doc"),
            ClassDescriptor("task", extends="doc"),
        ])

        assert collect_propagate(hierarchy, "task") == []
        assert collect_propagate_classes(hierarchy, "task") == []


class TestStaticClassHierarchy:
    """Test the static hierarchy implementation."""

    def test_ancestors_nearest_first(self, hierarchy):
        """Test that ancestors are listed nearest first."""
        assert hierarchy.ancestors_of("issue:mixin:Sub") == ["issue", "task", "doc"]
        assert hierarchy.ancestors_of("doc") == []

    def test_descendants_include_mixins(self, hierarchy):
        """Test that descendants include mixins breadth first."""
        assert hierarchy.descendants_of("task") == [
            "issue",
            "task:mixin:Estimate",
            "issue:mixin:Sub",
        ]

    def test_is_mixin(self, hierarchy):
        """Test mixin detection."""
        assert hierarchy.is_mixin("task:mixin:Estimate")
        assert not hierarchy.is_mixin("task")

    def test_duplicate_declaration_rejected(self):
        """Test that declaring a class twice fails."""
        hierarchy = StaticClassHierarchy([ClassDescriptor("doc")])
        with pytest.raises(ValueError):
            hierarchy.add(ClassDescriptor("doc"))

    def test_cycle_detected(self):
        """Test that inheritance cycles are detected."""
        hierarchy = StaticClassHierarchy([
            ClassDescriptor("a", extends="b"),
            ClassDescriptor("b", extends="a"),
        ])
        with pytest.raises(ValueError):
            hierarchy.ancestors_of("a")
