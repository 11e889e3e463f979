"""Hierarchy-aware propagation of full-text stage invalidation.

When a document of some class changes, the full-text contexts declared on
the class itself, on its ancestors, and on mixins attached anywhere along
that chain decide which other classes must be invalidated too.
"""

from __future__ import annotations

from collections.abc import Callable

from .hierarchy import ClassHierarchy, FullTextSearchContext

ContextVisitor = Callable[[FullTextSearchContext], None]


def traverse_full_text_contexts(
    hierarchy: ClassHierarchy,
    object_class: str,
    visit: ContextVisitor,
) -> None:
    """Visit every full-text context relevant to ``object_class``.

    The class's own context is visited first, then each ancestor's context
    (nearest first), then the contexts of mixins found among the class's
    descendants and among its ancestors' descendants. A context may be
    visited more than once, so ``visit`` must be idempotent.

    Args:
        hierarchy: Class hierarchy
        object_class: Class of the changed document
        visit: Callback receiving each context
    """
    candidates = dict.fromkeys(hierarchy.descendants_of(object_class))

    context = hierarchy.get_full_text_context(object_class)
    if context is not None:
        visit(context)

    for ancestor in hierarchy.ancestors_of(object_class):
        context = hierarchy.get_full_text_context(ancestor)
        if context is not None:
            visit(context)
        for descendant in hierarchy.descendants_of(ancestor):
            if hierarchy.is_mixin(descendant):
                candidates[descendant] = None

    for cls in candidates:
        if hierarchy.is_mixin(cls):
            context = hierarchy.get_full_text_context(cls)
            if context is not None:
                visit(context)


def _collect(
    hierarchy: ClassHierarchy,
    object_class: str,
    select: Callable[[FullTextSearchContext], frozenset[str]],
) -> list[str]:
    collected: dict[str, None] = {}

    def visit(context: FullTextSearchContext) -> None:
        for cls in sorted(select(context)):
            collected[cls] = None

    traverse_full_text_contexts(hierarchy, object_class, visit)
    return list(collected)


def collect_propagate(hierarchy: ClassHierarchy, object_class: str) -> list[str]:
    """Collect the deduplicated ``propagate`` classes of all relevant contexts."""
    return _collect(hierarchy, object_class, lambda context: context.propagate)


def collect_propagate_classes(hierarchy: ClassHierarchy, object_class: str) -> list[str]:
    """Collect the deduplicated ``propagate_classes`` of all relevant contexts."""
    return _collect(hierarchy, object_class, lambda context: context.propagate_classes)
