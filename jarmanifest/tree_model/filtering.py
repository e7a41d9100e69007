"""Search-filtered display projection of a canonical change tree."""

from __future__ import annotations

from collections.abc import Iterable

from .types import TreeNode


def filter_tree(nodes: Iterable[TreeNode], query: str) -> tuple[tuple[TreeNode, ...], frozenset[str]]:
    """Build filtered forest for leaves whose path contains ``query``.

    Matching is a case-insensitive substring test on the full leaf path, so a
    folder name in the query keeps every leaf below that folder. Directories
    survive only when a descendant matches. Returns ``(filtered, forced_expanded)``
    where ``forced_expanded`` holds the folders that must be open for every
    match to be visible. The canonical forest is never modified.
    """
    forest = tuple(nodes)
    folded_query = query.strip().casefold()
    if not folded_query:
        return forest, frozenset()

    forced_expanded: set[str] = set()

    def prune(node: TreeNode) -> TreeNode | None:
        if node.is_leaf:
            return node if folded_query in node.path.casefold() else None
        kept = tuple(child for child in (prune(child) for child in node.children) if child is not None)
        if not kept:
            return None
        forced_expanded.add(node.path)
        return TreeNode(node.name, node.path, False, kept)

    filtered = tuple(node for node in (prune(node) for node in forest) if node is not None)
    return filtered, frozenset(forced_expanded)


def count_leaves(nodes: Iterable[TreeNode]) -> int:
    """Count leaf nodes in a forest (match counter for filtered views)."""
    total = 0
    for node in nodes:
        total += 1 if node.is_leaf else count_leaves(node.children)
    return total


__all__ = ["filter_tree", "count_leaves"]
