"""Change-tree construction and structural lookup helpers."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from ..errors import UnknownPathError
from .types import PATH_SEPARATOR, ChangeEntry, TreeNode, normalize_path

# Directories and files live in separate key spaces: a diff may delete file
# ``a`` and add ``a/b`` in the same range.
_NodeKey = tuple[str, bool]


@dataclass
class _TreeArena:
    """Flat parent/child arena filled by one ``build_tree`` call."""

    roots: list[_NodeKey] = field(default_factory=list)
    children: dict[_NodeKey, list[_NodeKey]] = field(default_factory=dict)
    leaves: dict[str, ChangeEntry] = field(default_factory=dict)

    def add(self, entry: ChangeEntry) -> None:
        """Fold one entry in, creating missing directory prefixes first-seen."""
        if entry.path in self.leaves:
            return
        siblings = self.roots
        prefix = ""
        for part in entry.path.split(PATH_SEPARATOR)[:-1]:
            prefix = f"{prefix}{PATH_SEPARATOR}{part}" if prefix else part
            key = (prefix, False)
            if key not in self.children:
                self.children[key] = []
                siblings.append(key)
            siblings = self.children[key]
        self.leaves[entry.path] = entry
        siblings.append((entry.path, True))

    def freeze(self) -> tuple[TreeNode, ...]:
        """Materialize immutable nodes bottom-up."""

        def node_for(key: _NodeKey) -> TreeNode:
            path, is_leaf = key
            name = path.rsplit(PATH_SEPARATOR, 1)[-1]
            if is_leaf:
                entry = self.leaves[path]
                return TreeNode(name, path, True, (), entry.status, entry.patch)
            return TreeNode(name, path, False, tuple(node_for(child) for child in self.children[key]))

        return tuple(node_for(key) for key in self.roots)


def build_tree(entries: Iterable[ChangeEntry]) -> tuple[TreeNode, ...]:
    """Build the node forest for a flat change list.

    Leaf paths equal the entry paths; directory nodes exist exactly for the
    strict prefixes of those paths; children keep first-seen order. A
    duplicated path keeps its first entry.
    """
    arena = _TreeArena()
    for entry in entries:
        arena.add(entry)
    return arena.freeze()


def iter_nodes(nodes: Iterable[TreeNode]) -> Iterator[TreeNode]:
    """Depth-first pre-order walk over a forest."""
    for node in nodes:
        yield node
        if not node.is_leaf:
            yield from iter_nodes(node.children)


def leaf_paths(nodes: Iterable[TreeNode]) -> frozenset[str]:
    """Return every leaf path in the forest."""
    return frozenset(node.path for node in iter_nodes(nodes) if node.is_leaf)


def collect_folder_paths(nodes: Iterable[TreeNode]) -> list[str]:
    """Return every directory path in pre-order (used for "expand all")."""
    return [node.path for node in iter_nodes(nodes) if not node.is_leaf]


def tree_structure(nodes: Iterable[TreeNode]) -> frozenset[tuple[str | None, str, bool]]:
    """Order-independent ``(parent_path, child_path, child_is_leaf)`` edges.

    Two forests with equal structure have the same path set and the same
    parent/child relationships, whatever order their entries arrived in.
    """
    edges: set[tuple[str | None, str, bool]] = set()

    def walk(parent: str | None, children: Iterable[TreeNode]) -> None:
        for child in children:
            edges.add((parent, child.path, child.is_leaf))
            if not child.is_leaf:
                walk(child.path, child.children)

    walk(None, nodes)
    return frozenset(edges)


def find_node(nodes: Iterable[TreeNode], path: str, *, is_leaf: bool | None = None) -> TreeNode | None:
    """Find a node by path, optionally restricted to leaves or directories."""
    target = normalize_path(path)
    for node in iter_nodes(nodes):
        if node.path != target:
            continue
        if is_leaf is None or node.is_leaf == is_leaf:
            return node
    return None


@dataclass(frozen=True)
class TreeIndex:
    """Precomputed leaf membership and folder->leaves lookup for one tree."""

    leaf_paths: frozenset[str]
    folder_leaves: Mapping[str, tuple[str, ...]]

    def has_leaf(self, path: str) -> bool:
        return path in self.leaf_paths

    def has_folder(self, path: str) -> bool:
        return path in self.folder_leaves

    def leaves_under(self, folder_path: str) -> tuple[str, ...]:
        """Return all leaf paths physically under ``folder_path``."""
        try:
            return self.folder_leaves[folder_path]
        except KeyError:
            raise UnknownPathError(folder_path) from None


def build_tree_index(nodes: Iterable[TreeNode]) -> TreeIndex:
    """Index a forest for O(1) leaf checks and folder bulk operations."""
    folder_leaves: dict[str, tuple[str, ...]] = {}

    def walk(children: Iterable[TreeNode]) -> list[str]:
        collected: list[str] = []
        for child in children:
            if child.is_leaf:
                collected.append(child.path)
                continue
            below = walk(child.children)
            folder_leaves[child.path] = tuple(below)
            collected.extend(below)
        return collected

    all_leaves = walk(nodes)
    return TreeIndex(
        leaf_paths=frozenset(all_leaves),
        folder_leaves=MappingProxyType(folder_leaves),
    )


__all__ = [
    "build_tree",
    "iter_nodes",
    "leaf_paths",
    "collect_folder_paths",
    "tree_structure",
    "find_node",
    "TreeIndex",
    "build_tree_index",
]
