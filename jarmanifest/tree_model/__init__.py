"""Change-tree creation, lookup, filtering, and expansion state.

Defines ``ChangeEntry``/``TreeNode`` and the pure builders that turn a flat
change list into an immutable forest plus the indexes used for selection.
"""

from __future__ import annotations

from .build import (
    TreeIndex,
    build_tree,
    build_tree_index,
    collect_folder_paths,
    find_node,
    iter_nodes,
    leaf_paths,
    tree_structure,
)
from .expansion import ExpansionState
from .filtering import count_leaves, filter_tree
from .types import PATH_SEPARATOR, ChangeEntry, ChangeStatus, TreeNode, normalize_path

__all__ = [
    "PATH_SEPARATOR",
    "ChangeStatus",
    "ChangeEntry",
    "TreeNode",
    "normalize_path",
    "build_tree",
    "iter_nodes",
    "leaf_paths",
    "collect_folder_paths",
    "tree_structure",
    "find_node",
    "TreeIndex",
    "build_tree_index",
    "filter_tree",
    "count_leaves",
    "ExpansionState",
]
