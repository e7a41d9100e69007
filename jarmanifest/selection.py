"""Leaf selection state with all-or-none folder toggling.

The selection is a hash set of normalized leaf paths bound to the canonical
tree index. Folder indicators are derived on demand and never stored.
"""

from __future__ import annotations

from enum import Enum

from .errors import UnknownPathError
from .tree_model import TreeIndex, build_tree_index, normalize_path


class FolderState(str, Enum):
    """Tri-state selection summary for a directory node."""

    NONE = "none"
    PARTIAL = "partial"
    ALL = "all"


class SelectionManager:
    """Operator-owned set of chosen leaf paths for the current tree.

    Every member is a leaf of the bound ``TreeIndex``. Binding a new index via
    ``reset`` clears the selection unconditionally; selections are never
    carried across file-list replacements.
    """

    def __init__(self, index: TreeIndex | None = None) -> None:
        self._index = index if index is not None else build_tree_index(())
        self._selected: set[str] = set()

    @property
    def index(self) -> TreeIndex:
        return self._index

    @property
    def selected(self) -> frozenset[str]:
        return frozenset(self._selected)

    def sorted_paths(self) -> list[str]:
        return sorted(self._selected)

    def __len__(self) -> int:
        return len(self._selected)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        try:
            return normalize_path(path) in self._selected
        except ValueError:
            return False

    def is_selected(self, path: str) -> bool:
        return normalize_path(path) in self._selected

    def reset(self, index: TreeIndex | None = None) -> None:
        """Bind a new canonical index (if given) and drop every selection."""
        if index is not None:
            self._index = index
        self._selected.clear()

    def toggle_file(self, path: str) -> bool:
        """Flip one leaf; returns whether it is selected afterwards."""
        leaf = normalize_path(path)
        if not self._index.has_leaf(leaf):
            raise UnknownPathError(leaf)
        if leaf in self._selected:
            self._selected.discard(leaf)
            return False
        self._selected.add(leaf)
        return True

    def toggle_folder(self, folder_path: str) -> bool:
        """Select every leaf under a folder, or deselect them all.

        Leaves are collected from the canonical index, never from a filtered
        view. When all of them are already selected they are all removed;
        otherwise all are added. Returns whether the folder is fully selected
        afterwards.
        """
        leaves = self._index.leaves_under(normalize_path(folder_path))
        if leaves and all(leaf in self._selected for leaf in leaves):
            self._selected.difference_update(leaves)
            return False
        self._selected.update(leaves)
        return bool(leaves)

    def folder_state(self, folder_path: str) -> FolderState:
        """Derive ``NONE``/``PARTIAL``/``ALL`` for a folder."""
        leaves = self._index.leaves_under(normalize_path(folder_path))
        chosen = sum(1 for leaf in leaves if leaf in self._selected)
        if chosen == 0:
            return FolderState.NONE
        if chosen == len(leaves):
            return FolderState.ALL
        return FolderState.PARTIAL

    def select_all(self) -> None:
        """Select every leaf of the canonical tree."""
        self._selected = set(self._index.leaf_paths)

    def clear(self) -> None:
        self._selected.clear()


__all__ = ["FolderState", "SelectionManager"]
