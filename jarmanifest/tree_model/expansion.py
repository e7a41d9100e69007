"""Folder expansion state for one rendered tree."""

from __future__ import annotations

from collections.abc import Iterable

from .build import collect_folder_paths
from .types import TreeNode


class ExpansionState:
    """Set of expanded folder paths for a single tree view.

    The main file tree and the preview tree each own one instance so that
    opening a folder in one view never affects the other.
    """

    def __init__(self, expanded: Iterable[str] = ()) -> None:
        self._expanded: set[str] = set(expanded)

    @property
    def expanded(self) -> frozenset[str]:
        return frozenset(self._expanded)

    def is_expanded(self, folder_path: str) -> bool:
        return folder_path in self._expanded

    def toggle(self, folder_path: str) -> bool:
        """Flip one folder; returns the new expanded flag."""
        if folder_path in self._expanded:
            self._expanded.discard(folder_path)
            return False
        self._expanded.add(folder_path)
        return True

    def expand_all(self, nodes: Iterable[TreeNode]) -> None:
        self._expanded = set(collect_folder_paths(nodes))

    def collapse_all(self) -> None:
        self._expanded.clear()

    def reset_for(self, nodes: Iterable[TreeNode]) -> None:
        """Apply default expansion after a rebuild: every folder open."""
        self.expand_all(nodes)


__all__ = ["ExpansionState"]
