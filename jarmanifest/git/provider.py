"""Collaborator protocols consumed by the manifest core."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from ..tree_model import ChangeEntry
from .types import CommitRef


@runtime_checkable
class GitDataProvider(Protocol):
    """Read-only access to branches, history, trees, and diffs of a project.

    Implementations raise ``DataFetchError`` on any failure.
    """

    def list_branches(self, project_id: str) -> list[str]: ...

    def list_commits(self, project_id: str, branch: str) -> list[CommitRef]:
        """Commits reachable from ``branch``, newest first."""
        ...

    def list_tree(self, project_id: str, branch: str) -> list[str]:
        """Every file path at the branch head."""
        ...

    def diff(self, project_id: str, base_sha: str, head_sha: str) -> list[ChangeEntry]: ...

    def diff_scoped(
        self,
        project_id: str,
        base_sha: str,
        head_sha: str,
        paths: Sequence[str],
    ) -> list[ChangeEntry]:
        """Like ``diff`` but limited to ``paths``."""
        ...


__all__ = ["GitDataProvider"]
