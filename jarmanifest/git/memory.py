"""In-memory ``GitDataProvider`` backed by plain dictionaries.

Holds branches, newest-first histories, head trees, and per-range change
lists for any number of projects. Every call is counted per operation, and
failures can be armed per operation, which makes it a convenient stand-in for
``LocalGitProvider`` when driving a session without a repository.
"""

from __future__ import annotations

import threading
from collections import Counter
from collections.abc import Iterable, Sequence

from ..errors import DataFetchError
from ..tree_model import ChangeEntry, normalize_path
from .types import CommitRef


class InMemoryGitProvider:
    def __init__(self) -> None:
        self._branches: dict[str, list[str]] = {}
        self._commits: dict[tuple[str, str], list[CommitRef]] = {}
        self._trees: dict[tuple[str, str], list[str]] = {}
        self._diffs: dict[tuple[str, str, str], list[ChangeEntry]] = {}
        self._failures: dict[str, str] = {}
        self._lock = threading.Lock()
        self.calls: Counter[str] = Counter()

    def add_branch(
        self,
        project_id: str,
        branch: str,
        commits: Iterable[CommitRef | str] = (),
        tree: Iterable[str] = (),
    ) -> None:
        """Register ``branch`` with a newest-first history and head tree."""
        self._branches.setdefault(project_id, [])
        if branch not in self._branches[project_id]:
            self._branches[project_id].append(branch)
        self._commits[(project_id, branch)] = [
            commit if isinstance(commit, CommitRef) else CommitRef(commit) for commit in commits
        ]
        self._trees[(project_id, branch)] = [normalize_path(path) for path in tree]

    def add_diff(self, project_id: str, base_sha: str, head_sha: str, entries: Iterable[ChangeEntry]) -> None:
        self._diffs[(project_id, base_sha, head_sha)] = list(entries)

    @property
    def project_ids(self) -> list[str]:
        return list(self._branches)

    def fail(self, operation: str, message: str = "backend unavailable") -> None:
        """Make every later call of ``operation`` raise ``DataFetchError``."""
        self._failures[operation] = message

    def recover(self, operation: str | None = None) -> None:
        if operation is None:
            self._failures.clear()
        else:
            self._failures.pop(operation, None)

    def _enter(self, operation: str) -> None:
        with self._lock:
            self.calls[operation] += 1
        message = self._failures.get(operation)
        if message is not None:
            raise DataFetchError(message, operation=operation)

    def list_branches(self, project_id: str) -> list[str]:
        self._enter("branches")
        if project_id not in self._branches:
            raise DataFetchError(f"unknown project: {project_id}", operation="branches")
        return list(self._branches[project_id])

    def list_commits(self, project_id: str, branch: str) -> list[CommitRef]:
        self._enter("commits")
        try:
            return list(self._commits[(project_id, branch)])
        except KeyError:
            raise DataFetchError(f"unknown branch: {branch}", operation="commits") from None

    def list_tree(self, project_id: str, branch: str) -> list[str]:
        self._enter("tree")
        try:
            return list(self._trees[(project_id, branch)])
        except KeyError:
            raise DataFetchError(f"unknown branch: {branch}", operation="tree") from None

    def diff(self, project_id: str, base_sha: str, head_sha: str) -> list[ChangeEntry]:
        self._enter("diff")
        return list(self._diffs.get((project_id, base_sha, head_sha), ()))

    def diff_scoped(
        self,
        project_id: str,
        base_sha: str,
        head_sha: str,
        paths: Sequence[str],
    ) -> list[ChangeEntry]:
        self._enter("diff_scoped")
        wanted = {normalize_path(path) for path in paths}
        return [entry for entry in self._diffs.get((project_id, base_sha, head_sha), ()) if entry.path in wanted]


__all__ = ["InMemoryGitProvider"]
