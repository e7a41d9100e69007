"""Commit-range resolution for the three build strategies.

``resolve_strategy`` is a pure function of (strategy, commits, selected
commit). It is re-run whenever one of them changes and always returns a fresh
``ResolvedRange``; previous results are replaced, never patched.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from .errors import ValidationError
from .git.types import EMPTY_TREE_SHA, CommitRef
from .tree_model import ChangeEntry, ChangeStatus


class BuildStrategy(str, Enum):
    """How the commit range and the authoritative file list are produced."""

    FULL = "full"
    SINGLE_COMMIT = "commit"
    MANUAL = "manual"

    @classmethod
    def parse(cls, value: "str | BuildStrategy") -> "BuildStrategy":
        if isinstance(value, BuildStrategy):
            return value
        key = str(value).strip().lower().replace("-", "_")
        strategy = _STRATEGY_ALIASES.get(key)
        if strategy is None:
            raise ValueError(f"unknown build strategy: {value!r}")
        return strategy

    @property
    def label(self) -> str:
        return _STRATEGY_LABELS[self]


_STRATEGY_ALIASES: dict[str, BuildStrategy] = {
    "full": BuildStrategy.FULL,
    "commit": BuildStrategy.SINGLE_COMMIT,
    "single": BuildStrategy.SINGLE_COMMIT,
    "single_commit": BuildStrategy.SINGLE_COMMIT,
    "manual": BuildStrategy.MANUAL,
}

_STRATEGY_LABELS: dict[BuildStrategy, str] = {
    BuildStrategy.FULL: "Full branch history",
    BuildStrategy.SINGLE_COMMIT: "Single commit",
    BuildStrategy.MANUAL: "Manual selection",
}


@dataclass(frozen=True)
class ResolvedRange:
    """Commit range derived for one strategy.

    ``base_sha``/``head_sha`` are ``None`` for ``MANUAL`` (full tree at branch
    head, no diff). ``root_fallback`` is set when there was no older commit to
    diff against and the range was anchored on git's empty tree instead.
    """

    strategy: BuildStrategy
    base_sha: str | None = None
    head_sha: str | None = None
    root_fallback: bool = False

    @property
    def has_range(self) -> bool:
        return self.base_sha is not None and self.head_sha is not None

    @property
    def uses_full_tree(self) -> bool:
        return self.strategy is BuildStrategy.MANUAL


def _index_of(commits: Sequence[CommitRef], sha: str) -> int | None:
    for idx, commit in enumerate(commits):
        if commit.sha == sha:
            return idx
    # Accept abbreviated shas when they are unambiguous.
    prefixed = [idx for idx, commit in enumerate(commits) if commit.sha.startswith(sha)]
    if len(prefixed) == 1:
        return prefixed[0]
    return None


def resolve_strategy(
    strategy: BuildStrategy | str,
    commits: Sequence[CommitRef],
    selected_commit: str | None = None,
) -> ResolvedRange:
    """Derive ``(base, head)`` for ``strategy`` from a newest-first commit list.

    - ``FULL``: head is the newest commit, base the oldest loaded one.
    - ``SINGLE_COMMIT``: head is ``selected_commit``, base the commit listed
      right after it (its parent in display order).
    - ``MANUAL``: no range.

    When the head commit has no older neighbour (oldest loaded commit, or a
    one-commit history) the base becomes ``EMPTY_TREE_SHA`` and the result is
    flagged ``root_fallback`` rather than diffing a commit against itself.
    Raises ``ValidationError`` when the inputs cannot produce a range.
    """
    strategy = BuildStrategy.parse(strategy)
    if strategy is BuildStrategy.MANUAL:
        return ResolvedRange(strategy)

    if not commits:
        raise ValidationError("The selected branch has no commits to build from.")

    if strategy is BuildStrategy.FULL:
        head = commits[0].sha
        if len(commits) == 1:
            return ResolvedRange(strategy, EMPTY_TREE_SHA, head, root_fallback=True)
        return ResolvedRange(strategy, commits[-1].sha, head)

    if not selected_commit:
        raise ValidationError("Select a commit for the single-commit strategy.")
    idx = _index_of(commits, selected_commit.strip())
    if idx is None:
        raise ValidationError(f"Commit {selected_commit} is not in the loaded history.")
    head = commits[idx].sha
    if idx == len(commits) - 1:
        return ResolvedRange(strategy, EMPTY_TREE_SHA, head, root_fallback=True)
    return ResolvedRange(strategy, commits[idx + 1].sha, head)


def manual_entries(paths: Iterable[str]) -> list[ChangeEntry]:
    """Authoritative list for ``MANUAL``: every tree path, all unmodified."""
    return [ChangeEntry(path, ChangeStatus.UNMODIFIED) for path in paths]


__all__ = [
    "BuildStrategy",
    "ResolvedRange",
    "resolve_strategy",
    "manual_entries",
]
