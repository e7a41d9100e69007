"""Commit datatypes returned by git data providers."""

from __future__ import annotations

from dataclasses import dataclass

# Object id of git's empty tree; diffing against it lists every file as added.
EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"


@dataclass(frozen=True)
class CommitRef:
    """One commit as listed for a branch (lists are newest-first)."""

    sha: str
    message: str = ""

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    def label(self) -> str:
        """Short display label, ``abc1234  subject``."""
        return f"{self.short_sha}  {self.message}" if self.message else self.short_sha


__all__ = ["EMPTY_TREE_SHA", "CommitRef"]
