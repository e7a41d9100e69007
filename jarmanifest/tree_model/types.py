"""Change-entry and tree-node datatypes used across tree modules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

PATH_SEPARATOR = "/"


class ChangeStatus(str, Enum):
    """How a file differs between the base and head of the resolved range."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    UNMODIFIED = "unmodified"

    @classmethod
    def parse(cls, value: "str | ChangeStatus") -> "ChangeStatus":
        """Accept wire names (``modified``) and git letters (``M``)."""
        if isinstance(value, ChangeStatus):
            return value
        key = str(value).strip()
        status = _STATUS_ALIASES.get(key) or _STATUS_ALIASES.get(key.lower())
        if status is None:
            raise ValueError(f"unknown change status: {value!r}")
        return status

    @property
    def badge(self) -> str:
        """One-letter label shown next to tree leaves."""
        return _STATUS_BADGES[self]


_STATUS_ALIASES: dict[str, ChangeStatus] = {
    "added": ChangeStatus.ADDED,
    "A": ChangeStatus.ADDED,
    "modified": ChangeStatus.MODIFIED,
    "changed": ChangeStatus.MODIFIED,
    "renamed": ChangeStatus.MODIFIED,
    "copied": ChangeStatus.MODIFIED,
    "M": ChangeStatus.MODIFIED,
    "T": ChangeStatus.MODIFIED,
    "R": ChangeStatus.MODIFIED,
    "C": ChangeStatus.MODIFIED,
    "deleted": ChangeStatus.DELETED,
    "removed": ChangeStatus.DELETED,
    "D": ChangeStatus.DELETED,
    "unmodified": ChangeStatus.UNMODIFIED,
    "unchanged": ChangeStatus.UNMODIFIED,
}

_STATUS_BADGES: dict[ChangeStatus, str] = {
    ChangeStatus.ADDED: "A",
    ChangeStatus.MODIFIED: "M",
    ChangeStatus.DELETED: "D",
    ChangeStatus.UNMODIFIED: " ",
}


def normalize_path(raw_path: str) -> str:
    """Canonical slash-separated repo path used as the key for every lookup.

    Drops empty and ``.`` segments so ``./a//b.xml`` and ``a/b.xml`` compare
    equal. Raises ``ValueError`` when nothing is left.
    """
    parts = [part for part in str(raw_path).strip().split(PATH_SEPARATOR) if part and part != "."]
    if not parts:
        raise ValueError(f"empty repository path: {raw_path!r}")
    return PATH_SEPARATOR.join(parts)


@dataclass(frozen=True)
class ChangeEntry:
    """One file relevant to the build under the active strategy."""

    path: str
    status: ChangeStatus
    patch: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", normalize_path(self.path))
        object.__setattr__(self, "status", ChangeStatus.parse(self.status))


@dataclass(frozen=True)
class TreeNode:
    """Immutable directory or file node of a change tree.

    ``status`` and ``patch`` are only set on leaves.
    """

    name: str
    path: str
    is_leaf: bool
    children: tuple["TreeNode", ...] = ()
    status: ChangeStatus | None = None
    patch: str | None = None

    def to_entry(self) -> ChangeEntry:
        """Return the change entry a leaf node was built from."""
        if not self.is_leaf or self.status is None:
            raise ValueError(f"not a leaf node: {self.path}")
        return ChangeEntry(self.path, self.status, self.patch)


__all__ = [
    "PATH_SEPARATOR",
    "ChangeStatus",
    "ChangeEntry",
    "TreeNode",
    "normalize_path",
]
