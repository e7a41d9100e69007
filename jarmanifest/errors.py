"""Exception hierarchy for manifest resolution.

Library code raises these; only the build session turns ``DataFetchError``
into inline state and only the CLI turns them into exit messages.
"""

from __future__ import annotations


class JarManifestError(Exception):
    """Base class for every error raised by jarmanifest."""


class DataFetchError(JarManifestError):
    """A branch/commit/tree/diff query against the git data provider failed."""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class ValidationError(JarManifestError):
    """Operator input is incomplete or inconsistent (user-facing message)."""


class TransitionError(ValidationError):
    """A pipeline step change is not allowed from the current state."""


class DiffParseError(JarManifestError):
    """Patch text for a single file could not be parsed as a unified diff."""

    def __init__(self, message: str, *, path: str | None = None, line_no: int | None = None) -> None:
        super().__init__(message)
        self.path = path
        self.line_no = line_no


class UnknownPathError(JarManifestError, KeyError):
    """A selection operation referenced a path absent from the canonical tree."""

    def __init__(self, path: str) -> None:
        super().__init__(path)
        self.path = path

    def __str__(self) -> str:
        return f"path is not part of the current file tree: {self.path}"


__all__ = [
    "JarManifestError",
    "DataFetchError",
    "ValidationError",
    "TransitionError",
    "DiffParseError",
    "UnknownPathError",
]
