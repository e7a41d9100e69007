"""Environment file overrides: read-only listing and selection overlay.

The core never applies override content; it only shows which overrides exist
for the chosen environment and forwards the operator's ``apply_overrides``
decision in the manifest.
"""

from __future__ import annotations

import json
from collections.abc import Collection, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from .errors import DataFetchError
from .tree_model import normalize_path


@dataclass(frozen=True)
class FileOverride:
    """Environment-specific replacement content for one repository path."""

    file_path: str
    content: str


@runtime_checkable
class EnvironmentOverrideProvider(Protocol):
    def overrides_for(self, environment_id: str) -> tuple[FileOverride, ...]: ...


def _parse_overrides(raw_items: object) -> tuple[FileOverride, ...]:
    """Keep well-formed ``{"filePath", "content"}`` records, drop the rest."""
    if not isinstance(raw_items, list):
        return ()
    parsed: list[FileOverride] = []
    for item in raw_items:
        if not isinstance(item, dict):
            continue
        raw_path = item.get("filePath")
        content = item.get("content")
        if not isinstance(raw_path, str) or not raw_path.strip() or not isinstance(content, str):
            continue
        parsed.append(FileOverride(file_path=normalize_path(raw_path), content=content))
    return tuple(parsed)


class JsonOverrideProvider:
    """Overrides read from a JSON object mapping environment ids to lists."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _load(self) -> dict[str, object]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise DataFetchError(f"cannot read overrides from {self.path}: {exc}", operation="overrides") from exc
        if not isinstance(data, dict):
            raise DataFetchError(f"overrides file {self.path} must hold a JSON object", operation="overrides")
        return data

    def environment_ids(self) -> list[str]:
        return [str(key) for key in self._load()]

    def overrides_for(self, environment_id: str) -> tuple[FileOverride, ...]:
        return _parse_overrides(self._load().get(environment_id))


@dataclass(frozen=True)
class OverrideStatus:
    """How one override relates to the current build selection."""

    override: FileOverride
    selected: bool
    will_apply: bool


def overrides_for_selection(
    overrides: Iterable[FileOverride],
    selection: Collection[str],
    apply_overrides: bool,
) -> list[OverrideStatus]:
    """Mark overrides touching selected files and whether they will apply."""
    return [
        OverrideStatus(
            override=override,
            selected=override.file_path in selection,
            will_apply=bool(apply_overrides),
        )
        for override in overrides
    ]


__all__ = [
    "FileOverride",
    "EnvironmentOverrideProvider",
    "JsonOverrideProvider",
    "OverrideStatus",
    "overrides_for_selection",
]
