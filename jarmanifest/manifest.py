"""Manifest assembly: the final description of which files go into a build.

File statuses always come from the authoritative change list, never from a
tree projection, so a rebuilt or filtered tree cannot change what is shipped.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Collection, Iterable
from dataclasses import dataclass

from .errors import ValidationError
from .strategy import BuildStrategy
from .tree_model import ChangeEntry, ChangeStatus, normalize_path

DEFAULT_VERSION = "1.0.0"


@dataclass(frozen=True)
class ManifestFile:
    path: str
    status: ChangeStatus


@dataclass(frozen=True)
class ManifestRequest:
    """Complete build request handed to the submission service."""

    job_id: str
    project_id: str
    strategy: BuildStrategy
    base_sha: str | None
    head_sha: str | None
    files: tuple[ManifestFile, ...]
    apply_overrides: bool
    branch: str | None = None
    version: str | None = None
    environment_id: str | None = None

    @property
    def paths(self) -> list[str]:
        return [item.path for item in self.files]

    def to_payload(self) -> dict[str, object]:
        """JSON-ready wire form with camelCase keys."""
        return {
            "jobId": self.job_id,
            "projectId": self.project_id,
            "branch": self.branch,
            "version": self.version,
            "environmentId": self.environment_id,
            "strategy": self.strategy.value,
            "baseSha": self.base_sha,
            "headSha": self.head_sha,
            "applyOverrides": self.apply_overrides,
            "files": [{"path": item.path, "changeStatus": item.status.value} for item in self.files],
        }


def new_job_id(now: float | None = None) -> str:
    """Return a fresh caller-side job id, ``job-<epoch-ms>-<random>``."""
    millis = int((time.time() if now is None else now) * 1000)
    return f"job-{millis}-{uuid.uuid4().hex[:9]}"


def assemble(
    strategy: BuildStrategy | str,
    authoritative_files: Iterable[ChangeEntry],
    selection: Collection[str],
    apply_overrides: bool,
    project_id: str | None,
    base_sha: str | None,
    head_sha: str | None,
    *,
    job_id: str,
    branch: str | None = None,
    version: str | None = None,
    environment_id: str | None = None,
) -> ManifestRequest:
    """Merge selection, authoritative statuses, and flags into a request.

    Raises ``ValidationError`` when no project is chosen, the selection is
    empty, a selected path is missing from the authoritative list, or a
    diff-based strategy lacks its commit range. Files are emitted in
    authoritative-list order.
    """
    strategy = BuildStrategy.parse(strategy)
    if not project_id:
        raise ValidationError("Select a project before generating a build.")
    if not selection:
        raise ValidationError("Select at least one file to include in the build.")
    if not job_id:
        raise ValidationError("A job id is required to submit a build.")
    if strategy is not BuildStrategy.MANUAL and (not base_sha or not head_sha):
        raise ValidationError("The commit range is not resolved yet.")

    wanted = {normalize_path(path) for path in selection}
    status_by_path: dict[str, ChangeStatus] = {}
    ordered: list[str] = []
    for entry in authoritative_files:
        if entry.path in status_by_path:
            continue
        status_by_path[entry.path] = entry.status
        ordered.append(entry.path)

    missing = sorted(wanted.difference(status_by_path))
    if missing:
        raise ValidationError(
            f"{len(missing)} selected file(s) are not in the current file list "
            f"(first: {missing[0]}); reselect files."
        )

    files = tuple(ManifestFile(path, status_by_path[path]) for path in ordered if path in wanted)
    return ManifestRequest(
        job_id=job_id,
        project_id=project_id,
        strategy=strategy,
        base_sha=base_sha if strategy is not BuildStrategy.MANUAL else None,
        head_sha=head_sha if strategy is not BuildStrategy.MANUAL else None,
        files=files,
        apply_overrides=bool(apply_overrides),
        branch=branch,
        version=version,
        environment_id=environment_id,
    )


def summarize_manifest(request: ManifestRequest) -> dict[ChangeStatus, int]:
    """Count manifest files per change status (statuses with zero omitted)."""
    counts: dict[ChangeStatus, int] = {}
    for status in ChangeStatus:
        total = sum(1 for item in request.files if item.status is status)
        if total:
            counts[status] = total
    return counts


def format_summary(request: ManifestRequest) -> str:
    """Human-readable "ready to build" summary."""
    lines = [
        f"Project:     {request.project_id}",
        f"Branch:      {request.branch or '-'}",
        f"Version:     {request.version or '-'}",
        f"Environment: {request.environment_id or '-'}",
        f"Strategy:    {request.strategy.label}",
    ]
    if request.base_sha and request.head_sha:
        lines.append(f"Range:       {request.base_sha[:7]}..{request.head_sha[:7]}")
    lines.append(f"Overrides:   {'apply' if request.apply_overrides else 'skip'}")
    for status, count in summarize_manifest(request).items():
        lines.append(f"  {status.value:<11}{count}")
    lines.append(
        f"Your JAR will be generated using {len(request.files)} files from the "
        f"{request.branch or '-'} branch. The build will use the {request.strategy.value} "
        f"strategy and will be versioned as {request.version or '-'}."
    )
    return "\n".join(lines)


__all__ = [
    "DEFAULT_VERSION",
    "ManifestFile",
    "ManifestRequest",
    "new_job_id",
    "assemble",
    "summarize_manifest",
    "format_summary",
]
