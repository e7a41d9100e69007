"""Build submission collaborator protocol and a JSON writer implementation."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, TextIO, runtime_checkable

from .manifest import ManifestRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionReceipt:
    """Acknowledgement of a submitted build; ``job_id`` echoes the request."""

    job_id: str


@runtime_checkable
class BuildSubmissionService(Protocol):
    def submit(self, request: ManifestRequest) -> SubmissionReceipt: ...


class JsonManifestWriter:
    """Write the manifest payload as JSON to a file or stream.

    Re-submitting the same request overwrites the same file, so the job id
    stays the only identity of a build.
    """

    def __init__(self, target: Path | None = None, stream: TextIO | None = None) -> None:
        self.target = target
        self.stream = stream

    def submit(self, request: ManifestRequest) -> SubmissionReceipt:
        text = json.dumps(request.to_payload(), indent=2) + "\n"
        if self.target is not None:
            self.target.parent.mkdir(parents=True, exist_ok=True)
            self.target.write_text(text, encoding="utf-8")
            logger.info("wrote manifest %s to %s", request.job_id, self.target)
        else:
            (self.stream or sys.stdout).write(text)
        return SubmissionReceipt(job_id=request.job_id)


__all__ = ["SubmissionReceipt", "BuildSubmissionService", "JsonManifestWriter"]
