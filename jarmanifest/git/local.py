"""Git data provider backed by the ``git`` CLI on local repositories."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from ..diff import split_patch_by_file
from ..errors import DataFetchError
from ..tree_model import ChangeEntry, ChangeStatus, normalize_path
from .types import CommitRef

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 10.0
GIT_MAX_COMMITS = 200

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_NAME_STATUS_LETTERS: dict[str, ChangeStatus] = {
    "A": ChangeStatus.ADDED,
    "D": ChangeStatus.DELETED,
    "M": ChangeStatus.MODIFIED,
    "T": ChangeStatus.MODIFIED,
    "R": ChangeStatus.MODIFIED,
    "C": ChangeStatus.MODIFIED,
}


def _run_git(repo_root: Path, args: list[str], timeout_seconds: float, *, operation: str) -> str:
    """Execute a git subcommand and return stdout, raising ``DataFetchError``."""
    command = ["git", "-c", "core.quotePath=false", "-C", str(repo_root), *args]
    logger.debug("running %s", " ".join(command))
    try:
        proc = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout_seconds,
        )
    except subprocess.TimeoutExpired as exc:
        raise DataFetchError(f"git {args[0]} timed out after {timeout_seconds}s", operation=operation) from exc
    except OSError as exc:
        raise DataFetchError(f"cannot run git: {exc}", operation=operation) from exc
    if proc.returncode != 0:
        detail = proc.stderr.strip().splitlines()
        message = detail[-1] if detail else f"exit status {proc.returncode}"
        raise DataFetchError(f"git {args[0]} failed: {message}", operation=operation)
    return proc.stdout


def resolve_repo_root(path: Path, timeout_seconds: float = GIT_TIMEOUT_SECONDS) -> Path:
    """Return the work-tree root containing ``path``."""
    output = _run_git(path, ["rev-parse", "--show-toplevel"], timeout_seconds, operation="rev-parse")
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    if not lines:
        raise DataFetchError(f"not a git work tree: {path}", operation="rev-parse")
    return Path(lines[0]).resolve()


def _iter_name_status_records(output: str) -> list[tuple[str, str]]:
    """Parse ``diff --name-status -z`` output into ``(letter, path)`` pairs."""
    records: list[tuple[str, str]] = []
    tokens = output.split("\0")
    index = 0
    while index < len(tokens):
        status = tokens[index]
        index += 1
        if not status:
            continue
        if index >= len(tokens):
            break
        path_text = tokens[index]
        index += 1

        # Renames and copies carry source then destination; keep destination.
        if status[0] in {"R", "C"} and index < len(tokens):
            path_text = tokens[index]
            index += 1
        records.append((status[0], path_text))
    return records


class LocalGitProvider:
    """``GitDataProvider`` for repositories on the local filesystem.

    ``projects`` maps project ids to repository work-tree roots.
    """

    def __init__(
        self,
        projects: Mapping[str, Path],
        *,
        timeout_seconds: float = GIT_TIMEOUT_SECONDS,
        max_commits: int = GIT_MAX_COMMITS,
    ) -> None:
        self._projects = {project_id: Path(root) for project_id, root in projects.items()}
        self.timeout_seconds = timeout_seconds
        self.max_commits = max(1, int(max_commits))

    @classmethod
    def for_repository(
        cls,
        repo_path: Path,
        project_id: str | None = None,
        *,
        timeout_seconds: float = GIT_TIMEOUT_SECONDS,
        max_commits: int = GIT_MAX_COMMITS,
    ) -> "LocalGitProvider":
        """Build a single-project provider; the project id defaults to the repo name."""
        root = resolve_repo_root(repo_path, timeout_seconds)
        return cls(
            {project_id or root.name: root},
            timeout_seconds=timeout_seconds,
            max_commits=max_commits,
        )

    @property
    def project_ids(self) -> list[str]:
        return list(self._projects)

    def _repo(self, project_id: str, operation: str) -> Path:
        try:
            return self._projects[project_id]
        except KeyError:
            raise DataFetchError(f"unknown project: {project_id}", operation=operation) from None

    def _git(self, project_id: str, args: list[str], operation: str) -> str:
        return _run_git(self._repo(project_id, operation), args, self.timeout_seconds, operation=operation)

    def list_branches(self, project_id: str) -> list[str]:
        output = self._git(
            project_id,
            ["for-each-ref", "--format=%(refname:short)", "refs/heads"],
            "list_branches",
        )
        return [line.strip() for line in output.splitlines() if line.strip()]

    def list_commits(self, project_id: str, branch: str) -> list[CommitRef]:
        output = self._git(
            project_id,
            [
                "log",
                f"--max-count={self.max_commits}",
                f"--format=%H{_FIELD_SEP}%s{_RECORD_SEP}",
                branch,
                "--",
            ],
            "list_commits",
        )
        commits: list[CommitRef] = []
        for record in output.split(_RECORD_SEP):
            record = record.strip("\n")
            if not record:
                continue
            sha, _sep, message = record.partition(_FIELD_SEP)
            commits.append(CommitRef(sha=sha.strip(), message=message.strip()))
        return commits

    def list_tree(self, project_id: str, branch: str) -> list[str]:
        output = self._git(project_id, ["ls-tree", "-r", "-z", "--name-only", branch], "list_tree")
        return [path for path in output.split("\0") if path]

    def diff(self, project_id: str, base_sha: str, head_sha: str) -> list[ChangeEntry]:
        return self._diff(project_id, base_sha, head_sha, None, "diff")

    def diff_scoped(
        self,
        project_id: str,
        base_sha: str,
        head_sha: str,
        paths: Sequence[str],
    ) -> list[ChangeEntry]:
        if not paths:
            return []
        return self._diff(project_id, base_sha, head_sha, [normalize_path(path) for path in paths], "diff_scoped")

    def _diff(
        self,
        project_id: str,
        base_sha: str,
        head_sha: str,
        paths: list[str] | None,
        operation: str,
    ) -> list[ChangeEntry]:
        pathspec = ["--", *(f":(literal){path}" for path in paths)] if paths else []
        name_status = self._git(
            project_id,
            ["diff", "--name-status", "-z", "--no-renames", base_sha, head_sha, *pathspec],
            operation,
        )
        patch_text = self._git(
            project_id,
            ["diff", "--no-color", "--no-renames", "--no-ext-diff", base_sha, head_sha, *pathspec],
            operation,
        )
        patches = split_patch_by_file(patch_text)
        return [
            ChangeEntry(
                path=path,
                status=_NAME_STATUS_LETTERS.get(letter, ChangeStatus.MODIFIED),
                patch=patches.get(path),
            )
            for letter, path in _iter_name_status_records(name_status)
        ]


__all__ = [
    "GIT_TIMEOUT_SECONDS",
    "GIT_MAX_COMMITS",
    "LocalGitProvider",
    "resolve_repo_root",
]
