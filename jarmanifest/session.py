"""Build session: pipeline steps and the state they drive.

A ``BuildSession`` owns the operator's inputs (project, branch, strategy,
commit, environment), the authoritative change list with its canonical tree,
the selection, and the preview reconciler. Any change to an input that feeds
the change list rebuilds everything downstream from scratch: the selection is
cleared and in-flight preview state is discarded in the same call.

Pipeline: ``CONFIG -> FILES -> PREVIEW (optional, never for MANUAL) ->
SUMMARY -> SUBMITTED``. Every step change is recorded as a timestamped
``StepTransition``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import Executor
from dataclasses import dataclass
from enum import Enum

from .errors import DataFetchError, TransitionError, ValidationError
from .git.cache import QueryCache, QueryKey
from .git.provider import GitDataProvider
from .git.types import CommitRef
from .manifest import DEFAULT_VERSION, ManifestRequest, assemble, new_job_id
from .overrides import EnvironmentOverrideProvider, FileOverride, OverrideStatus, overrides_for_selection
from .preview import PreviewContext, PreviewReconciler, PreviewState, preview_enabled
from .selection import FolderState, SelectionManager
from .strategy import BuildStrategy, ResolvedRange, manual_entries, resolve_strategy
from .submission import BuildSubmissionService, SubmissionReceipt
from .tree_model import (
    ChangeEntry,
    ExpansionState,
    TreeNode,
    build_tree,
    build_tree_index,
    filter_tree,
)

logger = logging.getLogger(__name__)


class PipelineStep(str, Enum):
    CONFIG = "config"
    FILES = "files"
    PREVIEW = "preview"
    SUMMARY = "summary"
    SUBMITTED = "submitted"


_ALLOWED_MOVES: dict[PipelineStep, frozenset[PipelineStep]] = {
    PipelineStep.CONFIG: frozenset({PipelineStep.FILES}),
    PipelineStep.FILES: frozenset({PipelineStep.CONFIG, PipelineStep.PREVIEW, PipelineStep.SUMMARY}),
    PipelineStep.PREVIEW: frozenset({PipelineStep.CONFIG, PipelineStep.FILES, PipelineStep.SUMMARY}),
    PipelineStep.SUMMARY: frozenset({PipelineStep.CONFIG, PipelineStep.FILES, PipelineStep.PREVIEW}),
    PipelineStep.SUBMITTED: frozenset(),
}


@dataclass(frozen=True)
class StepTransition:
    """One pipeline move and when it happened (``clock()`` seconds)."""

    source: PipelineStep
    target: PipelineStep
    at: float


class BuildSession:
    """Single-threaded state holder for one manifest being assembled."""

    def __init__(
        self,
        provider: GitDataProvider,
        *,
        cache: QueryCache | None = None,
        override_provider: EnvironmentOverrideProvider | None = None,
        strategy: BuildStrategy | str = BuildStrategy.FULL,
        version: str = DEFAULT_VERSION,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.provider = provider
        self.cache = cache if cache is not None else QueryCache()
        self.override_provider = override_provider
        self.clock = clock

        self.project_id: str | None = None
        self.branch: str | None = None
        self.strategy = BuildStrategy.parse(strategy)
        self.selected_commit: str | None = None
        self.version = version
        self.environment_id: str | None = None
        self.apply_overrides = False

        self.branches: tuple[str, ...] = ()
        self.commits: tuple[CommitRef, ...] = ()
        self.overrides: tuple[FileOverride, ...] = ()
        self.resolved: ResolvedRange | None = None
        self.entries: tuple[ChangeEntry, ...] = ()
        self.tree: tuple[TreeNode, ...] = ()
        self.files_loaded = False
        self.fetch_error: str | None = None
        self.override_error: str | None = None
        self.resolution_error: str | None = None

        self.selection = SelectionManager()
        self.expansion = ExpansionState()
        self.filter_query = ""
        self._display_cache: tuple[str, tuple[TreeNode, ...], frozenset[str]] | None = None
        self.preview = PreviewReconciler(provider, self.cache)

        self.step = PipelineStep.CONFIG
        self.transitions: list[StepTransition] = []
        self.manifest: ManifestRequest | None = None
        self.receipt: SubmissionReceipt | None = None

    # ------------------------------------------------------------------
    # Configuration inputs

    def _ensure_editable(self) -> None:
        if self.step is PipelineStep.SUBMITTED:
            raise TransitionError("This build was already submitted; start a new session.")

    def _rewind_to_config(self) -> None:
        if self.step is not PipelineStep.CONFIG:
            self._record(PipelineStep.CONFIG)

    def _fetch(self, key: QueryKey, loader: Callable[[], object]) -> object | None:
        """Run a cached query; failures become ``fetch_error`` instead of raising."""
        try:
            return self.cache.get(key, loader)
        except DataFetchError as exc:
            logger.warning("%s failed: %s", key.operation, exc)
            self.fetch_error = str(exc)
            return None

    def select_project(self, project_id: str | None) -> None:
        """Choose the project; clears branch, history, and everything below."""
        self._ensure_editable()
        self._rewind_to_config()
        self.project_id = project_id or None
        self.branch = None
        self.selected_commit = None
        self.branches = ()
        self.commits = ()
        self.fetch_error = None
        self._reset_files()
        if self.project_id is None:
            return
        project_id = self.project_id
        branches = self._fetch(
            QueryKey.scoped("branches", project_id),
            lambda: tuple(self.provider.list_branches(project_id)),
        )
        self.branches = branches or ()

    def select_branch(self, branch: str | None) -> None:
        """Choose the branch, load its history, and rebuild the file list."""
        self._ensure_editable()
        self._rewind_to_config()
        self.branch = branch or None
        self.selected_commit = None
        self.commits = ()
        self.fetch_error = None
        if self.project_id is not None and self.branch is not None:
            project_id, branch_name = self.project_id, self.branch
            commits = self._fetch(
                QueryKey.scoped("commits", project_id, branch=branch_name),
                lambda: tuple(self.provider.list_commits(project_id, branch_name)),
            )
            self.commits = commits or ()
        self._reload_files()

    def set_strategy(self, strategy: BuildStrategy | str) -> None:
        self._ensure_editable()
        self._rewind_to_config()
        self.strategy = BuildStrategy.parse(strategy)
        self._reload_files()

    def select_commit(self, sha: str | None) -> None:
        """Choose the head commit for the single-commit strategy."""
        self._ensure_editable()
        self._rewind_to_config()
        self.selected_commit = sha or None
        self._reload_files()

    def set_version(self, version: str) -> None:
        self._ensure_editable()
        self.version = version.strip() or DEFAULT_VERSION

    def set_environment(self, environment_id: str | None) -> None:
        """Choose the target environment and list its file overrides."""
        self._ensure_editable()
        self.environment_id = environment_id or None
        self.overrides = ()
        self.override_error = None
        if self.environment_id is None or self.override_provider is None:
            return
        try:
            self.overrides = tuple(self.override_provider.overrides_for(self.environment_id))
        except DataFetchError as exc:
            logger.warning("override listing failed: %s", exc)
            self.override_error = str(exc)

    def set_apply_overrides(self, apply: bool) -> None:
        self._ensure_editable()
        self.apply_overrides = bool(apply)

    def reload(self) -> None:
        """Drop cached queries for the project and rebuild (operator retry)."""
        self._ensure_editable()
        if self.project_id is not None:
            project_id = self.project_id
            self.cache.invalidate(lambda key: key.project_id == project_id)
        branch = self.branch
        selected_commit = self.selected_commit
        self.select_project(self.project_id)
        if branch is not None:
            self.select_branch(branch)
        if selected_commit is not None:
            self.select_commit(selected_commit)

    # ------------------------------------------------------------------
    # Authoritative file list

    def _reset_files(self) -> None:
        """Forget the change list and everything derived from it."""
        self.resolved = None
        self.entries = ()
        self.tree = ()
        self.files_loaded = False
        self.resolution_error = None
        self._display_cache = None
        self.selection.reset(build_tree_index(()))
        self.expansion.collapse_all()
        self.preview.discard()
        self.manifest = None

    def _reload_files(self) -> None:
        """Re-resolve the range and replace the change list wholesale."""
        self._reset_files()
        if self.project_id is None or self.branch is None:
            return
        if self.fetch_error is not None and not self.commits and self.strategy is not BuildStrategy.MANUAL:
            return
        self.fetch_error = None
        try:
            resolved = resolve_strategy(self.strategy, self.commits, self.selected_commit)
        except ValidationError as exc:
            self.resolution_error = str(exc)
            return
        self.resolved = resolved

        project_id, branch = self.project_id, self.branch
        if resolved.uses_full_tree:
            key = QueryKey.scoped("tree", project_id, branch=branch, strategy=resolved.strategy.value)
            loaded = self._fetch(key, lambda: tuple(manual_entries(self.provider.list_tree(project_id, branch))))
        else:
            assert resolved.base_sha is not None and resolved.head_sha is not None
            base_sha, head_sha = resolved.base_sha, resolved.head_sha
            key = QueryKey.scoped(
                "diff",
                project_id,
                branch=branch,
                base_sha=base_sha,
                head_sha=head_sha,
                strategy=resolved.strategy.value,
            )
            loaded = self._fetch(key, lambda: tuple(self.provider.diff(project_id, base_sha, head_sha)))
        if loaded is None:
            return

        self.entries = tuple(loaded)
        self.tree = build_tree(self.entries)
        self.selection.reset(build_tree_index(self.tree))
        self.expansion.reset_for(self.tree)
        self.files_loaded = True
        if resolved.has_range:
            self.preview.set_preview_base(resolved.base_sha)
        logger.debug(
            "loaded %d files for %s@%s (%s)",
            len(self.entries),
            project_id,
            branch,
            resolved.strategy.value,
        )

    # ------------------------------------------------------------------
    # Selection and display

    def _ensure_files(self) -> None:
        self._ensure_editable()
        if not self.files_loaded:
            raise ValidationError("No file list is loaded yet.")

    def _selection_changed(self) -> None:
        # The preview is scoped to the selection, so any loaded tree is stale.
        self.preview.invalidate()
        if self.step is PipelineStep.PREVIEW:
            self.refresh_preview()

    def toggle_file(self, path: str) -> bool:
        self._ensure_files()
        selected = self.selection.toggle_file(path)
        self._selection_changed()
        return selected

    def toggle_folder(self, folder_path: str) -> bool:
        self._ensure_files()
        selected = self.selection.toggle_folder(folder_path)
        self._selection_changed()
        return selected

    def select_all(self) -> None:
        self._ensure_files()
        self.selection.select_all()
        self._selection_changed()

    def clear_selection(self) -> None:
        self._ensure_files()
        self.selection.clear()
        self._selection_changed()

    def folder_state(self, folder_path: str) -> FolderState:
        return self.selection.folder_state(folder_path)

    def set_filter(self, query: str) -> None:
        """Change the display filter; the canonical tree is untouched."""
        self.filter_query = query

    def _display(self) -> tuple[tuple[TreeNode, ...], frozenset[str]]:
        cached = self._display_cache
        if cached is not None and cached[0] == self.filter_query:
            return cached[1], cached[2]
        filtered, forced = filter_tree(self.tree, self.filter_query)
        self._display_cache = (self.filter_query, filtered, forced)
        return filtered, forced

    @property
    def display_tree(self) -> tuple[TreeNode, ...]:
        return self._display()[0]

    @property
    def display_expanded(self) -> frozenset[str]:
        return self.expansion.expanded | self._display()[1]

    @property
    def override_statuses(self) -> list[OverrideStatus]:
        return overrides_for_selection(self.overrides, self.selection.selected, self.apply_overrides)

    # ------------------------------------------------------------------
    # Preview

    @property
    def base_sha(self) -> str | None:
        return self.resolved.base_sha if self.resolved is not None else None

    @property
    def head_sha(self) -> str | None:
        return self.resolved.head_sha if self.resolved is not None else None

    def preview_context(self) -> PreviewContext:
        return PreviewContext(
            project_id=self.project_id,
            strategy=self.strategy,
            head_sha=self.head_sha,
            selected_paths=self.selection.selected,
        )

    @property
    def preview_enabled(self) -> bool:
        return preview_enabled(self.preview_context(), self.preview.preview_base)

    def set_preview_base(self, sha: str | None) -> PreviewState:
        """Pick a base for inspection only; reloads the preview tree."""
        self._ensure_editable()
        self.preview.set_preview_base(sha)
        return self.refresh_preview()

    def refresh_preview(self, executor: Executor | None = None) -> PreviewState:
        """Reload the preview tree now, or schedule it on ``executor``."""
        context = self.preview_context()
        if executor is None:
            return self.preview.refresh(context)
        self.preview.schedule(context, executor)
        return self.preview.state

    # ------------------------------------------------------------------
    # Pipeline

    def _record(self, target: PipelineStep) -> None:
        transition = StepTransition(source=self.step, target=target, at=self.clock())
        self.transitions.append(transition)
        logger.debug("pipeline %s -> %s", transition.source.value, transition.target.value)
        self.step = target

    def blocked_reason(self, target: PipelineStep) -> str | None:
        """Why ``target`` cannot be entered from the current step (``None`` if it can)."""
        target = PipelineStep(target)
        if target is PipelineStep.SUBMITTED:
            return "Use submit() to generate the build."
        if target not in _ALLOWED_MOVES[self.step]:
            return f"Cannot move from {self.step.value} to {target.value}."
        if target is PipelineStep.CONFIG:
            return None
        if target is PipelineStep.FILES:
            if self.project_id is None:
                return "Select a project first."
            if self.branch is None:
                return "Select a branch first."
            if self.fetch_error is not None:
                return self.fetch_error
            if self.resolution_error is not None:
                return self.resolution_error
            if self.resolved is None or not self.files_loaded:
                return "The file list is not loaded yet."
            return None
        if not self.selection.selected:
            return "Select at least one file to continue."
        if target is PipelineStep.PREVIEW and self.strategy is BuildStrategy.MANUAL:
            return "Preview is not available for the manual strategy."
        return None

    def can_enter(self, target: PipelineStep) -> bool:
        return self.blocked_reason(target) is None

    def goto(self, target: PipelineStep) -> None:
        """Move to ``target`` or raise ``TransitionError`` with the reason."""
        target = PipelineStep(target)
        reason = self.blocked_reason(target)
        if reason is not None:
            raise TransitionError(reason)
        self._record(target)
        if target is PipelineStep.PREVIEW:
            self.refresh_preview()

    def next_step(self) -> PipelineStep | None:
        """Forward step from here; ``FILES`` skips ``PREVIEW`` for manual builds."""
        if self.step is PipelineStep.CONFIG:
            return PipelineStep.FILES
        if self.step is PipelineStep.FILES:
            if self.strategy is BuildStrategy.MANUAL:
                return PipelineStep.SUMMARY
            return PipelineStep.PREVIEW
        if self.step is PipelineStep.PREVIEW:
            return PipelineStep.SUMMARY
        return None

    def advance(self) -> PipelineStep:
        target = self.next_step()
        if target is None:
            raise TransitionError(f"No step follows {self.step.value}; use submit().")
        self.goto(target)
        return target

    def back(self) -> PipelineStep:
        """Return to the previous step (``PREVIEW`` is skipped for manual builds)."""
        previous = {
            PipelineStep.FILES: PipelineStep.CONFIG,
            PipelineStep.PREVIEW: PipelineStep.FILES,
            PipelineStep.SUMMARY: (
                PipelineStep.FILES if self.strategy is BuildStrategy.MANUAL else PipelineStep.PREVIEW
            ),
        }.get(self.step)
        if previous is None:
            raise TransitionError(f"Cannot go back from {self.step.value}.")
        self.goto(previous)
        return previous

    def build_manifest(self, job_id: str | None = None) -> ManifestRequest:
        """Assemble the request from the current state without submitting."""
        return assemble(
            self.strategy,
            self.entries,
            self.selection.selected,
            self.apply_overrides,
            self.project_id,
            self.base_sha,
            self.head_sha,
            job_id=job_id or new_job_id(self.clock()),
            branch=self.branch,
            version=self.version,
            environment_id=self.environment_id,
        )

    def submit(self, submitter: BuildSubmissionService, job_id: str | None = None) -> SubmissionReceipt:
        """Assemble, hand off to ``submitter``, and enter ``SUBMITTED``.

        Only allowed from ``SUMMARY``. ``ValidationError`` from assembly leaves
        the session where it was.
        """
        if self.step is not PipelineStep.SUMMARY:
            raise TransitionError("Review the summary before submitting the build.")
        request = self.build_manifest(job_id)
        receipt = submitter.submit(request)
        self.manifest = request
        self.receipt = receipt
        self._record(PipelineStep.SUBMITTED)
        logger.info("submitted %s with %d files", request.job_id, len(request.files))
        return receipt


__all__ = [
    "PipelineStep",
    "StepTransition",
    "BuildSession",
]
