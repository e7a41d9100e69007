"""Preview of an alternate diff range, decoupled from the build inputs.

The reconciler receives a frozen ``PreviewContext`` snapshot (strategy, head,
selected paths) and owns only its preview base and the secondary read-only
tree. It has no handle on the session's selection or committed range, so
changing the preview base cannot alter what gets built.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future
from dataclasses import dataclass

from .diff import RenderedPatch, render_patch
from .errors import DataFetchError
from .git.cache import QueryCache, QueryKey
from .git.provider import GitDataProvider
from .strategy import BuildStrategy
from .syntax import DEFAULT_STYLE
from .tree_model import ChangeEntry, ExpansionState, TreeNode, build_tree, normalize_path

logger = logging.getLogger(__name__)

MANUAL_PREVIEW_MESSAGE = "Preview not available in manual mode. All files are taken from the latest commit."


@dataclass(frozen=True)
class PreviewContext:
    """Read-only snapshot of the session state a preview depends on."""

    project_id: str | None
    strategy: BuildStrategy
    head_sha: str | None
    selected_paths: frozenset[str] = frozenset()


def preview_enabled(context: PreviewContext, preview_base: str | None) -> bool:
    """Preview needs a diff strategy, both ends of the range, and a selection."""
    return (
        context.strategy is not BuildStrategy.MANUAL
        and bool(context.project_id)
        and bool(preview_base)
        and bool(context.head_sha)
        and bool(context.selected_paths)
    )


@dataclass(frozen=True)
class PreviewState:
    """Result of one preview reconciliation."""

    generation: int
    preview_base: str | None = None
    head_sha: str | None = None
    enabled: bool = False
    loaded: bool = False
    entries: tuple[ChangeEntry, ...] = ()
    tree: tuple[TreeNode, ...] = ()
    error: str | None = None

    def entry_for(self, path: str) -> ChangeEntry | None:
        target = normalize_path(path)
        return next((entry for entry in self.entries if entry.path == target), None)

    def render_file(self, path: str, *, colorize: bool = True, style: str = DEFAULT_STYLE) -> RenderedPatch:
        """Render one previewed file; malformed patches degrade to raw text."""
        entry = self.entry_for(path)
        return render_patch(normalize_path(path), entry.patch if entry else None, colorize=colorize, style=style)


class PreviewReconciler:
    """Fetch and hold the selection-scoped diff for an operator-chosen base.

    Every base change or discard bumps a generation counter; results that
    arrive for an older generation are dropped (latest request wins).
    """

    def __init__(self, provider: GitDataProvider, cache: QueryCache | None = None) -> None:
        self._provider = provider
        self._cache = cache if cache is not None else QueryCache()
        self._generation = 0
        self._preview_base: str | None = None
        self._pending: tuple[int, str | None, str | None, Future] | None = None
        self.state = PreviewState(generation=0)
        self.expansion = ExpansionState()

    @property
    def preview_base(self) -> str | None:
        return self._preview_base

    @property
    def generation(self) -> int:
        return self._generation

    def discard(self) -> None:
        """Drop preview base, tree, and any in-flight fetch."""
        self._generation += 1
        self._preview_base = None
        self._pending = None
        self.state = PreviewState(generation=self._generation)
        self.expansion.collapse_all()

    def invalidate(self) -> None:
        """Drop the loaded tree and any in-flight fetch; keep the chosen base."""
        self._generation += 1
        self._pending = None
        self.state = PreviewState(generation=self._generation, preview_base=self._preview_base)

    def set_preview_base(self, preview_base: str | None) -> None:
        """Choose a different base for inspection only; invalidates the tree."""
        self._generation += 1
        self._preview_base = preview_base or None
        self._pending = None
        self.state = PreviewState(generation=self._generation, preview_base=self._preview_base)

    def _key(self, context: PreviewContext) -> QueryKey:
        return QueryKey.scoped(
            "diff_scoped",
            context.project_id or "",
            base_sha=self._preview_base,
            head_sha=context.head_sha,
            strategy=context.strategy.value,
            paths=context.selected_paths,
        )

    def _loader(self, context: PreviewContext, base: str):
        head = context.head_sha or ""
        project_id = context.project_id or ""
        paths = sorted(context.selected_paths)

        def load() -> tuple[ChangeEntry, ...]:
            return tuple(self._provider.diff_scoped(project_id, base, head, paths))

        return load

    def _disabled_state(self, context: PreviewContext) -> PreviewState:
        return PreviewState(
            generation=self._generation,
            preview_base=self._preview_base,
            head_sha=context.head_sha,
        )

    def _apply(self, context_head: str | None, entries: tuple[ChangeEntry, ...]) -> PreviewState:
        tree = build_tree(entries)
        self.expansion.reset_for(tree)
        self.state = PreviewState(
            generation=self._generation,
            preview_base=self._preview_base,
            head_sha=context_head,
            enabled=True,
            loaded=True,
            entries=entries,
            tree=tree,
        )
        return self.state

    def _fail(self, context_head: str | None, exc: DataFetchError) -> PreviewState:
        logger.warning("preview fetch failed: %s", exc)
        self.state = PreviewState(
            generation=self._generation,
            preview_base=self._preview_base,
            head_sha=context_head,
            enabled=True,
            error=str(exc),
        )
        return self.state

    def refresh(self, context: PreviewContext) -> PreviewState:
        """Synchronously (re)load the preview tree for ``context``."""
        self._pending = None
        if not preview_enabled(context, self._preview_base):
            self.state = self._disabled_state(context)
            return self.state
        assert self._preview_base is not None
        try:
            entries = self._cache.get(self._key(context), self._loader(context, self._preview_base))
        except DataFetchError as exc:
            return self._fail(context.head_sha, exc)
        return self._apply(context.head_sha, entries)

    def schedule(self, context: PreviewContext, executor: Executor) -> Future | None:
        """Start an asynchronous load; collect it later with ``poll``."""
        if not preview_enabled(context, self._preview_base):
            self._pending = None
            self.state = self._disabled_state(context)
            return None
        assert self._preview_base is not None
        future = self._cache.submit(self._key(context), self._loader(context, self._preview_base), executor)
        self._pending = (self._generation, self._preview_base, context.head_sha, future)
        self.state = PreviewState(
            generation=self._generation,
            preview_base=self._preview_base,
            head_sha=context.head_sha,
            enabled=True,
        )
        return future

    def poll(self) -> bool:
        """Apply a finished asynchronous load; returns whether state changed."""
        if self._pending is None:
            return False
        generation, _base, head_sha, future = self._pending
        if not future.done():
            return False
        self._pending = None
        if generation != self._generation or future.cancelled():
            return False
        exc = future.exception()
        if exc is None:
            self._apply(head_sha, future.result())
            return True
        if isinstance(exc, DataFetchError):
            self._fail(head_sha, exc)
            return True
        raise exc


__all__ = [
    "MANUAL_PREVIEW_MESSAGE",
    "PreviewContext",
    "PreviewState",
    "PreviewReconciler",
    "preview_enabled",
]
