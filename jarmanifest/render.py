"""Formatting helpers for change-tree rows and override listings."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .overrides import OverrideStatus
from .selection import FolderState, SelectionManager
from .tree_model import ChangeStatus, TreeNode


@dataclass(frozen=True)
class UITheme:
    """Semantic ANSI palette used by renderers."""

    name: str
    reset: str
    tree_marker: str
    tree_dir: str
    tree_file: str
    checkbox: str
    badge_added: str
    badge_modified: str
    badge_deleted: str
    dim: str
    match_on: str
    match_off: str


DEFAULT_THEME = UITheme(
    name="default",
    reset="\033[0m",
    tree_marker="\033[38;5;44m",
    tree_dir="\033[1;34m",
    tree_file="\033[38;5;252m",
    checkbox="\033[38;5;81m",
    badge_added="\033[38;5;42m",
    badge_modified="\033[38;5;214m",
    badge_deleted="\033[38;5;203m",
    dim="\033[2;38;5;250m",
    match_on="\033[7;1m",
    match_off="\033[27;22m",
)

PLAIN_THEME = UITheme(
    name="plain",
    reset="",
    tree_marker="",
    tree_dir="",
    tree_file="",
    checkbox="",
    badge_added="",
    badge_modified="",
    badge_deleted="",
    dim="",
    match_on="",
    match_off="",
)

_CHECKBOXES: dict[FolderState, str] = {
    FolderState.NONE: "[ ]",
    FolderState.PARTIAL: "[-]",
    FolderState.ALL: "[x]",
}


def theme_for(colorize: bool) -> UITheme:
    return DEFAULT_THEME if colorize else PLAIN_THEME


def highlight_substring(text: str, query: str, theme: UITheme | None = None) -> str:
    """Highlight first case-insensitive substring match in ``text``."""
    active_theme = theme or DEFAULT_THEME
    if not query or not active_theme.match_on:
        return text
    idx = text.casefold().find(query.casefold())
    if idx < 0:
        return text
    end = idx + len(query)
    return text[:idx] + active_theme.match_on + text[idx:end] + active_theme.match_off + text[end:]


def format_status_badge(status: ChangeStatus | None, theme: UITheme | None = None) -> str:
    """``[A]``/``[M]``/``[D]`` suffix for a leaf; unmodified files get none."""
    active_theme = theme or DEFAULT_THEME
    color = {
        ChangeStatus.ADDED: active_theme.badge_added,
        ChangeStatus.MODIFIED: active_theme.badge_modified,
        ChangeStatus.DELETED: active_theme.badge_deleted,
    }.get(status) if status is not None else None
    if color is None:
        return ""
    return f" {color}[{status.badge}]{active_theme.reset}"


def format_tree_row(
    node: TreeNode,
    depth: int,
    expanded: Iterable[str] | frozenset[str],
    selection: SelectionManager | None = None,
    search_query: str = "",
    theme: UITheme | None = None,
) -> str:
    """Render one tree row as ANSI-styled display text.

    Without a ``selection`` the checkbox column is omitted (read-only preview
    tree).
    """
    active_theme = theme or DEFAULT_THEME
    reset = active_theme.reset
    checkbox = ""
    if selection is not None:
        if node.is_leaf:
            state = FolderState.ALL if selection.is_selected(node.path) else FolderState.NONE
        else:
            state = selection.folder_state(node.path)
        checkbox = f"{active_theme.checkbox}{_CHECKBOXES[state]}{reset} "

    if not node.is_leaf:
        indent = "  " * depth
        marker = "▾ " if node.path in expanded else "▸ "
        return (
            f"{indent}{active_theme.tree_marker}{marker}{reset}{checkbox}"
            f"{active_theme.tree_dir}{node.name}/{reset}"
        )

    # File names line up under the parent folder's arrow column.
    indent = "  " * depth
    name = highlight_substring(node.name, search_query, active_theme)
    badge = format_status_badge(node.status, active_theme)
    return f"{indent}  {checkbox}{active_theme.tree_file}{name}{reset}{badge}"


def render_tree(
    nodes: Iterable[TreeNode],
    expanded: Iterable[str] | frozenset[str],
    selection: SelectionManager | None = None,
    search_query: str = "",
    theme: UITheme | None = None,
) -> list[str]:
    """Render the visible rows of a forest; collapsed folders hide children."""
    expanded_set = frozenset(expanded)
    rows: list[str] = []

    def walk(level: Iterable[TreeNode], depth: int) -> None:
        for node in level:
            rows.append(format_tree_row(node, depth, expanded_set, selection, search_query, theme))
            if not node.is_leaf and node.path in expanded_set:
                walk(node.children, depth + 1)

    walk(nodes, 0)
    return rows


def format_override_rows(statuses: Iterable[OverrideStatus], theme: UITheme | None = None) -> list[str]:
    """One line per environment override, dimmed when it will not apply."""
    active_theme = theme or DEFAULT_THEME
    rows: list[str] = []
    for status in statuses:
        label = "applies" if status.will_apply else ("not applied" if status.selected else "not selected")
        color = "" if status.will_apply else active_theme.dim
        rows.append(f"{color}{status.override.file_path} ({label}){active_theme.reset}")
    return rows


__all__ = [
    "UITheme",
    "DEFAULT_THEME",
    "PLAIN_THEME",
    "theme_for",
    "highlight_substring",
    "format_status_badge",
    "format_tree_row",
    "render_tree",
    "format_override_rows",
]
