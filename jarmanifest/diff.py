"""Unified-diff splitting, parsing, and per-file preview rendering.

Patch text arrives per file from the git data provider. Parsing is strict so
that a malformed patch is reported as ``DiffParseError``; rendering isolates
that failure to the one file and shows the raw unified text instead.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from .errors import DiffParseError
from .syntax import DEFAULT_STYLE, highlight_diff, sanitize_terminal_text

logger = logging.getLogger(__name__)

NO_CHANGES_MESSAGE = "No changes"
EMPTY_DIFF_MESSAGE = "Empty diff"

_HUNK_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$")
_FILE_HEADER_PREFIX = "diff --git "
_HEADER_LINE_PREFIXES = (
    "diff --git ",
    "index ",
    "--- ",
    "+++ ",
    "new file mode ",
    "deleted file mode ",
    "old mode ",
    "new mode ",
    "similarity index ",
    "dissimilarity index ",
    "rename from ",
    "rename to ",
    "copy from ",
    "copy to ",
    "Binary files ",
    "GIT binary patch",
)
_ADDED_SGR = "48;2;36;74;52"
_REMOVED_SGR = "48;2;92;43;49"


@dataclass
class DiffHunk:
    """Parsed hunk header plus ``(marker, text)`` body lines."""

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    section: str = ""
    lines: list[tuple[str, str]] = field(default_factory=list)

    @property
    def added(self) -> int:
        return sum(1 for marker, _text in self.lines if marker == "+")

    @property
    def removed(self) -> int:
        return sum(1 for marker, _text in self.lines if marker == "-")


@dataclass(frozen=True)
class RenderedPatch:
    """Preview text for one file.

    ``is_raw`` is set when the patch could not be parsed and ``text`` holds
    the unparsed unified diff; ``error`` then carries the parse message.
    """

    path: str
    text: str
    is_raw: bool = False
    error: str | None = None
    hunk_count: int = 0


def _path_from_git_header(header: str) -> str | None:
    """Extract the path from ``diff --git a/P b/P`` when both halves agree."""
    body = header[len(_FILE_HEADER_PREFIX):]
    if len(body) < 7 or not body.startswith("a/"):
        return None
    half = (len(body) - 5) // 2
    old_path = body[2 : 2 + half]
    rest = body[2 + half :]
    if rest != f" b/{old_path}":
        return None
    return old_path


def split_patch_by_file(diff_text: str) -> dict[str, str]:
    """Split a multi-file ``git diff`` into ``{path: patch}``.

    The path is taken from ``+++ b/`` (or ``--- a/`` for deletions), falling
    back to the ``diff --git`` header for binary or mode-only changes.
    """
    blocks: list[list[str]] = []
    for line in diff_text.splitlines():
        if line.startswith(_FILE_HEADER_PREFIX) or not blocks:
            blocks.append([])
        blocks[-1].append(line)

    patches: dict[str, str] = {}
    for block in blocks:
        if not block or not block[0].startswith(_FILE_HEADER_PREFIX):
            continue
        path: str | None = None
        old_path: str | None = None
        for line in block[1:]:
            if line.startswith("@@"):
                break
            if line.startswith("+++ b/"):
                path = line[len("+++ b/"):]
            elif line.startswith("--- a/"):
                old_path = line[len("--- a/"):]
        path = path or old_path or _path_from_git_header(block[0])
        if path is None:
            continue
        patches[path.rstrip("\t")] = "\n".join(block) + "\n"
    return patches


def normalize_patch(path: str, patch: str) -> str:
    """Prefix a bare hunk list with the standard ``diff --git`` file header."""
    if patch.startswith(_FILE_HEADER_PREFIX):
        return patch
    header = "\n".join(
        [
            f"diff --git a/{path} b/{path}",
            f"--- a/{path}",
            f"+++ b/{path}",
        ]
    )
    return f"{header}\n{patch}"


def parse_patch(path: str, patch: str) -> list[DiffHunk]:
    """Parse one file's unified diff into hunks.

    Raises ``DiffParseError`` for malformed hunk headers, unexpected body
    lines, or hunks whose line counts do not match their header.
    """
    hunks: list[DiffHunk] = []
    current: DiffHunk | None = None
    old_left = new_left = 0

    def finish(line_no: int) -> None:
        if current is not None and (old_left or new_left):
            raise DiffParseError(
                f"{path}: hunk at -{current.old_start} ends early "
                f"({old_left} old / {new_left} new lines missing)",
                path=path,
                line_no=line_no,
            )

    for line_no, raw_line in enumerate(normalize_patch(path, patch).splitlines(), start=1):
        if raw_line.startswith("@@"):
            match = _HUNK_RE.match(raw_line)
            if match is None:
                raise DiffParseError(f"{path}: malformed hunk header: {raw_line!r}", path=path, line_no=line_no)
            finish(line_no)
            current = DiffHunk(
                old_start=int(match.group(1)),
                old_count=int(match.group(2) or "1"),
                new_start=int(match.group(3)),
                new_count=int(match.group(4) or "1"),
                section=match.group(5).strip(),
            )
            hunks.append(current)
            old_left, new_left = current.old_count, current.new_count
            continue

        if current is None or not (old_left or new_left):
            if raw_line.startswith("\\") and current is not None:
                continue
            if not raw_line.strip() or raw_line.startswith(_HEADER_LINE_PREFIXES):
                if raw_line.startswith(_FILE_HEADER_PREFIX):
                    current = None
                continue
            raise DiffParseError(f"{path}: unexpected line outside hunk: {raw_line!r}", path=path, line_no=line_no)

        marker, text = (raw_line[:1], raw_line[1:]) if raw_line else (" ", "")
        if marker == "\\":
            continue
        if marker == " ":
            old_left -= 1
            new_left -= 1
        elif marker == "-":
            old_left -= 1
        elif marker == "+":
            new_left -= 1
        else:
            raise DiffParseError(f"{path}: unexpected hunk line: {raw_line!r}", path=path, line_no=line_no)
        if old_left < 0 or new_left < 0:
            raise DiffParseError(f"{path}: hunk at -{current.old_start} overruns its header", path=path, line_no=line_no)
        current.lines.append((marker, text))

    finish(line_no=0)
    return hunks


def _format_hunk_line(marker: str, old_no: int | None, new_no: int | None, text: str, colorize: bool) -> str:
    old_label = f"{old_no:>5}" if old_no is not None else "     "
    new_label = f"{new_no:>5}" if new_no is not None else "     "
    row = f"{old_label} {new_label} {marker} {text}"
    if not colorize or marker == " ":
        return row
    sgr = _ADDED_SGR if marker == "+" else _REMOVED_SGR
    return f"\033[{sgr}m{row}\033[K\033[0m"


def format_hunks(hunks: list[DiffHunk], colorize: bool = True) -> str:
    """Render parsed hunks as a line-numbered unified view."""
    out: list[str] = []
    for hunk in hunks:
        header = f"@@ -{hunk.old_start},{hunk.old_count} +{hunk.new_start},{hunk.new_count} @@"
        if hunk.section:
            header = f"{header} {hunk.section}"
        out.append(f"\033[36m{header}\033[0m" if colorize else header)
        old_no, new_no = hunk.old_start, hunk.new_start
        for marker, text in hunk.lines:
            if marker == "+":
                out.append(_format_hunk_line(marker, None, new_no, text, colorize))
                new_no += 1
            elif marker == "-":
                out.append(_format_hunk_line(marker, old_no, None, text, colorize))
                old_no += 1
            else:
                out.append(_format_hunk_line(marker, old_no, new_no, text, colorize))
                old_no += 1
                new_no += 1
    return "\n".join(out)


def render_patch(
    path: str,
    patch: str | None,
    *,
    colorize: bool = True,
    style: str = DEFAULT_STYLE,
) -> RenderedPatch:
    """Render one file's diff preview, never raising on malformed input."""
    if not patch:
        return RenderedPatch(path=path, text=NO_CHANGES_MESSAGE)

    patch = sanitize_terminal_text(patch)
    try:
        hunks = parse_patch(path, patch)
    except DiffParseError as exc:
        logger.warning("showing raw diff for %s: %s", path, exc)
        unified = normalize_patch(path, patch)
        text = highlight_diff(unified, style) if colorize else unified
        return RenderedPatch(path=path, text=text, is_raw=True, error=str(exc))

    if not hunks:
        return RenderedPatch(path=path, text=EMPTY_DIFF_MESSAGE)
    return RenderedPatch(path=path, text=format_hunks(hunks, colorize), hunk_count=len(hunks))


__all__ = [
    "NO_CHANGES_MESSAGE",
    "EMPTY_DIFF_MESSAGE",
    "DiffHunk",
    "RenderedPatch",
    "split_patch_by_file",
    "normalize_patch",
    "parse_patch",
    "format_hunks",
    "render_patch",
]
