"""Terminal text sanitization and Pygments-based diff highlighting."""

from __future__ import annotations

import re
from functools import lru_cache

DEFAULT_STYLE = "monokai"

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_INVALID_STYLES: set[str] = set()


def sanitize_terminal_text(source: str) -> str:
    """Escape terminal control bytes to avoid side effects (bell, cursor moves, etc.)."""
    if _CONTROL_RE.search(source) is None:
        return source

    out: list[str] = []
    for ch in source:
        code = ord(ch)
        if ch in {"\n", "\r", "\t"}:
            out.append(ch)
            continue
        # C0 controls + DEL + C1 controls.
        if code < 32 or code == 127 or 0x80 <= code <= 0x9F:
            out.append(f"\\x{code:02x}")
            continue
        out.append(ch)
    return "".join(out)


def normalize_style(style: str) -> str:
    """Validate a Pygments style name, falling back to ``monokai``."""
    if style in _INVALID_STYLES:
        return DEFAULT_STYLE
    from pygments.styles import get_style_by_name
    from pygments.util import ClassNotFound

    try:
        get_style_by_name(style)
    except ClassNotFound:
        _INVALID_STYLES.add(style)
        return DEFAULT_STYLE
    return style


@lru_cache(maxsize=16)
def _formatter_for_style(style: str):
    """Return cached Pygments terminal formatter for style name."""
    from pygments.formatters import TerminalFormatter

    return TerminalFormatter(style=style)


def highlight_diff(text: str, style: str = DEFAULT_STYLE) -> str:
    """Colorize unified diff text with Pygments' ``DiffLexer``.

    Keeps one output line per input line so callers can align rows.
    """
    if not text:
        return text
    from pygments import highlight
    from pygments.lexers import DiffLexer

    rendered = highlight(text, DiffLexer(), _formatter_for_style(normalize_style(style)))
    if not text.endswith("\n"):
        rendered = rendered.rstrip("\n")
    return rendered


__all__ = [
    "DEFAULT_STYLE",
    "sanitize_terminal_text",
    "normalize_style",
    "highlight_diff",
]
