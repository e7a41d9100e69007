"""Persistent JSON preference helpers.

Stores the diff style, default strategy and version, and git query limits.
Malformed or missing config falls back to defaults.
Projects and environments are never persisted here.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from platformdirs import user_config_dir

from .git.local import GIT_MAX_COMMITS, GIT_TIMEOUT_SECONDS
from .manifest import DEFAULT_VERSION
from .strategy import BuildStrategy
from .syntax import DEFAULT_STYLE

logger = logging.getLogger(__name__)

APP_NAME = "jarmanifest"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Filesystem errors are logged and otherwise ignored so an unwritable
    config directory never blocks a build.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        logger.warning("cannot write config %s: %s", CONFIG_PATH, exc)


def _update(key: str, value: object) -> None:
    config = load_config()
    config[key] = value
    save_config(config)


def _load_nonempty_str(key: str) -> str | None:
    value = load_config().get(key)
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _load_positive_number(key: str) -> float | None:
    """Read a strictly positive number; booleans are rejected."""
    value = load_config().get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if value > 0 else None


def load_diff_style() -> str:
    """Pygments style used for diff previews."""
    return _load_nonempty_str("diff_style") or DEFAULT_STYLE


def save_diff_style(style: str) -> None:
    stripped = str(style).strip()
    if stripped:
        _update("diff_style", stripped)


def load_default_strategy() -> BuildStrategy:
    """Strategy preselected for new sessions (``full`` when unset/invalid)."""
    raw = _load_nonempty_str("default_strategy")
    if raw is None:
        return BuildStrategy.FULL
    try:
        return BuildStrategy.parse(raw)
    except ValueError:
        return BuildStrategy.FULL


def save_default_strategy(strategy: BuildStrategy | str) -> None:
    _update("default_strategy", BuildStrategy.parse(strategy).value)


def load_default_version() -> str:
    return _load_nonempty_str("default_version") or DEFAULT_VERSION


def save_default_version(version: str) -> None:
    stripped = str(version).strip()
    if stripped:
        _update("default_version", stripped)


def load_git_timeout_seconds() -> float:
    return _load_positive_number("git_timeout_seconds") or GIT_TIMEOUT_SECONDS


def save_git_timeout_seconds(seconds: float) -> None:
    if seconds > 0:
        _update("git_timeout_seconds", float(seconds))


def load_max_commits() -> int:
    """History depth loaded per branch; coerced to a positive integer."""
    value = _load_positive_number("max_commits")
    return max(1, int(value)) if value is not None else GIT_MAX_COMMITS


def save_max_commits(count: int) -> None:
    if count > 0:
        _update("max_commits", int(count))


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "save_config",
    "load_diff_style",
    "save_diff_style",
    "load_default_strategy",
    "save_default_strategy",
    "load_default_version",
    "save_default_version",
    "load_git_timeout_seconds",
    "save_git_timeout_seconds",
    "load_max_commits",
    "save_max_commits",
]
