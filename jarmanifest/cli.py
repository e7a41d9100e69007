"""Command-line front door for jarmanifest.

Parses CLI options, opens the repository, and drives one ``BuildSession``
through configuration, file selection, optional preview, and summary. The
resulting manifest is written as JSON to ``--output`` or stdout.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TextIO

from . import config
from .errors import JarManifestError
from .git import LocalGitProvider
from .manifest import format_summary, new_job_id
from .overrides import JsonOverrideProvider
from .preview import MANUAL_PREVIEW_MESSAGE
from .render import format_override_rows, render_tree, theme_for
from .session import BuildSession, PipelineStep
from .strategy import BuildStrategy
from .submission import JsonManifestWriter
from .syntax import normalize_style

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _strategy(value: str) -> BuildStrategy:
    try:
        return BuildStrategy.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jarmanifest",
        description="Resolve which repository files go into a JAR build and write the build manifest.",
    )
    parser.add_argument("repo", nargs="?", default=".", help="Path inside the git repository (default: cwd).")
    parser.add_argument("--project", default=None, help="Project id recorded in the manifest (default: repo name).")
    parser.add_argument("--branch", default=None, help="Branch to build from (default: first local branch).")
    parser.add_argument(
        "--strategy",
        type=_strategy,
        default=None,
        help="Build strategy: full, commit, or manual (default from config).",
    )
    parser.add_argument("--commit", default=None, help="Head commit for the single-commit strategy.")
    parser.add_argument("--list-commits", action="store_true", help="Print the loaded branch history and exit.")
    parser.add_argument(
        "--max-commits",
        type=_positive_int,
        default=None,
        help="How many commits of history to load (default from config).",
    )
    parser.add_argument("--select", action="append", default=[], metavar="PATH", help="Toggle one file.")
    parser.add_argument(
        "--select-folder",
        action="append",
        default=[],
        metavar="DIR",
        help="Toggle every file under a folder.",
    )
    parser.add_argument("--all", action="store_true", help="Select every file in the list.")
    parser.add_argument("--filter", default="", help="Only display files whose path contains this text.")
    parser.add_argument("--preview", action="store_true", help="Show the diff preview before the summary.")
    parser.add_argument("--preview-base", default=None, help="Alternate base commit for the preview only.")
    parser.add_argument("--environment", default=None, help="Target environment id.")
    parser.add_argument("--overrides", type=Path, default=None, help="JSON file listing overrides per environment.")
    parser.add_argument("--apply-overrides", action="store_true", help="Ask the build to apply environment overrides.")
    parser.add_argument("--version", dest="build_version", default=None, help="Version label for the build.")
    parser.add_argument("--job-id", default=None, help="Job id to use instead of a generated one.")
    parser.add_argument("--output", type=Path, default=None, help="Write the manifest JSON here instead of stdout.")
    parser.add_argument("--style", default=None, help="Pygments style name for diff previews.")
    parser.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    parser.add_argument(
        "--save-defaults",
        action="store_true",
        help="Remember --strategy, --version and --style as defaults.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log git queries and pipeline steps.")
    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _save_defaults(args: argparse.Namespace) -> None:
    if args.strategy is not None:
        config.save_default_strategy(args.strategy)
    if args.build_version:
        config.save_default_version(args.build_version)
    if args.style:
        config.save_diff_style(args.style)


def _print_preview(session: BuildSession, report: TextIO, colorize: bool, style: str) -> None:
    theme = theme_for(colorize)
    if session.strategy is BuildStrategy.MANUAL:
        print(MANUAL_PREVIEW_MESSAGE, file=report)
        return
    state = session.preview.state
    if state.error is not None:
        print(f"Preview failed: {state.error}", file=report)
        return
    if not state.loaded:
        print("Preview is not available for the current selection.", file=report)
        return
    base = (state.preview_base or "")[:7]
    head = (state.head_sha or "")[:7]
    print(f"Preview {base}..{head}", file=report)
    for row in render_tree(state.tree, session.preview.expansion.expanded, theme=theme):
        print(row, file=report)
    for entry in state.entries:
        rendered = state.render_file(entry.path, colorize=colorize, style=style)
        print("", file=report)
        print(f"── {entry.path}", file=report)
        print(rendered.text, file=report)


def run(args: argparse.Namespace, stdout: TextIO, stderr: TextIO) -> int:
    """Drive one session from parsed arguments; returns the exit status."""
    if args.save_defaults:
        _save_defaults(args)

    # The manifest owns stdout unless it goes to a file.
    report = stdout if args.output is not None else stderr
    colorize = not args.no_color and report.isatty()
    theme = theme_for(colorize)
    style = normalize_style(args.style or config.load_diff_style())

    provider = LocalGitProvider.for_repository(
        Path(args.repo),
        args.project,
        timeout_seconds=config.load_git_timeout_seconds(),
        max_commits=args.max_commits or config.load_max_commits(),
    )
    overrides = JsonOverrideProvider(args.overrides) if args.overrides is not None else None
    session = BuildSession(
        provider,
        override_provider=overrides,
        strategy=args.strategy or config.load_default_strategy(),
        version=args.build_version or config.load_default_version(),
    )

    session.select_project(provider.project_ids[0])
    if session.fetch_error is not None:
        raise SystemExit(session.fetch_error)
    branch = args.branch or (session.branches[0] if session.branches else None)
    if branch is None:
        raise SystemExit("The repository has no local branches.")
    session.select_branch(branch)
    if args.commit:
        session.select_commit(args.commit)

    if args.list_commits:
        for commit in session.commits:
            print(commit.label(), file=stdout)
        return 0

    session.goto(PipelineStep.FILES)
    if args.all:
        session.select_all()
    for folder in args.select_folder:
        session.toggle_folder(folder)
    for path in args.select:
        session.toggle_file(path)
    session.set_filter(args.filter)

    print(f"{session.project_id}@{session.branch} ({session.strategy.label})", file=report)
    for row in render_tree(
        session.display_tree,
        session.display_expanded,
        session.selection,
        search_query=session.filter_query,
        theme=theme,
    ):
        print(row, file=report)
    print(f"{len(session.selection)} of {len(session.entries)} files selected", file=report)

    session.set_environment(args.environment)
    session.set_apply_overrides(args.apply_overrides)
    if session.override_error is not None:
        print(f"Overrides unavailable: {session.override_error}", file=report)
    if session.overrides:
        print(f"Overrides for {session.environment_id}:", file=report)
        for row in format_override_rows(session.override_statuses, theme):
            print(f"  {row}", file=report)

    if args.preview or args.preview_base:
        if session.strategy is BuildStrategy.MANUAL:
            print(MANUAL_PREVIEW_MESSAGE, file=report)
        else:
            session.goto(PipelineStep.PREVIEW)
            if args.preview_base:
                session.set_preview_base(args.preview_base)
            _print_preview(session, report, colorize, style)

    session.goto(PipelineStep.SUMMARY)
    job_id = args.job_id or new_job_id()
    print(format_summary(session.build_manifest(job_id)), file=report)

    writer = JsonManifestWriter(target=args.output, stream=stdout)
    receipt = session.submit(writer, job_id=job_id)
    if args.output is not None:
        print(f"Wrote {receipt.job_id} to {args.output}", file=report)
    return 0


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and write one build manifest."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        status = run(args, sys.stdout, sys.stderr)
    except JarManifestError as exc:
        logger.debug("aborting", exc_info=True)
        raise SystemExit(str(exc)) from exc
    if status:
        raise SystemExit(status)


if __name__ == "__main__":
    main()
