"""CLI for lintmark - a structural Markdown linter."""

import argparse
import json
import logging
import platform
import subprocess
import sys
from pathlib import Path
from typing import Any

from . import __version__
from .core.anchors import generate
from .errors import LintmarkError
from .lint import Finding
from .runtime import build_runtime


def _commit() -> str:
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            cwd=Path(__file__).parent,
            timeout=2,
        )
    except (OSError, subprocess.SubprocessError):
        return "unknown"
    return result.stdout.strip() if result.returncode == 0 else "unknown"


def version_string() -> str:
    return (
        f"lintmark {__version__} "
        f"(python {platform.python_version()}, platform {sys.platform}, commit {_commit()})"
    )


class _VersionAction(argparse.Action):
    def __init__(self, option_strings, dest=argparse.SUPPRESS, default=argparse.SUPPRESS, help=None):
        super().__init__(option_strings, dest=dest, default=default, nargs=0, help=help)

    def __call__(self, parser, namespace, values, option_string=None):
        print(version_string())
        parser.exit()


def print_findings(results: dict[str, list[Finding]], args: argparse.Namespace) -> None:
    all_findings = [f for findings in results.values() for f in findings]
    if args.json:
        print(json.dumps([f.to_dict() for f in all_findings], indent=2))
        return
    for f in all_findings:
        if not args.quiet:
            print(f.format())


def exit_code_for(results: dict[str, list[Finding]], fail_on: str = "error") -> int:
    levels = ("error",) if fail_on == "error" else ("error", "warn")
    return 1 if any(f.severity in levels for fs in results.values() for f in fs) else 0


def cmd_lint(args: argparse.Namespace, rt: Any) -> int:
    """Lint Markdown files, including cross-file link fragments."""
    paths = rt.storage.discover([Path(p) for p in args.paths])
    sources = dict(rt.storage.read_all(paths))
    results = rt.linter.lint(sources)
    rt.workspace.retain_only(sources)
    rt.save_cache()

    print_findings(results, args)
    if not args.json and not args.quiet:
        count = sum(len(fs) for fs in results.values())
        logging.getLogger(__name__).info(
            "%d file(s) checked, %d finding(s)", len(results), count
        )
    return exit_code_for(results, args.fail_on)


def cmd_anchors(args: argparse.Namespace, rt: Any) -> int:
    """List heading and HTML anchors of one file."""
    path = Path(args.path)
    text = rt.storage.read_raw(path)
    if text is None:
        raise LintmarkError(f"cannot read {path}")
    key = rt.storage.key(path)
    rt.linter.index({key: text})
    doc = rt.workspace.get_file(key)

    if args.json:
        output = {
            "path": key,
            "headings": [
                {
                    "line": h.line,
                    "level": h.level,
                    "text": h.text,
                    "auto_anchor": h.auto_anchor,
                    "custom_anchor": h.custom_anchor,
                }
                for h in doc.headings
            ],
            "html_anchors": [
                {"line": a.line, "id": a.id, "tag": a.tag} for a in doc.html_anchors
            ],
        }
        print(json.dumps(output, indent=2, ensure_ascii=False))
        return 0

    for h in doc.headings:
        anchor = f"#{h.custom_anchor} (custom)" if h.custom_anchor else f"#{h.auto_anchor}"
        print(f"{h.line}\t{'#' * h.level} {h.text}\t{anchor}")
    for a in doc.html_anchors:
        print(f"{a.line}\t<{a.tag}>\t#{a.id} (html)")
    return 0


def cmd_slug(args: argparse.Namespace, rt: Any) -> int:
    """Print the anchor generated for a heading text."""
    print(generate(args.text, rt.config.anchors.dialect))
    return 0


def cmd_watch(args: argparse.Namespace, rt: Any) -> int:
    """Watch a directory and re-lint changed files and their dependents."""
    from .watch import watch_directory

    return watch_directory(
        Path(args.path),
        rt,
        debounce_ms=args.debounce,
        quiet=args.quiet,
        json_output=args.json,
    )


def setup_logging(verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lintmark", description="Structural Markdown linter"
    )
    parser.add_argument(
        "--version", action=_VersionAction, help="Show version information and exit"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: search cwd/lintmark.toml, pyproject.toml)",
    )
    parser.add_argument(
        "--dialect",
        default=None,
        help="Anchor dialect: github, kramdown or kramdown-gfm (overrides config)",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Minimize output"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging on stderr"
    )
    parser.add_argument(
        "--json", action="store_true", help="Machine-readable output"
    )

    subparsers = parser.add_subparsers(dest="cmd", required=True)

    # lint command
    parser_lint = subparsers.add_parser("lint", help="Lint Markdown files")
    parser_lint.add_argument("paths", nargs="*", default=["."], help="Files or directories")
    parser_lint.add_argument(
        "--fail-on",
        dest="fail_on",
        choices=["error", "warn"],
        default="warn",
        help="Lowest severity that makes the exit code non-zero",
    )

    # anchors command
    parser_anchors = subparsers.add_parser("anchors", help="List anchors of a file")
    parser_anchors.add_argument("path", help="Markdown file")

    # slug command
    parser_slug = subparsers.add_parser("slug", help="Print the anchor for a heading text")
    parser_slug.add_argument("text", help="Heading text")

    # watch command
    parser_watch = subparsers.add_parser("watch", help="Watch a directory and re-lint on change")
    parser_watch.add_argument("path", nargs="?", default=".", help="Directory to watch")
    parser_watch.add_argument(
        "--debounce", type=int, default=150, help="Debounce window in milliseconds"
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    handlers = {
        "lint": cmd_lint,
        "anchors": cmd_anchors,
        "slug": cmd_slug,
        "watch": cmd_watch,
    }
    handler = handlers.get(args.cmd)
    if handler is None:
        print(f"Unknown command: {args.cmd}", file=sys.stderr)
        sys.exit(2)

    try:
        rt = build_runtime(config_path=args.config, dialect=args.dialect)
        exit_code = handler(args, rt)
    except LintmarkError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
