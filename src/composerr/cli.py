"""Command-line interface for composerr."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.syntax import Syntax
from rich.text import Text

from composerr.diagnostics import Diagnostic, DiagnosticSet, Severity
from composerr.errors import ComposerrError, handle_error
from composerr.logging import LogFormat, configure_logging
from composerr.pipeline import FileChange, expand_paths
from composerr.toml_config import load_config

if TYPE_CHECKING:
    from argparse import Namespace

    from composerr.config import ComposerrConfig

EXIT_OK = 0
EXIT_DIAGNOSTICS = 1
EXIT_TOOL_ERROR = 2

_SEVERITY_STYLES = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "blue",
}


def get_version() -> str:
    from composerr import __version__

    return __version__


def setup_logging(args: Namespace) -> None:
    """Configure logging based on CLI args."""
    if getattr(args, "quiet", False):
        level = logging.ERROR
    elif getattr(args, "verbose", 0) >= 2:
        level = logging.DEBUG
    elif getattr(args, "verbose", 0) == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    configure_logging(level=level, log_format=LogFormat(args.log_format))


def stdout_console() -> Console:
    return Console(file=sys.stdout, soft_wrap=True, highlight=False)


def stderr_console() -> Console:
    return Console(file=sys.stderr, soft_wrap=True, highlight=False)


def format_diagnostic(diagnostic: Diagnostic) -> Text:
    """Render one diagnostic as ``file:line:col: severity[code]: message``."""
    text = Text()
    if diagnostic.location:
        text.append(f"{diagnostic.location}: ", style="bold")
    text.append(diagnostic.severity.name.lower(), style=_SEVERITY_STYLES[diagnostic.severity])
    if diagnostic.code:
        text.append(f"[{diagnostic.code}]")
    text.append(f": {diagnostic.message}")
    if diagnostic.suggestion:
        text.append(f"\n  help: {diagnostic.suggestion}", style="dim")
    return text


def report_diagnostics(diagnostics: DiagnosticSet, console: Console) -> None:
    for diagnostic in diagnostics.sorted():
        console.print(format_diagnostic(diagnostic))
    if diagnostics.error_count or diagnostics.warning_count:
        console.print(
            Text(
                f"{diagnostics.error_count} error(s), {diagnostics.warning_count} warning(s)",
                style="bold",
            )
        )


def _load_config(args: Namespace) -> ComposerrConfig:
    config_path = Path(args.config) if args.config else None
    return load_config(Path.cwd(), config_path)


def _run(args: Namespace, write: bool = False) -> tuple[list[FileChange], DiagnosticSet]:
    config = _load_config(args)
    changes = expand_paths([Path(p) for p in args.paths], config, write=write)
    diagnostics = DiagnosticSet()
    for change in changes:
        diagnostics.extend(change.result.diagnostics)
    return changes, diagnostics


def _exit_code(diagnostics: DiagnosticSet) -> int:
    return EXIT_DIAGNOSTICS if diagnostics.error_count else EXIT_OK


def cmd_expand(args: Namespace) -> int:
    """Print or write the expanded sources."""
    changes, diagnostics = _run(args, write=args.write)

    if args.json:
        payload = {
            "files": [
                {
                    "path": str(c.path),
                    "changed": c.has_changes,
                    "written": args.write and c.result.ok and c.has_changes,
                    "sum_types": [
                        {"name": t.name, "variants": t.variant_names}
                        for t in c.result.sum_types
                    ],
                    "output": None if args.write else c.result.output,
                }
                for c in changes
            ],
            **diagnostics.to_dict(),
        }
        print(json.dumps(payload, indent=2))
        return _exit_code(diagnostics)

    err = stderr_console()
    report_diagnostics(diagnostics, err)
    if args.write:
        for change in changes:
            if change.result.ok and change.has_changes:
                err.print(Text(f"expanded {change.path}", style="green"))
            elif not change.result.ok:
                err.print(Text(f"skipped {change.path} (errors)", style="red"))
    else:
        for change in changes:
            if len(changes) > 1:
                sys.stdout.write(f"# --- {change.path} ---\n")
            sys.stdout.write(change.result.output)
    return _exit_code(diagnostics)


def cmd_check(args: Namespace) -> int:
    """Report diagnostics without producing output."""
    changes, diagnostics = _run(args)

    if args.json:
        print(json.dumps(diagnostics.to_dict(), indent=2))
    else:
        console = stdout_console()
        report_diagnostics(diagnostics, console)
        if not diagnostics.error_count:
            expanded = sum(len(c.result.sum_types) for c in changes)
            console.print(
                Text(f"ok: {expanded} error set(s) in {len(changes)} file(s)", style="green")
            )
    return _exit_code(diagnostics)


def cmd_diff(args: Namespace) -> int:
    """Show what expansion would change."""
    changes, diagnostics = _run(args)

    console = stdout_console()
    for change in changes:
        if change.has_changes:
            console.print(Syntax(change.to_diff(), "diff", theme="ansi_dark", word_wrap=True))
    report_diagnostics(diagnostics, stderr_console())
    return _exit_code(diagnostics)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="composerr",
        description="Generate per-function error types from @errorset markers",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    parser.add_argument(
        "--config",
        metavar="FILE",
        help="Config file (default: composerr.toml or pyproject.toml [tool.composerr])",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="More logging (repeat for debug)"
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    parser.add_argument(
        "--log-format",
        choices=[f.value for f in LogFormat],
        default=LogFormat.TEXT.value,
        help="Log output format (default: text)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    expand_parser = subparsers.add_parser("expand", help="Expand error set markers")
    expand_parser.add_argument("paths", nargs="+", help="Files or directories to expand")
    expand_parser.add_argument(
        "--write", "-w", action="store_true", help="Rewrite files in place instead of printing"
    )
    expand_parser.add_argument("--json", action="store_true", help="Output as JSON")
    expand_parser.set_defaults(func=cmd_expand)

    check_parser = subparsers.add_parser("check", help="Report marker problems")
    check_parser.add_argument("paths", nargs="+", help="Files or directories to check")
    check_parser.add_argument("--json", action="store_true", help="Output as JSON")
    check_parser.set_defaults(func=cmd_check)

    diff_parser = subparsers.add_parser("diff", help="Show the changes expansion would make")
    diff_parser.add_argument("paths", nargs="+", help="Files or directories to diff")
    diff_parser.set_defaults(func=cmd_diff)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logging(args)

    try:
        return args.func(args)
    except ComposerrError as e:
        stderr_console().print(Text(handle_error(e).to_compact(), style="red"))
        return EXIT_TOOL_ERROR


if __name__ == "__main__":
    sys.exit(main())
