"""Command-line interface for doccheck.

Usage:
    doccheck src/
    doccheck src/ --format json --fail-on MissingBlock,MissingRequiredTag
    python -m doccheck src/ --config doccheck.json --workers 4 --fail-fast
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from . import __version__
from .config import find_config, load_config, parse_fail_on
from .engine import run
from .errors import ConfigError
from .models import ViolationKind
from .report import RENDERERS

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_CONFIG = 2


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value}")
    return number


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    kinds = ", ".join(kind.value for kind in ViolationKind)
    parser = argparse.ArgumentParser(
        prog="doccheck",
        description="Check that source declarations carry the documentation comments the rule table requires",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
    # Check a directory with the embedded rules (or ./doccheck.json)
    doccheck src/

    # JSON report for CI gating
    doccheck src/ --format json --output doccheck-report.json

    # Only missing documentation fails the build
    doccheck src/ --fail-on MissingBlock,MissingRequiredTag

Violation kinds:
    {kinds}

Exit codes:
    0  no violations of a fail-on kind
    1  one or more fail-on violations
    2  configuration error or unreadable root
        """,
    )

    parser.add_argument(
        "paths",
        type=Path,
        nargs="*",
        default=[Path(".")],
        help="Root directories or files to check (default: current directory)",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        help="Rule table JSON file (default: doccheck.json in the root, else embedded rules)",
    )
    parser.add_argument(
        "--fail-on",
        help="Comma-separated violation kinds that cause exit code 1 (default: all, or the config's fail_on)",
    )
    parser.add_argument(
        "--format",
        "-f",
        choices=sorted(RENDERERS),
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Write the report to a file instead of stdout",
    )
    parser.add_argument(
        "--workers",
        "-j",
        type=_positive_int,
        help="Number of parallel workers (default: CPU count)",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop starting new files after the first fail-on violation",
    )
    parser.add_argument(
        "--show-rules",
        action="store_true",
        help="Print the effective rule table as JSON and exit",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Log progress to stderr (-vv for debug)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(args: list[str] | None = None) -> int:
    """Main entry point for CLI.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 = clean, 1 = fail-on violations, 2 = run-level failure)
    """
    parsed = build_parser().parse_args(args)
    _configure_logging(parsed.verbose)

    try:
        config_path = parsed.config or find_config(parsed.paths)
        config = load_config(config_path)
        if parsed.fail_on is not None:
            config = replace(config, fail_on=parse_fail_on(parsed.fail_on))

        if parsed.show_rules:
            sys.stdout.write(json.dumps(config.registry.to_dict(), indent=2) + "\n")
            return EXIT_OK

        report = run(parsed.paths, config, workers=parsed.workers, fail_fast=parsed.fail_fast)
    except ConfigError as e:
        print(f"doccheck: configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    output = RENDERERS[parsed.format](report)
    if parsed.output:
        try:
            parsed.output.write_text(output, encoding="utf-8")
        except OSError as e:
            print(f"doccheck: cannot write report: {e}", file=sys.stderr)
            return EXIT_CONFIG
        log.info("Report written to %s", parsed.output)
    else:
        sys.stdout.write(output)

    return report.exit_code(config.fail_on)
