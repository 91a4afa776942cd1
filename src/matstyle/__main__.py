# SPDX-License-Identifier: MIT
"""Package entry point — run matstyle via `python -m matstyle`."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from matstyle.lint import main
from matstyle.reporting import FORMATTERS
from matstyle.rules import PROFILES


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="matstyle", description="Check MATLAB sources against the coding standard"
    )
    parser.add_argument("paths", nargs="*", help=".m files or directories to search recursively")
    parser.add_argument(
        "--profile",
        choices=sorted(PROFILES),
        default=None,
        help="Lint profile (overrides MATSTYLE_PROFILE env var)",
    )
    parser.add_argument("--format", dest="output_format", choices=sorted(FORMATTERS), default="text")
    parser.add_argument("--workers", type=int, default=None, help="Threads per file for rule checks")
    parser.add_argument(
        "--timeout", type=float, default=None, help="Seconds per rule check (0 = no bound)"
    )
    parser.add_argument(
        "--baseline", default=None, help="Previous JSON report; only new MUST findings fail"
    )
    parser.add_argument("--output", default=None, help="Write the report here instead of stdout")
    parser.add_argument("--list-rules", action="store_true", help="Print the rule catalog and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    return parser


def cli(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return main(
        args.paths,
        profile=args.profile,
        output_format=args.output_format,
        workers=args.workers,
        timeout=args.timeout,
        baseline=args.baseline,
        output=args.output,
        list_rules=args.list_rules,
        verbose=args.verbose,
    )


if __name__ == "__main__":
    sys.exit(cli())
