# SPDX-License-Identifier: MIT
"""matstyle CLI entry point — collects .m files, runs the engine, prints the report.

Usage:
    python -m matstyle src/ +pkg/helper.m --format github

Environment variables:
    MATSTYLE_PROFILE        — profile name when --profile is not given (default: default)
    MATSTYLE_RULE_TIMEOUT   — seconds per rule check, 0 = no bound
    MATSTYLE_WORKERS        — worker threads for rule checks (default: 1)
    GITHUB_OUTPUT           — if set, verdict and counts are appended as step outputs

Exit codes: 0 pass, 1 fail, 2 usage or I/O error, 3 interrupted run.
"""

from __future__ import annotations

import logging
import os
import signal
import sys
import threading
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from matstyle.baseline import cross_reference_findings, load_baseline
from matstyle.reporting import FORMATTERS, format_rule_list
from matstyle.rules import CancelToken, Report, RuleEngine, Verdict, build_default_registry, load_profile

log = logging.getLogger(__name__)

EXIT_PASS = 0
EXIT_FAIL = 1
EXIT_USAGE = 2
EXIT_INDETERMINATE = 3

SOURCE_SUFFIX = ".m"


def collect_sources(paths: Sequence[str | Path]) -> list[Path]:
    """Expand files and directories into the .m files to check.

    Directories are searched recursively and their files sorted; explicit
    files are kept even without the .m suffix. Duplicates are dropped.

    Raises:
        FileNotFoundError: If a path does not exist.
    """
    found: list[Path] = []
    seen: set[Path] = set()
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            candidates = sorted(p for p in path.rglob(f"*{SOURCE_SUFFIX}") if p.is_file())
        elif path.is_file():
            candidates = [path]
        else:
            msg = f"No such file or directory: {raw}"
            raise FileNotFoundError(msg)
        for candidate in candidates:
            key = candidate.resolve()
            if key not in seen:
                seen.add(key)
                found.append(candidate)
    return found


def read_source(path: Path) -> str:
    """Read a source file. MATLAB files predating UTF-8 fall back to latin-1."""
    data = path.read_bytes()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        log.debug("%s is not UTF-8, decoding as latin-1", path)
        return data.decode("latin-1")


def _iter_sources(files: Sequence[Path]) -> Iterator[tuple[str, str | OSError]]:
    """Yield (path, text) pairs; an unreadable file yields its OSError instead."""
    for path in files:
        try:
            text: str | OSError = read_source(path)
        except OSError as exc:
            text = exc
        yield path.as_posix(), text


def _install_interrupt(cancel: CancelToken) -> Any:
    """Route SIGINT to the cancel token. Returns the previous handler (or None)."""
    if threading.current_thread() is not threading.main_thread():
        return None

    def _handler(signum: int, frame: Any) -> None:
        print("::warning::Interrupted, finishing current rule...", file=sys.stderr)
        cancel.cancel()

    return signal.signal(signal.SIGINT, _handler)


def _write_step_outputs(report: Report, profile: str, new_must: int | None) -> None:
    github_output = os.environ.get("GITHUB_OUTPUT", "")
    if not github_output:
        return
    with open(github_output, "a", encoding="utf-8") as f:
        f.write(f"verdict={report.verdict.value}\n")
        f.write(f"findings-count={len(report.findings)}\n")
        f.write(f"must-count={report.summary.must_count}\n")
        f.write(f"profile={profile}\n")
        if new_must is not None:
            f.write(f"new-must-count={new_must}\n")


def main(
    paths: Sequence[str | Path],
    *,
    profile: str | None = None,
    output_format: str = "text",
    workers: int | None = None,
    timeout: float | None = None,
    baseline: str | Path | None = None,
    output: str | Path | None = None,
    list_rules: bool = False,
    verbose: bool = False,
) -> int:
    """Run a lint pass and return the process exit code."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    try:
        profile_config = load_profile(cli_profile=profile, rule_timeout=timeout, workers=workers)
    except ValueError as exc:
        print(f"::error::Invalid configuration: {exc}")
        return EXIT_USAGE

    registry = build_default_registry()
    if list_rules:
        print(format_rule_list(registry))
        return EXIT_PASS

    formatter = FORMATTERS.get(output_format)
    if formatter is None:
        print(f"::error::Unknown output format: {output_format!r}. Valid formats: {sorted(FORMATTERS)}")
        return EXIT_USAGE
    if not paths:
        print("::error::No paths given")
        return EXIT_USAGE

    try:
        files = collect_sources(paths)
    except FileNotFoundError as exc:
        print(f"::error::{exc}")
        return EXIT_USAGE
    if not files:
        print(f"::warning::No {SOURCE_SUFFIX} files found", file=sys.stderr)

    baseline_report: Report | None = None
    if baseline is not None:
        try:
            baseline_report = load_baseline(Path(baseline))
        except (OSError, ValidationError) as exc:
            print(f"::error::Could not load baseline {baseline}: {exc}")
            return EXIT_USAGE

    print(
        f"Checking {len(files)} file(s) (profile={profile_config.name}, "
        f"workers={profile_config.workers})...",
        file=sys.stderr,
    )
    engine = RuleEngine(registry, profile_config)
    cancel = CancelToken()
    previous_handler = _install_interrupt(cancel)
    try:
        report = engine.run(_iter_sources(files), cancel)
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    rendered = formatter(report)
    if output is not None:
        try:
            Path(output).write_text(rendered + "\n", encoding="utf-8")
        except OSError as exc:
            print(f"::error::Could not write {output}: {exc}")
            return EXIT_USAGE
    else:
        print(rendered)

    new_must: int | None = None
    if baseline_report is not None:
        lifecycle = cross_reference_findings(list(report.findings), list(baseline_report.findings))
        new_must = len(lifecycle.new_must)
        print(
            f"  Baseline: {len(lifecycle.new)} new ({new_must} must), "
            f"{len(lifecycle.persists)} persist, {len(lifecycle.resolved)} resolved",
            file=sys.stderr,
        )
    _write_step_outputs(report, profile_config.name, new_must)

    if not report.completed:
        print("::warning::Run interrupted; verdict is indeterminate", file=sys.stderr)
        return EXIT_INDETERMINATE
    if new_must is not None:
        return EXIT_FAIL if new_must else EXIT_PASS
    return EXIT_FAIL if report.verdict == Verdict.FAIL else EXIT_PASS
