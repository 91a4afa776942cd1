# SPDX-License-Identifier: MIT
"""Rule engine — runs applicable rules against source units and builds the report.

Faults are isolated: a rule that raises, overruns its time bound, or reports
a location outside the unit yields one engine-fault finding for that rule and
unit, and the remaining rules still run. Parse failures become a single
unparseable-source finding for the unit, and any other failure to check a
unit becomes a single engine-fault finding for it.

On the main thread a serial check is interrupted with SIGALRM once it
overruns. Elsewhere, and whenever more than one worker is configured, checks
run on a thread pool and the engine stops waiting for one that overruns.
"""

from __future__ import annotations

import logging
import signal
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Any, TypeVar

from matstyle.lexer import split_lines
from matstyle.rules.base import Finding, FindingKind, Location, RuleDefinition, Severity
from matstyle.rules.config import PROFILES
from matstyle.rules.context import RuleContext
from matstyle.rules.registry import CATALOG_VERSION, RuleRegistry, build_default_registry
from matstyle.rules.report import Report, aggregate
from matstyle.rules.suppression import extract_suppressions, filter_findings
from matstyle.syntax import MatlabProvider, ParseError, SourceProvider, SourceUnit

if TYPE_CHECKING:
    from matstyle.rules.config import ProfileConfig

log = logging.getLogger(__name__)

_POLL_INTERVAL = 0.05

T = TypeVar("T")
_Outcome = tuple[list[Finding], float]


class CancelToken:
    """Cooperative cancellation flag, safe to set from another thread or a signal handler."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class RuleFault(Exception):
    """A rule returned something the engine cannot accept."""


class _RuleTimeout(Exception):
    """A check ran past its time bound."""


class _PoolSaturated(Exception):
    """Every worker is held by a check that already timed out."""


@dataclass(frozen=True)
class UnitResult:
    """Visible findings of one unit after suppression filtering."""

    path: str
    findings: tuple[Finding, ...]
    completed: bool = True


def _fault(rule: RuleDefinition, path: str, reason: str) -> Finding:
    return Finding(
        rule_id=rule.id,
        severity=Severity.MUST,
        location=Location(path=path, line=1, column=1),
        message=f"Rule {rule.id} could not complete: {reason}",
        kind=FindingKind.ENGINE_FAULT,
    )


def _unit_fault(path: str, exc: Exception) -> Finding:
    return Finding(
        rule_id=FindingKind.ENGINE_FAULT.value,
        severity=Severity.MUST,
        location=Location(path=path, line=1, column=1),
        message=f"Unit could not be checked: {type(exc).__name__}: {exc}",
        kind=FindingKind.ENGINE_FAULT,
    )


def unparseable(path: str, error: ParseError, line_count: int | None = None) -> Finding:
    """The single finding recorded for a unit the provider could not parse.

    With ``line_count`` the reported line is clamped into the unit.
    """
    line = max(error.line, 1)
    if line_count is not None:
        line = min(line, max(line_count, 1))
    return Finding(
        rule_id=FindingKind.UNPARSEABLE_SOURCE.value,
        severity=Severity.MUST,
        location=Location(path=path, line=line, column=1),
        message=f"Source could not be parsed: {error.reason}",
        kind=FindingKind.UNPARSEABLE_SOURCE,
    )


def unreadable(path: str, error: OSError) -> Finding:
    """The finding recorded for a source the caller could not read."""
    return Finding(
        rule_id=FindingKind.UNPARSEABLE_SOURCE.value,
        severity=Severity.MUST,
        location=Location(path=path, line=1, column=1),
        message=f"Source could not be read: {error.strerror or error}",
        kind=FindingKind.UNPARSEABLE_SOURCE,
    )


def _alarm_available() -> bool:
    return hasattr(signal, "setitimer") and threading.current_thread() is threading.main_thread()


def _with_alarm(fn: Callable[[], T], seconds: float) -> T:
    """Run *fn* with a SIGALRM timeout (main thread, POSIX only)."""

    def _handler(signum: int, frame: Any) -> None:
        raise _RuleTimeout

    old_handler = signal.signal(signal.SIGALRM, _handler)
    signal.setitimer(signal.ITIMER_REAL, seconds)
    try:
        return fn()
    finally:
        signal.setitimer(signal.ITIMER_REAL, 0)
        signal.signal(signal.SIGALRM, old_handler)


def _executor(workers: int) -> ThreadPoolExecutor:
    return ThreadPoolExecutor(max_workers=workers, thread_name_prefix="matstyle-rule")


class RuleEngine:
    """Runs the registry's rules against units; one engine serves any number of runs."""

    def __init__(
        self,
        registry: RuleRegistry | None = None,
        profile: ProfileConfig | None = None,
        *,
        provider: SourceProvider | None = None,
    ) -> None:
        self._registry = (registry if registry is not None else build_default_registry()).freeze()
        self._profile = profile or PROFILES["default"]
        self._provider: SourceProvider = provider or MatlabProvider()

    @property
    def registry(self) -> RuleRegistry:
        return self._registry

    @property
    def profile(self) -> ProfileConfig:
        return self._profile

    # --- Single unit ---

    def analyze(self, unit: SourceUnit, cancel: CancelToken | None = None) -> list[Finding]:
        """Run every applicable rule and return raw (unsuppressed, unsorted) findings."""
        findings, _ = self._run_rules(unit, cancel)
        return findings

    def check_unit(self, unit: SourceUnit, cancel: CancelToken | None = None) -> UnitResult:
        """Analyze a unit and apply its inline suppressions.

        A failure outside any single rule yields one engine-fault finding for
        the unit instead of propagating.
        """
        started = time.monotonic()
        try:
            raw, completed = self._run_rules(unit, cancel)
            scan = extract_suppressions(unit, self._registry.ids())
            visible = filter_findings(raw, scan.suppressions)
        except Exception as exc:  # noqa: BLE001
            log.warning("Could not check %s: %s: %s", unit.path, type(exc).__name__, exc)
            return UnitResult(path=unit.path, findings=(_unit_fault(unit.path, exc),))
        log.debug(
            "Checked %s: %d raw, %d visible findings in %.3fs",
            unit.path,
            len(raw),
            len(visible),
            time.monotonic() - started,
        )
        return UnitResult(
            path=unit.path,
            findings=(*visible, *scan.findings),
            completed=completed,
        )

    def check_source(
        self, text: str, path: str, cancel: CancelToken | None = None
    ) -> UnitResult:
        """Parse and check one source text. Parse failures become a single finding."""
        try:
            unit = self._provider.parse(text, path)
        except ParseError as exc:
            log.warning("Could not parse %s: %s", path, exc)
            finding = unparseable(path, exc, len(split_lines(text)))
            return UnitResult(path=path, findings=(finding,))
        except Exception as exc:  # noqa: BLE001
            log.warning("Provider failed on %s: %s: %s", path, type(exc).__name__, exc)
            return UnitResult(path=path, findings=(_unit_fault(path, exc),))
        return self.check_unit(unit, cancel)

    # --- Batch ---

    def run(
        self,
        sources: Iterable[tuple[str, str | OSError]],
        cancel: CancelToken | None = None,
    ) -> Report:
        """Check (path, text) pairs and aggregate them into one Report.

        A source the caller could not read is passed with its OSError in
        place of the text and gets a single unparseable-source finding.
        A cancelled run still returns everything gathered so far, with
        ``completed=False`` and an indeterminate verdict.
        """
        results: dict[str, list[Finding]] = {}
        completed = True
        for path, text in sources:
            if cancel is not None and cancel.cancelled:
                completed = False
                break
            if isinstance(text, OSError):
                log.warning("Could not read %s: %s", path, text)
                result = UnitResult(path=path, findings=(unreadable(path, text),))
            else:
                result = self.check_source(text, path, cancel)
            results.setdefault(path, []).extend(result.findings)
            if not result.completed:
                completed = False
                break
        return aggregate(results, completed=completed, catalog_version=CATALOG_VERSION)

    # --- Rule execution ---

    def _applicable(self, unit: SourceUnit) -> list[RuleDefinition]:
        present = unit.kinds
        return [
            rule
            for rule in self._registry.all()
            if any(rule.applies_to(kind) for kind in present)
        ]

    def _invoke(self, rule: RuleDefinition, unit: SourceUnit) -> list[Finding]:
        assert rule.check is not None
        ctx = RuleContext(unit=unit, rule=rule, profile=self._profile)
        findings = list(rule.check(unit, ctx))
        limit = max(unit.line_count, 1)
        for f in findings:
            if not isinstance(f, Finding):
                msg = f"returned {type(f).__name__} instead of Finding"
                raise RuleFault(msg)
            if f.path != unit.path or not 1 <= f.line <= limit:
                msg = f"reported {f.path}:{f.line} outside {unit.path} (1-{limit})"
                raise RuleFault(msg)
            # Column len + 1 addresses the end of the line.
            width = len(unit.lines[f.line - 1]) + 1 if unit.lines else 1
            end = f.location.end_column
            if f.column > width or (end is not None and end < f.column):
                msg = f"reported column {f.column}-{end} outside line {f.line} (1-{width})"
                raise RuleFault(msg)
        return findings

    def _run_rules(
        self, unit: SourceUnit, cancel: CancelToken | None
    ) -> tuple[list[Finding], bool]:
        rules = self._applicable(unit)
        workers = self._profile.workers
        if workers > 1 and len(rules) > 1:
            return self._run_pooled(unit, rules, cancel, workers)
        if self._profile.rule_timeout is not None and not _alarm_available():
            # Off the main thread an overrunning check can only be abandoned.
            return self._run_pooled(unit, rules, cancel, 1)
        return self._run_serial(unit, rules, cancel)

    def _run_serial(
        self,
        unit: SourceUnit,
        rules: list[RuleDefinition],
        cancel: CancelToken | None,
    ) -> tuple[list[Finding], bool]:
        timeout = self._profile.rule_timeout
        findings: list[Finding] = []
        for rule in rules:
            if cancel is not None and cancel.cancelled:
                return findings, False
            started = time.monotonic()
            try:
                if timeout is None:
                    found = self._invoke(rule, unit)
                else:
                    found = _with_alarm(partial(self._invoke, rule, unit), timeout)
            except _RuleTimeout:
                log.warning("Rule %s exceeded %.1fs on %s", rule.id, timeout, unit.path)
                findings.append(_fault(rule, unit.path, f"timed out after {timeout:g}s"))
                continue
            except Exception as exc:  # noqa: BLE001
                log.warning("Rule %s faulted on %s: %s", rule.id, unit.path, exc)
                findings.append(_fault(rule, unit.path, f"{type(exc).__name__}: {exc}"))
                continue
            # A check that swallowed the alarm still loses its findings.
            elapsed = time.monotonic() - started
            if timeout is not None and elapsed > timeout:
                log.warning("Rule %s exceeded %.1fs on %s", rule.id, timeout, unit.path)
                findings.append(_fault(rule, unit.path, f"timed out after {timeout:g}s"))
                continue
            findings.extend(found)
        return findings, True

    def _timed_invoke(
        self, rule: RuleDefinition, unit: SourceUnit, begun: dict[str, float]
    ) -> _Outcome:
        begun[rule.id] = start = time.monotonic()
        findings = self._invoke(rule, unit)
        return findings, time.monotonic() - start

    def _await_rule(
        self,
        rule: RuleDefinition,
        future: Future[_Outcome],
        begun: dict[str, float],
        hung: list[Future[_Outcome]],
        workers: int,
        cancel: CancelToken | None,
    ) -> list[Finding] | None:
        """Wait for one pooled check. Returns None if cancelled.

        Raises _RuleTimeout once the check has run longer than the bound, and
        _PoolSaturated when it has not started and every worker is held by a
        check that already timed out.
        """
        timeout = self._profile.rule_timeout
        while True:
            if cancel is not None and cancel.cancelled:
                return None
            done, _ = wait([future], timeout=_POLL_INTERVAL)
            if done:
                findings, elapsed = future.result()
                if timeout is not None and elapsed > timeout:
                    raise _RuleTimeout
                return findings
            if timeout is None:
                continue
            start = begun.get(rule.id)
            if start is not None:
                if time.monotonic() - start > timeout:
                    raise _RuleTimeout
            elif sum(1 for f in hung if not f.done()) >= workers:
                raise _PoolSaturated

    def _run_pooled(
        self,
        unit: SourceUnit,
        rules: list[RuleDefinition],
        cancel: CancelToken | None,
        workers: int,
    ) -> tuple[list[Finding], bool]:
        timeout = self._profile.rule_timeout
        begun: dict[str, float] = {}
        hung: list[Future[_Outcome]] = []
        findings: list[Finding] = []
        executor = _executor(workers)
        try:
            futures = {
                rule.id: executor.submit(self._timed_invoke, rule, unit, begun) for rule in rules
            }
            # Collected in registry order so output matches the serial path.
            index = 0
            while index < len(rules):
                rule = rules[index]
                future = futures[rule.id]
                try:
                    found = self._await_rule(rule, future, begun, hung, workers, cancel)
                except _PoolSaturated:
                    log.warning(
                        "%d timed-out rule thread(s) left running on %s; "
                        "moving queued rules to a new pool",
                        len(hung),
                        unit.path,
                    )
                    executor.shutdown(wait=False, cancel_futures=True)
                    executor = _executor(workers)
                    hung = []
                    for queued in rules[index:]:
                        if futures[queued.id].cancelled():
                            futures[queued.id] = executor.submit(
                                self._timed_invoke, queued, unit, begun
                            )
                    continue
                except _RuleTimeout:
                    log.warning("Rule %s exceeded %.1fs on %s", rule.id, timeout, unit.path)
                    if not future.done():
                        hung.append(future)
                    findings.append(_fault(rule, unit.path, f"timed out after {timeout:g}s"))
                except Exception as exc:  # noqa: BLE001
                    log.warning("Rule %s faulted on %s: %s", rule.id, unit.path, exc)
                    findings.append(_fault(rule, unit.path, f"{type(exc).__name__}: {exc}"))
                else:
                    if found is None:
                        return findings, False
                    findings.extend(found)
                index += 1
            return findings, True
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
