# SPDX-License-Identifier: MIT
"""Finding aggregation — dedup, deterministic ordering, severity rollup, verdict."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from matstyle.rules.base import Finding, FindingKind, Severity
from matstyle.rules.registry import CATALOG_VERSION


class Verdict(StrEnum):
    PASS = "pass"
    FAIL = "fail"
    INDETERMINATE = "indeterminate"


class Summary(BaseModel):
    """Finding counts per severity."""

    model_config = ConfigDict(frozen=True)

    must_count: int = 0
    should_count: int = 0
    may_count: int = 0
    info_count: int = 0
    units: int = 0

    @property
    def total(self) -> int:
        return self.must_count + self.should_count + self.may_count + self.info_count


class Report(BaseModel):
    """Terminal artifact of a run. A pure value: printing is the caller's job."""

    model_config = ConfigDict(frozen=True)

    findings: tuple[Finding, ...] = ()
    summary: Summary = Summary()
    verdict: Verdict = Verdict.PASS
    completed: bool = True
    catalog_version: str = CATALOG_VERSION

    @property
    def passed(self) -> bool:
        return self.verdict == Verdict.PASS

    def of_kind(self, kind: FindingKind) -> list[Finding]:
        return [f for f in self.findings if f.kind == kind]


def sort_key(finding: Finding) -> tuple[str, int, int, str, str, str, int, str]:
    """Path, line, column, rule id; the remaining fields only break ties."""
    return (
        finding.path,
        finding.line,
        finding.column,
        finding.rule_id,
        finding.kind.value,
        finding.message,
        finding.location.end_column or 0,
        finding.severity.value,
    )


def verdict_for(findings: Iterable[Finding], *, completed: bool = True) -> Verdict:
    """Fail iff any MUST finding remains; indeterminate if the run was cut short."""
    if not completed:
        return Verdict.INDETERMINATE
    if any(f.severity == Severity.MUST for f in findings):
        return Verdict.FAIL
    return Verdict.PASS


def _summarize(findings: Iterable[Finding], units: int) -> Summary:
    counts = {severity: 0 for severity in Severity}
    for f in findings:
        counts[f.severity] += 1
    return Summary(
        must_count=counts[Severity.MUST],
        should_count=counts[Severity.SHOULD],
        may_count=counts[Severity.MAY],
        info_count=counts[Severity.INFO],
        units=units,
    )


def aggregate(
    findings_by_unit: Mapping[str, Iterable[Finding]],
    *,
    completed: bool = True,
    catalog_version: str = CATALOG_VERSION,
) -> Report:
    """Merge per-unit findings into a Report.

    Findings identical in (rule_id, location, message) collapse to one; the
    survivors are sorted by path, line, column and rule id. The input order
    never affects the output.
    """
    ordered = sorted(
        (f for findings in findings_by_unit.values() for f in findings),
        key=sort_key,
    )
    seen: set[tuple[str, object, str]] = set()
    unique: list[Finding] = []
    for f in ordered:
        key = (f.rule_id, f.location, f.message)
        if key in seen:
            continue
        seen.add(key)
        unique.append(f)
    return Report(
        findings=tuple(unique),
        summary=_summarize(unique, len(findings_by_unit)),
        verdict=verdict_for(unique, completed=completed),
        completed=completed,
        catalog_version=catalog_version,
    )
