# SPDX-License-Identifier: MIT
"""Finding lifecycle against a previous run's report.

A baseline is the JSON report of an earlier run. Findings are matched by
fingerprint, which ignores line and column, so code moving around a file
does not turn known findings into new ones.
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path

from pydantic import BaseModel

from matstyle.rules.base import Finding, Severity
from matstyle.rules.report import Report


class FindingLifecycle(BaseModel):
    """Cross-run finding comparison result."""

    new: list[Finding]
    persists: list[Finding]
    resolved: list[Finding]

    @property
    def new_must(self) -> list[Finding]:
        return [f for f in self.new if f.severity == Severity.MUST]


def cross_reference_findings(
    current: list[Finding],
    previous: list[Finding],
) -> FindingLifecycle:
    """Compare current vs previous findings by fingerprint.

    Matching is by count: if the baseline holds two findings with the same
    fingerprint and the current run holds three, one of the three is new.

    Returns a FindingLifecycle with:
    - new: findings in current with no remaining match in previous
    - persists: findings in both
    - resolved: findings in previous with no remaining match in current
    """
    available = Counter(f.fingerprint for f in previous)
    new: list[Finding] = []
    persists: list[Finding] = []
    for f in current:
        if available[f.fingerprint] > 0:
            available[f.fingerprint] -= 1
            persists.append(f)
        else:
            new.append(f)

    matched = Counter(f.fingerprint for f in current)
    resolved: list[Finding] = []
    for f in previous:
        if matched[f.fingerprint] > 0:
            matched[f.fingerprint] -= 1
        else:
            resolved.append(f)

    return FindingLifecycle(new=new, persists=persists, resolved=resolved)


def load_baseline(path: Path) -> Report:
    """Read a report previously written with ``--format json``.

    Raises:
        OSError: If the file cannot be read.
        pydantic.ValidationError: If the file is not a matstyle report.
    """
    return Report.model_validate_json(path.read_text(encoding="utf-8"))
