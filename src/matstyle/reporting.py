# SPDX-License-Identifier: MIT
"""Report formatters — plain text, JSON, and GitHub Actions annotations.

A Report is a pure value; these functions only render it. Paths and messages
can carry text copied out of the checked sources, so every field printed by
the text and annotation formats goes through navi-sanitize first.
"""

from __future__ import annotations

import navi_sanitize

from matstyle.rules.base import Finding, Severity
from matstyle.rules.registry import RuleRegistry
from matstyle.rules.report import Report, Verdict

_SEVERITY_LABEL: dict[Severity, str] = {
    Severity.MUST: "MUST",
    Severity.SHOULD: "SHOULD",
    Severity.MAY: "MAY",
    Severity.INFO: "INFO",
}

# GitHub workflow command per severity
_ANNOTATION_LEVEL: dict[Severity, str] = {
    Severity.MUST: "error",
    Severity.SHOULD: "warning",
    Severity.MAY: "notice",
    Severity.INFO: "notice",
}


def _sanitize(text: str) -> str:
    """Normalize text for terminal output (invisible chars, bidi, homoglyphs, NFKC)."""
    return navi_sanitize.clean(text)


def _one_line(text: str) -> str:
    return _sanitize(text).replace("\r", " ").replace("\n", " ")


def _format_finding(f: Finding) -> str:
    sev = _SEVERITY_LABEL.get(f.severity, "INFO")
    return f"{_one_line(f.path)}:{f.line}:{f.column}: [{sev}] {f.rule_id} {_one_line(f.message)}"


def format_summary(report: Report) -> str:
    s = report.summary
    status = report.verdict.value.upper()
    line = (
        f"{status}: {s.must_count} must, {s.should_count} should, "
        f"{s.may_count} may, {s.info_count} info in {s.units} file(s)"
    )
    if report.verdict == Verdict.INDETERMINATE:
        line += " (run interrupted, results incomplete)"
    return line


def format_text(report: Report) -> str:
    """One line per finding in report order, then the summary line."""
    lines = [_format_finding(f) for f in report.findings]
    lines.append(format_summary(report))
    return "\n".join(lines)


def format_json(report: Report) -> str:
    """Full report as JSON; readable back with ``Report.model_validate_json``."""
    return report.model_dump_json(indent=2)


def _escape_data(text: str) -> str:
    return text.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(text: str) -> str:
    return _escape_data(text).replace(":", "%3A").replace(",", "%2C")


def format_github(report: Report) -> str:
    """GitHub Actions workflow commands, one annotation per finding."""
    lines: list[str] = []
    for f in report.findings:
        level = _ANNOTATION_LEVEL.get(f.severity, "notice")
        props = [
            f"file={_escape_property(_sanitize(f.path))}",
            f"line={f.line}",
            f"col={f.column}",
        ]
        if f.location.end_column is not None:
            props.append(f"endColumn={f.location.end_column}")
        props.append(f"title={_escape_property(f'{f.rule_id} ({f.severity.value})')}")
        lines.append(f"::{level} {','.join(props)}::{_escape_data(_sanitize(f.message))}")
    lines.append(format_summary(report))
    return "\n".join(lines)


FORMATTERS = {
    "text": format_text,
    "json": format_json,
    "github": format_github,
}


def format_rule_list(registry: RuleRegistry) -> str:
    """Catalog listing for ``--list-rules``: id, severity, section, description."""
    rules = registry.all()
    width = max((len(r.id) for r in rules), default=4)
    return "\n".join(
        f"{r.id:<{width}}  {r.severity.value:<6}  {r.section:<15}  {r.description}" for r in rules
    )
