# SPDX-License-Identifier: MIT
"""Tests for matstyle.reporting — text, JSON, and GitHub annotation output."""

from __future__ import annotations

import json

from matstyle.reporting import (
    _escape_data,
    format_github,
    format_json,
    format_rule_list,
    format_summary,
    format_text,
)
from matstyle.rules.base import Finding, FindingKind, Location, Severity
from matstyle.rules.registry import build_default_registry
from matstyle.rules.report import aggregate


def _f(
    rule_id: str = "N001",
    severity: Severity = Severity.MUST,
    message: str = "Variable name 'bad_name' is not lowerCamelCase",
    path: str = "src/demo.m",
    line: int = 12,
    kind: FindingKind = FindingKind.RULE,
) -> Finding:
    return Finding(
        rule_id=rule_id,
        severity=severity,
        location=Location(path=path, line=line, column=3, end_column=11),
        message=message,
        kind=kind,
    )


class TestText:
    def test_finding_line(self) -> None:
        text = format_text(aggregate({"src/demo.m": [_f()]}))
        first, summary = text.splitlines()
        assert first == "src/demo.m:12:3: [MUST] N001 Variable name 'bad_name' is not lowerCamelCase"
        assert summary.startswith("FAIL: 1 must, 0 should, 0 may, 0 info in 1 file(s)")

    def test_clean_report(self) -> None:
        assert format_text(aggregate({"a.m": []})) == "PASS: 0 must, 0 should, 0 may, 0 info in 1 file(s)"

    def test_newlines_in_message_flattened(self) -> None:
        text = format_text(aggregate({"a.m": [_f(message="two\nlines")]}))
        assert len(text.splitlines()) == 2

    def test_interrupted_summary(self) -> None:
        summary = format_summary(aggregate({}, completed=False))
        assert summary.startswith("INDETERMINATE")
        assert "interrupted" in summary


class TestJson:
    def test_structure(self) -> None:
        data = json.loads(format_json(aggregate({"src/demo.m": [_f()]})))
        assert data["verdict"] == "fail"
        assert data["summary"]["must_count"] == 1
        assert data["findings"][0]["location"]["line"] == 12
        assert data["completed"] is True


class TestGithub:
    def test_levels(self) -> None:
        report = aggregate(
            {
                "a.m": [
                    _f("N001", Severity.MUST, line=1),
                    _f("L003", Severity.SHOULD, line=2),
                    _f("L006", Severity.MAY, line=3),
                    _f("Z9", Severity.INFO, line=4, kind=FindingKind.UNKNOWN_SUPPRESSION_TARGET),
                ]
            }
        )
        lines = format_github(report).splitlines()
        assert [line.split(" ", 1)[0] for line in lines[:4]] == [
            "::error",
            "::warning",
            "::notice",
            "::notice",
        ]

    def test_annotation_properties(self) -> None:
        (line, _) = format_github(aggregate({"src/demo.m": [_f()]})).splitlines()
        assert line == (
            "::error file=src/demo.m,line=12,col=3,endColumn=11,title=N001 (MUST)"
            "::Variable name 'bad_name' is not lowerCamelCase"
        )

    def test_escaping(self) -> None:
        finding = _f(message="50% done", path="dir,with:odd.m")
        (line, _) = format_github(aggregate({"x": [finding]})).splitlines()
        assert "file=dir%2Cwith%3Aodd.m" in line
        assert line.endswith("::50%25 done")

    def test_line_breaks_escaped(self) -> None:
        assert _escape_data("a\r\nb") == "a%0D%0Ab"


class TestRuleList:
    def test_lists_every_rule(self) -> None:
        registry = build_default_registry()
        lines = format_rule_list(registry).splitlines()
        assert len(lines) == len(registry)
        assert lines[0].split()[:3] == ["N001", "MUST", "naming"]
