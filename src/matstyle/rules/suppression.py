# SPDX-License-Identifier: MIT
"""Inline suppression directives — ``%#ok<ID>`` on the line being silenced.

Only single-line suppressions are honoured. MATLAB's file-wide star form
(``%#ok<*ID>``) is rejected with a visible finding, and ids the registry does
not know are reported so stale directives surface.
"""

from __future__ import annotations

import re
from collections import defaultdict
from collections.abc import Collection, Iterable
from dataclasses import dataclass

from matstyle.lexer import Token, TokenKind
from matstyle.rules.base import Finding, FindingKind, Location, Severity
from matstyle.syntax import SourceUnit

ALL_RULES = "all"

_DIRECTIVE_RE = re.compile(r"^%#ok(?![A-Za-z0-9_])(?P<open><)?(?P<ids>[^>]*)(?P<close>>)?")


@dataclass(frozen=True)
class Suppression:
    """Silences one rule id (or every rule, ``ALL_RULES``) on exactly one line."""

    rule_id: str
    line: int


@dataclass(frozen=True)
class SuppressionScan:
    """Result of scanning a unit: usable suppressions plus directive defects."""

    suppressions: tuple[Suppression, ...] = ()
    findings: tuple[Finding, ...] = ()


def _directive_text(token: Token) -> str | None:
    if token.kind == TokenKind.COMMENT:
        if token.text.startswith("%{"):
            return None
        return token.text.strip()
    if token.kind == TokenKind.CONTINUATION:
        # Anything after "..." is commentary; a directive may sit there too.
        return token.text.lstrip(".").strip()
    return None


def _notice(unit: SourceUnit, token: Token, kind: FindingKind, rule_id: str, message: str) -> Finding:
    return Finding(
        rule_id=rule_id,
        severity=Severity.INFO,
        location=Location(path=unit.path, line=token.line, column=token.column),
        message=message,
        kind=kind,
    )


def extract_suppressions(unit: SourceUnit, known_ids: Collection[str]) -> SuppressionScan:
    """Collect ``%#ok`` directives from a unit's comments.

    Args:
        unit: The parsed unit.
        known_ids: Rule ids the registry knows; anything else is reported.

    Returns:
        SuppressionScan with the suppressions to apply and one finding per
        rejected or unknown directive target.
    """
    suppressions: list[Suppression] = []
    findings: list[Finding] = []
    for token in unit.tokens:
        text = _directive_text(token)
        if not text:
            continue
        match = _DIRECTIVE_RE.match(text)
        if match is None:
            continue
        if match.group("open") is None:
            suppressions.append(Suppression(rule_id=ALL_RULES, line=token.line))
            continue
        if match.group("close") is None:
            findings.append(
                _notice(
                    unit,
                    token,
                    FindingKind.UNKNOWN_SUPPRESSION_TARGET,
                    FindingKind.UNKNOWN_SUPPRESSION_TARGET.value,
                    f"Malformed suppression directive {text!r}; expected %#ok<ID,...>",
                )
            )
            continue
        ids = [part.strip() for part in match.group("ids").split(",") if part.strip()]
        if not ids:
            suppressions.append(Suppression(rule_id=ALL_RULES, line=token.line))
            continue
        for rule_id in ids:
            if rule_id.startswith("*"):
                findings.append(
                    _notice(
                        unit,
                        token,
                        FindingKind.WIDE_SUPPRESSION_REJECTED,
                        rule_id.lstrip("*") or ALL_RULES,
                        f"File-wide suppression '{rule_id}' is not allowed; "
                        "suppress individual lines instead",
                    )
                )
            elif rule_id.lower() == ALL_RULES:
                suppressions.append(Suppression(rule_id=ALL_RULES, line=token.line))
            elif rule_id in known_ids:
                suppressions.append(Suppression(rule_id=rule_id, line=token.line))
            else:
                findings.append(
                    _notice(
                        unit,
                        token,
                        FindingKind.UNKNOWN_SUPPRESSION_TARGET,
                        rule_id,
                        f"Suppression names unknown rule '{rule_id}'",
                    )
                )
    return SuppressionScan(suppressions=tuple(suppressions), findings=tuple(findings))


def filter_findings(
    findings: Iterable[Finding], suppressions: Iterable[Suppression]
) -> list[Finding]:
    """Drop rule findings covered by a suppression on the same line.

    Engine-generated findings (faults, parse failures, directive defects) are
    never suppressed.
    """
    by_line: dict[int, set[str]] = defaultdict(set)
    for s in suppressions:
        by_line[s.line].add(s.rule_id)
    kept: list[Finding] = []
    for f in findings:
        silenced = by_line.get(f.line, set())
        if not f.is_engine_notice and (ALL_RULES in silenced or f.rule_id in silenced):
            continue
        kept.append(f)
    return kept
