# SPDX-License-Identifier: MIT
"""Layout and comment rules — line length, whitespace, help text, statement density."""

from __future__ import annotations

from collections import defaultdict

from matstyle.lexer import TokenKind
from matstyle.rules.base import Finding, RuleDefinition, Severity, applies_to
from matstyle.rules.context import RuleContext
from matstyle.syntax import Node, NodeKind, SourceUnit


def check_line_length(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    limit = ctx.profile.max_line_length
    results: list[Finding] = []
    for lineno, line in enumerate(unit.lines, start=1):
        if len(line) > limit:
            results.append(
                ctx.finding(
                    lineno,
                    f"Line is {len(line)} characters long (limit {limit})",
                    column=limit + 1,
                    end_column=len(line) + 1,
                )
            )
    return results


def check_tabs(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for lineno, line in enumerate(unit.lines, start=1):
        col = line.find("\t")
        if col >= 0:
            results.append(
                ctx.finding(lineno, "Tab character; indent with spaces", column=col + 1)
            )
    return results


def check_trailing_whitespace(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for lineno, line in enumerate(unit.lines, start=1):
        stripped = line.rstrip(" \t")
        if stripped != line:
            results.append(
                ctx.finding(
                    lineno,
                    "Trailing whitespace",
                    column=len(stripped) + 1,
                    end_column=len(line) + 1,
                )
            )
    return results


def check_function_help(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for fn in unit.walk(NodeKind.FUNCTION):
        if fn.name and "." in fn.name:
            continue  # set./get. accessors document the property instead
        signature_end = fn.tokens[-1].line
        following = unit.first_token_after(signature_end)
        if following is None or following.kind != TokenKind.COMMENT:
            results.append(
                ctx.finding(
                    fn.line,
                    f"Function '{fn.name}' has no help comment after its signature",
                    column=fn.column,
                )
            )
    return results


def _line_owners(unit: SourceUnit) -> dict[int, list[Node]]:
    owners: dict[int, list[Node]] = defaultdict(list)
    for node in unit.walk():
        if node.kind != NodeKind.FILE:
            owners[node.line].append(node)
    return owners


def check_statements_per_line(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for lineno, nodes in sorted(_line_owners(unit).items()):
        if len(nodes) > 1:
            second = sorted(nodes, key=lambda n: n.column)[1]
            results.append(
                ctx.finding(
                    lineno,
                    f"{len(nodes)} statements on one line; use one statement per line",
                    column=second.column,
                )
            )
    return results


def check_space_after_comma(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    tokens = unit.tokens
    for tok, nxt in zip(tokens, tokens[1:]):
        if not tok.is_op(","):
            continue
        if nxt.kind in (TokenKind.NEWLINE, TokenKind.COMMENT, TokenKind.CONTINUATION):
            continue
        if nxt.line == tok.line and nxt.column == tok.end_column:
            results.append(
                ctx.finding(tok.line, "Missing space after comma", column=tok.column)
            )
    return results


RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        id="L001",
        severity=Severity.SHOULD,
        description="Lines do not exceed the profile's maximum length",
        check=check_line_length,
        section="layout",
    ),
    RuleDefinition(
        id="L002",
        severity=Severity.MUST,
        description="No tab characters",
        check=check_tabs,
        section="layout",
    ),
    RuleDefinition(
        id="L003",
        severity=Severity.SHOULD,
        description="No trailing whitespace",
        check=check_trailing_whitespace,
        section="layout",
    ),
    RuleDefinition(
        id="L004",
        severity=Severity.SHOULD,
        description="Every function has a help comment directly after its signature",
        check=check_function_help,
        applies_to=applies_to(NodeKind.FUNCTION),
        section="layout",
    ),
    RuleDefinition(
        id="L005",
        severity=Severity.SHOULD,
        description="At most one statement per line",
        check=check_statements_per_line,
        section="layout",
    ),
    RuleDefinition(
        id="L006",
        severity=Severity.MAY,
        description="Commas are followed by a space",
        check=check_space_after_comma,
        section="layout",
    ),
)
