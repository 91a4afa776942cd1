# SPDX-License-Identifier: MIT
"""Statement and expression rules — globals, eval, switch defaults, workspace clearing."""

from __future__ import annotations

from matstyle.lexer import Token, TokenKind
from matstyle.rules.base import Finding, RuleDefinition, Severity, applies_to
from matstyle.rules.context import RuleContext
from matstyle.syntax import Node, NodeKind, SourceUnit

_EVAL_FAMILY = frozenset({"eval", "evalin", "evalc", "assignin"})
_BOOLEAN_LITERALS = frozenset({"true", "false"})


def unquote(token: Token) -> str:
    """Value of a string token, with doubled quotes collapsed."""
    quote = token.text[0]
    return token.text[1:-1].replace(quote * 2, quote)


def is_call_of(tokens: tuple[Token, ...], index: int) -> bool:
    """True if tokens[index] is a bare name (not a field access like ``s.eval``)."""
    return index == 0 or not tokens[index - 1].is_op(".")


def check_globals(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for stmt in unit.walk(NodeKind.STATEMENT):
        head = stmt.head
        if head is None or head.kind != TokenKind.KEYWORD or head.text != "global":
            continue
        names = ", ".join(t.text for t in stmt.tokens[1:] if t.kind == TokenKind.IDENTIFIER)
        results.append(
            ctx.finding_at(head, f"Global variable declaration ({names}); pass data explicitly")
        )
    return results


def check_eval(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    tokens = unit.code_tokens
    for i, tok in enumerate(tokens):
        if tok.kind == TokenKind.IDENTIFIER and tok.text in _EVAL_FAMILY and is_call_of(tokens, i):
            results.append(ctx.finding_at(tok, f"Use of {tok.text}(); evaluate code directly"))
    return results


def check_switch_otherwise(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for switch in unit.walk(NodeKind.SWITCH):
        if switch.clause("otherwise") is None:
            results.append(
                ctx.finding(switch.line, "switch has no otherwise branch", column=switch.column)
            )
    return results


def _command_arguments(stmt: Node) -> list[str]:
    """Word arguments of a ``clear all`` or ``clear('all')`` style statement.

    In function syntax a bare word is a variable, so only string literals count.
    """
    words: list[str] = []
    for tok in stmt.tokens[1:]:
        if tok.kind == TokenKind.STRING:
            words.append(unquote(tok).lower())
        elif stmt.command and tok.kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD):
            words.append(tok.text.lower())
    return words


def _workspace_reset(stmt: Node) -> str | None:
    head = stmt.tokens[0]
    if head.kind != TokenKind.IDENTIFIER:
        return None
    if head.text == "clc":
        return "clc"
    args = _command_arguments(stmt)
    if head.text in ("clear", "clearvars"):
        for word in ("all", "global"):
            if word in args:
                return f"{head.text} {word}"
    if head.text == "close" and "all" in args:
        return "close all"
    return None


def check_workspace_reset(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for fn in unit.walk(NodeKind.FUNCTION):
        for stmt in fn.walk(into_functions=False):
            if stmt.kind != NodeKind.STATEMENT or not stmt.tokens:
                continue
            what = _workspace_reset(stmt)
            if what is not None:
                results.append(
                    ctx.finding_at(
                        stmt.tokens[0], f"'{what}' inside function '{fn.name}' resets shared state"
                    )
                )
    return results


def check_boolean_comparison(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    tokens = unit.code_tokens
    for i, tok in enumerate(tokens):
        if not tok.is_op("==", "~=", "!="):
            continue
        neighbours = tokens[max(i - 1, 0) : i] + tokens[i + 1 : i + 2]
        literal = next((t for t in neighbours if t.text in _BOOLEAN_LITERALS), None)
        if literal is not None:
            results.append(
                ctx.finding_at(tok, f"Comparison with {literal.text}; use the logical value directly")
            )
    return results


RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        id="S001",
        severity=Severity.MUST,
        description="No global variables",
        check=check_globals,
        section="statements",
    ),
    RuleDefinition(
        id="S002",
        severity=Severity.MUST,
        description="No eval, evalin, evalc or assignin",
        check=check_eval,
        section="statements",
    ),
    RuleDefinition(
        id="S003",
        severity=Severity.SHOULD,
        description="Every switch has an otherwise branch",
        check=check_switch_otherwise,
        applies_to=applies_to(NodeKind.SWITCH),
        section="statements",
    ),
    RuleDefinition(
        id="S004",
        severity=Severity.SHOULD,
        description="No clear all, clear global, close all or clc inside functions",
        check=check_workspace_reset,
        applies_to=applies_to(NodeKind.FUNCTION),
        section="statements",
    ),
    RuleDefinition(
        id="S005",
        severity=Severity.MAY,
        description="No comparison against true or false",
        check=check_boolean_comparison,
        section="statements",
    ),
)
