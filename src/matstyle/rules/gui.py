# SPDX-License-Identifier: MIT
"""GUI rules — callbacks as function handles, explicit graphics handles."""

from __future__ import annotations

from matstyle.lexer import Token, TokenKind
from matstyle.rules.base import Finding, RuleDefinition, Severity, applies_to
from matstyle.rules.context import RuleContext
from matstyle.rules.statements import is_call_of, unquote
from matstyle.syntax import NodeKind, SourceUnit

_IMPLICIT_HANDLES = frozenset({"gcf", "gca", "gco"})


def _is_callback_property(name: str) -> bool:
    lowered = name.lower()
    return lowered.endswith("callback") or lowered.endswith("fcn")


def _callback_string(tokens: tuple[Token, ...], i: int) -> tuple[str, Token] | None:
    """Match ``'Callback', 'code'`` and ``h.Callback = 'code'`` at position i."""
    tok = tokens[i]
    if i + 2 >= len(tokens):
        return None
    value = tokens[i + 2]
    if value.kind != TokenKind.STRING:
        return None
    if tok.kind == TokenKind.STRING and tokens[i + 1].is_op(","):
        name = unquote(tok)
        if _is_callback_property(name):
            return name, value
    if (
        tok.kind == TokenKind.IDENTIFIER
        and i > 0
        and tokens[i - 1].is_op(".")
        and tokens[i + 1].is_op("=")
        and _is_callback_property(tok.text)
    ):
        return tok.text, value
    return None


def check_string_callbacks(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    tokens = unit.code_tokens
    for i in range(len(tokens)):
        match = _callback_string(tokens, i)
        if match is not None:
            name, value = match
            results.append(
                ctx.finding_at(value, f"{name} is set to a string; use a function handle (@fn)")
            )
    return results


def check_implicit_handles(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    covered = unit.function_lines()
    results: list[Finding] = []
    tokens = unit.code_tokens
    for i, tok in enumerate(tokens):
        if (
            tok.kind == TokenKind.IDENTIFIER
            and tok.text in _IMPLICIT_HANDLES
            and tok.line in covered
            and is_call_of(tokens, i)
        ):
            results.append(
                ctx.finding_at(tok, f"{tok.text} inside a function; pass the graphics handle explicitly")
            )
    return results


RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        id="G001",
        severity=Severity.SHOULD,
        description="Callback properties are function handles, not strings",
        check=check_string_callbacks,
        section="gui",
    ),
    RuleDefinition(
        id="G002",
        severity=Severity.SHOULD,
        description="No gcf, gca or gco inside functions",
        check=check_implicit_handles,
        applies_to=applies_to(NodeKind.FUNCTION),
        section="gui",
    ),
)
