# SPDX-License-Identifier: MIT
"""Error-handling rules — try/catch hygiene and error identifiers."""

from __future__ import annotations

import re

from matstyle.lexer import TokenKind
from matstyle.rules.base import Finding, RuleDefinition, Severity, applies_to
from matstyle.rules.context import RuleContext
from matstyle.rules.statements import is_call_of, unquote
from matstyle.syntax import NodeKind, SourceUnit

# component:mnemonic, with optional further components
_MESSAGE_ID_RE = re.compile(r"^[A-Za-z][\w-]*(?::[\w-]+)+$")
_DEPRECATED_ERROR_STATE = frozenset({"lasterr", "lasterror"})


def check_try_has_catch(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for block in unit.walk(NodeKind.TRY):
        if block.clause("catch") is None:
            results.append(
                ctx.finding(
                    block.line,
                    "try without catch silently discards errors",
                    column=block.column,
                )
            )
    return results


def check_empty_catch(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for block in unit.walk(NodeKind.TRY):
        clause = block.clause("catch")
        if clause is not None and not block.clause_body(clause):
            results.append(
                ctx.finding(
                    clause.line,
                    "Empty catch block; handle, report or rethrow the error",
                    column=clause.column,
                )
            )
    return results


def check_error_identifier(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    tokens = unit.code_tokens
    for i, tok in enumerate(tokens[:-2]):
        if tok.kind != TokenKind.IDENTIFIER or tok.text != "error" or not is_call_of(tokens, i):
            continue
        if not tokens[i + 1].is_op("("):
            continue
        first_arg = tokens[i + 2]
        if first_arg.kind != TokenKind.STRING:
            continue  # MException objects, structs and variables cannot be judged
        # A lone argument is always the message, even if it looks like an id.
        single = i + 3 >= len(tokens) or tokens[i + 3].is_op(")")
        if single or not _MESSAGE_ID_RE.match(unquote(first_arg)):
            results.append(
                ctx.finding_at(tok, "error() call without a message identifier ('component:mnemonic')")
            )
    return results


def check_lasterr(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    tokens = unit.code_tokens
    for i, tok in enumerate(tokens):
        if tok.kind == TokenKind.IDENTIFIER and tok.text in _DEPRECATED_ERROR_STATE and is_call_of(tokens, i):
            results.append(
                ctx.finding_at(tok, f"{tok.text} is deprecated; use catch ME and the MException")
            )
    return results


RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        id="E001",
        severity=Severity.MUST,
        description="Every try has a catch",
        check=check_try_has_catch,
        applies_to=applies_to(NodeKind.TRY),
        section="error-handling",
    ),
    RuleDefinition(
        id="E002",
        severity=Severity.MUST,
        description="catch blocks are not empty",
        check=check_empty_catch,
        applies_to=applies_to(NodeKind.TRY),
        section="error-handling",
    ),
    RuleDefinition(
        id="E003",
        severity=Severity.SHOULD,
        description="error() calls carry a message identifier",
        check=check_error_identifier,
        section="error-handling",
    ),
    RuleDefinition(
        id="E004",
        severity=Severity.SHOULD,
        description="No lasterr or lasterror",
        check=check_lasterr,
        section="error-handling",
    ),
)
