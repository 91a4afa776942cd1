# SPDX-License-Identifier: MIT
"""Naming conventions — variables, functions, classes, constants, files."""

from __future__ import annotations

import re
from collections.abc import Iterator

from matstyle.lexer import Token
from matstyle.rules.base import Finding, RuleDefinition, Severity, applies_to
from matstyle.rules.context import RuleContext
from matstyle.syntax import DECLARATION_BLOCKS, FileKind, Node, NodeKind, SourceUnit

_LOWER_CAMEL_RE = re.compile(r"^[a-z][a-zA-Z0-9]*$")
_UPPER_CAMEL_RE = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
_CONSTANT_RE = re.compile(r"^[A-Z][A-Z0-9_]*$")

# Frequently shadowed built-in functions. Not exhaustive: the aim is the names
# people actually reuse as variables.
BUILTIN_NAMES = frozenset(
    {
        "abs", "all", "any", "axis", "cell", "char", "class", "clear", "clock",
        "close", "colormap", "conv", "cumsum", "date", "det", "diff", "dir",
        "disp", "double", "eps", "error", "exp", "eye", "figure", "filter",
        "find", "fix", "floor", "ceil", "format", "grid", "hold", "image",
        "imag", "inf", "input", "inv", "legend", "length", "line", "load",
        "log", "lower", "max", "mean", "median", "min", "mod", "mode", "nan",
        "norm", "numel", "ones", "path", "pi", "plot", "prod", "rand", "rank",
        "real", "rem", "round", "save", "sign", "single", "size", "sort",
        "sqrt", "std", "string", "struct", "sum", "table", "text", "title",
        "trace", "type", "upper", "var", "version", "view", "zeros",
    }
)  # fmt: skip

_IMAGINARY_UNITS = frozenset({"i", "j"})


def _is_variable_name(name: str) -> bool:
    return bool(_LOWER_CAMEL_RE.match(name) or _CONSTANT_RE.match(name))


def _scope_bindings(scope: Node) -> Iterator[tuple[str, Token | None, int]]:
    """Yield (name, token, line) for the first binding of each name in a scope.

    Bindings are function inputs/outputs, assignment targets, and loop variables.
    """
    seen: set[str] = set()

    def _emit(name: str, token: Token | None, line: int) -> Iterator[tuple[str, Token | None, int]]:
        if name in seen or name == "~":
            return
        seen.add(name)
        yield name, token, line

    if scope.kind == NodeKind.FUNCTION:
        for name in (*scope.outputs, *scope.inputs):
            yield from _emit(name, scope.token_named(name), scope.line)

    skipped: set[int] = set()
    for node in scope.walk(into_functions=False):
        if node is scope:
            continue
        if node.kind in DECLARATION_BLOCKS:
            skipped.update(id(child) for child in node.children)
            continue
        if node.kind in (NodeKind.FOR, NodeKind.PARFOR) and node.name:
            yield from _emit(node.name, node.name_token, node.line)
        elif node.kind == NodeKind.STATEMENT and id(node) not in skipped:
            for name in node.outputs:
                token = node.token_named(name)
                yield from _emit(name, token, token.line if token else node.line)


def _finding(ctx: RuleContext, token: Token | None, line: int, message: str) -> Finding:
    if token is not None:
        return ctx.finding_at(token, message)
    return ctx.finding(line, message)


def check_variable_names(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for scope in unit.scopes():
        for name, token, line in _scope_bindings(scope):
            if not _is_variable_name(name):
                results.append(
                    _finding(ctx, token, line, f"Variable name '{name}' is not lowerCamelCase")
                )
    return results


def check_function_names(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for fn in unit.walk(NodeKind.FUNCTION):
        name = fn.name or ""
        if "." in name or name == unit.class_name:
            continue  # property accessors and constructors
        if not _LOWER_CAMEL_RE.match(name):
            results.append(
                _finding(
                    ctx,
                    fn.name_token,
                    fn.line,
                    f"Function name '{name}' should be lowerCamelCase or all lowercase",
                )
            )
    return results


def check_class_names(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for cls in unit.walk(NodeKind.CLASS):
        name = cls.name or ""
        if not _UPPER_CAMEL_RE.match(name):
            results.append(
                _finding(ctx, cls.name_token, cls.line, f"Class name '{name}' is not UpperCamelCase")
            )
    return results


def check_constant_names(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for block in unit.walk(NodeKind.PROPERTIES, NodeKind.ENUMERATION):
        if block.kind == NodeKind.PROPERTIES and "Constant" not in block.attributes:
            continue
        what = "Constant" if block.kind == NodeKind.PROPERTIES else "Enumeration member"
        for member in block.children:
            for name in member.outputs:
                if not _CONSTANT_RE.match(name):
                    results.append(
                        _finding(
                            ctx,
                            member.token_named(name),
                            member.line,
                            f"{what} '{name}' should be UPPER_CASE",
                        )
                    )
    return results


def check_file_name(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    if not unit.is_file or unit.file_kind == FileKind.SCRIPT:
        return []
    primary = unit.root.children[0]
    if primary.name == unit.stem:
        return []
    what = "Class" if unit.file_kind == FileKind.CLASS else "Function"
    return [
        _finding(
            ctx,
            primary.name_token,
            primary.line,
            f"{what} '{primary.name}' does not match file name '{unit.stem}.m'",
        )
    ]


def check_builtin_shadowing(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for scope in unit.scopes():
        for name, token, line in _scope_bindings(scope):
            if name in BUILTIN_NAMES:
                results.append(
                    _finding(ctx, token, line, f"'{name}' shadows the built-in function {name}()")
                )
    return results


def check_loop_iterators(unit: SourceUnit, ctx: RuleContext) -> list[Finding]:
    results: list[Finding] = []
    for loop in unit.walk(NodeKind.FOR, NodeKind.PARFOR):
        if loop.name in _IMAGINARY_UNITS:
            results.append(
                _finding(
                    ctx,
                    loop.name_token,
                    loop.line,
                    f"Loop iterator '{loop.name}' hides the imaginary unit; use ii, jj or a descriptive name",
                )
            )
    return results


RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        id="N001",
        severity=Severity.MUST,
        description="Variable names are lowerCamelCase (UPPER_CASE for constants)",
        check=check_variable_names,
        section="naming",
    ),
    RuleDefinition(
        id="N002",
        severity=Severity.MUST,
        description="Function names are lowerCamelCase or all lowercase",
        check=check_function_names,
        applies_to=applies_to(NodeKind.FUNCTION),
        section="naming",
    ),
    RuleDefinition(
        id="N003",
        severity=Severity.MUST,
        description="Class names are UpperCamelCase",
        check=check_class_names,
        applies_to=applies_to(NodeKind.CLASS),
        section="naming",
    ),
    RuleDefinition(
        id="N004",
        severity=Severity.SHOULD,
        description="Constant properties and enumeration members are UPPER_CASE",
        check=check_constant_names,
        applies_to=applies_to(NodeKind.PROPERTIES, NodeKind.ENUMERATION),
        section="naming",
    ),
    RuleDefinition(
        id="N005",
        severity=Severity.MUST,
        description="The primary function or class has the same name as its file",
        check=check_file_name,
        applies_to=applies_to(NodeKind.FUNCTION, NodeKind.CLASS),
        section="naming",
    ),
    RuleDefinition(
        id="N006",
        severity=Severity.MUST,
        description="Variables do not shadow common built-in functions",
        check=check_builtin_shadowing,
        section="naming",
    ),
    RuleDefinition(
        id="N007",
        severity=Severity.SHOULD,
        description="Loop iterators are not named i or j",
        check=check_loop_iterators,
        applies_to=applies_to(NodeKind.FOR, NodeKind.PARFOR),
        section="naming",
    ),
)
