# SPDX-License-Identifier: MIT
"""Structural MATLAB parser and the SourceUnit handed to every rule.

The parser is deliberately shallow: it recovers the block structure of a file
(functions, classdef sections, control flow) and splits the rest into
statements. Expressions stay as token slices; rules read them directly.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from functools import cached_property
from pathlib import PurePath
from typing import Protocol, runtime_checkable

from matstyle.lexer import ParseError, Token, TokenKind, split_lines, tokenize

__all__ = [
    "Clause",
    "FileKind",
    "MatlabProvider",
    "Node",
    "NodeKind",
    "ParseError",
    "SourceProvider",
    "SourceUnit",
    "parse_source",
]


class NodeKind(StrEnum):
    FILE = "file"
    FUNCTION = "function"
    CLASS = "class"
    PROPERTIES = "properties"
    METHODS = "methods"
    EVENTS = "events"
    ENUMERATION = "enumeration"
    ARGUMENTS = "arguments"
    FOR = "for"
    PARFOR = "parfor"
    WHILE = "while"
    IF = "if"
    SWITCH = "switch"
    TRY = "try"
    SPMD = "spmd"
    STATEMENT = "statement"


class FileKind(StrEnum):
    SCRIPT = "script"
    FUNCTION = "function"
    CLASS = "class"


_KEYWORD_BLOCKS: dict[str, NodeKind] = {
    "function": NodeKind.FUNCTION,
    "classdef": NodeKind.CLASS,
    "for": NodeKind.FOR,
    "parfor": NodeKind.PARFOR,
    "while": NodeKind.WHILE,
    "if": NodeKind.IF,
    "switch": NodeKind.SWITCH,
    "try": NodeKind.TRY,
    "spmd": NodeKind.SPMD,
}

_CLASS_SECTIONS: dict[str, NodeKind] = {
    "properties": NodeKind.PROPERTIES,
    "methods": NodeKind.METHODS,
    "events": NodeKind.EVENTS,
    "enumeration": NodeKind.ENUMERATION,
}

# Intermediate clause keyword -> block kind that may contain it
_CLAUSES: dict[str, NodeKind] = {
    "elseif": NodeKind.IF,
    "else": NodeKind.IF,
    "case": NodeKind.SWITCH,
    "otherwise": NodeKind.SWITCH,
    "catch": NodeKind.TRY,
}

# Blocks whose statements declare members rather than execute code
DECLARATION_BLOCKS = frozenset(
    {NodeKind.PROPERTIES, NodeKind.EVENTS, NodeKind.ENUMERATION, NodeKind.ARGUMENTS}
)


@dataclass(frozen=True)
class Clause:
    """An intermediate branch keyword (else, case, catch, ...) of a block.

    ``index`` is the number of child nodes that precede the clause, so the
    clause body is ``children[index:next_clause.index]``.
    """

    keyword: str
    line: int
    column: int
    index: int
    tokens: tuple[Token, ...] = ()


@dataclass(frozen=True)
class Node:
    """A block or statement in the syntax tree."""

    kind: NodeKind
    line: int
    column: int
    end_line: int
    name: str | None = None
    name_token: Token | None = None
    tokens: tuple[Token, ...] = ()
    children: tuple[Node, ...] = ()
    inputs: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()
    attributes: tuple[str, ...] = ()
    bases: tuple[str, ...] = ()
    clauses: tuple[Clause, ...] = ()
    command: bool = False

    def walk(self, *, into_functions: bool = True) -> Iterator[Node]:
        """Yield this node and its descendants in source order.

        With ``into_functions=False`` the walk does not enter nested function
        or class nodes below this one, which gives one variable scope.
        """
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            children = node.children
            if not into_functions:
                children = tuple(
                    c for c in children if c.kind not in (NodeKind.FUNCTION, NodeKind.CLASS)
                )
            stack.extend(reversed(children))

    def clause(self, keyword: str) -> Clause | None:
        return next((c for c in self.clauses if c.keyword == keyword), None)

    def clause_body(self, clause: Clause) -> tuple[Node, ...]:
        position = self.clauses.index(clause)
        following = self.clauses[position + 1 :]
        stop = following[0].index if following else len(self.children)
        return self.children[clause.index : stop]

    def token_named(self, text: str) -> Token | None:
        """First identifier token in this node's own tokens with the given text."""
        return next(
            (t for t in self.tokens if t.kind == TokenKind.IDENTIFIER and t.text == text),
            None,
        )

    @property
    def head(self) -> Token | None:
        return self.tokens[0] if self.tokens else None


@dataclass(frozen=True)
class SourceUnit:
    """One parsed compilation unit. Rules read it; nothing mutates it."""

    path: str
    text: str
    lines: tuple[str, ...]
    tokens: tuple[Token, ...]
    root: Node

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def stem(self) -> str:
        return PurePath(self.path).stem

    @property
    def is_file(self) -> bool:
        """True when the unit came from a ``.m`` file rather than a buffer."""
        return PurePath(self.path).suffix == ".m"

    @cached_property
    def kinds(self) -> frozenset[NodeKind]:
        return frozenset(node.kind for node in self.root.walk())

    @cached_property
    def code_tokens(self) -> tuple[Token, ...]:
        """Tokens without comments, continuations and newlines."""
        skip = (TokenKind.COMMENT, TokenKind.CONTINUATION, TokenKind.NEWLINE)
        return tuple(t for t in self.tokens if t.kind not in skip)

    @property
    def comments(self) -> tuple[Token, ...]:
        return tuple(t for t in self.tokens if t.kind == TokenKind.COMMENT)

    @cached_property
    def file_kind(self) -> FileKind:
        first = self.root.children[0] if self.root.children else None
        if first is not None and first.kind == NodeKind.CLASS:
            return FileKind.CLASS
        if first is not None and first.kind == NodeKind.FUNCTION:
            return FileKind.FUNCTION
        return FileKind.SCRIPT

    @cached_property
    def class_name(self) -> str | None:
        return next((n.name for n in self.root.children if n.kind == NodeKind.CLASS), None)

    def walk(self, *kinds: NodeKind) -> Iterator[Node]:
        """Yield every node (or every node of the given kinds) in source order."""
        for node in self.root.walk():
            if not kinds or node.kind in kinds:
                yield node

    def scopes(self) -> Iterator[Node]:
        """Yield each variable scope: the file itself and every function."""
        yield self.root
        yield from self.walk(NodeKind.FUNCTION)

    def first_token_after(self, line: int) -> Token | None:
        """First token (comments included) that starts on a line after ``line``."""
        return next(
            (t for t in self.tokens if t.line > line and t.kind != TokenKind.NEWLINE),
            None,
        )

    def function_lines(self) -> frozenset[int]:
        """Lines covered by any function body, signature included."""
        covered: set[int] = set()
        for fn in self.walk(NodeKind.FUNCTION):
            covered.update(range(fn.line, fn.end_line + 1))
        return frozenset(covered)


@runtime_checkable
class SourceProvider(Protocol):
    """Anything that can turn text into a SourceUnit or raise ParseError."""

    def parse(self, text: str, path: str) -> SourceUnit: ...


class MatlabProvider:
    """Default provider backed by the bundled lexer and structural parser."""

    def parse(self, text: str, path: str) -> SourceUnit:
        return parse_source(text, path)


# --- Parser ---


@dataclass
class _Frame:
    kind: NodeKind
    header: tuple[Token, ...]
    name: str | None = None
    name_token: Token | None = None
    inputs: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()
    attributes: tuple[str, ...] = ()
    bases: tuple[str, ...] = ()
    children: list[Node] = field(default_factory=list)
    clauses: list[Clause] = field(default_factory=list)
    last_line: int = 0

    @property
    def line(self) -> int:
        return self.header[0].line if self.header else 1

    def close(self, end_line: int) -> Node:
        head = self.header[0] if self.header else None
        return Node(
            kind=self.kind,
            line=head.line if head else 1,
            column=head.column if head else 1,
            end_line=end_line,
            name=self.name,
            name_token=self.name_token,
            tokens=self.header,
            children=tuple(self.children),
            inputs=self.inputs,
            outputs=self.outputs,
            attributes=self.attributes,
            bases=self.bases,
            clauses=tuple(self.clauses),
        )


def _split_statements(tokens: tuple[Token, ...]) -> list[list[Token]]:
    """Split a token stream into statements at depth-0 newlines, commas and semicolons."""
    statements: list[list[Token]] = []
    current: list[Token] = []
    depth = 0
    for tok in tokens:
        if tok.kind in (TokenKind.COMMENT, TokenKind.CONTINUATION):
            continue
        if tok.kind == TokenKind.NEWLINE:
            if depth == 0 and current:
                statements.append(current)
                current = []
            continue
        if tok.kind == TokenKind.OPERATOR:
            if tok.text in "([{":
                depth += 1
            elif tok.text in ")]}":
                depth -= 1
                if depth < 0:
                    raise ParseError(f"unbalanced '{tok.text}'", tok.line)
            elif tok.text in (",", ";") and depth == 0:
                if current:
                    statements.append(current)
                    current = []
                continue
        current.append(tok)
    if depth > 0:
        line = current[0].line if current else 1
        raise ParseError("unclosed bracket", line)
    if current:
        statements.append(current)
    return statements


def _depth_zero(tokens: list[Token]) -> Iterator[tuple[int, Token]]:
    depth = 0
    for i, tok in enumerate(tokens):
        if tok.is_op("(", "[", "{"):
            depth += 1
        elif tok.is_op(")", "]", "}"):
            depth -= 1
        elif depth == 0:
            yield i, tok


def _find_op(tokens: list[Token], text: str) -> int | None:
    return next((i for i, t in _depth_zero(tokens) if t.is_op(text)), None)


def _bracket_targets(lhs: list[Token]) -> list[str]:
    """Base variable names of a ``[a, b.c, ~, d(2)] = ...`` target list."""
    names: list[str] = []
    depth = 0
    prev: Token | None = None
    for tok in lhs:
        if tok.is_op("(", "[", "{"):
            depth += 1
        elif tok.is_op(")", "]", "}"):
            depth -= 1
        elif depth == 1 and tok.kind == TokenKind.IDENTIFIER:
            if prev is None or not prev.is_op("."):
                names.append(tok.text)
        prev = tok
    return names


def _assignment_targets(tokens: list[Token]) -> list[str]:
    eq = _find_op(tokens, "=")
    if eq is None or eq == 0:
        return []
    lhs = tokens[:eq]
    if lhs[0].is_op("["):
        return _bracket_targets(lhs)
    if lhs[0].kind == TokenKind.IDENTIFIER:
        return [lhs[0].text]
    return []


def _is_command(tokens: list[Token]) -> bool:
    """``hold on`` / ``clear all`` style command syntax."""
    if len(tokens) < 2 or tokens[0].kind != TokenKind.IDENTIFIER:
        return False
    first, second = tokens[0], tokens[1]
    if second.line != first.line or second.column <= first.end_column:
        return False
    if second.kind not in (
        TokenKind.IDENTIFIER,
        TokenKind.NUMBER,
        TokenKind.STRING,
        TokenKind.KEYWORD,
    ):
        return False
    return _find_op(tokens, "=") is None


def _parse_attributes(tokens: list[Token]) -> tuple[tuple[str, ...], int]:
    """Parse a leading ``(Name, Name = value, ...)`` list.

    Returns the attribute strings and the index just past the closing paren.
    Boolean attributes set to false are dropped; true collapses to the bare name.
    """
    if not tokens or not tokens[0].is_op("("):
        return (), 0
    depth = 0
    close = len(tokens)
    for i, tok in enumerate(tokens):
        if tok.is_op("(", "[", "{"):
            depth += 1
        elif tok.is_op(")", "]", "}"):
            depth -= 1
            if depth == 0:
                close = i
                break
    attributes: list[str] = []
    item: list[Token] = []
    for _, tok in _depth_zero(tokens[1:close] + [Token(TokenKind.OPERATOR, ",", 0, 0)]):
        if tok.is_op(","):
            if item and item[0].kind == TokenKind.IDENTIFIER:
                name = item[0].text
                value = "".join(t.text for t in item[2:]) if len(item) > 2 else None
                if value is None or value.lower() == "true":
                    attributes.append(name)
                elif value.lower() != "false":
                    attributes.append(f"{name}={value}")
            item = []
        else:
            item.append(tok)
    return tuple(attributes), close + 1


def _dotted_name(tokens: list[Token], start: int) -> tuple[str, int]:
    parts = [tokens[start].text]
    i = start + 1
    while (
        i + 1 < len(tokens)
        and tokens[i].is_op(".")
        and tokens[i + 1].kind == TokenKind.IDENTIFIER
    ):
        parts.append(tokens[i + 1].text)
        i += 2
    return ".".join(parts), i


def _function_frame(tokens: list[Token]) -> _Frame:
    sig = tokens[1:]
    outputs: tuple[str, ...] = ()
    eq = _find_op(sig, "=")
    if eq is not None:
        outputs = tuple(t.text for t in sig[:eq] if t.kind == TokenKind.IDENTIFIER)
        sig = sig[eq + 1 :]
    if not sig or sig[0].kind != TokenKind.IDENTIFIER:
        raise ParseError("function declaration without a name", tokens[0].line)
    name, i = _dotted_name(sig, 0)
    inputs: list[str] = []
    if i < len(sig) and sig[i].is_op("("):
        for tok in sig[i + 1 :]:
            if tok.is_op(")"):
                break
            if tok.kind == TokenKind.IDENTIFIER or tok.is_op("~"):
                inputs.append(tok.text)
    return _Frame(
        kind=NodeKind.FUNCTION,
        header=tuple(tokens),
        name=name,
        name_token=sig[0],
        inputs=tuple(inputs),
        outputs=outputs,
    )


def _class_frame(tokens: list[Token]) -> _Frame:
    rest = tokens[1:]
    attributes, i = _parse_attributes(rest)
    if i >= len(rest) or rest[i].kind != TokenKind.IDENTIFIER:
        raise ParseError("classdef without a class name", tokens[0].line)
    name_token = rest[i]
    bases: list[str] = []
    j = i + 1
    if j < len(rest) and rest[j].is_op("<"):
        j += 1
        while j < len(rest):
            if rest[j].kind == TokenKind.IDENTIFIER:
                base, j = _dotted_name(rest, j)
                bases.append(base)
            else:
                j += 1
    return _Frame(
        kind=NodeKind.CLASS,
        header=tuple(tokens),
        name=name_token.text,
        name_token=name_token,
        attributes=attributes,
        bases=tuple(bases),
    )


def _loop_frame(kind: NodeKind, tokens: list[Token]) -> _Frame:
    var = next((t for t in tokens[1:] if t.kind == TokenKind.IDENTIFIER), None)
    return _Frame(
        kind=kind,
        header=tuple(tokens),
        name=var.text if var else None,
        name_token=var,
    )


def _is_arguments_block(tokens: list[Token]) -> bool:
    if tokens[0].text != "arguments" or tokens[0].kind != TokenKind.IDENTIFIER:
        return False
    return len(tokens) == 1 or tokens[1].is_op("(")


def _uses_function_end(statements: list[list[Token]]) -> bool:
    """Whether the file terminates its functions with ``end``.

    MATLAB requires all functions of a file to agree, so counting openers and
    ``end`` statements settles it. classdef files always terminate functions.
    """
    openers = functions = ends = 0
    for stmt in statements:
        head = stmt[0]
        if head.kind == TokenKind.KEYWORD:
            if head.text == "classdef":
                return True
            if head.text == "function":
                functions += 1
            elif head.text in _KEYWORD_BLOCKS:
                openers += 1
            elif head.text == "end":
                ends += 1
        elif _is_arguments_block(stmt):
            openers += 1
    return functions == 0 or ends >= openers + functions


class _Parser:
    def __init__(self, statements: list[list[Token]]) -> None:
        self._statements = statements
        self._stack = [_Frame(kind=NodeKind.FILE, header=())]
        self._function_end = _uses_function_end(statements)

    @property
    def _top(self) -> _Frame:
        return self._stack[-1]

    def parse(self, line_count: int) -> Node:
        for stmt in self._statements:
            self._statement(stmt)
        while len(self._stack) > 1:
            frame = self._top
            if frame.kind == NodeKind.FUNCTION and not self._function_end:
                self._pop(frame.last_line or frame.line)
                continue
            raise ParseError(f"missing 'end' for {frame.kind.value} block", frame.line)
        return self._stack[0].close(line_count)

    def _push(self, frame: _Frame) -> None:
        frame.last_line = frame.line
        self._stack.append(frame)

    def _pop(self, end_line: int) -> None:
        frame = self._stack.pop()
        self._top.children.append(frame.close(end_line))
        self._top.last_line = end_line

    def _touch(self, line: int) -> None:
        for frame in self._stack:
            frame.last_line = max(frame.last_line, line)

    def _statement(self, tokens: list[Token]) -> None:
        head = tokens[0]
        # An unterminated function ends at its own last statement, not at the next header.
        if self._function_end or head.text != "function" or head.kind != TokenKind.KEYWORD:
            self._touch(tokens[-1].line)
        if head.kind == TokenKind.KEYWORD:
            self._keyword_statement(tokens)
            return
        if head.kind == TokenKind.IDENTIFIER:
            section = _CLASS_SECTIONS.get(head.text)
            if section is not None and self._top.kind == NodeKind.CLASS:
                attributes, _ = _parse_attributes(tokens[1:])
                self._push(_Frame(kind=section, header=tuple(tokens), attributes=attributes))
                return
            if self._top.kind == NodeKind.FUNCTION and _is_arguments_block(tokens):
                attributes, _ = _parse_attributes(tokens[1:])
                self._push(
                    _Frame(kind=NodeKind.ARGUMENTS, header=tuple(tokens), attributes=attributes)
                )
                return
        self._leaf(tokens)

    def _keyword_statement(self, tokens: list[Token]) -> None:
        head = tokens[0]
        word = head.text
        if word == "end":
            if len(self._stack) == 1:
                raise ParseError("'end' without an open block", head.line)
            self._pop(head.line)
            if len(tokens) > 1:
                self._statement(tokens[1:])
            return
        if word == "function":
            if not self._function_end:
                # Unterminated functions: a new one closes the previous one.
                while self._top.kind == NodeKind.FUNCTION:
                    self._pop(self._top.last_line)
                if len(self._stack) > 1:
                    raise ParseError(
                        f"missing 'end' for {self._top.kind.value} block", self._top.line
                    )
            self._push(_function_frame(tokens))
            return
        if word == "classdef":
            self._push(_class_frame(tokens))
            return
        kind = _KEYWORD_BLOCKS.get(word)
        if kind in (NodeKind.FOR, NodeKind.PARFOR):
            self._push(_loop_frame(kind, tokens))
            return
        if kind is not None:
            self._push(_Frame(kind=kind, header=tuple(tokens)))
            return
        owner = _CLAUSES.get(word)
        if owner is not None:
            frame = self._top
            if frame.kind != owner:
                raise ParseError(f"'{word}' outside of {owner.value} block", head.line)
            clause_tokens = tokens
            remainder: list[Token] = []
            if word in ("else", "otherwise") and len(tokens) > 1:
                clause_tokens, remainder = tokens[:1], tokens[1:]
            frame.clauses.append(
                Clause(
                    keyword=word,
                    line=head.line,
                    column=head.column,
                    index=len(frame.children),
                    tokens=tuple(clause_tokens),
                )
            )
            if remainder:
                self._statement(remainder)
            return
        self._leaf(tokens)

    def _leaf(self, tokens: list[Token]) -> None:
        if self._top.kind in DECLARATION_BLOCKS:
            first = next((t for t in tokens if t.kind == TokenKind.IDENTIFIER), None)
            outputs: tuple[str, ...] = (first.text,) if first else ()
            command = False
        else:
            outputs = tuple(_assignment_targets(tokens))
            command = _is_command(tokens)
        head = tokens[0]
        self._top.children.append(
            Node(
                kind=NodeKind.STATEMENT,
                line=head.line,
                column=head.column,
                end_line=tokens[-1].line,
                tokens=tuple(tokens),
                outputs=outputs,
                command=command,
            )
        )


def parse_source(text: str, path: str) -> SourceUnit:
    """Tokenize and parse MATLAB source into a SourceUnit.

    Raises:
        ParseError: If the text cannot be tokenized or its blocks do not balance.
    """
    lines = tuple(split_lines(text))
    tokens = tokenize(text)
    statements = _split_statements(tokens)
    root = _Parser(statements).parse(len(lines))
    return SourceUnit(path=path, text=text, lines=lines, tokens=tokens, root=root)
