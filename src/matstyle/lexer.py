# SPDX-License-Identifier: MIT
"""MATLAB lexer — turns source text into a flat, position-tagged token stream."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum


class TokenKind(StrEnum):
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    NUMBER = "number"
    STRING = "string"
    COMMENT = "comment"
    CONTINUATION = "continuation"
    OPERATOR = "operator"
    NEWLINE = "newline"


# Reserved words as reported by MATLAB's iskeyword(). Block names that are
# only special inside classdef/function bodies (properties, methods, events,
# enumeration, arguments) are ordinary identifiers here; the parser decides.
KEYWORDS = frozenset(
    {
        "break",
        "case",
        "catch",
        "classdef",
        "continue",
        "else",
        "elseif",
        "end",
        "for",
        "function",
        "global",
        "if",
        "otherwise",
        "parfor",
        "persistent",
        "return",
        "spmd",
        "switch",
        "try",
        "while",
    }
)


class ParseError(Exception):
    """Raised when source text cannot be tokenized or parsed."""

    def __init__(self, message: str, line: int = 1) -> None:
        self.line = line
        self.reason = message
        super().__init__(f"line {line}: {message}")


@dataclass(frozen=True)
class Token:
    """A single lexical token. Lines and columns are 1-based."""

    kind: TokenKind
    text: str
    line: int
    column: int

    @property
    def end_column(self) -> int:
        """Column just past the last character of the token."""
        return self.column + len(self.text)

    def is_op(self, *texts: str) -> bool:
        return self.kind == TokenKind.OPERATOR and self.text in texts


_IDENT_RE = re.compile(r"[A-Za-z][A-Za-z0-9_]*")
# "3.^2" is 3 .^ 2, so a trailing dot is not eaten when an elementwise operator follows.
_NUMBER_RE = re.compile(
    r"0[xX][0-9A-Fa-f]+|(?:\d+(?:\.(?![*/\\^'])\d*)?|\.\d+)(?:[eEdD][+-]?\d+)?[ij]?"
)
_MULTI_OPS = ("==", "~=", "!=", "<=", ">=", "&&", "||", ".*", "./", ".\\", ".^", ".'")
_OPENERS = "([{"
_CLOSERS = ")]}"
_DIGITS = frozenset("0123456789")
_TRANSPOSE_AFTER = (")", "]", "}", "'", ".'")


def split_lines(text: str) -> list[str]:
    """Split source text into lines without their terminators.

    A trailing newline does not start an extra line; an empty text is one
    empty line.
    """
    lines = text.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return [line.removesuffix("\r") for line in lines]


def _is_block_marker(line: str, marker: str) -> bool:
    return line.strip() == marker


def _starts_command(tokens: list[Token]) -> bool:
    """True if the last token is an identifier opening a statement."""
    if not tokens or tokens[-1].kind != TokenKind.IDENTIFIER:
        return False
    if len(tokens) == 1:
        return True
    before = tokens[-2]
    return before.kind == TokenKind.NEWLINE or before.is_op(",", ";")


def _quote_is_transpose(tokens: list[Token], spaced: bool, depth: int) -> bool:
    """Decide whether a single quote is the transpose operator or opens a string."""
    if not tokens:
        return False
    prev = tokens[-1]
    if spaced and (depth > 0 or _starts_command(tokens)):
        return False
    if prev.kind in (TokenKind.IDENTIFIER, TokenKind.NUMBER):
        return True
    if prev.kind == TokenKind.KEYWORD:
        return prev.text == "end"
    return prev.kind == TokenKind.OPERATOR and prev.text in _TRANSPOSE_AFTER


def _scan_string(line: str, start: int, quote: str, lineno: int) -> int:
    """Return the index just past the closing quote of a string literal."""
    i = start + 1
    while i < len(line):
        if line[i] == quote:
            if i + 1 < len(line) and line[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    raise ParseError("unterminated string literal", lineno)


def tokenize(text: str) -> tuple[Token, ...]:
    """Tokenize MATLAB source.

    Block comments (``%{`` / ``%}`` on lines of their own, nestable) become one
    COMMENT token. A ``...`` continuation swallows the rest of its line and
    suppresses the NEWLINE token. Raises ParseError for unterminated strings
    and block comments.
    """
    tokens: list[Token] = []
    code: list[Token] = []  # tokens relevant to transpose disambiguation
    depth = 0
    block_depth = 0
    block_start = 0
    block_lines: list[str] = []

    for lineno, line in enumerate(split_lines(text), start=1):
        if block_depth:
            block_lines.append(line)
            if _is_block_marker(line, "%{"):
                block_depth += 1
            elif _is_block_marker(line, "%}"):
                block_depth -= 1
                if block_depth == 0:
                    col = block_lines[0].index("%{") + 1
                    tokens.append(
                        Token(TokenKind.COMMENT, "\n".join(block_lines), block_start, col)
                    )
                    block_lines = []
            continue
        if _is_block_marker(line, "%{"):
            block_depth = 1
            block_start = lineno
            block_lines = [line]
            continue

        continued = False
        spaced = False
        i = 0
        n = len(line)
        while i < n:
            c = line[i]
            col = i + 1
            if c in " \t":
                spaced = True
                i += 1
                continue
            if c == "%":
                tokens.append(Token(TokenKind.COMMENT, line[i:], lineno, col))
                break
            if line.startswith("...", i):
                tokens.append(Token(TokenKind.CONTINUATION, line[i:], lineno, col))
                continued = True
                break

            tok: Token
            if c.isalpha() and c.isascii():
                m = _IDENT_RE.match(line, i)
                assert m is not None
                word = m.group(0)
                kind = TokenKind.KEYWORD if word in KEYWORDS else TokenKind.IDENTIFIER
                tok = Token(kind, word, lineno, col)
            elif c in _DIGITS or (c == "." and i + 1 < n and line[i + 1] in _DIGITS):
                m = _NUMBER_RE.match(line, i)
                assert m is not None
                tok = Token(TokenKind.NUMBER, m.group(0), lineno, col)
            elif c == '"':
                end = _scan_string(line, i, '"', lineno)
                tok = Token(TokenKind.STRING, line[i:end], lineno, col)
            elif c == "'":
                if _quote_is_transpose(code, spaced, depth):
                    tok = Token(TokenKind.OPERATOR, "'", lineno, col)
                else:
                    end = _scan_string(line, i, "'", lineno)
                    tok = Token(TokenKind.STRING, line[i:end], lineno, col)
            else:
                op = next((o for o in _MULTI_OPS if line.startswith(o, i)), c)
                if op in _OPENERS:
                    depth += 1
                elif op in _CLOSERS:
                    depth = max(depth - 1, 0)
                tok = Token(TokenKind.OPERATOR, op, lineno, col)

            tokens.append(tok)
            code.append(tok)
            spaced = False
            i += len(tok.text)

        if not continued:
            newline = Token(TokenKind.NEWLINE, "\n", lineno, n + 1)
            tokens.append(newline)
            code.append(newline)

    if block_depth:
        raise ParseError("unterminated block comment", block_start)
    return tuple(tokens)
