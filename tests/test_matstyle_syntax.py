# SPDX-License-Identifier: MIT
"""Tests for matstyle.syntax — structural parser and SourceUnit helpers."""

from __future__ import annotations

import pytest

from matstyle.lexer import ParseError, TokenKind
from matstyle.syntax import (
    FileKind,
    MatlabProvider,
    NodeKind,
    SourceProvider,
    parse_source,
)

FUNCTION_FILE = """\
function out = addOne(x)
%ADDONE Add one to the input.
out = x + 1;
end
"""

UNTERMINATED_FILE = """\
function a = first(x)
a = second(x);

function b = second(x)
b = x;
"""

CLASS_FILE = """\
classdef (Sealed) Account < handle & matlab.mixin.Copyable
    properties (Constant)
        MAX_BALANCE = 100
    end
    properties (Access = private, Hidden = false)
        balance
    end
    methods
        function obj = Account(b)
            obj.balance = b;
        end
    end
end
"""


class TestFiles:
    def test_function_file(self) -> None:
        unit = parse_source(FUNCTION_FILE, "addOne.m")
        assert unit.file_kind == FileKind.FUNCTION
        fn = next(unit.walk(NodeKind.FUNCTION))
        assert fn.name == "addOne"
        assert fn.inputs == ("x",)
        assert fn.outputs == ("out",)
        assert (fn.line, fn.end_line) == (1, 4)
        assert [child.outputs for child in fn.children] == [("out",)]

    def test_script_file(self) -> None:
        unit = parse_source("x = 1;\ndisp(x)\n", "demo.m")
        assert unit.file_kind == FileKind.SCRIPT
        assert [n.kind for n in unit.root.children] == [NodeKind.STATEMENT, NodeKind.STATEMENT]
        assert unit.line_count == 2

    def test_unterminated_functions(self) -> None:
        unit = parse_source(UNTERMINATED_FILE, "first.m")
        functions = list(unit.walk(NodeKind.FUNCTION))
        assert [f.name for f in functions] == ["first", "second"]
        assert [n.kind for n in unit.root.children] == [NodeKind.FUNCTION, NodeKind.FUNCTION]
        assert (functions[0].line, functions[0].end_line) == (1, 2)
        assert (functions[1].line, functions[1].end_line) == (4, 5)

    def test_nested_functions_when_terminated(self) -> None:
        source = "function outer()\n  function inner()\n  end\nend\n"
        unit = parse_source(source, "outer.m")
        outer = unit.root.children[0]
        assert outer.name == "outer"
        assert [c.name for c in outer.children] == ["inner"]

    def test_classdef(self) -> None:
        unit = parse_source(CLASS_FILE, "Account.m")
        assert unit.file_kind == FileKind.CLASS
        assert unit.class_name == "Account"
        cls = unit.root.children[0]
        assert cls.attributes == ("Sealed",)
        assert cls.bases == ("handle", "matlab.mixin.Copyable")
        blocks = list(unit.walk(NodeKind.PROPERTIES))
        assert blocks[0].attributes == ("Constant",)
        assert blocks[0].children[0].outputs == ("MAX_BALANCE",)
        # false attributes are dropped, valued ones keep their value
        assert blocks[1].attributes == ("Access=private",)
        constructor = next(unit.walk(NodeKind.FUNCTION))
        assert constructor.name == "Account"

    def test_arguments_block(self) -> None:
        source = "function r = f(x)\n    arguments\n        x (1,1) double\n    end\n    r = x;\nend\n"
        unit = parse_source(source, "f.m")
        args = next(unit.walk(NodeKind.ARGUMENTS))
        assert args.children[0].outputs == ("x",)

    def test_arguments_outside_function_is_statement(self) -> None:
        unit = parse_source("arguments = 3;\n", "demo.m")
        assert unit.root.children[0].kind == NodeKind.STATEMENT
        assert unit.root.children[0].outputs == ("arguments",)


class TestControlFlow:
    def test_if_clauses(self) -> None:
        source = "if a\n    b = 1;\nelseif c\n    b = 2;\nelse\n    b = 3;\nend\n"
        node = next(parse_source(source, "s.m").walk(NodeKind.IF))
        assert [c.keyword for c in node.clauses] == ["elseif", "else"]
        else_body = node.clause_body(node.clauses[1])
        assert [n.line for n in else_body] == [6]
        assert node.end_line == 7

    def test_empty_clause_before_next(self) -> None:
        source = "if a\nelseif b\nelse\n    c = 1;\nend\n"
        node = next(parse_source(source, "s.m").walk(NodeKind.IF))
        assert node.clause_body(node.clauses[0]) == ()
        assert len(node.clause_body(node.clauses[1])) == 1

    def test_try_catch(self) -> None:
        source = "try\n    x = 1;\ncatch err\nend\n"
        node = next(parse_source(source, "s.m").walk(NodeKind.TRY))
        catch = node.clause("catch")
        assert catch is not None
        assert node.clause_body(catch) == ()
        assert [t.text for t in catch.tokens] == ["catch", "err"]

    def test_switch(self) -> None:
        source = "switch k\n    case 1\n        x = 1;\n    otherwise\n        x = 0;\nend\n"
        node = next(parse_source(source, "s.m").walk(NodeKind.SWITCH))
        assert node.clause("otherwise") is not None
        assert node.clause("case") is not None

    def test_else_with_statement_on_same_line(self) -> None:
        source = "if a\n    b = 1;\nelse b = 2;\nend\n"
        node = next(parse_source(source, "s.m").walk(NodeKind.IF))
        assert [n.outputs for n in node.clause_body(node.clauses[0])] == [("b",)]

    def test_one_line_if(self) -> None:
        node = next(parse_source("if x, y = 1, end\n", "s.m").walk(NodeKind.IF))
        assert len(node.children) == 1

    def test_loop_variable(self) -> None:
        unit = parse_source("for k = 1:10\n    disp(k)\nend\nparfor (m = 1:3)\nend\n", "s.m")
        assert next(unit.walk(NodeKind.FOR)).name == "k"
        assert next(unit.walk(NodeKind.PARFOR)).name == "m"

    def test_end_as_index_is_not_a_terminator(self) -> None:
        unit = parse_source("x = v(end);\ny = v(end-1:end);\n", "s.m")
        assert len(unit.root.children) == 2


class TestStatements:
    def test_bracket_targets(self) -> None:
        unit = parse_source("[a, ~, c.d, e(2)] = deal(1);\n", "s.m")
        assert unit.root.children[0].outputs == ("a", "c", "e")

    def test_comparison_is_not_assignment(self) -> None:
        unit = parse_source("tf = a == b;\nf(x == 1)\n", "s.m")
        assert [n.outputs for n in unit.root.children] == [("tf",), ()]

    def test_command_syntax(self) -> None:
        unit = parse_source("hold on\nx = 1\ndisp hello\nf (1)\n", "s.m")
        assert [n.command for n in unit.root.children] == [True, False, True, False]

    def test_statements_split_on_separators(self) -> None:
        unit = parse_source("a = 1; b = 2, c = [1, 2; 3, 4];\n", "s.m")
        assert [n.outputs for n in unit.root.children] == [("a",), ("b",), ("c",)]

    def test_continuation_joins_lines(self) -> None:
        unit = parse_source("total = a + ...\n    b;\n", "s.m")
        (stmt,) = unit.root.children
        assert (stmt.line, stmt.end_line) == (1, 2)


class TestParseErrors:
    def test_stray_end(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_source("x = 1;\nend\n", "s.m")
        assert exc_info.value.line == 2

    def test_missing_end(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_source("if x\n    y = 1;\n", "s.m")
        assert exc_info.value.line == 1
        assert "missing 'end'" in exc_info.value.reason

    def test_clause_outside_block(self) -> None:
        with pytest.raises(ParseError, match="outside of if block"):
            parse_source("x = 1;\nelse\n", "s.m")

    @pytest.mark.parametrize("source", ["x = (1 + 2;\n", "x = 1);\n"])
    def test_unbalanced_brackets(self, source: str) -> None:
        with pytest.raises(ParseError):
            parse_source(source, "s.m")

    def test_lexer_errors_propagate(self) -> None:
        with pytest.raises(ParseError):
            parse_source("s = 'open\n", "s.m")

    def test_unterminated_function_with_open_block(self) -> None:
        source = "function a()\nif x\n    y = 1;\nfunction b()\n"
        with pytest.raises(ParseError):
            parse_source(source, "a.m")


class TestSourceUnit:
    def test_is_file(self) -> None:
        assert parse_source("x = 1;", "pkg/demo.m").is_file
        assert not parse_source("x = 1;", "<buffer>").is_file

    def test_stem(self) -> None:
        assert parse_source("x = 1;", "+pkg/helper.m").stem == "helper"

    def test_kinds(self) -> None:
        unit = parse_source(FUNCTION_FILE, "addOne.m")
        assert unit.kinds == {NodeKind.FILE, NodeKind.FUNCTION, NodeKind.STATEMENT}

    def test_scopes(self) -> None:
        unit = parse_source(UNTERMINATED_FILE, "first.m")
        assert [s.kind for s in unit.scopes()] == [
            NodeKind.FILE,
            NodeKind.FUNCTION,
            NodeKind.FUNCTION,
        ]

    def test_walk_deep_nesting(self) -> None:
        source = "if true\n" * 1200 + "x = 1;\n" + "end\n" * 1200
        nodes = list(parse_source(source, "deep.m").root.walk())
        assert len(nodes) == 1202
        assert [n.line for n in nodes[1:4]] == [1, 2, 3]
        assert nodes[-1].kind == NodeKind.STATEMENT

    def test_walk_source_order_without_nested_functions(self) -> None:
        source = "function outer()\nx = 1;\n    function inner()\n    y = 2;\n    end\nz = 3;\nend\n"
        outer = parse_source(source, "outer.m").root.children[0]
        assert [n.line for n in outer.walk(into_functions=False)] == [1, 2, 6]
        assert [n.line for n in outer.walk()] == [1, 2, 3, 4, 6]

    def test_code_tokens_skip_comments(self) -> None:
        unit = parse_source(FUNCTION_FILE, "addOne.m")
        assert all(
            t.kind not in (TokenKind.COMMENT, TokenKind.NEWLINE) for t in unit.code_tokens
        )
        assert len(unit.comments) == 1

    def test_first_token_after(self) -> None:
        unit = parse_source(FUNCTION_FILE, "addOne.m")
        tok = unit.first_token_after(1)
        assert tok is not None
        assert tok.kind == TokenKind.COMMENT

    def test_function_lines(self) -> None:
        unit = parse_source("x = 1;\n" + FUNCTION_FILE, "demo.m")
        assert unit.function_lines() == frozenset({2, 3, 4, 5})

    def test_provider_protocol(self) -> None:
        provider = MatlabProvider()
        assert isinstance(provider, SourceProvider)
        assert provider.parse("x = 1;", "a.m").path == "a.m"

    def test_empty_source(self) -> None:
        unit = parse_source("", "empty.m")
        assert unit.root.children == ()
        assert unit.file_kind == FileKind.SCRIPT
