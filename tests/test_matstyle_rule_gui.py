# SPDX-License-Identifier: MIT
"""Tests for the GUI rules (G001-G002)."""

from __future__ import annotations

from matstyle.rules.base import Finding
from matstyle.rules.config import PROFILES
from matstyle.rules.context import RuleContext
from matstyle.rules.registry import build_default_registry
from matstyle.syntax import parse_source

_REGISTRY = build_default_registry()


def _run(rule_id: str, source: str, path: str = "demo.m") -> list[Finding]:
    rule = _REGISTRY.by_id(rule_id)
    unit = parse_source(source, path)
    return list(rule.check(unit, RuleContext(unit=unit, rule=rule, profile=PROFILES["default"])))


class TestStringCallbacks:
    def test_name_value_pair(self) -> None:
        source = "uicontrol('Style', 'pushbutton', 'Callback', 'disp(1)');\n"
        (finding,) = _run("G001", source)
        assert finding.column == 46
        assert finding.message.startswith("Callback is set to a string")

    def test_property_assignment(self) -> None:
        (finding,) = _run("G001", "h.ButtonDownFcn = 'beep';\n")
        assert "ButtonDownFcn" in finding.message

    def test_function_handles(self) -> None:
        source = "set(h, 'Callback', @onClick);\nh.CloseRequestFcn = @(src, evt) delete(src);\n"
        assert _run("G001", source) == []

    def test_non_callback_string_property(self) -> None:
        assert _run("G001", "set(h, 'String', 'OK');\nh.Title = 'Main';\n") == []


class TestImplicitHandles:
    def test_inside_function(self) -> None:
        source = "function drawIt()\n%DRAWIT Draw.\nax = gca;\nplot(ax, 1:3)\nend\n"
        (finding,) = _run("G002", source, "drawIt.m")
        assert (finding.line, finding.column) == (3, 6)

    def test_scripts_may_use_current_axes(self) -> None:
        assert _run("G002", "ax = gca;\nfig = gcf;\n") == []

    def test_field_access(self) -> None:
        source = "function drawIt(s)\n%DRAWIT Draw.\nax = s.gca;\nend\n"
        assert _run("G002", source, "drawIt.m") == []
