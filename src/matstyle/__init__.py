# SPDX-License-Identifier: MIT
"""matstyle — MATLAB coding-standard checker. Deterministic rules, inline suppressions, one verdict."""

from matstyle.baseline import FindingLifecycle, cross_reference_findings, load_baseline
from matstyle.lexer import ParseError, Token, TokenKind, tokenize
from matstyle.reporting import format_github, format_json, format_rule_list, format_text
from matstyle.rules import (
    CancelToken,
    Finding,
    Report,
    RuleEngine,
    Severity,
    Verdict,
    build_default_registry,
    check_gate,
    lint_text,
    load_profile,
)
from matstyle.syntax import MatlabProvider, SourceUnit, parse_source

__all__ = [
    "CancelToken",
    "Finding",
    "FindingLifecycle",
    "MatlabProvider",
    "ParseError",
    "Report",
    "RuleEngine",
    "Severity",
    "SourceUnit",
    "Token",
    "TokenKind",
    "Verdict",
    "build_default_registry",
    "check_gate",
    "cross_reference_findings",
    "format_github",
    "format_json",
    "format_rule_list",
    "format_text",
    "lint_text",
    "load_baseline",
    "load_profile",
    "parse_source",
    "tokenize",
]
