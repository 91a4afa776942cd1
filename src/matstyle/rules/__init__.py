# SPDX-License-Identifier: MIT
"""Style rule engine — rules are data, the engine runs them, the report decides."""

from matstyle.rules.base import (
    DuplicateRuleError,
    Finding,
    FindingKind,
    InvalidRuleError,
    Location,
    RuleDefinition,
    RuleRegistryError,
    Severity,
    UnknownRuleError,
)
from matstyle.rules.config import PROFILES, ProfileConfig, load_profile
from matstyle.rules.context import RuleContext
from matstyle.rules.engine import CancelToken, RuleEngine, UnitResult
from matstyle.rules.registry import CATALOG_VERSION, RuleRegistry, build_default_registry
from matstyle.rules.report import Report, Summary, Verdict, aggregate
from matstyle.rules.suppression import extract_suppressions, filter_findings

__all__ = [
    "CATALOG_VERSION",
    "PROFILES",
    "CancelToken",
    "DuplicateRuleError",
    "Finding",
    "FindingKind",
    "InvalidRuleError",
    "Location",
    "ProfileConfig",
    "Report",
    "RuleContext",
    "RuleDefinition",
    "RuleEngine",
    "RuleRegistry",
    "RuleRegistryError",
    "Severity",
    "Summary",
    "UnitResult",
    "UnknownRuleError",
    "Verdict",
    "aggregate",
    "build_default_registry",
    "extract_suppressions",
    "filter_findings",
    "load_profile",
]


def lint_text(text: str, path: str = "<buffer>", profile: ProfileConfig | None = None) -> Report:
    """Convenience: check one source text with the full catalog and return its Report."""
    engine = RuleEngine(profile=profile)
    return engine.run([(path, text)])


def check_gate(report: Report) -> bool:
    """Convenience: True if the report should block (any MUST finding, or an incomplete run)."""
    return report.verdict != Verdict.PASS
