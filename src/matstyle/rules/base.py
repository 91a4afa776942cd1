# SPDX-License-Identifier: MIT
"""Severity, finding model, and rule definition record for the style rule engine."""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from matstyle.syntax import NodeKind

if TYPE_CHECKING:
    from matstyle.rules.context import RuleContext
    from matstyle.syntax import SourceUnit


class Severity(StrEnum):
    """Normative levels of the coding standard, plus INFO for engine notices."""

    MUST = "MUST"
    SHOULD = "SHOULD"
    MAY = "MAY"
    INFO = "INFO"


# Levels a registered rule may carry; INFO is reserved for engine-generated findings.
RULE_SEVERITIES = frozenset({Severity.MUST, Severity.SHOULD, Severity.MAY})


class FindingKind(StrEnum):
    RULE = "rule"
    ENGINE_FAULT = "engine-fault"
    UNPARSEABLE_SOURCE = "unparseable-source"
    WIDE_SUPPRESSION_REJECTED = "wide-suppression-rejected"
    UNKNOWN_SUPPRESSION_TARGET = "unknown-suppression-target"


class RuleRegistryError(Exception):
    """Base class for registry build-time defects."""


class InvalidRuleError(RuleRegistryError):
    """A rule definition is malformed (bad id, severity, or missing check)."""


class DuplicateRuleError(RuleRegistryError):
    """A rule id is registered twice."""


class UnknownRuleError(RuleRegistryError, KeyError):
    """Lookup of a rule id that is not registered."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class Location(BaseModel):
    """Where a finding points. Lines and columns are 1-based."""

    model_config = ConfigDict(frozen=True)

    path: str
    line: int = Field(ge=1)
    column: int = Field(default=1, ge=1)
    end_column: int | None = None


class Finding(BaseModel):
    """One reported violation (or engine notice) at a specific location.

    Findings are immutable snapshots: severity is copied from the rule when the
    finding is created.
    """

    model_config = ConfigDict(frozen=True)

    rule_id: str
    severity: Severity
    location: Location
    message: str
    kind: FindingKind = FindingKind.RULE

    @property
    def path(self) -> str:
        return self.location.path

    @property
    def line(self) -> int:
        return self.location.line

    @property
    def column(self) -> int:
        return self.location.column

    @property
    def is_engine_notice(self) -> bool:
        return self.kind != FindingKind.RULE

    @property
    def fingerprint(self) -> str:
        """Line-insensitive identity used to match findings across runs."""
        raw = f"{self.kind}|{self.rule_id}|{self.path}|{self.message}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


CheckFn = Callable[["SourceUnit", "RuleContext"], Iterable[Finding]]
AppliesTo = Callable[[NodeKind], bool]


def any_node(kind: NodeKind) -> bool:
    """Applicability predicate matching every unit (the file node is always present)."""
    return True


def applies_to(*kinds: NodeKind) -> AppliesTo:
    """Build an applicability predicate matching the given node kinds."""
    wanted = frozenset(kinds)

    def _predicate(kind: NodeKind) -> bool:
        return kind in wanted

    return _predicate


@dataclass(frozen=True)
class RuleDefinition:
    """A named, severity-leveled, mechanically checkable style rule.

    ``check`` must be pure: it reads the unit and returns findings without
    touching shared state, so rules can run in any order or concurrently.
    """

    id: str
    severity: Severity
    description: str
    check: CheckFn | None
    applies_to: AppliesTo = any_node
    section: str = ""
