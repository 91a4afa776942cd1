# SPDX-License-Identifier: MIT
"""Rule context — what a rule check receives besides the unit itself."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from matstyle.lexer import Token, TokenKind
from matstyle.rules.base import Finding, Location

if TYPE_CHECKING:
    from matstyle.rules.base import RuleDefinition
    from matstyle.rules.config import ProfileConfig
    from matstyle.syntax import SourceUnit


@dataclass(frozen=True)
class RuleContext:
    """Context passed to each rule check — the unit, the rule itself, and the profile."""

    unit: SourceUnit
    rule: RuleDefinition
    profile: ProfileConfig

    def finding(
        self,
        line: int,
        message: str,
        *,
        column: int = 1,
        end_column: int | None = None,
    ) -> Finding:
        """Build a finding for this rule at a position in this unit."""
        return Finding(
            rule_id=self.rule.id,
            severity=self.rule.severity,
            location=Location(
                path=self.unit.path,
                line=line,
                column=column,
                end_column=end_column,
            ),
            message=message,
        )

    def finding_at(self, token: Token, message: str) -> Finding:
        """Build a finding spanning a single token."""
        end = token.end_column if token.kind != TokenKind.COMMENT else None
        return self.finding(token.line, message, column=token.column, end_column=end)
