# SPDX-License-Identifier: MIT
"""Rule registry — validated, ordered catalog of rule definitions."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator

from matstyle.rules import error_handling, gui, layout, naming, statements
from matstyle.rules.base import (
    RULE_SEVERITIES,
    DuplicateRuleError,
    FindingKind,
    InvalidRuleError,
    RuleDefinition,
    RuleRegistryError,
    UnknownRuleError,
)

CATALOG_VERSION = "2026.1"

_RULE_ID_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")
# Ids with a meaning of their own in suppressions and engine findings
_RESERVED_IDS = frozenset({"all", *(kind.value for kind in FindingKind)})

# Explicit catalog, one module per section of the coding standard
CATALOG: tuple[RuleDefinition, ...] = (
    *naming.RULES,
    *layout.RULES,
    *statements.RULES,
    *error_handling.RULES,
    *gui.RULES,
)


def _validate(rule: RuleDefinition) -> None:
    if not isinstance(rule.id, str) or not _RULE_ID_RE.match(rule.id):
        msg = f"Invalid rule id: {rule.id!r}"
        raise InvalidRuleError(msg)
    if rule.id.lower() in _RESERVED_IDS:
        msg = f"Rule id {rule.id!r} is reserved"
        raise InvalidRuleError(msg)
    if rule.severity not in RULE_SEVERITIES:
        msg = (
            f"Rule {rule.id}: invalid severity {rule.severity!r}; "
            f"expected one of {sorted(str(s) for s in RULE_SEVERITIES)}"
        )
        raise InvalidRuleError(msg)
    if rule.check is None or not callable(rule.check):
        msg = f"Rule {rule.id}: check function is missing"
        raise InvalidRuleError(msg)
    if not callable(rule.applies_to):
        msg = f"Rule {rule.id}: applies_to must be a predicate"
        raise InvalidRuleError(msg)


class RuleRegistry:
    """Holds rule definitions in registration order.

    The registry is built once and then frozen; the engine freezes it before
    the first analysis so no rule can be added or removed mid-run.
    """

    def __init__(self, rules: Iterable[RuleDefinition] = ()) -> None:
        self._rules: dict[str, RuleDefinition] = {}
        self._frozen = False
        for rule in rules:
            self.register(rule)

    def register(self, rule: RuleDefinition) -> None:
        """Add a rule. The registry is left unchanged if validation fails.

        Raises:
            InvalidRuleError: Malformed id, severity outside MUST/SHOULD/MAY, or no check.
            DuplicateRuleError: The id is already registered.
            RuleRegistryError: The registry is frozen.
        """
        if self._frozen:
            msg = f"Cannot register {rule.id!r}: registry is frozen"
            raise RuleRegistryError(msg)
        _validate(rule)
        if rule.id in self._rules:
            msg = f"Duplicate rule id: {rule.id!r}"
            raise DuplicateRuleError(msg)
        self._rules[rule.id] = rule

    def freeze(self) -> RuleRegistry:
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def all(self) -> tuple[RuleDefinition, ...]:
        """Registered rules in registration order."""
        return tuple(self._rules.values())

    def by_id(self, rule_id: str) -> RuleDefinition:
        try:
            return self._rules[rule_id]
        except KeyError:
            msg = f"Unknown rule id: {rule_id!r}"
            raise UnknownRuleError(msg) from None

    def ids(self) -> frozenset[str]:
        return frozenset(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __iter__(self) -> Iterator[RuleDefinition]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._rules)


def build_default_registry() -> RuleRegistry:
    """Build and freeze a registry holding the full catalog."""
    return RuleRegistry(CATALOG).freeze()
