#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""Test parity check — every source module over 50 LOC must have a test module.

Usage:
    python scripts/check_test_parity.py          # list violations, exit 1 if any
    python scripts/check_test_parity.py --list   # print the module -> test mapping
"""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = ROOT / "src" / "matstyle"
TEST_DIR = ROOT / "tests"

# Files that are never expected to have tests
SKIP_FILES = {"__init__.py", "__main__.py"}

MIN_LOC = 50

# Rule modules test as test_matstyle_rule_<name>; engine plumbing as test_matstyle_rules_<name>
RULE_MODULES = {"naming", "layout", "statements", "error_handling", "gui"}
TEST_OVERRIDES: dict[str, str] = {
    "rules/error_handling": "test_matstyle_rule_errors.py",
    "rules/base": "test_matstyle_rules_registry.py",
    "rules/context": "test_matstyle_rules_engine.py",
}


def _count_loc(path: Path) -> int:
    """Count non-blank, non-comment lines."""
    count = 0
    with open(path, encoding="utf-8") as f:
        for line in f:
            stripped = line.strip()
            if stripped and not stripped.startswith("#"):
                count += 1
    return count


def expected_test(src_file: Path) -> Path:
    rel = src_file.relative_to(SRC_DIR).with_suffix("").as_posix()
    if rel in TEST_OVERRIDES:
        return TEST_DIR / TEST_OVERRIDES[rel]
    if rel.startswith("rules/"):
        stem = src_file.stem
        prefix = "test_matstyle_rule_" if stem in RULE_MODULES else "test_matstyle_rules_"
        return TEST_DIR / f"{prefix}{stem}.py"
    return TEST_DIR / f"test_matstyle_{src_file.stem}.py"


def find_violations() -> list[str]:
    """Return list of source modules missing test files."""
    violations = []
    for src_file in sorted(SRC_DIR.rglob("*.py")):
        if src_file.name in SKIP_FILES:
            continue
        loc = _count_loc(src_file)
        if loc < MIN_LOC:
            continue
        test_file = expected_test(src_file)
        if not test_file.exists():
            rel = src_file.relative_to(SRC_DIR).as_posix()
            violations.append(f"{rel} ({loc} LOC) -> missing {test_file.name}")
    return violations


def main() -> None:
    if sys.argv[1:] == ["--list"]:
        for src_file in sorted(SRC_DIR.rglob("*.py")):
            if src_file.name not in SKIP_FILES:
                print(f"{src_file.relative_to(SRC_DIR).as_posix()} -> {expected_test(src_file).name}")
        return
    if sys.argv[1:]:
        print(f"Usage: {sys.argv[0]} [--list]", file=sys.stderr)
        sys.exit(2)

    violations = find_violations()
    if violations:
        print(f"Missing test files ({len(violations)}):")
        for v in violations:
            print(f"  {v}")
        sys.exit(1)
    print("All source modules have test files.")


if __name__ == "__main__":
    main()
