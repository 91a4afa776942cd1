# SPDX-License-Identifier: MIT
"""Profile configuration for the style rule engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class ProfileConfig:
    """Configuration for a lint profile — layout limits and execution bounds."""

    name: str
    max_line_length: int = 80
    rule_timeout: float | None = None  # seconds per rule check; None = unbounded
    workers: int = 1


PROFILES: dict[str, ProfileConfig] = {
    "default": ProfileConfig(name="default"),
    "legacy": ProfileConfig(name="legacy", max_line_length=120),
    "strict": ProfileConfig(name="strict", rule_timeout=2.0),
}


def _env_timeout() -> float | None:
    raw = os.environ.get("MATSTYLE_RULE_TIMEOUT")
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        msg = f"Invalid MATSTYLE_RULE_TIMEOUT: {raw!r} (expected seconds, 0 = no timeout)"
        raise ValueError(msg) from None
    if value < 0:
        msg = f"Invalid MATSTYLE_RULE_TIMEOUT: {raw!r} (must not be negative)"
        raise ValueError(msg)
    return value


def _env_workers() -> int | None:
    raw = os.environ.get("MATSTYLE_WORKERS")
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw)
    except ValueError:
        msg = f"Invalid MATSTYLE_WORKERS: {raw!r} (expected a positive integer)"
        raise ValueError(msg) from None
    if value < 1:
        msg = f"Invalid MATSTYLE_WORKERS: {raw!r} (expected a positive integer)"
        raise ValueError(msg)
    return value


def load_profile(
    cli_profile: str | None = None,
    *,
    rule_timeout: float | None = None,
    workers: int | None = None,
) -> ProfileConfig:
    """Load profile config with CLI > env > default priority.

    Args:
        cli_profile: Profile name from CLI --profile flag (highest priority).
        rule_timeout: Per-rule timeout from CLI --timeout; 0 disables the bound.
        workers: Worker count from CLI --workers.

    Returns:
        ProfileConfig for the resolved profile, with overrides applied.

    Raises:
        ValueError: If the profile name or an override is not valid.
    """
    name = cli_profile or os.environ.get("MATSTYLE_PROFILE", "default")
    if name not in PROFILES:
        msg = f"Unknown profile: {name!r}. Valid profiles: {sorted(PROFILES.keys())}"
        raise ValueError(msg)
    profile = PROFILES[name]

    timeout = rule_timeout if rule_timeout is not None else _env_timeout()
    if timeout is not None:
        if timeout < 0:
            msg = f"Invalid rule timeout: {timeout} (must not be negative)"
            raise ValueError(msg)
        profile = replace(profile, rule_timeout=timeout or None)

    count = workers if workers is not None else _env_workers()
    if count is not None:
        if count < 1:
            msg = f"Invalid worker count: {count} (expected a positive integer)"
            raise ValueError(msg)
        profile = replace(profile, workers=count)
    return profile
