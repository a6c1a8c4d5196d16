"""Ruleset schema and normalized rule model."""
from __future__ import annotations

from aumos_ruleguard.rules.model import (
    PermissionsBlock,
    Rule,
    RuleCategory,
    RulesetConfig,
    build_rule,
    normalize_rules,
)

__all__ = [
    "PermissionsBlock",
    "Rule",
    "RuleCategory",
    "RulesetConfig",
    "build_rule",
    "normalize_rules",
]
