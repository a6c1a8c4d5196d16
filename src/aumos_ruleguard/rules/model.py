"""Permission ruleset schema and rule normalization.

A ruleset document carries an optional ``permissions`` block with three
precedence tiers::

    permissions:
      deny:  ["exec", "*.exe"]
      ask:   ["modify/*"]
      allow: ["read/*"]
    metadata:
      owner: platform-team

:func:`normalize_rules` turns a validated :class:`RulesetConfig` into an
immutable list of :class:`Rule` objects ordered deny, ask, allow.

Example
-------
>>> config = RulesetConfig.model_validate({"permissions": {"deny": ["exec"]}})
>>> [rule.category.value for rule in normalize_rules(config)]
['deny']
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from aumos_ruleguard.patterns.matcher import (
    CompiledPattern,
    PatternKind,
    classify_pattern,
    compile_pattern,
)


class RuleCategory(str, Enum):
    """Precedence tier of a permission rule."""

    DENY = "deny"
    ALLOW = "allow"
    ASK = "ask"


# Deny always wins, then ask, then allow.
_CATEGORY_ORDER: tuple[RuleCategory, ...] = (RuleCategory.DENY, RuleCategory.ASK, RuleCategory.ALLOW)
_PRIORITY_BASE: dict[RuleCategory, int] = {
    RuleCategory.DENY: -1000,
    RuleCategory.ASK: -500,
    RuleCategory.ALLOW: 0,
}


# ---------------------------------------------------------------------------
# Ruleset schema
# ---------------------------------------------------------------------------


class PermissionsBlock(BaseModel):
    """The ``permissions`` section of a ruleset document."""

    model_config = {"extra": "allow"}

    deny: list[str] = Field(default_factory=list)
    allow: list[str] = Field(default_factory=list)
    ask: list[str] = Field(default_factory=list)

    @field_validator("deny", "allow", "ask", mode="before")
    @classmethod
    def drop_null_entries(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, list):
            return [item for item in value if item is not None]
        return value

    def patterns_for(self, category: RuleCategory) -> list[str]:
        """Return the pattern list for *category*."""
        return list(getattr(self, category.value))


class RulesetConfig(BaseModel):
    """Top-level ruleset document.

    Unknown keys are allowed so configuration files written for newer
    tooling still validate.
    """

    model_config = {"extra": "allow"}

    permissions: PermissionsBlock = Field(default_factory=PermissionsBlock)
    metadata: dict[str, object] = Field(default_factory=dict)

    @field_validator("permissions", mode="before")
    @classmethod
    def default_missing_permissions(cls, value: object) -> object:
        return {} if value is None else value

    @field_validator("metadata", mode="before")
    @classmethod
    def default_missing_metadata(cls, value: object) -> object:
        return {} if value is None else value


# ---------------------------------------------------------------------------
# Normalized rule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rule:
    """A single permission rule prepared for analysis.

    Attributes
    ----------
    original:
        The pattern exactly as written in the ruleset.
    normalized:
        The pattern with surrounding whitespace removed; this is the text
        that gets compiled and compared.
    kind:
        How the pattern is interpreted.
    matcher:
        The compiled pattern.
    category:
        The precedence tier the rule belongs to.
    priority:
        Sort key; lower values take precedence.
    index:
        Position of the rule inside its category list.
    """

    original: str
    normalized: str
    kind: PatternKind
    matcher: CompiledPattern
    category: RuleCategory
    priority: int
    index: int

    @property
    def location(self) -> str:
        """Path of the rule inside the ruleset document."""
        return f"permissions.{self.category.value}[{self.index}]"

    @property
    def is_deny(self) -> bool:
        return self.category == RuleCategory.DENY

    def matches(self, text: str) -> bool:
        """Return ``True`` if *text* is matched by this rule."""
        return self.matcher.matches(text)


def build_rule(pattern: str, category: RuleCategory, index: int = 0) -> Rule:
    """Create a :class:`Rule` for *pattern* in *category* at position *index*."""
    normalized = pattern.strip()
    kind = classify_pattern(normalized)
    return Rule(
        original=pattern,
        normalized=normalized,
        kind=kind,
        matcher=compile_pattern(normalized, kind),
        category=category,
        priority=_PRIORITY_BASE[category] + index,
        index=index,
    )


def normalize_rules(config: RulesetConfig) -> list[Rule]:
    """Return every rule of *config*, deny first, then ask, then allow.

    Rules that fail to compile are still included (as escaped literals)
    so that downstream conflict detection sees the complete ruleset.
    """
    rules: list[Rule] = []
    for category in _CATEGORY_ORDER:
        for index, pattern in enumerate(config.permissions.patterns_for(category)):
            rules.append(build_rule(pattern, category, index))
    return rules
