"""ConflictResolver: turns detected conflicts into resolution suggestions.

Every conflict kind maps to a preferred strategy and an ordered list of
fallbacks.  The resolver tries them in turn and returns the first
suggestion produced, or ``None`` when every strategy fails.

The security level modulates the choice:

- ``strict`` removes the offending allow/ask rule outright and refuses
  deny rewrites that lower the pattern's security score.
- ``moderate`` and ``permissive`` prefer narrowing the allow/ask rule.
- ``permissive`` additionally caps the optimized list at ten suggestions.

Deny rules are never changed automatically.  Any suggestion that would
remove or rewrite one is emitted as a warning without an ``auto_fix``, and
:meth:`ConflictResolver.apply_resolutions` refuses such changes outright.

Example
-------
>>> from aumos_ruleguard.conflicts import ConflictDetector
>>> from aumos_ruleguard.rules import RulesetConfig, normalize_rules
>>> config = RulesetConfig.model_validate(
...     {"permissions": {"deny": ["exec"], "allow": ["exec"]}}
... )
>>> rules = normalize_rules(config)
>>> conflict = ConflictDetector().detect(rules).conflicts[0]
>>> ConflictResolver().resolve_conflict(conflict, rules).message
'Remove allow rule "exec" to resolve conflict'
"""
from __future__ import annotations

import copy
import json
import logging
import re
import threading
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Literal, Mapping, Sequence

from pydantic import BaseModel, Field

from aumos_ruleguard.analysis.analyzer import SecurityImpact
from aumos_ruleguard.analysis.overlap import CorpusOverlapStrategy, OverlapKind, OverlapStrategy
from aumos_ruleguard.conflicts.detector import ConflictDetector
from aumos_ruleguard.conflicts.model import (
    PAIR_CONFLICT_KINDS,
    Conflict,
    ConflictingRule,
    ConflictKind,
    ResolutionStrategy,
)
from aumos_ruleguard.errors import ResolutionError
from aumos_ruleguard.patterns.scoring import removal_specificity, security_score
from aumos_ruleguard.resolution.changes import (
    AddChange,
    AutoFix,
    Change,
    ModifyChange,
    RemoveChange,
    ReorderChange,
    ResolutionSuggestion,
    SuggestionKind,
)
from aumos_ruleguard.rules.model import Rule, RuleCategory, RulesetConfig, build_rule, normalize_rules

logger = logging.getLogger(__name__)

_PERMISSIVE_LIMIT: int = 10


class SecurityLevel(str, Enum):
    """How aggressively the resolver protects deny rules."""

    STRICT = "strict"
    MODERATE = "moderate"
    PERMISSIVE = "permissive"


class ChangeRisk(str, Enum):
    """Risk label recorded for every applied change."""

    SAFE = "safe"
    MODERATE = "moderate"
    RISKY = "risky"


# ---------------------------------------------------------------------------
# Strategy table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResolutionPriority:
    """Preferred and fallback strategies for one conflict kind."""

    kind: ConflictKind
    priority: int
    preferred: ResolutionStrategy
    fallbacks: tuple[ResolutionStrategy, ...]

    @property
    def strategies(self) -> tuple[ResolutionStrategy, ...]:
        return (self.preferred, *self.fallbacks)


def build_priorities(level: SecurityLevel) -> dict[ConflictKind, ResolutionPriority]:
    """Return the strategy table for *level*, keyed by conflict kind."""
    zero_bypass_preferred = (
        ResolutionStrategy.REMOVE_CONFLICTING_RULE
        if level == SecurityLevel.STRICT
        else ResolutionStrategy.MAKE_ALLOW_MORE_RESTRICTIVE
    )
    table = [
        ResolutionPriority(
            ConflictKind.ALLOW_OVERRIDES_DENY,
            1,
            zero_bypass_preferred,
            (ResolutionStrategy.MAKE_DENY_MORE_SPECIFIC, ResolutionStrategy.MANUAL_REVIEW_REQUIRED),
        ),
        ResolutionPriority(
            ConflictKind.PRECEDENCE_AMBIGUITY,
            2,
            ResolutionStrategy.MAKE_DENY_MORE_SPECIFIC,
            (ResolutionStrategy.REMOVE_CONFLICTING_RULE, ResolutionStrategy.MANUAL_REVIEW_REQUIRED),
        ),
        ResolutionPriority(
            ConflictKind.CONTRADICTORY_RULES,
            3,
            ResolutionStrategy.MANUAL_REVIEW_REQUIRED,
            (ResolutionStrategy.REMOVE_CONFLICTING_RULE,),
        ),
        ResolutionPriority(
            ConflictKind.OVERLAPPING_PATTERNS,
            4,
            ResolutionStrategy.REMOVE_CONFLICTING_RULE,
            (ResolutionStrategy.MAKE_ALLOW_MORE_RESTRICTIVE,),
        ),
        ResolutionPriority(
            ConflictKind.SECURITY_VIOLATION,
            5,
            ResolutionStrategy.MANUAL_REVIEW_REQUIRED,
            (),
        ),
    ]
    return {entry.kind: entry for entry in sorted(table, key=lambda entry: entry.priority)}


# ---------------------------------------------------------------------------
# Restriction templates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RestrictionTemplate:
    """A named rewrite that narrows an allow/ask pattern."""

    name: str
    applies: Callable[[str], bool]
    transform: Callable[[str], str]


RESTRICTION_TEMPLATES: tuple[RestrictionTemplate, ...] = (
    RestrictionTemplate(
        name="wildcard-to-specific",
        applies=lambda pattern: re.fullmatch(r"\*+", pattern) is not None,
        transform=lambda pattern: "*.safe",
    ),
    RestrictionTemplate(
        name="add-path-prefix",
        applies=lambda pattern: "/" not in pattern,
        transform=lambda pattern: f"safe/{pattern}",
    ),
    RestrictionTemplate(
        name="add-extension-filter",
        applies=lambda pattern: pattern.endswith("*"),
        transform=lambda pattern: pattern[:-1] + "*.txt",
    ),
)


def restrict_pattern(pattern: str) -> str:
    """Generic narrowing used when no template verifies."""
    if pattern == "*":
        return "*.txt"
    if pattern == "**":
        return "safe/**"
    if pattern == ".*":
        return ".config"
    if "/" not in pattern:
        return f"allowed/{pattern}"
    if pattern.endswith("*") and not pattern.endswith("**"):
        return pattern[:-1] + ".allowed"
    if "*" in pattern:
        return pattern.replace("*", "allowed")
    return f"{pattern}.allowed"


def specify_pattern(pattern: str) -> str:
    """Narrow a deny pattern to reduce false positives."""
    if pattern == "*":
        return "dangerous.*"
    if pattern == "**":
        return "**/dangerous/**"
    if "/" not in pattern:
        return f"dangerous/{pattern}"
    if "*" in pattern:
        return pattern.replace("*", "dangerous")
    if "." not in pattern:
        return f"{pattern}.dangerous"
    return pattern


def assess_risk(change: Change) -> ChangeRisk:
    """Risk label for *change*."""
    match change:
        case RemoveChange(category=RuleCategory.DENY):
            return ChangeRisk.RISKY
        case AddChange(category=RuleCategory.ALLOW):
            return ChangeRisk.MODERATE
        case ModifyChange():
            return ChangeRisk.MODERATE
        case _:
            return ChangeRisk.SAFE


# ---------------------------------------------------------------------------
# Outcome models
# ---------------------------------------------------------------------------


class AppliedChange(BaseModel):
    """Audit record of one change applied to a configuration."""

    action: Literal["add", "remove", "modify", "reorder"]
    category: RuleCategory
    original_value: str | None = None
    new_value: str | None = None
    position: int | None = None
    reason: str = ""
    risk: ChangeRisk = ChangeRisk.SAFE


class ResolutionOutcome(BaseModel):
    """Result of :meth:`ConflictResolver.apply_resolutions`.

    Attributes
    ----------
    success:
        ``True`` when no pairwise conflicts remain.
    resolved_config:
        The configuration with every accepted change applied.
    changes:
        Audit trail of applied changes.
    messages:
        One line per suggestion: applied, refused or failed.
    remaining_conflicts:
        Pairwise conflicts detected in the resolved configuration.
    """

    success: bool
    resolved_config: dict[str, object] = Field(default_factory=dict)
    changes: list[AppliedChange] = Field(default_factory=list)
    messages: list[str] = Field(default_factory=list)
    remaining_conflicts: list[Conflict] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# ConflictResolver
# ---------------------------------------------------------------------------


class ConflictResolver:
    """Security-first resolver for permission rule conflicts.

    Parameters
    ----------
    security_level:
        ``"strict"`` (default), ``"moderate"`` or ``"permissive"``.
    strategy:
        Overlap strategy used to verify candidate rewrites.
    detector:
        Detector used by :meth:`apply_resolutions` to re-check the
        resolved configuration.
    cache_size:
        Maximum number of memoized suggestions; least recently used ones
        are evicted first.
    """

    def __init__(
        self,
        security_level: SecurityLevel | str = SecurityLevel.STRICT,
        strategy: OverlapStrategy | None = None,
        detector: ConflictDetector | None = None,
        *,
        cache_size: int = 512,
    ) -> None:
        self._level = SecurityLevel(security_level)
        self._strategy = strategy if strategy is not None else CorpusOverlapStrategy()
        self._detector = detector
        self._priorities = build_priorities(self._level)
        self._cache_size = cache_size
        self._cache: OrderedDict[str, ResolutionSuggestion | None] = OrderedDict()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Security level
    # ------------------------------------------------------------------

    @property
    def security_level(self) -> SecurityLevel:
        return self._level

    @security_level.setter
    def security_level(self, level: SecurityLevel | str) -> None:
        self.set_security_level(level)

    def set_security_level(self, level: SecurityLevel | str) -> None:
        """Switch level, rebuild the strategy table and drop cached suggestions."""
        self._level = SecurityLevel(level)
        self._priorities = build_priorities(self._level)
        self.clear_cache()

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def cache_stats(self) -> dict[str, int]:
        with self._lock:
            return {"size": len(self._cache), "max_size": self._cache_size}

    def priority_for(self, kind: ConflictKind) -> ResolutionPriority:
        return self._priorities[kind]

    # ------------------------------------------------------------------
    # Resolving
    # ------------------------------------------------------------------

    def resolve_conflict(
        self,
        conflict: Conflict,
        rules: Sequence[Rule] = (),
    ) -> ResolutionSuggestion | None:
        """Return the first suggestion produced by the strategies for *conflict*.

        Parameters
        ----------
        conflict:
            The conflict to resolve.
        rules:
            Normalized rules of the configuration, used to look up the
            compiled form of conflicting patterns.

        Returns
        -------
        ResolutionSuggestion | None
            ``None`` when every strategy in the table failed.
        """
        cache_key = self._cache_key(conflict)
        with self._lock:
            if cache_key in self._cache:
                self._cache.move_to_end(cache_key)
                cached = self._cache[cache_key]
                return cached.model_copy(deep=True) if cached is not None else None

        priority = self._priorities.get(conflict.kind)
        suggestion: ResolutionSuggestion | None = None
        if priority is not None:
            for strategy in priority.strategies:
                suggestion = self._apply_strategy(conflict, strategy, rules)
                if suggestion is not None:
                    break

        if suggestion is None:
            logger.debug("No resolution found for %s conflict", conflict.kind.value)
        with self._lock:
            self._cache[cache_key] = suggestion
            self._cache.move_to_end(cache_key)
            while len(self._cache) > self._cache_size:
                self._cache.popitem(last=False)
        return suggestion.model_copy(deep=True) if suggestion is not None else None

    def resolve_all(
        self,
        conflicts: Sequence[Conflict],
        rules: Sequence[Rule] = (),
    ) -> list[ResolutionSuggestion]:
        """Resolve every conflict and return the optimized suggestion list."""
        suggestions = [
            suggestion
            for conflict in conflicts
            if (suggestion := self.resolve_conflict(conflict, rules)) is not None
        ]
        return self.optimize_resolutions(suggestions)

    def _apply_strategy(
        self,
        conflict: Conflict,
        strategy: ResolutionStrategy,
        rules: Sequence[Rule],
    ) -> ResolutionSuggestion | None:
        match strategy:
            case ResolutionStrategy.REMOVE_CONFLICTING_RULE:
                return self._removal(conflict)
            case ResolutionStrategy.MAKE_ALLOW_MORE_RESTRICTIVE:
                return self._restriction(conflict, rules)
            case ResolutionStrategy.MAKE_DENY_MORE_SPECIFIC:
                return self._deny_specific(conflict)
            case ResolutionStrategy.MANUAL_REVIEW_REQUIRED:
                return self._manual_review(conflict)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _removal(self, conflict: Conflict) -> ResolutionSuggestion | None:
        target = self.select_rule_to_remove(conflict)
        if target is None:
            return None
        critical = _is_critical(conflict)
        if target.category == RuleCategory.DENY:
            return ResolutionSuggestion(
                kind=SuggestionKind.WARNING,
                message=(
                    f'Removing deny rule "{target.pattern}" would weaken the security policy; '
                    "review the conflicting rules manually"
                ),
                category=target.category,
                pattern=target.pattern,
                critical=critical,
            )
        return ResolutionSuggestion(
            kind=SuggestionKind.FIX,
            message=f'Remove {target.category.value} rule "{target.pattern}" to resolve conflict',
            auto_fix=AutoFix(
                description=f"Removes the conflicting {target.category.value} rule",
                change=RemoveChange(
                    category=target.category,
                    original_pattern=target.pattern,
                    reason=conflict.message,
                ),
            ),
            critical=critical,
        )

    def select_rule_to_remove(self, conflict: Conflict) -> ConflictingRule | None:
        """Pick the side of *conflict* to drop.

        Strict mode never picks a deny rule while another candidate exists.
        Otherwise the less specific of the first two rules is picked.
        """
        candidates = conflict.conflicting_rules
        if not candidates:
            return None
        if self._level == SecurityLevel.STRICT:
            for rule in candidates:
                if rule.category != RuleCategory.DENY:
                    return rule
        if len(candidates) < 2:
            return candidates[0]
        first, second = candidates[0], candidates[1]
        if removal_specificity(first.pattern) > removal_specificity(second.pattern):
            return second
        return first

    def _restriction(self, conflict: Conflict, rules: Sequence[Rule]) -> ResolutionSuggestion | None:
        target = next(
            (rule for rule in conflict.conflicting_rules if rule.category != RuleCategory.DENY),
            None,
        )
        if target is None:
            return None
        opposing = next(
            (rule for rule in conflict.conflicting_rules if rule.category == RuleCategory.DENY),
            None,
        ) or next((rule for rule in conflict.conflicting_rules if rule is not target), None)
        if opposing is None:
            return None

        candidates = [
            template.transform(target.pattern)
            for template in RESTRICTION_TEMPLATES
            if template.applies(target.pattern)
        ]
        candidates.append(restrict_pattern(target.pattern))

        opposing_rule = _lookup_rule(rules, opposing)
        for candidate in dict.fromkeys(candidates):
            if candidate == target.pattern:
                continue
            if not self.verify_resolution(candidate, target.category, opposing_rule):
                logger.debug("Rejected unverified rewrite %r for %r", candidate, target.pattern)
                continue
            return ResolutionSuggestion(
                kind=SuggestionKind.FIX,
                message=(
                    f'Make {target.category.value} rule more restrictive: '
                    f'"{target.pattern}" -> "{candidate}"'
                ),
                auto_fix=AutoFix(
                    description=f"Restricts the {target.category.value} rule to prevent security bypass",
                    change=ModifyChange(
                        category=target.category,
                        original_pattern=target.pattern,
                        new_pattern=candidate,
                        reason="Prevents override of deny rules",
                    ),
                ),
                critical=_is_critical(conflict),
            )
        return None

    def verify_resolution(self, new_pattern: str, category: RuleCategory, opposing: Rule) -> bool:
        """Return ``True`` if *new_pattern* no longer overlaps *opposing*."""
        candidate = build_rule(new_pattern, category)
        return self._strategy.analyze(candidate, opposing).kind == OverlapKind.NONE

    def _deny_specific(self, conflict: Conflict) -> ResolutionSuggestion | None:
        deny = next(
            (rule for rule in conflict.conflicting_rules if rule.category == RuleCategory.DENY),
            None,
        )
        if deny is None:
            return None
        new_pattern = specify_pattern(deny.pattern)
        if new_pattern == deny.pattern:
            return None
        if self._level == SecurityLevel.STRICT and security_score(new_pattern) < security_score(deny.pattern):
            logger.debug("Strict mode rejected weaker deny rewrite %r -> %r", deny.pattern, new_pattern)
            return None
        # Deny rules are never rewritten automatically.
        return ResolutionSuggestion(
            kind=SuggestionKind.WARNING,
            message=(
                f'Consider making deny rule more specific: "{deny.pattern}" -> "{new_pattern}". '
                "Deny rules are never changed automatically."
            ),
            category=RuleCategory.DENY,
            pattern=deny.pattern,
            critical=_is_critical(conflict),
        )

    def _manual_review(self, conflict: Conflict) -> ResolutionSuggestion:
        return ResolutionSuggestion(
            kind=SuggestionKind.WARNING,
            message=(
                f"Manual review required for {conflict.kind.value}: {conflict.message}. "
                f"{manual_guidance(conflict)}"
            ),
            critical=_is_critical(conflict),
        )

    # ------------------------------------------------------------------
    # Optimization
    # ------------------------------------------------------------------

    def optimize_resolutions(self, suggestions: Sequence[ResolutionSuggestion]) -> list[ResolutionSuggestion]:
        """Deduplicate, sort and (in permissive mode) cap *suggestions*.

        Suggestions targeting the same ``category:pattern`` collapse to the
        first one.  Fixes sort before warnings, warnings before
        optimizations.  Permissive mode keeps at most ten, always including
        the critical ones.
        """
        seen: set[str] = set()
        unique: list[ResolutionSuggestion] = []
        for suggestion in suggestions:
            key = suggestion.target_key()
            if key is not None:
                if key in seen:
                    continue
                seen.add(key)
            unique.append(suggestion)

        ordered = sorted(unique, key=lambda suggestion: suggestion.sort_rank)
        if self._level != SecurityLevel.PERMISSIVE or len(ordered) <= _PERMISSIVE_LIMIT:
            return ordered

        critical = [suggestion for suggestion in ordered if suggestion.critical]
        others = [suggestion for suggestion in ordered if not suggestion.critical]
        return critical + others[: max(0, _PERMISSIVE_LIMIT - len(critical))]

    # ------------------------------------------------------------------
    # Applying
    # ------------------------------------------------------------------

    def apply_resolutions(
        self,
        config: RulesetConfig | Mapping[str, object],
        suggestions: Sequence[ResolutionSuggestion],
    ) -> ResolutionOutcome:
        """Apply every auto-fix in *suggestions* to a copy of *config*.

        Changes that would remove or modify a deny rule are refused.  The
        resolved configuration is re-checked and any remaining pairwise
        conflicts are reported.
        """
        if isinstance(config, RulesetConfig):
            validated = config.model_copy(deep=True)
        else:
            validated = RulesetConfig.model_validate(copy.deepcopy(dict(config)))
        permissions: dict[RuleCategory, list[str]] = {
            category: validated.permissions.patterns_for(category) for category in RuleCategory
        }

        changes: list[AppliedChange] = []
        messages: list[str] = []
        for suggestion in suggestions:
            if suggestion.auto_fix is None:
                continue
            change = suggestion.auto_fix.change
            if _mutates_deny(change):
                logger.warning("Refused automatic change to deny rule: %s", suggestion.message)
                messages.append(f"Refused (deny rules are never changed automatically): {suggestion.message}")
                continue
            if apply_change(permissions, change):
                changes.append(_change_record(change))
                messages.append(f"Applied: {suggestion.message}")
            else:
                messages.append(f"Failed to apply: {suggestion.message}")

        resolved = validated.model_dump(mode="json")
        resolved["permissions"] = {
            **resolved.get("permissions", {}),
            **{category.value: patterns for category, patterns in permissions.items()},
        }
        remaining = self._remaining_conflicts(RulesetConfig.model_validate(resolved))
        logger.info(
            "Applied %d of %d suggestions; %d conflicts remain",
            len(changes),
            len(suggestions),
            len(remaining),
        )
        return ResolutionOutcome(
            success=not remaining,
            resolved_config=resolved,
            changes=changes,
            messages=messages,
            remaining_conflicts=remaining,
        )

    def _remaining_conflicts(self, config: RulesetConfig) -> list[Conflict]:
        detector = self._detector if self._detector is not None else ConflictDetector(self._strategy)
        result = detector.detect(normalize_rules(config), skip_cache=True)
        return [conflict for conflict in result.conflicts if conflict.kind in PAIR_CONFLICT_KINDS]

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def generate_report(
        self,
        outcome: ResolutionOutcome,
        fmt: Literal["markdown", "json"] = "markdown",
    ) -> str:
        """Render *outcome* as markdown (default) or JSON."""
        if fmt == "json":
            return json.dumps(outcome.model_dump(mode="json"), indent=2)

        status = "Success" if outcome.success else "Partial Success"
        lines = [
            "# Conflict Resolution Report",
            "",
            "## Summary",
            "",
            f"- **Status:** {status}",
            f"- **Security Level:** {self._level.value}",
            f"- **Changes Applied:** {len(outcome.changes)}",
            f"- **Remaining Conflicts:** {len(outcome.remaining_conflicts)}",
            "",
        ]
        if outcome.changes:
            lines.extend(["## Changes Applied", ""])
            for change in outcome.changes:
                lines.append(f"### {change.action.upper()} - {change.category.value}")
                lines.append(f"- **Risk:** {change.risk.value}")
                if change.original_value:
                    lines.append(f"- **Original:** `{change.original_value}`")
                if change.new_value:
                    lines.append(f"- **New:** `{change.new_value}`")
                lines.extend([f"- **Reason:** {change.reason}", ""])
        if outcome.messages:
            lines.extend(["## Messages", ""])
            lines.extend(f"- {message}" for message in outcome.messages)
            lines.append("")
        if outcome.remaining_conflicts:
            lines.extend(["## Remaining Conflicts", "", "These conflicts require manual review:", ""])
            lines.extend(
                f"- **{conflict.kind.value}:** {conflict.message}" for conflict in outcome.remaining_conflicts
            )
            lines.append("")
        return "\n".join(lines)

    def _cache_key(self, conflict: Conflict) -> str:
        patterns = "|".join(sorted(f"{rule.category.value}:{rule.pattern}" for rule in conflict.conflicting_rules))
        return f"{conflict.kind.value}:{patterns}:{self._level.value}"

    def __repr__(self) -> str:
        return f"ConflictResolver(security_level={self._level.value!r})"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def manual_guidance(conflict: Conflict) -> str:
    """Guidance text for a manual review, based on who takes part."""
    categories = {rule.category for rule in conflict.conflicting_rules}
    if conflict.involves_deny and len(categories) > 1:
        return (
            "This involves security-critical deny rules mixed with permissive rules. "
            "Exercise extreme caution."
        )
    if len(conflict.conflicting_rules) > 2:
        return "Multiple rules are involved. Consider breaking down into smaller, more specific patterns."
    if conflict.security_impact == SecurityImpact.CRITICAL:
        return "This is a critical security issue that requires immediate attention."
    return "Review the business logic to determine the correct precedence."


def apply_change(permissions: dict[RuleCategory, list[str]], change: Change) -> bool:
    """Apply *change* to *permissions* in place; ``False`` if it had no target."""
    patterns = permissions.setdefault(change.category, [])
    match change:
        case AddChange(new_pattern=new_pattern, position=position):
            if new_pattern in patterns:
                return False
            if position is None:
                patterns.append(new_pattern)
            else:
                patterns.insert(position, new_pattern)
            return True
        case RemoveChange(original_pattern=original):
            if original not in patterns:
                return False
            patterns.remove(original)
            return True
        case ModifyChange(original_pattern=original, new_pattern=new_pattern):
            if original not in patterns:
                return False
            patterns[patterns.index(original)] = new_pattern
            return True
        case ReorderChange(original_pattern=original, position=position):
            if original not in patterns:
                return False
            patterns.remove(original)
            patterns.insert(position, original)
            return True
    raise ResolutionError(f"Unsupported change type: {type(change).__name__}")


def _mutates_deny(change: Change) -> bool:
    return change.category == RuleCategory.DENY and isinstance(change, (RemoveChange, ModifyChange))


def _change_record(change: Change) -> AppliedChange:
    match change:
        case AddChange():
            return AppliedChange(
                action="add",
                category=change.category,
                new_value=change.new_pattern,
                position=change.position,
                reason=change.reason,
                risk=assess_risk(change),
            )
        case RemoveChange():
            return AppliedChange(
                action="remove",
                category=change.category,
                original_value=change.original_pattern,
                reason=change.reason,
                risk=assess_risk(change),
            )
        case ModifyChange():
            return AppliedChange(
                action="modify",
                category=change.category,
                original_value=change.original_pattern,
                new_value=change.new_pattern,
                reason=change.reason,
                risk=assess_risk(change),
            )
        case ReorderChange():
            return AppliedChange(
                action="reorder",
                category=change.category,
                original_value=change.original_pattern,
                position=change.position,
                reason=change.reason,
                risk=assess_risk(change),
            )
    raise ResolutionError(f"Unsupported change type: {type(change).__name__}")


def _lookup_rule(rules: Sequence[Rule], conflicting: ConflictingRule) -> Rule:
    for rule in rules:
        if rule.category == conflicting.category and rule.original == conflicting.pattern:
            return rule
    return build_rule(conflicting.pattern, conflicting.category)


def _is_critical(conflict: Conflict) -> bool:
    return (
        conflict.security_impact == SecurityImpact.CRITICAL
        or conflict.kind == ConflictKind.ALLOW_OVERRIDES_DENY
    )
