"""Conflict value objects shared by the detector, resolver and engine.

Conflicts are pydantic models so they can be embedded in cached and
exported :class:`~aumos_ruleguard.validation.results.ValidationResult`
payloads and round-trip through JSON unchanged.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field

from aumos_ruleguard.analysis.analyzer import SecurityImpact
from aumos_ruleguard.analysis.overlap import Overlap, OverlapKind
from aumos_ruleguard.rules.model import Rule, RuleCategory


class ConflictKind(str, Enum):
    """What kind of interaction between rules was detected."""

    ALLOW_OVERRIDES_DENY = "ALLOW_OVERRIDES_DENY"
    OVERLAPPING_PATTERNS = "OVERLAPPING_PATTERNS"
    CONTRADICTORY_RULES = "CONTRADICTORY_RULES"
    PRECEDENCE_AMBIGUITY = "PRECEDENCE_AMBIGUITY"
    SECURITY_VIOLATION = "SECURITY_VIOLATION"


# Pairwise conflicts reported in ValidationResult.conflicts; the remaining
# kinds are advisory and surface as warnings.
PAIR_CONFLICT_KINDS: frozenset[ConflictKind] = frozenset(
    {
        ConflictKind.ALLOW_OVERRIDES_DENY,
        ConflictKind.OVERLAPPING_PATTERNS,
        ConflictKind.CONTRADICTORY_RULES,
    }
)


class ResolutionStrategy(str, Enum):
    """How a conflict is meant to be resolved."""

    REMOVE_CONFLICTING_RULE = "REMOVE_CONFLICTING_RULE"
    MAKE_ALLOW_MORE_RESTRICTIVE = "MAKE_ALLOW_MORE_RESTRICTIVE"
    MAKE_DENY_MORE_SPECIFIC = "MAKE_DENY_MORE_SPECIFIC"
    MANUAL_REVIEW_REQUIRED = "MANUAL_REVIEW_REQUIRED"


class ConflictSeverity(str, Enum):
    """Triage severity used by detailed conflict analysis."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class ConflictingRule(BaseModel):
    """One rule taking part in a conflict."""

    category: RuleCategory
    pattern: str
    location: str

    @classmethod
    def from_rule(cls, rule: Rule) -> ConflictingRule:
        return cls(category=rule.category, pattern=rule.original, location=rule.location)


class Conflict(BaseModel):
    """A detected conflict between permission rules.

    Attributes
    ----------
    kind:
        What kind of interaction was detected.
    message:
        Human-readable description.
    conflicting_rules:
        The rules involved, in detection order.
    resolution:
        Strategy recommended for resolving the conflict.
    security_impact:
        Severity; results are sorted on it.
    overlap_kind:
        Overlap classification for pair conflicts, ``None`` otherwise.
    """

    kind: ConflictKind
    message: str
    conflicting_rules: list[ConflictingRule] = Field(default_factory=list)
    resolution: ResolutionStrategy = ResolutionStrategy.MANUAL_REVIEW_REQUIRED
    security_impact: SecurityImpact = SecurityImpact.MEDIUM
    overlap_kind: OverlapKind | None = None

    @property
    def patterns(self) -> list[str]:
        return [rule.pattern for rule in self.conflicting_rules]

    @property
    def involves_deny(self) -> bool:
        return any(rule.category == RuleCategory.DENY for rule in self.conflicting_rules)

    def dedupe_key(self) -> tuple[str, tuple[str, ...]]:
        """Key under which duplicate conflicts collapse."""
        return (self.kind.value, tuple(sorted(self.patterns)))


@dataclass
class DetectionResult:
    """Output of one :meth:`ConflictDetector.detect` call.

    Attributes
    ----------
    conflicts:
        Deduplicated conflicts, most severe first.
    overlaps:
        Every non-empty overlap computed along the way.
    detection_ms:
        Wall-clock time spent detecting.
    pairs_analyzed:
        Number of rule pairs whose overlap was actually computed.
    from_cache:
        ``True`` when the result was served from the detection cache.
    """

    conflicts: list[Conflict] = field(default_factory=list)
    overlaps: list[Overlap] = field(default_factory=list)
    detection_ms: float = 0.0
    pairs_analyzed: int = 0
    from_cache: bool = False


@dataclass(frozen=True)
class ConflictAnalysis:
    """Detailed triage of a single conflict."""

    conflict: Conflict
    severity: ConflictSeverity
    attack_vectors: tuple[str, ...]
    confidence: int
    related_conflicts: tuple[str, ...]
