"""Security posture analysis of a normalized ruleset.

Produces a list of :class:`SecurityIssue` objects, the bypass vectors
behind weak deny rules, a handful of recommendations and a 0-100 score::

    score = max(0, 100 - 20 * critical - 10 * high - 5 * medium)

Issue types:

- ``zero-bypass-violation``: one per allow/ask-overrides-deny conflict,
  always critical.
- ``weak-pattern``: deny rules that are short, dot-only, start with ``..``
  or carry a wildcard without a path separator (medium), plus any deny or
  allow rule that is exactly ``*``, ``**`` or ``.*`` (critical).
- ``overly-permissive``: allow rules such as ``**/*`` or very short
  leading-wildcard patterns (medium).
- ``missing-deny``: no deny rules at all, only when required (medium).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from aumos_ruleguard.analysis.analyzer import SecurityImpact
from aumos_ruleguard.conflicts.model import Conflict, ConflictKind
from aumos_ruleguard.rules.model import Rule, RuleCategory

_TOO_BROAD: frozenset[str] = frozenset({"*", "**", ".*"})
_OVERLY_PERMISSIVE: frozenset[str] = frozenset({"*", "**", ".*", "**/*"})


class SecurityIssueType(str, Enum):
    ZERO_BYPASS_VIOLATION = "zero-bypass-violation"
    WEAK_PATTERN = "weak-pattern"
    OVERLY_PERMISSIVE = "overly-permissive"
    MISSING_DENY = "missing-deny"


class BypassVectorType(str, Enum):
    PATTERN_ESCAPE = "pattern-escape"
    PRECEDENCE_EXPLOIT = "precedence-exploit"
    TIMING_ATTACK = "timing-attack"


@dataclass(frozen=True)
class SecurityIssue:
    """One finding of the security analysis.

    Attributes
    ----------
    type:
        Issue type.
    severity:
        Critical and high issues become validation errors; the rest become
        warnings.
    description:
        Human-readable description.
    affected_rules:
        Patterns involved.
    suggested_fix:
        Remedy, also surfaced as a suggestion.
    too_broad:
        ``True`` for match-everything patterns.
    """

    type: SecurityIssueType
    severity: SecurityImpact
    description: str
    affected_rules: tuple[str, ...] = field(default_factory=tuple)
    suggested_fix: str = ""
    too_broad: bool = False


@dataclass(frozen=True)
class BypassVector:
    type: BypassVectorType
    description: str
    example: str
    mitigation: str


@dataclass
class SecurityAnalysis:
    """Result of :func:`analyze_security`."""

    security_score: int
    issues: list[SecurityIssue] = field(default_factory=list)
    bypass_vectors: list[BypassVector] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def issues_of(self, issue_type: SecurityIssueType) -> list[SecurityIssue]:
        return [issue for issue in self.issues if issue.type == issue_type]


# ---------------------------------------------------------------------------
# Pattern predicates
# ---------------------------------------------------------------------------


def is_weak_pattern(pattern: str) -> bool:
    """Return ``True`` if a deny *pattern* is easy to sidestep."""
    return (
        len(pattern) < 3
        or pattern in (".", "..")
        or pattern.startswith("..")
        or ("*" in pattern and "/" not in pattern)
    )


def is_overly_permissive(pattern: str) -> bool:
    """Return ``True`` if an allow *pattern* grants far more than it names."""
    return pattern in _OVERLY_PERMISSIVE or (pattern.startswith("*") and len(pattern) < 5)


def bypass_example(pattern: str) -> str:
    """Example input showing how *pattern* could be sidestepped."""
    if pattern.startswith(".."):
        return "URL encoding: %2e%2e%2f or Unicode: \u2024\u2024/"
    if "*" in pattern and "/" not in pattern:
        return f"Path traversal: ../{pattern}/../../sensitive"
    if len(pattern) < 3:
        return "Pattern too short, easily matched accidentally"
    return "Various encoding or path manipulation techniques"


def score_issues(issues: Sequence[SecurityIssue]) -> int:
    critical = sum(1 for issue in issues if issue.severity == SecurityImpact.CRITICAL)
    high = sum(1 for issue in issues if issue.severity == SecurityImpact.HIGH)
    medium = sum(1 for issue in issues if issue.severity == SecurityImpact.MEDIUM)
    return max(0, 100 - 20 * critical - 10 * high - 5 * medium)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------


def analyze_security(
    rules: Sequence[Rule],
    conflicts: Sequence[Conflict] = (),
    *,
    detect_weak_patterns: bool = True,
    require_deny_rules: bool = False,
) -> SecurityAnalysis:
    """Analyze *rules* (and the conflicts already detected on them).

    Parameters
    ----------
    rules:
        Normalized rules.
    conflicts:
        Conflicts from detection; zero-bypass ones become critical issues.
    detect_weak_patterns:
        Report weak and too-broad patterns.
    require_deny_rules:
        Report a missing-deny issue when the ruleset has no deny rules.
    """
    issues: list[SecurityIssue] = []
    vectors: list[BypassVector] = []

    for conflict in conflicts:
        if conflict.kind != ConflictKind.ALLOW_OVERRIDES_DENY:
            continue
        issues.append(
            SecurityIssue(
                type=SecurityIssueType.ZERO_BYPASS_VIOLATION,
                severity=SecurityImpact.CRITICAL,
                description=conflict.message,
                affected_rules=tuple(conflict.patterns),
                suggested_fix="Remove or modify the allow/ask rule to not overlap with deny rules",
            )
        )
        vectors.append(
            BypassVector(
                type=BypassVectorType.PRECEDENCE_EXPLOIT,
                description="Lower-precedence rule matches inputs the deny rule blocks",
                example=", ".join(conflict.patterns),
                mitigation="Keep allow and ask rules disjoint from every deny rule",
            )
        )

    if detect_weak_patterns:
        for rule in rules:
            pattern = rule.normalized
            if pattern in _TOO_BROAD and rule.category in (RuleCategory.DENY, RuleCategory.ALLOW):
                issues.append(
                    SecurityIssue(
                        type=SecurityIssueType.WEAK_PATTERN,
                        severity=SecurityImpact.CRITICAL,
                        description=(
                            f'Too-broad {rule.category.value} pattern "{pattern}" matches everything'
                        ),
                        affected_rules=(rule.original,),
                        suggested_fix="Replace match-everything patterns with specific ones",
                        too_broad=True,
                    )
                )
            elif rule.is_deny and is_weak_pattern(pattern):
                issues.append(
                    SecurityIssue(
                        type=SecurityIssueType.WEAK_PATTERN,
                        severity=SecurityImpact.MEDIUM,
                        description=f'Weak deny pattern detected: "{pattern}"',
                        affected_rules=(rule.original,),
                        suggested_fix="Use more specific patterns to prevent bypasses",
                    )
                )
            else:
                continue
            if rule.is_deny:
                vectors.append(
                    BypassVector(
                        type=BypassVectorType.PATTERN_ESCAPE,
                        description=f'Pattern "{pattern}" can be bypassed with encoding or path manipulation',
                        example=bypass_example(pattern),
                        mitigation="Use absolute paths and validate all inputs",
                    )
                )

    for rule in rules:
        if rule.category == RuleCategory.ALLOW and is_overly_permissive(rule.normalized):
            issues.append(
                SecurityIssue(
                    type=SecurityIssueType.OVERLY_PERMISSIVE,
                    severity=SecurityImpact.MEDIUM,
                    description=f'Overly permissive allow rule: "{rule.original}"',
                    affected_rules=(rule.original,),
                    suggested_fix="Restrict the pattern to specific necessary permissions",
                )
            )

    if require_deny_rules and not any(rule.is_deny for rule in rules):
        issues.append(
            SecurityIssue(
                type=SecurityIssueType.MISSING_DENY,
                severity=SecurityImpact.MEDIUM,
                description="No deny rules defined - security policy is too permissive",
                suggested_fix="Add deny rules for dangerous operations",
            )
        )

    if issues:
        recommendations = [
            "Address critical security issues immediately",
            "Review and test all rule interactions",
            "Consider using more specific patterns",
        ]
    else:
        recommendations = ["Configuration has strong security posture"]

    return SecurityAnalysis(
        security_score=score_issues(issues),
        issues=issues,
        bypass_vectors=vectors,
        recommendations=recommendations,
    )
