"""Pattern analyzer: scores, weaknesses, signatures and overlap helpers.

Builds on the pattern engine to describe a single rule (how complex and
how specific it is, which intrinsic weaknesses it has) and on an
:class:`~aumos_ruleguard.analysis.overlap.OverlapStrategy` to relate two
rules.

Example
-------
>>> from aumos_ruleguard.rules.model import RuleCategory, build_rule
>>> analyzer = PatternAnalyzer()
>>> rule = build_rule("*", RuleCategory.ALLOW)
>>> [w.type.value for w in analyzer.detect_weaknesses(rule)]
['too-broad', 'encoding-vulnerable', 'too-vague']
"""
from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import quote

from aumos_ruleguard.analysis.overlap import (
    CorpusOverlapStrategy,
    Overlap,
    OverlapKind,
    OverlapStrategy,
)
from aumos_ruleguard.patterns.matcher import PatternKind
from aumos_ruleguard.patterns.scoring import complexity_score, specificity_score
from aumos_ruleguard.rules.model import Rule, RuleCategory

logger = logging.getLogger(__name__)

_ALNUM = re.compile(r"[a-zA-Z0-9]")
_BROAD_PATTERNS: frozenset[str] = frozenset({"*", "**", ".*"})
_CONTRADICTION_CONFIDENCE: float = 70.0


class SecurityImpact(str, Enum):
    """Severity of a conflict or weakness, most severe first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank: 0 for critical up to 3 for low."""
        return _IMPACT_RANK[self]


_IMPACT_RANK: dict[SecurityImpact, int] = {
    SecurityImpact.CRITICAL: 0,
    SecurityImpact.HIGH: 1,
    SecurityImpact.MEDIUM: 2,
    SecurityImpact.LOW: 3,
}


class WeaknessType(str, Enum):
    """Intrinsic weaknesses a single pattern can have."""

    TOO_BROAD = "too-broad"
    TRAVERSAL_RISK = "traversal-risk"
    ENCODING_VULNERABLE = "encoding-vulnerable"
    TOO_VAGUE = "too-vague"
    ESCAPE_PRONE = "escape-prone"


class PerformanceImpact(str, Enum):
    """Matching cost band derived from the complexity score."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NEGLIGIBLE = "negligible"


@dataclass(frozen=True)
class PatternWeakness:
    """A weakness found in one pattern.

    Attributes
    ----------
    type:
        Which weakness was found.
    severity:
        How serious it is.
    description:
        Human-readable explanation.
    exploit_examples:
        Inputs illustrating how the weakness could be abused.
    resolution:
        Suggested remedy.
    """

    type: WeaknessType
    severity: SecurityImpact
    description: str
    exploit_examples: tuple[str, ...] = field(default_factory=tuple)
    resolution: str = ""


@dataclass(frozen=True)
class PatternAnalysis:
    """Full description of a single rule."""

    complexity: float
    specificity: int
    weaknesses: tuple[PatternWeakness, ...]
    signature: str
    coverage: int
    performance_impact: PerformanceImpact


class PatternAnalyzer:
    """Scores and compares permission rules.

    Parameters
    ----------
    strategy:
        Overlap strategy used by :meth:`analyze_overlap`.  Defaults to a
        :class:`CorpusOverlapStrategy`.
    """

    def __init__(self, strategy: OverlapStrategy | None = None) -> None:
        self._strategy = strategy if strategy is not None else CorpusOverlapStrategy()
        self._analysis_cache: dict[str, PatternAnalysis] = {}
        self._lock = threading.Lock()

    @property
    def strategy(self) -> OverlapStrategy:
        return self._strategy

    # ------------------------------------------------------------------
    # Single-rule analysis
    # ------------------------------------------------------------------

    def analyze_pattern(self, rule: Rule) -> PatternAnalysis:
        """Return the cached :class:`PatternAnalysis` for *rule*."""
        cache_key = f"{rule.category.value}:{rule.original}"
        with self._lock:
            cached = self._analysis_cache.get(cache_key)
        if cached is not None:
            return cached

        analysis = PatternAnalysis(
            complexity=self.complexity(rule),
            specificity=self.specificity(rule),
            weaknesses=tuple(self.detect_weaknesses(rule)),
            signature=self.signature(rule),
            coverage=self.estimate_coverage(rule),
            performance_impact=self.performance_impact(rule),
        )
        with self._lock:
            self._analysis_cache[cache_key] = analysis
        return analysis

    def complexity(self, rule: Rule) -> float:
        return complexity_score(rule.normalized, rule.kind)

    def specificity(self, rule: Rule) -> int:
        return specificity_score(rule.normalized, rule.kind)

    def detect_weaknesses(self, rule: Rule) -> list[PatternWeakness]:
        """Return every intrinsic weakness of *rule*, in a fixed order.

        - ``too-broad``: the pattern is exactly ``*``, ``**`` or ``.*``
        - ``traversal-risk``: contains ``..`` or starts with ``.``
        - ``encoding-vulnerable``: has ``*`` but no path separator
        - ``too-vague``: shorter than 3 or fewer than 2 alphanumerics
        - ``escape-prone``: deny glob without a leading ``/`` or trailing ``$``
        """
        pattern = rule.normalized
        weaknesses: list[PatternWeakness] = []

        if pattern in _BROAD_PATTERNS:
            weaknesses.append(
                PatternWeakness(
                    type=WeaknessType.TOO_BROAD,
                    severity=SecurityImpact.CRITICAL,
                    description="Pattern matches everything, providing no security benefit",
                    exploit_examples=("any/path", "malicious.exe", "../../etc/passwd"),
                    resolution="Use more specific patterns that match only intended resources",
                )
            )

        if ".." in pattern or pattern.startswith("."):
            weaknesses.append(
                PatternWeakness(
                    type=WeaknessType.TRAVERSAL_RISK,
                    severity=SecurityImpact.HIGH,
                    description="Pattern may be vulnerable to path traversal attacks",
                    exploit_examples=(
                        "../../../etc/passwd",
                        "..\\..\\..\\windows\\system32",
                        "%2e%2e%2f%2e%2e%2f",
                    ),
                    resolution="Use absolute paths or validate against path traversal",
                )
            )

        if "*" in pattern and "/" not in pattern:
            weaknesses.append(
                PatternWeakness(
                    type=WeaknessType.ENCODING_VULNERABLE,
                    severity=SecurityImpact.MEDIUM,
                    description="Pattern may be bypassed with encoding techniques",
                    exploit_examples=(quote(pattern, safe=""),),
                    resolution="Include path separators or use more specific patterns",
                )
            )

        if len(pattern) < 3 or len(_ALNUM.findall(pattern)) < 2:
            weaknesses.append(
                PatternWeakness(
                    type=WeaknessType.TOO_VAGUE,
                    severity=SecurityImpact.MEDIUM,
                    description="Pattern is too vague and may match unintended inputs",
                    exploit_examples=("a", "1", "-"),
                    resolution="Add more specific characters to the pattern",
                )
            )

        if rule.category == RuleCategory.DENY and rule.kind == PatternKind.GLOB:
            if not (pattern.startswith("/") or pattern.endswith("$")):
                weaknesses.append(
                    PatternWeakness(
                        type=WeaknessType.ESCAPE_PRONE,
                        severity=SecurityImpact.HIGH,
                        description="Pattern lacks anchors and may be bypassed",
                        exploit_examples=(
                            f"prefix{pattern}",
                            f"{pattern}suffix",
                            f"../bypass/{pattern}",
                        ),
                        resolution="Add path anchors or use regex with ^ and $ anchors",
                    )
                )

        return weaknesses

    def signature(self, rule: Rule) -> str:
        """Return a coarse grouping key for *rule*.

        Rules with the same signature look alike (same kind, both paths or
        not, both wildcarded or not, same short extension, same length
        bucket) and are candidates for precedence ambiguity.
        """
        pattern = rule.normalized
        parts = [f"{rule.kind.value}:"]
        if "/" in pattern:
            parts.append("path:")
        if "*" in pattern:
            parts.append("wildcard:")
        if "." in pattern:
            extension = pattern.rsplit(".", 1)[-1]
            if extension and len(extension) <= 4:
                parts.append(f"ext:{extension}:")
        if len(pattern) < 5:
            parts.append("short")
        elif len(pattern) < 20:
            parts.append("medium")
        else:
            parts.append("long")
        return "".join(parts)

    def estimate_coverage(self, rule: Rule) -> int:
        """Rough share (0-100) of all inputs the rule would match."""
        pattern = rule.normalized
        if rule.kind == PatternKind.LITERAL:
            return 1
        if pattern in ("*", "**"):
            return 100
        coverage = 10 + pattern.count("*") * 20 + pattern.count("?") * 5
        return min(100, coverage)

    def performance_impact(self, rule: Rule) -> PerformanceImpact:
        complexity = self.complexity(rule)
        if complexity > 70:
            return PerformanceImpact.HIGH
        if complexity > 40:
            return PerformanceImpact.MEDIUM
        if complexity > 20:
            return PerformanceImpact.LOW
        return PerformanceImpact.NEGLIGIBLE

    # ------------------------------------------------------------------
    # Pair analysis
    # ------------------------------------------------------------------

    def analyze_overlap(self, rule_a: Rule, rule_b: Rule) -> Overlap:
        """Return the overlap of *rule_a* relative to *rule_b*."""
        return self._strategy.analyze(rule_a, rule_b)

    def are_contradictory(self, rule_a: Rule, rule_b: Rule) -> bool:
        """Return ``True`` if the rules sit in different tiers yet match the same inputs.

        The overlap must be exact, subset or superset with a confidence
        above 70.
        """
        if rule_a.category == rule_b.category:
            return False
        overlap = self.analyze_overlap(rule_a, rule_b)
        return is_contradiction(overlap)

    def attack_vectors(self, pattern: str) -> list[str]:
        """Return example inputs an attacker might use to sidestep *pattern*."""
        vectors: list[str] = []
        if not pattern.startswith("/"):
            vectors.append(f"Path traversal: ../../../{pattern}")
        encoded = quote(pattern, safe="")
        vectors.append(f"URL encoding: {encoded}")
        vectors.append(f"Double encoding: {quote(encoded, safe='')}")
        vectors.append(f"Null byte: {pattern}%00.safe")
        if any(ext in pattern for ext in (".sh", ".exe", ".bat")):
            vectors.append(f"Command injection: {pattern} && malicious-command")
        return vectors

    def clear_cache(self) -> None:
        """Drop all cached single-rule analyses."""
        with self._lock:
            self._analysis_cache.clear()


def is_contradiction(overlap: Overlap) -> bool:
    """Return ``True`` if *overlap* is strong enough to count as a contradiction."""
    return (
        overlap.rule_a.category != overlap.rule_b.category
        and overlap.kind not in (OverlapKind.NONE, OverlapKind.PARTIAL)
        and overlap.confidence > _CONTRADICTION_CONFIDENCE
    )


def most_severe(weaknesses: list[PatternWeakness]) -> SecurityImpact:
    """Return the highest severity among *weaknesses* (``LOW`` when empty)."""
    if not weaknesses:
        return SecurityImpact.LOW
    return min((weakness.severity for weakness in weaknesses), key=lambda impact: impact.rank)
