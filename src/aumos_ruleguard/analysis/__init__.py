"""Rule analysis: overlap strategies and the pattern analyzer.

Example
-------
::

    from aumos_ruleguard.analysis import PatternAnalyzer
    from aumos_ruleguard.rules import RuleCategory, build_rule

    analyzer = PatternAnalyzer()
    overlap = analyzer.analyze_overlap(
        build_rule("app.exe", RuleCategory.ALLOW),
        build_rule("*.exe", RuleCategory.DENY),
    )
    print(overlap.kind)  # OverlapKind.SUBSET
"""
from __future__ import annotations

from aumos_ruleguard.analysis.analyzer import (
    PatternAnalysis,
    PatternAnalyzer,
    PatternWeakness,
    PerformanceImpact,
    SecurityImpact,
    WeaknessType,
    is_contradiction,
    most_severe,
)
from aumos_ruleguard.analysis.overlap import (
    CorpusOverlapStrategy,
    Overlap,
    OverlapKind,
    OverlapStrategy,
)

__all__ = [
    # Overlap
    "CorpusOverlapStrategy",
    "Overlap",
    "OverlapKind",
    "OverlapStrategy",
    # Analyzer
    "PatternAnalysis",
    "PatternAnalyzer",
    "PatternWeakness",
    "PerformanceImpact",
    "SecurityImpact",
    "WeaknessType",
    "is_contradiction",
    "most_severe",
]
