"""Tests for overlap strategies and the pattern analyzer."""
from __future__ import annotations

import itertools

import pytest

from aumos_ruleguard.analysis.analyzer import (
    PatternAnalyzer,
    PerformanceImpact,
    SecurityImpact,
    WeaknessType,
    most_severe,
)
from aumos_ruleguard.analysis.overlap import CorpusOverlapStrategy, Overlap, OverlapKind
from aumos_ruleguard.rules.model import Rule, RuleCategory, build_rule


def deny(pattern: str, index: int = 0) -> Rule:
    return build_rule(pattern, RuleCategory.DENY, index)


def allow(pattern: str, index: int = 0) -> Rule:
    return build_rule(pattern, RuleCategory.ALLOW, index)


@pytest.fixture()
def strategy() -> CorpusOverlapStrategy:
    return CorpusOverlapStrategy()


@pytest.fixture()
def analyzer() -> PatternAnalyzer:
    return PatternAnalyzer()


# ---------------------------------------------------------------------------
# CorpusOverlapStrategy.analyze
# ---------------------------------------------------------------------------


class TestOverlapAnalyze:
    def test_identical_patterns_are_exact(self, strategy: CorpusOverlapStrategy) -> None:
        overlap = strategy.analyze(allow("exec"), deny("exec"))
        assert overlap.kind == OverlapKind.EXACT
        assert overlap.confidence == 100.0
        assert overlap.examples == ("exec",)

    def test_literal_inside_glob_is_subset(self, strategy: CorpusOverlapStrategy) -> None:
        overlap = strategy.analyze(allow("app.exe"), deny("*.exe"))
        assert overlap.kind == OverlapKind.SUBSET
        assert "app.exe" in overlap.examples

    def test_glob_around_literal_is_superset(self, strategy: CorpusOverlapStrategy) -> None:
        overlap = strategy.analyze(deny("*.exe"), allow("app.exe"))
        assert overlap.kind == OverlapKind.SUPERSET

    def test_disjoint_namespaces_do_not_overlap(self, strategy: CorpusOverlapStrategy) -> None:
        overlap = strategy.analyze(allow("safe/*"), deny("dangerous/*"))
        assert overlap.kind == OverlapKind.NONE
        assert not overlap.overlaps
        assert overlap.examples == ()

    def test_crossing_patterns_are_partial(self, strategy: CorpusOverlapStrategy) -> None:
        overlap = strategy.analyze(allow("*.js"), deny("src/*"))
        assert overlap.kind == OverlapKind.PARTIAL
        assert "src/index.js" in overlap.examples

    def test_examples_are_bounded(self, strategy: CorpusOverlapStrategy) -> None:
        overlap = strategy.analyze(allow("*"), deny("**"))
        assert len(overlap.examples) <= 5

    def test_coverage_is_percentage(self, strategy: CorpusOverlapStrategy) -> None:
        overlap = strategy.analyze(allow("app.exe"), deny("*.exe"))
        assert 0.0 < overlap.coverage < 100.0

    def test_reversed_flips_subset(self, strategy: CorpusOverlapStrategy) -> None:
        overlap = strategy.analyze(allow("app.exe"), deny("*.exe"))
        flipped = overlap.reversed()
        assert flipped.kind == OverlapKind.SUPERSET
        assert flipped.rule_a is overlap.rule_b
        assert flipped.rule_b is overlap.rule_a

    def test_reversed_keeps_partial(self) -> None:
        overlap = Overlap(allow("a"), deny("b"), OverlapKind.PARTIAL)
        assert overlap.reversed().kind == OverlapKind.PARTIAL

    def test_spawn_returns_fresh_instance(self, strategy: CorpusOverlapStrategy) -> None:
        spawned = strategy.spawn()
        assert isinstance(spawned, CorpusOverlapStrategy)
        assert spawned is not strategy


# ---------------------------------------------------------------------------
# CorpusOverlapStrategy.candidate_pairs
# ---------------------------------------------------------------------------


class TestCandidatePairs:
    def test_overlapping_pair_is_candidate(self, strategy: CorpusOverlapStrategy) -> None:
        rules = [deny("*.exe"), allow("app.exe"), allow("safe/*", 1)]
        assert (0, 1) in strategy.candidate_pairs(rules)

    def test_pruned_pairs_never_overlap(self, strategy: CorpusOverlapStrategy) -> None:
        rules = [
            deny("*.exe"),
            deny("dangerous/*", 1),
            deny("^rm ", 2),
            allow("app.exe"),
            allow("safe/*", 1),
            allow("src/*", 2),
            allow("*.js", 3),
            build_rule("deploy/prod", RuleCategory.ASK),
        ]
        candidates = strategy.candidate_pairs(rules)
        for i, j in itertools.combinations(range(len(rules)), 2):
            if (i, j) not in candidates:
                assert strategy.analyze(rules[i], rules[j]).kind == OverlapKind.NONE

    def test_identical_patterns_always_candidates(self, strategy: CorpusOverlapStrategy) -> None:
        rules = [deny("test/*"), deny("test/*", 1)]
        assert strategy.candidate_pairs(rules) == {(0, 1)}

    def test_pairs_are_ordered(self, strategy: CorpusOverlapStrategy) -> None:
        rules = [allow("app.exe"), deny("*.exe")]
        assert all(i < j for i, j in strategy.candidate_pairs(rules))


# ---------------------------------------------------------------------------
# PatternAnalyzer
# ---------------------------------------------------------------------------


class TestWeaknesses:
    def test_bare_star(self, analyzer: PatternAnalyzer) -> None:
        kinds = [weakness.type for weakness in analyzer.detect_weaknesses(allow("*"))]
        assert kinds == [WeaknessType.TOO_BROAD, WeaknessType.ENCODING_VULNERABLE, WeaknessType.TOO_VAGUE]

    @pytest.mark.parametrize("pattern", [" * ", "*\n"])
    def test_padded_star_is_too_broad(self, analyzer: PatternAnalyzer, pattern: str) -> None:
        kinds = [weakness.type for weakness in analyzer.detect_weaknesses(allow(pattern))]
        assert kinds[0] == WeaknessType.TOO_BROAD

    def test_traversal_risk(self, analyzer: PatternAnalyzer) -> None:
        kinds = [weakness.type for weakness in analyzer.detect_weaknesses(allow("../secret"))]
        assert WeaknessType.TRAVERSAL_RISK in kinds

    def test_unanchored_deny_glob_is_escape_prone(self, analyzer: PatternAnalyzer) -> None:
        kinds = [weakness.type for weakness in analyzer.detect_weaknesses(deny("dangerous/*"))]
        assert kinds == [WeaknessType.ESCAPE_PRONE]

    def test_anchored_deny_glob_is_fine(self, analyzer: PatternAnalyzer) -> None:
        assert analyzer.detect_weaknesses(deny("/var/secret/*")) == []

    def test_specific_literal_has_no_weakness(self, analyzer: PatternAnalyzer) -> None:
        assert analyzer.detect_weaknesses(deny("exec")) == []

    def test_most_severe(self, analyzer: PatternAnalyzer) -> None:
        weaknesses = analyzer.detect_weaknesses(allow("*"))
        assert most_severe(weaknesses) == SecurityImpact.CRITICAL
        assert most_severe([]) == SecurityImpact.LOW


class TestPatternMetrics:
    def test_signature(self, analyzer: PatternAnalyzer) -> None:
        assert analyzer.signature(allow("src/*.js")) == "glob:path:wildcard:ext:js:medium"

    def test_signature_short_literal(self, analyzer: PatternAnalyzer) -> None:
        assert analyzer.signature(deny("exec")) == "literal:short"

    def test_coverage(self, analyzer: PatternAnalyzer) -> None:
        assert analyzer.estimate_coverage(allow("exec")) == 1
        assert analyzer.estimate_coverage(allow("*")) == 100
        assert analyzer.estimate_coverage(allow("src/*")) == 30
        assert analyzer.estimate_coverage(allow(" * ")) == 100

    def test_performance_impact(self, analyzer: PatternAnalyzer) -> None:
        assert analyzer.performance_impact(allow("exec")) == PerformanceImpact.NEGLIGIBLE
        assert analyzer.performance_impact(allow("^(a|b)(c|d)(e|f)\\w+$")) == PerformanceImpact.HIGH

    def test_analyze_pattern_is_cached(self, analyzer: PatternAnalyzer) -> None:
        rule = allow("src/*.js")
        first = analyzer.analyze_pattern(rule)
        assert analyzer.analyze_pattern(rule) is first
        analyzer.clear_cache()
        assert analyzer.analyze_pattern(rule) is not first

    def test_attack_vectors(self, analyzer: PatternAnalyzer) -> None:
        vectors = analyzer.attack_vectors("run.sh")
        assert "Path traversal: ../../../run.sh" in vectors
        assert "Command injection: run.sh && malicious-command" in vectors


class TestContradictions:
    def test_identical_rules_in_different_tiers(self, analyzer: PatternAnalyzer) -> None:
        assert analyzer.are_contradictory(allow("exec"), deny("exec")) is True

    def test_same_tier_never_contradicts(self, analyzer: PatternAnalyzer) -> None:
        assert analyzer.are_contradictory(deny("exec"), deny("exec", 1)) is False

    def test_disjoint_rules(self, analyzer: PatternAnalyzer) -> None:
        assert analyzer.are_contradictory(allow("safe/*"), deny("dangerous/*")) is False
