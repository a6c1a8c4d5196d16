"""Tests for the security posture analysis."""
from __future__ import annotations

import pytest

from aumos_ruleguard.analysis.analyzer import SecurityImpact
from aumos_ruleguard.conflicts.detector import ConflictDetector
from aumos_ruleguard.rules.model import Rule, RulesetConfig, normalize_rules
from aumos_ruleguard.validation.security import (
    BypassVectorType,
    SecurityIssueType,
    analyze_security,
    bypass_example,
    is_overly_permissive,
    is_weak_pattern,
)


def rules_for(**permissions: list[str]) -> list[Rule]:
    return normalize_rules(RulesetConfig.model_validate({"permissions": permissions}))


class TestPredicates:
    @pytest.mark.parametrize("pattern", ["ab", "..", "../etc", "*.exe", "."])
    def test_weak(self, pattern: str) -> None:
        assert is_weak_pattern(pattern)

    @pytest.mark.parametrize("pattern", ["exec", "/var/secret/*", "bin/*.sh"])
    def test_not_weak(self, pattern: str) -> None:
        assert not is_weak_pattern(pattern)

    @pytest.mark.parametrize("pattern", ["*", "**/*", "*.js"])
    def test_overly_permissive(self, pattern: str) -> None:
        assert is_overly_permissive(pattern)

    def test_specific_allow_is_fine(self) -> None:
        assert not is_overly_permissive("docs/*.md")

    def test_bypass_examples(self) -> None:
        assert bypass_example("../x").startswith("URL encoding")
        assert bypass_example("*.exe") == "Path traversal: ../*.exe/../../sensitive"
        assert bypass_example("ab") == "Pattern too short, easily matched accidentally"
        assert bypass_example("bin/rm") == "Various encoding or path manipulation techniques"


class TestAnalyzeSecurity:
    def test_zero_bypass_costs_twenty(self) -> None:
        rules = rules_for(deny=["exec"], allow=["exec"])
        conflicts = ConflictDetector().detect(rules).conflicts
        analysis = analyze_security(rules, conflicts)
        assert analysis.security_score == 80
        issues = analysis.issues_of(SecurityIssueType.ZERO_BYPASS_VIOLATION)
        assert len(issues) == 1
        assert issues[0].severity == SecurityImpact.CRITICAL
        assert analysis.bypass_vectors[0].type == BypassVectorType.PRECEDENCE_EXPLOIT

    def test_allow_everything(self) -> None:
        analysis = analyze_security(rules_for(allow=["*"]))
        assert analysis.security_score == 75
        broad = analysis.issues_of(SecurityIssueType.WEAK_PATTERN)
        assert broad[0].too_broad is True
        assert analysis.issues_of(SecurityIssueType.OVERLY_PERMISSIVE)
        assert analysis.bypass_vectors == []

    @pytest.mark.parametrize("pattern", [" * ", "*\n", "\t**"])
    def test_padded_allow_everything_is_too_broad(self, pattern: str) -> None:
        analysis = analyze_security(rules_for(allow=[pattern]))
        broad = analysis.issues_of(SecurityIssueType.WEAK_PATTERN)
        assert broad[0].too_broad is True
        assert broad[0].affected_rules == (pattern,)
        assert analysis.issues_of(SecurityIssueType.OVERLY_PERMISSIVE)
        assert analysis.security_score == 75

    @pytest.mark.parametrize("pattern", [" * ", "*\n"])
    def test_padded_deny_everything_is_too_broad(self, pattern: str) -> None:
        analysis = analyze_security(rules_for(deny=[pattern]))
        broad = analysis.issues_of(SecurityIssueType.WEAK_PATTERN)
        assert broad[0].too_broad is True
        assert broad[0].severity == SecurityImpact.CRITICAL
        assert analysis.security_score == 80

    def test_weak_deny_pattern(self) -> None:
        analysis = analyze_security(rules_for(deny=["*.exe"]))
        issue = analysis.issues_of(SecurityIssueType.WEAK_PATTERN)[0]
        assert issue.severity == SecurityImpact.MEDIUM
        assert analysis.security_score == 95
        assert analysis.bypass_vectors[0].type == BypassVectorType.PATTERN_ESCAPE

    def test_weak_pattern_detection_can_be_disabled(self) -> None:
        analysis = analyze_security(rules_for(deny=["*.exe"]), detect_weak_patterns=False)
        assert analysis.issues == []
        assert analysis.security_score == 100

    def test_missing_deny_only_when_required(self) -> None:
        rules = rules_for(allow=["docs/readme.md"])
        assert analyze_security(rules).issues == []
        required = analyze_security(rules, require_deny_rules=True)
        assert required.issues_of(SecurityIssueType.MISSING_DENY)
        assert required.security_score == 95

    def test_recommendations(self) -> None:
        clean = analyze_security(rules_for(deny=["/var/secret/*"]))
        assert clean.recommendations == ["Configuration has strong security posture"]
        noisy = analyze_security(rules_for(allow=["*"]))
        assert "Address critical security issues immediately" in noisy.recommendations

    def test_score_never_negative(self) -> None:
        analysis = analyze_security(rules_for(deny=["*", "**", ".*"], allow=["*", "**", ".*"]))
        assert analysis.security_score == 0
