"""Tests for ValidationEngine."""
from __future__ import annotations

import itertools
import threading
from typing import Any
from unittest import mock

import pytest

from aumos_ruleguard.config.settings import EngineSettings
from aumos_ruleguard.conflicts.model import ConflictKind
from aumos_ruleguard.resolution.changes import SuggestionKind
from aumos_ruleguard.validation.engine import (
    ValidationEngine,
    ValidationOptions,
    ValidationPhase,
    _cache_key,
)
from aumos_ruleguard.validation.results import ErrorKind, WarningKind

ZERO_BYPASS = {"permissions": {"deny": ["exec"], "allow": ["exec"]}}
ALLOW_INSIDE_DENY = {"permissions": {"deny": ["*.exe"], "allow": ["app.exe"]}}
DISJOINT = {"permissions": {"deny": ["dangerous/*"], "allow": ["safe/*"]}}
DUPLICATE_DENY = {"permissions": {"deny": ["test/*", "test/*"]}}


@pytest.fixture()
def engine() -> ValidationEngine:
    return ValidationEngine(EngineSettings.model_validate({"performance": {"target_ms": 10_000}}))


def patched_clock() -> Any:
    """Engine clock that advances one second per reading."""
    fake = mock.MagicMock()
    fake.perf_counter.side_effect = itertools.count(0.0, 1.0)
    return mock.patch("aumos_ruleguard.validation.engine.time", fake)


# ---------------------------------------------------------------------------
# Zero-bypass enforcement
# ---------------------------------------------------------------------------


class TestZeroBypass:
    def test_identical_deny_and_allow_is_invalid(self, engine: ValidationEngine) -> None:
        result = engine.validate(ZERO_BYPASS)
        assert result.is_valid is False
        violations = [e for e in result.errors_of(ErrorKind.SECURITY_VIOLATION) if "ZERO-BYPASS" in e.message]
        assert len(violations) == 1
        assert violations[0].location == "permissions.allow[0]"
        kinds = {conflict.kind for conflict in result.conflicts}
        assert ConflictKind.ALLOW_OVERRIDES_DENY in kinds
        assert ConflictKind.CONTRADICTORY_RULES in kinds

    def test_allow_inside_deny_glob_is_invalid(self, engine: ValidationEngine) -> None:
        result = engine.validate(ALLOW_INSIDE_DENY)
        assert result.is_valid is False
        assert result.conflicts[0].kind == ConflictKind.ALLOW_OVERRIDES_DENY

    def test_partial_overlap_is_invalid(self, engine: ValidationEngine) -> None:
        result = engine.validate({"permissions": {"deny": ["src/*"], "allow": ["*.js"]}})
        assert result.is_valid is False

    def test_ask_override_is_invalid(self, engine: ValidationEngine) -> None:
        result = engine.validate({"permissions": {"deny": ["exec"], "ask": ["exec"]}})
        assert result.is_valid is False

    def test_skipping_detection_keeps_zero_bypass(self, engine: ValidationEngine) -> None:
        result = engine.validate(ZERO_BYPASS, ValidationOptions(skip_conflict_detection=True))
        assert result.is_valid is False
        assert {c.kind for c in result.conflicts} == {ConflictKind.ALLOW_OVERRIDES_DENY}

    def test_disjoint_namespaces_are_valid(self, engine: ValidationEngine) -> None:
        result = engine.validate(DISJOINT)
        assert result.is_valid is True
        assert result.conflicts == []

    def test_duplicate_deny_rules_are_valid(self, engine: ValidationEngine) -> None:
        result = engine.validate(DUPLICATE_DENY)
        assert result.is_valid is True
        assert [c.kind for c in result.conflicts] == [ConflictKind.OVERLAPPING_PATTERNS]

    def test_weakness_findings_become_warnings(self, engine: ValidationEngine) -> None:
        result = engine.validate(DISJOINT)
        routed = [w for w in result.warnings if w.context.get("conflict_kind") == "SECURITY_VIOLATION"]
        assert routed
        assert routed[0].context["patterns"] == ["dangerous/*"]

    def test_large_disjoint_ruleset(self, engine: ValidationEngine) -> None:
        document = {
            "permissions": {
                "deny": [f"deny_ns/item{i}" for i in range(334)],
                "allow": [f"allow_ns/item{i}" for i in range(333)],
                "ask": [f"ask_ns/item{i}" for i in range(333)],
            }
        }
        result = engine.validate(document)
        assert result.is_valid is True
        assert result.conflicts == []
        assert result.performance.rules_processed == 1000


# ---------------------------------------------------------------------------
# Rule checks
# ---------------------------------------------------------------------------


class TestRuleChecks:
    def test_match_everything_deny_is_invalid(self, engine: ValidationEngine) -> None:
        result = engine.validate({"permissions": {"deny": ["*"]}})
        assert result.is_valid is False
        assert any("Too-broad" in error.message for error in result.errors)
        assert any("Overly broad pattern" in w.message for w in result.warnings)

    @pytest.mark.parametrize("category", ["allow", "deny"])
    @pytest.mark.parametrize("pattern", [" * ", "*\n"])
    def test_whitespace_padded_match_everything_is_invalid(
        self, engine: ValidationEngine, category: str, pattern: str
    ) -> None:
        result = engine.validate(
            {"permissions": {category: [pattern]}}, ValidationOptions(skip_cache=True)
        )
        assert result.is_valid is False
        assert any("Too-broad" in error.message for error in result.errors)
        assert result.security_score is not None and result.security_score < 100

    def test_empty_pattern_is_a_warning(self, engine: ValidationEngine) -> None:
        result = engine.validate({"permissions": {"allow": [""]}})
        assert result.is_valid is True
        empty = result.warnings_of(WarningKind.INVALID_PATTERN)
        assert empty[0].message == "Empty rule pattern in allow rules"
        assert empty[0].location == "permissions.allow[0]"

    def test_broken_regex_treated_as_literal(self, engine: ValidationEngine) -> None:
        result = engine.validate({"permissions": {"deny": ["^(unclosed"]}})
        broken = [w for w in result.warnings if w.message == "Invalid regex pattern: ^(unclosed"]
        assert broken[0].context == {"treated_as": "literal"}

    def test_dangerous_allow_tokens(self, engine: ValidationEngine) -> None:
        result = engine.validate({"permissions": {"allow": ["tools/shell-helper"]}})
        flagged = [w for w in result.warnings if w.message.startswith("Potentially dangerous pattern")]
        assert flagged[0].context == {"tokens": ["shell"]}

    def test_custom_patterns(self, engine: ValidationEngine) -> None:
        document = {"permissions": {"allow": ["deploy/prod"]}}
        plain = engine.validate(document)
        custom = engine.validate(document, ValidationOptions(custom_patterns=["deploy"]))
        assert not [w for w in plain.warnings if "dangerous pattern" in w.message]
        flagged = [w for w in custom.warnings if "dangerous pattern" in w.message]
        assert flagged[0].context == {"tokens": ["deploy"]}


# ---------------------------------------------------------------------------
# Never raises
# ---------------------------------------------------------------------------


class TestFailures:
    def test_non_mapping_input(self, engine: ValidationEngine) -> None:
        result = engine.validate(["exec"])  # type: ignore[arg-type]
        assert result.is_valid is False
        assert result.errors[0].kind == ErrorKind.INVALID_SYNTAX
        assert result.errors[0].message == "Validation failed: Configuration must be a mapping, got list"

    def test_malformed_permissions(self, engine: ValidationEngine) -> None:
        result = engine.validate({"permissions": {"deny": "exec"}})
        assert result.is_valid is False
        assert result.errors[0].kind == ErrorKind.INVALID_SYNTAX

    def test_circular_document(self, engine: ValidationEngine) -> None:
        document: dict[str, object] = {"permissions": {"deny": ["exec"]}}
        document["self"] = document
        result = engine.validate(document)
        assert result.is_valid is False
        assert result.errors[0].kind == ErrorKind.INVALID_SYNTAX

    def test_null_sections(self, engine: ValidationEngine) -> None:
        result = engine.validate({"permissions": None, "metadata": None})
        assert result.is_valid is True
        assert result.performance.rules_processed == 0

    def test_null_entries_dropped(self, engine: ValidationEngine) -> None:
        result = engine.validate({"permissions": {"deny": [None, "exec"], "allow": None}})
        assert result.is_valid is True
        assert result.performance.rules_processed == 1


# ---------------------------------------------------------------------------
# Deadline and cancellation
# ---------------------------------------------------------------------------


class TestDeadline:
    def test_missed_deadline_degrades(self, engine: ValidationEngine) -> None:
        with patched_clock():
            result = engine.validate(ZERO_BYPASS, ValidationOptions(timeout_ms=0.5))
        assert result.is_valid is False
        assert result.suggestions == []
        assert result.performance.achieved is False
        assert {c.kind for c in result.conflicts} == {ConflictKind.ALLOW_OVERRIDES_DENY}
        assert engine.get_cache_stats().entries == 0

    def test_strict_mode_aborts(self, engine: ValidationEngine) -> None:
        with patched_clock():
            result = engine.validate(DISJOINT, ValidationOptions(timeout_ms=0.5, strict_mode=True))
        assert result.is_valid is False
        error = result.errors[0]
        assert error.kind == ErrorKind.INVALID_SYNTAX
        assert error.context["phase"] == ValidationPhase.PARSING.value
        assert error.context["cancelled"] is False

    def test_strict_timeout_setting(self) -> None:
        engine = ValidationEngine(EngineSettings.model_validate({"performance": {"strict_timeout": True}}))
        with patched_clock():
            result = engine.validate(DISJOINT, ValidationOptions(timeout_ms=0.5))
        assert result.errors[0].kind == ErrorKind.INVALID_SYNTAX

    def test_cancel_event(self, engine: ValidationEngine) -> None:
        cancel = threading.Event()
        cancel.set()
        result = engine.validate(DISJOINT, ValidationOptions(cancel_event=cancel))
        assert result.is_valid is False
        assert result.errors[0].context["cancelled"] is True
        assert "cancelled" in result.errors[0].message

    def test_generous_deadline(self, engine: ValidationEngine) -> None:
        result = engine.validate(DISJOINT, ValidationOptions(timeout_ms=60_000))
        assert result.is_valid is True
        assert result.suggestions


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------


class TestCaching:
    def test_idempotent(self, engine: ValidationEngine) -> None:
        options = ValidationOptions(skip_cache=True)
        first = engine.validate(ALLOW_INSIDE_DENY, options)
        second = engine.validate(ALLOW_INSIDE_DENY, options)
        assert [e.message for e in first.errors] == [e.message for e in second.errors]
        assert first.conflicts == second.conflicts
        assert first.configuration_hash == second.configuration_hash

    def test_second_call_hits_cache(self, engine: ValidationEngine) -> None:
        engine.validate(DISJOINT)
        engine.validate({"permissions": {"allow": ["safe/*"], "deny": ["dangerous/*"]}})
        stats = engine.get_cache_stats()
        assert stats.hits == 1
        assert stats.entries == 1

    def test_skip_cache(self, engine: ValidationEngine) -> None:
        engine.validate(DISJOINT, ValidationOptions(skip_cache=True))
        assert engine.get_cache_stats().entries == 0

    def test_cache_disabled_in_settings(self) -> None:
        engine = ValidationEngine(EngineSettings.model_validate({"cache": {"enabled": False}}))
        engine.validate(DISJOINT)
        assert engine.get_cache_stats().entries == 0

    def test_cache_key_variants(self) -> None:
        assert _cache_key("abc", ValidationOptions()) == "abc"
        assert _cache_key("abc", ValidationOptions(strict_mode=True)) == "abc:strict"
        assert (
            _cache_key("abc", ValidationOptions(skip_conflict_detection=True, custom_patterns=["b", "a"]))
            == "abc:zero-bypass-only:custom=a|b"
        )

    def test_export_and_import(self, engine: ValidationEngine) -> None:
        engine.validate(DISJOINT)
        other = ValidationEngine(EngineSettings.model_validate({"performance": {"target_ms": 10_000}}))
        assert other.import_cache(engine.export_cache()) == 1
        other.validate(DISJOINT)
        assert other.get_cache_stats().hits == 1

    def test_warm_cache(self, engine: ValidationEngine) -> None:
        assert engine.warm_cache([DISJOINT, DUPLICATE_DENY]) == 2
        assert engine.warm_cache([DISJOINT]) == 0
        engine.validate(DUPLICATE_DENY)
        assert engine.get_cache_stats().hits == 1

    def test_clear_cache(self, engine: ValidationEngine) -> None:
        engine.validate(DISJOINT)
        engine.clear_cache()
        assert engine.get_cache_stats().entries == 0
        assert engine.detector.cache_stats()["size"] == 0


# ---------------------------------------------------------------------------
# Suggestions, batch and statistics
# ---------------------------------------------------------------------------


class TestSuggestions:
    def test_fix_first_for_zero_bypass(self, engine: ValidationEngine) -> None:
        result = engine.validate(ZERO_BYPASS)
        assert result.suggestions[0].kind == SuggestionKind.FIX
        assert result.suggestions[0].auto_fix is not None

    def test_missing_exec_deny_hint(self, engine: ValidationEngine) -> None:
        result = engine.validate(DISJOINT)
        messages = [s.message for s in result.suggestions]
        assert "Consider adding deny rules for shell execution commands" in messages

    def test_complex_regex_hint(self, engine: ValidationEngine) -> None:
        pattern = "^(" + "|".join(f"command{i}" for i in range(8)) + ")$"
        result = engine.validate({"permissions": {"deny": [pattern]}})
        assert any("complex regex patterns detected" in s.message for s in result.suggestions)

    def test_resolver_per_level_is_reused(self, engine: ValidationEngine) -> None:
        assert engine.resolver("moderate") is engine.resolver("moderate")
        assert engine.resolver("strict") is not engine.resolver("moderate")


class TestBatch:
    def test_order_and_counts(self, engine: ValidationEngine) -> None:
        response = engine.validate_batch("batch-1", [ZERO_BYPASS, DISJOINT, DUPLICATE_DENY])
        assert response.id == "batch-1"
        assert [r.is_valid for r in response.results] == [False, True, True]
        assert (response.count, response.success_count, response.failure_count) == (3, 2, 1)

    def test_empty_batch(self, engine: ValidationEngine) -> None:
        response = engine.validate_batch("empty", [])
        assert response.results == []
        assert response.count == 0


class TestStatistics:
    def test_rule_statistics(self, engine: ValidationEngine) -> None:
        stats = engine.get_rule_statistics(
            {"permissions": {"deny": ["*.exe"], "allow": ["app.exe", "docs/*.md"], "ask": ["deploy/prod"]}}
        )
        assert stats.total_rules == 4
        assert stats.by_category == {"deny": 1, "allow": 2, "ask": 1}
        assert stats.complexity.glob_count == 2
        assert stats.complexity.literal_count == 2
        assert stats.complexity.max_pattern_length == len("deploy/prod")
        assert stats.coverage.uncovered_patterns == ["deploy/prod", "docs/*.md"]
        assert stats.coverage.estimated_coverage == 20

    def test_redundant_rules(self, engine: ValidationEngine) -> None:
        stats = engine.get_rule_statistics(DUPLICATE_DENY)
        assert stats.coverage.redundant_rules == ["deny:test/*"]

    def test_statistics_do_not_touch_cache(self, engine: ValidationEngine) -> None:
        engine.get_rule_statistics(DISJOINT)
        assert engine.get_cache_stats().entries == 0


class TestState:
    def test_complete_after_validate(self, engine: ValidationEngine) -> None:
        engine.validate(DISJOINT)
        assert engine.state.phase == ValidationPhase.COMPLETE
        assert engine.state.progress == 100

    def test_repr(self) -> None:
        assert repr(ValidationEngine()) == "ValidationEngine(target_ms=100.0, cache_enabled=True)"
