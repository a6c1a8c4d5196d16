"""ValidationEngine: the orchestrator and sole entry point for validation.

Pipeline for one :meth:`ValidationEngine.validate` call:

1. Parse the document into a :class:`~aumos_ruleguard.rules.model.RulesetConfig`.
2. Look the canonical hash up in the result cache.
3. Normalize rules (deny, then ask, then allow).
4. Check individual rules: empty patterns, match-everything patterns,
   broken regexes and risky tokens in allow rules.
5. Detect conflicts.  Every allow/ask-overrides-deny conflict becomes a
   fatal SECURITY_VIOLATION error; no option can downgrade it.
6. Analyze the security posture and score it.
7. Generate resolution suggestions.
8. Stamp performance and cache the result when it was fast enough.

``validate`` never raises.  Any exception is converted into an invalid
result carrying a single INVALID_SYNTAX error.

Example
-------
>>> engine = ValidationEngine()
>>> result = engine.validate({"permissions": {"deny": ["exec"], "allow": ["exec"]}})
>>> result.is_valid
False
"""
from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Sequence

from aumos_ruleguard.analysis.analyzer import PatternAnalyzer, PerformanceImpact, SecurityImpact
from aumos_ruleguard.analysis.overlap import CorpusOverlapStrategy, OverlapStrategy
from aumos_ruleguard.config.settings import EngineSettings
from aumos_ruleguard.conflicts.detector import ConflictDetector, default_worker_count
from aumos_ruleguard.conflicts.model import (
    PAIR_CONFLICT_KINDS,
    Conflict,
    ConflictKind,
)
from aumos_ruleguard.errors import ValidationTimeoutError
from aumos_ruleguard.patterns.matcher import PatternKind
from aumos_ruleguard.resolution.changes import ResolutionSuggestion, SuggestionKind
from aumos_ruleguard.resolution.resolver import ConflictResolver, SecurityLevel
from aumos_ruleguard.rules.model import Rule, RuleCategory, RulesetConfig, normalize_rules
from aumos_ruleguard.validation.cache import CacheStats, ValidationCache
from aumos_ruleguard.validation.results import (
    BatchValidationResponse,
    ComplexityStats,
    CoverageStats,
    ErrorKind,
    PerformanceInfo,
    RuleStatistics,
    ValidationError,
    ValidationResult,
    ValidationWarning,
    WarningKind,
)
from aumos_ruleguard.validation.security import SecurityAnalysis, analyze_security

logger = logging.getLogger(__name__)

_BROAD_PATTERNS: frozenset[str] = frozenset({"*", "**", ".*"})
_DANGEROUS_TOKENS: tuple[str, ...] = ("exec", "eval", "shell", "cmd", "powershell", "system", "spawn", "fork")
_COMPLEX_REGEX_LENGTH: int = 50


class ValidationPhase(str, Enum):
    """Pipeline phase; observability only."""

    INITIALIZING = "initializing"
    PARSING = "parsing"
    NORMALIZING = "normalizing"
    VALIDATING = "validating"
    DETECTING_CONFLICTS = "detecting-conflicts"
    GENERATING_SUGGESTIONS = "generating-suggestions"
    COMPLETE = "complete"

    @property
    def progress(self) -> int:
        return _PHASE_PROGRESS[self]


_PHASE_PROGRESS: dict[ValidationPhase, int] = {
    ValidationPhase.INITIALIZING: 0,
    ValidationPhase.PARSING: 10,
    ValidationPhase.NORMALIZING: 20,
    ValidationPhase.VALIDATING: 50,
    ValidationPhase.DETECTING_CONFLICTS: 80,
    ValidationPhase.GENERATING_SUGGESTIONS: 90,
    ValidationPhase.COMPLETE: 100,
}


@dataclass(frozen=True)
class ValidationState:
    """Latest phase reached by the engine."""

    phase: ValidationPhase = ValidationPhase.INITIALIZING
    progress: int = 0
    current_operation: str = "Idle"


@dataclass
class ValidationOptions:
    """Per-call options for :meth:`ValidationEngine.validate`.

    Attributes
    ----------
    strict_mode:
        Abort with a timeout error when the deadline is missed, and resolve
        conflicts at the strict security level.
    skip_conflict_detection:
        Run only the zero-bypass pass of conflict detection.
    skip_cache:
        Neither read nor write the result cache.
    timeout_ms:
        Deadline for the call, checked at phase boundaries.
    parallel:
        Override the settings' parallel overlap analysis switch.
    worker_count:
        Override the overlap worker pool size.
    custom_patterns:
        Extra risky tokens flagged when they appear in allow rules.
    cancel_event:
        Set by the caller to abort at the next phase boundary.
    """

    strict_mode: bool = False
    skip_conflict_detection: bool = False
    skip_cache: bool = False
    timeout_ms: float | None = None
    parallel: bool | None = None
    worker_count: int | None = None
    custom_patterns: list[str] = field(default_factory=list)
    cancel_event: threading.Event | None = None


class _Deadline:
    """Deadline and cancellation checks at phase boundaries."""

    def __init__(self, started: float, options: ValidationOptions, strict: bool) -> None:
        self._started = started
        self._timeout_ms = options.timeout_ms
        self._cancel_event = options.cancel_event
        self._strict = strict
        self.missed = False

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000

    def check(self, phase: ValidationPhase) -> bool:
        """Return ``True`` once the deadline has been missed (non-strict).

        Raises
        ------
        ValidationTimeoutError
            On cancellation, or on a missed deadline in strict mode.
        """
        elapsed = self.elapsed_ms()
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise ValidationTimeoutError(phase.value, elapsed, cancelled=True)
        if self._timeout_ms is None or elapsed <= self._timeout_ms:
            return self.missed
        if self._strict:
            raise ValidationTimeoutError(phase.value, elapsed)
        if not self.missed:
            logger.warning(
                "Validation deadline of %.1fms missed before %s (%.1fms); skipping advisory work",
                self._timeout_ms,
                phase.value,
                elapsed,
            )
        self.missed = True
        return True


# ---------------------------------------------------------------------------
# ValidationEngine
# ---------------------------------------------------------------------------


class ValidationEngine:
    """Validates permission rulesets and enforces the zero-bypass rule.

    Callers own the engine; there is no shared module-level instance.

    Parameters
    ----------
    settings:
        Engine settings.  Defaults are used when omitted.
    strategy:
        Overlap strategy prototype shared by detection and resolution.
    cache:
        Result cache; one is built from ``settings.cache`` when omitted.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        strategy: OverlapStrategy | None = None,
        cache: ValidationCache | None = None,
    ) -> None:
        self._settings = settings if settings is not None else EngineSettings()
        self._strategy = strategy if strategy is not None else CorpusOverlapStrategy()
        self._analyzer = PatternAnalyzer(self._strategy.spawn())
        self._detector = ConflictDetector(
            self._strategy,
            self._analyzer,
            deep_analysis=self._settings.conflicts.deep_analysis,
            parallel=self._settings.conflicts.parallel_analysis,
            parallel_threshold=self._settings.conflicts.parallel_threshold,
            max_workers=self._settings.max_workers,
        )
        cache_settings = self._settings.cache
        self._cache = (
            cache
            if cache is not None
            else ValidationCache(
                max_entries=cache_settings.max_entries,
                max_memory_mb=cache_settings.max_memory_mb,
                ttl_seconds=cache_settings.ttl_seconds,
            )
        )
        self._resolvers: dict[SecurityLevel, ConflictResolver] = {}
        self._state = ValidationState()
        self._lock = threading.Lock()

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def detector(self) -> ConflictDetector:
        return self._detector

    @property
    def cache(self) -> ValidationCache:
        return self._cache

    @property
    def state(self) -> ValidationState:
        with self._lock:
            return self._state

    # ------------------------------------------------------------------
    # Validate
    # ------------------------------------------------------------------

    def validate(
        self,
        config: RulesetConfig | Mapping[str, object],
        options: ValidationOptions | None = None,
    ) -> ValidationResult:
        """Validate *config* and return a structured result.

        Never raises: parse failures, internal errors, cancellation and
        strict-mode deadline misses all produce an invalid result with one
        INVALID_SYNTAX error.
        """
        options = options if options is not None else ValidationOptions()
        started = time.perf_counter()
        target_ms = self._settings.performance.target_ms
        strict_deadline = options.strict_mode or self._settings.performance.strict_timeout
        deadline = _Deadline(started, options, strict_deadline)
        config_hash: str | None = None

        try:
            self._enter(ValidationPhase.INITIALIZING, "Preparing validation")
            deadline.check(ValidationPhase.PARSING)
            self._enter(ValidationPhase.PARSING, "Parsing configuration")
            ruleset = self.parse(config)
            config_hash = self._cache.generate_hash(ruleset)

            use_cache = self._settings.cache.enabled and not options.skip_cache
            cache_key = _cache_key(config_hash, options)
            if use_cache:
                cached = self._cache.get(cache_key)
                if cached is not None:
                    self._enter(ValidationPhase.COMPLETE, "Served from cache")
                    logger.debug("Validation served from cache in %.2fms", deadline.elapsed_ms())
                    return cached

            deadline.check(ValidationPhase.NORMALIZING)
            self._enter(ValidationPhase.NORMALIZING, "Normalizing rules")
            rules = normalize_rules(ruleset)

            deadline.check(ValidationPhase.VALIDATING)
            self._enter(ValidationPhase.VALIDATING, "Validating rules")
            errors: list[ValidationError] = []
            warnings = self.check_rules(rules, options.custom_patterns)

            # The zero-bypass pass always runs; skipping only drops the advisory passes.
            expired = deadline.check(ValidationPhase.DETECTING_CONFLICTS)
            self._enter(ValidationPhase.DETECTING_CONFLICTS, "Detecting rule conflicts")
            detection = self._detector.detect(
                rules,
                skip_cache=options.skip_cache,
                zero_bypass_only=expired or options.skip_conflict_detection,
                parallel=options.parallel,
                max_workers=options.worker_count,
            )
            conflicts = self._route_conflicts(detection.conflicts, errors, warnings)

            security = analyze_security(
                rules,
                conflicts,
                detect_weak_patterns=self._settings.security.detect_weak_patterns,
                require_deny_rules=self._settings.security.require_deny_rules,
            )
            self._route_security_issues(security, errors, warnings)

            suggestions: list[ResolutionSuggestion] = []
            if not deadline.check(ValidationPhase.GENERATING_SUGGESTIONS):
                self._enter(ValidationPhase.GENERATING_SUGGESTIONS, "Generating suggestions")
                level = SecurityLevel.STRICT if options.strict_mode else SecurityLevel(
                    self._settings.security.security_level
                )
                suggestions = self.generate_suggestions(rules, conflicts, security, level)

            elapsed_ms = deadline.elapsed_ms()
            result = ValidationResult(
                errors=errors,
                warnings=warnings,
                conflicts=conflicts,
                suggestions=suggestions,
                performance=PerformanceInfo(
                    elapsed_ms=elapsed_ms,
                    rules_processed=len(rules),
                    target_ms=target_ms,
                    achieved=elapsed_ms < target_ms and not deadline.missed,
                ),
                configuration_hash=config_hash,
                security_score=security.security_score,
            )

            if use_cache and not deadline.missed and elapsed_ms < 2 * target_ms:
                self._cache.set(cache_key, result, elapsed_ms)
            if not result.performance.achieved:
                logger.warning("Validation took %.2fms, exceeding target of %.0fms", elapsed_ms, target_ms)

            self._enter(ValidationPhase.COMPLETE, "Validation complete")
            logger.info(
                "Validated %d rules in %.2fms: valid=%s errors=%d warnings=%d conflicts=%d",
                len(rules),
                elapsed_ms,
                result.is_valid,
                len(errors),
                len(warnings),
                len(conflicts),
            )
            return result

        except ValidationTimeoutError as exc:
            logger.warning("%s", exc)
            self._enter(ValidationPhase.COMPLETE, "Validation aborted")
            return ValidationResult.failure(
                str(exc),
                elapsed_ms=exc.elapsed_ms,
                target_ms=target_ms,
                configuration_hash=config_hash,
                context={"phase": exc.phase, "cancelled": exc.cancelled},
            )
        except Exception as exc:
            logger.exception("Validation failed")
            self._enter(ValidationPhase.COMPLETE, "Validation failed")
            return ValidationResult.failure(
                f"Validation failed: {exc}",
                elapsed_ms=deadline.elapsed_ms(),
                target_ms=target_ms,
                configuration_hash=config_hash,
            )

    @staticmethod
    def parse(config: RulesetConfig | Mapping[str, object]) -> RulesetConfig:
        """Validate *config* into a :class:`RulesetConfig`.

        Raises
        ------
        TypeError
            If *config* is neither a mapping nor a ``RulesetConfig``.
        pydantic.ValidationError
            If the document does not match the schema.
        """
        if isinstance(config, RulesetConfig):
            return config
        if not isinstance(config, Mapping):
            raise TypeError(f"Configuration must be a mapping, got {type(config).__name__}")
        return RulesetConfig.model_validate(dict(config))

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def check_rules(self, rules: Sequence[Rule], custom_patterns: Sequence[str] = ()) -> list[ValidationWarning]:
        """Per-rule checks; every finding is a warning."""
        risky_tokens = _DANGEROUS_TOKENS + tuple(token.lower() for token in custom_patterns if token)
        warnings: list[ValidationWarning] = []
        for rule in rules:
            category = rule.category.value
            if not rule.normalized:
                warnings.append(
                    ValidationWarning(
                        kind=WarningKind.INVALID_PATTERN,
                        message=f"Empty rule pattern in {category} rules",
                        severity=SecurityImpact.MEDIUM,
                        location=rule.location,
                    )
                )
                continue
            if rule.normalized in _BROAD_PATTERNS:
                warnings.append(
                    ValidationWarning(
                        kind=WarningKind.BEST_PRACTICE_VIOLATION,
                        message=f'Overly broad pattern "{rule.original}" in {category} rules',
                        severity=SecurityImpact.HIGH,
                        location=rule.location,
                    )
                )
            if rule.matcher.fallback:
                warnings.append(
                    ValidationWarning(
                        kind=WarningKind.INVALID_PATTERN,
                        message=f"Invalid regex pattern: {rule.original}",
                        severity=SecurityImpact.MEDIUM,
                        location=rule.location,
                        context={"treated_as": "literal"},
                    )
                )
            if rule.category == RuleCategory.ALLOW:
                lowered = rule.normalized.lower()
                matched = [token for token in risky_tokens if token in lowered]
                if matched:
                    warnings.append(
                        ValidationWarning(
                            kind=WarningKind.BEST_PRACTICE_VIOLATION,
                            message=f"Potentially dangerous pattern in allow rules: {rule.original}",
                            severity=SecurityImpact.MEDIUM,
                            location=rule.location,
                            context={"tokens": matched},
                        )
                    )
            if self._analyzer.performance_impact(rule) == PerformanceImpact.HIGH:
                warnings.append(
                    ValidationWarning(
                        kind=WarningKind.PERFORMANCE_WARNING,
                        message=f'Pattern "{rule.original}" is expensive to match',
                        severity=SecurityImpact.LOW,
                        location=rule.location,
                    )
                )
        return warnings

    @staticmethod
    def _route_conflicts(
        detected: Sequence[Conflict],
        errors: list[ValidationError],
        warnings: list[ValidationWarning],
    ) -> list[Conflict]:
        conflicts: list[Conflict] = []
        for conflict in detected:
            if conflict.kind == ConflictKind.ALLOW_OVERRIDES_DENY:
                errors.append(
                    ValidationError(
                        kind=ErrorKind.SECURITY_VIOLATION,
                        message=f"ZERO-BYPASS VIOLATION: {conflict.message}",
                        severity=SecurityImpact.CRITICAL,
                        location=conflict.conflicting_rules[-1].location if conflict.conflicting_rules else None,
                        context={
                            "patterns": conflict.patterns,
                            "resolution": "Deny rules must not be overrideable by allow or ask rules",
                        },
                    )
                )
            if conflict.kind in PAIR_CONFLICT_KINDS:
                conflicts.append(conflict)
            else:
                warnings.append(
                    ValidationWarning(
                        kind=WarningKind.BEST_PRACTICE_VIOLATION,
                        message=conflict.message,
                        severity=conflict.security_impact,
                        location=conflict.conflicting_rules[0].location if conflict.conflicting_rules else None,
                        context={"conflict_kind": conflict.kind.value, "patterns": conflict.patterns},
                    )
                )
        return conflicts

    @staticmethod
    def _route_security_issues(
        security: SecurityAnalysis,
        errors: list[ValidationError],
        warnings: list[ValidationWarning],
    ) -> None:
        for issue in security.issues:
            context: dict[str, object] = {
                "issue_type": issue.type.value,
                "affected_rules": list(issue.affected_rules),
                "suggested_fix": issue.suggested_fix,
            }
            if issue.severity in (SecurityImpact.CRITICAL, SecurityImpact.HIGH):
                errors.append(
                    ValidationError(
                        kind=ErrorKind.SECURITY_VIOLATION,
                        message=issue.description,
                        severity=issue.severity,
                        context=context,
                    )
                )
            else:
                warnings.append(
                    ValidationWarning(
                        kind=WarningKind.BEST_PRACTICE_VIOLATION,
                        message=issue.description,
                        severity=issue.severity,
                        context=context,
                    )
                )

    def generate_suggestions(
        self,
        rules: Sequence[Rule],
        conflicts: Sequence[Conflict],
        security: SecurityAnalysis,
        level: SecurityLevel = SecurityLevel.STRICT,
    ) -> list[ResolutionSuggestion]:
        """Build the optimized suggestion list for a validation result."""
        resolver = self.resolver(level)
        suggestions = [
            suggestion
            for conflict in conflicts
            if (suggestion := resolver.resolve_conflict(conflict, rules)) is not None
        ]

        for issue in security.issues:
            message = issue.suggested_fix
            if issue.affected_rules:
                message = f"{message} ({', '.join(issue.affected_rules)})"
            critical = issue.severity == SecurityImpact.CRITICAL
            suggestions.append(
                ResolutionSuggestion(
                    kind=SuggestionKind.FIX if critical else SuggestionKind.WARNING,
                    message=message,
                    critical=critical,
                )
            )

        complex_regexes = [
            rule
            for rule in rules
            if rule.kind == PatternKind.REGEX and len(rule.normalized) > _COMPLEX_REGEX_LENGTH
        ]
        if complex_regexes:
            suggestions.append(
                ResolutionSuggestion(
                    kind=SuggestionKind.OPTIMIZATION,
                    message=(
                        f"{len(complex_regexes)} complex regex patterns detected. "
                        "Consider simplifying for better performance."
                    ),
                )
            )

        if not any(rule.is_deny and "exec" in rule.original for rule in rules):
            suggestions.append(
                ResolutionSuggestion(
                    kind=SuggestionKind.WARNING,
                    message="Consider adding deny rules for shell execution commands",
                )
            )
        return resolver.optimize_resolutions(suggestions)

    def resolver(self, level: SecurityLevel | str = SecurityLevel.STRICT) -> ConflictResolver:
        """Return the engine's resolver for *level*."""
        level = SecurityLevel(level)
        with self._lock:
            resolver = self._resolvers.get(level)
            if resolver is None:
                resolver = ConflictResolver(level, strategy=self._strategy.spawn(), detector=self._detector)
                self._resolvers[level] = resolver
        return resolver

    # ------------------------------------------------------------------
    # Batch and statistics
    # ------------------------------------------------------------------

    def validate_batch(
        self,
        batch_id: str,
        configs: Sequence[RulesetConfig | Mapping[str, object]],
        options: ValidationOptions | None = None,
    ) -> BatchValidationResponse:
        """Validate *configs* concurrently on a bounded thread pool.

        Results come back in input order.
        """
        started = time.perf_counter()
        results: list[ValidationResult] = []
        if configs:
            workers = min(len(configs), self._settings.max_workers or default_worker_count())
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ruleguard-batch") as pool:
                results = list(pool.map(lambda config: self.validate(config, options), configs))
        success_count = sum(1 for result in results if result.is_valid)
        total_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Batch %s: %d configurations validated in %.2fms (%d valid)",
            batch_id,
            len(results),
            total_ms,
            success_count,
        )
        return BatchValidationResponse(
            id=batch_id,
            results=results,
            total_time_ms=total_ms,
            count=len(configs),
            success_count=success_count,
            failure_count=len(results) - success_count,
        )

    def get_rule_statistics(self, config: RulesetConfig | Mapping[str, object]) -> RuleStatistics:
        """Summarize *config* without touching the result cache.

        Raises
        ------
        TypeError, pydantic.ValidationError
            If *config* cannot be parsed.
        """
        rules = normalize_rules(self.parse(config))
        by_category = Counter(rule.category.value for rule in rules)
        kinds = Counter(rule.kind for rule in rules)
        lengths = [len(rule.normalized) for rule in rules]

        detection = self._detector.detect(rules, skip_cache=True, zero_bypass_only=True)
        constrained = {
            (conflict.conflicting_rules[-1].category, conflict.conflicting_rules[-1].pattern)
            for conflict in detection.conflicts
            if conflict.kind == ConflictKind.ALLOW_OVERRIDES_DENY
        }
        uncovered = [
            rule.original
            for rule in rules
            if not rule.is_deny and (rule.category, rule.original) not in constrained
        ]
        duplicates = Counter((rule.category, rule.normalized) for rule in rules)
        redundant = [
            f"{category.value}:{pattern}" for (category, pattern), count in duplicates.items() if count > 1
        ]

        return RuleStatistics(
            total_rules=len(rules),
            by_category={category.value: by_category.get(category.value, 0) for category in RuleCategory},
            complexity=ComplexityStats(
                average_pattern_length=sum(lengths) / len(lengths) if lengths else 0.0,
                max_pattern_length=max(lengths, default=0),
                regex_count=kinds.get(PatternKind.REGEX, 0),
                glob_count=kinds.get(PatternKind.GLOB, 0),
                literal_count=kinds.get(PatternKind.LITERAL, 0),
            ),
            coverage=CoverageStats(
                estimated_coverage=min(100, by_category.get("deny", 0) * 10 + by_category.get("allow", 0) * 5),
                uncovered_patterns=uncovered,
                redundant_rules=redundant,
            ),
        )

    # ------------------------------------------------------------------
    # Cache operations
    # ------------------------------------------------------------------

    def export_cache(self) -> str:
        return self._cache.export()

    def import_cache(self, data: str) -> int:
        """Import serialized cache data; see :meth:`ValidationCache.import_data`."""
        return self._cache.import_data(data)

    def get_cache_stats(self) -> CacheStats:
        return self._cache.stats()

    def clear_cache(self) -> None:
        """Clear the result cache and every internal memo."""
        self._cache.clear()
        self._detector.clear_cache()
        self._analyzer.clear_cache()
        with self._lock:
            resolvers = list(self._resolvers.values())
        for resolver in resolvers:
            resolver.clear_cache()

    def warm_cache(self, configs: Iterable[RulesetConfig | Mapping[str, object]]) -> int:
        """Validate and cache every config not cached yet; return how many were added."""
        parsed = [self.parse(config) for config in configs]
        return self._cache.warm_up(
            parsed,
            lambda config: self.validate(config, ValidationOptions(skip_cache=True)),
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _enter(self, phase: ValidationPhase, operation: str) -> None:
        with self._lock:
            self._state = ValidationState(phase=phase, progress=phase.progress, current_operation=operation)

    def __repr__(self) -> str:
        return (
            f"ValidationEngine(target_ms={self._settings.performance.target_ms}, "
            f"cache_enabled={self._settings.cache.enabled})"
        )


def _cache_key(config_hash: str, options: ValidationOptions) -> str:
    """Result cache key: the configuration hash plus any output-shaping options."""
    variant: list[str] = []
    if options.strict_mode:
        variant.append("strict")
    if options.skip_conflict_detection:
        variant.append("zero-bypass-only")
    if options.custom_patterns:
        variant.append("custom=" + "|".join(sorted(options.custom_patterns)))
    return ":".join([config_hash, *variant])
