"""Structured validation results.

:class:`ValidationResult` is the terminal artifact of every
:meth:`~aumos_ruleguard.validation.engine.ValidationEngine.validate` call.
It is always well formed, even when validation failed internally, and
round-trips through JSON so it can be cached and exported.
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from aumos_ruleguard.analysis.analyzer import SecurityImpact
from aumos_ruleguard.conflicts.model import Conflict
from aumos_ruleguard.resolution.changes import ResolutionSuggestion


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------


class ErrorKind(str, Enum):
    """Kinds of validation errors; any error makes a result invalid."""

    INVALID_SYNTAX = "INVALID_SYNTAX"
    RULE_CONFLICT = "RULE_CONFLICT"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_PATTERN = "INVALID_PATTERN"
    SECURITY_VIOLATION = "SECURITY_VIOLATION"
    PERFORMANCE_VIOLATION = "PERFORMANCE_VIOLATION"


class WarningKind(str, Enum):
    """Kinds of non-fatal validation warnings."""

    DEPRECATED_PATTERN = "DEPRECATED_PATTERN"
    PERFORMANCE_WARNING = "PERFORMANCE_WARNING"
    BEST_PRACTICE_VIOLATION = "BEST_PRACTICE_VIOLATION"
    COMPATIBILITY_WARNING = "COMPATIBILITY_WARNING"
    INVALID_PATTERN = "INVALID_PATTERN"


# ---------------------------------------------------------------------------
# Result parts
# ---------------------------------------------------------------------------


class ValidationError(BaseModel):
    """A fatal finding.

    Attributes
    ----------
    kind:
        Error taxonomy entry.
    message:
        Human-readable description.
    severity:
        How serious the finding is.
    location:
        Path of the offending rule (``permissions.deny[0]``), if any.
    context:
        JSON-serializable details for programmatic consumers.
    """

    kind: ErrorKind
    message: str
    severity: SecurityImpact = SecurityImpact.HIGH
    location: str | None = None
    context: dict[str, object] = Field(default_factory=dict)


class ValidationWarning(BaseModel):
    """A non-fatal finding."""

    kind: WarningKind
    message: str
    severity: SecurityImpact | None = None
    location: str | None = None
    context: dict[str, object] = Field(default_factory=dict)


class PerformanceInfo(BaseModel):
    """Timing of one validation call against the configured target."""

    elapsed_ms: float = 0.0
    rules_processed: int = 0
    target_ms: float = 100.0
    achieved: bool = False


class ValidationResult(BaseModel):
    """Outcome of validating one ruleset.

    ``is_valid`` is always recomputed from ``errors`` so the two can never
    disagree.
    """

    is_valid: bool = True
    errors: list[ValidationError] = Field(default_factory=list)
    warnings: list[ValidationWarning] = Field(default_factory=list)
    conflicts: list[Conflict] = Field(default_factory=list)
    suggestions: list[ResolutionSuggestion] = Field(default_factory=list)
    performance: PerformanceInfo = Field(default_factory=PerformanceInfo)
    configuration_hash: str | None = None
    security_score: int | None = None

    @model_validator(mode="after")
    def sync_validity(self) -> ValidationResult:
        self.is_valid = not self.errors
        return self

    @classmethod
    def failure(
        cls,
        message: str,
        *,
        elapsed_ms: float,
        target_ms: float,
        configuration_hash: str | None = None,
        context: dict[str, object] | None = None,
    ) -> ValidationResult:
        """Return an invalid result carrying a single INVALID_SYNTAX error."""
        return cls(
            errors=[
                ValidationError(
                    kind=ErrorKind.INVALID_SYNTAX,
                    message=message,
                    severity=SecurityImpact.CRITICAL,
                    context={"elapsed_ms": elapsed_ms, **(context or {})},
                )
            ],
            performance=PerformanceInfo(elapsed_ms=elapsed_ms, target_ms=target_ms, achieved=False),
            configuration_hash=configuration_hash,
        )

    def errors_of(self, kind: ErrorKind) -> list[ValidationError]:
        return [error for error in self.errors if error.kind == kind]

    def warnings_of(self, kind: WarningKind) -> list[ValidationWarning]:
        return [warning for warning in self.warnings if warning.kind == kind]


# ---------------------------------------------------------------------------
# Batch and statistics
# ---------------------------------------------------------------------------


class BatchValidationResponse(BaseModel):
    """Results of :meth:`ValidationEngine.validate_batch`, in input order."""

    id: str
    results: list[ValidationResult] = Field(default_factory=list)
    total_time_ms: float = 0.0
    count: int = 0
    success_count: int = 0
    failure_count: int = 0


class ComplexityStats(BaseModel):
    average_pattern_length: float = 0.0
    max_pattern_length: int = 0
    regex_count: int = 0
    glob_count: int = 0
    literal_count: int = 0


class CoverageStats(BaseModel):
    """Coverage estimate.

    Attributes
    ----------
    estimated_coverage:
        ``min(100, 10 * deny + 5 * allow)``.
    uncovered_patterns:
        Allow/ask patterns that no deny rule overlaps.
    redundant_rules:
        Patterns repeated within the same category.
    """

    estimated_coverage: float = 0.0
    uncovered_patterns: list[str] = Field(default_factory=list)
    redundant_rules: list[str] = Field(default_factory=list)


class RuleStatistics(BaseModel):
    """Summary of a ruleset returned by :meth:`ValidationEngine.get_rule_statistics`."""

    total_rules: int = 0
    by_category: dict[str, int] = Field(default_factory=lambda: {"deny": 0, "allow": 0, "ask": 0})
    complexity: ComplexityStats = Field(default_factory=ComplexityStats)
    coverage: CoverageStats = Field(default_factory=CoverageStats)
