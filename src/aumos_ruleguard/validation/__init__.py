"""Validation engine, result cache, security analysis and result models.

Example
-------
::

    from aumos_ruleguard.validation import ValidationEngine, ValidationOptions

    engine = ValidationEngine()
    result = engine.validate(
        {"permissions": {"deny": ["*.exe"], "allow": ["app.exe"]}},
        ValidationOptions(timeout_ms=500),
    )
    for error in result.errors:
        print(error.kind.value, error.message)
"""
from __future__ import annotations

from aumos_ruleguard.validation.cache import (
    CACHE_FORMAT_VERSION,
    CacheEntry,
    CacheStats,
    ValidationCache,
    canonicalize,
    generate_hash,
)
from aumos_ruleguard.validation.engine import (
    ValidationEngine,
    ValidationOptions,
    ValidationPhase,
    ValidationState,
)
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
from aumos_ruleguard.validation.security import (
    BypassVector,
    BypassVectorType,
    SecurityAnalysis,
    SecurityIssue,
    SecurityIssueType,
    analyze_security,
)

__all__ = [
    # Engine
    "ValidationEngine",
    "ValidationOptions",
    "ValidationPhase",
    "ValidationState",
    # Results
    "BatchValidationResponse",
    "ComplexityStats",
    "CoverageStats",
    "ErrorKind",
    "PerformanceInfo",
    "RuleStatistics",
    "ValidationError",
    "ValidationResult",
    "ValidationWarning",
    "WarningKind",
    # Cache
    "CACHE_FORMAT_VERSION",
    "CacheEntry",
    "CacheStats",
    "ValidationCache",
    "canonicalize",
    "generate_hash",
    # Security
    "BypassVector",
    "BypassVectorType",
    "SecurityAnalysis",
    "SecurityIssue",
    "SecurityIssueType",
    "analyze_security",
]
