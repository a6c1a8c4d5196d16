"""Conflict detection over normalized permission rules.

Example
-------
::

    from aumos_ruleguard.conflicts import ConflictDetector
    from aumos_ruleguard.rules import RulesetConfig, normalize_rules

    config = RulesetConfig.model_validate(
        {"permissions": {"deny": ["*.exe"], "allow": ["app.exe"]}}
    )
    result = ConflictDetector().detect(normalize_rules(config))
    for conflict in result.conflicts:
        print(conflict.security_impact.value, conflict.message)
"""
from __future__ import annotations

from aumos_ruleguard.conflicts.detector import (
    ConflictDetector,
    conflict_confidence,
    conflict_severity,
    deduplicate,
    default_worker_count,
    overlap_conflict,
    sort_by_severity,
)
from aumos_ruleguard.conflicts.model import (
    PAIR_CONFLICT_KINDS,
    Conflict,
    ConflictAnalysis,
    ConflictingRule,
    ConflictKind,
    ConflictSeverity,
    DetectionResult,
    ResolutionStrategy,
)

__all__ = [
    # Model
    "PAIR_CONFLICT_KINDS",
    "Conflict",
    "ConflictAnalysis",
    "ConflictingRule",
    "ConflictKind",
    "ConflictSeverity",
    "DetectionResult",
    "ResolutionStrategy",
    # Detector
    "ConflictDetector",
    "conflict_confidence",
    "conflict_severity",
    "deduplicate",
    "default_worker_count",
    "overlap_conflict",
    "sort_by_severity",
]
