"""Conflict resolution: suggestions, verified auto-fixes and their application.

Example
-------
::

    from aumos_ruleguard.resolution import ConflictResolver

    resolver = ConflictResolver(security_level="moderate")
    suggestions = resolver.resolve_all(conflicts, rules)
    outcome = resolver.apply_resolutions(config, suggestions)
    print(resolver.generate_report(outcome))
"""
from __future__ import annotations

from aumos_ruleguard.resolution.changes import (
    AddChange,
    AutoFix,
    Change,
    ModifyChange,
    RemoveChange,
    ReorderChange,
    ResolutionSuggestion,
    SuggestionKind,
    change_target,
)
from aumos_ruleguard.resolution.resolver import (
    RESTRICTION_TEMPLATES,
    AppliedChange,
    ChangeRisk,
    ConflictResolver,
    ResolutionOutcome,
    ResolutionPriority,
    RestrictionTemplate,
    SecurityLevel,
    apply_change,
    assess_risk,
    build_priorities,
    manual_guidance,
    restrict_pattern,
    specify_pattern,
)

__all__ = [
    # Changes
    "AddChange",
    "AutoFix",
    "Change",
    "ModifyChange",
    "RemoveChange",
    "ReorderChange",
    "ResolutionSuggestion",
    "SuggestionKind",
    "change_target",
    # Resolver
    "RESTRICTION_TEMPLATES",
    "AppliedChange",
    "ChangeRisk",
    "ConflictResolver",
    "ResolutionOutcome",
    "ResolutionPriority",
    "RestrictionTemplate",
    "SecurityLevel",
    "apply_change",
    "assess_risk",
    "build_priorities",
    "manual_guidance",
    "restrict_pattern",
    "specify_pattern",
]
