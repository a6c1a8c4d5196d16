"""aumos-ruleguard: zero-bypass validation for deny/allow/ask permission rulesets.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import aumos_ruleguard as guard
>>> guard.__version__
'0.1.0'
>>> engine = guard.ValidationEngine()
>>> result = engine.validate({"permissions": {"deny": ["*.exe"], "allow": ["app.exe"]}})
>>> result.is_valid
False
"""
from __future__ import annotations

__version__: str = "0.1.0"

from aumos_ruleguard.convenience import RulesetGuard
from aumos_ruleguard.errors import (
    CacheImportError,
    ResolutionError,
    RuleguardError,
    ValidationTimeoutError,
)

# ---------------------------------------------------------------------------
# Rules and patterns
# ---------------------------------------------------------------------------
from aumos_ruleguard.patterns.matcher import PatternKind, PatternMatcher, classify_pattern, compile_pattern
from aumos_ruleguard.rules.model import PermissionsBlock, Rule, RuleCategory, RulesetConfig, normalize_rules

# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------
from aumos_ruleguard.analysis.analyzer import PatternAnalyzer, SecurityImpact
from aumos_ruleguard.analysis.overlap import CorpusOverlapStrategy, Overlap, OverlapKind, OverlapStrategy

# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------
from aumos_ruleguard.conflicts.detector import ConflictDetector
from aumos_ruleguard.conflicts.model import Conflict, ConflictKind, DetectionResult, ResolutionStrategy

# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------
from aumos_ruleguard.resolution.changes import AutoFix, ResolutionSuggestion, SuggestionKind
from aumos_ruleguard.resolution.resolver import ConflictResolver, ResolutionOutcome, SecurityLevel

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
from aumos_ruleguard.validation.cache import ValidationCache
from aumos_ruleguard.validation.engine import ValidationEngine, ValidationOptions, ValidationPhase
from aumos_ruleguard.validation.results import (
    BatchValidationResponse,
    ErrorKind,
    RuleStatistics,
    ValidationError,
    ValidationResult,
    ValidationWarning,
    WarningKind,
)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from aumos_ruleguard.config.settings import EngineSettings, SettingsLoader

__all__ = [
    "__version__",
    "RulesetGuard",
    # Errors
    "CacheImportError",
    "ResolutionError",
    "RuleguardError",
    "ValidationTimeoutError",
    # Rules and patterns
    "PatternKind",
    "PatternMatcher",
    "PermissionsBlock",
    "Rule",
    "RuleCategory",
    "RulesetConfig",
    "classify_pattern",
    "compile_pattern",
    "normalize_rules",
    # Analysis
    "CorpusOverlapStrategy",
    "Overlap",
    "OverlapKind",
    "OverlapStrategy",
    "PatternAnalyzer",
    "SecurityImpact",
    # Conflicts
    "Conflict",
    "ConflictDetector",
    "ConflictKind",
    "DetectionResult",
    "ResolutionStrategy",
    # Resolution
    "AutoFix",
    "ConflictResolver",
    "ResolutionOutcome",
    "ResolutionSuggestion",
    "SecurityLevel",
    "SuggestionKind",
    # Validation
    "BatchValidationResponse",
    "ErrorKind",
    "RuleStatistics",
    "ValidationCache",
    "ValidationEngine",
    "ValidationError",
    "ValidationOptions",
    "ValidationPhase",
    "ValidationResult",
    "ValidationWarning",
    "WarningKind",
    # Configuration
    "EngineSettings",
    "SettingsLoader",
]
