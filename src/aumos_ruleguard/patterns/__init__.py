"""Pattern classification, compilation and scoring.

Example
-------
::

    from aumos_ruleguard.patterns import PatternKind, classify_pattern, compile_pattern

    assert classify_pattern("src/*.py") is PatternKind.GLOB
    assert compile_pattern("src/*.py").matches("src/app.py")
"""
from __future__ import annotations

from aumos_ruleguard.patterns.matcher import (
    FIXED_CORPUS,
    CompiledPattern,
    PatternKind,
    PatternMatcher,
    classify_pattern,
    compile_pattern,
    generate_test_inputs,
    glob_to_regex,
    is_valid_regex,
    pattern_inputs,
)
from aumos_ruleguard.patterns.scoring import (
    complexity_score,
    removal_specificity,
    security_score,
    specificity_score,
)

__all__ = [
    # Matching
    "FIXED_CORPUS",
    "CompiledPattern",
    "PatternKind",
    "PatternMatcher",
    "classify_pattern",
    "compile_pattern",
    "generate_test_inputs",
    "glob_to_regex",
    "is_valid_regex",
    "pattern_inputs",
    # Scoring
    "complexity_score",
    "removal_specificity",
    "security_score",
    "specificity_score",
]
