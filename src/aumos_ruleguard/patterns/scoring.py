"""Numeric scores shared by the analyzer, the overlap strategy and the resolver."""
from __future__ import annotations

import re

from aumos_ruleguard.patterns.matcher import PatternKind

_SPECIAL_CHARS = re.compile(r"[*?\[\]{}()|\\^$+.]")


def complexity_score(pattern: str, kind: PatternKind) -> float:
    """Return a 0-100 complexity estimate for *pattern*.

    Length contributes up to 30 points, each special character 5, each
    opening parenthesis another 10, and the kind itself 20 (regex) or 10
    (glob).
    """
    score = min(len(pattern) / 2, 30)
    score += len(_SPECIAL_CHARS.findall(pattern)) * 5
    score += pattern.count("(") * 10
    if kind == PatternKind.REGEX:
        score += 20
    elif kind == PatternKind.GLOB:
        score += 10
    return min(100.0, score)


def specificity_score(pattern: str, kind: PatternKind) -> int:
    """Return a 0-100 estimate of how narrowly *pattern* matches."""
    score = 100
    score -= pattern.count("*") * 15
    score -= pattern.count("?") * 10
    if len(pattern) < 5:
        score -= 30
    elif len(pattern) < 10:
        score -= 15
    if kind == PatternKind.LITERAL:
        score += 20
    return max(0, min(100, score))


def removal_specificity(pattern: str) -> int:
    """Specificity used to pick which side of a conflict to remove.

    Wildcards subtract, path depth and length add.  Unbounded above and
    below; only the relative order of two patterns matters.
    """
    score = 100
    score -= pattern.count("*") * 20
    score -= pattern.count("?") * 10
    score += pattern.count("/") * 5
    score += min(len(pattern), 20)
    return score


def security_score(pattern: str) -> int:
    """Return a 0-100 score of how hard *pattern* is to sidestep.

    Fewer wildcards, longer text and deeper paths score higher.
    """
    score = 50
    if "*" not in pattern and "?" not in pattern:
        score += 30
    score += min(len(pattern), 20)
    score += pattern.count("/") * 5
    score -= pattern.count("*") * 10
    score -= pattern.count("?") * 5
    return max(0, min(100, score))
