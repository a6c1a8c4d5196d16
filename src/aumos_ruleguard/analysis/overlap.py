"""Overlap analysis between pairs of permission rules.

Deciding whether two arbitrary glob/regex patterns can match a common
input is expensive in general.  :class:`CorpusOverlapStrategy` instead
evaluates both rules against a bounded corpus of generated test inputs
and reports how the match sets relate.  The result is a heuristic and
carries a ``confidence`` score to say so.

The conflict detector and the resolver only talk to the abstract
:class:`OverlapStrategy`, so a different algorithm (for example an exact
automata intersection) can be plugged in without touching them.

Example
-------
>>> from aumos_ruleguard.rules.model import RuleCategory, build_rule
>>> strategy = CorpusOverlapStrategy()
>>> deny = build_rule("*.exe", RuleCategory.DENY)
>>> allow = build_rule("app.exe", RuleCategory.ALLOW)
>>> strategy.analyze(allow, deny).kind
<OverlapKind.SUBSET: 'subset'>
"""
from __future__ import annotations

import itertools
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from aumos_ruleguard.patterns.matcher import (
    FIXED_CORPUS,
    PatternKind,
    PatternMatcher,
    pattern_inputs,
)
from aumos_ruleguard.patterns.scoring import complexity_score
from aumos_ruleguard.rules.model import Rule

logger = logging.getLogger(__name__)

_MAX_EXAMPLES: int = 5
_COMPLEXITY_DISCOUNT_THRESHOLD: float = 50.0


class OverlapKind(str, Enum):
    """Relationship between the match sets of two rules (A relative to B)."""

    NONE = "none"
    EXACT = "exact"
    SUBSET = "subset"
    SUPERSET = "superset"
    PARTIAL = "partial"


@dataclass(frozen=True)
class Overlap:
    """Result of comparing two rules.

    Attributes
    ----------
    rule_a:
        First rule of the comparison.
    rule_b:
        Second rule of the comparison.
    kind:
        How A's match set relates to B's.  ``SUBSET`` means every sampled
        input matched by A is also matched by B.
    examples:
        Up to five inputs matched by both rules.
    confidence:
        0-100 estimate of how reliable the classification is.
    coverage:
        Percentage of the sampled corpus matched by both rules.
    """

    rule_a: Rule
    rule_b: Rule
    kind: OverlapKind
    examples: tuple[str, ...] = field(default_factory=tuple)
    confidence: float = 0.0
    coverage: float = 0.0

    @property
    def overlaps(self) -> bool:
        return self.kind != OverlapKind.NONE

    def reversed(self) -> Overlap:
        """Return the same overlap seen from *rule_b*'s side."""
        flipped = {
            OverlapKind.SUBSET: OverlapKind.SUPERSET,
            OverlapKind.SUPERSET: OverlapKind.SUBSET,
        }.get(self.kind, self.kind)
        return Overlap(
            rule_a=self.rule_b,
            rule_b=self.rule_a,
            kind=flipped,
            examples=self.examples,
            confidence=self.confidence,
            coverage=self.coverage,
        )


# ---------------------------------------------------------------------------
# Abstract strategy
# ---------------------------------------------------------------------------


class OverlapStrategy(ABC):
    """Decides how the match sets of two rules relate."""

    @abstractmethod
    def analyze(self, rule_a: Rule, rule_b: Rule) -> Overlap:
        """Return the :class:`Overlap` of *rule_a* relative to *rule_b*."""

    @abstractmethod
    def candidate_pairs(self, rules: Sequence[Rule]) -> set[tuple[int, int]]:
        """Return index pairs ``(i, j)`` with ``i < j`` that may overlap.

        Every pair left out of the returned set must analyze to
        :attr:`OverlapKind.NONE`.
        """

    @abstractmethod
    def spawn(self) -> "OverlapStrategy":
        """Return a fresh instance with the same settings and no shared state."""


# ---------------------------------------------------------------------------
# Corpus-based implementation
# ---------------------------------------------------------------------------


class CorpusOverlapStrategy(OverlapStrategy):
    """Heuristic overlap analysis over a generated test corpus.

    The corpus for a pair is the pattern-specific inputs of both rules
    (see :func:`~aumos_ruleguard.patterns.matcher.pattern_inputs`) plus a
    fixed set of common filenames, paths and attack strings.

    Parameters
    ----------
    matcher:
        Memoizing matcher to evaluate inputs with.  A private one is
        created when omitted.
    """

    def __init__(self, matcher: PatternMatcher | None = None) -> None:
        self._matcher = matcher if matcher is not None else PatternMatcher()
        self._inputs: dict[tuple[str, PatternKind], list[str]] = {}

    def spawn(self) -> CorpusOverlapStrategy:
        return CorpusOverlapStrategy()

    # ------------------------------------------------------------------
    # Pair analysis
    # ------------------------------------------------------------------

    def analyze(self, rule_a: Rule, rule_b: Rule) -> Overlap:
        """Classify the overlap of *rule_a* relative to *rule_b*.

        Identical normalized patterns are reported as ``EXACT`` without
        sampling.
        """
        if rule_a.normalized == rule_b.normalized and rule_a.kind == rule_b.kind:
            return Overlap(
                rule_a=rule_a,
                rule_b=rule_b,
                kind=OverlapKind.EXACT,
                examples=(rule_a.normalized,),
                confidence=100.0,
                coverage=100.0,
            )

        corpus = self._corpus(rule_a, rule_b)
        both: list[str] = []
        a_only = 0
        b_only = 0
        for text in corpus:
            in_a = self._matches(rule_a, text)
            in_b = self._matches(rule_b, text)
            if in_a and in_b:
                both.append(text)
            elif in_a:
                a_only += 1
            elif in_b:
                b_only += 1

        total = len(corpus)
        kind = _classify(len(both), a_only, b_only, total)
        return Overlap(
            rule_a=rule_a,
            rule_b=rule_b,
            kind=kind,
            examples=tuple(both[:_MAX_EXAMPLES]),
            confidence=self._confidence(len(both), total, rule_a, rule_b),
            coverage=len(both) / total * 100 if total else 0.0,
        )

    def _confidence(self, both: int, total: int, rule_a: Rule, rule_b: Rule) -> float:
        confidence = both / total * 100 if total else 0.0
        if rule_a.kind == PatternKind.LITERAL and rule_b.kind == PatternKind.LITERAL:
            confidence = 100.0 if rule_a.normalized == rule_b.normalized else 0.0
        if (
            complexity_score(rule_a.normalized, rule_a.kind) > _COMPLEXITY_DISCOUNT_THRESHOLD
            or complexity_score(rule_b.normalized, rule_b.kind) > _COMPLEXITY_DISCOUNT_THRESHOLD
        ):
            confidence *= 0.8
        return max(0.0, min(100.0, confidence))

    def _corpus(self, rule_a: Rule, rule_b: Rule) -> list[str]:
        combined = self._rule_inputs(rule_a) + self._rule_inputs(rule_b) + list(FIXED_CORPUS)
        return list(dict.fromkeys(combined))

    def _rule_inputs(self, rule: Rule) -> list[str]:
        key = (rule.normalized, rule.kind)
        cached = self._inputs.get(key)
        if cached is None:
            cached = pattern_inputs(rule.normalized, rule.kind)
            self._inputs[key] = cached
        return cached

    def _matches(self, rule: Rule, text: str) -> bool:
        return self._matcher.match(rule.normalized, text, rule.kind)

    # ------------------------------------------------------------------
    # Candidate pruning
    # ------------------------------------------------------------------

    def candidate_pairs(self, rules: Sequence[Rule]) -> set[tuple[int, int]]:
        """Return the index pairs that share at least one matching corpus input.

        Builds an inverted index from every input in the union of all
        corpora to the rules matching it.  Anchored rules are bucketed by
        literal prefix so each input is only tested against rules that
        could possibly match it.
        """
        by_prefix: dict[str, list[int]] = defaultdict(list)
        unanchored: list[int] = []
        for position, rule in enumerate(rules):
            if rule.matcher.anchored:
                by_prefix[rule.matcher.literal_prefix].append(position)
            else:
                unanchored.append(position)

        owners: dict[str, list[int]] = defaultdict(list)
        for position, rule in enumerate(rules):
            for text in self._rule_inputs(rule):
                owners[text].append(position)

        matched_by: dict[str, list[int]] = {}
        for text in itertools.chain(FIXED_CORPUS, owners):
            if text in matched_by:
                continue
            matched_by[text] = self._rules_matching(text, rules, by_prefix, unanchored)

        pairs: set[tuple[int, int]] = set()
        for text in FIXED_CORPUS:
            for i, j in itertools.combinations(matched_by[text], 2):
                pairs.add((min(i, j), max(i, j)))

        for text, owner_positions in owners.items():
            matching = matched_by[text]
            if len(matching) < 2:
                continue
            matching_set = set(matching)
            for owner in owner_positions:
                if owner not in matching_set:
                    continue
                for other in matching:
                    if other != owner:
                        pairs.add((min(owner, other), max(owner, other)))

        # Identical patterns short-circuit to EXACT in analyze().
        by_text: dict[tuple[str, PatternKind], list[int]] = defaultdict(list)
        for position, rule in enumerate(rules):
            by_text[(rule.normalized, rule.kind)].append(position)
        for positions in by_text.values():
            pairs.update(itertools.combinations(positions, 2))

        logger.debug("Candidate overlap pairs: %d of %d rules", len(pairs), len(rules))
        return pairs

    def _rules_matching(
        self,
        text: str,
        rules: Sequence[Rule],
        by_prefix: dict[str, list[int]],
        unanchored: list[int],
    ) -> list[int]:
        matching: list[int] = []
        for length in range(len(text) + 1):
            for position in by_prefix.get(text[:length], ()):
                if self._matches(rules[position], text):
                    matching.append(position)
        for position in unanchored:
            if self._matches(rules[position], text):
                matching.append(position)
        return matching


def _classify(both: int, a_only: int, b_only: int, total: int) -> OverlapKind:
    if both == 0:
        return OverlapKind.NONE
    if both == total and a_only == 0 and b_only == 0:
        return OverlapKind.EXACT
    if a_only == 0:
        return OverlapKind.SUBSET
    if b_only == 0:
        return OverlapKind.SUPERSET
    return OverlapKind.PARTIAL
