"""Conflict detection engine.

Runs five ordered passes over a normalized rule list:

1. **Zero-bypass** -- an allow/ask rule overlapping any deny rule.
2. **Precedence ambiguity** -- look-alike rules (same signature) spread
   over several tiers where at least two of them actually overlap.
3. **Overlapping patterns** -- significant pairwise overlaps, sharded
   across a thread pool for large rulesets.
4. **Contradictory rules** -- rules in different tiers matching the same
   inputs with high confidence.
5. **Security weaknesses** -- intrinsic pattern weaknesses, one conflict
   per affected rule.

Results are deduplicated by ``(kind, sorted patterns)``, sorted most
severe first, and cached per ruleset content.

Example
-------
>>> from aumos_ruleguard.rules.model import RulesetConfig, normalize_rules
>>> config = RulesetConfig.model_validate(
...     {"permissions": {"deny": ["exec"], "allow": ["exec"]}}
... )
>>> result = ConflictDetector().detect(normalize_rules(config))
>>> result.conflicts[0].kind
<ConflictKind.ALLOW_OVERRIDES_DENY: 'ALLOW_OVERRIDES_DENY'>
"""
from __future__ import annotations

import json
import logging
import os
import threading
import time
from collections import OrderedDict, defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Literal, Sequence

from aumos_ruleguard.analysis.analyzer import (
    PatternAnalyzer,
    SecurityImpact,
    is_contradiction,
    most_severe,
)
from aumos_ruleguard.analysis.overlap import (
    CorpusOverlapStrategy,
    Overlap,
    OverlapKind,
    OverlapStrategy,
)
from aumos_ruleguard.conflicts.model import (
    Conflict,
    ConflictAnalysis,
    ConflictingRule,
    ConflictKind,
    ConflictSeverity,
    DetectionResult,
    ResolutionStrategy,
)
from aumos_ruleguard.rules.model import Rule, RuleCategory

logger = logging.getLogger(__name__)

Pair = tuple[int, int]

_RELATIONSHIP: dict[OverlapKind, str] = {
    OverlapKind.EXACT: "exactly matches",
    OverlapKind.SUBSET: "is a subset of",
    OverlapKind.SUPERSET: "is a superset of",
    OverlapKind.PARTIAL: "partially overlaps with",
}


def default_worker_count() -> int:
    """Worker pool size: ``min(4, available cores)``."""
    return max(1, min(4, os.cpu_count() or 1))


def describe_overlap(overlap: Overlap) -> str:
    return _RELATIONSHIP.get(overlap.kind, "overlaps with")


# ---------------------------------------------------------------------------
# Per-pair conflict builders (shared by the main thread and shard workers)
# ---------------------------------------------------------------------------


def _is_significant(overlap: Overlap) -> bool:
    rule_a, rule_b = overlap.rule_a, overlap.rule_b
    if rule_a.category != rule_b.category:
        return True
    if overlap.kind == OverlapKind.EXACT:
        return True
    if overlap.kind in (OverlapKind.SUBSET, OverlapKind.SUPERSET):
        return rule_a.category == RuleCategory.DENY
    return False


def _overlap_conflict_kind(overlap: Overlap) -> ConflictKind:
    rule_a, rule_b = overlap.rule_a, overlap.rule_b
    if rule_a.category != rule_b.category:
        if rule_a.is_deny or rule_b.is_deny:
            return ConflictKind.ALLOW_OVERRIDES_DENY
        return ConflictKind.CONTRADICTORY_RULES
    if overlap.kind == OverlapKind.EXACT:
        return ConflictKind.OVERLAPPING_PATTERNS
    return ConflictKind.PRECEDENCE_AMBIGUITY


def _overlap_impact(overlap: Overlap) -> SecurityImpact:
    rule_a, rule_b = overlap.rule_a, overlap.rule_b
    if rule_a.is_deny != rule_b.is_deny:
        return SecurityImpact.CRITICAL
    if rule_a.category != rule_b.category:
        return SecurityImpact.HIGH
    if overlap.kind != OverlapKind.PARTIAL:
        return SecurityImpact.MEDIUM
    return SecurityImpact.LOW


def _overlap_resolution(overlap: Overlap) -> ResolutionStrategy:
    rule_a, rule_b = overlap.rule_a, overlap.rule_b
    if overlap.kind == OverlapKind.EXACT and rule_a.category == rule_b.category:
        return ResolutionStrategy.REMOVE_CONFLICTING_RULE
    if rule_a.is_deny or rule_b.is_deny:
        return ResolutionStrategy.MAKE_ALLOW_MORE_RESTRICTIVE
    return ResolutionStrategy.MANUAL_REVIEW_REQUIRED


def overlap_conflict(overlap: Overlap) -> Conflict | None:
    """Return the conflict for a pairwise overlap, or ``None`` if insignificant."""
    if not overlap.overlaps or not _is_significant(overlap):
        return None
    rule_a, rule_b = overlap.rule_a, overlap.rule_b
    consequence = (
        "This creates redundancy or ambiguity in rule evaluation."
        if rule_a.category == rule_b.category
        else "This creates conflicting security policies."
    )
    return Conflict(
        kind=_overlap_conflict_kind(overlap),
        message=(
            f'{rule_a.category.value} rule "{rule_a.original}" {describe_overlap(overlap)} '
            f'{rule_b.category.value} rule "{rule_b.original}". {consequence}'
        ),
        conflicting_rules=[ConflictingRule.from_rule(rule_a), ConflictingRule.from_rule(rule_b)],
        resolution=_overlap_resolution(overlap),
        security_impact=_overlap_impact(overlap),
        overlap_kind=overlap.kind,
    )


def _scan_shard(
    strategy: OverlapStrategy,
    rules: Sequence[Rule],
    pairs: list[Pair],
) -> list[tuple[Pair, Overlap]]:
    """Worker body: analyze *pairs* with a private strategy instance."""
    return [((i, j), strategy.analyze(rules[i], rules[j])) for i, j in pairs]


# ---------------------------------------------------------------------------
# ConflictDetector
# ---------------------------------------------------------------------------


class ConflictDetector:
    """Detects conflicts in a normalized permission ruleset.

    Parameters
    ----------
    strategy:
        Overlap strategy prototype.  Each detection run (and each shard
        worker) uses its own :meth:`~OverlapStrategy.spawn` of it.
    analyzer:
        Pattern analyzer used for signatures and weaknesses.
    deep_analysis:
        Run the security weakness pass.
    parallel:
        Shard the overlapping-pattern pass across a thread pool for
        rulesets larger than *parallel_threshold*.
    parallel_threshold:
        Minimum rule count for sharding.
    max_workers:
        Pool size; defaults to ``min(4, available cores)``.
    cache_size:
        Maximum number of cached detection results.
    """

    def __init__(
        self,
        strategy: OverlapStrategy | None = None,
        analyzer: PatternAnalyzer | None = None,
        *,
        deep_analysis: bool = True,
        parallel: bool = True,
        parallel_threshold: int = 100,
        max_workers: int | None = None,
        cache_size: int = 256,
    ) -> None:
        self._strategy = strategy if strategy is not None else CorpusOverlapStrategy()
        self._analyzer = analyzer if analyzer is not None else PatternAnalyzer(self._strategy)
        self._deep_analysis = deep_analysis
        self._parallel = parallel
        self._parallel_threshold = parallel_threshold
        self._max_workers = max_workers if max_workers is not None else default_worker_count()
        self._cache_size = cache_size
        self._cache: OrderedDict[str, DetectionResult] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def strategy(self) -> OverlapStrategy:
        return self._strategy

    @property
    def analyzer(self) -> PatternAnalyzer:
        return self._analyzer

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def detect(
        self,
        rules: Sequence[Rule],
        *,
        skip_cache: bool = False,
        zero_bypass_only: bool = False,
        parallel: bool | None = None,
        max_workers: int | None = None,
    ) -> DetectionResult:
        """Run the detection passes over *rules*.

        Parameters
        ----------
        rules:
            Normalized rules, deny first.
        skip_cache:
            Ignore (and do not populate) the detection cache.
        zero_bypass_only:
            Run only the zero-bypass pass.  Results are not cached.
        parallel:
            Override the instance's parallel setting for this call.
        max_workers:
            Override the pool size for this call.

        Returns
        -------
        DetectionResult
        """
        started = time.perf_counter()
        cache_key = self._cache_key(rules)
        use_cache = not skip_cache and not zero_bypass_only
        if use_cache:
            cached = self._cache_get(cache_key)
            if cached is not None:
                logger.debug("Conflict detection cache hit: %d conflicts", len(cached.conflicts))
                return cached

        run = _DetectionRun(self._strategy.spawn(), rules)
        conflicts: list[Conflict] = []

        conflicts.extend(self._zero_bypass_pass(run))
        if not zero_bypass_only:
            conflicts.extend(self._precedence_pass(run))
            conflicts.extend(
                self._overlap_pass(
                    run,
                    parallel=self._parallel if parallel is None else parallel,
                    max_workers=max_workers or self._max_workers,
                )
            )
            conflicts.extend(self._contradiction_pass(run))
            if self._deep_analysis:
                conflicts.extend(self._weakness_pass(rules))

        result = DetectionResult(
            conflicts=sort_by_severity(deduplicate(conflicts)),
            overlaps=[overlap for overlap in run.overlaps.values() if overlap.overlaps],
            detection_ms=(time.perf_counter() - started) * 1000,
            pairs_analyzed=run.pairs_analyzed,
        )
        self._log_summary(result)
        if use_cache:
            self._cache_set(cache_key, result)
        return result

    def analyze_conflict(
        self,
        conflict: Conflict,
        others: Sequence[Conflict] = (),
    ) -> ConflictAnalysis:
        """Return a detailed triage of *conflict*.

        Parameters
        ----------
        conflict:
            The conflict to analyze.
        others:
            Other conflicts from the same detection run; those sharing a
            pattern with *conflict* are listed as related.
        """
        vectors: list[str] = []
        if conflict.kind == ConflictKind.ALLOW_OVERRIDES_DENY:
            vectors.extend(
                [
                    "Direct bypass of security policy through permissive rules",
                    "Privilege escalation through rule precedence exploitation",
                    "Path traversal attacks using pattern weaknesses",
                ]
            )
        elif conflict.kind == ConflictKind.PRECEDENCE_AMBIGUITY:
            vectors.extend(
                [
                    "Race condition exploitation in rule evaluation",
                    "Context manipulation to trigger favorable rule",
                ]
            )
        for rule in conflict.conflicting_rules:
            vectors.extend(self._analyzer.attack_vectors(rule.pattern))

        patterns = set(conflict.patterns)
        related = [
            other.message
            for other in others
            if other is not conflict and other != conflict and patterns & set(other.patterns)
        ]
        return ConflictAnalysis(
            conflict=conflict,
            severity=conflict_severity(conflict),
            attack_vectors=tuple(dict.fromkeys(vectors)),
            confidence=conflict_confidence(conflict),
            related_conflicts=tuple(dict.fromkeys(related)),
        )

    def export_report(
        self,
        result: DetectionResult,
        fmt: Literal["json", "markdown"] = "json",
    ) -> str:
        """Render *result* as JSON or as a markdown report."""
        if fmt == "json":
            payload = {
                "conflicts": [conflict.model_dump(mode="json") for conflict in result.conflicts],
                "detection_ms": result.detection_ms,
                "pairs_analyzed": result.pairs_analyzed,
                "overlaps": len(result.overlaps),
            }
            return json.dumps(payload, indent=2)

        lines = [
            "# Conflict Detection Report",
            "",
            "## Summary",
            "",
            f"- **Total Conflicts:** {len(result.conflicts)}",
            f"- **Detection Time:** {result.detection_ms:.2f}ms",
            f"- **Pairs Analyzed:** {result.pairs_analyzed}",
            "",
            "## Critical Violations",
            "",
        ]
        critical = [c for c in result.conflicts if c.security_impact == SecurityImpact.CRITICAL]
        if not critical:
            lines.extend(["_No critical violations detected._", ""])
        for conflict in critical:
            lines.extend(
                [
                    f"### {conflict.kind.value}",
                    "",
                    f"**Message:** {conflict.message}",
                    "",
                    f"**Resolution:** {conflict.resolution.value}",
                    "",
                    "**Affected Rules:**",
                ]
            )
            lines.extend(f"- {rule.category.value}: `{rule.pattern}`" for rule in conflict.conflicting_rules)
            lines.append("")
        return "\n".join(lines)

    def clear_cache(self) -> None:
        """Drop all cached detection results."""
        with self._lock:
            self._cache.clear()

    def cache_stats(self) -> dict[str, object]:
        with self._lock:
            return {"size": len(self._cache), "keys": list(self._cache)}

    # ------------------------------------------------------------------
    # Pass 1: zero-bypass
    # ------------------------------------------------------------------

    def _zero_bypass_pass(self, run: _DetectionRun) -> list[Conflict]:
        conflicts: list[Conflict] = []
        for deny_pos, other_pos in run.cross_deny_pairs():
            deny = run.rules[deny_pos]
            other = run.rules[other_pos]
            overlap = run.overlap(other_pos, deny_pos)
            if not overlap.overlaps:
                continue
            examples = ", ".join(overlap.examples[:3])
            conflicts.append(
                Conflict(
                    kind=ConflictKind.ALLOW_OVERRIDES_DENY,
                    message=(
                        f'CRITICAL SECURITY VIOLATION: {other.category.value} rule "{other.original}" '
                        f'{describe_overlap(overlap)} deny rule "{deny.original}". '
                        "This creates a potential bypass vector where denied operations could be "
                        f"permitted. Examples of affected patterns: {examples}"
                    ),
                    conflicting_rules=[ConflictingRule.from_rule(deny), ConflictingRule.from_rule(other)],
                    resolution=_zero_bypass_resolution(overlap),
                    security_impact=(
                        SecurityImpact.CRITICAL
                        if other.category == RuleCategory.ALLOW
                        else SecurityImpact.HIGH
                    ),
                    overlap_kind=overlap.kind,
                )
            )
        return conflicts

    # ------------------------------------------------------------------
    # Pass 2: precedence ambiguity
    # ------------------------------------------------------------------

    def _precedence_pass(self, run: _DetectionRun) -> list[Conflict]:
        groups: dict[str, list[int]] = defaultdict(list)
        for position, rule in enumerate(run.rules):
            groups[self._analyzer.signature(rule)].append(position)

        conflicts: list[Conflict] = []
        for positions in groups.values():
            if len(positions) < 2:
                continue
            if len({run.rules[p].category for p in positions}) < 2:
                continue
            if not self._group_has_cross_overlap(run, positions):
                continue
            group_rules = [run.rules[p] for p in positions]
            has_deny = any(rule.is_deny for rule in group_rules)
            conflicts.append(
                Conflict(
                    kind=ConflictKind.PRECEDENCE_AMBIGUITY,
                    message="Ambiguous precedence for pattern group: "
                    + ", ".join(rule.original for rule in group_rules),
                    conflicting_rules=[ConflictingRule.from_rule(rule) for rule in group_rules],
                    resolution=ResolutionStrategy.MAKE_DENY_MORE_SPECIFIC,
                    security_impact=SecurityImpact.HIGH if has_deny else SecurityImpact.MEDIUM,
                )
            )
        return conflicts

    def _group_has_cross_overlap(self, run: _DetectionRun, positions: list[int]) -> bool:
        members = set(positions)
        for i, j in run.sorted_candidates:
            if i in members and j in members and run.rules[i].category != run.rules[j].category:
                if run.overlap(i, j).overlaps:
                    return True
        return False

    # ------------------------------------------------------------------
    # Pass 3: overlapping patterns
    # ------------------------------------------------------------------

    def _overlap_pass(self, run: _DetectionRun, *, parallel: bool, max_workers: int) -> list[Conflict]:
        pending = [pair for pair in run.sorted_candidates if pair not in run.overlaps]
        if parallel and len(run.rules) > self._parallel_threshold and max_workers > 1 and pending:
            self._scan_parallel(run, pending, max_workers)

        conflicts: list[Conflict] = []
        for i, j in run.sorted_candidates:
            conflict = overlap_conflict(run.overlap(i, j))
            if conflict is not None:
                conflicts.append(conflict)
        return conflicts

    def _scan_parallel(self, run: _DetectionRun, pending: list[Pair], max_workers: int) -> None:
        shards = _shard_by_index(pending, len(run.rules), max_workers)
        logger.debug(
            "Dispatching %d overlap pairs across %d shards (%d workers)",
            len(pending),
            len(shards),
            max_workers,
        )
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ruleguard-overlap") as pool:
            futures = [
                pool.submit(_scan_shard, self._strategy.spawn(), run.rules, shard) for shard in shards
            ]
            for future in futures:
                for pair, overlap in future.result():
                    run.store(pair, overlap)

    # ------------------------------------------------------------------
    # Pass 4: contradictory rules
    # ------------------------------------------------------------------

    def _contradiction_pass(self, run: _DetectionRun) -> list[Conflict]:
        conflicts: list[Conflict] = []
        for i, j in run.sorted_candidates:
            overlap = run.overlap(i, j)
            if not is_contradiction(overlap):
                continue
            rule_a, rule_b = overlap.rule_a, overlap.rule_b
            if rule_a.is_deny or rule_b.is_deny:
                impact = SecurityImpact.HIGH
            else:
                impact = SecurityImpact.MEDIUM
            conflicts.append(
                Conflict(
                    kind=ConflictKind.CONTRADICTORY_RULES,
                    message=(
                        f'Rules "{rule_a.original}" and "{rule_b.original}" have contradictory intents'
                    ),
                    conflicting_rules=[ConflictingRule.from_rule(rule_a), ConflictingRule.from_rule(rule_b)],
                    resolution=ResolutionStrategy.MANUAL_REVIEW_REQUIRED,
                    security_impact=impact,
                    overlap_kind=overlap.kind,
                )
            )
        return conflicts

    # ------------------------------------------------------------------
    # Pass 5: security weaknesses
    # ------------------------------------------------------------------

    def _weakness_pass(self, rules: Sequence[Rule]) -> list[Conflict]:
        conflicts: list[Conflict] = []
        for rule in rules:
            weaknesses = self._analyzer.detect_weaknesses(rule)
            if not weaknesses:
                continue
            names = ", ".join(weakness.type.value for weakness in weaknesses)
            worst = most_severe(weaknesses)
            lead = next(weakness for weakness in weaknesses if weakness.severity == worst)
            conflicts.append(
                Conflict(
                    kind=ConflictKind.SECURITY_VIOLATION,
                    message=f'{rule.category.value} rule "{rule.original}" has weaknesses ({names}): '
                    f"{lead.description}",
                    conflicting_rules=[ConflictingRule.from_rule(rule)],
                    resolution=ResolutionStrategy.MANUAL_REVIEW_REQUIRED,
                    security_impact=worst,
                )
            )
        return conflicts

    # ------------------------------------------------------------------
    # Cache helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _cache_key(rules: Sequence[Rule]) -> str:
        return "conflicts:" + ",".join(sorted(f"{rule.category.value}:{rule.original}" for rule in rules))

    def _cache_get(self, key: str) -> DetectionResult | None:
        with self._lock:
            cached = self._cache.get(key)
            if cached is None:
                return None
            self._cache.move_to_end(key)
        return DetectionResult(
            conflicts=[conflict.model_copy(deep=True) for conflict in cached.conflicts],
            overlaps=list(cached.overlaps),
            detection_ms=cached.detection_ms,
            pairs_analyzed=cached.pairs_analyzed,
            from_cache=True,
        )

    def _cache_set(self, key: str, result: DetectionResult) -> None:
        with self._lock:
            self._cache[key] = result
            self._cache.move_to_end(key)
            while len(self._cache) > self._cache_size:
                self._cache.popitem(last=False)

    @staticmethod
    def _log_summary(result: DetectionResult) -> None:
        critical = sum(1 for c in result.conflicts if c.security_impact == SecurityImpact.CRITICAL)
        logger.info(
            "Conflict detection: %d conflicts (%d critical), %d overlaps, %d pairs in %.2fms",
            len(result.conflicts),
            critical,
            len(result.overlaps),
            result.pairs_analyzed,
            result.detection_ms,
        )
        if critical:
            logger.warning("Critical zero-bypass violations detected: %d", critical)


# ---------------------------------------------------------------------------
# Per-run state
# ---------------------------------------------------------------------------


class _DetectionRun:
    """Overlaps computed during a single :meth:`ConflictDetector.detect` call."""

    def __init__(self, strategy: OverlapStrategy, rules: Sequence[Rule]) -> None:
        self.strategy = strategy
        self.rules = list(rules)
        self.candidates = strategy.candidate_pairs(self.rules)
        self.sorted_candidates: list[Pair] = sorted(self.candidates)
        self.overlaps: dict[Pair, Overlap] = {}
        self.pairs_analyzed = 0

    def cross_deny_pairs(self) -> list[Pair]:
        """Candidate ``(deny, allow|ask)`` position pairs."""
        pairs: list[Pair] = []
        for i, j in self.sorted_candidates:
            deny_i = self.rules[i].is_deny
            deny_j = self.rules[j].is_deny
            if deny_i and not deny_j:
                pairs.append((i, j))
            elif deny_j and not deny_i:
                pairs.append((j, i))
        return pairs

    def overlap(self, first: int, second: int) -> Overlap:
        """Overlap of rule *first* relative to rule *second*."""
        key = (min(first, second), max(first, second))
        overlap = self.overlaps.get(key)
        if overlap is None:
            if key in self.candidates:
                overlap = self.strategy.analyze(self.rules[key[0]], self.rules[key[1]])
                self.pairs_analyzed += 1
            else:
                overlap = Overlap(self.rules[key[0]], self.rules[key[1]], OverlapKind.NONE)
            self.overlaps[key] = overlap
        return overlap if first == key[0] else overlap.reversed()

    def store(self, pair: Pair, overlap: Overlap) -> None:
        if pair not in self.overlaps:
            self.overlaps[pair] = overlap
            self.pairs_analyzed += 1


def _shard_by_index(pairs: list[Pair], rule_count: int, shard_count: int) -> list[list[Pair]]:
    """Split *pairs* into contiguous first-index ranges, one per shard."""
    span = max(1, -(-rule_count // shard_count))
    shards: dict[int, list[Pair]] = defaultdict(list)
    for pair in pairs:
        shards[pair[0] // span].append(pair)
    return [shards[key] for key in sorted(shards)]


# ---------------------------------------------------------------------------
# Post-processing helpers
# ---------------------------------------------------------------------------


def _zero_bypass_resolution(overlap: Overlap) -> ResolutionStrategy:
    # overlap is oriented (allow/ask, deny)
    match overlap.kind:
        case OverlapKind.EXACT:
            return ResolutionStrategy.REMOVE_CONFLICTING_RULE
        case OverlapKind.SUBSET:
            return ResolutionStrategy.MAKE_ALLOW_MORE_RESTRICTIVE
        case OverlapKind.SUPERSET:
            return ResolutionStrategy.MAKE_DENY_MORE_SPECIFIC
        case _:
            return ResolutionStrategy.MANUAL_REVIEW_REQUIRED


def deduplicate(conflicts: Sequence[Conflict]) -> list[Conflict]:
    """Drop conflicts whose ``(kind, sorted patterns)`` was already seen."""
    seen: set[tuple[str, tuple[str, ...]]] = set()
    unique: list[Conflict] = []
    for conflict in conflicts:
        key = conflict.dedupe_key()
        if key in seen:
            continue
        seen.add(key)
        unique.append(conflict)
    return unique


def sort_by_severity(conflicts: Sequence[Conflict]) -> list[Conflict]:
    """Stable sort, critical first."""
    return sorted(conflicts, key=lambda conflict: conflict.security_impact.rank)


def conflict_severity(conflict: Conflict) -> ConflictSeverity:
    if conflict.security_impact == SecurityImpact.CRITICAL:
        return ConflictSeverity.CRITICAL
    if conflict.kind == ConflictKind.ALLOW_OVERRIDES_DENY:
        return ConflictSeverity.CRITICAL
    if conflict.security_impact == SecurityImpact.HIGH:
        return ConflictSeverity.HIGH
    if conflict.kind == ConflictKind.PRECEDENCE_AMBIGUITY:
        return ConflictSeverity.MEDIUM
    if conflict.kind == ConflictKind.OVERLAPPING_PATTERNS:
        return ConflictSeverity.LOW
    return ConflictSeverity.INFO


def conflict_confidence(conflict: Conflict) -> int:
    """0-100 confidence that *conflict* is real rather than a sampling artifact."""
    confidence = 100
    for rule in conflict.conflicting_rules:
        if len(rule.pattern) > 50:
            confidence -= 10
        if "*" in rule.pattern:
            confidence -= 5
        if "?" in rule.pattern:
            confidence -= 5
    patterns = conflict.patterns
    if (
        conflict.kind == ConflictKind.OVERLAPPING_PATTERNS
        and len(patterns) >= 2
        and patterns[0] == patterns[1]
    ):
        confidence = 100
    return max(0, min(100, confidence))
