"""Benchmark: Conflict detection latency, per-call p50/p99.

Measures uncached ConflictDetector.detect() on a 60-rule ruleset that
contains one zero-bypass violation and one duplicate rule.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from aumos_ruleguard.conflicts.detector import ConflictDetector
from aumos_ruleguard.rules.model import Rule, RulesetConfig, normalize_rules

_WARMUP: int = 5
_ITERATIONS: int = 100


def _make_rules() -> list[Rule]:
    """Build a ruleset with a single allow-inside-deny violation."""
    config = RulesetConfig.model_validate(
        {
            "permissions": {
                "deny": [f"secrets/vault{i}/*" for i in range(20)],
                "ask": [f"deploy/env{i}" for i in range(19)] + ["deploy/env0"],
                "allow": [f"docs/page{i}.md" for i in range(19)] + ["secrets/vault3/readme.txt"],
            }
        }
    )
    return normalize_rules(config)


def bench_conflict_detection_latency() -> dict[str, object]:
    """Benchmark ConflictDetector.detect() per-call latency.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p50_latency_ms, p99_latency_ms, conflicts.
    """
    detector = ConflictDetector(parallel=False)
    rules = _make_rules()

    for _ in range(_WARMUP):
        detector.detect(rules, skip_cache=True)

    latencies_ms: list[float] = []
    conflicts = 0
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        result = detector.detect(rules, skip_cache=True)
        latencies_ms.append((time.perf_counter() - t0) * 1000)
        conflicts = len(result.conflicts)

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    result_dict: dict[str, object] = {
        "operation": "conflict_detection_latency",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(sum(latencies_ms) / n, 4),
        "p50_latency_ms": round(sorted_lats[n // 2], 4),
        "p99_latency_ms": round(sorted_lats[min(int(n * 0.99), n - 1)], 4),
        "conflicts": conflicts,
    }
    print(
        f"[bench_detection_latency] {result_dict['operation']}: "
        f"p99={result_dict['p99_latency_ms']:.4f}ms  "
        f"mean={result_dict['avg_latency_ms']:.4f}ms  "
        f"conflicts={conflicts}"
    )
    return result_dict


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_conflict_detection_latency()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "detection_latency_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
