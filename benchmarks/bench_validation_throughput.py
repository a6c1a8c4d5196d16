"""Benchmark: ruleset validation throughput, validations per second.

Measures uncached ValidationEngine.validate() calls on a 30-rule ruleset
with disjoint deny and allow rules, then the latency of a 1000-rule
ruleset to check the single-call target.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from aumos_ruleguard.validation.engine import ValidationEngine, ValidationOptions

_ITERATIONS: int = 50
_LARGE_RULE_COUNT: int = 1000


def _make_ruleset(size: int) -> dict[str, object]:
    """Build a conflict-free ruleset with *size* rules split across categories."""
    deny = [f"blocked/area{i}/*" for i in range(size // 3)]
    ask = [f"review/item{i}.cfg" for i in range(size // 3)]
    allow = [f"safe/file{i}.txt" for i in range(size - 2 * (size // 3))]
    return {"permissions": {"deny": deny, "allow": allow, "ask": ask}}


def bench_validation_throughput() -> dict[str, object]:
    """Benchmark ValidationEngine.validate() throughput without the cache.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, large_ruleset_ms.
    """
    engine = ValidationEngine()
    ruleset = _make_ruleset(30)
    options = ValidationOptions(skip_cache=True)

    start = time.perf_counter()
    for _ in range(_ITERATIONS):
        engine.validate(ruleset, options)
    total = time.perf_counter() - start

    large = _make_ruleset(_LARGE_RULE_COUNT)
    large_start = time.perf_counter()
    engine.validate(large, options)
    large_ms = (time.perf_counter() - large_start) * 1000

    result: dict[str, object] = {
        "operation": "ruleset_validation_throughput",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(total / _ITERATIONS * 1000, 4),
        "large_ruleset_ms": round(large_ms, 2),
    }
    print(
        f"[bench_validation_throughput] {result['operation']}: "
        f"{result['ops_per_second']:,.0f} ops/sec  "
        f"avg {result['avg_latency_ms']:.4f} ms  "
        f"{_LARGE_RULE_COUNT} rules {result['large_ruleset_ms']:.1f} ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_validation_throughput()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "throughput_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
