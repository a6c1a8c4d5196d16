#!/usr/bin/env python3
"""Example: Batch Validation, Statistics and Cache Persistence

Demonstrates validating several rulesets concurrently, summarizing a
ruleset, and carrying the result cache across engine instances.

Usage:
    python examples/02_batch_and_cache.py

Requirements:
    pip install aumos-ruleguard
"""
from __future__ import annotations

import aumos_ruleguard as guard


def main() -> None:
    settings = guard.EngineSettings.model_validate({"performance": {"target_ms": 250}})
    engine = guard.ValidationEngine(settings)

    # Step 1: Validate a batch; results come back in input order
    rulesets = [
        {"permissions": {"deny": ["dangerous/*"], "allow": ["safe/*"]}},
        {"permissions": {"deny": ["exec"], "ask": ["exec"]}},
        {"permissions": {"deny": ["src/*"], "allow": ["*.js"]}},
    ]
    batch = engine.validate_batch("nightly", rulesets)
    print(f"Batch {batch.id}: {batch.success_count} valid, {batch.failure_count} invalid "
          f"in {batch.total_time_ms:.1f}ms")
    for index, result in enumerate(batch.results):
        print(f"  [{index}] valid={result.is_valid} errors={len(result.errors)}")

    # Step 2: Rule statistics
    stats = engine.get_rule_statistics(
        {"permissions": {"deny": ["*.exe"], "allow": ["app.exe", "docs/*.md"], "ask": ["deploy/prod"]}}
    )
    print(f"\nTotal rules: {stats.total_rules}  by category: {stats.by_category}")
    print(f"Not constrained by any deny rule: {stats.coverage.uncovered_patterns}")

    # Step 3: Export the cache and warm a fresh engine with it
    exported = engine.export_cache()
    fresh = guard.ValidationEngine(settings)
    imported = fresh.import_cache(exported)
    fresh.validate(rulesets[0])
    cache_stats = fresh.get_cache_stats()
    print(f"\nImported {imported} cache entries; hits after one call: {cache_stats.hits}")

    # Step 4: A deadline that degrades instead of failing
    result = engine.validate(rulesets[2], guard.ValidationOptions(timeout_ms=50, skip_cache=True))
    print(f"Deadline met: {result.performance.achieved}  valid={result.is_valid}")


if __name__ == "__main__":
    main()
