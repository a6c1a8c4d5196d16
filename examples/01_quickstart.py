#!/usr/bin/env python3
"""Example: Quickstart for aumos-ruleguard

Minimal working example: validate a ruleset, inspect the zero-bypass
violations, and apply the verified auto-fixes.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install aumos-ruleguard
"""
from __future__ import annotations

import aumos_ruleguard as guard


def main() -> None:
    print(f"aumos-ruleguard version: {guard.__version__}")

    # Step 1: Validate a ruleset where an allow rule slips under a deny rule
    engine = guard.ValidationEngine()
    ruleset = {
        "permissions": {
            "deny": ["*.exe", "dangerous/*"],
            "allow": ["app.exe", "docs/readme.md"],
            "ask": ["deploy/*"],
        }
    }
    result = engine.validate(ruleset)
    print(f"\nValid: {result.is_valid}  (security score {result.security_score})")

    # Step 2: Show errors and conflicts
    for error in result.errors:
        print(f"  [{error.severity.value}] {error.kind.value}: {error.message}")
    for conflict in result.conflicts:
        rules = ", ".join(f"{rule.category.value}:{rule.pattern}" for rule in conflict.conflicting_rules)
        print(f"  conflict {conflict.kind.value}: {rules}")

    # Step 3: Apply verified auto-fixes and re-validate
    config = guard.RulesetConfig.model_validate(ruleset)
    rules = guard.normalize_rules(config)
    resolver = engine.resolver("strict")
    suggestions = resolver.resolve_all(result.conflicts, rules)
    outcome = resolver.apply_resolutions(config, suggestions)
    print("\n" + resolver.generate_report(outcome))

    fixed = engine.validate(outcome.resolved_config)
    print(f"After fixes valid: {fixed.is_valid}")

    # Step 4: Cache statistics
    stats = engine.get_cache_stats()
    print(f"Cache entries: {stats.entries}  hit rate: {stats.hit_rate:.0f}%")


if __name__ == "__main__":
    main()
