"""Tests for ValidationCache and configuration hashing."""
from __future__ import annotations

import json

import pytest

from aumos_ruleguard.errors import CacheImportError
from aumos_ruleguard.validation.cache import (
    CACHE_FORMAT_VERSION,
    ValidationCache,
    canonicalize,
    estimate_size,
    generate_hash,
)
from aumos_ruleguard.validation.results import PerformanceInfo, ValidationResult


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_result(rules: int = 1) -> ValidationResult:
    return ValidationResult(performance=PerformanceInfo(elapsed_ms=1.0, rules_processed=rules))


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def cache(clock: FakeClock) -> ValidationCache:
    return ValidationCache(max_entries=3, ttl_seconds=60, clock=clock)


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


class TestHashing:
    def test_key_order_does_not_matter(self) -> None:
        first = {"permissions": {"deny": ["a"], "allow": ["b"]}}
        second = {"permissions": {"allow": ["b"], "deny": ["a"]}}
        assert generate_hash(first) == generate_hash(second)

    def test_array_order_does_not_matter(self) -> None:
        assert generate_hash({"permissions": {"deny": ["a", "b"]}}) == generate_hash(
            {"permissions": {"deny": ["b", "a"]}}
        )

    def test_metadata_and_timestamp_ignored(self) -> None:
        base = {"permissions": {"deny": ["a"]}}
        decorated = {**base, "metadata": {"owner": "ops"}, "timestamp": "2024-01-01"}
        assert generate_hash(base) == generate_hash(decorated)

    def test_content_changes_the_hash(self) -> None:
        assert generate_hash({"permissions": {"deny": ["a"]}}) != generate_hash(
            {"permissions": {"allow": ["a"]}}
        )

    def test_digest_is_sha256_hex(self) -> None:
        digest = generate_hash({})
        assert len(digest) == 64
        int(digest, 16)

    def test_circular_reference_rejected(self) -> None:
        config: dict[str, object] = {"permissions": {}}
        config["self"] = config
        with pytest.raises(ValueError, match="circular"):
            canonicalize(config)

    def test_shared_references_are_not_cycles(self) -> None:
        shared = ["a"]
        assert canonicalize({"x": shared, "y": shared}) == {"x": ["a"], "y": ["a"]}


# ---------------------------------------------------------------------------
# Read / write
# ---------------------------------------------------------------------------


class TestReadWrite:
    def test_miss(self, cache: ValidationCache) -> None:
        assert cache.get("absent") is None
        assert cache.stats().misses == 1

    def test_hit_returns_copy(self, cache: ValidationCache) -> None:
        cache.set("k", make_result())
        served = cache.get("k")
        served.is_valid = False
        assert cache.get("k").is_valid is True
        assert cache.stats().hits == 2

    def test_stored_value_is_a_copy(self, cache: ValidationCache) -> None:
        result = make_result()
        cache.set("k", result)
        result.is_valid = False
        assert cache.get("k").is_valid is True

    def test_ttl_expiry(self, cache: ValidationCache, clock: FakeClock) -> None:
        cache.set("k", make_result())
        clock.advance(61)
        assert cache.get("k") is None
        assert "k" not in cache

    def test_entry_alive_within_ttl(self, cache: ValidationCache, clock: FakeClock) -> None:
        cache.set("k", make_result())
        clock.advance(59)
        assert cache.get("k") is not None

    def test_lru_eviction(self, cache: ValidationCache) -> None:
        for key in ("a", "b", "c"):
            cache.set(key, make_result())
        cache.get("a")
        cache.set("d", make_result())
        assert "b" not in cache
        assert "a" in cache
        assert cache.stats().evictions == 1

    def test_memory_budget(self, clock: FakeClock) -> None:
        size = estimate_size(make_result())
        cache = ValidationCache(max_entries=100, max_memory_mb=size * 1.5 / (1024 * 1024), clock=clock)
        cache.set("a", make_result())
        cache.set("b", make_result())
        assert len(cache) == 1
        assert "b" in cache
        assert cache.stats().memory_used_bytes == size

    def test_overwrite_keeps_memory_accounting(self, cache: ValidationCache) -> None:
        cache.set("k", make_result())
        cache.set("k", make_result())
        assert len(cache) == 1
        assert cache.stats().memory_used_bytes == estimate_size(make_result())

    def test_invalidate(self, cache: ValidationCache) -> None:
        cache.set("alpha:1", make_result())
        cache.set("alpha:2", make_result())
        cache.set("beta:1", make_result())
        assert cache.invalidate("^alpha") == 2
        assert len(cache) == 1

    def test_clear_resets_counters(self, cache: ValidationCache) -> None:
        cache.set("k", make_result())
        cache.get("k")
        cache.clear()
        stats = cache.stats()
        assert (stats.entries, stats.hits, stats.misses) == (0, 0, 0)


# ---------------------------------------------------------------------------
# Stats and warm-up
# ---------------------------------------------------------------------------


class TestStats:
    def test_hit_rate(self, cache: ValidationCache) -> None:
        cache.set("k", make_result())
        cache.get("k")
        cache.get("missing")
        assert cache.stats().hit_rate == 50.0

    def test_to_dict(self, cache: ValidationCache) -> None:
        data = cache.stats().to_dict()
        assert set(data) >= {"entries", "hits", "misses", "hit_rate", "memory_used_bytes", "evictions"}

    def test_warm_up_skips_cached(self, cache: ValidationCache) -> None:
        configs = [{"permissions": {"deny": ["a"]}}, {"permissions": {"deny": ["b"]}}]
        calls: list[object] = []

        def validator(config: object) -> ValidationResult:
            calls.append(config)
            return make_result()

        assert cache.warm_up(configs, validator) == 2
        assert cache.warm_up(configs, validator) == 0
        assert len(calls) == 2
        assert generate_hash(configs[0]) in cache
        assert cache.stats().avg_validation_ms >= 0.0


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class TestPersistence:
    def test_round_trip(self, cache: ValidationCache, clock: FakeClock) -> None:
        cache.set("k", make_result(rules=7))
        restored = ValidationCache(ttl_seconds=60, clock=clock)
        assert restored.import_data(cache.export()) == 1
        assert restored.get("k").performance.rules_processed == 7

    def test_export_carries_version(self, cache: ValidationCache) -> None:
        assert json.loads(cache.export())["version"] == CACHE_FORMAT_VERSION

    def test_version_mismatch(self, cache: ValidationCache) -> None:
        payload = json.dumps({"version": "0.9", "entries": []})
        with pytest.raises(CacheImportError) as info:
            cache.import_data(payload)
        assert info.value.found_version == "0.9"

    def test_missing_version(self, cache: ValidationCache) -> None:
        with pytest.raises(CacheImportError) as info:
            cache.import_data(json.dumps({"entries": []}))
        assert info.value.found_version is None

    def test_bad_json(self, cache: ValidationCache) -> None:
        with pytest.raises(CacheImportError, match="Failed to import cache"):
            cache.import_data("{not json")

    def test_malformed_entry(self, cache: ValidationCache) -> None:
        payload = json.dumps({"version": CACHE_FORMAT_VERSION, "entries": [{"key": "k"}]})
        with pytest.raises(CacheImportError, match="malformed entry"):
            cache.import_data(payload)

    def test_failed_import_keeps_existing_entries(self, cache: ValidationCache) -> None:
        cache.set("k", make_result())
        with pytest.raises(CacheImportError):
            cache.import_data("[]")
        assert "k" in cache

    def test_expired_entries_skipped(self, cache: ValidationCache, clock: FakeClock) -> None:
        cache.set("old", make_result())
        clock.advance(30)
        cache.set("new", make_result())
        exported = cache.export()
        clock.advance(45)
        assert cache.import_data(exported) == 1
        assert "new" in cache
        assert "old" not in cache
