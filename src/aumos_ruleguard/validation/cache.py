"""Content-addressed cache of validation results.

Entries are keyed by :func:`generate_hash`, a sha256 digest of the
canonicalized configuration: object keys sorted, ``metadata`` and
``timestamp`` fields dropped, and arrays sorted by their canonical text.
Semantically identical rulesets therefore share an entry regardless of
formatting or list order.

The cache is bounded by entry count and by an estimated memory budget
(serialized length x 2) and evicts least recently used entries first.
Entries older than the TTL are treated as misses and dropped.

Thread-safety is achieved with a single ``threading.Lock``: every public
operation runs as one critical section.

Example
-------
>>> cache = ValidationCache(max_entries=10, ttl_seconds=60)
>>> key = cache.generate_hash({"permissions": {"deny": ["exec"]}})
>>> cache.get(key) is None
True
"""
from __future__ import annotations

import hashlib
import json
import logging
import re
import threading
import time
from collections import OrderedDict, deque
from dataclasses import asdict, dataclass
from typing import Callable, Iterable, Mapping

from pydantic import ValidationError as PydanticValidationError

from aumos_ruleguard.errors import CacheImportError
from aumos_ruleguard.rules.model import RulesetConfig
from aumos_ruleguard.validation.results import ValidationResult

logger = logging.getLogger(__name__)

CACHE_FORMAT_VERSION: str = "1.0.0"
_IGNORED_KEYS: frozenset[str] = frozenset({"metadata", "timestamp"})
_SAMPLE_WINDOW: int = 100


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


def canonicalize(value: object) -> object:
    """Return a canonical, JSON-ready form of *value*.

    Raises
    ------
    ValueError
        If *value* contains a reference cycle.
    """
    return _canonical(value, set())


def _canonical(value: object, active: set[int]) -> object:
    if isinstance(value, RulesetConfig):
        value = value.model_dump(mode="json")
    if isinstance(value, Mapping):
        marker = id(value)
        if marker in active:
            raise ValueError("Configuration contains a circular reference")
        active.add(marker)
        try:
            return {
                str(key): _canonical(value[key], active)
                for key in sorted(value, key=str)
                if str(key) not in _IGNORED_KEYS
            }
        finally:
            active.discard(marker)
    if isinstance(value, (list, tuple, set, frozenset)):
        marker = id(value)
        if marker in active:
            raise ValueError("Configuration contains a circular reference")
        active.add(marker)
        try:
            items = [_canonical(item, active) for item in value]
        finally:
            active.discard(marker)
        return sorted(items, key=lambda item: json.dumps(item, sort_keys=True, default=str))
    return value


def generate_hash(config: object) -> str:
    """Return the sha256 hex digest of the canonical form of *config*."""
    serialised = json.dumps(canonicalize(config), sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(serialised.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Entries and stats
# ---------------------------------------------------------------------------


@dataclass
class CacheEntry:
    """One cached validation result.

    Attributes
    ----------
    result:
        The stored result; callers only ever receive deep copies.
    config_hash:
        Digest of the configuration the result belongs to.
    created_at:
        Epoch seconds at insertion; drives TTL expiry.
    access_count:
        Number of cache hits served from this entry.
    last_accessed_at:
        Epoch seconds of the latest hit.
    size_bytes:
        Estimated memory footprint.
    """

    result: ValidationResult
    config_hash: str
    created_at: float
    access_count: int = 0
    last_accessed_at: float = 0.0
    size_bytes: int = 0


@dataclass
class CacheStats:
    """Snapshot of cache counters."""

    entries: int
    hits: int
    misses: int
    hit_rate: float
    memory_used_bytes: int
    avg_retrieval_ms: float
    avg_validation_ms: float
    evictions: int

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def estimate_size(result: ValidationResult) -> int:
    """Estimated footprint: serialized length x 2."""
    return len(result.model_dump_json()) * 2


# ---------------------------------------------------------------------------
# ValidationCache
# ---------------------------------------------------------------------------


class ValidationCache:
    """Thread-safe LRU + TTL cache of :class:`ValidationResult` objects.

    Parameters
    ----------
    max_entries:
        Maximum number of entries.
    max_memory_mb:
        Memory budget for the estimated entry sizes.
    ttl_seconds:
        Entry lifetime.
    clock:
        Source of epoch seconds; defaults to :func:`time.time`.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        max_memory_mb: float = 50,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._max_entries = max_entries
        self._max_memory_bytes = int(max_memory_mb * 1024 * 1024)
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._memory_used = 0
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._retrieval_ms: deque[float] = deque(maxlen=_SAMPLE_WINDOW)
        self._validation_ms: deque[float] = deque(maxlen=_SAMPLE_WINDOW)
        self._lock = threading.Lock()

    generate_hash = staticmethod(generate_hash)

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    # ------------------------------------------------------------------
    # Read / write
    # ------------------------------------------------------------------

    def get(self, config_hash: str) -> ValidationResult | None:
        """Return a copy of the cached result, or ``None`` on a miss.

        Expired entries are evicted and count as misses.
        """
        started = time.perf_counter()
        with self._lock:
            entry = self._entries.get(config_hash)
            if entry is None:
                self._misses += 1
                logger.debug("Validation cache miss: %s", config_hash[:12])
                return None
            now = self._clock()
            if now - entry.created_at > self._ttl_seconds:
                self._drop(config_hash)
                self._misses += 1
                logger.debug("Validation cache entry expired: %s", config_hash[:12])
                return None
            entry.access_count += 1
            entry.last_accessed_at = now
            self._entries.move_to_end(config_hash)
            self._hits += 1
            result = entry.result.model_copy(deep=True)
            self._retrieval_ms.append((time.perf_counter() - started) * 1000)
        logger.debug("Validation cache hit: %s", config_hash[:12])
        return result

    def set(
        self,
        config_hash: str,
        result: ValidationResult,
        validation_ms: float | None = None,
    ) -> None:
        """Store a copy of *result*, evicting LRU entries to stay in budget."""
        stored = result.model_copy(deep=True)
        size = estimate_size(stored)
        with self._lock:
            if config_hash in self._entries:
                self._drop(config_hash)
            while self._entries and (
                len(self._entries) >= self._max_entries
                or self._memory_used + size > self._max_memory_bytes
            ):
                self._evict_lru()
            now = self._clock()
            self._entries[config_hash] = CacheEntry(
                result=stored,
                config_hash=config_hash,
                created_at=now,
                last_accessed_at=now,
                size_bytes=size,
            )
            self._memory_used += size
            if validation_ms is not None:
                self._validation_ms.append(validation_ms)

    def __contains__(self, config_hash: object) -> bool:
        with self._lock:
            return config_hash in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Drop every entry and reset all counters."""
        with self._lock:
            self._reset()

    def invalidate(self, pattern: str | re.Pattern[str]) -> int:
        """Drop entries whose key matches *pattern*; return how many."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        with self._lock:
            doomed = [key for key in self._entries if regex.search(key)]
            for key in doomed:
                self._drop(key)
        logger.debug("Invalidated %d validation cache entries", len(doomed))
        return len(doomed)

    def warm_up(
        self,
        configs: Iterable[object],
        validator: Callable[[object], ValidationResult],
    ) -> int:
        """Validate and store every config not already cached.

        Returns
        -------
        int
            Number of entries added.
        """
        added = 0
        for config in configs:
            key = generate_hash(config)
            if key in self:
                continue
            started = time.perf_counter()
            result = validator(config)
            self.set(key, result, (time.perf_counter() - started) * 1000)
            added += 1
        return added

    def stats(self) -> CacheStats:
        with self._lock:
            total = self._hits + self._misses
            return CacheStats(
                entries=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                hit_rate=(self._hits / total * 100) if total else 0.0,
                memory_used_bytes=self._memory_used,
                avg_retrieval_ms=_mean(self._retrieval_ms),
                avg_validation_ms=_mean(self._validation_ms),
                evictions=self._evictions,
            )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def export(self) -> str:
        """Serialize every entry to JSON tagged with the format version."""
        with self._lock:
            payload = {
                "version": CACHE_FORMAT_VERSION,
                "timestamp": self._clock(),
                "entries": [
                    {
                        "key": key,
                        "config_hash": entry.config_hash,
                        "created_at": entry.created_at,
                        "result": entry.result.model_dump(mode="json"),
                    }
                    for key, entry in self._entries.items()
                ],
            }
        return json.dumps(payload)

    def import_data(self, data: str) -> int:
        """Replace the cache contents with the non-expired entries in *data*.

        Returns
        -------
        int
            Number of entries imported.

        Raises
        ------
        CacheImportError
            If *data* is not valid JSON, has the wrong format version, or
            carries malformed entries.
        """
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as exc:
            raise CacheImportError(f"Failed to import cache: {exc}") from exc
        if not isinstance(payload, dict):
            raise CacheImportError("Failed to import cache: payload must be a JSON object")
        version = payload.get("version")
        if version != CACHE_FORMAT_VERSION:
            raise CacheImportError(
                f"Unsupported cache version: {version!r} (expected {CACHE_FORMAT_VERSION})",
                found_version=None if version is None else str(version),
            )

        try:
            records = [
                (
                    str(item["key"]),
                    str(item.get("config_hash", item["key"])),
                    float(item["created_at"]),
                    ValidationResult.model_validate(item["result"]),
                )
                for item in payload.get("entries", [])
            ]
        except (KeyError, TypeError, ValueError, PydanticValidationError) as exc:
            raise CacheImportError(f"Failed to import cache: malformed entry ({exc})") from exc

        with self._lock:
            self._reset()
            now = self._clock()
            for key, config_hash, created_at, result in records:
                if now - created_at > self._ttl_seconds:
                    continue
                size = estimate_size(result)
                self._entries[key] = CacheEntry(
                    result=result,
                    config_hash=config_hash,
                    created_at=created_at,
                    last_accessed_at=now,
                    size_bytes=size,
                )
                self._memory_used += size
            imported = len(self._entries)
        logger.info("Imported %d of %d cache entries", imported, len(records))
        return imported

    # ------------------------------------------------------------------
    # Internal helpers (caller holds the lock)
    # ------------------------------------------------------------------

    def _drop(self, key: str) -> None:
        entry = self._entries.pop(key)
        self._memory_used -= entry.size_bytes

    def _evict_lru(self) -> None:
        key, entry = self._entries.popitem(last=False)
        self._memory_used -= entry.size_bytes
        self._evictions += 1
        logger.debug("Evicted LRU validation cache entry: %s", key[:12])

    def _reset(self) -> None:
        self._entries.clear()
        self._memory_used = 0
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._retrieval_ms.clear()
        self._validation_ms.clear()

    def __repr__(self) -> str:
        return (
            f"ValidationCache(max_entries={self._max_entries}, "
            f"ttl_seconds={self._ttl_seconds}, entries={len(self._entries)})"
        )


def _mean(samples: deque[float]) -> float:
    return sum(samples) / len(samples) if samples else 0.0
