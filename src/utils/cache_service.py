"""
In-memory profile cache.

Bounded, TTL-expiring, least-recently-accessed eviction. One instance is
built by the composition root and shared by reference; it survives across
warm Lambda invocations.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, List, Mapping, Optional

from models.customer import CustomerProfile
from utils.error_handling import CacheMiss
from utils.logging_config import get_logger
from utils.validators import normalize_identity

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    """A cached profile with its creation and last access times (clock seconds)."""

    profile: CustomerProfile
    created_at: float
    last_accessed: float

    def age(self, now: float) -> float:
        return now - self.created_at


@dataclass
class CacheStats:
    """Counters exposed by ProfileCache.stats()."""

    hits: int = 0
    misses: int = 0
    total_requests: int = 0
    hit_rate: float = 0.0
    size: int = 0

    def as_dict(self) -> dict:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "total_requests": self.total_requests,
            "hit_rate": self.hit_rate,
            "size": self.size,
        }


class ProfileCache:
    """Thread-safe LRU cache of customer profiles with TTL support."""

    def __init__(
        self,
        max_size: int = 50,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: Dict[str, CacheEntry] = {}
        self._stats = CacheStats()
        self._lock = Lock()

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry for key, counting a hit or a miss."""
        key = normalize_identity(key)
        with self._lock:
            now = self._clock()
            entry = self._cache.get(key)
            if entry is None:
                self._record(hit=False)
                logger.debug("Profile cache miss", extra={"identity": key})
                return None

            if self._expired(entry, now):
                del self._cache[key]
                self._record(hit=False)
                logger.info(
                    "Profile cache entry expired",
                    extra={"identity": key, "age_seconds": round(entry.age(now), 1)},
                )
                return None

            entry.last_accessed = now
            self._record(hit=True)
            return entry

    def set(self, key: str, profile: CustomerProfile) -> None:
        """Insert or replace an entry, evicting the LRU entry when full."""
        key = normalize_identity(key)
        with self._lock:
            now = self._clock()
            if key not in self._cache and len(self._cache) >= self.max_size:
                self._evict_least_recently_used()
            self._cache[key] = CacheEntry(profile=profile, created_at=now, last_accessed=now)
            self._stats.size = len(self._cache)
        logger.info(
            "Profile cached", extra={"identity": key, "cache_size": self._stats.size}
        )

    def has(self, key: str) -> bool:
        """True if a live entry exists. Expired entries are dropped; counters untouched."""
        key = normalize_identity(key)
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return False
            if self._expired(entry, self._clock()):
                del self._cache[key]
                self._stats.size = len(self._cache)
                return False
            return True

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Return the raw entry whatever its age, without touching counters or access time."""
        with self._lock:
            return self._cache.get(normalize_identity(key))

    def require(self, key: str) -> CacheEntry:
        """Like peek, but raise CacheMiss when the key is not resident."""
        entry = self.peek(key)
        if entry is None:
            raise CacheMiss(normalize_identity(key))
        return entry

    def peek_age(self, key: str) -> Optional[float]:
        """Seconds since the entry was created, or None when absent."""
        with self._lock:
            entry = self._cache.get(normalize_identity(key))
            if entry is None:
                return None
            return entry.age(self._clock())

    def update(self, key: str, changes: Mapping[str, Any]) -> bool:
        """
        Merge fields into a cached profile. No-op when absent.

        The entry object is swapped for a new one with the same creation
        time, so a pending ``replace`` against the old entry fails.
        """
        key = normalize_identity(key)
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return False
            self._cache[key] = CacheEntry(
                profile=entry.profile.model_copy(update=dict(changes)),
                created_at=entry.created_at,
                last_accessed=self._clock(),
            )
        logger.info(
            "Cached profile updated", extra={"identity": key, "fields": sorted(changes)}
        )
        return True

    def replace(self, key: str, expected: CacheEntry, profile: CustomerProfile) -> bool:
        """
        Store ``profile`` only while ``expected`` is still the resident entry.

        Returns False, leaving the cache untouched, when the key was
        invalidated, updated or re-set since ``expected`` was read.
        """
        key = normalize_identity(key)
        with self._lock:
            if self._cache.get(key) is not expected:
                return False
            now = self._clock()
            self._cache[key] = CacheEntry(profile=profile, created_at=now, last_accessed=now)
        logger.info("Profile cache entry replaced", extra={"identity": key})
        return True

    def invalidate(self, key: str) -> bool:
        """Delete key from cache."""
        key = normalize_identity(key)
        with self._lock:
            if key in self._cache:
                del self._cache[key]
                self._stats.size = len(self._cache)
                logger.info("Profile cache invalidated", extra={"identity": key})
                return True
            return False

    def clear(self) -> None:
        """Clear all cache entries and reset counters."""
        with self._lock:
            removed = len(self._cache)
            self._cache.clear()
            self._stats = CacheStats()
        logger.info("Profile cache cleared", extra={"removed": removed})

    def keys(self) -> List[str]:
        """Normalized identities currently held, expired or not."""
        with self._lock:
            return list(self._cache)

    def stats(self) -> CacheStats:
        """Return a snapshot of the cache counters."""
        with self._lock:
            self._stats.size = len(self._cache)
            return CacheStats(**self._stats.as_dict())

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return entry.age(now) >= self.ttl_seconds

    def _record(self, hit: bool) -> None:
        stats = self._stats
        stats.total_requests += 1
        if hit:
            stats.hits += 1
        else:
            stats.misses += 1
        stats.hit_rate = stats.hits / stats.total_requests * 100 if stats.total_requests else 0.0
        stats.size = len(self._cache)

    def _evict_least_recently_used(self) -> None:
        if not self._cache:
            return
        # min() keeps the first entry found on ties, i.e. insertion order.
        oldest_key = min(self._cache, key=lambda k: self._cache[k].last_accessed)
        del self._cache[oldest_key]
        logger.info("Evicted least recently used profile", extra={"identity": oldest_key})
