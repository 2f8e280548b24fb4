"""Size- and time-bounded in-memory map."""

import threading
from collections import OrderedDict
from collections.abc import Hashable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

from jwkp.core.errors import InvalidConfigurationError
from jwkp.core.units import Clock, monotonic_clock, to_nanos

logger = structlog.get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[V]):
    """A cached value with its insertion time and lifetime.

    Attributes:
        value: The cached value. Never mutated by the cache.
        inserted_at: Clock reading (nanoseconds) when the entry was written.
        ttl: Lifetime in nanoseconds.
    """

    value: V
    inserted_at: int
    ttl: int

    @property
    def expires_at(self) -> int:
        return self.inserted_at + self.ttl

    def is_expired(self, now: int) -> bool:
        return now >= self.expires_at


class ExpiringCache(Generic[K, V]):
    """Bounded map with per-entry expiry and insertion-order eviction.

    Expired entries are dropped lazily when read. When an insert pushes the
    size past ``max_entries``, the earliest-inserted entries are evicted until
    the bound holds again. Replacing a key counts as a fresh insertion.

    Thread Safety:
        Reads, inserts and evictions are serialized by one lock.

    Example:
        >>> cache: ExpiringCache[str, int] = ExpiringCache(max_entries=2, ttl=60)
        >>> cache.put("a", 1)
        >>> cache.get("a")
        1
    """

    def __init__(
        self,
        max_entries: int,
        ttl: float,
        *,
        clock: Clock | None = None,
    ) -> None:
        """Initialize ExpiringCache.

        Args:
            max_entries: Maximum number of resident entries, at least 1.
            ttl: Entry lifetime in seconds, must be positive.
            clock: Monotonic time source in nanoseconds. Defaults to
                time.monotonic_ns.

        Raises:
            InvalidConfigurationError: If max_entries or ttl is out of range.
        """
        if max_entries < 1:
            raise InvalidConfigurationError(
                "Cache size must be at least 1", details=f"got {max_entries}"
            )
        if ttl <= 0:
            raise InvalidConfigurationError(
                "Cache ttl must be positive", details=f"got {ttl}"
            )
        self._max_entries = max_entries
        self._ttl = float(ttl)
        self._ttl_ns = max(1, to_nanos(ttl))
        self._clock = clock or monotonic_clock
        self._entries: OrderedDict[K, CacheEntry[V]] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: K) -> V | None:
        """Return the live value for key, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                logger.debug("cache_expired", key=key)
                return None
            return entry.value

    def put(self, key: K, value: V) -> None:
        """Insert or replace a single entry."""
        self.put_many([(key, value)])

    def put_many(self, items: Iterable[tuple[K, V]]) -> None:
        """Insert or replace entries that share one insertion timestamp."""
        with self._lock:
            now = self._clock()
            for key, value in items:
                self._entries.pop(key, None)
                self._entries[key] = CacheEntry(
                    value=value, inserted_at=now, ttl=self._ttl_ns
                )
            self._evict_overflow()

    def invalidate(self, key: K) -> bool:
        """Remove key. Returns True if an entry was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def keys(self) -> list[K]:
        """Resident keys, oldest insertion first. May include expired entries."""
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[call-overload]
            return entry is not None and not entry.is_expired(self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict_overflow(self) -> None:
        # Caller holds the lock.
        while len(self._entries) > self._max_entries:
            key, _ = self._entries.popitem(last=False)
            logger.debug("cache_evicted", key=key, max_entries=self._max_entries)
