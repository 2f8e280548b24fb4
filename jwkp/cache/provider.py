"""Cached provider stage."""

import threading

import structlog

from jwkp.cache.expiring import ExpiringCache
from jwkp.core.errors import KeyNotFoundError
from jwkp.crypto.types import Jwk
from jwkp.providers.base import KeyProvider, find_key

logger = structlog.get_logger(__name__)


class CachedProvider:
    """Answers repeated lookups from an ExpiringCache keyed by kid.

    A miss fetches the whole key set through the wrapped provider and stores
    every returned key as its own entry, so sibling kids requested shortly
    after are served without another upstream call. A kid missing from a
    successful fetch raises ``KeyNotFoundError`` and is not remembered, so a
    key published later is found on the next miss. Failed fetches cache nothing.

    The kid being looked up is inserted last, so a key set larger than the
    cache never evicts the key that was just requested. When a key set repeats
    a kid, the first occurrence wins, both in the cache and in the answer.

    Concurrent misses queue on one fetch lock shared by all kids, held across
    the upstream call. One fetch returns every kid, so a waiter for any kid is
    answered from the cache once the in-flight fetch lands. The cost is that a
    slow upstream also delays misses for unrelated kids until it answers or
    fails. After a failed fetch each waiter fetches for itself.
    """

    def __init__(self, provider: KeyProvider, cache: ExpiringCache[str, Jwk]) -> None:
        self._provider = provider
        self._cache = cache
        self._fetch_lock = threading.Lock()

    @property
    def inner(self) -> KeyProvider:
        return self._provider

    @property
    def cache(self) -> ExpiringCache[str, Jwk]:
        return self._cache

    def get_key(self, kid: str) -> Jwk:
        cached = self._cache.get(kid)
        if cached is not None:
            logger.debug("cache_hit", kid=kid)
            return cached

        with self._fetch_lock:
            cached = self._cache.get(kid)
            if cached is not None:
                logger.debug("cache_hit_after_wait", kid=kid)
                return cached

            logger.debug("cache_miss", kid=kid)
            keys = self._fetch_and_store(kid)

        key = find_key(keys, kid)
        if key is None:
            logger.info("key_not_found", kid=kid, fetched=len(keys))
            raise KeyNotFoundError(kid, details=f"{len(keys)} key(s) fetched")
        return key

    def get_all(self) -> list[Jwk]:
        with self._fetch_lock:
            return self._fetch_and_store()

    def _fetch_and_store(self, requested: str | None = None) -> list[Jwk]:
        keys = self._provider.get_all()
        self._cache.put_many(_cacheable(keys, requested))
        logger.debug("cache_populated", keys=len(keys), resident=len(self._cache))
        return keys


def _cacheable(keys: list[Jwk], requested: str | None) -> list[tuple[str, Jwk]]:
    """Pair each kid with its first key, the requested kid moved to the end."""
    by_kid: dict[str, Jwk] = {}
    for key in keys:
        if key.kid is not None:
            by_kid.setdefault(key.kid, key)
    if requested is not None and requested in by_kid:
        by_kid[requested] = by_kid.pop(requested)
    return list(by_kid.items())
