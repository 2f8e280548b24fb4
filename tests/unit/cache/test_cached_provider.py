"""Tests for the cached provider stage."""

import threading
from collections.abc import Callable

import pytest

from jwkp.cache.expiring import ExpiringCache
from jwkp.cache.provider import CachedProvider
from jwkp.core.errors import (
    KeyNotFoundError,
    RateLimitExceededError,
    SourceMalformedError,
    SourceUnavailableError,
)
from jwkp.crypto.types import Jwk
from jwkp.providers.base import SourceProvider
from tests.doubles import CountingSource, ManualClock


def _cached(
    source: CountingSource, clock: ManualClock, size: int = 5, ttl: float = 60
) -> CachedProvider:
    cache: ExpiringCache[str, Jwk] = ExpiringCache(size, ttl, clock=clock)
    return CachedProvider(SourceProvider(source), cache)


class TestGetKey:
    """Tests for hit, miss and population behavior."""

    def test_miss_populates_every_kid(
        self, make_source: Callable[..., CountingSource], clock: ManualClock
    ) -> None:
        source = make_source("a", "b")
        provider = _cached(source, clock)
        assert provider.get_key("a").kid == "a"
        assert len(provider.cache) == 2
        assert provider.get_key("b").kid == "b"
        assert source.calls == 1

    def test_hit_skips_delegate(
        self, make_source: Callable[..., CountingSource], clock: ManualClock
    ) -> None:
        source = make_source("a")
        provider = _cached(source, clock)
        first = provider.get_key("a")
        second = provider.get_key("a")
        assert first is second
        assert source.calls == 1

    def test_expired_entry_refetched(
        self, make_source: Callable[..., CountingSource], clock: ManualClock
    ) -> None:
        source = make_source("a")
        provider = _cached(source, clock, ttl=1)
        provider.get_key("a")
        clock.advance(1.1)
        provider.get_key("a")
        assert source.calls == 2

    def test_missing_kid_raises_but_caches_siblings(
        self, make_source: Callable[..., CountingSource], clock: ManualClock
    ) -> None:
        source = make_source("a", "b")
        provider = _cached(source, clock)
        with pytest.raises(KeyNotFoundError) as exc_info:
            provider.get_key("zzz")
        assert exc_info.value.kid == "zzz"
        assert provider.get_key("a").kid == "a"
        assert provider.get_key("b").kid == "b"
        assert source.calls == 1

    def test_missing_kid_is_not_negatively_cached(
        self,
        make_source: Callable[..., CountingSource],
        make_jwk: Callable[[str], Jwk],
        clock: ManualClock,
    ) -> None:
        source = make_source("a")
        provider = _cached(source, clock)
        with pytest.raises(KeyNotFoundError):
            provider.get_key("rotated")

        source.keys.append(make_jwk("rotated"))
        assert provider.get_key("rotated").kid == "rotated"
        assert source.calls == 2

    def test_refetch_replaces_entries(
        self,
        make_source: Callable[..., CountingSource],
        clock: ManualClock,
    ) -> None:
        source = make_source("a")
        provider = _cached(source, clock, ttl=10)
        provider.get_key("a")
        replacement = Jwk(kid="a", kty="RSA", n="bmV3", e="AQAB")
        source.keys = [replacement]
        clock.advance(10)
        assert provider.get_key("a") == replacement

    def test_keys_without_kid_are_not_cached(
        self, make_jwk: Callable[[str], Jwk], clock: ManualClock
    ) -> None:
        source = CountingSource([make_jwk("a"), Jwk(kty="RSA", n="eA", e="AQAB")])
        provider = _cached(source, clock)
        provider.get_key("a")
        assert provider.cache.keys() == ["a"]

    def test_size_bound_applies_per_kid(
        self, make_source: Callable[..., CountingSource], clock: ManualClock
    ) -> None:
        source = make_source("a", "b", "c")
        provider = _cached(source, clock, size=2)
        assert provider.get_key("a").kid == "a"
        assert provider.cache.keys() == ["c", "a"]

    def test_requested_kid_survives_oversized_key_set(
        self, make_source: Callable[..., CountingSource], clock: ManualClock
    ) -> None:
        source = make_source("a", "b", "c")
        provider = _cached(source, clock, size=2)
        provider.get_key("a")
        provider.get_key("a")
        assert "a" in provider.cache
        assert source.calls == 1

    def test_duplicate_kid_first_occurrence_wins(self, clock: ManualClock) -> None:
        first = Jwk(kid="a", kty="RSA", n="Zmlyc3Q", e="AQAB")
        second = Jwk(kid="a", kty="RSA", n="c2Vjb25k", e="AQAB")
        source = CountingSource([first, second])
        provider = _cached(source, clock)

        assert provider.get_key("a") == first
        assert provider.get_key("a") == first
        assert source.calls == 1


class TestErrorPropagation:
    """Tests for delegate failures."""

    @pytest.mark.parametrize(
        "error",
        [
            SourceUnavailableError("down"),
            SourceMalformedError("garbage"),
            RateLimitExceededError(retry_after=5.0),
        ],
    )
    def test_errors_propagate_and_nothing_cached(
        self,
        make_source: Callable[..., CountingSource],
        clock: ManualClock,
        error: Exception,
    ) -> None:
        source = make_source("a")
        source.error = error
        provider = _cached(source, clock)
        with pytest.raises(type(error)) as exc_info:
            provider.get_key("a")
        assert exc_info.value is error
        assert len(provider.cache) == 0


class TestGetAll:
    """Tests for bulk fetches."""

    def test_get_all_always_delegates_and_populates(
        self, make_source: Callable[..., CountingSource], clock: ManualClock
    ) -> None:
        source = make_source("a", "b")
        provider = _cached(source, clock)
        provider.get_all()
        provider.get_all()
        assert source.calls == 2
        provider.get_key("b")
        assert source.calls == 2


class TestConcurrentMisses:
    """Tests for miss coalescing."""

    def test_waiters_served_from_in_flight_fetch(
        self, make_jwk: Callable[[str], Jwk], clock: ManualClock
    ) -> None:
        release = threading.Event()
        started = threading.Event()

        class _SlowSource(CountingSource):
            def fetch_all(self) -> list[Jwk]:
                started.set()
                release.wait(timeout=5)
                return super().fetch_all()

        source = _SlowSource([make_jwk("a"), make_jwk("b")])
        provider = _cached(source, clock)
        results: list[str | None] = []
        results_lock = threading.Lock()

        def _lookup(kid: str) -> None:
            key = provider.get_key(kid)
            with results_lock:
                results.append(key.kid)

        first = threading.Thread(target=_lookup, args=("a",))
        first.start()
        assert started.wait(timeout=5)
        others = [threading.Thread(target=_lookup, args=(k,)) for k in ("a", "b", "b")]
        for t in others:
            t.start()
        release.set()
        for t in [first, *others]:
            t.join()

        assert sorted(results) == ["a", "a", "b", "b"]
        assert source.calls == 1

    def test_waiter_fetches_again_after_failure(
        self, make_source: Callable[..., CountingSource], clock: ManualClock
    ) -> None:
        source = make_source("a")
        source.error = SourceUnavailableError("down")
        provider = _cached(source, clock)
        with pytest.raises(SourceUnavailableError):
            provider.get_key("a")
        source.error = None
        assert provider.get_key("a").kid == "a"
        assert source.calls == 2
