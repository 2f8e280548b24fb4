"""Pipeline composition: source, then rate limit, then cache (outermost)."""

from __future__ import annotations

from collections.abc import Mapping

from jwkp.cache.expiring import ExpiringCache
from jwkp.cache.provider import CachedProvider
from jwkp.core.errors import InvalidConfigurationError
from jwkp.core.settings import (
    BUCKET_SIZE_DEFAULT,
    CACHE_SIZE_DEFAULT,
    CACHE_TTL_DEFAULT,
    CACHE_TTL_UNIT_DEFAULT,
    CONNECT_TIMEOUT_DEFAULT,
    READ_TIMEOUT_DEFAULT,
    REFILL_RATE_DEFAULT,
    REFILL_UNIT_DEFAULT,
    ProviderSettings,
)
from jwkp.core.units import Clock, TimeUnit
from jwkp.crypto.types import Jwk
from jwkp.providers.base import KeyProvider, KeySource, SourceProvider
from jwkp.providers.url import UrlKeySource
from jwkp.ratelimit.bucket import TokenBucket
from jwkp.ratelimit.provider import RateLimitedProvider

_NO_LOCATION = "Cannot build provider without a domain, url or key source"


def compose_pipeline(
    source: KeySource,
    *,
    bucket: TokenBucket | None = None,
    cache: ExpiringCache[str, Jwk] | None = None,
) -> KeyProvider:
    """Wrap a source with the optional rate-limit and cache stages.

    Passing neither stage yields a provider that hits the source on every call.
    """
    provider: KeyProvider = SourceProvider(source)
    if bucket is not None:
        provider = RateLimitedProvider(provider, bucket)
    if cache is not None:
        provider = CachedProvider(provider, cache)
    return provider


def build_provider(
    settings: ProviderSettings,
    *,
    source: KeySource | None = None,
    clock: Clock | None = None,
) -> KeyProvider:
    """Build the provider pipeline described by settings.

    Args:
        settings: Endpoint and stage configuration.
        source: Key source to use instead of an HTTP source for settings.url.
        clock: Time source shared by the bucket and the cache.
    """
    if source is None:
        source = UrlKeySource(
            settings.url,
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
            headers=settings.headers,
        )
    bucket = None
    if settings.rate_limited:
        bucket = TokenBucket(
            settings.bucket_size,
            settings.refill_rate,
            settings.refill_period_seconds,
            clock=clock,
        )
    cache = None
    if settings.cached:
        cache = ExpiringCache[str, Jwk](
            settings.cache_size, settings.cache_ttl_seconds, clock=clock
        )
    return compose_pipeline(source, bucket=bucket, cache=cache)


class ProviderBuilder:
    """Fluent configuration for a provider pipeline.

    Example:
        >>> provider = (
        ...     ProviderBuilder("samples.auth0.com")
        ...     .cached(10, 24, TimeUnit.HOURS)
        ...     .rate_limited(10, 1, TimeUnit.MINUTES)
        ...     .build()
        ... )
    """

    def __init__(
        self,
        domain_or_url: str | None = None,
        *,
        source: KeySource | None = None,
    ) -> None:
        if domain_or_url is None and source is None:
            raise InvalidConfigurationError(_NO_LOCATION)
        self._url = domain_or_url
        self._source = source
        self._cached = True
        self._cache_size = CACHE_SIZE_DEFAULT
        self._cache_ttl: float = CACHE_TTL_DEFAULT
        self._cache_ttl_unit = CACHE_TTL_UNIT_DEFAULT
        self._rate_limited = True
        self._bucket_size = BUCKET_SIZE_DEFAULT
        self._refill_rate = REFILL_RATE_DEFAULT
        self._refill_unit = REFILL_UNIT_DEFAULT
        self._connect_timeout = CONNECT_TIMEOUT_DEFAULT
        self._read_timeout = READ_TIMEOUT_DEFAULT
        self._headers: dict[str, str] = {}
        self._clock: Clock | None = None

    def cached(
        self,
        enabled_or_size: bool | int = True,
        ttl: float | None = None,
        unit: TimeUnit | None = None,
    ) -> ProviderBuilder:
        """Toggle caching, or enable it with a size and optional ttl."""
        if isinstance(enabled_or_size, bool):
            self._cached = enabled_or_size
            return self
        self._cached = True
        self._cache_size = enabled_or_size
        if ttl is not None:
            self._cache_ttl = ttl
        if unit is not None:
            self._cache_ttl_unit = unit
        return self

    def rate_limited(
        self,
        enabled_or_size: bool | int = True,
        refill_rate: int | None = None,
        unit: TimeUnit | None = None,
    ) -> ProviderBuilder:
        """Toggle rate limiting, or enable it with bucket parameters."""
        if isinstance(enabled_or_size, bool):
            self._rate_limited = enabled_or_size
            return self
        self._rate_limited = True
        self._bucket_size = enabled_or_size
        if refill_rate is not None:
            self._refill_rate = refill_rate
        if unit is not None:
            self._refill_unit = unit
        return self

    def timeouts(self, connect: float, read: float) -> ProviderBuilder:
        self._connect_timeout = connect
        self._read_timeout = read
        return self

    def headers(self, headers: Mapping[str, str]) -> ProviderBuilder:
        self._headers = dict(headers)
        return self

    def clock(self, clock: Clock) -> ProviderBuilder:
        self._clock = clock
        return self

    def build(self) -> KeyProvider:
        if self._source is not None:
            source: KeySource = self._source
        elif self._url is not None:
            source = UrlKeySource(
                self._url,
                connect_timeout=self._connect_timeout,
                read_timeout=self._read_timeout,
                headers=self._headers,
            )
        else:
            raise InvalidConfigurationError(_NO_LOCATION)
        bucket = None
        if self._rate_limited:
            bucket = TokenBucket(
                self._bucket_size,
                self._refill_rate,
                self._refill_unit.to_seconds(1),
                clock=self._clock,
            )
        cache = None
        if self._cached:
            cache = ExpiringCache[str, Jwk](
                self._cache_size,
                self._cache_ttl_unit.to_seconds(self._cache_ttl),
                clock=self._clock,
            )
        return compose_pipeline(source, bucket=bucket, cache=cache)
