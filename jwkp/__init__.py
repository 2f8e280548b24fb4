"""Layered JWK provider: fetch, rate-limit and cache signing keys by kid."""

from jwkp.cache.expiring import ExpiringCache
from jwkp.cache.provider import CachedProvider
from jwkp.core.errors import (
    InvalidConfigurationError,
    InvalidPublicKeyError,
    JwkError,
    KeyNotFoundError,
    RateLimitExceededError,
    SourceError,
    SourceMalformedError,
    SourceUnavailableError,
)
from jwkp.core.settings import ProviderSettings
from jwkp.core.units import TimeUnit
from jwkp.crypto.types import Jwk
from jwkp.providers.base import KeyProvider, KeySource, SourceProvider
from jwkp.providers.builder import ProviderBuilder, build_provider, compose_pipeline
from jwkp.providers.url import UrlKeySource, normalize_jwks_url
from jwkp.ratelimit.bucket import TokenBucket
from jwkp.ratelimit.provider import RateLimitedProvider

__all__ = [
    "CachedProvider",
    "ExpiringCache",
    "InvalidConfigurationError",
    "InvalidPublicKeyError",
    "Jwk",
    "JwkError",
    "KeyNotFoundError",
    "KeyProvider",
    "KeySource",
    "ProviderBuilder",
    "ProviderSettings",
    "RateLimitExceededError",
    "RateLimitedProvider",
    "SourceError",
    "SourceMalformedError",
    "SourceProvider",
    "SourceUnavailableError",
    "TimeUnit",
    "TokenBucket",
    "UrlKeySource",
    "build_provider",
    "compose_pipeline",
    "normalize_jwks_url",
]
