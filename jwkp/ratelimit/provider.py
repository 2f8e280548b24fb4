"""Rate-limited provider stage."""

import structlog

from jwkp.core.errors import RateLimitExceededError
from jwkp.crypto.types import Jwk
from jwkp.providers.base import KeyProvider
from jwkp.ratelimit.bucket import TokenBucket

logger = structlog.get_logger(__name__)


class RateLimitedProvider:
    """Gates every upstream call on a token bucket.

    The bucket is shared by all kids: it limits the total call volume against
    the key-set endpoint, not per-key traffic. A rejected call fails at once
    with ``RateLimitExceededError`` and never reaches the wrapped provider.
    """

    def __init__(self, provider: KeyProvider, bucket: TokenBucket) -> None:
        self._provider = provider
        self._bucket = bucket

    @property
    def inner(self) -> KeyProvider:
        return self._provider

    @property
    def bucket(self) -> TokenBucket:
        return self._bucket

    def get_key(self, kid: str) -> Jwk:
        self._admit(kid)
        return self._provider.get_key(kid)

    def get_all(self) -> list[Jwk]:
        self._admit(None)
        return self._provider.get_all()

    def _admit(self, kid: str | None) -> None:
        if self._bucket.try_consume():
            return
        retry_after = self._bucket.seconds_until_next()
        logger.warning("rate_limit_rejected", kid=kid, retry_after=retry_after)
        raise RateLimitExceededError(retry_after=retry_after)
