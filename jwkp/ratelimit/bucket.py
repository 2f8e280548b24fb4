"""Token bucket with lazy, time-based refill."""

import threading

from jwkp.core.errors import InvalidConfigurationError
from jwkp.core.units import NANOS_PER_SECOND, Clock, monotonic_clock, to_nanos


class TokenBucket:
    """Admits a bounded burst of operations, refilled at a fixed rate.

    The bucket starts full. There is no background timer: every call first
    credits the tokens earned since the previous call, then tries to take one.
    Partial tokens are kept as an exact integer credit (nanoseconds times
    refill rate), so a slow steady caller is not starved by rounding and a
    wait of one full period always earns ``refill_rate`` tokens.

    Thread Safety:
        Refill and consumption run as one critical section under a lock.

    Example:
        >>> bucket = TokenBucket(capacity=10, refill_rate=1, refill_period=60)
        >>> bucket.try_consume()
        True
    """

    def __init__(
        self,
        capacity: int,
        refill_rate: int,
        refill_period: float,
        *,
        clock: Clock | None = None,
    ) -> None:
        """Initialize TokenBucket.

        Args:
            capacity: Maximum number of tokens (burst size), at least 1.
            refill_rate: Tokens added per refill period, at least 1.
            refill_period: Length of one refill period in seconds.
            clock: Monotonic time source in nanoseconds. Defaults to
                time.monotonic_ns.

        Raises:
            InvalidConfigurationError: If any parameter is out of range.
        """
        if capacity < 1:
            raise InvalidConfigurationError(
                "Bucket capacity must be at least 1", details=f"got {capacity}"
            )
        if refill_rate < 1:
            raise InvalidConfigurationError(
                "Refill rate must be at least 1", details=f"got {refill_rate}"
            )
        period_ns = to_nanos(refill_period) if refill_period > 0 else 0
        if period_ns < 1:
            raise InvalidConfigurationError(
                "Refill period must be positive", details=f"got {refill_period}"
            )
        self._capacity = capacity
        self._refill_rate = refill_rate
        self._refill_period = float(refill_period)
        self._period_ns = period_ns
        self._clock = clock or monotonic_clock
        self._available = capacity
        self._credit = 0
        self._last_refill = self._clock()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def refill_rate(self) -> int:
        return self._refill_rate

    @property
    def refill_period(self) -> float:
        return self._refill_period

    @property
    def available_tokens(self) -> float:
        """Tokens available right now, fractional part included."""
        with self._lock:
            self._refill()
            return self._available + self._credit / self._period_ns

    def try_consume(self) -> bool:
        """Take one token if available.

        Returns:
            True if a token was taken, False if the bucket is empty.
        """
        with self._lock:
            self._refill()
            if self._available >= 1:
                self._available -= 1
                return True
            return False

    def seconds_until_next(self) -> float:
        """Seconds until one whole token is available (0 if one already is)."""
        with self._lock:
            self._refill()
            if self._available >= 1:
                return 0.0
            missing = self._period_ns - self._credit
            wait_ns = -(-missing // self._refill_rate)
            return wait_ns / NANOS_PER_SECOND

    def _refill(self) -> None:
        # Caller holds the lock. Credit is in nanoseconds times refill rate.
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed <= 0:
            return
        self._last_refill = now
        if self._available >= self._capacity:
            return
        self._credit += elapsed * self._refill_rate
        earned, self._credit = divmod(self._credit, self._period_ns)
        self._available += earned
        if self._available >= self._capacity:
            self._available = self._capacity
            self._credit = 0
