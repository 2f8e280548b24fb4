"""Time units and the clock abstraction shared by the bucket and the cache."""

import time
from collections.abc import Callable
from enum import StrEnum

# Clock readings are integer nanoseconds so elapsed-time arithmetic is exact.
Clock = Callable[[], int]

NANOS_PER_SECOND = 1_000_000_000

_SECONDS_PER_UNIT = {
    "milliseconds": 0.001,
    "seconds": 1.0,
    "minutes": 60.0,
    "hours": 3600.0,
    "days": 86400.0,
}


class TimeUnit(StrEnum):
    """Unit attached to a duration amount in configuration."""

    MILLISECONDS = "milliseconds"
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"

    def to_seconds(self, amount: float) -> float:
        """Convert an amount of this unit to seconds."""
        return amount * _SECONDS_PER_UNIT[self.value]


def to_nanos(seconds: float) -> int:
    """Convert seconds to whole nanoseconds, rounding to nearest."""
    return round(seconds * NANOS_PER_SECOND)


def monotonic_clock() -> int:
    return time.monotonic_ns()
