"""Exception hierarchy for key resolution.

Exception Hierarchy:
    JwkError (base)
    ├── InvalidConfigurationError (out-of-range construction parameters)
    ├── RateLimitExceededError (token bucket exhausted)
    ├── SourceError
    │   ├── SourceUnavailableError (transport failures)
    │   └── SourceMalformedError (unparseable key set)
    ├── KeyNotFoundError (kid absent from a successful fetch)
    └── InvalidPublicKeyError (JWK cannot be turned into a key)
"""

from __future__ import annotations


class JwkError(Exception):
    """Base exception for all key provider errors.

    Attributes:
        message: Human-readable error description.
        details: Optional additional error details.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class InvalidConfigurationError(JwkError):
    """Raised at construction time for non-positive sizes, rates or durations."""


class RateLimitExceededError(JwkError):
    """Raised when the token bucket has no token for an upstream call.

    Attributes:
        retry_after: Seconds until the next token becomes available.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: float | None = None,
    ) -> None:
        details = None
        if retry_after is not None:
            details = f"retry after {retry_after:.3f}s"
        super().__init__(message, details)
        self.retry_after = retry_after


class SourceError(JwkError):
    """Base class for failures reported by a key source."""


class SourceUnavailableError(SourceError):
    """Raised on network or transport failure while fetching the key set."""


class SourceMalformedError(SourceError):
    """Raised when the fetched document cannot be parsed into keys."""


class KeyNotFoundError(JwkError):
    """Raised when a successful fetch does not contain the requested kid.

    Attributes:
        kid: The key identifier that was requested.
    """

    def __init__(self, kid: str | None, details: str | None = None) -> None:
        super().__init__(f"No key found for kid {kid!r}", details)
        self.kid = kid


class InvalidPublicKeyError(JwkError):
    """Raised when a JWK record cannot be converted to a public key."""
