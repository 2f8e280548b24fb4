"""Provider and source contracts, plus the base stage that calls the source."""

from typing import Protocol, runtime_checkable

from jwkp.core.errors import KeyNotFoundError
from jwkp.crypto.types import Jwk


@runtime_checkable
class KeySource(Protocol):
    """Fetches the complete key set from wherever it lives."""

    def fetch_all(self) -> list[Jwk]:
        """Return every key in source order.

        Raises:
            SourceUnavailableError: On transport failure.
            SourceMalformedError: If the response is not a key set.
        """
        ...


@runtime_checkable
class KeyProvider(Protocol):
    """Resolves keys by ``kid``. Every pipeline stage implements this."""

    def get_key(self, kid: str) -> Jwk:
        """Return the key with the given kid."""
        ...

    def get_all(self) -> list[Jwk]:
        """Return the full key set."""
        ...


def find_key(keys: list[Jwk], kid: str | None) -> Jwk | None:
    """Return the first key whose kid matches, or None."""
    for key in keys:
        if key.kid == kid:
            return key
    return None


class SourceProvider:
    """Innermost stage: one source fetch per call, no state."""

    def __init__(self, source: KeySource) -> None:
        self._source = source

    @property
    def source(self) -> KeySource:
        return self._source

    def get_all(self) -> list[Jwk]:
        return self._source.fetch_all()

    def get_key(self, kid: str) -> Jwk:
        key = find_key(self._source.fetch_all(), kid)
        if key is None:
            raise KeyNotFoundError(kid)
        return key
