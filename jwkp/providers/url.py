"""HTTP key source for a remote JWKS endpoint."""

from collections.abc import Mapping

import httpx
import structlog

from jwkp.core.errors import (
    InvalidConfigurationError,
    SourceMalformedError,
    SourceUnavailableError,
)
from jwkp.core.settings import CONNECT_TIMEOUT_DEFAULT, READ_TIMEOUT_DEFAULT
from jwkp.crypto.keys import parse_jwks
from jwkp.crypto.types import Jwk

logger = structlog.get_logger(__name__)

WELL_KNOWN_JWKS_PATH = "/.well-known/jwks.json"


def normalize_jwks_url(domain_or_url: str) -> str:
    """Build the key-set URL from a bare domain or a full URL.

    ``samples.auth0.com`` becomes ``https://samples.auth0.com/.well-known/jwks.json``.
    A URL with an explicit path is returned unchanged.
    """
    value = domain_or_url.strip()
    if not value:
        raise InvalidConfigurationError("Cannot build provider without a domain or url")
    if "://" not in value:
        value = f"https://{value}"
    url = httpx.URL(value)
    if not url.host:
        raise InvalidConfigurationError("Invalid key-set url", details=domain_or_url)
    if url.path in ("", "/"):
        url = url.copy_with(path=WELL_KNOWN_JWKS_PATH)
    return str(url)


class UrlKeySource:
    """Fetches a JWKS document over HTTP on every call.

    Transport failures, timeouts and non-2xx responses raise
    ``SourceUnavailableError``; bodies that are not a key set raise
    ``SourceMalformedError``.
    """

    def __init__(
        self,
        url: str,
        *,
        connect_timeout: float = CONNECT_TIMEOUT_DEFAULT,
        read_timeout: float = READ_TIMEOUT_DEFAULT,
        headers: Mapping[str, str] | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        if connect_timeout <= 0 or read_timeout <= 0:
            raise InvalidConfigurationError(
                "Timeouts must be positive",
                details=f"connect={connect_timeout} read={read_timeout}",
            )
        self._url = normalize_jwks_url(url)
        self._timeout = httpx.Timeout(read_timeout, connect=connect_timeout)
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._client = client

    @property
    def url(self) -> str:
        return self._url

    def fetch_all(self) -> list[Jwk]:
        response = self._get()
        try:
            payload = response.json()
        except ValueError as e:
            logger.warning("jwks_not_json", url=self._url)
            raise SourceMalformedError("Key-set response is not JSON", details=self._url) from e
        keys = parse_jwks(payload)
        logger.debug("jwks_fetched", url=self._url, keys=len(keys))
        return keys

    def _get(self) -> httpx.Response:
        try:
            if self._client is not None:
                response = self._client.get(
                    self._url, headers=self._headers, timeout=self._timeout
                )
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    response = client.get(self._url, headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "jwks_fetch_failed", url=self._url, status=e.response.status_code
            )
            raise SourceUnavailableError(
                "Key-set endpoint returned an error",
                details=f"HTTP {e.response.status_code}",
            ) from e
        except httpx.RequestError as e:
            logger.warning("jwks_fetch_failed", url=self._url, error=str(e))
            raise SourceUnavailableError(
                "Cannot reach key-set endpoint", details=type(e).__name__
            ) from e
        return response
