"""JWKS parsing and public key construction."""

from typing import Any

from jwt import PyJWK
from jwt.exceptions import PyJWTError
from pydantic import ValidationError

from jwkp.core.errors import InvalidPublicKeyError, SourceMalformedError
from jwkp.crypto.types import Jwk, JWKSDocument

SUPPORTED_KEY_TYPES = frozenset({"RSA", "EC", "OKP"})


def parse_jwks(payload: Any) -> list[Jwk]:
    """Turn a decoded JWKS document into Jwk records, keeping source order."""
    try:
        document = JWKSDocument.model_validate(payload)
        return [Jwk.model_validate(entry) for entry in document.keys]
    except ValidationError as e:
        raise SourceMalformedError(
            "Invalid JWKS document", details=f"{e.error_count()} validation error(s)"
        ) from e


def load_public_key(jwk: Jwk) -> Any:
    """Build the cryptography public key for an RSA, EC or OKP record."""
    if jwk.kty not in SUPPORTED_KEY_TYPES:
        raise InvalidPublicKeyError(
            "Unsupported key type", details=f"kty={jwk.kty!r} kid={jwk.kid!r}"
        )
    try:
        return PyJWK(jwk.to_dict()).key
    except (PyJWTError, ValueError, TypeError, KeyError) as e:
        raise InvalidPublicKeyError(
            "Could not build public key", details=f"kid={jwk.kid!r}: {e}"
        ) from e
