"""Shared test fixtures for jwkp."""

import base64
from collections.abc import Callable
from typing import Any

import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from jwkp.crypto.types import Jwk
from tests.doubles import CountingSource, ManualClock

RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537


def _int_to_base64url(value: int, length: int | None = None) -> str:
    byte_length = length or (value.bit_length() + 7) // 8
    raw = value.to_bytes(byte_length, byteorder="big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def make_jwk() -> Callable[[str], Jwk]:
    """Build a lightweight RSA-shaped Jwk with placeholder material."""

    def _make(kid: str) -> Jwk:
        return Jwk(kid=kid, kty="RSA", use="sig", alg="RS256", n="sXch", e="AQAB")

    return _make


@pytest.fixture
def make_source(
    make_jwk: Callable[[str], Jwk],
) -> Callable[..., CountingSource]:
    """Create a CountingSource serving keys for the given kids."""

    def _make(*kids: str) -> CountingSource:
        return CountingSource([make_jwk(kid) for kid in kids])

    return _make


@pytest.fixture
def rsa_jwk_dict() -> dict[str, Any]:
    """A real RSA-2048 public key in JWK form."""
    private_key = rsa.generate_private_key(
        public_exponent=RSA_PUBLIC_EXPONENT,
        key_size=RSA_KEY_SIZE,
    )
    numbers = private_key.public_key().public_numbers()
    return {
        "kty": "RSA",
        "use": "sig",
        "alg": "RS256",
        "kid": "rsa-1",
        "n": _int_to_base64url(numbers.n),
        "e": _int_to_base64url(numbers.e),
    }


@pytest.fixture
def ec_jwk_dict() -> dict[str, Any]:
    """A real P-256 public key in JWK form."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    numbers = private_key.public_key().public_numbers()
    return {
        "kty": "EC",
        "use": "sig",
        "crv": "P-256",
        "kid": "ec-1",
        "x": _int_to_base64url(numbers.x, 32),
        "y": _int_to_base64url(numbers.y, 32),
    }
