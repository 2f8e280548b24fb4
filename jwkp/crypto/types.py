"""Type definitions for JWK records and JWKS documents."""

from typing import Any

from pydantic import BaseModel, ConfigDict


class Jwk(BaseModel):
    """One JSON Web Key record, identified by ``kid``.

    Key material members (``n``, ``e``, ``crv``, ``x``, ``y`` ...) are kept as
    extra attributes so the record can be handed back to a JWK parser intact.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    kid: str | None = None
    kty: str
    alg: str | None = None
    use: str | None = None
    key_ops: tuple[str, ...] | None = None
    x5u: str | None = None
    x5c: tuple[str, ...] | None = None
    x5t: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the record as a JWK JSON object, without unset members."""
        data = self.model_dump(exclude_none=True)
        for name in ("key_ops", "x5c"):
            if name in data:
                data[name] = list(data[name])
        return data

    def public_key(self) -> Any:
        """Build the cryptography public key object for this record."""
        from jwkp.crypto.keys import load_public_key

        return load_public_key(self)


class JWKSDocument(BaseModel):
    """JSON Web Key Set document as served by the key-set endpoint."""

    keys: list[dict[str, Any]]
