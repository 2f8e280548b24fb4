"""Provider settings loaded from environment variables."""

from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from jwkp.core.errors import InvalidConfigurationError
from jwkp.core.units import TimeUnit

CACHE_SIZE_DEFAULT = 5
CACHE_TTL_DEFAULT = 10
CACHE_TTL_UNIT_DEFAULT = TimeUnit.HOURS
BUCKET_SIZE_DEFAULT = 10
REFILL_RATE_DEFAULT = 1
REFILL_UNIT_DEFAULT = TimeUnit.MINUTES
CONNECT_TIMEOUT_DEFAULT = 5.0
READ_TIMEOUT_DEFAULT = 5.0


class ProviderSettings(BaseSettings):
    """Key-set location plus cache and rate-limit stage parameters.

    Raises:
        InvalidConfigurationError: If a value is missing or out of range. The
            pydantic ValidationError is chained as the cause.
    """

    model_config = SettingsConfigDict(env_prefix="JWK_")

    url: str

    cached: bool = True
    cache_size: int = Field(default=CACHE_SIZE_DEFAULT, ge=1)
    cache_ttl: float = Field(default=CACHE_TTL_DEFAULT, gt=0)
    cache_ttl_unit: TimeUnit = CACHE_TTL_UNIT_DEFAULT

    rate_limited: bool = True
    bucket_size: int = Field(default=BUCKET_SIZE_DEFAULT, ge=1)
    refill_rate: int = Field(default=REFILL_RATE_DEFAULT, ge=1)
    refill_unit: TimeUnit = REFILL_UNIT_DEFAULT

    connect_timeout: float = Field(default=CONNECT_TIMEOUT_DEFAULT, gt=0)
    read_timeout: float = Field(default=READ_TIMEOUT_DEFAULT, gt=0)
    headers: dict[str, str] = Field(default_factory=dict)

    def __init__(self, **values: Any) -> None:
        try:
            super().__init__(**values)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(loc) for loc in first["loc"])
            raise InvalidConfigurationError(
                "Invalid provider settings", details=f"{field}: {first['msg']}"
            ) from e

    @property
    def cache_ttl_seconds(self) -> float:
        """Cache entry lifetime in seconds."""
        return self.cache_ttl_unit.to_seconds(self.cache_ttl)

    @property
    def refill_period_seconds(self) -> float:
        """Length of one refill period in seconds."""
        return self.refill_unit.to_seconds(1)
