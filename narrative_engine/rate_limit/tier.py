"""Rate-limit profiles.

RateLimitConfig is what a driver reports about its account; Tier is the
named profile a RateLimiter is built from. Unset ceilings mean "unlimited".
"""

from dataclasses import dataclass

from pydantic import BaseModel, Field


class RateLimitConfig(BaseModel):
    """Rate-limit ceilings reported by a driver."""

    requests_per_minute: int | None = Field(default=None, ge=1)
    tokens_per_minute: int | None = Field(default=None, ge=1)
    requests_per_day: int | None = Field(default=None, ge=1)
    max_concurrent: int | None = Field(default=None, ge=1)


@dataclass(frozen=True)
class Tier:
    """A named rate-limit profile.

    Attributes:
        name: Profile name (usually the model it applies to).
        rpm: Requests per minute ceiling.
        tpm: Tokens per minute ceiling.
        rpd: Requests per day ceiling.
        max_concurrent: Maximum in-flight requests.
    """

    name: str
    rpm: int | None = None
    tpm: int | None = None
    rpd: int | None = None
    max_concurrent: int | None = None

    @classmethod
    def from_rate_limits(cls, name: str, config: RateLimitConfig) -> "Tier":
        """Build a tier from a driver's rate-limit config.

        Args:
            name: Name for the tier.
            config: Ceilings reported by the driver.

        Returns:
            Tier carrying the same ceilings.
        """
        return cls(
            name=name,
            rpm=config.requests_per_minute,
            tpm=config.tokens_per_minute,
            rpd=config.requests_per_day,
            max_concurrent=config.max_concurrent,
        )

    @classmethod
    def unlimited(cls, name: str = "unlimited") -> "Tier":
        """Tier with no ceilings at all."""
        return cls(name=name)

    @property
    def is_unlimited(self) -> bool:
        return self.rpm is None and self.tpm is None and self.rpd is None
