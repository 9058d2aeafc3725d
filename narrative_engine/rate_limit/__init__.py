"""Per-model rate limiting.

Quick Start:
    from narrative_engine.rate_limit import RateLimiter, Tier

    limiter = RateLimiter(Tier(name="gemini-flash", rpm=10, tpm=250_000, max_concurrent=1))
    async with await limiter.acquire(estimated_tokens=1000):
        response = await driver.generate(request)
"""

from narrative_engine.rate_limit.bucket import TokenBucket
from narrative_engine.rate_limit.limiter import (
    DAY,
    MINUTE,
    BudgetRemaining,
    RateLimiter,
    RateLimitPermit,
)
from narrative_engine.rate_limit.registry import (
    RateLimiterRegistry,
    get_rate_limiter_registry,
)
from narrative_engine.rate_limit.tier import RateLimitConfig, Tier

__all__ = [
    "TokenBucket",
    "RateLimiter",
    "RateLimitPermit",
    "BudgetRemaining",
    "MINUTE",
    "DAY",
    "RateLimiterRegistry",
    "get_rate_limiter_registry",
    "RateLimitConfig",
    "Tier",
]
