"""Rate limiter enforcing a Tier.

Each RateLimiter combines:
- RPM (requests per minute): rolling-window TokenBucket
- TPM (tokens per minute): rolling-window TokenBucket
- RPD (requests per day): rolling-window TokenBucket
- Concurrent requests: asyncio.Semaphore

Buckets for ceilings the tier leaves unset are omitted entirely.
"""

import asyncio
import logging
import time
from dataclasses import dataclass

from narrative_engine.rate_limit.bucket import Clock, Sleep, TokenBucket
from narrative_engine.rate_limit.tier import Tier

logger = logging.getLogger(__name__)

MINUTE = 60.0
DAY = 86_400.0


@dataclass(frozen=True)
class BudgetRemaining:
    """Remaining allowance per configured dimension (None = unlimited)."""

    requests_per_minute: int | None = None
    tokens_per_minute: int | None = None
    requests_per_day: int | None = None

    def can_afford(self, tokens: int) -> bool:
        """Check whether one request of `tokens` fits every dimension."""
        if self.requests_per_minute is not None and self.requests_per_minute < 1:
            return False
        if self.tokens_per_minute is not None and self.tokens_per_minute < tokens:
            return False
        if self.requests_per_day is not None and self.requests_per_day < 1:
            return False
        return True


class RateLimitPermit:
    """Handle for one admitted request.

    Holds the concurrency slot until released; use as an async context
    manager so the slot is returned even if the request fails.
    """

    def __init__(self, semaphore: asyncio.Semaphore | None) -> None:
        self._semaphore = semaphore
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Return the concurrency slot. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        if self._semaphore is not None:
            self._semaphore.release()

    async def __aenter__(self) -> "RateLimitPermit":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.release()


class RateLimiter:
    """Rate limiter that enforces every ceiling of a tier.

    Args:
        tier: Profile to enforce.
        clock: Monotonic clock shared by all buckets (injectable for tests).
        sleep: Async sleep shared by all buckets (injectable for tests).
    """

    def __init__(
        self,
        tier: Tier,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.tier = tier
        self._rpm = self._bucket(tier.rpm, MINUTE, "rpm", clock, sleep)
        self._tpm = self._bucket(tier.tpm, MINUTE, "tpm", clock, sleep)
        self._rpd = self._bucket(tier.rpd, DAY, "rpd", clock, sleep)
        self._semaphore: asyncio.Semaphore | None = None
        self._semaphore_loop: asyncio.AbstractEventLoop | None = None

    def _concurrency(self) -> asyncio.Semaphore | None:
        """Concurrency semaphore for the running event loop.

        asyncio primitives bind to one loop, so a limiter that outlives an
        `asyncio.run()` gets a fresh semaphore in the next loop.
        """
        if not self.tier.max_concurrent:
            return None
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self.tier.max_concurrent)
            self._semaphore_loop = loop
        return self._semaphore

    def _bucket(
        self,
        ceiling: int | None,
        period: float,
        label: str,
        clock: Clock,
        sleep: Sleep,
    ) -> TokenBucket | None:
        if ceiling is None:
            return None
        return TokenBucket(
            ceiling,
            period,
            name=f"{self.tier.name}:{label}",
            clock=clock,
            sleep=sleep,
        )

    @property
    def has_rpm_limit(self) -> bool:
        return self._rpm is not None

    @property
    def has_tpm_limit(self) -> bool:
        return self._tpm is not None

    @property
    def has_rpd_limit(self) -> bool:
        return self._rpd is not None

    async def acquire(self, estimated_tokens: int = 1) -> RateLimitPermit:
        """Wait until every ceiling admits one request.

        Order is fixed: concurrency slot, then RPM, TPM and RPD buckets.

        Args:
            estimated_tokens: Estimated tokens for this request (TPM).

        Returns:
            Permit holding the concurrency slot.
        """
        semaphore = self._concurrency()
        if semaphore is not None:
            await semaphore.acquire()
        try:
            if self._rpm is not None:
                await self._rpm.take(1)
            if self._tpm is not None:
                await self._tpm.take(estimated_tokens)
            if self._rpd is not None:
                await self._rpd.take(1)
        except BaseException:
            if semaphore is not None:
                semaphore.release()
            raise
        return RateLimitPermit(semaphore)

    async def try_acquire(self, estimated_tokens: int = 1) -> RateLimitPermit | None:
        """Acquire only if nothing would have to wait.

        Nothing is consumed when the request is refused.

        Args:
            estimated_tokens: Estimated tokens for this request (TPM).

        Returns:
            Permit, or None if any ceiling would block.
        """
        semaphore = self._concurrency()
        if semaphore is not None and semaphore.locked():
            return None
        buckets = [b for b in (self._rpm, self._tpm, self._rpd) if b is not None]
        if any(bucket.busy for bucket in buckets):
            return None
        if not self.can_afford(estimated_tokens):
            return None
        # Nothing below can suspend or fail: the semaphore is unlocked and
        # every bucket was just checked without an intervening await.
        if semaphore is not None:
            await semaphore.acquire()
        if self._rpm is not None:
            self._rpm.try_take(1)
        if self._tpm is not None:
            self._tpm.try_take(estimated_tokens)
        if self._rpd is not None:
            self._rpd.try_take(1)
        return RateLimitPermit(semaphore)

    def remaining(self) -> BudgetRemaining:
        """Allowance left in the current rolling windows."""
        return BudgetRemaining(
            requests_per_minute=self._rpm.available() if self._rpm else None,
            tokens_per_minute=self._tpm.available() if self._tpm else None,
            requests_per_day=self._rpd.available() if self._rpd else None,
        )

    def can_afford(self, estimated_tokens: int) -> bool:
        """Check whether one request plus `estimated_tokens` fits right now."""
        tokens = estimated_tokens
        if self._tpm is not None:
            tokens = min(max(estimated_tokens, 1), self._tpm.capacity)
        return self.remaining().can_afford(tokens)
