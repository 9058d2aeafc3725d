"""Rolling-window token bucket.

Tokens taken from the bucket return to it exactly one period after they
were taken, so no rolling window of `period` seconds ever sees more than
`capacity` tokens granted. Waiters sleep until the oldest grant that frees
enough capacity expires; there is no polling loop.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]

# Smallest sleep used when a computed wait rounds down to zero
_MIN_WAIT = 0.001


class TokenBucket:
    """Async token bucket with a rolling refill window.

    Concurrent callers of take() are served in FIFO order; the bucket's own
    lock (one per event loop) is the waiting queue.

    Args:
        capacity: Tokens available per period.
        period: Window length in seconds.
        name: Label used in log messages.
        clock: Monotonic clock (injectable for tests).
        sleep: Async sleep function (injectable for tests).
    """

    def __init__(
        self,
        capacity: int,
        period: float,
        name: str = "bucket",
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"Bucket capacity must be positive, got {capacity}")
        if period <= 0:
            raise ValueError(f"Bucket period must be positive, got {period}")
        self.capacity = capacity
        self.period = period
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._grants: deque[tuple[float, int]] = deque()
        self._used = 0
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    @property
    def busy(self) -> bool:
        """True while a caller is waiting inside take()."""
        lock = self._current_lock()
        return lock is not None and lock.locked()

    def available(self) -> int:
        """Tokens that could be taken right now."""
        self._prune(self._clock())
        return self.capacity - self._used

    def try_take(self, amount: int = 1) -> bool:
        """Take tokens without waiting.

        Fails while other callers are queued so waiters are not starved.

        Args:
            amount: Tokens to take.

        Returns:
            True if the tokens were taken.
        """
        amount = self._clamp(amount)
        if self.busy:
            return False
        now = self._clock()
        self._prune(now)
        if self.capacity - self._used < amount:
            return False
        self._record(now, amount)
        return True

    async def take(self, amount: int = 1) -> None:
        """Take tokens, suspending until the window frees enough of them.

        Args:
            amount: Tokens to take. Demands above capacity are clamped.
        """
        amount = self._clamp(amount)
        async with self._loop_lock():
            while True:
                now = self._clock()
                self._prune(now)
                if self.capacity - self._used >= amount:
                    self._record(now, amount)
                    return
                wait = self._time_until_available(amount, now)
                logger.debug(f"{self.name}: waiting {wait:.2f}s for {amount} token(s)")
                await self._sleep(wait)

    def _current_lock(self) -> asyncio.Lock | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return None
        return self._lock if self._lock_loop is loop else None

    def _loop_lock(self) -> asyncio.Lock:
        # asyncio locks bind to one event loop; each loop gets its own queue
        lock = self._current_lock()
        if lock is None:
            lock = self._lock = asyncio.Lock()
            self._lock_loop = asyncio.get_running_loop()
        return lock

    def _clamp(self, amount: int) -> int:
        if amount < 1:
            return 1
        if amount > self.capacity:
            logger.warning(
                f"{self.name}: requested {amount} tokens exceeds capacity "
                f"{self.capacity}, clamping"
            )
            return self.capacity
        return amount

    def _record(self, now: float, amount: int) -> None:
        self._grants.append((now, amount))
        self._used += amount

    def _prune(self, now: float) -> None:
        while self._grants and now - self._grants[0][0] >= self.period:
            _, amount = self._grants.popleft()
            self._used -= amount

    def _time_until_available(self, amount: int, now: float) -> float:
        free = self.capacity - self._used
        for granted_at, granted in self._grants:
            free += granted
            if free >= amount:
                return max(granted_at + self.period - now, _MIN_WAIT)
        # Unreachable while amount <= capacity
        return self.period
