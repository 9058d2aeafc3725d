"""Backoff policy for transient driver failures.

The narrative engine fails fast on driver errors. Hosts that want
retries wrap their driver in RetryingDriver before handing it to the
executor, so every act gets the same policy.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from narrative_engine.llm.base import Driver
from narrative_engine.llm.exceptions import ProviderError, RateLimitError
from narrative_engine.llm.message_types import GenerateRequest
from narrative_engine.llm.response_types import GenerateResponse
from narrative_engine.rate_limit.tier import RateLimitConfig

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    """Exponential backoff settings.

    Attributes:
        max_retries: Attempts after the first one.
        initial_delay: Delay before the first retry, in seconds.
        max_delay: Ceiling for the computed delay.
        exponential_base: Growth factor per attempt.
        jitter: Add up to 25% random extra delay.
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int, retry_after: float | None = None) -> float:
        """Seconds to wait before retry number `attempt` (0-indexed).

        A server-supplied retry_after wins when it is longer.
        """
        delay = min(self.initial_delay * self.exponential_base**attempt, self.max_delay)
        if retry_after is not None:
            delay = max(delay, retry_after)
        if self.jitter:
            delay += random.uniform(0, delay * 0.25)
        return delay


def is_transient(error: ProviderError) -> bool:
    """Rate limits and retryable provider errors are worth another attempt."""
    return isinstance(error, RateLimitError) or error.is_retryable


async def with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    sleep: Sleep = asyncio.sleep,
    **kwargs: Any,
) -> T:
    """Await `func(*args, **kwargs)`, retrying transient provider errors.

    Authentication, content-policy and other permanent errors propagate
    on the first failure.

    Raises:
        ProviderError: The last error once retries are exhausted.
    """
    config = config or RetryConfig()
    attempt = 0
    while True:
        try:
            return await func(*args, **kwargs)
        except ProviderError as e:
            if not is_transient(e) or attempt >= config.max_retries:
                raise
            delay = config.delay_for(attempt, getattr(e, "retry_after", None))
            attempt += 1
            logger.warning(
                f"Transient provider error ({e}), retry {attempt}/{config.max_retries} "
                f"in {delay:.2f}s"
            )
            await sleep(delay)


class RetryingDriver:
    """Driver that applies a RetryConfig to every generate() call.

    The executor takes one rate-limit permit per act and calls generate()
    inside it, so retries run under that single permit. Retried attempts
    are not charged to RPM, TPM or RPD; provider 429s are answered by the
    backoff here, not by the local buckets. Hosts that need every attempt
    counted should keep max_retries low or tighten the tier.

    Args:
        driver: Driver to wrap.
        config: Backoff settings.
        sleep: Awaitable sleep, replaceable in tests.
    """

    def __init__(
        self, driver: Driver, config: RetryConfig | None = None, sleep: Sleep = asyncio.sleep
    ) -> None:
        self._driver = driver
        self.config = config or RetryConfig()
        self._sleep = sleep

    @property
    def provider_name(self) -> str:
        return self._driver.provider_name

    @property
    def default_model(self) -> str:
        return self._driver.default_model

    def rate_limits(self) -> RateLimitConfig:
        return self._driver.rate_limits()

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        return await with_retry(
            self._driver.generate, request, config=self.config, sleep=self._sleep
        )
