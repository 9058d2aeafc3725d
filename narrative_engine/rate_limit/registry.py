"""Process-wide rate limiter cache.

Limiters are created lazily, keyed by resolved model name, and live for the
rest of the process: there is no eviction and no teardown. Every narrative
execution that talks to the same model shares one limiter, so throttling is
global per model rather than per execution.
"""

import logging
import threading
from typing import Callable

from narrative_engine.rate_limit.limiter import RateLimiter
from narrative_engine.rate_limit.tier import Tier

logger = logging.getLogger(__name__)


class RateLimiterRegistry:
    """Map of model name to RateLimiter.

    The lock guards only the lookup/insert and is never held across an
    await, so it is a plain threading.Lock.

    Args:
        limiter_factory: Builds a limiter from a tier (injectable for tests).
    """

    def __init__(
        self,
        limiter_factory: Callable[[Tier], RateLimiter] = RateLimiter,
    ) -> None:
        self._limiters: dict[str, RateLimiter] = {}
        self._lock = threading.Lock()
        self._limiter_factory = limiter_factory

    def get_or_create(self, model: str, tier_factory: Callable[[], Tier]) -> RateLimiter:
        """Return the limiter for a model, creating it on first use.

        Args:
            model: Resolved model name.
            tier_factory: Called once, only if no limiter exists yet.

        Returns:
            The shared RateLimiter for this model.
        """
        with self._lock:
            limiter = self._limiters.get(model)
            if limiter is None:
                tier = tier_factory()
                limiter = self._limiter_factory(tier)
                self._limiters[model] = limiter
                logger.info(
                    f"Created rate limiter for {model}: rpm={tier.rpm}, tpm={tier.tpm}, "
                    f"rpd={tier.rpd}, max_concurrent={tier.max_concurrent}"
                )
            return limiter

    def get(self, model: str) -> RateLimiter | None:
        """Return the limiter for a model if one was created."""
        with self._lock:
            return self._limiters.get(model)

    def __contains__(self, model: str) -> bool:
        with self._lock:
            return model in self._limiters

    def __len__(self) -> int:
        with self._lock:
            return len(self._limiters)


# Global registry instance, created on first use and never torn down
_registry: RateLimiterRegistry | None = None
_registry_lock = threading.Lock()


def get_rate_limiter_registry() -> RateLimiterRegistry:
    """Get or create the process-wide limiter registry.

    Returns:
        RateLimiterRegistry shared by every executor that is not given one.
    """
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = RateLimiterRegistry()
        return _registry
