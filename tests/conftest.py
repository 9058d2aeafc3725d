"""Core test fixtures for narrative engine tests."""

import pytest

from narrative_engine.config import Settings
from narrative_engine.narrative.executor import NarrativeExecutor
from narrative_engine.rate_limit.limiter import RateLimiter
from narrative_engine.rate_limit.registry import RateLimiterRegistry
from tests.factories import FakeClock, MockDriver


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock starting at t=1000 whose sleep advances time instantly."""
    return FakeClock()


@pytest.fixture
def limiter_registry(fake_clock) -> RateLimiterRegistry:
    """Fresh limiter registry whose limiters run on the fake clock."""
    return RateLimiterRegistry(
        limiter_factory=lambda tier: RateLimiter(tier, clock=fake_clock, sleep=fake_clock.sleep)
    )


@pytest.fixture
def test_settings() -> Settings:
    """Settings that ignore any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def make_executor(limiter_registry, test_settings):
    """Factory for executors sharing the test limiter registry."""

    def _make(driver: MockDriver, **kwargs) -> NarrativeExecutor:
        kwargs.setdefault("rate_limiters", limiter_registry)
        kwargs.setdefault("settings", test_settings)
        return NarrativeExecutor(driver, **kwargs)

    return _make
