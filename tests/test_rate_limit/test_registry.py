"""Tests for the process-wide limiter registry."""

from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from narrative_engine.rate_limit.limiter import RateLimiter
from narrative_engine.rate_limit.registry import RateLimiterRegistry, get_rate_limiter_registry
from narrative_engine.rate_limit.tier import RateLimitConfig, Tier


class TestRateLimiterRegistry:
    """Tests for RateLimiterRegistry."""

    def test_creates_limiter_lazily(self):
        """Nothing exists until a model is first requested."""
        registry = RateLimiterRegistry()
        assert "gemini-flash" not in registry
        assert registry.get("gemini-flash") is None

        limiter = registry.get_or_create("gemini-flash", lambda: Tier("gemini-flash", rpm=10))

        assert isinstance(limiter, RateLimiter)
        assert "gemini-flash" in registry
        assert len(registry) == 1

    def test_same_model_shares_one_limiter(self):
        """Every caller for a model gets the same limiter."""
        registry = RateLimiterRegistry()
        tier_factory = MagicMock(return_value=Tier("m", rpm=5))

        first = registry.get_or_create("m", tier_factory)
        second = registry.get_or_create("m", tier_factory)

        assert first is second
        tier_factory.assert_called_once()

    def test_models_are_independent(self):
        """Different models get different limiters."""
        registry = RateLimiterRegistry()
        a = registry.get_or_create("a", lambda: Tier("a", rpm=1))
        b = registry.get_or_create("b", lambda: Tier("b", rpm=1))
        assert a is not b
        assert a.tier.name == "a"

    def test_custom_limiter_factory(self):
        """The limiter factory receives the tier."""
        factory = MagicMock(side_effect=RateLimiter)
        registry = RateLimiterRegistry(limiter_factory=factory)
        registry.get_or_create("m", lambda: Tier("m"))
        factory.assert_called_once_with(Tier("m"))

    def test_global_registry_is_shared(self):
        """get_rate_limiter_registry() always returns the same instance."""
        assert get_rate_limiter_registry() is get_rate_limiter_registry()


class TestTier:
    """Tests for Tier and RateLimitConfig."""

    def test_from_rate_limits(self):
        """A driver's config maps onto tier ceilings."""
        config = RateLimitConfig(
            requests_per_minute=10, tokens_per_minute=250_000, requests_per_day=500, max_concurrent=2
        )
        tier = Tier.from_rate_limits("gemini-flash", config)
        assert tier == Tier("gemini-flash", rpm=10, tpm=250_000, rpd=500, max_concurrent=2)
        assert not tier.is_unlimited

    def test_unlimited(self):
        """An empty config yields an unlimited tier."""
        assert Tier.from_rate_limits("m", RateLimitConfig()).is_unlimited

    def test_ceilings_must_be_positive(self):
        """Zero ceilings are rejected."""
        with pytest.raises(ValidationError):
            RateLimitConfig(requests_per_minute=0)
