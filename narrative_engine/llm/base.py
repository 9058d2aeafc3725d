"""Driver protocol definition.

Defines the interface that model drivers must implement to be used by the
narrative engine. Concrete provider clients live outside this package.
"""

from typing import Protocol, runtime_checkable

from narrative_engine.llm.message_types import GenerateRequest
from narrative_engine.llm.response_types import GenerateResponse
from narrative_engine.rate_limit.tier import RateLimitConfig


@runtime_checkable
class Driver(Protocol):
    """Protocol for model drivers.

    A driver turns one GenerateRequest into one GenerateResponse and reports
    the rate limits of the account it talks to, so callers can budget.
    """

    @property
    def provider_name(self) -> str:
        """Return provider identifier (e.g., 'anthropic', 'gemini')."""
        ...

    @property
    def default_model(self) -> str:
        """Return model used when a request carries no override."""
        ...

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        """Generate a response for the request.

        Args:
            request: Conversation history plus optional overrides.

        Returns:
            GenerateResponse with the generated text.

        Raises:
            DriverError: If the provider call fails.
        """
        ...

    def rate_limits(self) -> RateLimitConfig:
        """Return the rate-limit ceilings that apply to this driver."""
        ...
