"""Driver response type definitions.

Immutable dataclasses for generation responses and usage statistics.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class UsageStats:
    """Token usage statistics.

    Attributes:
        prompt_tokens: Tokens in the input.
        completion_tokens: Tokens in the output.
        total_tokens: Combined total.
    """

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass(frozen=True)
class GenerateResponse:
    """Response from a driver generation call.

    Attributes:
        text: Generated text.
        finish_reason: Why generation stopped.
        model: Model that generated the response.
        usage: Token usage statistics.
        raw_response: Provider's raw response (for debugging).
    """

    text: str
    finish_reason: str = "stop"
    model: str = ""
    usage: UsageStats | None = None
    raw_response: Any = None

    def __hash__(self) -> int:
        """Hash based on immutable fields."""
        return hash((self.text, self.finish_reason, self.model))
