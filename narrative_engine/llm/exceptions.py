"""Errors raised by drivers.

The executor wraps any driver failure in a GenerationFailedError; only
RetryingDriver looks at the finer-grained subclasses.
"""


class DriverError(Exception):
    """A driver could not produce a response."""

    pass


class ProviderError(DriverError):
    """The model provider rejected or failed a request.

    Attributes:
        is_retryable: True for transient failures.
        status_code: HTTP status reported by the provider, if any.
    """

    def __init__(
        self, message: str, is_retryable: bool = False, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.is_retryable = is_retryable
        self.status_code = status_code

    @classmethod
    def from_status(
        cls, status_code: int, message: str, retry_after: float | None = None
    ) -> "ProviderError":
        """Map an HTTP status from a provider API to the matching error.

        429 is a rate limit, 401/403 an authentication failure, 5xx a
        retryable provider error; anything else is permanent.
        """
        if status_code == 429:
            return RateLimitError(message, retry_after=retry_after)
        if status_code in (401, 403):
            return AuthenticationError(message, status_code=status_code)
        return cls(message, is_retryable=status_code >= 500, status_code=status_code)


class RateLimitError(ProviderError):
    """Provider-side throttling (HTTP 429).

    Attributes:
        retry_after: Seconds the provider asked us to wait.
    """

    def __init__(self, message: str = "Rate limit exceeded", retry_after: float | None = None):
        super().__init__(message, is_retryable=True, status_code=429)
        self.retry_after = retry_after


class AuthenticationError(ProviderError):
    """Credentials were missing, invalid or lacked permission."""

    def __init__(self, message: str = "Authentication failed", status_code: int = 401) -> None:
        super().__init__(message, status_code=status_code)


class ContentPolicyError(ProviderError):
    """The request or response was blocked by the provider's policy."""

    def __init__(self, message: str = "Content policy violation") -> None:
        super().__init__(message)


class ContextLengthError(ProviderError):
    """The conversation no longer fits the model's context window.

    Long narratives hit this first; history retention settings are the
    usual fix.

    Attributes:
        max_tokens: Context size of the model, if the provider reported it.
    """

    def __init__(self, message: str, max_tokens: int | None = None) -> None:
        super().__init__(message)
        self.max_tokens = max_tokens
