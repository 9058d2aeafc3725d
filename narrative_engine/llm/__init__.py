"""Driver abstraction consumed by the narrative engine.

Concrete provider clients live outside this package; anything that
satisfies the Driver protocol can be handed to a NarrativeExecutor.

Quick Start:
    from narrative_engine.llm import GenerateRequest, Message

    response = await driver.generate(
        GenerateRequest(messages=(Message.user("Tell me about dragons"),), max_tokens=500)
    )
    print(response.text)
"""

# Message types
from narrative_engine.llm.message_types import (
    GenerateRequest,
    Message,
    MessageContent,
    MessageRole,
)

# Response types
from narrative_engine.llm.response_types import GenerateResponse, UsageStats

# Protocol
from narrative_engine.llm.base import Driver

# Retry utilities
from narrative_engine.llm.retry import RetryConfig, RetryingDriver, with_retry

# Audit logging
from narrative_engine.llm.audit_logger import (
    LLMAuditContext,
    LLMAuditEntry,
    LLMAuditLogger,
    get_audit_context,
    get_audit_logger,
    reset_audit_context,
    set_audit_context,
)
from narrative_engine.llm.logging_driver import LoggingDriver

# Exceptions
from narrative_engine.llm.exceptions import (
    AuthenticationError,
    ContentPolicyError,
    ContextLengthError,
    DriverError,
    ProviderError,
    RateLimitError,
)

__all__ = [
    # Message types
    "GenerateRequest",
    "Message",
    "MessageContent",
    "MessageRole",
    # Response types
    "GenerateResponse",
    "UsageStats",
    # Protocol
    "Driver",
    # Retry
    "RetryConfig",
    "RetryingDriver",
    "with_retry",
    # Audit logging
    "LLMAuditContext",
    "LLMAuditEntry",
    "LLMAuditLogger",
    "get_audit_context",
    "get_audit_logger",
    "reset_audit_context",
    "set_audit_context",
    "LoggingDriver",
    # Exceptions
    "AuthenticationError",
    "ContentPolicyError",
    "ContextLengthError",
    "DriverError",
    "ProviderError",
    "RateLimitError",
]
