"""Driver wrapper that audit-logs every generation call."""

import time
from datetime import datetime
from typing import Any, Sequence

from narrative_engine.llm.audit_logger import (
    LLMAuditEntry,
    LLMAuditLogger,
    get_audit_context,
    get_audit_logger,
)
from narrative_engine.llm.base import Driver
from narrative_engine.llm.message_types import GenerateRequest, Message
from narrative_engine.llm.response_types import GenerateResponse
from narrative_engine.rate_limit.tier import RateLimitConfig


def audit_messages(messages: Sequence[Message]) -> list[dict[str, Any]]:
    """Role/content dicts for the audit log; media becomes a short marker."""
    rendered = []
    for message in messages:
        parts = [
            (block.text or "")
            if block.is_text
            else f"[{block.type}: {block.media_type or 'unknown'}]"
            for block in message.content
        ]
        rendered.append({"role": message.role.value, "content": "\n\n".join(parts)})
    return rendered


class LoggingDriver:
    """Delegates to another driver and records each call, failed or not.

    The entry is filed under the narrative/act found in the audit context
    at call time.

    Args:
        driver: Driver to wrap.
        audit_logger: Destination (the process-wide logger when omitted).
    """

    def __init__(self, driver: Driver, audit_logger: LLMAuditLogger | None = None) -> None:
        self._driver = driver
        self._audit_logger = audit_logger

    @property
    def provider_name(self) -> str:
        return self._driver.provider_name

    @property
    def default_model(self) -> str:
        return self._driver.default_model

    def rate_limits(self) -> RateLimitConfig:
        return self._driver.rate_limits()

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        context = get_audit_context()
        timestamp = datetime.now()
        started = time.perf_counter()
        response: GenerateResponse | None = None
        error: str | None = None
        try:
            response = await self._driver.generate(request)
            return response
        except Exception as e:
            error = str(e)
            raise
        finally:
            entry = LLMAuditEntry(
                timestamp=timestamp,
                context=context,
                provider=self._driver.provider_name,
                model=request.model or self._driver.default_model,
                messages=audit_messages(request.messages),
                parameters={"max_tokens": request.max_tokens, "temperature": request.temperature},
                response=response,
                error=error,
                duration_seconds=time.perf_counter() - started,
            )
            await (self._audit_logger or get_audit_logger()).log(entry)
