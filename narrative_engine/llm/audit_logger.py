"""Driver audit logging for prompt/response debugging.

Provides filesystem-based logging of all driver calls for debugging and
prompt improvement. Logs are written as markdown files organized by
narrative and act.
"""

import asyncio
import contextvars
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from narrative_engine.llm.response_types import GenerateResponse


@dataclass
class LLMAuditContext:
    """Context for a driver audit log entry.

    Attributes:
        narrative_name: Narrative being executed (None for orphan calls).
        act_name: Act being executed.
        sequence_number: Position of the act in its narrative execution.
    """

    narrative_name: str | None = None
    act_name: str | None = None
    sequence_number: int | None = None


@dataclass
class LLMAuditEntry:
    """Complete audit entry for a driver call.

    Attributes:
        timestamp: When the call was made.
        context: Narrative/act context.
        provider: Provider name (e.g., "anthropic").
        model: Model used for the call.
        messages: List of message dicts.
        parameters: Call parameters (max_tokens, temperature).
        response: Driver response if successful.
        error: Error message if failed.
        duration_seconds: Time taken for the call.
    """

    timestamp: datetime
    context: LLMAuditContext
    provider: str
    model: str
    messages: list[dict[str, Any]]
    parameters: dict[str, Any]
    response: GenerateResponse | None
    error: str | None
    duration_seconds: float


def _fenced(text: str) -> list[str]:
    return ["```", text, "```", ""]


def format_entry(entry: LLMAuditEntry) -> str:
    """Render one call as a markdown document."""
    context = entry.context
    lines = [f"# Driver Call: {context.act_name or 'orphan call'}", "", "## Metadata"]
    lines.append(f"- **Timestamp**: {entry.timestamp.isoformat()}")
    if context.narrative_name is not None:
        lines.append(f"- **Narrative**: {context.narrative_name}")
    if context.sequence_number is not None:
        lines.append(f"- **Sequence Number**: {context.sequence_number}")
    lines += [f"- **Provider**: {entry.provider}", f"- **Model**: {entry.model}", ""]

    if entry.parameters:
        lines.append("## Parameters")
        lines += [f"- **{key}**: {value}" for key, value in entry.parameters.items()]
        lines.append("")

    if entry.messages:
        lines.append("## Messages")
        for message in entry.messages:
            lines.append(f"### [{message.get('role', 'unknown').upper()}]")
            lines += _fenced(message.get("content", ""))

    if entry.error:
        lines += ["## Error", *_fenced(entry.error)]

    response = entry.response
    if response is not None:
        lines += ["## Response", *_fenced(response.text)]
        if response.usage is not None:
            lines += [
                "## Usage",
                f"- **Prompt Tokens**: {response.usage.prompt_tokens}",
                f"- **Completion Tokens**: {response.usage.completion_tokens}",
                f"- **Total Tokens**: {response.usage.total_tokens}",
                "",
            ]

    lines += ["## Duration", f"- **Total Time**: {entry.duration_seconds:.2f}s", ""]
    return "\n".join(lines)


class LLMAuditLogger:
    """Writes one markdown file per driver call.

    Calls made inside a narrative land in `narrative_<name>/`, ordered by
    act sequence number; anything else goes to `orphan/`.

    Args:
        log_dir: Root directory for audit files.
        enabled: When False, log() does nothing.
    """

    def __init__(self, log_dir: Path | str = "logs/llm", enabled: bool = True) -> None:
        self.log_dir = Path(log_dir)
        self.enabled = enabled

    def path_for(self, entry: LLMAuditEntry) -> Path:
        """File an entry is written to."""
        stamp = entry.timestamp.strftime("%Y%m%d_%H%M%S_%f")
        context = entry.context
        if context.narrative_name is None:
            return self.log_dir / "orphan" / f"{stamp}.md"
        sequence = context.sequence_number or 0
        act = context.act_name or "unknown"
        return self.log_dir / f"narrative_{context.narrative_name}" / (
            f"act_{sequence:03d}_{stamp}_{act}.md"
        )

    async def log(self, entry: LLMAuditEntry) -> None:
        if not self.enabled:
            return
        path = self.path_for(entry)
        content = format_entry(entry)

        def write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")

        await asyncio.to_thread(write)


# Context variable for tracking the current narrative/act
_audit_context: contextvars.ContextVar[LLMAuditContext] = contextvars.ContextVar(
    "audit_context",
    default=LLMAuditContext(),
)


def set_audit_context(
    narrative_name: str | None = None,
    act_name: str | None = None,
    sequence_number: int | None = None,
) -> contextvars.Token[LLMAuditContext]:
    """Set audit context for subsequent driver calls.

    Args:
        narrative_name: Narrative being executed.
        act_name: Act being executed.
        sequence_number: Position of the act in its execution.

    Returns:
        Token that can restore the previous context.
    """
    return _audit_context.set(
        LLMAuditContext(
            narrative_name=narrative_name,
            act_name=act_name,
            sequence_number=sequence_number,
        )
    )


def reset_audit_context(token: contextvars.Token[LLMAuditContext]) -> None:
    """Restore the audit context that was active before set_audit_context()."""
    _audit_context.reset(token)


def get_audit_context() -> LLMAuditContext:
    """Get current audit context."""
    return _audit_context.get()


# Global logger instance
_audit_logger: LLMAuditLogger | None = None


def get_audit_logger() -> LLMAuditLogger:
    """Get or create global audit logger.

    Returns:
        LLMAuditLogger instance.
    """
    global _audit_logger
    if _audit_logger is None:
        from narrative_engine.config import settings

        _audit_logger = LLMAuditLogger(
            log_dir=settings.llm_log_dir,
            enabled=settings.log_llm_calls,
        )
    return _audit_logger
