"""Execution records handed to callers and storage collaborators."""

from dataclasses import dataclass, field

from narrative_engine.llm.message_types import MessageContent
from narrative_engine.llm.response_types import UsageStats


@dataclass(frozen=True)
class ActExecution:
    """One completed act.

    Attributes:
        act_name: Act that ran.
        inputs: Resolved content sent in this act's user turn (empty for
            composition acts).
        model: Model actually used (None for composition acts).
        temperature: Temperature actually applied.
        max_tokens: max_tokens actually applied.
        response: Response text; for composition acts the child's final response.
        sequence_number: Zero-based position within the execution.
        composed: Child execution when the act delegated to another narrative.
        usage: Token usage reported by the driver, if any.
    """

    act_name: str
    inputs: tuple[MessageContent, ...]
    model: str | None
    temperature: float | None
    max_tokens: int | None
    response: str
    sequence_number: int
    composed: "NarrativeExecution | None" = None
    usage: UsageStats | None = None

    @property
    def is_composition(self) -> bool:
        return self.composed is not None


@dataclass
class NarrativeExecution:
    """Ordered record of every act of one execute() call."""

    narrative_name: str
    act_executions: list[ActExecution] = field(default_factory=list)

    def record(self, act: ActExecution) -> None:
        """Append an act; its sequence number must be the next in line."""
        if act.sequence_number != len(self.act_executions):
            raise ValueError(
                f"Expected sequence number {len(self.act_executions)}, got {act.sequence_number}"
            )
        self.act_executions.append(act)

    @property
    def next_sequence_number(self) -> int:
        return len(self.act_executions)

    @property
    def responses(self) -> list[str]:
        return [act.response for act in self.act_executions]

    def final_response(self) -> str | None:
        """Response of the last act, or None if nothing has run."""
        if not self.act_executions:
            return None
        return self.act_executions[-1].response

    def __len__(self) -> int:
        return len(self.act_executions)
