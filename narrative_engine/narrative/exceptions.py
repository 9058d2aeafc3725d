"""Narrative exception definitions.

Every error raised while loading or executing a narrative derives from
NarrativeError and carries the narrative name, act name and sequence
number where execution stopped, when they are known.
"""

from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from narrative_engine.narrative.carousel import CarouselResult


class NarrativeError(Exception):
    """Base exception for narrative operations.

    Attributes:
        narrative_name: Narrative being loaded or executed.
        act_name: Act being processed.
        sequence_number: Position of the act in the execution.
    """

    def __init__(
        self,
        message: str,
        narrative_name: str | None = None,
        act_name: str | None = None,
        sequence_number: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.narrative_name = narrative_name
        self.act_name = act_name
        self.sequence_number = sequence_number

    def with_location(
        self,
        narrative_name: str | None = None,
        act_name: str | None = None,
        sequence_number: int | None = None,
    ) -> "NarrativeError":
        """Fill in location fields that are still unset. Returns self."""
        if self.narrative_name is None:
            self.narrative_name = narrative_name
        if self.act_name is None:
            self.act_name = act_name
        if self.sequence_number is None:
            self.sequence_number = sequence_number
        return self

    @property
    def location(self) -> str:
        parts = []
        if self.narrative_name is not None:
            parts.append(f"narrative '{self.narrative_name}'")
        if self.act_name is not None:
            parts.append(f"act '{self.act_name}'")
        if self.sequence_number is not None:
            parts.append(f"sequence {self.sequence_number}")
        return ", ".join(parts)

    def __str__(self) -> str:
        location = self.location
        return f"{self.message} ({location})" if location else self.message


class ConfigurationError(NarrativeError):
    """Narrative definition is invalid. Always raised before any model call."""

    pass


class NarrativeNotFoundError(ConfigurationError):
    """Requested narrative does not exist in the loaded source.

    Attributes:
        requested: Name that was asked for.
        available: Names that do exist.
    """

    def __init__(self, requested: str, available: Sequence[str]) -> None:
        super().__init__(
            f"Narrative '{requested}' not found. Available: {', '.join(sorted(available))}"
        )
        self.requested = requested
        self.available = tuple(available)


class UndefinedReferenceError(NarrativeError):
    """A composition act references a narrative that cannot be resolved.

    Attributes:
        reference: Name of the missing narrative.
    """

    def __init__(self, reference: str, **location: Any) -> None:
        super().__init__(f"Referenced narrative '{reference}' is not defined", **location)
        self.reference = reference


class CircularReferenceError(NarrativeError):
    """A composition act would re-enter a narrative already on the call chain.

    Attributes:
        chain: Narrative names from the outermost call to the repeated name.
    """

    def __init__(self, chain: Sequence[str], **location: Any) -> None:
        super().__init__(f"Circular narrative reference: {' -> '.join(chain)}", **location)
        self.chain = tuple(chain)


class CompositionDepthError(NarrativeError):
    """Composition nesting exceeded the configured maximum depth.

    Attributes:
        depth: Depth that was about to be entered.
        limit: Configured maximum.
    """

    def __init__(self, depth: int, limit: int, **location: Any) -> None:
        super().__init__(f"Narrative composition depth {depth} exceeds limit {limit}", **location)
        self.depth = depth
        self.limit = limit


class ExternalCallError(NarrativeError):
    """A required bot command or table query failed.

    Attributes:
        kind: "command" or "table query".
        name: Command or table name.
        reason: Failure description from the collaborator.
    """

    def __init__(self, kind: str, name: str, reason: str, **location: Any) -> None:
        super().__init__(f"Required {kind} '{name}' failed: {reason}", **location)
        self.kind = kind
        self.name = name
        self.reason = reason


class GenerationFailedError(NarrativeError):
    """The driver failed to generate a response. Never retried by the engine."""

    pass


class CarouselAbortedError(NarrativeError):
    """A carousel iteration failed with continue_on_error disabled.

    Attributes:
        result: Progress made before the failing iteration, including it.
        cause: The iteration's error.
    """

    def __init__(self, result: "CarouselResult", cause: Exception) -> None:
        location = {}
        if isinstance(cause, NarrativeError):
            location = {
                "narrative_name": cause.narrative_name,
                "act_name": cause.act_name,
                "sequence_number": cause.sequence_number,
            }
        super().__init__(f"Carousel aborted: {cause}", **location)
        self.result = result
        self.cause = cause
