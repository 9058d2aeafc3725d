"""Narrative execution engine.

Quick Start:
    from narrative_engine.narrative import NarrativeExecutor, load_narratives

    narrative = load_narratives("narratives/essay.toml")
    execution = await NarrativeExecutor(driver).execute(narrative)
    print(execution.final_response())
"""

from narrative_engine.narrative.carousel import (
    CarouselController,
    CarouselResult,
    IterationOutcome,
)
from narrative_engine.narrative.composition import CompositionResolver
from narrative_engine.narrative.context import ConversationContext
from narrative_engine.narrative.exceptions import (
    CarouselAbortedError,
    CircularReferenceError,
    CompositionDepthError,
    ConfigurationError,
    ExternalCallError,
    GenerationFailedError,
    NarrativeError,
    NarrativeNotFoundError,
    UndefinedReferenceError,
)
from narrative_engine.narrative.execution import ActExecution, NarrativeExecution
from narrative_engine.narrative.executor import NarrativeExecutor, estimate_tokens
from narrative_engine.narrative.inputs import (
    BotCommandInput,
    HistoryRetention,
    Input,
    MediaInput,
    NarrativeReference,
    TableQueryInput,
    TextInput,
)
from narrative_engine.narrative.loader import load_narratives, parse_narrative_toml
from narrative_engine.narrative.models import ActConfig, CarouselConfig, NarrativeMetadata
from narrative_engine.narrative.narrative import MultiNarrative, Narrative
from narrative_engine.narrative.processor import (
    ActProcessor,
    ProcessorContext,
    ProcessorRegistry,
)
from narrative_engine.narrative.provider import NarrativeProvider
from narrative_engine.narrative.resolver import InputResolver, ResolvedInput
from narrative_engine.narrative.retention import apply_retention, history_message, summarize_input
from narrative_engine.narrative.validator import (
    ValidationError,
    ValidationErrorKind,
    ValidationResult,
    ValidationWarning,
    ValidationWarningKind,
    validate_narrative_file,
    validate_narrative_toml,
)

__all__ = [
    # Configuration models
    "ActConfig",
    "CarouselConfig",
    "NarrativeMetadata",
    "BotCommandInput",
    "HistoryRetention",
    "Input",
    "MediaInput",
    "NarrativeReference",
    "TableQueryInput",
    "TextInput",
    # Providers
    "NarrativeProvider",
    "Narrative",
    "MultiNarrative",
    "load_narratives",
    "parse_narrative_toml",
    # Validation
    "ValidationError",
    "ValidationErrorKind",
    "ValidationResult",
    "ValidationWarning",
    "ValidationWarningKind",
    "validate_narrative_file",
    "validate_narrative_toml",
    # Execution
    "ActExecution",
    "NarrativeExecution",
    "ConversationContext",
    "InputResolver",
    "ResolvedInput",
    "apply_retention",
    "history_message",
    "summarize_input",
    "NarrativeExecutor",
    "estimate_tokens",
    "CompositionResolver",
    "CarouselController",
    "CarouselResult",
    "IterationOutcome",
    "ActProcessor",
    "ProcessorContext",
    "ProcessorRegistry",
    # Exceptions
    "NarrativeError",
    "ConfigurationError",
    "NarrativeNotFoundError",
    "UndefinedReferenceError",
    "CircularReferenceError",
    "CompositionDepthError",
    "ExternalCallError",
    "GenerationFailedError",
    "CarouselAbortedError",
]
