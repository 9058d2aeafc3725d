"""Act processors.

Processors run after an act has been recorded to extract structured data
or trigger side effects (storing generated content, writing files). They
can never abort an execution: failures are collected and logged.
"""

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from narrative_engine.narrative.execution import ActExecution
from narrative_engine.narrative.models import NarrativeMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessorContext:
    """What a processor gets to see about the act that just finished.

    Attributes:
        execution: The recorded act.
        narrative_metadata: Metadata of the narrative the act belongs to.
        is_last_act: True for the final act of the table of contents.
    """

    execution: ActExecution
    narrative_metadata: NarrativeMetadata
    is_last_act: bool

    @property
    def narrative_name(self) -> str:
        return self.narrative_metadata.name


@runtime_checkable
class ActProcessor(Protocol):
    """Post-processing hook for completed acts."""

    @property
    def name(self) -> str:
        """Processor name used in logs."""
        ...

    def should_process(self, context: ProcessorContext) -> bool:
        """Whether this processor is interested in the act."""
        ...

    async def process(self, context: ProcessorContext) -> None:
        """Process the act. Exceptions are logged by the registry."""
        ...


class ProcessorRegistry:
    """Ordered collection of processors run after every act."""

    def __init__(self, processors: list[ActProcessor] | None = None) -> None:
        self._processors: list[ActProcessor] = list(processors or [])

    def register(self, processor: ActProcessor) -> None:
        self._processors.append(processor)

    @property
    def processors(self) -> tuple[ActProcessor, ...]:
        return tuple(self._processors)

    async def process(self, context: ProcessorContext) -> list[str]:
        """Run every interested processor in registration order.

        Returns:
            "name: error" strings for processors that failed.
        """
        act_name = context.execution.act_name
        errors = []
        for processor in self._processors:
            if not processor.should_process(context):
                continue
            logger.debug(f"Processor {processor.name} handling act '{act_name}'")
            try:
                await processor.process(context)
            except Exception as e:
                logger.warning(f"Processor {processor.name} failed on act '{act_name}': {e}")
                errors.append(f"{processor.name}: {e}")
        return errors

    def __len__(self) -> int:
        return len(self._processors)
