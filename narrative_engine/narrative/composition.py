"""Narrative composition.

A composition act delegates to a sibling narrative, which runs as a
complete, independent execution. The only thing that flows back into the
parent is the child's final response.

The chain of narratives currently being executed is threaded through
every recursive call as an ordered tuple; re-entering any name on it is a
circular reference.
"""

import logging
from typing import TYPE_CHECKING, Sequence

from narrative_engine.llm.message_types import Message
from narrative_engine.narrative.context import ConversationContext
from narrative_engine.narrative.exceptions import (
    CircularReferenceError,
    CompositionDepthError,
    UndefinedReferenceError,
)
from narrative_engine.narrative.execution import ActExecution
from narrative_engine.narrative.inputs import NarrativeReference
from narrative_engine.narrative.provider import NarrativeProvider
from narrative_engine.narrative.retention import summarize_input

if TYPE_CHECKING:
    from narrative_engine.narrative.executor import NarrativeExecutor

logger = logging.getLogger(__name__)


class CompositionResolver:
    """Resolves and runs composition acts for a NarrativeExecutor.

    Args:
        executor: Executor used to run child narratives.
        max_depth: Maximum nesting depth below the outermost narrative.
    """

    def __init__(self, executor: "NarrativeExecutor", max_depth: int) -> None:
        self.executor = executor
        self.max_depth = max_depth

    def resolve(
        self,
        provider: NarrativeProvider,
        reference: NarrativeReference,
        visited: Sequence[str],
    ) -> tuple[NarrativeProvider, tuple[str, ...]]:
        """Find the referenced narrative and the chain it will run under.

        Args:
            provider: Narrative containing the composition act.
            reference: The act's reference.
            visited: Narratives already on the call chain above `provider`.

        Returns:
            (child provider, chain including the current narrative)

        Raises:
            CircularReferenceError: If the target is already on the chain.
            UndefinedReferenceError: If the target cannot be resolved.
            CompositionDepthError: If nesting would exceed max_depth.
        """
        chain = (*visited, provider.name())
        if reference.name in chain:
            raise CircularReferenceError((*chain, reference.name))
        child = provider.resolve_narrative(reference.name)
        if child is None:
            raise UndefinedReferenceError(reference.name)
        if len(chain) > self.max_depth:
            raise CompositionDepthError(len(chain), self.max_depth)
        return child, chain

    async def execute(
        self,
        provider: NarrativeProvider,
        act_name: str,
        reference: NarrativeReference,
        visited: Sequence[str],
        sequence_number: int,
        context: ConversationContext,
    ) -> ActExecution:
        """Run a composition act and record its result in the parent context."""
        child, chain = self.resolve(provider, reference, visited)
        logger.info(
            f"Act '{act_name}' of '{provider.name()}' delegating to narrative '{reference.name}'"
        )
        child_execution = await self.executor.execute(child, visited=chain)
        result = child_execution.final_response() or ""

        # Later acts of the parent see the child's result, nothing else
        context.append_exchange(Message.user(summarize_input(reference)), result)

        return ActExecution(
            act_name=act_name,
            inputs=(),
            model=None,
            temperature=None,
            max_tokens=None,
            response=result,
            sequence_number=sequence_number,
            composed=child_execution,
        )

    def check(self, provider: NarrativeProvider) -> None:
        """Walk every reachable composition act before anything runs.

        Finds the same cycle, undefined-reference and depth errors that
        execution would hit, without calling the driver. Uses an explicit
        stack, so arbitrarily long chains cannot exhaust the call stack.

        Raises:
            CircularReferenceError, UndefinedReferenceError, CompositionDepthError
        """
        stack: list[tuple[NarrativeProvider, tuple[str, ...]]] = [(provider, ())]
        while stack:
            current, visited = stack.pop()
            for index, act_name in enumerate(current.act_names()):
                act = current.get_act_config(act_name)
                reference = act.narrative_reference if act is not None else None
                if reference is None:
                    continue
                try:
                    child, chain = self.resolve(current, reference, visited)
                except (
                    CircularReferenceError,
                    UndefinedReferenceError,
                    CompositionDepthError,
                ) as e:
                    raise e.with_location(current.name(), act_name, index)
                stack.append((child, chain))
