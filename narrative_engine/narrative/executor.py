"""Narrative executor.

Runs the acts of a narrative strictly in table-of-contents order. Every
act sees the full conversation so far plus its own freshly resolved
inputs, so acts never run in parallel.

Per act:
1. Composition acts are handed to the CompositionResolver.
2. Inputs are resolved (bot commands, table queries, text, media).
3. A request is built from history plus one new user turn, with per-act
   model/temperature/max_tokens overriding narrative defaults.
4. A rate-limit permit for the model is acquired and the driver called.
5. The exchange is appended to the context and an ActExecution recorded.
"""

import logging
from typing import Sequence

from narrative_engine.config import Settings, get_settings
from narrative_engine.llm.audit_logger import reset_audit_context, set_audit_context
from narrative_engine.llm.base import Driver
from narrative_engine.llm.message_types import GenerateRequest, Message
from narrative_engine.narrative.composition import CompositionResolver
from narrative_engine.narrative.context import ConversationContext
from narrative_engine.narrative.exceptions import (
    ConfigurationError,
    GenerationFailedError,
    NarrativeError,
)
from narrative_engine.narrative.execution import ActExecution, NarrativeExecution
from narrative_engine.narrative.models import ActConfig
from narrative_engine.narrative.processor import ProcessorContext, ProcessorRegistry
from narrative_engine.narrative.provider import NarrativeProvider
from narrative_engine.narrative.resolver import InputResolver
from narrative_engine.narrative.retention import history_message
from narrative_engine.rate_limit.limiter import RateLimiter
from narrative_engine.rate_limit.registry import RateLimiterRegistry, get_rate_limiter_registry
from narrative_engine.rate_limit.tier import Tier
from narrative_engine.services.bot_commands import BotCommandRegistry
from narrative_engine.services.table_queries import TableQueryRegistry

logger = logging.getLogger(__name__)


def estimate_tokens(request: GenerateRequest) -> int:
    """Rough token estimate for rate limiting (~4 chars per token)."""
    chars = sum(len(message.text) for message in request.messages)
    return chars // 4 + 1 + (request.max_tokens or 0)


class NarrativeExecutor:
    """Executes narratives against a driver.

    Args:
        driver: Model driver used for every generation.
        bot_commands: Registry for bot_command inputs.
        table_queries: Registry for table inputs.
        rate_limiters: Limiter cache (process-wide registry by default).
        processors: Post-act processors.
        settings: Engine settings (cached settings by default).
    """

    def __init__(
        self,
        driver: Driver,
        bot_commands: BotCommandRegistry | None = None,
        table_queries: TableQueryRegistry | None = None,
        rate_limiters: RateLimiterRegistry | None = None,
        processors: ProcessorRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.driver = driver
        self.settings = settings or get_settings()
        self.inputs = InputResolver(bot_commands, table_queries)
        self.rate_limiters = (
            rate_limiters if rate_limiters is not None else get_rate_limiter_registry()
        )
        self.processors = processors if processors is not None else ProcessorRegistry()
        self.composition = CompositionResolver(self, self.settings.max_composition_depth)

    async def execute(
        self, provider: NarrativeProvider, visited: Sequence[str] = ()
    ) -> NarrativeExecution:
        """Execute every act of a narrative.

        Args:
            provider: Narrative to run.
            visited: Narratives already on the composition chain (empty for
                a top-level call).

        Returns:
            The complete execution record.

        Raises:
            NarrativeError: Any failure. Nothing partial is returned.
        """
        narrative_name = provider.name()
        acts = self._resolve_acts(provider)
        if not visited:
            self.composition.check(provider)

        logger.info(f"Executing narrative '{narrative_name}' ({len(acts)} acts)")
        context = ConversationContext()
        execution = NarrativeExecution(narrative_name=narrative_name)

        for index, (act_name, act) in enumerate(acts):
            sequence_number = execution.next_sequence_number
            try:
                reference = act.narrative_reference
                if reference is not None:
                    record = await self.composition.execute(
                        provider, act_name, reference, visited, sequence_number, context
                    )
                else:
                    record = await self._execute_act(
                        provider, act_name, act, sequence_number, context
                    )
            except NarrativeError as e:
                raise e.with_location(narrative_name, act_name, sequence_number)

            execution.record(record)
            await self._run_processors(provider, record, is_last_act=index == len(acts) - 1)

        logger.info(f"Narrative '{narrative_name}' completed with {len(execution)} acts")
        return execution

    def resolve_model(self, provider: NarrativeProvider, act: ActConfig) -> str:
        """Act override, then narrative default, then the driver's default."""
        return act.model or provider.metadata().model or self.driver.default_model

    def limiter_for(self, model: str) -> RateLimiter:
        """Shared limiter for a model, sized from the driver's rate limits."""
        return self.rate_limiters.get_or_create(
            model, lambda: Tier.from_rate_limits(model, self.driver.rate_limits())
        )

    def _resolve_acts(self, provider: NarrativeProvider) -> list[tuple[str, ActConfig]]:
        narrative_name = provider.name()
        toc = provider.act_names()
        if not toc:
            raise ConfigurationError(
                "Table of contents cannot be empty", narrative_name=narrative_name
            )
        acts = []
        for index, act_name in enumerate(toc):
            act = provider.get_act_config(act_name)
            if act is None:
                raise ConfigurationError(
                    f"Act '{act_name}' not found",
                    narrative_name=narrative_name,
                    act_name=act_name,
                    sequence_number=index,
                )
            acts.append((act_name, act))
        return acts

    async def _execute_act(
        self,
        provider: NarrativeProvider,
        act_name: str,
        act: ActConfig,
        sequence_number: int,
        context: ConversationContext,
    ) -> ActExecution:
        metadata = provider.metadata()
        resolved = await self.inputs.resolve_all(act.inputs)
        user_turn = Message.user(*(r.content for r in resolved))

        model = self.resolve_model(provider, act)
        temperature = act.temperature if act.temperature is not None else metadata.temperature
        max_tokens = act.max_tokens if act.max_tokens is not None else metadata.max_tokens
        request = GenerateRequest(
            messages=context.with_user_turn(user_turn),
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        logger.debug(
            f"Act '{act_name}' (#{sequence_number}): model={model}, "
            f"{len(request.messages)} messages"
        )
        limiter = self.limiter_for(model)
        token = set_audit_context(metadata.name, act_name, sequence_number)
        try:
            async with await limiter.acquire(estimate_tokens(request)):
                response = await self.driver.generate(request)
        except Exception as e:
            # CancelledError is a BaseException and keeps propagating
            raise GenerationFailedError(f"Generation failed: {e}") from e
        finally:
            reset_audit_context(token)

        context.append_exchange(
            history_message(resolved, self.settings.auto_summary_threshold), response.text
        )
        return ActExecution(
            act_name=act_name,
            inputs=user_turn.content,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            response=response.text,
            sequence_number=sequence_number,
            usage=response.usage,
        )

    async def _run_processors(
        self, provider: NarrativeProvider, record: ActExecution, is_last_act: bool
    ) -> None:
        if not len(self.processors):
            return
        errors = await self.processors.process(
            ProcessorContext(
                execution=record,
                narrative_metadata=provider.metadata(),
                is_last_act=is_last_act,
            )
        )
        if errors:
            logger.warning(
                f"{len(errors)} processor(s) failed for act '{record.act_name}': "
                + "; ".join(errors)
            )
