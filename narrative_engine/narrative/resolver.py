"""Resolution of act inputs into user-turn content.

Each input is resolved in declaration order. Bot commands and table
queries call out to their registries; a failure either aborts the
execution (required inputs) or is replaced by an inline placeholder.
"""

import json
import logging
from dataclasses import dataclass
from typing import Sequence

from narrative_engine.llm.message_types import MessageContent
from narrative_engine.narrative.exceptions import ConfigurationError, ExternalCallError
from narrative_engine.narrative.inputs import (
    BotCommandInput,
    Input,
    MediaInput,
    NarrativeReference,
    TableQueryInput,
    TextInput,
)
from narrative_engine.services.bot_commands import BotCommandError, BotCommandRegistry
from narrative_engine.services.table_queries import TableQueryError, TableQueryRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedInput:
    """An input paired with the content it produced for the current act.

    Attributes:
        source: The configured input.
        content: Content block sent to the driver.
        failed: True when an optional call failed and content is a placeholder.
    """

    source: Input
    content: MessageContent
    failed: bool = False


class InputResolver:
    """Turns configured inputs into content blocks.

    Args:
        bot_commands: Registry for bot_command inputs (None = unavailable).
        table_queries: Registry for table inputs (None = unavailable).
    """

    def __init__(
        self,
        bot_commands: BotCommandRegistry | None = None,
        table_queries: TableQueryRegistry | None = None,
    ) -> None:
        self.bot_commands = bot_commands
        self.table_queries = table_queries

    async def resolve_all(self, inputs: Sequence[Input]) -> list[ResolvedInput]:
        """Resolve inputs in declaration order.

        Raises:
            ExternalCallError: If a required bot command or table query fails.
            ConfigurationError: If a narrative reference reaches this point.
        """
        return [await self.resolve(item) for item in inputs]

    async def resolve(self, item: Input) -> ResolvedInput:
        if isinstance(item, TextInput):
            return ResolvedInput(item, MessageContent.from_text(item.content))
        if isinstance(item, BotCommandInput):
            return await self._resolve_bot_command(item)
        if isinstance(item, TableQueryInput):
            return await self._resolve_table(item)
        if isinstance(item, MediaInput):
            return ResolvedInput(item, _media_content(item))
        if isinstance(item, NarrativeReference):
            raise ConfigurationError(
                f"Narrative reference '{item.name}' cannot be resolved as an input"
            )
        raise ConfigurationError(f"Unsupported input type: {type(item).__name__}")

    async def _resolve_bot_command(self, item: BotCommandInput) -> ResolvedInput:
        name = f"{item.platform}.{item.command}"
        try:
            if self.bot_commands is None:
                raise BotCommandError(
                    "no bot command registry configured",
                    platform=item.platform,
                    command=item.command,
                )
            result = await self.bot_commands.execute(item.platform, item.command, dict(item.args))
        except BotCommandError as e:
            if item.required:
                raise ExternalCallError("bot command", name, str(e)) from e
            logger.warning(f"Optional bot command {name} failed, continuing: {e}")
            placeholder = f"[command '{item.command}' failed: {e}]"
            return ResolvedInput(item, MessageContent.from_text(placeholder), failed=True)

        logger.debug(f"Bot command {name} succeeded")
        text = json.dumps(result, indent=2, ensure_ascii=False, default=str)
        return ResolvedInput(item, MessageContent.from_text(text))

    async def _resolve_table(self, item: TableQueryInput) -> ResolvedInput:
        try:
            if self.table_queries is None:
                raise TableQueryError(
                    "no table query registry configured", table_name=item.table_name
                )
            text = await self.table_queries.query(item.to_query())
        except TableQueryError as e:
            if item.required:
                raise ExternalCallError("table query", item.table_name, str(e)) from e
            logger.warning(f"Optional table query {item.table_name} failed, continuing: {e}")
            placeholder = f"[table query '{item.table_name}' failed: {e}]"
            return ResolvedInput(item, MessageContent.from_text(placeholder), failed=True)

        logger.debug(f"Table query {item.table_name} returned {len(text)} chars")
        return ResolvedInput(item, MessageContent.from_text(text))


def _media_content(item: MediaInput) -> MessageContent:
    return MessageContent(
        type=item.type,
        url=item.url,
        data_base64=item.base64,
        media_type=item.mime,
        filename=item.filename,
    )
