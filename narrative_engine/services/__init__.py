"""External read-only services consumed by narrative inputs."""

from narrative_engine.services.bot_commands import (
    BotCommandError,
    BotCommandRegistry,
    InMemoryBotCommandRegistry,
)
from narrative_engine.services.table_queries import (
    InMemoryTableQueryRegistry,
    TableFormat,
    TableQuery,
    TableQueryError,
    TableQueryRegistry,
    format_rows,
)

__all__ = [
    "BotCommandError",
    "BotCommandRegistry",
    "InMemoryBotCommandRegistry",
    "InMemoryTableQueryRegistry",
    "TableFormat",
    "TableQuery",
    "TableQueryError",
    "TableQueryRegistry",
    "format_rows",
]
