"""Bot command registry contract.

Bot commands are read-only calls into a chat platform (e.g. fetching a
Discord channel's recent messages). The engine only consumes them; the
platform adapters that implement them live elsewhere.
"""

import logging
from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

BotCommandHandler = Callable[[dict[str, Any]], Awaitable[Any]]


class BotCommandError(Exception):
    """A bot command could not be executed.

    Attributes:
        platform: Platform the command targets.
        command: Command name.
    """

    def __init__(self, message: str, platform: str = "", command: str = "") -> None:
        super().__init__(message)
        self.platform = platform
        self.command = command


@runtime_checkable
class BotCommandRegistry(Protocol):
    """Anything that can execute platform bot commands."""

    async def execute(self, platform: str, command: str, args: dict[str, Any]) -> Any:
        """Execute a command and return its JSON-compatible result.

        Raises:
            BotCommandError: If the command is unknown or fails.
        """
        ...


class InMemoryBotCommandRegistry:
    """Registry of async handlers keyed by (platform, command).

    Handler exceptions are converted to BotCommandError so callers only
    need to handle one error type.
    """

    def __init__(self) -> None:
        self._handlers: dict[tuple[str, str], BotCommandHandler] = {}

    def register(self, platform: str, command: str, handler: BotCommandHandler) -> None:
        """Register a handler.

        Args:
            platform: Platform name (e.g., "discord").
            command: Command name (e.g., "channels.list").
            handler: Async callable receiving the command args.
        """
        self._handlers[(platform, command)] = handler

    def commands(self) -> list[str]:
        """Registered commands as "platform.command" strings."""
        return sorted(f"{platform}.{command}" for platform, command in self._handlers)

    async def execute(self, platform: str, command: str, args: dict[str, Any]) -> Any:
        handler = self._handlers.get((platform, command))
        if handler is None:
            raise BotCommandError(
                f"Unknown command '{command}' for platform '{platform}'",
                platform=platform,
                command=command,
            )
        try:
            return await handler(args)
        except BotCommandError:
            raise
        except Exception as e:
            logger.debug(f"Handler for {platform}.{command} raised {type(e).__name__}: {e}")
            raise BotCommandError(str(e), platform=platform, command=command) from e
