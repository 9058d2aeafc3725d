"""Conversation context accumulated across the acts of one execution."""

from typing import Iterator

from narrative_engine.llm.message_types import Message, MessageRole


class ConversationContext:
    """Append-only list of turns that strictly alternate User/Assistant.

    The first turn is always a User turn. Turns are never reordered,
    replaced or removed.
    """

    def __init__(self) -> None:
        self._messages: list[Message] = []

    @property
    def expects_user(self) -> bool:
        """True when the next turn must be a User turn."""
        return not self._messages or self._messages[-1].role == MessageRole.ASSISTANT

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def append_user(self, message: Message) -> None:
        """Append a User turn.

        Raises:
            ValueError: If the message is not a User turn or a User turn is
                not expected.
        """
        if message.role != MessageRole.USER:
            raise ValueError(f"Expected a user message, got {message.role.value}")
        if not self.expects_user:
            raise ValueError("Cannot append two consecutive user turns")
        self._messages.append(message)

    def append_assistant(self, text: str) -> None:
        """Append an Assistant turn.

        Raises:
            ValueError: If a User turn is expected.
        """
        if self.expects_user:
            raise ValueError("An assistant turn must follow a user turn")
        self._messages.append(Message.assistant(text))

    def append_exchange(self, user: Message, assistant_text: str) -> None:
        """Append one User turn and the Assistant reply to it."""
        self.append_user(user)
        self.append_assistant(assistant_text)

    def with_user_turn(self, message: Message) -> tuple[Message, ...]:
        """History plus a pending User turn, without recording it."""
        if message.role != MessageRole.USER or not self.expects_user:
            raise ValueError("A pending user turn must follow an assistant turn")
        return (*self._messages, message)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))
