"""Driver message type definitions.

Immutable dataclasses for messages, content blocks, and generation requests.
"""

from dataclasses import dataclass, field
from enum import Enum


class MessageRole(str, Enum):
    """Role of a message in the conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class MessageContent:
    """Content block within a message.

    Supports text and multimodal payloads (image, audio, video, document).

    Attributes:
        type: Content type ("text", "image", "audio", "video", "document").
        text: Text content (for type="text").
        url: URL of the media payload.
        data_base64: Base64-encoded media payload.
        media_type: MIME type for media (e.g., "image/png").
        filename: Original file name for documents.
    """

    type: str
    text: str | None = None
    url: str | None = None
    data_base64: str | None = None
    media_type: str | None = None
    filename: str | None = None

    @classmethod
    def from_text(cls, text: str) -> "MessageContent":
        """Create a text content block."""
        return cls(type="text", text=text)

    @property
    def is_text(self) -> bool:
        """Check if this block carries text."""
        return self.type == "text"


@dataclass(frozen=True)
class Message:
    """A message in a conversation.

    Attributes:
        role: Who sent the message (system, user, assistant).
        content: Tuple of content blocks.
    """

    role: MessageRole
    content: tuple[MessageContent, ...] = ()

    @classmethod
    def user(cls, *content: MessageContent | str) -> "Message":
        """Create a user message.

        Args:
            *content: Content blocks or plain strings (converted to text blocks).

        Returns:
            A Message with role=USER.
        """
        return cls(role=MessageRole.USER, content=_normalize(content))

    @classmethod
    def assistant(cls, text: str) -> "Message":
        """Create an assistant message.

        Args:
            text: Assistant's response text.

        Returns:
            A Message with role=ASSISTANT.
        """
        return cls(role=MessageRole.ASSISTANT, content=(MessageContent.from_text(text),))

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks, separated by blank lines."""
        return "\n\n".join(block.text or "" for block in self.content if block.is_text)


def _normalize(content: tuple[MessageContent | str, ...]) -> tuple[MessageContent, ...]:
    return tuple(
        MessageContent.from_text(block) if isinstance(block, str) else block
        for block in content
    )


@dataclass(frozen=True)
class GenerateRequest:
    """A single generation request handed to a driver.

    Attributes:
        messages: Role-tagged conversation history, ending with a user turn.
        model: Model override (driver default when None).
        temperature: Sampling temperature override.
        max_tokens: Maximum tokens to generate.
    """

    messages: tuple[Message, ...] = field(default_factory=tuple)
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
