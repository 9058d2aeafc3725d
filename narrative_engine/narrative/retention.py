"""Conversation history retention.

The act that owns an input always sees it in full. What stays in the
conversation history for later acts depends on the input's
history_retention setting; very large text is summarised regardless.
"""

import logging
from typing import Sequence

from narrative_engine.llm.message_types import Message, MessageContent
from narrative_engine.narrative.inputs import (
    BotCommandInput,
    HistoryRetention,
    Input,
    MediaInput,
    NarrativeReference,
    TableQueryInput,
    TextInput,
)
from narrative_engine.narrative.resolver import ResolvedInput

logger = logging.getLogger(__name__)

# Text shorter than this is kept verbatim even under summary retention
SUMMARY_MIN_TEXT = 1000

OMITTED_PLACEHOLDER = "[Inputs omitted from history]"


def summarize_input(item: Input) -> str:
    """Short marker standing in for an input in history."""
    if isinstance(item, TableQueryInput):
        rows = f"{item.limit} rows queried" if item.limit is not None else "all rows"
        offset = f", offset {item.offset}" if item.offset else ""
        return f"[Table: {item.table_name}, {rows}{offset}]"
    if isinstance(item, TextInput):
        return _summarize_text(item.content)
    if isinstance(item, BotCommandInput):
        return f"[Bot command: {item.platform}.{item.command}]"
    if isinstance(item, NarrativeReference):
        return f"[Nested narrative: {item.name}]"
    if isinstance(item, MediaInput):
        return f"[{item.type.capitalize()}: {item.mime or 'unknown'}]"
    raise TypeError(f"Unsupported input type: {type(item).__name__}")


def _summarize_text(text: str) -> str:
    if len(text) <= SUMMARY_MIN_TEXT:
        return text
    return f"[Text: ~{len(text) // 1024}KB]"


def apply_retention(
    resolved: ResolvedInput, auto_summary_threshold: int
) -> MessageContent | None:
    """Content kept in history for one resolved input (None = dropped)."""
    item = resolved.source
    retention = getattr(item, "history_retention", HistoryRetention.FULL)

    if retention == HistoryRetention.DROP:
        return None
    if retention == HistoryRetention.SUMMARY:
        return MessageContent.from_text(summarize_input(item))

    content = resolved.content
    if content.is_text and len(content.text or "") > auto_summary_threshold:
        logger.debug(
            f"Auto-summarizing {len(content.text or '')} char input above {auto_summary_threshold}"
        )
        if isinstance(item, TextInput):
            return MessageContent.from_text(f"[Text: ~{len(item.content) // 1024}KB]")
        return MessageContent.from_text(summarize_input(item))
    return content


def history_message(
    resolved_inputs: Sequence[ResolvedInput], auto_summary_threshold: int
) -> Message:
    """User turn recorded in history after an act has run.

    Always returns a message so User/Assistant alternation is preserved,
    even when every input is dropped.
    """
    kept = [
        content
        for content in (apply_retention(r, auto_summary_threshold) for r in resolved_inputs)
        if content is not None
    ]
    if not kept:
        return Message.user(OMITTED_PLACEHOLDER)
    return Message.user(*kept)
