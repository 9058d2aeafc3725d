"""Tests for history retention."""

from narrative_engine.llm.message_types import MessageContent
from narrative_engine.narrative.inputs import (
    BotCommandInput,
    HistoryRetention,
    MediaInput,
    NarrativeReference,
    TableQueryInput,
    TextInput,
)
from narrative_engine.narrative.resolver import ResolvedInput
from narrative_engine.narrative.retention import (
    OMITTED_PLACEHOLDER,
    apply_retention,
    history_message,
    summarize_input,
)

THRESHOLD = 10_000


def resolved(item, text="resolved"):
    return ResolvedInput(item, MessageContent.from_text(text))


class TestSummarizeInput:
    """Tests for summary markers."""

    def test_bot_command(self):
        assert (
            summarize_input(BotCommandInput(platform="discord", command="channels.list"))
            == "[Bot command: discord.channels.list]"
        )

    def test_table(self):
        assert summarize_input(TableQueryInput(table_name="posts", limit=10)) == (
            "[Table: posts, 10 rows queried]"
        )
        assert summarize_input(TableQueryInput(table_name="posts", limit=5, offset=20)) == (
            "[Table: posts, 5 rows queried, offset 20]"
        )
        assert summarize_input(TableQueryInput(table_name="posts")) == "[Table: posts, all rows]"

    def test_text(self):
        """Short text stays verbatim; long text becomes a size marker."""
        assert summarize_input(TextInput(content="short")) == "short"
        assert summarize_input(TextInput(content="x" * 5000)) == "[Text: ~4KB]"

    def test_narrative_and_media(self):
        assert summarize_input(NarrativeReference(name="child")) == "[Nested narrative: child]"
        assert (
            summarize_input(MediaInput(type="image", url="https://x", mime="image/png"))
            == "[Image: image/png]"
        )


class TestApplyRetention:
    """Tests for per-input retention."""

    def test_full_keeps_content(self):
        """Full retention keeps exactly what the act saw."""
        item = resolved(BotCommandInput(platform="discord", command="x"), '{"a": 1}')
        assert apply_retention(item, THRESHOLD).text == '{"a": 1}'

    def test_summary(self):
        """Summary retention replaces content with a marker."""
        item = resolved(
            TableQueryInput(table_name="posts", limit=3, history_retention=HistoryRetention.SUMMARY),
            "lots of rows",
        )
        assert apply_retention(item, THRESHOLD).text == "[Table: posts, 3 rows queried]"

    def test_drop(self):
        """Dropped inputs leave nothing in history."""
        item = resolved(TextInput(content="secret", history_retention=HistoryRetention.DROP))
        assert apply_retention(item, THRESHOLD) is None

    def test_large_full_text_is_auto_summarized(self):
        """Huge inputs are summarised even under full retention."""
        big = "x" * 20_480
        assert apply_retention(resolved(TextInput(content=big), big), THRESHOLD).text == (
            "[Text: ~20KB]"
        )

    def test_large_bot_output_is_auto_summarized(self):
        """Huge command output is replaced by its marker."""
        item = resolved(BotCommandInput(platform="discord", command="dump"), "y" * 20_000)
        assert apply_retention(item, THRESHOLD).text == "[Bot command: discord.dump]"

    def test_media_passes_through(self):
        """Media keeps its payload."""
        content = MessageContent(type="image", url="https://x")
        item = ResolvedInput(MediaInput(type="image", url="https://x"), content)
        assert apply_retention(item, THRESHOLD) is content


class TestHistoryMessage:
    """Tests for the recorded user turn."""

    def test_mixed_retention(self):
        """Each input follows its own retention setting."""
        message = history_message(
            [
                resolved(TextInput(content="Summarize the channel."), "Summarize the channel."),
                resolved(
                    BotCommandInput(
                        platform="discord",
                        command="messages.recent",
                        history_retention=HistoryRetention.SUMMARY,
                    ),
                    "[...]",
                ),
                resolved(TextInput(content="tmp", history_retention=HistoryRetention.DROP), "tmp"),
            ],
            THRESHOLD,
        )
        assert message.text == "Summarize the channel.\n\n[Bot command: discord.messages.recent]"

    def test_all_dropped_keeps_a_turn(self):
        """Alternation survives even when every input is dropped."""
        message = history_message(
            [resolved(TextInput(content="x", history_retention=HistoryRetention.DROP))], THRESHOLD
        )
        assert message.text == OMITTED_PLACEHOLDER
