"""Tests for input resolution."""

import json
import logging

import pytest

from narrative_engine.narrative.exceptions import ConfigurationError, ExternalCallError
from narrative_engine.narrative.inputs import (
    BotCommandInput,
    MediaInput,
    NarrativeReference,
    TableQueryInput,
    TextInput,
)
from narrative_engine.narrative.resolver import InputResolver
from narrative_engine.services.bot_commands import InMemoryBotCommandRegistry
from narrative_engine.services.table_queries import InMemoryTableQueryRegistry


@pytest.fixture
def bot_commands():
    registry = InMemoryBotCommandRegistry()

    async def stats(args):
        return {"members": 42, "server": args["server"]}

    async def down(args):
        raise TimeoutError("gateway timeout")

    registry.register("discord", "server.stats", stats)
    registry.register("discord", "down", down)
    return registry


@pytest.fixture
def resolver(bot_commands):
    return InputResolver(
        bot_commands=bot_commands,
        table_queries=InMemoryTableQueryRegistry({"posts": [{"id": 1, "title": "Hi"}]}),
    )


class TestResolve:
    """Tests for each input type."""

    @pytest.mark.asyncio
    async def test_text(self, resolver):
        result = await resolver.resolve(TextInput(content="hello"))
        assert result.content.text == "hello"
        assert not result.failed

    @pytest.mark.asyncio
    async def test_bot_command_pretty_printed(self, resolver):
        """Command results are pretty-printed JSON."""
        result = await resolver.resolve(
            BotCommandInput(platform="discord", command="server.stats", args={"server": "abc"})
        )
        assert result.content.text == json.dumps({"members": 42, "server": "abc"}, indent=2)

    @pytest.mark.asyncio
    async def test_table(self, resolver):
        result = await resolver.resolve(TableQueryInput(table_name="posts"))
        assert json.loads(result.content.text) == [{"id": 1, "title": "Hi"}]

    @pytest.mark.asyncio
    async def test_media_passthrough(self, resolver):
        """Media becomes a multimodal block."""
        result = await resolver.resolve(
            MediaInput(type="document", base64="JVBE", mime="application/pdf", filename="a.pdf")
        )
        assert result.content.type == "document"
        assert result.content.data_base64 == "JVBE"
        assert result.content.media_type == "application/pdf"
        assert result.content.filename == "a.pdf"

    @pytest.mark.asyncio
    async def test_reference_is_not_an_input(self, resolver):
        """References are handled by composition, never resolved here."""
        with pytest.raises(ConfigurationError):
            await resolver.resolve(NarrativeReference(name="x"))

    @pytest.mark.asyncio
    async def test_order_preserved(self, resolver):
        """resolve_all keeps declaration order."""
        results = await resolver.resolve_all(
            [TextInput(content="a"), TableQueryInput(table_name="posts"), TextInput(content="b")]
        )
        assert results[0].content.text == "a"
        assert results[2].content.text == "b"


class TestFailurePolicy:
    """Tests for required/optional external calls."""

    @pytest.mark.asyncio
    async def test_optional_command_failure_becomes_placeholder(self, resolver, caplog):
        """Optional failures degrade to an inline placeholder and a warning."""
        with caplog.at_level(logging.WARNING):
            result = await resolver.resolve(BotCommandInput(platform="discord", command="down"))

        assert result.failed
        assert result.content.text == "[command 'down' failed: gateway timeout]"
        assert "discord.down" in caplog.text

    @pytest.mark.asyncio
    async def test_required_command_failure_aborts(self, resolver):
        """Required failures raise ExternalCallError."""
        with pytest.raises(ExternalCallError) as exc_info:
            await resolver.resolve(
                BotCommandInput(platform="discord", command="down", required=True)
            )
        assert exc_info.value.name == "discord.down"
        assert "gateway timeout" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_optional_table_failure(self, resolver):
        """Unknown optional tables degrade to a placeholder."""
        result = await resolver.resolve(TableQueryInput(table_name="nope"))
        assert result.content.text.startswith("[table query 'nope' failed:")

    @pytest.mark.asyncio
    async def test_required_table_failure(self, resolver):
        with pytest.raises(ExternalCallError, match="Required table query 'nope' failed"):
            await resolver.resolve(TableQueryInput(table_name="nope", required=True))

    @pytest.mark.asyncio
    async def test_missing_registry(self):
        """No registry behaves like a failing call."""
        resolver = InputResolver()
        result = await resolver.resolve(BotCommandInput(platform="discord", command="x"))
        assert result.failed
        with pytest.raises(ExternalCallError):
            await resolver.resolve(TableQueryInput(table_name="t", required=True))
