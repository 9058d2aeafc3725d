"""Tests for table query formatting and the in-memory registry."""

import json

import pytest

from narrative_engine.services.table_queries import (
    InMemoryTableQueryRegistry,
    TableFormat,
    TableQuery,
    TableQueryError,
    format_rows,
)

ROWS = [
    {"id": 1, "title": "Lighthouse", "status": "approved", "score": 3},
    {"id": 2, "title": "Harbor", "status": "draft", "score": 5},
    {"id": 3, "title": "Reef | Shoal", "status": "approved", "score": 4},
]


@pytest.fixture
def registry():
    return InMemoryTableQueryRegistry({"posts": ROWS})


class TestFormatRows:
    """Tests for format_rows()."""

    def test_json(self):
        """JSON output is an indented array."""
        assert json.loads(format_rows(ROWS[:1], TableFormat.JSON)) == ROWS[:1]

    def test_markdown_escapes_pipes(self):
        """Markdown tables escape cell pipes."""
        text = format_rows(ROWS, TableFormat.MARKDOWN)
        lines = text.splitlines()
        assert lines[0] == "| id | title | status | score |"
        assert lines[1] == "| --- | --- | --- | --- |"
        assert "Reef \\| Shoal" in lines[4]

    def test_csv(self):
        """CSV output has a header and no trailing newline."""
        text = format_rows(ROWS[:2], TableFormat.CSV)
        assert text == "id,title,status,score\n1,Lighthouse,approved,3\n2,Harbor,draft,5"

    @pytest.mark.parametrize(
        "table_format,expected",
        [(TableFormat.JSON, "[]"), (TableFormat.MARKDOWN, "(no rows)"), (TableFormat.CSV, "(no rows)")],
    )
    def test_empty(self, table_format, expected):
        """Empty results have a readable rendering."""
        assert format_rows([], table_format) == expected


class TestInMemoryTableQueryRegistry:
    """Tests for InMemoryTableQueryRegistry."""

    @pytest.mark.asyncio
    async def test_where_filter(self, registry):
        """Equality conditions joined by AND filter rows."""
        text = await registry.query(
            TableQuery("posts", where="status = 'approved' AND score = 4")
        )
        assert [row["id"] for row in json.loads(text)] == [3]

    @pytest.mark.asyncio
    async def test_order_limit_offset_columns(self, registry):
        """Ordering, paging and projection are applied in that order."""
        text = await registry.query(
            TableQuery("posts", columns=("title",), order_by="score DESC", limit=2, offset=1)
        )
        assert json.loads(text) == [{"title": "Reef | Shoal"}, {"title": "Lighthouse"}]

    @pytest.mark.asyncio
    async def test_unknown_table(self, registry):
        """Unknown tables raise TableQueryError."""
        with pytest.raises(TableQueryError) as exc_info:
            await registry.query(TableQuery("missing"))
        assert exc_info.value.table_name == "missing"

    @pytest.mark.asyncio
    async def test_unsupported_where(self, registry):
        """Non-equality clauses are rejected."""
        with pytest.raises(TableQueryError):
            await registry.query(TableQuery("posts", where="score > 3"))

    @pytest.mark.asyncio
    async def test_add_table(self, registry):
        """Tables can be added after construction."""
        registry.add_table("tags", [{"name": "sea"}])
        text = await registry.query(TableQuery("tags", format=TableFormat.CSV))
        assert text == "name\nsea"
