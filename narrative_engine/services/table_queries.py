"""Table query registry contract and formatting helpers.

Table queries pull rows of previously generated content into a prompt. The
registry returns already formatted text; format_rows() is the shared
renderer for registries that work with plain row dicts.
"""

import csv
import io
import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class TableFormat(str, Enum):
    """Rendering of query results inside a prompt."""

    JSON = "json"
    MARKDOWN = "markdown"
    CSV = "csv"


class TableQueryError(Exception):
    """A table query could not be executed.

    Attributes:
        table_name: Table the query targeted.
    """

    def __init__(self, message: str, table_name: str = "") -> None:
        super().__init__(message)
        self.table_name = table_name


@dataclass(frozen=True)
class TableQuery:
    """A read-only query against one table.

    Attributes:
        table_name: Table to read.
        columns: Columns to include (all when None).
        where: Filter expression understood by the registry.
        limit: Maximum rows.
        offset: Rows to skip.
        order_by: Column to sort by, optionally followed by ASC/DESC.
        format: How rows are rendered.
    """

    table_name: str
    columns: tuple[str, ...] | None = None
    where: str | None = None
    limit: int | None = None
    offset: int | None = None
    order_by: str | None = None
    format: TableFormat = TableFormat.JSON


@runtime_checkable
class TableQueryRegistry(Protocol):
    """Anything that can answer table queries with formatted text."""

    async def query(self, query: TableQuery) -> str:
        """Run the query and return rows rendered per query.format.

        Raises:
            TableQueryError: If the table is unknown or the query fails.
        """
        ...


def format_rows(rows: list[dict[str, Any]], table_format: TableFormat) -> str:
    """Render rows as JSON, a markdown table or CSV.

    Args:
        rows: Row dicts; column order follows the first row.
        table_format: Output format.

    Returns:
        Formatted text. Empty result sets render as "(no rows)" for
        markdown and CSV, and "[]" for JSON.
    """
    if table_format == TableFormat.JSON:
        return json.dumps(rows, indent=2, default=str)

    if not rows:
        return "(no rows)"

    columns = list(rows[0].keys())

    if table_format == TableFormat.MARKDOWN:
        lines = [
            "| " + " | ".join(columns) + " |",
            "| " + " | ".join("---" for _ in columns) + " |",
        ]
        for row in rows:
            cells = [str(row.get(col, "")).replace("|", "\\|").replace("\n", " ") for col in columns]
            lines.append("| " + " | ".join(cells) + " |")
        return "\n".join(lines)

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")


# column = value, joined by AND; values may be quoted
_CONDITION = re.compile(r"^\s*(\w+)\s*=\s*(?:'([^']*)'|\"([^\"]*)\"|(\S+))\s*$")


class InMemoryTableQueryRegistry:
    """Registry serving rows held in memory.

    Supports equality filters ("status = 'approved' AND score = 3"),
    single-column ordering, offset/limit and column projection.
    """

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self._tables: dict[str, list[dict[str, Any]]] = dict(tables or {})

    def add_table(self, name: str, rows: list[dict[str, Any]]) -> None:
        """Register (or replace) a table."""
        self._tables[name] = list(rows)

    async def query(self, query: TableQuery) -> str:
        rows = self._tables.get(query.table_name)
        if rows is None:
            raise TableQueryError(f"Table '{query.table_name}' not found", table_name=query.table_name)

        selected = [row for row in rows if self._matches(row, query)]

        if query.order_by:
            column, _, direction = query.order_by.partition(" ")
            selected.sort(
                key=lambda row: str(row.get(column, "")),
                reverse=direction.strip().upper() == "DESC",
            )

        start = query.offset or 0
        end = start + query.limit if query.limit is not None else None
        selected = selected[start:end]

        if query.columns:
            selected = [{col: row.get(col) for col in query.columns} for row in selected]

        logger.debug(f"Table query on {query.table_name} returned {len(selected)} rows")
        return format_rows(selected, query.format)

    def _matches(self, row: dict[str, Any], query: TableQuery) -> bool:
        if not query.where:
            return True
        for condition in re.split(r"\s+AND\s+", query.where, flags=re.IGNORECASE):
            match = _CONDITION.match(condition)
            if match is None:
                raise TableQueryError(
                    f"Unsupported where clause: {condition!r}", table_name=query.table_name
                )
            column = match.group(1)
            value = next(v for v in match.groups()[1:] if v is not None)
            if str(row.get(column)) != value:
                return False
        return True
