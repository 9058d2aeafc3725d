"""Pydantic schemas for act inputs.

An act's inputs are resolved in declaration order into the content of one
user turn. A NarrativeReference input turns the whole act into a
composition act and may not be combined with any other input.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from narrative_engine.services.table_queries import TableFormat, TableQuery


class HistoryRetention(str, Enum):
    """How an input is kept in conversation history after its act ran."""

    FULL = "full"
    SUMMARY = "summary"
    DROP = "drop"


class _InputModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class TextInput(_InputModel):
    """Literal prompt text."""

    type: Literal["text"] = "text"
    content: str
    history_retention: HistoryRetention = HistoryRetention.FULL


class BotCommandInput(_InputModel):
    """Read-only command executed against a chat platform."""

    type: Literal["bot_command"] = "bot_command"
    platform: str
    command: str
    args: dict[str, Any] = Field(default_factory=dict)
    required: bool = Field(
        default=False,
        description="Abort the narrative when the command fails instead of inlining an error",
    )
    history_retention: HistoryRetention = HistoryRetention.FULL


class TableQueryInput(_InputModel):
    """Rows from a content table, rendered as text."""

    type: Literal["table"] = "table"
    table_name: str
    columns: tuple[str, ...] | None = None
    where: str | None = None
    limit: int | None = Field(default=None, ge=0)
    offset: int | None = Field(default=None, ge=0)
    order_by: str | None = None
    format: TableFormat = TableFormat.JSON
    required: bool = False
    history_retention: HistoryRetention = HistoryRetention.FULL

    def to_query(self) -> TableQuery:
        """Build the registry-facing query."""
        return TableQuery(
            table_name=self.table_name,
            columns=self.columns,
            where=self.where,
            limit=self.limit,
            offset=self.offset,
            order_by=self.order_by,
            format=self.format,
        )


class MediaInput(_InputModel):
    """Multimodal payload passed through to the driver untouched."""

    type: Literal["image", "audio", "video", "document"]
    mime: str | None = None
    url: str | None = None
    base64: str | None = None
    filename: str | None = None

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "MediaInput":
        if (self.url is None) == (self.base64 is None):
            raise ValueError(f"{self.type} input needs exactly one of 'url' or 'base64'")
        return self


class NarrativeReference(_InputModel):
    """Delegates the act to another narrative by name."""

    type: Literal["narrative"] = "narrative"
    name: str


Input = Annotated[
    Union[TextInput, BotCommandInput, TableQueryInput, MediaInput, NarrativeReference],
    Field(discriminator="type"),
]
