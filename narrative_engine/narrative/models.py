"""Pydantic schemas for narrative configuration.

These models are built once from a TOML source and never mutated.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from narrative_engine.config import get_settings
from narrative_engine.narrative.inputs import Input, NarrativeReference


class CarouselConfig(BaseModel):
    """Budget-aware repetition of a narrative or act."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    iterations: int = Field(ge=1, description="Maximum number of iterations to attempt")
    estimated_tokens_per_iteration: int = Field(
        default_factory=lambda: get_settings().default_estimated_tokens,
        ge=0,
        description="Used to pre-check the budget before each iteration",
    )
    continue_on_error: bool = False


class ActConfig(BaseModel):
    """One step of a narrative.

    Either a list of ordinary inputs that become one user turn, or a single
    NarrativeReference that delegates the act to another narrative.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    inputs: tuple[Input, ...]
    model: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _check_inputs(self) -> "ActConfig":
        if not self.inputs:
            raise ValueError("act must have at least one input")
        references = [i for i in self.inputs if isinstance(i, NarrativeReference)]
        if references and len(self.inputs) > 1:
            raise ValueError("a narrative reference cannot be combined with other inputs")
        return self

    @property
    def narrative_reference(self) -> NarrativeReference | None:
        """The referenced narrative if this is a composition act."""
        first = self.inputs[0]
        return first if isinstance(first, NarrativeReference) else None

    @property
    def is_composition(self) -> bool:
        return self.narrative_reference is not None

    @classmethod
    def text(cls, content: str, **overrides: object) -> "ActConfig":
        """Shorthand for a single text input act."""
        return cls.model_validate({"inputs": [{"type": "text", "content": content}], **overrides})

    @classmethod
    def reference(cls, narrative_name: str) -> "ActConfig":
        """Shorthand for a composition act."""
        return cls.model_validate({"inputs": [{"type": "narrative", "name": narrative_name}]})


class NarrativeMetadata(BaseModel):
    """Name, description and generation defaults of a narrative."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1)
    description: str = ""
    model: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)
