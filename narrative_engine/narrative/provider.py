"""Narrative provider abstraction.

The executor only talks to NarrativeProvider, so it works the same for a
single narrative and for one narrative inside a multi-narrative file. The
only difference is resolve_narrative(), which a single narrative never
answers.
"""

from abc import ABC, abstractmethod

from narrative_engine.narrative.models import ActConfig, CarouselConfig, NarrativeMetadata


class NarrativeProvider(ABC):
    """Source of acts for one narrative execution."""

    @abstractmethod
    def metadata(self) -> NarrativeMetadata:
        """Name, description and generation defaults."""

    @abstractmethod
    def act_names(self) -> tuple[str, ...]:
        """Ordered table of contents; acts execute in exactly this order."""

    @abstractmethod
    def get_act_config(self, act_name: str) -> ActConfig | None:
        """Act definition, narrative-local first then shared. None if absent."""

    def name(self) -> str:
        return self.metadata().name

    def resolve_narrative(self, narrative_name: str) -> "NarrativeProvider | None":
        """Sibling narrative for composition. None when not resolvable."""
        return None

    def carousel_config(self) -> CarouselConfig | None:
        """Carousel wrapping the whole narrative, if configured."""
        return None
