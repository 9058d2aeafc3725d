"""Narrative and multi-narrative containers.

A Narrative is an ordered table of contents plus the acts it refers to. A
MultiNarrative holds every narrative of one file together with the acts
they share, and is what makes composition possible: it resolves sibling
narratives by name.
"""

import logging
from types import MappingProxyType
from typing import Iterable, Mapping

from narrative_engine.narrative.exceptions import ConfigurationError, NarrativeNotFoundError
from narrative_engine.narrative.models import ActConfig, CarouselConfig, NarrativeMetadata
from narrative_engine.narrative.provider import NarrativeProvider

logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, ActConfig] = MappingProxyType({})


class Narrative(NarrativeProvider):
    """A single named narrative.

    Validates on construction:
    - the table of contents is not empty
    - no act name is defined both locally and in the shared acts
    - every toc entry resolves to exactly one act

    Args:
        metadata: Name, description and defaults.
        toc: Ordered act names.
        acts: Narrative-local act definitions.
        shared_acts: Acts shared by every narrative of the same source.
        carousel: Optional carousel wrapping the whole narrative.

    Raises:
        ConfigurationError: If any of the checks above fails.
    """

    def __init__(
        self,
        metadata: NarrativeMetadata,
        toc: Iterable[str],
        acts: Mapping[str, ActConfig] | None = None,
        shared_acts: Mapping[str, ActConfig] | None = None,
        carousel: CarouselConfig | None = None,
    ) -> None:
        self._metadata = metadata
        self._toc = tuple(toc)
        self._acts = MappingProxyType(dict(acts or {}))
        self._shared_acts = shared_acts if shared_acts is not None else _EMPTY
        self._carousel = carousel
        self._validate()

    def _validate(self) -> None:
        name = self._metadata.name
        if not self._toc:
            raise ConfigurationError("Table of contents cannot be empty", narrative_name=name)

        ambiguous = sorted(set(self._acts) & set(self._shared_acts))
        if ambiguous:
            raise ConfigurationError(
                f"Ambiguous act(s) defined both locally and as shared: {', '.join(ambiguous)}",
                narrative_name=name,
                act_name=ambiguous[0],
            )

        for act_name in self._toc:
            if act_name not in self._acts and act_name not in self._shared_acts:
                raise ConfigurationError(
                    f"Act '{act_name}' referenced in table of contents is not defined",
                    narrative_name=name,
                    act_name=act_name,
                )

    def metadata(self) -> NarrativeMetadata:
        return self._metadata

    def act_names(self) -> tuple[str, ...]:
        return self._toc

    def get_act_config(self, act_name: str) -> ActConfig | None:
        act = self._acts.get(act_name)
        if act is not None:
            return act
        return self._shared_acts.get(act_name)

    def carousel_config(self) -> CarouselConfig | None:
        return self._carousel

    @property
    def local_act_names(self) -> tuple[str, ...]:
        return tuple(self._acts)

    def is_shared_act(self, act_name: str) -> bool:
        return act_name not in self._acts and act_name in self._shared_acts

    def referenced_narratives(self) -> tuple[str, ...]:
        """Narrative names referenced by composition acts, in toc order."""
        names = []
        for act_name in self._toc:
            act = self.get_act_config(act_name)
            if act is not None and act.narrative_reference is not None:
                names.append(act.narrative_reference.name)
        return tuple(names)

    def __repr__(self) -> str:
        return f"Narrative(name={self._metadata.name!r}, toc={list(self._toc)!r})"


class MultiNarrative(NarrativeProvider):
    """All narratives from one source, with one of them active.

    The provider methods answer for the active narrative; resolve_narrative()
    returns a view of this same container focused on the sibling, so nested
    composition keeps working at any depth.

    Args:
        narratives: Narratives by name (all built against the same shared acts).
        shared_acts: Acts usable by every contained narrative.
        active: Name of the active narrative (first one when omitted).

    Raises:
        ConfigurationError: If the container is empty.
        NarrativeNotFoundError: If `active` is not one of the narratives.
    """

    def __init__(
        self,
        narratives: Mapping[str, Narrative],
        shared_acts: Mapping[str, ActConfig] | None = None,
        active: str | None = None,
    ) -> None:
        if not narratives:
            raise ConfigurationError("Narrative source defines no narratives")
        self._narratives = MappingProxyType(dict(narratives))
        self._shared_acts = MappingProxyType(dict(shared_acts or {}))
        active = active or next(iter(self._narratives))
        if active not in self._narratives:
            raise NarrativeNotFoundError(active, list(self._narratives))
        self._active = active

    @property
    def active_name(self) -> str:
        return self._active

    @property
    def active(self) -> Narrative:
        return self._narratives[self._active]

    def narrative_names(self) -> tuple[str, ...]:
        return tuple(self._narratives)

    def shared_act_names(self) -> tuple[str, ...]:
        return tuple(self._shared_acts)

    def get_narrative(self, narrative_name: str) -> Narrative | None:
        return self._narratives.get(narrative_name)

    def focus(self, narrative_name: str) -> "MultiNarrative":
        """Same container with a different active narrative.

        Raises:
            NarrativeNotFoundError: If the narrative does not exist.
        """
        if narrative_name not in self._narratives:
            raise NarrativeNotFoundError(narrative_name, list(self._narratives))
        view = MultiNarrative.__new__(MultiNarrative)
        view._narratives = self._narratives
        view._shared_acts = self._shared_acts
        view._active = narrative_name
        return view

    def metadata(self) -> NarrativeMetadata:
        return self.active.metadata()

    def act_names(self) -> tuple[str, ...]:
        return self.active.act_names()

    def get_act_config(self, act_name: str) -> ActConfig | None:
        return self.active.get_act_config(act_name)

    def carousel_config(self) -> CarouselConfig | None:
        return self.active.carousel_config()

    def resolve_narrative(self, narrative_name: str) -> NarrativeProvider | None:
        if narrative_name not in self._narratives:
            return None
        return self.focus(narrative_name)

    def __repr__(self) -> str:
        return (
            f"MultiNarrative(active={self._active!r}, "
            f"narratives={list(self._narratives)!r})"
        )
