"""Load narratives from TOML.

Two shapes are accepted.

Single narrative:

    [narrative]
    name = "essay"
    model = "gemini-2.0-flash"

    [toc]
    order = ["draft", "critique"]

    [acts]
    draft = "Write a short essay about lighthouses."

    [acts.critique]
    model = "gemini-2.5-pro"
    [[acts.critique.input]]
    type = "text"
    content = "Critique the essay above."

Multiple narratives sharing acts:

    [acts]
    critique = "Critique the text above."

    [narratives.topic_a]
    toc = ["write", "critique"]

    [narratives.topic_a.acts]
    write = "Write about topic A."

    [narratives.batch]
    toc = ["run_a"]

    [narratives.batch.acts.run_a]
    narrative = "topic_a"

    [narratives.batch.carousel]
    iterations = 5
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from narrative_engine.narrative.exceptions import ConfigurationError, NarrativeNotFoundError
from narrative_engine.narrative.models import ActConfig, CarouselConfig, NarrativeMetadata
from narrative_engine.narrative.narrative import MultiNarrative, Narrative

logger = logging.getLogger(__name__)

_METADATA_KEYS = ("description", "model", "temperature", "max_tokens")

# Keys of a narrative section that are not metadata
_SINGLE_SECTION_KEYS = ("name", "carousel")
_MULTI_SECTION_KEYS = ("toc", "acts", "carousel")


def load_narratives(
    path: str | Path, narrative_name: str | None = None
) -> Narrative | MultiNarrative:
    """Load a narrative file.

    Args:
        path: TOML file to read.
        narrative_name: Narrative to activate in a multi-narrative file.

    Returns:
        A Narrative for the single shape, a MultiNarrative otherwise.

    Raises:
        ConfigurationError: If the file cannot be read or is invalid.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read narrative file {path}: {e}") from e
    logger.debug(f"Loading narratives from {path}")
    return parse_narrative_toml(text, narrative_name=narrative_name)


def parse_narrative_toml(
    text: str, narrative_name: str | None = None
) -> Narrative | MultiNarrative:
    """Parse narrative TOML text. See load_narratives()."""
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML syntax: {e}") from e

    if "narratives" in data:
        if "narrative" in data:
            raise ConfigurationError(
                "A file defines either [narrative] or [narratives.<name>], not both"
            )
        return _parse_multi(data, narrative_name)
    if "narrative" in data:
        narrative = _parse_single(data)
        if narrative_name is not None and narrative_name != narrative.name():
            raise NarrativeNotFoundError(narrative_name, [narrative.name()])
        return narrative
    raise ConfigurationError("Missing [narrative] or [narratives.<name>] section")


def _parse_single(data: Mapping[str, Any]) -> Narrative:
    section = _require_table(data["narrative"], "narrative")
    carousel_data = section.get("carousel")
    metadata = _parse_metadata(section.get("name"), section, "narrative", _SINGLE_SECTION_KEYS)
    name = metadata.name

    toc_section = data.get("toc")
    if toc_section is None:
        raise ConfigurationError("Missing [toc] section", narrative_name=name)
    toc = _parse_toc(toc_section, name)

    acts = _parse_acts(data.get("acts", {}), name, "acts")
    return Narrative(
        metadata,
        toc,
        acts=acts,
        carousel=_parse_carousel(carousel_data, name),
    )


def _parse_multi(data: Mapping[str, Any], narrative_name: str | None) -> MultiNarrative:
    sections = _require_table(data["narratives"], "narratives")
    shared_acts = _parse_acts(data.get("acts", {}), None, "acts")

    narratives: dict[str, Narrative] = {}
    for name, raw in sections.items():
        section = _require_table(raw, f"narratives.{name}")
        metadata = _parse_metadata(name, section, f"narratives.{name}", _MULTI_SECTION_KEYS)
        if "toc" not in section:
            raise ConfigurationError("Missing toc", narrative_name=name)
        toc = _parse_toc(section["toc"], name)
        local_acts = _parse_acts(section.get("acts", {}), name, f"narratives.{name}.acts")
        narratives[name] = Narrative(
            metadata,
            toc,
            acts=local_acts,
            shared_acts=shared_acts,
            carousel=_parse_carousel(section.get("carousel"), name),
        )

    logger.debug(
        f"Parsed {len(narratives)} narrative(s) with {len(shared_acts)} shared act(s)"
    )
    return MultiNarrative(narratives, shared_acts=shared_acts, active=narrative_name)


def _parse_metadata(
    name: Any, section: Mapping[str, Any], section_name: str, structural: tuple[str, ...]
) -> NarrativeMetadata:
    unknown = sorted(set(section) - set(_METADATA_KEYS) - set(structural))
    if unknown:
        raise ConfigurationError(
            f"Unknown key(s) in [{section_name}]: {', '.join(unknown)}",
            narrative_name=name if isinstance(name, str) else None,
        )
    fields = {key: section[key] for key in _METADATA_KEYS if key in section}
    try:
        return NarrativeMetadata(name=name, **fields)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid narrative metadata: {_first_error(e)}",
            narrative_name=name if isinstance(name, str) else None,
        ) from e


def _parse_toc(raw: Any, narrative_name: str) -> list[str]:
    # `toc = [...]` or `[toc] order = [...]`
    order = raw.get("order") if isinstance(raw, dict) else raw
    if not isinstance(order, list) or not all(isinstance(a, str) for a in order):
        raise ConfigurationError(
            "Table of contents must be a list of act names", narrative_name=narrative_name
        )
    return order


def _parse_acts(
    raw: Any, narrative_name: str | None, section: str
) -> dict[str, ActConfig]:
    if isinstance(raw, list):
        raise ConfigurationError(
            f"[[{section}]] is an array; define acts as [{section}.<name>] tables",
            narrative_name=narrative_name,
        )
    table = _require_table(raw, section)
    return {
        act_name: parse_act(act_name, value, narrative_name)
        for act_name, value in table.items()
    }


def parse_act(act_name: str, value: Any, narrative_name: str | None) -> ActConfig:
    """Build an ActConfig from an inline string or an act table.

    Raises:
        ConfigurationError: If the value is malformed.
    """
    if isinstance(value, str):
        data: dict[str, Any] = {"inputs": [{"type": "text", "content": value}]}
    elif isinstance(value, dict):
        data = dict(value)
        reference = data.pop("narrative", None)
        inputs = data.pop("input", None)
        if reference is not None and inputs is not None:
            raise ConfigurationError(
                "Act cannot have both 'narrative' and 'input'",
                narrative_name=narrative_name,
                act_name=act_name,
            )
        if reference is not None:
            data["inputs"] = [{"type": "narrative", "name": reference}]
        elif inputs is not None:
            data["inputs"] = inputs
        else:
            raise ConfigurationError(
                "Act needs either an 'input' array or a 'narrative' reference",
                narrative_name=narrative_name,
                act_name=act_name,
            )
    else:
        raise ConfigurationError(
            f"Act must be a string or a table, got {type(value).__name__}",
            narrative_name=narrative_name,
            act_name=act_name,
        )

    try:
        return ActConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid act: {_first_error(e)}",
            narrative_name=narrative_name,
            act_name=act_name,
        ) from e


def _parse_carousel(raw: Any, narrative_name: str) -> CarouselConfig | None:
    if raw is None:
        return None
    try:
        return CarouselConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid carousel: {_first_error(e)}", narrative_name=narrative_name
        ) from e


def _require_table(raw: Any, section: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"[{section}] must be a table")
    return raw


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    where = ".".join(str(part) for part in first["loc"])
    return f"{where}: {first['msg']}" if where else first["msg"]
