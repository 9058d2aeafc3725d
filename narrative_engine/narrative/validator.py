"""Narrative TOML validation with actionable messages.

Unlike the loader, which stops at the first problem, validation collects
every error and warning it can find so a file can be fixed in one pass.
"""

import difflib
import logging
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from narrative_engine.narrative.exceptions import ConfigurationError
from narrative_engine.narrative.loader import parse_act
from narrative_engine.narrative.models import ActConfig

logger = logging.getLogger(__name__)


class ValidationErrorKind(str, Enum):
    """Categories of validation errors."""

    FILE_NOT_FOUND = "file_not_found"
    INVALID_SYNTAX = "invalid_syntax"
    MISSING_SECTION = "missing_section"
    ACTS_ARRAY = "acts_array"
    EMPTY_TOC = "empty_toc"
    MISSING_ACT = "missing_act"
    AMBIGUOUS_ACT = "ambiguous_act"
    CONFLICTING_ACT = "conflicting_act"
    INVALID_ACT = "invalid_act"
    UNDEFINED_REFERENCE = "undefined_reference"
    CIRCULAR_DEPENDENCY = "circular_dependency"


class ValidationWarningKind(str, Enum):
    """Categories of validation warnings."""

    UNUSED_RESOURCE = "unused_resource"


@dataclass
class ValidationError:
    """A problem that prevents the file from loading."""

    kind: ValidationErrorKind
    message: str
    suggestion: str | None = None
    section: str | None = None


@dataclass
class ValidationWarning:
    """Something that loads but deserves a look."""

    kind: ValidationWarningKind
    message: str
    section: str | None = None


@dataclass
class ValidationResult:
    """Errors and warnings found in a narrative file."""

    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(
        self,
        kind: ValidationErrorKind,
        message: str,
        suggestion: str | None = None,
        section: str | None = None,
    ) -> None:
        self.errors.append(ValidationError(kind, message, suggestion, section))

    def add_warning(
        self, kind: ValidationWarningKind, message: str, section: str | None = None
    ) -> None:
        self.warnings.append(ValidationWarning(kind, message, section))

    def has_error(self, kind: ValidationErrorKind) -> bool:
        return any(error.kind == kind for error in self.errors)

    def format_errors(self) -> str:
        blocks = []
        for i, error in enumerate(self.errors, 1):
            block = f"Error {i}: {error.message}"
            if error.suggestion:
                block += f"\n\n  Suggestion: {error.suggestion}"
            blocks.append(block)
        return "\n\n".join(blocks)

    def format_warnings(self) -> str:
        return "\n\n".join(
            f"Warning {i}: {warning.message}" for i, warning in enumerate(self.warnings, 1)
        )


def validate_narrative_file(path: str | Path) -> ValidationResult:
    """Validate a narrative file on disk. Never raises."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        result = ValidationResult()
        result.add_error(
            ValidationErrorKind.FILE_NOT_FOUND,
            f"Cannot read {path}: {e}",
            suggestion="Check the file path",
        )
        return result
    return validate_narrative_toml(text)


def validate_narrative_toml(text: str) -> ValidationResult:
    """Validate narrative TOML text. Never raises."""
    result = ValidationResult()
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        result.add_error(
            ValidationErrorKind.INVALID_SYNTAX,
            f"Invalid TOML syntax: {e}",
            suggestion="Check for unclosed brackets, missing quotes or duplicate keys",
        )
        return result

    if "narratives" in data:
        _validate_multi(data, result)
    elif "narrative" in data:
        _validate_single(data, result)
    else:
        result.add_error(
            ValidationErrorKind.MISSING_SECTION,
            "Missing [narrative] or [narratives.<name>] section",
            suggestion='Add a narrative section:\n\n[narrative]\nname = "my_narrative"',
        )
    logger.debug(
        f"Validation finished with {len(result.errors)} error(s), "
        f"{len(result.warnings)} warning(s)"
    )
    return result


def _validate_single(data: Mapping[str, Any], result: ValidationResult) -> None:
    section = data["narrative"]
    name = section.get("name") if isinstance(section, dict) else None
    if not isinstance(name, str) or not name:
        result.add_error(
            ValidationErrorKind.MISSING_SECTION,
            "[narrative] is missing a name",
            suggestion='Add name = "my_narrative" under [narrative]',
            section="narrative",
        )
        name = "<unnamed>"

    acts = _collect_acts(data.get("acts", {}), "acts", name, result)
    toc = _collect_toc(data.get("toc"), "toc", name, result)
    for act_name in toc:
        if act_name not in acts:
            _missing_act(act_name, list(acts), name, result)

    for act_name in toc:
        act = acts.get(act_name)
        if act is not None and act.narrative_reference is not None:
            result.add_error(
                ValidationErrorKind.UNDEFINED_REFERENCE,
                f"Act '{act_name}' references narrative '{act.narrative_reference.name}', "
                "but a single-narrative file has no siblings",
                suggestion="Move both narratives into one file using [narratives.<name>]",
                section=f"acts.{act_name}",
            )

    _warn_unused(acts, set(toc), "acts", result)


def _validate_multi(data: Mapping[str, Any], result: ValidationResult) -> None:
    sections = data["narratives"]
    if not isinstance(sections, dict) or not sections:
        result.add_error(
            ValidationErrorKind.MISSING_SECTION,
            "[narratives] must contain at least one [narratives.<name>] table",
            section="narratives",
        )
        return

    shared = _collect_acts(data.get("acts", {}), "acts", None, result)
    used_shared: set[str] = set()
    references: dict[str, list[str]] = {}

    for name, section in sections.items():
        prefix = f"narratives.{name}"
        if not isinstance(section, dict):
            result.add_error(
                ValidationErrorKind.MISSING_SECTION, f"[{prefix}] must be a table", section=prefix
            )
            continue
        local = _collect_acts(section.get("acts", {}), f"{prefix}.acts", name, result)
        toc = _collect_toc(section.get("toc"), f"{prefix}.toc", name, result)
        references[name] = []

        for act_name in sorted(set(local) & set(shared)):
            result.add_error(
                ValidationErrorKind.AMBIGUOUS_ACT,
                f"Act '{act_name}' in narrative '{name}' is defined both locally and as shared",
                suggestion="Rename one of the two definitions",
                section=f"{prefix}.acts.{act_name}",
            )

        for act_name in toc:
            act = local.get(act_name)
            if act is None:
                act = shared.get(act_name)
                if act is not None:
                    used_shared.add(act_name)
            if act is None:
                _missing_act(act_name, [*local, *shared], name, result)
                continue
            reference = act.narrative_reference
            if reference is None:
                continue
            if reference.name not in sections:
                result.add_error(
                    ValidationErrorKind.UNDEFINED_REFERENCE,
                    f"Act '{act_name}' in narrative '{name}' references "
                    f"undefined narrative '{reference.name}'",
                    suggestion=_did_you_mean(reference.name, list(sections)),
                    section=f"{prefix}.acts.{act_name}",
                )
            else:
                references[name].append(reference.name)

        _warn_unused(local, set(toc), f"{prefix}.acts", result)

    for cycle in _find_cycles(references):
        result.add_error(
            ValidationErrorKind.CIRCULAR_DEPENDENCY,
            f"Circular narrative reference: {' -> '.join(cycle)}",
            suggestion="Break the cycle by removing one of the narrative references",
        )

    _warn_unused(shared, used_shared, "acts", result)


def _collect_acts(
    raw: Any, section: str, narrative_name: str | None, result: ValidationResult
) -> dict[str, ActConfig]:
    if isinstance(raw, list):
        result.add_error(
            ValidationErrorKind.ACTS_ARRAY,
            f"Found [[{section}]] but acts should be a table of tables, not an array",
            suggestion=f"Use [{section}.act_name] instead of [[{section}]]",
            section=section,
        )
        return {}
    if not isinstance(raw, dict):
        result.add_error(
            ValidationErrorKind.MISSING_SECTION, f"[{section}] must be a table", section=section
        )
        return {}

    acts = {}
    for act_name, value in raw.items():
        if isinstance(value, dict) and "narrative" in value and "input" in value:
            result.add_error(
                ValidationErrorKind.CONFLICTING_ACT,
                f"Act '{act_name}' has both 'narrative' and 'input'",
                suggestion="A composition act delegates entirely; remove the 'input' array",
                section=f"{section}.{act_name}",
            )
            continue
        try:
            acts[act_name] = parse_act(act_name, value, narrative_name)
        except ConfigurationError as e:
            result.add_error(
                ValidationErrorKind.INVALID_ACT,
                f"Act '{act_name}': {e.message}",
                section=f"{section}.{act_name}",
            )
    return acts


def _collect_toc(
    raw: Any, section: str, narrative_name: str, result: ValidationResult
) -> list[str]:
    if raw is None:
        result.add_error(
            ValidationErrorKind.MISSING_SECTION,
            f"Narrative '{narrative_name}' has no table of contents",
            suggestion='Add a table of contents:\n\n[toc]\norder = ["act1", "act2"]',
            section=section,
        )
        return []
    order = raw.get("order") if isinstance(raw, dict) else raw
    if not isinstance(order, list) or not all(isinstance(a, str) for a in order):
        result.add_error(
            ValidationErrorKind.MISSING_SECTION,
            f"Table of contents of '{narrative_name}' must be a list of act names",
            section=section,
        )
        return []
    if not order:
        result.add_error(
            ValidationErrorKind.EMPTY_TOC,
            f"Table of contents of '{narrative_name}' is empty",
            suggestion='Add at least one act:\n\norder = ["act1"]',
            section=section,
        )
    return order


def _missing_act(
    act_name: str, known: list[str], narrative_name: str, result: ValidationResult
) -> None:
    result.add_error(
        ValidationErrorKind.MISSING_ACT,
        f"Act '{act_name}' in the table of contents of '{narrative_name}' is not defined",
        suggestion=_did_you_mean(act_name, known)
        or f'Define it:\n\n[acts]\n{act_name} = "Your prompt here"',
    )


def _warn_unused(
    acts: Mapping[str, ActConfig], used: set[str], section: str, result: ValidationResult
) -> None:
    for act_name in acts:
        if act_name not in used:
            result.add_warning(
                ValidationWarningKind.UNUSED_RESOURCE,
                f"Act '{act_name}' is defined but never used in a table of contents",
                section=f"{section}.{act_name}",
            )


def _did_you_mean(name: str, candidates: list[str]) -> str | None:
    matches = difflib.get_close_matches(name, candidates, n=1)
    return f"Did you mean '{matches[0]}'?" if matches else None


def _find_cycles(graph: Mapping[str, list[str]]) -> list[tuple[str, ...]]:
    """Depth-first search for reference cycles.

    Returns each cycle once, as the path from its entry point back to it.
    """
    cycles: list[tuple[str, ...]] = []
    done: set[str] = set()

    for start in graph:
        if start in done:
            continue
        # Iterative DFS: (node, iterator over its edges)
        path = [start]
        on_path = {start}
        stack = [(start, iter(graph.get(start, ())))]
        while stack:
            node, edges = stack[-1]
            nxt = next(edges, None)
            if nxt is None:
                stack.pop()
                path.pop()
                on_path.discard(node)
                done.add(node)
            elif nxt in on_path:
                cycles.append((*path[path.index(nxt):], nxt))
            elif nxt not in done and nxt in graph:
                path.append(nxt)
                on_path.add(nxt)
                stack.append((nxt, iter(graph.get(nxt, ()))))
    return cycles
