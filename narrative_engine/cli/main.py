"""Main CLI application for narrative files."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.logging import RichHandler

from narrative_engine.cli.display import (
    console,
    display_error,
    display_info,
    display_narratives,
    display_success,
    display_validation,
)
from narrative_engine.config import get_settings
from narrative_engine.narrative.exceptions import ConfigurationError
from narrative_engine.narrative.loader import load_narratives
from narrative_engine.narrative.narrative import MultiNarrative
from narrative_engine.narrative.validator import validate_narrative_file

# Create main app
app = typer.Typer(
    name="narrative",
    help="Validate and inspect multi-act LLM narrative files",
    add_completion=False,
)


def setup_logging(level: str) -> None:
    """Route engine logging through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l", help="Logging level (defaults to LOG_LEVEL setting)"
    ),
) -> None:
    """Narrative tools.

    Use 'narrative validate FILE' to check a file before running it.
    """
    setup_logging(log_level or get_settings().log_level)


@app.command()
def validate(
    file: Path = typer.Argument(..., help="Narrative TOML file"),
) -> None:
    """Validate a narrative file and report every problem found."""
    result = validate_narrative_file(file)
    display_validation(result)

    if not result.is_valid:
        display_error(f"{file} has {len(result.errors)} error(s)")
        raise typer.Exit(1)

    message = f"{file} is valid"
    if result.warnings:
        message += f" ({len(result.warnings)} warning(s))"
    display_success(message)


@app.command()
def show(
    file: Path = typer.Argument(..., help="Narrative TOML file"),
    narrative: Optional[str] = typer.Option(
        None, "--narrative", "-n", help="Only show this narrative of a multi-narrative file"
    ),
) -> None:
    """Show the acts of each narrative in execution order."""
    try:
        source = load_narratives(file, narrative_name=narrative)
    except ConfigurationError as e:
        display_error(str(e))
        raise typer.Exit(1)

    if isinstance(source, MultiNarrative):
        display_info(f"{len(source.narrative_names())} narrative(s) in {file}")
    display_narratives(source, only=narrative)


if __name__ == "__main__":
    app()
