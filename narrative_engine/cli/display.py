"""Rich display helpers for CLI output."""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from narrative_engine.narrative.inputs import (
    BotCommandInput,
    Input,
    NarrativeReference,
    TableQueryInput,
)
from narrative_engine.narrative.models import ActConfig
from narrative_engine.narrative.narrative import MultiNarrative, Narrative
from narrative_engine.narrative.validator import ValidationResult


# Shared console instance
console = Console()


def display_error(message: str) -> None:
    """Display error message.

    Args:
        message: Error message.
    """
    console.print(f"[bold red]Error:[/bold red] {message}")


def display_success(message: str) -> None:
    """Display success message.

    Args:
        message: Success message.
    """
    console.print(f"[bold green]{message}[/bold green]")


def display_info(message: str) -> None:
    """Display info message.

    Args:
        message: Info message.
    """
    console.print(f"[dim]{message}[/dim]")


def display_validation(result: ValidationResult) -> None:
    """Display validation errors, each with its suggestion, then warnings."""
    for i, error in enumerate(result.errors, 1):
        body = error.message
        if error.suggestion:
            body += f"\n\n[cyan]Suggestion:[/cyan] {error.suggestion}"
        title = f"Error {i}: {error.kind.value}"
        console.print(Panel(body, title=title, border_style="red", title_align="left"))

    for i, warning in enumerate(result.warnings, 1):
        console.print(f"[yellow]Warning {i}:[/yellow] {warning.message}")


def describe_act(act: ActConfig) -> str:
    """One-line summary of what an act consists of."""
    reference = act.narrative_reference
    if reference is not None:
        return f"→ narrative {reference.name}"
    return ", ".join(_describe_input(i) for i in act.inputs)


def _describe_input(item: Input) -> str:
    if isinstance(item, BotCommandInput):
        return f"bot_command:{item.platform}.{item.command}"
    if isinstance(item, TableQueryInput):
        return f"table:{item.table_name}"
    if isinstance(item, NarrativeReference):
        return f"narrative:{item.name}"
    return item.type


def display_narrative(narrative: Narrative, default_model: str | None = None) -> None:
    """Display a narrative's acts in table-of-contents order.

    Args:
        narrative: Narrative to display.
        default_model: Shown for acts without any model override.
    """
    metadata = narrative.metadata()
    title = f"[bold cyan]{metadata.name}[/bold cyan]"
    if metadata.description:
        title += f" - {metadata.description}"

    table = Table(title=title, box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Act", style="white")
    table.add_column("Inputs", style="green")
    table.add_column("Model", style="yellow")
    table.add_column("Source", style="magenta")

    for index, act_name in enumerate(narrative.act_names()):
        act = narrative.get_act_config(act_name)
        if act is None:
            continue
        if act.is_composition:
            model = "-"
        else:
            model = act.model or metadata.model or default_model or "(driver default)"
        source = "shared" if narrative.is_shared_act(act_name) else "local"
        table.add_row(str(index), act_name, describe_act(act), model, source)

    console.print(table)

    carousel = narrative.carousel_config()
    if carousel is not None:
        display_info(
            f"Carousel: {carousel.iterations} iterations, "
            f"~{carousel.estimated_tokens_per_iteration} tokens each, "
            f"continue_on_error={carousel.continue_on_error}"
        )


def display_narratives(source: Narrative | MultiNarrative, only: str | None = None) -> None:
    """Display one narrative, or every narrative of a multi-narrative file."""
    if isinstance(source, Narrative):
        display_narrative(source)
        return
    names = [only] if only else list(source.narrative_names())
    for name in names:
        narrative = source.get_narrative(name)
        if narrative is not None:
            display_narrative(narrative)
            console.print()
    shared = source.shared_act_names()
    if shared:
        display_info(f"Shared acts: {', '.join(shared)}")
