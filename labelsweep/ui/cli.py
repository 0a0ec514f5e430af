"""Rich-based CLI output formatting."""

import logging
from typing import Any, Mapping

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn
from rich.table import Table
from rich.text import Text

from labelsweep.models import CleanupResult, RuleTable


console = Console()
err_console = Console(stderr=True)


def setup_logging(level: str = "WARNING") -> None:
    """Route log records to stderr through rich."""
    handler = RichHandler(console=err_console, show_path=False, rich_tracebacks=True)
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # googleapiclient logs every discovery lookup at INFO
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)


def print_header(title: str) -> None:
    """Print a styled header."""
    console.print()
    console.print(Panel(title, style="bold blue"))
    console.print()


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]ℹ[/blue] {message}")


def print_cleanup_report(result: CleanupResult, dry_run: bool = False) -> None:
    """Print the outcome of a cleanup run."""
    if not result.success:
        print_error(f"An error occurred: {result.error}")
        return

    if not result.processed:
        print_info("No emails were processed in this run.")
        return

    verb = "Would move" if dry_run else "Moved to"
    table = Table(title="Processed Emails")
    table.add_column("Subject", max_width=50)
    table.add_column(verb, style="cyan")

    for record in result.processed:
        table.add_row(
            (record.subject or f"Email ID: {record.message_id}")[:50],
            record.category_applied,
        )

    console.print(table)
    count = len(result.processed)
    if dry_run:
        print_warning(f"DRY RUN - {count} email(s) matched, nothing was moved")
    else:
        print_success(f"Processed {count} email(s). Inbox cleanup complete!")


def print_rule_table(rule_table: RuleTable, id_to_name: Mapping[str, str]) -> None:
    """Print sender rules grouped by category, in match order."""
    if not rule_table:
        print_info("No sender rules configured.")
        return

    table = Table(title="Sender Rules")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Label", style="cyan")
    table.add_column("Sender Email")
    table.add_column("Sender Name", style="dim")

    for position, (category_id, rules) in enumerate(rule_table.items(), start=1):
        name = id_to_name.get(category_id)
        label = Text(name) if name else Text(f"{category_id} (missing)", style="red")
        for index, rule in enumerate(rules):
            table.add_row(
                str(position) if index == 0 else "",
                label if index == 0 else "",
                rule.sender_email,
                rule.sender_name,
            )

    console.print(table)


def print_categories(labels: list[dict[str, Any]], rule_counts: Mapping[str, int]) -> None:
    """Print labels with the number of sender rules pointing at each."""
    table = Table(title="Gmail Labels")
    table.add_column("Label", style="cyan")
    table.add_column("ID", style="dim")
    table.add_column("Type", style="dim")
    table.add_column("Rules", justify="right", style="green")

    for label in sorted(labels, key=lambda x: (x.get("name") or "").lower()):
        count = rule_counts.get(label.get("id"), 0)
        table.add_row(
            label.get("name") or "",
            label.get("id") or "",
            label.get("type") or "",
            f"{count} rule{'s' if count != 1 else ''}" if count else "",
        )

    console.print(table)


def create_progress() -> Progress:
    """Create a progress bar for long operations."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        console=console,
    )


def confirm_action(message: str) -> bool:
    """Ask for user confirmation."""
    response = console.input(f"{message} [y/N]: ")
    return response.lower() in ("y", "yes")
