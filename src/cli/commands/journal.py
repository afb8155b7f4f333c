"""Journal CLI commands."""

import sys

import click
from rich.console import Console
from rich.table import Table

from cli.utils import run_session
from snapshot.models import RecordValidationError

console = Console()


@click.group()
def journal():
    """Manage journal entries."""
    pass


@journal.command("add")
@click.argument("content", required=False)
def journal_add(content: str):
    """Add a journal entry. Opens editor if no content provided."""
    if not content:
        content = click.edit("\n")
        if not content or not content.strip():
            console.print("[yellow]No content provided, cancelled.[/]")
            return

    try:
        entry = run_session(lambda s: s.add_journal(content))
    except RecordValidationError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)

    status = " [yellow](saved offline)[/]" if entry.is_pending else ""
    console.print(f"[green]Created:[/] {entry.id}{status}")


@journal.command("list")
@click.option("-p", "--page", default=1, type=click.IntRange(min=1), help="Page number")
@click.option("-n", "--limit", default=None, type=click.IntRange(min=1), help="Entries per page")
def journal_list(page: int, limit: int):
    """List journal entries, newest first."""
    result = run_session(lambda s: s.journal_page(page, limit))

    if not result.items:
        console.print("[yellow]No entries found.[/]")
        return

    table = Table(show_header=True)
    table.add_column("Date", style="cyan")
    table.add_column("ID", style="dim")
    table.add_column("Entry")

    for entry in result.items:
        text = entry.text if len(entry.text) <= 60 else entry.text[:57] + "..."
        if entry.is_pending:
            text += " [yellow]*[/]"
        table.add_row(entry.created_at.strftime("%Y-%m-%d %H:%M"), entry.id, text)

    console.print(table)
    console.print(
        f"[dim]Page {result.current_page} of {max(result.total_pages, 1)} "
        f"({result.total} entries)[/]"
    )


@journal.command("rm")
@click.argument("journal_id")
def journal_rm(journal_id: str):
    """Delete a journal entry."""
    if run_session(lambda s: s.delete_journal(journal_id)):
        console.print(f"[green]Removed[/] {journal_id}")
    else:
        console.print(f"[red]No journal entry with id {journal_id}[/]")
