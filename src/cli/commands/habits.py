"""Habit CLI commands."""

import sys

import click
from rich.console import Console
from rich.table import Table

from cli.utils import run_session
from snapshot.models import RecordValidationError

console = Console()


def _habit_table(habits) -> Table:
    table = Table(show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Habit")
    table.add_column("Done", justify="center")
    table.add_column("Streak", justify="right", style="cyan")
    for h in habits:
        mark = "[green]✓[/]" if h.completed else "·"
        name = f"{h.name} [dim]({h.category})[/]" if h.category else h.name
        if h.is_pending:
            name += " [yellow]*[/]"
        table.add_row(h.id, name, mark, str(h.streak))
    return table


@click.group()
def habit():
    """Track daily habits."""
    pass


@habit.command("list")
def habit_list():
    """Show habits with today's completion and streaks."""
    habits = run_session().snapshot.habits
    if not habits:
        console.print("[yellow]No habits yet.[/]")
        return
    console.print(_habit_table(habits))
    console.print("[dim]* not yet synced[/]")


@habit.command("add")
@click.argument("name")
@click.option("-c", "--category", help="Optional category label")
def habit_add(name: str, category: str):
    """Add a habit."""
    try:
        created = run_session(lambda s: s.add_habit(name, category=category))
    except RecordValidationError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)
    console.print(f"[green]Added:[/] {created.name} [dim]{created.id}[/]")


@habit.command("toggle")
@click.argument("habit_id")
def habit_toggle(habit_id: str):
    """Mark a habit done or undone for today."""
    updated = run_session(lambda s: s.toggle_habit(habit_id))
    if updated is None:
        console.print(f"[red]No habit with id {habit_id}[/]")
        return
    state = "done" if updated.completed else "not done"
    console.print(f"{updated.name}: {state} (streak {updated.streak})")


@habit.command("rm")
@click.argument("habit_id")
def habit_rm(habit_id: str):
    """Delete a habit."""
    if run_session(lambda s: s.delete_habit(habit_id)):
        console.print(f"[green]Removed[/] {habit_id}")
    else:
        console.print(f"[red]No habit with id {habit_id}[/]")
