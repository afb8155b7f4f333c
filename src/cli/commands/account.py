"""Account, status and single-value CLI commands."""

import asyncio
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from cli.config import clear_identity, save_identity
from cli.utils import get_components, run_session
from gateway.base import AuthorizationError, GatewayError
from shared_types import Theme
from snapshot.models import RecordValidationError

console = Console()


@click.command()
def status():
    """Show sign-in state and a summary of today's data."""
    session = run_session()
    s = session.summary()
    who = (session.identity.name or session.identity.email) if session.identity else "guest"
    source = session.last_load.source.value if session.last_load else "local"

    lines = [
        f"[bold]User:[/] {who}",
        f"[bold]Mood:[/] {s['mood']}",
        f"[bold]Theme:[/] {session.snapshot.theme.value}",
        f"[bold]Data from:[/] {source}",
    ]
    if session.auth_required:
        lines.append("[red]Session expired. Run `lifelog login`.[/]")
    console.print(Panel("\n".join(lines), title="Lifelog"))

    table = Table(show_header=True)
    table.add_column("Metric")
    table.add_column("Value", justify="right", style="cyan")
    table.add_row("Habits done today", f"{s['habits_completed']}/{s['habits_total']}")
    table.add_row("Average streak", str(s["avg_streak"]))
    table.add_row("Top streak", str(s["top_streak"]))
    table.add_row("Journal entries", str(s["journals"]))
    for name, count in s["tasks"].items():
        table.add_row(f"Tasks {name}", str(count))
    table.add_row("Tasks overdue", str(s["tasks_overdue"]))
    table.add_row("Chat messages", str(s["messages"]))
    table.add_row("Not yet synced", str(s["pending_records"]))
    console.print(table)


@click.command()
@click.option("-e", "--email", prompt=True, help="Account email")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
def login(email: str, password: str):
    """Sign in and save credentials."""
    c = get_components()

    async def _sign_in():
        try:
            return await c["gateway"].sign_in(email, password)
        finally:
            await c["gateway"].close()

    try:
        identity = asyncio.run(_sign_in())
    except AuthorizationError:
        console.print("[red]Invalid email or password.[/]")
        sys.exit(1)
    except GatewayError as e:
        console.print(f"[red]Sign-in failed:[/] {e}")
        sys.exit(1)

    save_identity(c["config"].paths.credentials_file, identity)
    console.print(f"[green]Signed in as[/] {identity.name or identity.email}")


@click.command()
@click.option("--forget", is_flag=True, help="Also delete this user's data cached on this device")
def logout(forget: bool):
    """Sign out."""
    c = get_components()
    if forget:
        c["session"].forget_local()
        console.print("[dim]Local data removed.[/]")
    if clear_identity(c["config"].paths.credentials_file):
        console.print("[green]Signed out.[/]")
    else:
        console.print("[yellow]Not signed in.[/]")


@click.command()
@click.argument("value", required=False)
def mood(value: str):
    """Show or set today's mood."""
    if value is None:
        console.print(run_session().snapshot.mood)
        return
    try:
        current = run_session(lambda s: s.set_mood(value))
    except RecordValidationError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)
    console.print(f"[green]Mood:[/] {current}")


@click.command()
@click.argument("value", required=False, type=click.Choice([t.value for t in Theme]))
def theme(value: str):
    """Show or set the display theme."""
    if value is None:
        console.print(run_session().snapshot.theme.value)
        return
    current = run_session(lambda s: s.set_theme(value))
    console.print(f"[green]Theme:[/] {current.value}")


@click.command()
@click.argument("query")
def search(query: str):
    """Search habits and journal entries on this device."""
    session = run_session()
    try:
        results = session.search(query)
    except RecordValidationError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)

    if not results:
        console.print("[yellow]No matches.[/]")
        return

    table = Table(show_header=True)
    table.add_column("Type", style="green")
    table.add_column("Date", style="cyan")
    table.add_column("Text")
    for r in results:
        stamp = r["date"].strftime("%Y-%m-%d") if r["date"] else ""
        text = r["text"] if len(r["text"]) <= 60 else r["text"][:57] + "..."
        table.add_row(r["type"], stamp, text)
    console.print(table)
