"""Chat CLI commands."""

import sys

import click
from rich.console import Console

from cli.utils import run_session
from shared_types import Sender
from snapshot.models import RecordValidationError

console = Console()


@click.group()
def chat():
    """Talk with the assistant."""
    pass


@chat.command("send")
@click.argument("message")
def chat_send(message: str):
    """Send a message and print the reply."""
    try:
        reply = run_session(lambda s: s.send_message(message))
    except RecordValidationError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)
    console.print(f"[bold magenta]ai:[/] {reply.text}")


@chat.command("history")
@click.option("-n", "--limit", default=20, type=click.IntRange(min=1), help="Messages to show")
def chat_history(limit: int):
    """Show the most recent messages."""
    messages = run_session(lambda s: s.refresh_chat())[-limit:]
    if not messages:
        console.print("[yellow]No messages yet.[/]")
        return
    for m in messages:
        who = "[bold cyan]you[/]" if m.sender == Sender.USER else "[bold magenta]ai[/]"
        stamp = m.sent_at.strftime("%Y-%m-%d %H:%M")
        console.print(f"[dim]{stamp}[/] {who}: {m.text}")


@chat.command("clear")
@click.confirmation_option(prompt="Clear the whole conversation?")
def chat_clear():
    """Delete the conversation."""
    removed = run_session(lambda s: s.clear_chat())
    console.print(f"[green]Cleared {removed} messages.[/]")
