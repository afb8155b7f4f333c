"""lifelog command line entry point."""

import sys

import click
from rich.console import Console

from cli.commands import chat, habit, journal, login, logout, mood, search, status, task, theme
from cli.config import load_config
from cli.logging_config import setup_logging
from observability import log_run_summary

console = Console()


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    """Lifelog - offline-first mood, habits, journal, tasks and chat."""
    try:
        config = load_config()
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)
    setup_logging(
        json_mode=config.logging.json_mode,
        level="DEBUG" if verbose else config.logging.level,
        log_file=config.paths.log_file,
    )
    ctx.call_on_close(log_run_summary)


for command in (status, login, logout, mood, theme, search, habit, journal, task, chat):
    cli.add_command(command)


if __name__ == "__main__":
    cli()
