"""Task CLI commands."""

import sys
from datetime import date

import click
from rich.console import Console
from rich.table import Table

from cli.utils import run_session
from shared_types import TaskPriority, TaskStatus
from snapshot.models import RecordValidationError

console = Console()

PRIORITY_STYLE = {
    TaskPriority.HIGH: "red",
    TaskPriority.MEDIUM: "yellow",
    TaskPriority.LOW: "dim",
}

PRIORITIES = click.Choice([p.value for p in TaskPriority])
STATUSES = click.Choice([s.value for s in TaskStatus])


def _run_or_exit(action):
    try:
        return run_session(action)
    except (RecordValidationError, ValueError) as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)


@click.group()
def task():
    """Manage tasks."""
    pass


@task.command("list")
@click.option("-s", "--status", type=STATUSES, help="Filter by status")
@click.option("--overdue", is_flag=True, help="Only tasks past their due date")
def task_list(status: str, overdue: bool):
    """List tasks."""
    tasks = run_session().snapshot.tasks
    today = date.today()
    if status:
        tasks = [t for t in tasks if t.status == status]
    if overdue:
        tasks = [t for t in tasks if t.is_overdue(today)]

    if not tasks:
        console.print("[yellow]No tasks found.[/]")
        return

    table = Table(show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Priority")
    table.add_column("Status", style="cyan")
    table.add_column("Due")

    for t in tasks:
        title = t.title + (" [yellow]*[/]" if t.is_pending else "")
        style = PRIORITY_STYLE.get(t.priority, "")
        due = t.due_date.isoformat() if t.due_date else ""
        if t.is_overdue(today):
            due = f"[red]{due}[/]"
        table.add_row(t.id, title, f"[{style}]{t.priority.value}[/]", t.status.value, due)

    console.print(table)


@task.command("add")
@click.argument("title")
@click.option("-d", "--description", default="", help="Longer description")
@click.option("-p", "--priority", type=PRIORITIES, default=TaskPriority.MEDIUM.value)
@click.option("--due", type=click.DateTime(formats=["%Y-%m-%d"]), help="Due date (YYYY-MM-DD)")
def task_add(title: str, description: str, priority: str, due):
    """Add a task."""
    created = _run_or_exit(
        lambda s: s.add_task(
            title,
            description=description,
            priority=priority,
            due_date=due.date() if due else None,
        )
    )
    console.print(f"[green]Added:[/] {created.title} [dim]{created.id}[/]")


@task.command("toggle")
@click.argument("task_id")
def task_toggle(task_id: str):
    """Flip a task between completed and pending."""
    updated = run_session(lambda s: s.toggle_task(task_id))
    if updated is None:
        console.print(f"[red]No task with id {task_id}[/]")
        return
    console.print(f"{updated.title}: {updated.status.value}")


@task.command("update")
@click.argument("task_id")
@click.option("--title", help="New title")
@click.option("-d", "--description", help="New description")
@click.option("-p", "--priority", type=PRIORITIES)
@click.option("-s", "--status", type=STATUSES)
@click.option("--due", type=click.DateTime(formats=["%Y-%m-%d"]), help="Due date (YYYY-MM-DD)")
@click.option("--clear-due", is_flag=True, help="Remove the due date")
def task_update(task_id: str, title, description, priority, status, due, clear_due: bool):
    """Edit fields of a task."""
    changes = {
        k: v
        for k, v in {
            "title": title,
            "description": description,
            "priority": priority,
            "status": status,
        }.items()
        if v is not None
    }
    if due:
        changes["due_date"] = due.date()
    elif clear_due:
        changes["due_date"] = None

    if not changes:
        console.print("[yellow]Nothing to update.[/]")
        return

    updated = _run_or_exit(lambda s: s.update_task(task_id, **changes))
    if updated is None:
        console.print(f"[red]No task with id {task_id}[/]")
        return
    console.print(f"[green]Updated:[/] {updated.title} ({updated.status.value})")


@task.command("rm")
@click.argument("task_id")
def task_rm(task_id: str):
    """Delete a task."""
    if run_session(lambda s: s.delete_task(task_id)):
        console.print(f"[green]Removed[/] {task_id}")
    else:
        console.print(f"[red]No task with id {task_id}[/]")
