"""Scheduler commands."""

import asyncio

import typer
from rich.table import Table

from autodidact.cli.runtime import console, get_runtime, handle_errors

schedule_app = typer.Typer(name="schedule", help="Recurring tasks.", no_args_is_help=True)


@schedule_app.command()
def add(
    name: str = typer.Argument(..., help="Task name"),
    type: str = typer.Option("research", "--type", help="research, synthesis, reflection or health_check"),
    topic: str = typer.Option("", "--topic"),
    frequency: str = typer.Option("daily:9", "--frequency", "-f", help="hourly[:N], daily:H or weekly:DAY:H"),
):
    """Add a scheduled task."""
    runtime = get_runtime()
    with handle_errors():
        task = runtime.scheduler.add_task(name, type, topic, frequency)
    console.print(f"[green]>[/green] Scheduled {task.name} ({task.id}), next run {task.next_run:%Y-%m-%d %H:%M}")


@schedule_app.command()
def remove(task_id: str = typer.Argument(..., help="Task ID")):
    """Remove a scheduled task."""
    runtime = get_runtime()
    with handle_errors():
        task = runtime.scheduler.remove_task(task_id)
    console.print(f"[green]>[/green] Removed {task.name}")


@schedule_app.command("list")
def list_tasks():
    """Show scheduled tasks and whether each is due."""
    runtime = get_runtime()
    with handle_errors():
        status = runtime.scheduler.status()

    console.print(f"Scheduler: {'[green]enabled[/green]' if status.enabled else '[dim]stopped[/dim]'}")
    if status.last_tick:
        console.print(f"Last tick: {status.last_tick:%Y-%m-%d %H:%M:%S}")
    if not status.tasks:
        console.print("[dim]No scheduled tasks.[/dim]")
        return

    table = Table()
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("When")
    table.add_column("Next run")
    table.add_column("Due")
    for entry in status.tasks:
        t = entry.task
        table.add_row(
            t.id,
            t.name if t.enabled else f"{t.name} (disabled)",
            t.type.value,
            t.frequency.describe(),
            f"{t.next_run:%Y-%m-%d %H:%M}",
            "yes" if entry.due else "",
        )
    console.print(table)


@schedule_app.command()
def defaults():
    """Add the default research, reflection, synthesis and health-check tasks."""
    runtime = get_runtime()
    with handle_errors():
        added = runtime.scheduler.add_default_tasks()
    console.print(f"[green]>[/green] Added {len(added)} default tasks")


@schedule_app.command()
def tick():
    """Run every due task once."""
    runtime = get_runtime()
    with handle_errors():
        outcomes = asyncio.run(runtime.scheduler.tick())
    if not outcomes:
        console.print("[dim]Nothing due.[/dim]")
    for o in outcomes:
        mark = "[green]ok[/green]" if o.success else f"[red]failed[/red] {o.error}"
        console.print(f"{o.name}: {mark}")


@schedule_app.command()
def start():
    """Run the scheduler loop in the foreground until stopped."""
    runtime = get_runtime()
    scheduler = runtime.scheduler

    async def run():
        await scheduler.start()
        await scheduler.wait()

    console.print("Scheduler running (Ctrl+C or `autodidact schedule stop` to exit)")
    with handle_errors():
        try:
            asyncio.run(run())
        except KeyboardInterrupt:
            scheduler.stop()
    console.print("Scheduler stopped")


@schedule_app.command()
def stop():
    """Stop a running scheduler loop (it exits on its next wake-up)."""
    runtime = get_runtime()
    with handle_errors():
        runtime.scheduler.stop()
    console.print("[green]>[/green] Scheduler disabled")
