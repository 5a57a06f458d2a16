"""Self-modification commands."""

import asyncio

import typer
from rich.table import Table

from autodidact.cli.runtime import console, get_runtime, handle_errors
from autodidact.modification import Failure

improve_app = typer.Typer(name="improve", help="Self-modification cycles and backups.", no_args_is_help=True)


@improve_app.command("run")
def run_cycle(
    task: str = typer.Argument("manual", help="Name of the failing task"),
    error: str = typer.Option(..., "--error", "-e", help="Error text of the failure"),
):
    """Run one analyze -> propose -> backup -> apply -> test cycle."""
    runtime = get_runtime()
    with handle_errors():
        outcome = asyncio.run(runtime.ledger.improve(Failure(task=task, error=error)))

    console.print(f"Category:   {outcome.analysis.kind.value}")
    console.print(f"Root cause: {outcome.analysis.root_cause}")
    if outcome.record is None:
        console.print(f"[yellow]Not modified: {outcome.reason}[/yellow]")
        return

    record = outcome.record
    console.print(f"Backup:     {record.backup_id}")
    console.print(f"Changes:    {len(record.proposed_changes)} proposed")
    for result in record.applied_results:
        detail = f" ({result.error})" if result.error else ""
        console.print(f"  {result.target_file}: {result.status.value}{detail}")
    if outcome.improved:
        console.print("[green]>[/green] Entry point check passed")
    else:
        console.print(f"[red]Entry point check failed:[/red] {record.test_result.error}")
        console.print(f"Revert with: autodidact improve revert {record.backup_id}")


@improve_app.command()
def history(limit: int = typer.Option(10, "--limit", "-n")):
    """Show recent modification cycles."""
    runtime = get_runtime()
    with handle_errors():
        records = runtime.ledger.history()[-limit:]

    if not records:
        console.print("[dim]No modification history.[/dim]")
        return

    table = Table(title="Modification history")
    table.add_column("When")
    table.add_column("Task")
    table.add_column("Error")
    table.add_column("Changes")
    table.add_column("Test")
    for r in records:
        table.add_row(
            r.timestamp.strftime("%Y-%m-%d %H:%M"),
            r.failure.task,
            r.failure.error[:40],
            str(len(r.proposed_changes)),
            "ok" if r.test_result.success else "failed",
        )
    console.print(table)


@improve_app.command()
def backups():
    """List retained backups, newest first."""
    runtime = get_runtime()
    with handle_errors():
        found = runtime.ledger.list_backups()
    if not found:
        console.print("[dim]No backups.[/dim]")
        return
    for b in found:
        console.print(f"[cyan]{b.id}[/cyan]  {b.timestamp:%Y-%m-%d %H:%M:%S}  {len(b.files)} files")


@improve_app.command()
def revert(backup_id: str = typer.Argument(..., help="Backup ID")):
    """Restore every file from a backup."""
    runtime = get_runtime()
    with handle_errors():
        restored = runtime.ledger.revert(backup_id)
    console.print(f"[green]>[/green] Restored {len(restored)} files from {backup_id}")
