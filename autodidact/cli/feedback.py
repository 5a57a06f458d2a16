"""Feedback review commands."""

import json
from pathlib import Path

import typer
from rich.table import Table

from autodidact.cli.runtime import EXIT_NOT_FOUND, console, get_runtime, handle_errors

feedback_app = typer.Typer(name="feedback", help="Review queued outputs.", no_args_is_help=True)


@feedback_app.command("list")
def list_items(
    status: str = typer.Option("pending", "--status", "-s", help="pending, approved or rejected"),
):
    """List feedback items in one partition."""
    runtime = get_runtime()
    with handle_errors():
        queue = runtime.feedback
        items = {"pending": queue.pending, "approved": queue.approved, "rejected": queue.rejected}
        if status not in items:
            console.print(f"[red]Unknown status: {status}[/red]")
            raise typer.Exit(1)
        found = items[status]()

    if not found:
        console.print(f"[dim]No {status} items.[/dim]")
        return

    table = Table(title=f"{status.capitalize()} feedback")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Type")
    table.add_column("Confidence")
    table.add_column("Content")
    for item in found:
        confidence = f"{item.confidence:.2f}" if item.confidence is not None else "-"
        table.add_row(item.id, item.type, confidence, item.content[:60])
    console.print(table)


@feedback_app.command()
def show(item_id: str = typer.Argument(..., help="Feedback item ID")):
    """Show one item from any partition."""
    runtime = get_runtime()
    with handle_errors():
        item = runtime.feedback.get(item_id)
    if item is None:
        console.print(f"[red]Not found:[/red] {item_id}")
        raise typer.Exit(EXIT_NOT_FOUND)
    typer.echo(json.dumps(item.to_dict(), indent=2))


@feedback_app.command()
def approve(
    item_id: str = typer.Argument(..., help="Feedback item ID"),
    comments: str = typer.Option("", "--comments", "-m"),
):
    """Approve a pending item (rating 5)."""
    runtime = get_runtime()
    with handle_errors():
        runtime.feedback.approve(item_id, comments=comments)
    console.print(f"[green]>[/green] Approved {item_id}")


@feedback_app.command()
def reject(
    item_id: str = typer.Argument(..., help="Feedback item ID"),
    reason: str = typer.Option("", "--reason", "-r"),
):
    """Reject a pending item (rating 1)."""
    runtime = get_runtime()
    with handle_errors():
        runtime.feedback.reject(item_id, reason=reason)
    console.print(f"[green]>[/green] Rejected {item_id}")


@feedback_app.command()
def review(
    item_id: str = typer.Argument(..., help="Feedback item ID"),
    approved: bool = typer.Option(..., "--approve/--reject"),
    comments: str = typer.Option(None, "--comments", "-m"),
    correction: list[str] = typer.Option(None, "--correction", help="Correction (repeatable)"),
    rating: int = typer.Option(None, "--rating", help="1-5"),
):
    """Submit a full review."""
    runtime = get_runtime()
    with handle_errors():
        item = runtime.feedback.submit_review(
            item_id,
            approved=approved,
            comments=comments,
            corrections=correction or None,
            rating=rating,
        )
    console.print(f"[green]>[/green] {item.id} -> {item.status.value}")


@feedback_app.command()
def report():
    """Print the review report as JSON."""
    runtime = get_runtime()
    with handle_errors():
        data = runtime.feedback.report()
    typer.echo(json.dumps(data, indent=2, default=str))


@feedback_app.command("export")
def export_training(output: Path = typer.Option(None, "--output", "-o")):
    """Export reviewed items as training data."""
    runtime = get_runtime()
    with handle_errors():
        data = json.dumps(runtime.feedback.export_for_training(), indent=2)
    if output:
        output.write_text(data)
        console.print(f"[green]>[/green] Exported to {output}")
    else:
        typer.echo(data)


@feedback_app.command()
def archive(days: int = typer.Option(30, "--days", help="Archive approvals older than this")):
    """Move old approved items to the archive."""
    runtime = get_runtime()
    with handle_errors():
        count = runtime.feedback.archive_old_items(days_old=days)
    console.print(f"Archived {count} items")


@feedback_app.command()
def queue(
    content: str = typer.Argument(..., help="Content to review"),
    type: str = typer.Option("manual", "--type"),
    confidence: float = typer.Option(None, "--confidence"),
):
    """Queue an item for review by hand."""
    runtime = get_runtime()
    with handle_errors():
        item = runtime.feedback.queue_for_review(type=type, content=content, confidence=confidence, source="cli")
    console.print(f"[green]>[/green] Queued {item.id}")
