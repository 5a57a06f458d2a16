"""CLI commands for autodidact."""

import asyncio
import json
from pathlib import Path

import typer
from rich.table import Table

from autodidact import __version__
from autodidact.cli.feedback import feedback_app
from autodidact.cli.improve import improve_app
from autodidact.cli.runtime import console, get_runtime, handle_errors, set_config_path
from autodidact.cli.schedule import schedule_app
from autodidact.cli.tools import tools_app
from autodidact.config import load_config
from autodidact.log import setup_logging
from autodidact.session import Task, TaskKind

app = typer.Typer(
    name="autodidact",
    help="autodidact - a self-directed learning agent loop",
    no_args_is_help=True,
)
session_app = typer.Typer(name="session", help="Run and inspect learning sessions.", no_args_is_help=True)

app.add_typer(session_app, name="session")
app.add_typer(feedback_app, name="feedback")
app.add_typer(improve_app, name="improve")
app.add_typer(schedule_app, name="schedule")
app.add_typer(tools_app, name="tools")


def version_callback(value: bool):
    if value:
        console.print(f"autodidact v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    config: Path = typer.Option(None, "--config", "-c", help="Path to config.json"),
):
    """autodidact - research, review and self-improve."""
    set_config_path(config)
    level = "DEBUG" if verbose else load_config(config).logging.level
    setup_logging(level)


# ============================================================================
# Session
# ============================================================================


@session_app.command("run")
def session_run(
    tasks: int = typer.Option(None, "--tasks", "-n", help="Number of generated tasks"),
    name: str = typer.Option(None, "--name", help="Session name"),
    topic: list[str] = typer.Option(None, "--topic", "-t", help="Explicit topic (repeatable)"),
):
    """Run one learning session."""
    runtime = get_runtime()
    with handle_errors():
        orchestrator = runtime.orchestrator
        if tasks is not None:
            orchestrator.tasks_per_session = tasks
        explicit = [Task(topic=t, kind=TaskKind.EXPLORATORY, description=f"Research {t}") for t in topic or []]
        report = asyncio.run(orchestrator.run_session(tasks=explicit or None, name=name))

    m = report.metrics
    console.print(f"\n[bold]{m.session_name}[/bold]")
    console.print(f"Completed:  [green]{m.tasks_completed}[/green]")
    console.print(f"Failed:     [red]{m.tasks_failed}[/red]" if m.tasks_failed else "Failed:     0")
    console.print(f"Verified:   {m.verifications_passed}")
    console.print(f"Queued:     {len(report.queued_feedback_ids)} for review")
    if report.synthesized:
        console.print(f"Synthesized: {', '.join(report.synthesized)}")
    if report.reflection:
        console.print(f"\n{report.reflection.summary}")
        for item in report.reflection.improvements:
            console.print(f"  - {item}")
    if report.improvement:
        outcome = report.improvement
        status = "[green]improved[/green]" if outcome.improved else f"[yellow]{outcome.reason}[/yellow]"
        console.print(f"\nSelf-modification: {status}")


@app.command()
def stats():
    """Show knowledge, session and feedback totals."""
    runtime = get_runtime()
    with handle_errors():
        s = runtime.knowledge.get_stats()
        pending = len(runtime.feedback.pending())

    console.print("autodidact Stats\n")
    console.print(f"Entries:        {s.count}")
    console.print(f"Sessions:       {s.session_count}")
    console.print(f"Tasks:          {s.total_tasks}")
    console.print(f"Research time:  {s.total_research_time_seconds:.1f}s")
    console.print(f"Average score:  {s.avg_score:.2f}")
    console.print(f"Pending review: {pending}")
    console.print(f"Gaps:           {len(s.gaps)}")


@app.command()
def search(
    query: str = typer.Argument(..., help="Text to look for"),
    limit: int = typer.Option(5, "--limit", "-k"),
    ranked: bool = typer.Option(False, "--ranked", help="Similarity-ranked lookup"),
):
    """Search the knowledge store."""
    runtime = get_runtime()
    with handle_errors():
        if ranked:
            results = runtime.knowledge.similarity_search(query, k=limit)
        else:
            results = [(e, None) for e in runtime.knowledge.search(query)[:limit]]

    if not results:
        console.print("[dim]No matches.[/dim]")
        return

    for entry, score in results:
        suffix = f" [dim]({score:.2f})[/dim]" if score is not None else ""
        mark = "[green]v[/green] " if entry.verified else ""
        console.print(f"{mark}[cyan]{entry.topic}[/cyan]{suffix}")
        console.print(f"  {entry.content[:200]}")


@app.command()
def gaps():
    """List reference topics not yet covered."""
    runtime = get_runtime()
    with handle_errors():
        found = runtime.knowledge.identify_gaps()
    if not found:
        console.print("[green]No knowledge gaps.[/green]")
        return
    for gap in found:
        console.print(f"  - {gap}")


@app.command()
def export(output: Path = typer.Option(None, "--output", "-o", help="Write JSON here")):
    """Export all knowledge entries as JSON."""
    runtime = get_runtime()
    with handle_errors():
        data = json.dumps(runtime.knowledge.export(), indent=2)
    if output:
        output.write_text(data)
        console.print(f"[green]>[/green] Exported to {output}")
    else:
        typer.echo(data)


@app.command()
def status():
    """Show configuration and component status."""
    runtime = get_runtime()
    config = runtime.config

    table = Table(title="autodidact Status")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("Storage", str(runtime.root))
    table.add_row("Project root", str(config.project_path))
    table.add_row("Patch strategy", config.modification.patch_strategy)
    table.add_row("LLM", config.provider.model if config.has_llm() else "not configured")
    table.add_row("Self-modification", "on" if config.session.enable_self_modification else "off")
    console.print(table)


if __name__ == "__main__":
    app()
