"""Tool catalog commands."""

import asyncio
import json

import typer
from rich.table import Table

from autodidact.cli.runtime import EXIT_NOT_FOUND, console, get_runtime, handle_errors
from autodidact.tools import ParamSpec

tools_app = typer.Typer(name="tools", help="Generated helper tools.", no_args_is_help=True)


@tools_app.command("list")
def list_tools():
    """List registered tools."""
    runtime = get_runtime()
    with handle_errors():
        found = runtime.tools.list_tools()
    if not found:
        console.print("[dim]No tools.[/dim]")
        return

    table = Table(title="Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Uses")
    table.add_column("Description")
    for t in found:
        table.add_row(t.name, t.type.value, str(t.usage_count), t.description[:50])
    console.print(table)


@tools_app.command()
def create(
    description: str = typer.Argument(..., help="What the tool should do"),
    param: list[str] = typer.Option(None, "--param", "-p", help="Required parameter name (repeatable)"),
):
    """Create a tool stub from a description."""
    runtime = get_runtime()
    with handle_errors():
        spec = runtime.tools.create_from_need(description, [ParamSpec(name=p) for p in param or []])
    console.print(f"[green]>[/green] Created {spec.name} ({spec.type.value}) at {spec.file}")


@tools_app.command()
def use(
    name: str = typer.Argument(..., help="Tool name"),
    params: list[str] = typer.Argument(None, help="key=value pairs"),
):
    """Invoke a tool."""
    parsed = {}
    for pair in params or []:
        key, sep, value = pair.partition("=")
        if not sep:
            console.print(f"[red]Expected key=value, got {pair}[/red]")
            raise typer.Exit(1)
        parsed[key] = value

    runtime = get_runtime()
    with handle_errors():
        result = asyncio.run(runtime.tools.invoke(name, parsed))
    if not result.success:
        console.print(f"[red]Tool failed:[/red] {result.error}")
        raise typer.Exit(1)
    typer.echo(json.dumps(result.output, indent=2))


@tools_app.command()
def info(name: str = typer.Argument(..., help="Tool name")):
    """Show a tool's registry entry."""
    runtime = get_runtime()
    with handle_errors():
        spec = runtime.tools.get(name)
    if spec is None:
        console.print(f"[red]Not found:[/red] {name}")
        raise typer.Exit(EXIT_NOT_FOUND)
    typer.echo(json.dumps(spec.to_dict(), indent=2))


@tools_app.command()
def delete(name: str = typer.Argument(..., help="Tool name")):
    """Delete a tool and its stub."""
    runtime = get_runtime()
    with handle_errors():
        runtime.tools.delete_tool(name)
    console.print(f"[green]>[/green] Deleted {name}")
