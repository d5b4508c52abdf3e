"""CLI commands for managing contexts (separate stores under .work/projects/)."""

from __future__ import annotations

import json
from typing import Optional

import typer
from rich.table import Table

from worktrack_ops.contexts import (
    ContextInfo,
    add_context,
    list_contexts,
    remove_context,
    set_active_context,
    show_context,
)

from ..util import check_format, cli_errors, resolve_workspace
from .items import console

app = typer.Typer(help="Add, list, switch and remove contexts")


def _payload(info: ContextInfo) -> dict:
    return {
        "name": info.name,
        "path": str(info.path),
        "active": info.active,
        "exists": info.exists,
        "items": info.items,
        "relations": info.relations,
        "notify_targets": info.notify_targets,
    }


@app.command("add")
def add(
    name: str = typer.Argument(..., help="Context name"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Create a new, empty context."""
    output_format = check_format(output_format)
    with cli_errors():
        info = add_context(resolve_workspace(), name)

    if output_format == "json":
        typer.echo(json.dumps(_payload(info), ensure_ascii=True))
        return
    typer.echo(f"OK: Added context {info.name} ({info.path})")


@app.command("list")
def list_cmd(
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """List contexts; the active one is marked."""
    output_format = check_format(output_format)
    with cli_errors():
        contexts = list_contexts(resolve_workspace())

    if output_format == "json":
        typer.echo(json.dumps([_payload(info) for info in contexts], ensure_ascii=True))
        return

    table = Table(title=f"Contexts ({len(contexts)})")
    table.add_column("", no_wrap=True)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Items", justify="right")
    table.add_column("Relations", justify="right")
    table.add_column("Path")
    for info in contexts:
        table.add_row("*" if info.active else "", info.name, str(info.items), str(info.relations), str(info.path))
    console.print(table)


@app.command("set")
def set_cmd(
    name: str = typer.Argument(..., help="Context to activate"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Make a context the default for later commands."""
    output_format = check_format(output_format)
    with cli_errors():
        info = set_active_context(resolve_workspace(), name)

    if output_format == "json":
        typer.echo(json.dumps(_payload(info), ensure_ascii=True))
        return
    typer.echo(f"OK: Activated context {info.name}")


@app.command("show")
def show(
    name: Optional[str] = typer.Argument(None, help="Context name (default: active)"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Show one context."""
    output_format = check_format(output_format)
    with cli_errors():
        info = show_context(resolve_workspace(), name)

    if output_format == "json":
        typer.echo(json.dumps(_payload(info), ensure_ascii=True))
        return
    typer.echo(f"Context: {info.name}")
    typer.echo(f"Path: {info.path}")
    typer.echo(f"Active: {'yes' if info.active else 'no'}")
    typer.echo(f"Items: {info.items}")
    typer.echo(f"Relations: {info.relations}")
    typer.echo(f"Notify targets: {info.notify_targets}")


@app.command("remove")
def remove(
    name: str = typer.Argument(..., help="Context to delete"),
    force: bool = typer.Option(False, "--force", help="Remove even if it still holds work items"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Delete a context and all of its data."""
    output_format = check_format(output_format)
    with cli_errors():
        path = remove_context(resolve_workspace(), name, force=force)

    if output_format == "json":
        typer.echo(json.dumps({"name": name, "path": str(path), "removed": True}, ensure_ascii=True))
        return
    typer.echo(f"OK: Removed context {name}")
