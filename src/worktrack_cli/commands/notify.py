"""CLI commands for notification targets and query-filtered sends."""

from __future__ import annotations

import json
from typing import Optional

import typer
from rich.table import Table

from worktrack_ops.engine import WorkEngine
from worktrack_ops.notify import DEFAULT_TIMEOUT_SECONDS, Notifier, NotifyTarget, NotifyTargetRegistry, TargetType

from ..util import check_format, cli_errors, resolve_workspace
from .items import console

app = typer.Typer(help="Send matching work items to notification targets")
target_app = typer.Typer(help="Manage notification targets of the active context")
app.add_typer(target_app, name="target")


@app.command("send")
def send(
    where: str = typer.Argument(..., metavar="where", help="Literal keyword 'where'"),
    query: str = typer.Argument(..., help="e.g. 'state=new AND priority=high'"),
    to: str = typer.Argument(..., metavar="to", help="Literal keyword 'to'"),
    target: str = typer.Argument(..., help="Target name"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Send the items matching a query: notify send where QUERY to TARGET."""
    output_format = check_format(output_format)
    if where.lower() != "where":
        raise typer.BadParameter("expected 'where' before the query", param_hint="WHERE")
    if to.lower() != "to":
        raise typer.BadParameter("expected 'to' before the target name", param_hint="TO")
    with cli_errors():
        ctx = resolve_workspace()
        items = WorkEngine.from_context(ctx).list_work_items(query)
        result = Notifier.from_context(ctx).send(items, target)

    if output_format == "json":
        payload = {"target": result.target, "item_count": result.item_count, "message": result.message}
        typer.echo(json.dumps(payload, ensure_ascii=True))
        return
    typer.echo(f"OK: Sent {result.item_count} item(s) to {result.target}")
    if result.message:
        typer.echo(result.message)


@target_app.command("add")
def target_add(
    name: str = typer.Argument(..., help="Target name"),
    target_type: TargetType = typer.Option(..., "--type", "-t", help="shell|log"),
    command: Optional[str] = typer.Option(None, "--command", "-c", help="Command line (shell targets)"),
    timeout: int = typer.Option(DEFAULT_TIMEOUT_SECONDS, "--timeout", min=1, help="Seconds (shell targets)"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Add or replace a notification target."""
    output_format = check_format(output_format)
    with cli_errors():
        notify_target = NotifyTarget(name=name, type=target_type, command=command, timeout=timeout)
        replaced = NotifyTargetRegistry.from_context(resolve_workspace()).add(notify_target)

    if output_format == "json":
        payload = notify_target.model_dump(mode="json", exclude_none=True)
        payload["replaced"] = replaced
        typer.echo(json.dumps(payload, ensure_ascii=True))
        return
    typer.echo(f"OK: {'Replaced' if replaced else 'Added'} target {name} ({target_type.value})")


@target_app.command("list")
def target_list(
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """List notification targets."""
    output_format = check_format(output_format)
    with cli_errors():
        targets = NotifyTargetRegistry.from_context(resolve_workspace()).load()

    if output_format == "json":
        typer.echo(json.dumps([t.model_dump(mode="json", exclude_none=True) for t in targets], ensure_ascii=True))
        return
    if not targets:
        typer.echo("No notification targets.")
        return
    table = Table(title=f"Notification targets ({len(targets)})")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Type")
    table.add_column("Command")
    table.add_column("Timeout", justify="right")
    for t in targets:
        table.add_row(t.name, t.type.value, t.command or "-", f"{t.timeout}s" if t.type == TargetType.SHELL else "-")
    console.print(table)


@target_app.command("remove")
def target_remove(
    name: str = typer.Argument(..., help="Target name"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Remove a notification target."""
    output_format = check_format(output_format)
    with cli_errors():
        NotifyTargetRegistry.from_context(resolve_workspace()).remove(name)

    if output_format == "json":
        typer.echo(json.dumps({"name": name, "removed": True}, ensure_ascii=True))
        return
    typer.echo(f"OK: Removed target {name}")
