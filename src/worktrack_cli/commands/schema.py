"""CLI commands for inspecting the effective schema."""

from __future__ import annotations

import json

import typer
from rich.table import Table

from ..util import build_engine, check_format, cli_errors
from .items import console

app = typer.Typer(help="Inspect work item kinds, relation types and attributes")


def _kinds_text(kinds) -> str:
    return ", ".join(k.value for k in kinds) or "any"


@app.command("kinds")
def kinds(
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """List enabled work item kinds."""
    output_format = check_format(output_format)
    with cli_errors():
        enabled = build_engine().get_kinds()

    if output_format == "json":
        typer.echo(json.dumps([k.value for k in enabled], ensure_ascii=True))
        return
    for kind in enabled:
        typer.echo(kind.value)


@app.command("relations")
def relations(
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """List relation types with their endpoint kinds and cycle groups."""
    output_format = check_format(output_format)
    with cli_errors():
        definitions = build_engine().get_relation_types()

    if output_format == "json":
        typer.echo(json.dumps([d.model_dump(mode="json") for d in definitions], ensure_ascii=True))
        return

    table = Table(title="Relation types")
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Inverse")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Cycle group")
    for d in definitions:
        group = d.cycle_group or "-"
        if d.cycle_group and d.reverse_in_group:
            group += " (reversed)"
        table.add_row(d.name.value, d.inverse.value, _kinds_text(d.from_kinds), _kinds_text(d.to_kinds), group)
    console.print(table)


@app.command("attrs")
def attrs(
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """List writable work item attributes."""
    output_format = check_format(output_format)
    with cli_errors():
        attributes = build_engine().get_attributes()

    if output_format == "json":
        typer.echo(json.dumps([a.model_dump() for a in attributes], ensure_ascii=True))
        return
    for attribute in attributes:
        required = "required" if attribute.required else "optional"
        typer.echo(f"{attribute.name} ({attribute.type}, {required}): {attribute.description}")
