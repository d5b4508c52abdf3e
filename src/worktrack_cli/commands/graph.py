from __future__ import annotations

import json
from typing import List, Optional

import typer
from rich.table import Table

from worktrack_core.navigator import Direction

from ..util import build_engine, check_format, cli_errors
from .items import console


def graph(
    item_id: str = typer.Argument(..., help="Root item ID"),
    direction: Direction = typer.Option(Direction.BOTH, "--direction", help="outgoing|incoming|both"),
    depth: Optional[int] = typer.Option(None, "--depth", min=0, help="Maximum hops from the root (unbounded when omitted)"),
    relation_types: Optional[List[str]] = typer.Option(None, "--type", "-t", help="Relation type to follow (repeatable)"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Show the neighbourhood of an item reachable through relations."""
    output_format = check_format(output_format)
    with cli_errors():
        engine = build_engine()
        graph_slice = engine.build_graph_slice(item_id, direction, depth, relation_types or None)
        items = {item.id: item for item in engine.list_work_items()}

    if output_format == "json":
        payload = {
            "root": graph_slice.root,
            "direction": graph_slice.direction.value,
            "nodes": [{"id": node, "depth": d} for node, d in graph_slice.nodes.items()],
            "edges": [r.to_dict() for r in graph_slice.edges],
        }
        typer.echo(json.dumps(payload, ensure_ascii=True))
        return

    table = Table(title=f"Graph from {item_id} ({graph_slice.direction.value})")
    table.add_column("Depth", justify="right")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Kind")
    table.add_column("State")
    table.add_column("Title")
    for node, d in graph_slice.nodes.items():
        item = items.get(node)
        if item is None:
            table.add_row(str(d), node, "?", "?", "[red](missing)[/red]")
        else:
            table.add_row(str(d), node, item.kind.value, item.state.value, item.title)
    console.print(table)
    for relation in graph_slice.edges:
        typer.echo(f"  {relation}")


def check(
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Check stored relations for cycles and dangling endpoints."""
    output_format = check_format(output_format)
    with cli_errors():
        report = build_engine().check_graph()

    if output_format == "json":
        payload = {
            "ok": report.ok,
            "relations": report.relations,
            "cycles": report.cycles,
            "dangling": [r.to_dict() for r in report.dangling],
        }
        typer.echo(json.dumps(payload, ensure_ascii=True))
    else:
        for cycle in report.cycles:
            typer.echo(f"❌ Cycle: {' -> '.join(cycle)}")
        for relation in report.dangling:
            typer.echo(f"❌ Dangling: {relation}")
        if report.ok:
            typer.echo(f"OK: {report.relations} relation(s), no problems found")

    if not report.ok:
        raise typer.Exit(1)
