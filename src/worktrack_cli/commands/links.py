from __future__ import annotations

import json
from typing import Optional

import typer

from worktrack_core.models import Relation

from ..util import build_engine, check_format, cli_errors
from .items import console, item_payload, item_table


def _relation(source: str, relation_type: str, target: str, engine) -> Relation:
    definition = engine.schema.get(relation_type)
    return Relation(source=source, target=target, type=definition.name)


def link(
    source: str = typer.Argument(..., help="Source item ID (the 'from' end)"),
    relation_type: str = typer.Argument(..., help="parent_of|child_of|blocks|blocked_by|duplicates|duplicate_of|relates_to"),
    target: str = typer.Argument(..., help="Target item ID (the 'to' end)"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Create a relation; re-linking an existing relation is a no-op."""
    output_format = check_format(output_format)
    with cli_errors():
        engine = build_engine()
        relation = _relation(source, relation_type, target, engine)
        created = engine.create_relation(relation)

    if output_format == "json":
        typer.echo(json.dumps({**relation.to_dict(), "created": created}, ensure_ascii=True))
    elif created:
        typer.echo(f"OK: Linked {relation}")
    else:
        typer.echo(f"OK: Already linked {relation}")


def unlink(
    source: str = typer.Argument(..., help="Source item ID"),
    relation_type: str = typer.Argument(..., help="Relation type"),
    target: str = typer.Argument(..., help="Target item ID"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Remove a relation; unlinking a missing relation is a no-op."""
    output_format = check_format(output_format)
    with cli_errors():
        engine = build_engine()
        relation = _relation(source, relation_type, target, engine)
        removed = engine.delete_relation(relation.source, relation.target, relation.type)

    if output_format == "json":
        typer.echo(json.dumps({**relation.to_dict(), "removed": removed}, ensure_ascii=True))
    elif removed:
        typer.echo(f"OK: Unlinked {relation}")
    else:
        typer.echo(f"OK: No such relation {relation}")


def related(
    item_id: str = typer.Argument(..., help="Display ID, e.g., TASK-001"),
    relation_type: Optional[str] = typer.Option(None, "--type", "-t", help="Only follow this relation type"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """List items linked to an item in either direction."""
    output_format = check_format(output_format)
    with cli_errors():
        engine = build_engine()
        items = engine.get_related_items(item_id, relation_type)
        relations = engine.get_relations(item_id)
        if relation_type is not None:
            wanted = engine.schema.get(relation_type).name
            relations = [r for r in relations if r.type == wanted]

    if output_format == "json":
        payload = {
            "id": item_id,
            "items": [item_payload(item) for item in items],
            "relations": [r.to_dict() for r in relations],
        }
        typer.echo(json.dumps(payload, ensure_ascii=True))
        return
    if not items:
        typer.echo(f"No items related to {item_id}.")
        return
    console.print(item_table(items, title=f"Related to {item_id}"))
    for relation in relations:
        typer.echo(f"  {relation}")
