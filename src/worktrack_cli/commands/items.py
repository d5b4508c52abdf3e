from __future__ import annotations

import json
from typing import Iterable, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from worktrack_core.models import (
    CreateWorkItemRequest,
    Priority,
    UpdateWorkItemRequest,
    WorkItem,
    WorkItemKind,
    WorkItemState,
)

from ..util import build_engine, check_format, cli_errors

console = Console()


def _parse_labels(raw: Optional[str]) -> Optional[List[str]]:
    """Normalize a comma-separated label list; None means not given."""
    if raw is None:
        return None
    return [label.strip() for label in raw.split(",") if label.strip()]


def item_payload(item: WorkItem) -> dict:
    return item.model_dump(mode="json")


def item_table(items: Iterable[WorkItem], title: Optional[str] = None) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Kind")
    table.add_column("State")
    table.add_column("Priority")
    table.add_column("Assignee")
    table.add_column("Title")
    for item in items:
        table.add_row(
            item.id,
            item.kind.value,
            item.state.value,
            item.priority.value,
            item.assignee or "-",
            item.title,
        )
    return table


def _echo_item(item: WorkItem, output_format: str, verb: Optional[str] = None) -> None:
    if output_format == "json":
        typer.echo(json.dumps(item_payload(item), ensure_ascii=True))
        return
    if verb:
        typer.echo(f"OK: {verb} {item.id}")
    typer.echo(f"ID: {item.id}")
    typer.echo(f"Kind: {item.kind.value}")
    typer.echo(f"Title: {item.title}")
    typer.echo(f"State: {item.state.value}")
    typer.echo(f"Priority: {item.priority.value}")
    typer.echo(f"Assignee: {item.assignee or '-'}")
    typer.echo(f"Labels: {', '.join(item.labels) or '-'}")
    if item.closed_at:
        typer.echo(f"Closed: {item.closed_at}")
    if item.description and not verb:
        typer.echo("")
        typer.echo(item.description)


def create(
    title: str = typer.Argument(..., help="Work item title"),
    kind: WorkItemKind = typer.Option(WorkItemKind.TASK, "--kind", "-k", help="task|bug|epic|story"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description body"),
    priority: Priority = typer.Option(Priority.MEDIUM, "--priority", "-p", help="low|medium|high|critical"),
    assignee: Optional[str] = typer.Option(None, "--assignee", "-a", help="Assigned user"),
    labels: Optional[str] = typer.Option(None, "--labels", help="Comma-separated labels"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Create a work item."""
    output_format = check_format(output_format)
    with cli_errors():
        request = CreateWorkItemRequest(
            title=title,
            kind=kind,
            description=description,
            priority=priority,
            assignee=assignee,
            labels=_parse_labels(labels) or [],
        )
        item = build_engine().create_work_item(request)
    _echo_item(item, output_format, verb="Created")


def get(
    item_id: str = typer.Argument(..., help="Display ID, e.g., TASK-001"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Show one work item."""
    output_format = check_format(output_format)
    with cli_errors():
        item = build_engine().get_work_item(item_id)
    _echo_item(item, output_format)


def list_items(
    query: Optional[str] = typer.Argument(None, help="e.g. 'state=active AND priority=high'"),
    order_by: Optional[str] = typer.Option(None, "--order-by", help="field[:asc|desc]"),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Maximum number of items"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """List work items matching a query (all items when omitted)."""
    output_format = check_format(output_format)
    with cli_errors():
        items = build_engine().list_work_items(query, order_by=order_by, limit=limit)

    if output_format == "json":
        typer.echo(json.dumps([item_payload(item) for item in items], ensure_ascii=True))
        return
    if not items:
        typer.echo("No matching work items.")
        return
    console.print(item_table(items, title=f"Work items ({len(items)})"))


def set_fields(
    item_id: str = typer.Argument(..., help="Display ID, e.g., TASK-001"),
    title: Optional[str] = typer.Option(None, "--title", help="New title"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="New description"),
    priority: Optional[Priority] = typer.Option(None, "--priority", "-p", help="low|medium|high|critical"),
    assignee: Optional[str] = typer.Option(None, "--assignee", "-a", help="Assigned user"),
    labels: Optional[str] = typer.Option(None, "--labels", help="Comma-separated labels (replaces)"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Update fields of a work item."""
    output_format = check_format(output_format)
    request = UpdateWorkItemRequest(
        title=title,
        description=description,
        priority=priority,
        assignee=assignee,
        labels=_parse_labels(labels),
    )
    if not request.model_dump(exclude_none=True):
        typer.echo("❌ Nothing to update; pass at least one field option.", err=True)
        raise typer.Exit(1)
    with cli_errors():
        item = build_engine().update_work_item(item_id, request)
    _echo_item(item, output_format, verb="Updated")


def unset_field(
    item_id: str = typer.Argument(..., help="Display ID, e.g., TASK-001"),
    field: str = typer.Argument(..., help="assignee|description"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Clear an optional field of a work item."""
    output_format = check_format(output_format)
    with cli_errors():
        item = build_engine().unset_field(item_id, field)
    _echo_item(item, output_format, verb=f"Cleared {field.strip().lower()} from")


def _transition(item_id: str, state: WorkItemState, verb: str, output_format: str) -> None:
    output_format = check_format(output_format)
    with cli_errors():
        item = build_engine().change_state(item_id, state)
    _echo_item(item, output_format, verb=verb)


def start(
    item_id: str = typer.Argument(..., help="Display ID, e.g., TASK-001"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Move a work item to active."""
    _transition(item_id, WorkItemState.ACTIVE, "Started", output_format)


def close(
    item_id: str = typer.Argument(..., help="Display ID, e.g., TASK-001"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Move a work item to closed."""
    _transition(item_id, WorkItemState.CLOSED, "Closed", output_format)


def reopen(
    item_id: str = typer.Argument(..., help="Display ID, e.g., TASK-001"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Reopen a closed work item (back to active)."""
    _transition(item_id, WorkItemState.ACTIVE, "Reopened", output_format)


def delete(
    item_id: str = typer.Argument(..., help="Display ID, e.g., TASK-001"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """Delete a work item and every relation touching it."""
    output_format = check_format(output_format)
    with cli_errors():
        removed = build_engine().delete_work_item(item_id)

    if output_format == "json":
        payload = {"id": item_id, "removed_relations": [r.to_dict() for r in removed]}
        typer.echo(json.dumps(payload, ensure_ascii=True))
        return
    typer.echo(f"OK: Deleted {item_id}")
    for relation in removed:
        typer.echo(f"  - unlinked {relation}")
