from __future__ import annotations

from pathlib import Path
from typing import Optional
import typer

from .util import configure_stdio, set_global_options

app = typer.Typer(help="worktrack: work items with a typed relation graph")


@app.callback()
def _init(
    root: Optional[Path] = typer.Option(
        None,
        "--root",
        help="Workspace root containing .work/ (default: current directory)",
        file_okay=False,
        dir_okay=True,
    ),
    context: Optional[str] = typer.Option(
        None,
        "--context",
        help="Project context under .work/projects/ (default: `context set`, then config)",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config-file",
        help="Extra config TOML layered over .work/config.toml",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    configure_stdio()
    set_global_options(root=root, context=context, config_file=config_file, verbose=verbose)


from .commands import items as items_cmd  # noqa: E402
from .commands import links as links_cmd  # noqa: E402
from .commands import graph as graph_cmd  # noqa: E402
from .commands import schema as schema_cmd  # noqa: E402
from .commands import context as context_cmd  # noqa: E402
from .commands import notify as notify_cmd  # noqa: E402

app.command(name="create")(items_cmd.create)
app.command(name="get")(items_cmd.get)
app.command(name="list")(items_cmd.list_items)
app.command(name="set")(items_cmd.set_fields)
app.command(name="unset")(items_cmd.unset_field)
app.command(name="start")(items_cmd.start)
app.command(name="close")(items_cmd.close)
app.command(name="reopen")(items_cmd.reopen)
app.command(name="delete")(items_cmd.delete)
app.command(name="link")(links_cmd.link)
app.command(name="unlink")(links_cmd.unlink)
app.command(name="related")(links_cmd.related)
app.command(name="graph")(graph_cmd.graph)
app.command(name="check")(graph_cmd.check)
app.add_typer(schema_cmd.app, name="schema", help="Inspect the effective schema")
app.add_typer(context_cmd.app, name="context", help="Add, list, switch and remove contexts")
app.add_typer(notify_cmd.app, name="notify", help="Send matching work items to notification targets")


def main():
    app()
