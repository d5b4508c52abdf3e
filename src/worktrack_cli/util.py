from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer

from worktrack_core.config import ConfigLoader, WorkspaceContext
from worktrack_core.errors import WorkError
from worktrack_ops.engine import WorkEngine

# Global options captured by the app callback
_global_root: Optional[Path] = None
_global_context: Optional[str] = None
_global_config_file: Optional[Path] = None
_global_verbose: bool = False

_LOGGER_NAMES = ("worktrack_core", "worktrack_ops", "worktrack_cli")


def set_global_options(
    root: Optional[Path] = None,
    context: Optional[str] = None,
    config_file: Optional[Path] = None,
    verbose: bool = False,
) -> None:
    """Record --root/--context/--config-file/--verbose for the command that follows."""
    global _global_root, _global_context, _global_config_file, _global_verbose
    _global_root = root
    _global_context = context
    _global_config_file = config_file.resolve() if config_file else None
    _global_verbose = verbose


def configure_stdio() -> None:
    """Make CLI output robust across Windows console encodings.

    Some Windows terminals use a non-UTF8 encoding (e.g., cp1252). Printing
    glyphs like ❌ would raise UnicodeEncodeError there, so unencodable
    characters are replaced instead.
    """

    if os.name != "nt":
        return

    for stream in (sys.stdout, sys.stderr):
        try:
            stream.reconfigure(errors="replace")
        except AttributeError:
            continue


def configure_logging(level: int) -> None:
    """Attach a stderr handler (once) and set the level of worktrack loggers."""
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    for name in _LOGGER_NAMES:
        logging.getLogger(name).setLevel(level)


def resolve_workspace() -> WorkspaceContext:
    ctx = ConfigLoader.resolve_context(
        _global_root,
        context=_global_context,
        config_file=_global_config_file,
    )
    configure_logging(logging.DEBUG if _global_verbose else ctx.config.log.level)
    return ctx


def build_engine() -> WorkEngine:
    """Fresh engine for the current command."""
    return WorkEngine.from_context(resolve_workspace())


@contextmanager
def cli_errors() -> Iterator[None]:
    """Map worktrack errors to exit code 1 and anything unexpected to 2."""
    try:
        yield
    except typer.Exit:
        raise
    except (WorkError, ValueError) as exc:
        typer.echo(f"❌ {exc}", err=True)
        raise typer.Exit(1)
    except Exception as exc:
        typer.echo(f"❌ Unexpected error: {exc}", err=True)
        raise typer.Exit(2)


def check_format(output_format: str) -> str:
    value = output_format.strip().lower()
    if value not in ("plain", "json"):
        raise typer.BadParameter("format must be plain|json", param_hint="--format")
    return value
