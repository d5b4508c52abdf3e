"""
test_cli_util.py - Console encoding, logging setup and error mapping helpers.
"""

from __future__ import annotations

import io
import logging
import sys
from typing import TextIO

import pytest
import typer

from worktrack_cli import util
from worktrack_core.errors import CyclicRelationError, WorkItemNotFoundError


def _make_text_stream(encoding: str, errors: str) -> TextIO:
    buffer = io.BytesIO()
    return io.TextIOWrapper(buffer, encoding=encoding, errors=errors, write_through=True)


def test_configure_stdio_sets_replace_errors_on_windows(monkeypatch) -> None:
    monkeypatch.setattr(util.os, "name", "nt")
    monkeypatch.setattr(sys, "stdout", _make_text_stream("cp1252", "strict"))
    monkeypatch.setattr(sys, "stderr", _make_text_stream("cp1252", "strict"))

    util.configure_stdio()

    assert sys.stdout.errors == "replace"
    assert sys.stderr.errors == "replace"
    sys.stdout.write("❌ cycle\n")


def test_configure_logging_sets_package_levels() -> None:
    util.configure_logging(logging.DEBUG)
    assert logging.getLogger("worktrack_core.graph").getEffectiveLevel() == logging.DEBUG

    util.configure_logging(logging.WARNING)
    assert logging.getLogger("worktrack_ops.engine").getEffectiveLevel() == logging.WARNING


@pytest.mark.parametrize(
    "exc,code",
    [
        (WorkItemNotFoundError("TASK-404"), 1),
        (CyclicRelationError("A", "B", "blocks", ["A", "B", "A"]), 1),
        (ValueError("limit must be positive"), 1),
        (RuntimeError("boom"), 2),
    ],
)
def test_cli_errors_maps_exit_codes(exc, code) -> None:
    with pytest.raises(typer.Exit) as exc_info:
        with util.cli_errors():
            raise exc

    assert exc_info.value.exit_code == code


def test_cli_errors_passes_through_exit() -> None:
    with pytest.raises(typer.Exit) as exc_info:
        with util.cli_errors():
            raise typer.Exit(3)

    assert exc_info.value.exit_code == 3


def test_check_format_rejects_unknown() -> None:
    assert util.check_format(" JSON ") == "json"
    with pytest.raises(typer.BadParameter):
        util.check_format("xml")
