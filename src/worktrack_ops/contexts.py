"""Context management: independent work item stores under .work/projects/."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from worktrack_core.config import (
    PROJECTS_DIR_NAME,
    WorkspaceContext,
    check_context_name,
    read_active_context,
    write_active_context,
)
from worktrack_core.errors import ConfigError

from .local_fs import LINKS_FILE, WORK_ITEMS_DIR, LocalFsStorage
from .notify import TARGETS_FILE, NotifyTargetRegistry

logger = logging.getLogger(__name__)


@dataclass
class ContextInfo:
    """Summary of one context directory."""

    name: str
    path: Path
    active: bool
    exists: bool
    items: int = 0
    relations: int = 0
    notify_targets: int = 0


def _projects_dir(ctx: WorkspaceContext) -> Path:
    return ctx.work_dir / PROJECTS_DIR_NAME


def _checked(name: str) -> str:
    try:
        return check_context_name(name)
    except ValueError as e:
        raise ConfigError(str(e))


def _describe(ctx: WorkspaceContext, name: str) -> ContextInfo:
    path = _projects_dir(ctx) / name
    info = ContextInfo(name=name, path=path, active=name == ctx.context, exists=path.is_dir())
    if not info.exists:
        return info
    items_dir = path / WORK_ITEMS_DIR
    info.items = len(list(items_dir.glob("*.md"))) if items_dir.is_dir() else 0
    if (path / LINKS_FILE).exists():
        info.relations = len(LocalFsStorage(path).load_relations())
    info.notify_targets = len(NotifyTargetRegistry(path / TARGETS_FILE).load())
    return info


def list_contexts(ctx: WorkspaceContext) -> List[ContextInfo]:
    """Every context directory, plus the active one even before its first write."""
    projects = _projects_dir(ctx)
    names: List[str] = []
    if projects.is_dir():
        names = sorted(p.name for p in projects.iterdir() if p.is_dir() and not p.name.startswith("."))
    if ctx.context not in names:
        names.append(ctx.context)
        names.sort()
    return [_describe(ctx, name) for name in names]


def show_context(ctx: WorkspaceContext, name: Optional[str] = None) -> ContextInfo:
    """Describe a context (the active one when `name` is omitted).

    Raises:
        ConfigError: Named context does not exist
    """
    if name is None:
        return _describe(ctx, ctx.context)
    info = _describe(ctx, _checked(name))
    if not info.exists and not info.active:
        raise ConfigError(f"Context not found: {name}")
    return info


def add_context(ctx: WorkspaceContext, name: str) -> ContextInfo:
    """Create an empty context directory.

    Raises:
        ConfigError: Invalid name, or the context already exists
    """
    name = _checked(name)
    path = _projects_dir(ctx) / name
    if path.exists():
        raise ConfigError(f"Context already exists: {name}")
    (path / WORK_ITEMS_DIR).mkdir(parents=True)
    logger.info(f"Added context {name} at {path}")
    return _describe(ctx, name)


def set_active_context(ctx: WorkspaceContext, name: str) -> ContextInfo:
    """Persist `name` as the active context for later commands.

    Raises:
        ConfigError: Invalid name, or the context does not exist
    """
    name = _checked(name)
    path = _projects_dir(ctx) / name
    if not path.is_dir():
        raise ConfigError(f"Context not found: {name} (create it with `worktrack context add {name}`)")
    write_active_context(ctx.work_dir, name)
    logger.info(f"Active context is now {name}")
    info = _describe(ctx, name)
    info.active = True
    return info


def remove_context(ctx: WorkspaceContext, name: str, *, force: bool = False) -> Path:
    """Delete a context directory and everything in it.

    Args:
        force: Also remove a context that still holds work items

    Raises:
        ConfigError: Context missing, active, or not empty without `force`
    """
    name = _checked(name)
    path = _projects_dir(ctx) / name
    if not path.is_dir():
        raise ConfigError(f"Context not found: {name}")
    if name == ctx.context or name == read_active_context(ctx.work_dir):
        raise ConfigError(f"Cannot remove the active context: {name}")
    info = _describe(ctx, name)
    if info.items and not force:
        raise ConfigError(f"Context {name} holds {info.items} work item(s); use --force to remove it")
    shutil.rmtree(path)
    logger.info(f"Removed context {name} ({info.items} item(s))")
    return path
