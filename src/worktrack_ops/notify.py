"""
notify.py - Send query results to configured notification targets.

Targets are stored per context in ``<project_dir>/notify-targets.json``.
Two target types ship with worktrack:

- ``shell``: run a local command; the payload is written to its stdin as JSON
- ``log``: write the payload to ``<project_dir>/notifications/notification-<ts>.json``

Payload shape (both types)::

    {"timestamp": "...", "item_count": 2, "items": [{...work item...}, ...]}
"""

from __future__ import annotations

import json
import logging
import shlex
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from worktrack_core.config import WorkspaceContext
from worktrack_core.errors import NotificationError, NotifyTargetNotFoundError, ParseError, WriteError
from worktrack_core.models import WorkItem

logger = logging.getLogger(__name__)

TARGETS_FILE = "notify-targets.json"
NOTIFICATIONS_DIR = "notifications"
DEFAULT_TIMEOUT_SECONDS = 30


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class TargetType(str, Enum):
    SHELL = "shell"
    LOG = "log"


class NotifyTarget(BaseModel):
    """A named delivery target."""

    name: str = Field(..., min_length=1)
    type: TargetType
    command: Optional[str] = Field(None, description="Command line for shell targets")
    timeout: int = Field(DEFAULT_TIMEOUT_SECONDS, gt=0, description="Seconds before a shell command is killed")

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check_command(self) -> "NotifyTarget":
        if self.type == TargetType.SHELL and not (self.command and self.command.strip()):
            raise ValueError("shell targets need a command")
        if self.type == TargetType.LOG and self.command:
            raise ValueError("log targets take no command")
        return self


class TargetHandler(Protocol):
    """Delivers one payload; returns a short human-readable result."""

    def send(self, target: NotifyTarget, payload: Dict[str, Any]) -> str:
        ...


@dataclass
class NotifyResult:
    target: str
    item_count: int
    message: str


class NotifyTargetRegistry:
    """Per-context JSON list of notification targets."""

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def from_context(cls, ctx: WorkspaceContext) -> "NotifyTargetRegistry":
        return cls(ctx.project_dir / TARGETS_FILE)

    def load(self) -> List[NotifyTarget]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ParseError(self.path, f"Invalid JSON: {e}")
        if not isinstance(raw, list):
            raise ParseError(self.path, "Expected a JSON list of targets")
        try:
            return [NotifyTarget.model_validate(entry) for entry in raw]
        except ValidationError as e:
            raise ParseError(self.path, f"Invalid target entry: {e}")

    def _save(self, targets: Sequence[NotifyTarget]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [t.model_dump(mode="json", exclude_none=True) for t in targets]
        try:
            self.path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            raise WriteError(f"Failed to write {self.path}: {e}")

    def get(self, name: str) -> NotifyTarget:
        for target in self.load():
            if target.name == name:
                return target
        raise NotifyTargetNotFoundError(name)

    def add(self, target: NotifyTarget) -> bool:
        """Add or replace a target; returns True if it replaced one."""
        targets = self.load()
        kept = [t for t in targets if t.name != target.name]
        self._save(kept + [target])
        replaced = len(kept) != len(targets)
        logger.info(f"{'Replaced' if replaced else 'Added'} notify target {target.name} ({target.type.value})")
        return replaced

    def remove(self, name: str) -> NotifyTarget:
        targets = self.load()
        for target in targets:
            if target.name == name:
                self._save([t for t in targets if t.name != name])
                logger.info(f"Removed notify target {name}")
                return target
        raise NotifyTargetNotFoundError(name)


def build_payload(items: Sequence[WorkItem], timestamp: str) -> Dict[str, Any]:
    return {
        "timestamp": timestamp,
        "item_count": len(items),
        "items": [item.model_dump(mode="json") for item in items],
    }


class ShellTargetHandler:
    """Run the target's command with the payload JSON on stdin."""

    def send(self, target: NotifyTarget, payload: Dict[str, Any]) -> str:
        """Returns the command's stdout.

        Raises:
            NotificationError: Command missing, timed out or exited non-zero
        """
        args = shlex.split(target.command or "")
        try:
            result = subprocess.run(
                args,
                input=json.dumps(payload),
                capture_output=True,
                text=True,
                timeout=target.timeout,
                check=False,
            )
        except FileNotFoundError:
            raise NotificationError(f"Target '{target.name}': command not found: {args[0]}")
        except subprocess.TimeoutExpired:
            raise NotificationError(f"Target '{target.name}': command timed out after {target.timeout}s")
        if result.returncode != 0:
            raise NotificationError(
                f"Target '{target.name}': command exited with {result.returncode}: {result.stderr.strip()}"
            )
        return result.stdout.strip()


class LogTargetHandler:
    """Write each payload to its own JSON file."""

    def __init__(self, out_dir: Path):
        self.out_dir = out_dir

    def send(self, target: NotifyTarget, payload: Dict[str, Any]) -> str:
        stamp = str(payload["timestamp"]).replace(":", "-").replace("+", "_")
        path = self.out_dir / f"notification-{stamp}.json"
        counter = 1
        while path.exists():
            counter += 1
            path = self.out_dir / f"notification-{stamp}-{counter}.json"
        try:
            self.out_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            raise NotificationError(f"Target '{target.name}': failed to write {path}: {e}")
        return f"Logged {payload['item_count']} item(s) to {path}"


class Notifier:
    """Deliver work items to a registered target."""

    def __init__(
        self,
        registry: NotifyTargetRegistry,
        handlers: Dict[TargetType, TargetHandler],
        clock: Callable[[], str] = _utc_now,
    ):
        self.registry = registry
        self.handlers = dict(handlers)
        self._clock = clock

    @classmethod
    def from_context(cls, ctx: WorkspaceContext) -> "Notifier":
        handlers: Dict[TargetType, TargetHandler] = {
            TargetType.SHELL: ShellTargetHandler(),
            TargetType.LOG: LogTargetHandler(ctx.project_dir / NOTIFICATIONS_DIR),
        }
        return cls(NotifyTargetRegistry.from_context(ctx), handlers)

    def send(self, items: Sequence[WorkItem], target_name: str) -> NotifyResult:
        """Send `items` to the named target.

        Raises:
            NotifyTargetNotFoundError: Unknown target
            NotificationError: Delivery failed
        """
        target = self.registry.get(target_name)
        handler = self.handlers.get(target.type)
        if handler is None:
            raise NotificationError(f"No handler for target type: {target.type.value}")
        detail = handler.send(target, build_payload(items, self._clock()))
        logger.info(f"Notified {target_name} with {len(items)} item(s)")
        return NotifyResult(target=target_name, item_count=len(items), message=detail)
