"""Local filesystem storage.

Layout under ``<root>/.work/projects/<context>/``:

    work-items/<ID>.md   markdown with YAML frontmatter; body = description
    links.json           [{"from": ..., "to": ..., "type": ...}, ...]
    id-counter.json      {"task": 3, "bug": 1, ...}
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import frontmatter

from worktrack_core.config import WorkspaceContext
from worktrack_core.errors import ParseError, WorkItemNotFoundError, WriteError
from worktrack_core.models import Relation, WorkItem, WorkItemKind

from .storage import WorkStorage, format_item_id

logger = logging.getLogger(__name__)

WORK_ITEMS_DIR = "work-items"
LINKS_FILE = "links.json"
ID_COUNTER_FILE = "id-counter.json"
ITEM_ID_PATTERN = re.compile(r"[A-Z]+-\d+")

_FRONTMATTER_FIELDS = [
    "id",
    "kind",
    "title",
    "state",
    "priority",
    "assignee",
    "labels",
    "created_at",
    "updated_at",
    "closed_at",
]


def _iso(value: Any) -> Any:
    # YAML turns unquoted timestamps into datetime objects.
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def _body(text: str) -> str:
    """Markdown after the closing ``---``, minus the separator and final newline added on save."""
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != "---":
        return text
    for idx in range(1, len(lines)):
        if lines[idx].strip() == "---":
            body = "".join(lines[idx + 1:])
            break
    else:
        return ""
    if body.startswith("\n"):
        body = body[1:]
    if body.endswith("\n"):
        body = body[:-1]
    return body


def _render(metadata: Dict[str, Any], description: Optional[str]) -> str:
    header = frontmatter.dumps(frontmatter.Post("", **metadata))
    if not description:
        return header + "\n"
    return f"{header}\n\n{description}\n"


class LocalFsStorage(WorkStorage):
    """Work items as markdown files plus a JSON edge list."""

    def __init__(self, project_dir: Path):
        """
        Args:
            project_dir: Context directory, e.g. <root>/.work/projects/default
        """
        self.project_dir = project_dir
        self.items_dir = project_dir / WORK_ITEMS_DIR
        self.links_path = project_dir / LINKS_FILE
        self.counter_path = project_dir / ID_COUNTER_FILE

    @classmethod
    def from_context(cls, ctx: WorkspaceContext) -> "LocalFsStorage":
        return cls(ctx.project_dir)

    def _ensure_dirs(self) -> None:
        self.items_dir.mkdir(parents=True, exist_ok=True)

    def _item_path(self, item_id: str) -> Path:
        if not ITEM_ID_PATTERN.fullmatch(item_id):
            raise ValueError(f"invalid work item ID: {item_id!r} (expected e.g. TASK-001)")
        return self.items_dir / f"{item_id}.md"

    def _read_item(self, path: Path) -> WorkItem:
        try:
            text = path.read_text(encoding="utf-8")
            post = frontmatter.loads(text)
        except Exception as e:
            raise ParseError(path, str(e))
        try:
            data = {key: _iso(post.metadata.get(key)) for key in _FRONTMATTER_FIELDS if post.metadata.get(key) is not None}
            description = _body(text)
            if description:
                data["description"] = description
            return WorkItem.model_validate(data)
        except Exception as e:
            raise ParseError(path, f"Invalid frontmatter: {e}")

    def load_work_items(self) -> List[WorkItem]:
        if not self.items_dir.exists():
            return []
        return [self._read_item(path) for path in sorted(self.items_dir.glob("*.md"))]

    def load_work_item(self, item_id: str) -> Optional[WorkItem]:
        path = self._item_path(item_id)
        if not path.exists():
            return None
        return self._read_item(path)

    def save_work_item(self, item: WorkItem) -> None:
        self._ensure_dirs()
        metadata = {key: value for key, value in item.model_dump(mode="json").items() if key in _FRONTMATTER_FIELDS}
        path = self._item_path(item.id)
        try:
            path.write_text(_render(metadata, item.description), encoding="utf-8")
        except OSError as e:
            raise WriteError(f"Failed to write {path}: {e}")
        logger.debug(f"Saved work item {item.id} -> {path}")

    def delete_work_item(self, item_id: str) -> None:
        path = self._item_path(item_id)
        try:
            path.unlink()
        except FileNotFoundError:
            raise WorkItemNotFoundError(item_id)
        logger.debug(f"Deleted work item file {path}")

    def load_relations(self) -> List[Relation]:
        if not self.links_path.exists():
            return []
        try:
            raw = json.loads(self.links_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ParseError(self.links_path, f"Invalid JSON: {e}")
        if not isinstance(raw, list):
            raise ParseError(self.links_path, "Expected a JSON list of relations")
        try:
            return [Relation.model_validate(entry) for entry in raw]
        except Exception as e:
            raise ParseError(self.links_path, f"Invalid relation entry: {e}")

    def save_relations(self, relations: Iterable[Relation]) -> None:
        self._ensure_dirs()
        payload = [relation.to_dict() for relation in relations]
        try:
            self.links_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            raise WriteError(f"Failed to write {self.links_path}: {e}")
        logger.debug(f"Saved {len(payload)} relation(s) -> {self.links_path}")

    def _read_counters(self) -> Dict[str, int]:
        if not self.counter_path.exists():
            return {}
        try:
            data = json.loads(self.counter_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ParseError(self.counter_path, f"Invalid JSON: {e}")
        if not isinstance(data, dict):
            raise ParseError(self.counter_path, "Expected a JSON object")
        return {str(k): int(v) for k, v in data.items()}

    def next_id(self, kind: WorkItemKind) -> str:
        self._ensure_dirs()
        counters = self._read_counters()
        number = counters.get(kind.value, 0) + 1
        while self._item_path(format_item_id(kind, number)).exists():
            number += 1
        counters[kind.value] = number
        try:
            self.counter_path.write_text(json.dumps(counters, indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            raise WriteError(f"Failed to write {self.counter_path}: {e}")
        return format_item_id(kind, number)
