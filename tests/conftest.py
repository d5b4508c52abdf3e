from pathlib import Path
from typing import Iterable, Optional

import pytest
from hypothesis import settings

from worktrack_core.models import Relation, RelationType, WorkItem, WorkItemKind
from worktrack_ops.engine import WorkEngine
from worktrack_ops.storage import InMemoryStorage

# Prevent Hypothesis from writing a local example database (e.g. `.hypothesis/`) during tests.
settings.register_profile("worktrack-tests", database=None)
settings.load_profile("worktrack-tests")

TIMESTAMP = "2024-01-01T00:00:00+00:00"


def make_item(item_id: str, kind: WorkItemKind | str = WorkItemKind.TASK, **fields) -> WorkItem:
    """Build a WorkItem with fixed timestamps; extra fields override defaults."""
    data = {
        "id": item_id,
        "kind": kind,
        "title": fields.pop("title", f"Item {item_id}"),
        "created_at": TIMESTAMP,
        "updated_at": TIMESTAMP,
    }
    data.update(fields)
    return WorkItem.model_validate(data)


def rel(source: str, relation_type: RelationType | str, target: str) -> Relation:
    return Relation(source=source, target=target, type=RelationType(relation_type))


def make_engine(
    items: Iterable[WorkItem] = (),
    relations: Iterable[Relation] = (),
    schema=None,
) -> WorkEngine:
    return WorkEngine(InMemoryStorage(items, relations), schema, clock=lambda: TIMESTAMP)


def write_workspace_config(root: Path, text: str, *, context: Optional[str] = None) -> Path:
    """Write <root>/.work/config.toml and return its path."""
    work_dir = root / ".work"
    work_dir.mkdir(parents=True, exist_ok=True)
    path = work_dir / "config.toml"
    body = text.strip() + "\n"
    if context:
        body = f'context = "{context}"\n' + body
    path.write_text(body, encoding="utf-8")
    return path


@pytest.fixture
def clean_env(monkeypatch):
    monkeypatch.delenv("WORKTRACK_CONTEXT", raising=False)
    monkeypatch.delenv("WORKTRACK_LOG_VERBOSITY", raising=False)
    return monkeypatch
