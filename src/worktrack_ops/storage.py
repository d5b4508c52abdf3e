"""Storage collaborator interface and an in-memory implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from worktrack_core.errors import WorkItemNotFoundError
from worktrack_core.models import Relation, WorkItem, WorkItemKind


def format_item_id(kind: WorkItemKind, number: int) -> str:
    """Display ID for the n-th item of a kind: TASK-001, BUG-042, ..."""
    return f"{kind.value.upper()}-{number:03d}"


class WorkStorage(ABC):
    """Abstract record store consumed by the engine.

    Each engine operation loads a snapshot, works on it in memory and saves
    what changed. Implementations own any locking they need.
    """

    @abstractmethod
    def load_work_items(self) -> List[WorkItem]:
        """Return every stored work item."""
        pass

    @abstractmethod
    def load_relations(self) -> List[Relation]:
        """Return the full edge set."""
        pass

    @abstractmethod
    def save_relations(self, relations: Iterable[Relation]) -> None:
        """Replace the stored edge set."""
        pass

    @abstractmethod
    def save_work_item(self, item: WorkItem) -> None:
        """Insert or replace one work item."""
        pass

    @abstractmethod
    def delete_work_item(self, item_id: str) -> None:
        """Delete one work item.

        Raises:
            WorkItemNotFoundError: If the item does not exist
        """
        pass

    @abstractmethod
    def next_id(self, kind: WorkItemKind) -> str:
        """Allocate the next display ID for a kind."""
        pass

    def load_work_item(self, item_id: str) -> Optional[WorkItem]:
        for item in self.load_work_items():
            if item.id == item_id:
                return item
        return None


class InMemoryStorage(WorkStorage):
    """Storage held in process memory (tests, embedding)."""

    def __init__(
        self,
        items: Optional[Iterable[WorkItem]] = None,
        relations: Optional[Iterable[Relation]] = None,
    ) -> None:
        self._items: Dict[str, WorkItem] = {item.id: item for item in items or []}
        self._relations: List[Relation] = list(relations or [])
        self._counters: Dict[WorkItemKind, int] = {}
        self.relation_saves = 0

    def load_work_items(self) -> List[WorkItem]:
        return list(self._items.values())

    def load_relations(self) -> List[Relation]:
        return list(self._relations)

    def save_relations(self, relations: Iterable[Relation]) -> None:
        self._relations = list(relations)
        self.relation_saves += 1

    def save_work_item(self, item: WorkItem) -> None:
        self._items[item.id] = item

    def delete_work_item(self, item_id: str) -> None:
        if item_id not in self._items:
            raise WorkItemNotFoundError(item_id)
        del self._items[item_id]

    def next_id(self, kind: WorkItemKind) -> str:
        number = self._counters.get(kind, 0) + 1
        while format_item_id(kind, number) in self._items:
            number += 1
        self._counters[kind] = number
        return format_item_id(kind, number)

    def load_work_item(self, item_id: str) -> Optional[WorkItem]:
        return self._items.get(item_id)
