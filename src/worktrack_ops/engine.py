"""
engine.py - Engine facade over storage and the graph/query core.

Every public method is one logical operation: load a storage snapshot,
run the core against it, persist what changed. Build a fresh engine per
command; it holds no state between calls besides its collaborators.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from worktrack_core.config import WorkspaceContext
from worktrack_core.errors import ConfigError, WorkItemNotFoundError
from worktrack_core.evaluator import execute_query, order_work_items, parse_order_by
from worktrack_core.graph import detect_cycles, validate_relation
from worktrack_core.models import (
    CreateWorkItemRequest,
    Relation,
    RelationType,
    UpdateWorkItemRequest,
    WorkItem,
    WorkItemKind,
    WorkItemState,
)
from worktrack_core.navigator import Direction, GraphSlice, build_graph_slice, get_related_items
from worktrack_core.query import parse_query
from worktrack_core.relations import RelationStore
from worktrack_core.schema import SCHEMA_ATTRIBUTES, RelationSchema, RelationTypeDef, SchemaAttribute

from .local_fs import LocalFsStorage
from .storage import WorkStorage

logger = logging.getLogger(__name__)

UNSETTABLE_FIELDS = ("assignee", "description")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass
class GraphReport:
    """Result of checking a stored edge set for out-of-band damage."""
    relations: int
    cycles: List[List[str]] = field(default_factory=list)
    dangling: List[Relation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.cycles and not self.dangling


class WorkEngine:
    """Orchestrates storage, validation, navigation and queries."""

    def __init__(
        self,
        storage: WorkStorage,
        schema: Optional[RelationSchema] = None,
        clock: Callable[[], str] = _utc_now,
    ):
        self.storage = storage
        self.schema = schema or RelationSchema.default()
        self._clock = clock

    @classmethod
    def from_context(cls, ctx: WorkspaceContext) -> "WorkEngine":
        return cls(LocalFsStorage.from_context(ctx), ctx.config.relation_schema())

    # ------------------------------------------------------------------
    # snapshot helpers

    def _items_by_id(self) -> Dict[str, WorkItem]:
        return {item.id: item for item in self.storage.load_work_items()}

    @staticmethod
    def _require(items: Dict[str, WorkItem], item_id: str) -> WorkItem:
        item = items.get(item_id)
        if item is None:
            raise WorkItemNotFoundError(item_id)
        return item

    def _load_store(self) -> RelationStore:
        return RelationStore(self.storage.load_relations())

    # ------------------------------------------------------------------
    # relations

    def create_relation(self, relation: Relation) -> bool:
        """Validate and persist an edge.

        Returns:
            True if the edge was added, False if it already existed

        Raises:
            WorkItemNotFoundError: Either endpoint does not exist
            CyclicRelationError / InvalidRelationKindError / UnknownRelationTypeError
        """
        items = self._items_by_id()
        source = self._require(items, relation.source)
        target = self._require(items, relation.target)
        store = self._load_store()

        if relation in store:
            logger.info(f"Relation already exists: {relation}")
            return False

        validate_relation(source, target, relation.type, store.edges(), self.schema)
        store.add_edge(relation)
        self.storage.save_relations(store)
        logger.info(f"Linked {relation}")
        return True

    def delete_relation(self, source: str, target: str, relation_type: RelationType | str) -> bool:
        """Remove an edge; removing a missing edge is a successful no-op."""
        definition = self.schema.get(relation_type)
        store = self._load_store()
        if not store.remove_edge(source, target, definition.name):
            logger.info(f"No relation {source} {definition.name.value} {target}; nothing to unlink")
            return False
        self.storage.save_relations(store)
        logger.info(f"Unlinked {source} {definition.name.value} {target}")
        return True

    def get_relations(self, item_id: str) -> List[Relation]:
        store = self._load_store()
        return store.edges_from(item_id) + store.edges_to(item_id)

    def get_related_items(
        self,
        item_id: str,
        relation_type: Optional[RelationType | str] = None,
    ) -> List[WorkItem]:
        """Work items linked to `item_id` in either direction."""
        if relation_type is not None:
            relation_type = self.schema.get(relation_type).name
        items = self._items_by_id()
        self._require(items, item_id)
        related = get_related_items(self._load_store(), item_id, relation_type)
        missing = [i for i in related if i not in items]
        if missing:
            logger.warning(f"Relations of {item_id} point at missing items: {', '.join(missing)}")
        return [items[i] for i in related if i in items]

    def build_graph_slice(
        self,
        root_id: str,
        direction: Direction | str = Direction.BOTH,
        max_depth: Optional[int] = None,
        relation_types: Optional[Iterable[RelationType | str]] = None,
    ) -> GraphSlice:
        types = [self.schema.get(t).name for t in relation_types] if relation_types else None
        self._require(self._items_by_id(), root_id)
        return build_graph_slice(self._load_store(), root_id, direction, max_depth, types)

    def check_graph(self) -> GraphReport:
        """Report cycles and edges whose endpoints no longer exist."""
        items = self._items_by_id()
        relations = self.storage.load_relations()
        dangling = [r for r in relations if r.source not in items or r.target not in items]
        for relation in dangling:
            logger.warning(f"Dangling relation: {relation}")
        return GraphReport(
            relations=len(relations),
            cycles=detect_cycles(relations, self.schema),
            dangling=dangling,
        )

    # ------------------------------------------------------------------
    # work items

    def create_work_item(self, request: CreateWorkItemRequest) -> WorkItem:
        if request.kind not in self.schema.kinds:
            enabled = ", ".join(k.value for k in self.schema.kinds)
            raise ConfigError(f"Work item kind '{request.kind.value}' is not enabled (enabled: {enabled})")
        now = self._clock()
        item = WorkItem(
            id=self.storage.next_id(request.kind),
            kind=request.kind,
            title=request.title,
            description=request.description,
            state=WorkItemState.NEW,
            priority=request.priority,
            assignee=request.assignee,
            labels=list(request.labels),
            created_at=now,
            updated_at=now,
        )
        self.storage.save_work_item(item)
        logger.info(f"Created {item.kind.value} {item.id}")
        return item

    def get_work_item(self, item_id: str) -> WorkItem:
        item = self.storage.load_work_item(item_id)
        if item is None:
            raise WorkItemNotFoundError(item_id)
        return item

    def update_work_item(self, item_id: str, request: UpdateWorkItemRequest) -> WorkItem:
        """Apply the fields of `request` that are not None; `unset_field` clears one."""
        existing = self.get_work_item(item_id)
        changes = request.model_dump(exclude_none=True)
        changes["updated_at"] = self._clock()
        updated = existing.model_copy(update=changes)
        self.storage.save_work_item(updated)
        logger.info(f"Updated {item_id}: {', '.join(sorted(changes))}")
        return updated

    def unset_field(self, item_id: str, field_name: str) -> WorkItem:
        """Clear an optional field (assignee or description).

        Raises:
            ValueError: Field is required or unknown
        """
        name = field_name.strip().lower()
        if name not in UNSETTABLE_FIELDS:
            raise ValueError(f"Cannot unset '{field_name}' (allowed: {', '.join(UNSETTABLE_FIELDS)})")
        existing = self.get_work_item(item_id)
        updated = existing.model_copy(update={name: None, "updated_at": self._clock()})
        self.storage.save_work_item(updated)
        logger.info(f"Cleared {name} on {item_id}")
        return updated

    def change_state(self, item_id: str, state: WorkItemState | str) -> WorkItem:
        state = WorkItemState(state)
        existing = self.get_work_item(item_id)
        now = self._clock()
        closed_at = now if state == WorkItemState.CLOSED else existing.closed_at
        updated = existing.model_copy(update={"state": state, "updated_at": now, "closed_at": closed_at})
        self.storage.save_work_item(updated)
        logger.info(f"{item_id}: {existing.state.value} -> {state.value}")
        return updated

    def delete_work_item(self, item_id: str) -> List[Relation]:
        """Delete an item and every edge touching it; returns the removed edges."""
        self.get_work_item(item_id)
        store = self._load_store()
        removed = store.remove_item(item_id)
        if removed:
            self.storage.save_relations(store)
        self.storage.delete_work_item(item_id)
        logger.info(f"Deleted {item_id} ({len(removed)} relation(s) removed)")
        return removed

    def list_work_items(
        self,
        query: Optional[str] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[WorkItem]:
        """Filter stored items with a query, then order and truncate.

        Raises:
            QuerySyntaxError: Malformed query or order field
            ValueError: Non-positive limit
        """
        expression = parse_query(query)
        if order_by:
            parse_order_by(order_by)
        if limit is not None and limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")

        results = execute_query(self.storage.load_work_items(), expression)
        results = order_work_items(results, order_by)
        if limit is not None:
            results = results[:limit]
        return results

    # ------------------------------------------------------------------
    # schema

    def get_kinds(self) -> List[WorkItemKind]:
        return list(self.schema.kinds)

    def get_relation_types(self) -> List[RelationTypeDef]:
        return self.schema.definitions()

    def get_attributes(self) -> List[SchemaAttribute]:
        return list(SCHEMA_ATTRIBUTES)
