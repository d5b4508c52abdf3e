"""Read-only structural queries over the relation store."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, Iterable, List, Optional, Set, Tuple

from .models import Relation, RelationType
from .relations import RelationStore

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    """Which edges to follow from a node."""

    OUTGOING = "outgoing"
    INCOMING = "incoming"
    BOTH = "both"


@dataclass
class GraphSlice:
    """Items reachable from a root, with their BFS depth."""

    root: str
    direction: Direction
    nodes: Dict[str, int] = field(default_factory=dict)
    edges: List[Relation] = field(default_factory=list)

    def ids(self) -> List[str]:
        return list(self.nodes)

    def at_depth(self, depth: int) -> List[str]:
        return [node for node, d in self.nodes.items() if d == depth]


def _neighbours(
    store: RelationStore,
    node: str,
    direction: Direction,
    types: Optional[Set[RelationType]],
) -> Iterable[Tuple[Relation, str]]:
    if direction in (Direction.OUTGOING, Direction.BOTH):
        for relation in store.edges_from(node):
            if types is None or relation.type in types:
                yield relation, relation.target
    if direction in (Direction.INCOMING, Direction.BOTH):
        for relation in store.edges_to(node):
            if types is None or relation.type in types:
                yield relation, relation.source


def build_graph_slice(
    store: RelationStore,
    root_id: str,
    direction: Direction | str = Direction.BOTH,
    max_depth: Optional[int] = None,
    relation_types: Optional[Iterable[RelationType]] = None,
) -> GraphSlice:
    """Breadth-first expansion from `root_id`.

    Visited nodes are tracked, so cyclic data (possible after out-of-band
    storage edits) still terminates and every node is reported once.

    Args:
        store: Relation store snapshot
        root_id: Starting work item ID (depth 0)
        direction: outgoing | incoming | both
        max_depth: Stop expanding beyond this depth (None = unbounded)
        relation_types: Only follow these relation types (None = all)

    Raises:
        ValueError: If max_depth is negative
    """
    if max_depth is not None and max_depth < 0:
        raise ValueError(f"max_depth must be >= 0, got {max_depth}")
    direction = Direction(direction)
    types = set(relation_types) if relation_types is not None else None

    result = GraphSlice(root=root_id, direction=direction)
    result.nodes[root_id] = 0
    seen_edges: Set[Tuple[str, str, RelationType]] = set()
    queue: Deque[str] = deque([root_id])

    while queue:
        node = queue.popleft()
        depth = result.nodes[node]
        if max_depth is not None and depth >= max_depth:
            continue
        for relation, neighbour in _neighbours(store, node, direction, types):
            if relation.key not in seen_edges:
                seen_edges.add(relation.key)
                result.edges.append(relation)
            if neighbour in result.nodes:
                if neighbour == root_id and direction != Direction.BOTH:
                    logger.warning(f"Graph slice from {root_id} loops back to its root")
                continue
            result.nodes[neighbour] = depth + 1
            queue.append(neighbour)

    return result


def get_related_items(
    store: RelationStore,
    item_id: str,
    relation_type: Optional[RelationType | str] = None,
) -> List[str]:
    """IDs connected to `item_id` in either direction, optionally by one type."""
    wanted = RelationType(relation_type) if relation_type is not None else None
    related: List[str] = []
    for relation in store:
        if wanted is not None and relation.type != wanted:
            continue
        if relation.source == item_id:
            other = relation.target
        elif relation.target == item_id:
            other = relation.source
        else:
            continue
        if other != item_id and other not in related:
            related.append(other)
    return related
