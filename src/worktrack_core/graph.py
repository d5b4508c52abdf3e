"""Graph validation: endpoint-kind gating and cycle detection.

Relation types are grouped into cycle groups by the relation schema
(e.g. ``parent_of`` and ``child_of`` form ``hierarchy``). Each group is an
independent directed graph; an edge is rejected when it would close a cycle
inside its own group.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import CyclicRelationError, InvalidRelationKindError
from .models import Relation, RelationType, WorkItem
from .schema import RelationSchema, RelationTypeDef

logger = logging.getLogger(__name__)

Adjacency = Dict[str, List[str]]

_GRAY = 1
_BLACK = 2


def orient(relation: Relation, definition: RelationTypeDef) -> Tuple[str, str]:
    """Return the edge as (u, v) in its cycle group's direction."""
    if definition.reverse_in_group:
        return relation.target, relation.source
    return relation.source, relation.target


def group_graph(edges: Iterable[Relation], group: str, schema: RelationSchema) -> Adjacency:
    """Build an adjacency map from the edges belonging to one cycle group.

    Multi-edges between the same oriented pair collapse to one entry.
    """
    graph: Adjacency = {}
    for relation in edges:
        definition = schema.get(relation.type)
        if definition.cycle_group != group:
            continue
        u, v = orient(relation, definition)
        successors = graph.setdefault(u, [])
        if v not in successors:
            successors.append(v)
        graph.setdefault(v, [])
    return graph


def find_path(graph: Adjacency, start: str, goal: str) -> Optional[List[str]]:
    """Depth-first search for a path start -> ... -> goal; None if unreachable."""
    if start == goal:
        return [start]
    parents: Dict[str, Optional[str]] = {start: None}
    stack = [start]
    while stack:
        node = stack.pop()
        for successor in graph.get(node, ()):
            if successor in parents:
                continue
            parents[successor] = node
            if successor == goal:
                path = [goal]
                while parents[path[-1]] is not None:
                    path.append(parents[path[-1]])  # type: ignore[arg-type]
                path.reverse()
                return path
            stack.append(successor)
    return None


def find_cycle(
    existing_edges: Iterable[Relation],
    relation: Relation,
    schema: RelationSchema,
) -> Optional[List[str]]:
    """Return the cycle that adding `relation` would close, or None.

    Adding oriented u -> v closes a cycle iff v already reaches u. The
    returned path starts and ends at u.
    """
    definition = schema.get(relation.type)
    u, v = orient(relation, definition)
    if u == v:
        return [u, v]
    if definition.cycle_group is None:
        return None
    graph = group_graph(existing_edges, definition.cycle_group, schema)
    path = find_path(graph, v, u)
    if path is None:
        return None
    return [u] + path


def _first_cycle(graph: Adjacency) -> Optional[List[str]]:
    state: Dict[str, int] = {}
    for root in list(graph):
        if root in state:
            continue
        state[root] = _GRAY
        path = [root]
        stack = [iter(graph.get(root, ()))]
        while stack:
            advanced = False
            for successor in stack[-1]:
                seen = state.get(successor)
                if seen == _GRAY:
                    return path[path.index(successor):] + [successor]
                if seen is None:
                    state[successor] = _GRAY
                    path.append(successor)
                    stack.append(iter(graph.get(successor, ())))
                    advanced = True
                    break
            if not advanced:
                state[path.pop()] = _BLACK
                stack.pop()
    return None


def detect_cycles(edges: Iterable[Relation], schema: Optional[RelationSchema] = None) -> List[List[str]]:
    """Check a whole edge set and return one cycle path per offending group.

    Validated edge sets never contain cycles; this reports damage done out of
    band (hand-edited storage files).
    """
    schema = schema or RelationSchema.default()
    edges = list(edges)
    cycles: List[List[str]] = []
    for group in schema.groups():
        cycle = _first_cycle(group_graph(edges, group, schema))
        if cycle:
            logger.warning(f"Cycle in '{group}' relations: {' -> '.join(cycle)}")
            cycles.append(cycle)
    return cycles


def validate_relation(
    source_item: WorkItem,
    target_item: WorkItem,
    relation_type: RelationType | str,
    existing_edges: Iterable[Relation],
    schema: Optional[RelationSchema] = None,
) -> None:
    """Decide whether an edge may be added; raises on rejection.

    Args:
        source_item: Work item at the ``from`` end
        target_item: Work item at the ``to`` end
        relation_type: Relation type of the proposed edge
        existing_edges: Current edge set (not modified)
        schema: Relation schema (defaults to the built-in table)

    Raises:
        CyclicRelationError: Self-relation, or the edge would close a cycle
        UnknownRelationTypeError: Type not in the schema
        InvalidRelationKindError: Endpoint kinds not allowed for the type
    """
    schema = schema or RelationSchema.default()

    if source_item.id == target_item.id:
        name = relation_type.value if isinstance(relation_type, RelationType) else str(relation_type)
        raise CyclicRelationError(source_item.id, target_item.id, name, [source_item.id, target_item.id])

    definition = schema.get(relation_type)
    name = definition.name.value

    enabled = source_item.kind in schema.kinds and target_item.kind in schema.kinds
    if not (enabled and definition.allows_from(source_item.kind) and definition.allows_to(target_item.kind)):
        raise InvalidRelationKindError(
            name,
            source_item.kind.value,
            target_item.kind.value,
            [k.value for k in definition.from_kinds],
            [k.value for k in definition.to_kinds],
        )

    proposed = Relation(source=source_item.id, target=target_item.id, type=definition.name)
    cycle = find_cycle(existing_edges, proposed, schema)
    if cycle:
        raise CyclicRelationError(source_item.id, target_item.id, name, cycle)

    logger.debug(f"Relation accepted: {proposed}")
